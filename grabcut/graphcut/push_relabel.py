from collections import deque

import numpy as np

from grabcut.graphcut.oracle import FlowGraph, MinCutOracle


class PushRelabelOracle(MinCutOracle):
    """
    Generic push-relabel max-flow (FIFO selection of active nodes), pure python.
    Exact, but only meant for small graphs: O(V^2 E).
    """

    def __init__(self, eps=1e-9):
        self.eps = eps

        self.capacity = None
        self.dist = None
        self.overrun = None
        self.active = None
        self.in_queue = None

    def capacity_matrix(self, graph: FlowGraph):
        """
        Residual capacities as one dict per node, the source being node n and the target node n + 1.
        Every edge gets its reverse edge, with capacity 0 if absent from the graph.
        """
        n = graph.n_nodes
        s, t = n, n + 1
        self.capacity = [dict() for _ in range(n + 2)]

        def add_edge(u, v, cap):
            self.capacity[u][v] = self.capacity[u].get(v, 0.0) + cap
            self.capacity[v].setdefault(u, 0.0)

        for i in range(n):
            add_edge(s, i, float(graph.source_caps[i]))
            add_edge(i, t, float(graph.sink_caps[i]))

        for (i, j), cap, rev_cap in zip(graph.edges, graph.edge_caps, graph.reverse_caps):
            add_edge(int(i), int(j), float(cap))
            add_edge(int(j), int(i), float(rev_cap))

        return s, t

    def _push(self, node, s, t):
        """
        Push excess flow from the node to neighbours one level lower.
        :return: True if something was pushed
        """
        success = False

        for neighbor, residual in self.capacity[node].items():
            if residual <= self.eps or self.dist[node] != self.dist[neighbor] + 1:
                continue
            success = True

            push = min(residual, self.overrun[node])
            self.capacity[node][neighbor] -= push
            self.capacity[neighbor][node] += push
            self.overrun[node] -= push
            self.overrun[neighbor] += push

            if neighbor != s and neighbor != t and not self.in_queue[neighbor]:
                self.active.append(neighbor)
                self.in_queue[neighbor] = True

            # If the node does not overrun, we are done with it
            if self.overrun[node] <= self.eps:
                break

        return success

    def _relabel(self, node):
        """
        Lift the node to one above its lowest non saturated neighbour.
        :return: False if the node has no residual edge left
        """
        min_dist = None
        for neighbor, residual in self.capacity[node].items():
            if residual <= self.eps:
                continue
            if min_dist is None or self.dist[neighbor] < min_dist:
                min_dist = self.dist[neighbor]

        if min_dist is None:
            return False

        self.dist[node] = min_dist + 1
        return True

    def solve_max_flow(self, graph: FlowGraph):
        """
        :return: value of the maximum flow
        """
        s, t = self.capacity_matrix(graph)
        n_total = graph.n_nodes + 2

        self.dist = [0] * n_total
        self.overrun = [0.0] * n_total
        self.active = deque()
        self.in_queue = [False] * n_total

        # Saturate every edge out of the source
        self.dist[s] = n_total
        for node, cap in list(self.capacity[s].items()):
            if cap <= 0:
                continue
            self.capacity[s][node] = 0.0
            self.capacity[node][s] += cap
            self.overrun[node] += cap
            self.overrun[s] -= cap
            if node != t and not self.in_queue[node]:
                self.active.append(node)
                self.in_queue[node] = True

        while self.active:
            node = self.active.popleft()
            self.in_queue[node] = False
            while self.overrun[node] > self.eps:
                if not self._push(node, s, t) and not self._relabel(node):
                    # Numerically empty excess with no residual edge to carry it
                    break

        return self.overrun[t]

    def source_side(self, graph: FlowGraph):
        """
        Nodes still reachable from the source in the residual graph.
        """
        s = graph.n_nodes
        reached = np.zeros(graph.n_nodes + 2, dtype=bool)
        reached[s] = True
        queue = deque([s])
        while queue:
            node = queue.popleft()
            for neighbor, residual in self.capacity[node].items():
                if residual > self.eps and not reached[neighbor]:
                    reached[neighbor] = True
                    queue.append(neighbor)
        return reached[:graph.n_nodes]

    def solve(self, graph: FlowGraph) -> np.ndarray:
        self.solve_max_flow(graph)
        return self.source_side(graph)
