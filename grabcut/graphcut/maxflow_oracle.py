import logging

import maxflow
import numpy as np

from grabcut.graphcut.oracle import FlowGraph, MinCutOracle

logger = logging.getLogger(__name__)


class MaxflowOracle(MinCutOracle):
	"""
	Boykov-Kolmogorov max-flow from PyMaxflow.
	"""

	def build_maxflow_graph(self, graph: FlowGraph):
		"""
		:return: PyMaxflow graph and the ids of the pixel nodes
		"""
		g = maxflow.Graph[float](graph.n_nodes, graph.n_edges)
		nodes = g.add_grid_nodes((graph.n_nodes,))

		g.add_grid_tedges(nodes, graph.source_caps, graph.sink_caps)

		for (i, j), cap, rev_cap in zip(graph.edges, graph.edge_caps, graph.reverse_caps):
			g.add_edge(nodes[i], nodes[j], cap, rev_cap)

		return g, nodes

	def solve(self, graph: FlowGraph) -> np.ndarray:
		g, nodes = self.build_maxflow_graph(graph)
		flow = g.maxflow()
		logger.debug("Max flow: %g", flow)

		# get_grid_segments is True for the nodes on the target side
		return np.logical_not(g.get_grid_segments(nodes))
