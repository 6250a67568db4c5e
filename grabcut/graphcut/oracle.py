from abc import ABC, abstractmethod
from dataclasses import dataclass

import numpy as np


@dataclass
class FlowGraph:
	"""
	Two-terminal flow network. Pixel nodes are 0..n_nodes-1, the source and target are implicit.
	source_caps[i]: capacity source -> i
	sink_caps[i]: capacity i -> target
	edges[e] = (i, j) with capacity edge_caps[e] for i -> j and reverse_caps[e] for j -> i
	"""
	n_nodes: int
	source_caps: np.ndarray
	sink_caps: np.ndarray
	edges: np.ndarray
	edge_caps: np.ndarray
	reverse_caps: np.ndarray

	@property
	def n_edges(self):
		return self.edges.shape[0]


class MinCutOracle(ABC):
	"""
	Exact minimum s-t cut solver. Approximate solvers break the energy decrease guarantee and must not be used.
	"""

	@abstractmethod
	def solve(self, graph: FlowGraph) -> np.ndarray:
		"""
		:param graph: flow network with finite, non-negative capacities
		:return: boolean (n_nodes,) array, True for the nodes on the source side of a minimum cut
		"""
