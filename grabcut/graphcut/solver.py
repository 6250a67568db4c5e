import logging
import time
from dataclasses import dataclass

import numpy as np

from grabcut.errors import GraphConstructionError, SolverError
from grabcut.graphcut.maxflow_oracle import MaxflowOracle
from grabcut.graphcut.oracle import FlowGraph, MinCutOracle
from grabcut.image_processing.energy import EnergyModel, PairwiseTerms
from grabcut.utils import BACKGROUND, FOREGROUND

logger = logging.getLogger(__name__)


@dataclass
class CutResult:
	labeling: np.ndarray
	energy: float
	flow_graph: FlowGraph


def build_flow_graph(unary, pairwise: PairwiseTerms) -> FlowGraph:
	"""
	Source side means foreground: cutting source -> p costs U(p, BG), cutting p -> target costs U(p, FG).
	Terminal capacities are shifted by min(U(p, FG), U(p, BG)) so they never go negative,
	which moves every cut by the same constant.
	:param unary: (2, n) data costs
	:param pairwise: smoothness terms over the same n nodes
	"""
	unary = np.asarray(unary, dtype=np.float64)
	if unary.ndim != 2 or unary.shape[0] != 2:
		raise GraphConstructionError("Unary table must have shape (2, n), got %s" % (unary.shape,))
	n_nodes = unary.shape[1]

	edges = np.asarray(pairwise.edges)
	if edges.size > 0:
		if edges.ndim != 2 or edges.shape[1] != 2:
			raise GraphConstructionError("Pairwise edges must have shape (e, 2), got %s" % (edges.shape,))
		if edges.min() < 0 or edges.max() >= n_nodes:
			raise GraphConstructionError("Pairwise edge references a node outside [0, %d)" % n_nodes)
		if np.any(edges[:, 0] == edges[:, 1]):
			raise GraphConstructionError("Pairwise edge links a node to itself")
	else:
		edges = np.zeros((0, 2), dtype=np.int64)

	if not np.all(np.isfinite(unary)):
		raise GraphConstructionError("Unary costs contain non-finite values")

	offset = np.minimum(unary[FOREGROUND], unary[BACKGROUND])
	source_caps = unary[BACKGROUND] - offset
	sink_caps = unary[FOREGROUND] - offset

	# V(p, q, FG, BG) on p -> q, V(p, q, BG, FG) on q -> p
	edge_caps = pairwise.costs[:, 2 * FOREGROUND + BACKGROUND]
	reverse_caps = pairwise.costs[:, 2 * BACKGROUND + FOREGROUND]
	if not (np.all(np.isfinite(edge_caps)) and np.all(np.isfinite(reverse_caps))):
		raise GraphConstructionError("Pairwise costs contain non-finite values")
	if np.any(edge_caps < 0) or np.any(reverse_caps < 0):
		raise GraphConstructionError("Pairwise costs must be non-negative")

	return FlowGraph(
		n_nodes=n_nodes,
		source_caps=source_caps,
		sink_caps=sink_caps,
		edges=edges,
		edge_caps=edge_caps,
		reverse_caps=reverse_caps,
	)


class SegmentationSolver:
	"""
	Relabels the unknown region with a minimum cut of the current energy.
	"""

	def __init__(self, oracle: MinCutOracle = None):
		self.oracle = oracle if oracle is not None else MaxflowOracle()

	def cut(self, graph: FlowGraph) -> np.ndarray:
		"""
		:return: boolean array, True for nodes on the source side
		"""
		start = time.perf_counter()
		try:
			source_side = self.oracle.solve(graph)
		except Exception as e:
			raise SolverError("Min-cut oracle failed: %s" % e) from e
		logger.debug("Min cut on %d nodes, %d edges solved in %.3fs",
					 graph.n_nodes, graph.n_edges, time.perf_counter() - start)

		if source_side is None:
			raise SolverError("Min-cut oracle returned no partition")
		source_side = np.asarray(source_side)
		if source_side.shape != (graph.n_nodes,):
			raise SolverError("Min-cut oracle returned a partition of shape %s for %d nodes"
							  % (source_side.shape, graph.n_nodes))
		if source_side.dtype != bool:
			raise SolverError("Min-cut oracle must return a boolean partition, got %s" % source_side.dtype)
		return source_side

	def solve(self, model: EnergyModel, labeling) -> CutResult:
		"""
		:param model: energy model with up-to-date unary terms
		:param labeling: current flat labeling of the whole image, left untouched
		:return: new labeling (only unknown pixels may change) and its energy under the same model
		"""
		if model.unary is None:
			raise GraphConstructionError("Unary terms must be computed before solving")

		graph = build_flow_graph(model.unary, model.pairwise)
		source_side = self.cut(graph)

		region_labels = np.where(source_side, FOREGROUND, BACKGROUND).astype(np.uint8)

		new_labeling = np.full(len(labeling), BACKGROUND, dtype=np.uint8)
		# Pixels outside the unknown region stay background whatever the cut says
		new_labeling[model.region_pixels] = region_labels

		energy = model.energy(region_labels)
		return CutResult(labeling=new_labeling, energy=energy, flow_graph=graph)
