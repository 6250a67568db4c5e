from grabcut.errors import GrabCutError, InvalidInput, GraphConstructionError, SolverError
from grabcut.config import GrabCutConfig
from grabcut.utils import BACKGROUND, FOREGROUND, flatten_image, unflatten_image, rect_to_trimap, composite_foreground, label_overlay, plot_progress
from grabcut.image_processing.gmm import GaussianComponent, GaussianMixture, fit, assign
from grabcut.image_processing.energy import EnergyModel, PairwiseTerms, compute_pairwise, compute_unary, compute_energy
from grabcut.graphcut.oracle import FlowGraph, MinCutOracle
from grabcut.graphcut.maxflow_oracle import MaxflowOracle
from grabcut.graphcut.push_relabel import PushRelabelOracle
from grabcut.graphcut.solver import SegmentationSolver, build_flow_graph
from grabcut.clustering import KMeansClustering
from grabcut.grabcut import GrabCut, GrabCutResult, State, segment
