"""
Iterative foreground extraction, after:
    Rother, Carsten, Vladimir Kolmogorov, and Andrew Blake.
    "GrabCut: Interactive foreground extraction using iterated graph cuts."
    ACM transactions on graphics (TOG) 23.3 (2004): 309-314.

Each pass hard-assigns pixels to the gaussian components of their region, refits both colour models,
then relabels the unknown region with a minimum cut, until the energy stops decreasing.
"""
import enum
import logging
import math
from dataclasses import dataclass, field
from typing import Callable, List, Optional

import numpy as np
from tqdm import tqdm

from grabcut.clustering import KMeansClustering
from grabcut.config import GrabCutConfig
from grabcut.errors import InvalidInput
from grabcut.graphcut.oracle import MinCutOracle
from grabcut.graphcut.solver import SegmentationSolver
from grabcut.image_processing import gmm
from grabcut.image_processing.energy import EnergyModel
from grabcut.utils import BACKGROUND, FOREGROUND, flatten_image

logger = logging.getLogger(__name__)


class State(enum.Enum):
    INITIALIZING = "initializing"
    ITERATING = "iterating"
    CONVERGED = "converged"
    MAX_ITERATIONS_REACHED = "max_iterations_reached"


@dataclass
class GrabCutResult:
    labeling: np.ndarray
    energy: float
    n_iterations: int
    termination: State
    shape: tuple
    energy_history: List[float] = field(default_factory=list)

    @property
    def converged(self):
        return self.termination is State.CONVERGED

    @property
    def mask(self):
        """Labeling as an (h, w) array."""
        return self.labeling.reshape(self.shape)

    @property
    def n_foreground(self):
        return int(np.count_nonzero(self.labeling == FOREGROUND))

    @property
    def foreground_fraction(self):
        return self.n_foreground / self.labeling.size


def relative_energy_change(energy_prev, energy):
    """
    (E_prev - E) / |E_prev|. Log-likelihood energies can be negative, the absolute value keeps a decrease positive.
    """
    if energy == energy_prev:
        return 0.0
    if energy_prev == 0:
        return math.inf if energy < energy_prev else -math.inf
    return (energy_prev - energy) / abs(energy_prev)


class GrabCut:
    """
    Optimization controller: Initializing -> Iterating -> Converged | MaxIterationsReached.
    """

    def __init__(self, config: GrabCutConfig, clustering=None, oracle: MinCutOracle = None):
        self.config = config
        self.clustering = clustering if clustering is not None else KMeansClustering(
            random_state=config.random_state, n_init=config.kmeans_n_init)
        self.solver = SegmentationSolver(oracle)

        self.state = None
        self.fg_mixture = None
        self.bg_mixture = None

    def initialize(self, colors, labeling):
        """
        Seeds both colour models by clustering the unknown and the background colours separately.
        """
        self.state = State.INITIALIZING
        is_fg = labeling == FOREGROUND
        k = self.config.n_gaussians

        logger.info("Initializing colour models with %d gaussians each", k)
        self.fg_mixture = gmm.fit(colors[is_fg], self.clustering.cluster(colors[is_fg], k))
        self.bg_mixture = gmm.fit(colors[~is_fg], self.clustering.cluster(colors[~is_fg], k))

    def refit(self, colors, labeling):
        """
        Steps (a) and (b) of a pass: assign every pixel to a component of its region's mixture, then refit.
        A region left without pixels keeps its previous mixture.
        """
        is_fg = labeling == FOREGROUND

        if np.any(is_fg):
            k_fg = gmm.assign(colors[is_fg], self.fg_mixture)
            self.fg_mixture = gmm.fit(colors[is_fg], k_fg)
        else:
            logger.warning("No foreground pixel left, keeping the previous foreground model")

        if np.any(~is_fg):
            k_bg = gmm.assign(colors[~is_fg], self.bg_mixture)
            self.bg_mixture = gmm.fit(colors[~is_fg], k_bg)
        else:
            logger.warning("No background pixel left, keeping the previous background model")

    def segment(self, image, unknown_mask, on_iteration: Optional[Callable] = None) -> GrabCutResult:
        """
        :param image: (h, w, 3) image
        :param unknown_mask: boolean (h, w) array, True inside the user's box. Outside pixels stay background.
        :param on_iteration: optional observer called as on_iteration(iteration, labeling, energy) after each pass
        :return: GrabCutResult of the last completed pass
        """
        image = np.asarray(image)
        unknown_mask = _check_trimap(image, unknown_mask)
        h, w = image.shape[:2]

        colors = flatten_image(image)
        labeling = np.where(unknown_mask.ravel(), FOREGROUND, BACKGROUND).astype(np.uint8)
        logger.info("Image size: %dx%d, unknown pixels: %d, background pixels: %d",
                    h, w, np.count_nonzero(unknown_mask), labeling.size - np.count_nonzero(unknown_mask))

        self.initialize(colors, labeling)

        # Pairwise terms only depend on the image
        model = EnergyModel(image, unknown_mask, self.config.gamma)
        logger.info("Pairwise terms computed: %d edges", len(model.pairwise))

        self.state = State.ITERATING
        energy_prev = None
        energy = None
        history = []
        iteration = 0

        with tqdm(total=self.config.max_iterations, desc="GrabCut", disable=not self.config.verbose) as progress:
            while self.state is State.ITERATING:
                self.refit(colors, labeling)
                model.update_unary(self.fg_mixture, self.bg_mixture)

                result = self.solver.solve(model, labeling)
                labeling, energy = result.labeling, result.energy
                history.append(energy)
                iteration += 1
                progress.update(1)

                # The first pass has no previous energy to compare with
                if energy_prev is None:
                    logger.info("Iteration %d: E = %.2f", iteration, energy)
                else:
                    delta = relative_energy_change(energy_prev, energy)
                    logger.info("Iteration %d: E = %.2f, dE = %.4f%% (threshold: %.4f%%)",
                                iteration, energy, delta * 100, self.config.convergence_threshold * 100)
                    if delta < self.config.convergence_threshold:
                        self.state = State.CONVERGED

                if self.state is State.ITERATING and iteration >= self.config.max_iterations:
                    self.state = State.MAX_ITERATIONS_REACHED

                if on_iteration is not None:
                    on_iteration(iteration, labeling, energy)

                energy_prev = energy

        if self.state is State.MAX_ITERATIONS_REACHED:
            logger.warning("Maximum iterations (%d) reached without convergence", self.config.max_iterations)

        result = GrabCutResult(
            labeling=labeling,
            energy=energy,
            n_iterations=iteration,
            termination=self.state,
            shape=(h, w),
            energy_history=history,
        )
        logger.info("GrabCut finished (%s) after %d iterations, E = %.2f, foreground pixels: %d (%.1f%%)",
                    result.termination.value, result.n_iterations, result.energy,
                    result.n_foreground, 100 * result.foreground_fraction)
        return result


def segment(image, unknown_mask, gamma, **options) -> GrabCutResult:
    """
    One-call interface: segment(image, mask, gamma=50, n_gaussians=5, max_iterations=10, ...)
    """
    return GrabCut(GrabCutConfig(gamma=gamma, **options)).segment(image, unknown_mask)


def _check_trimap(image, unknown_mask):
    if image.ndim != 3 or image.shape[2] != 3:
        raise InvalidInput("Expected an image of shape (h, w, 3), got %s" % (image.shape,))
    if image.shape[0] < 1 or image.shape[1] < 1:
        raise InvalidInput("Image is empty")
    if not np.issubdtype(image.dtype, np.number) or not np.all(np.isfinite(image)):
        raise InvalidInput("Image must contain finite numbers only")

    unknown_mask = np.asarray(unknown_mask)
    if unknown_mask.shape != image.shape[:2]:
        raise InvalidInput("Mask shape %s does not match image shape %s" % (unknown_mask.shape, image.shape[:2]))
    if unknown_mask.dtype != bool:
        if not np.all((unknown_mask == 0) | (unknown_mask == 1)):
            raise InvalidInput("Unknown mask must be boolean")
        unknown_mask = unknown_mask.astype(bool)

    if not np.any(unknown_mask):
        raise InvalidInput("Unknown region is empty")
    if np.all(unknown_mask):
        raise InvalidInput("Unknown region covers the whole image, no background to learn from")
    return unknown_mask
