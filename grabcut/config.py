"""Run configuration for the iterative segmentation."""

from __future__ import annotations

import math
import numbers
from dataclasses import dataclass

from grabcut.errors import InvalidInput


@dataclass
class GrabCutConfig:
    """Tunable parameters of the optimization controller."""

    # Pairwise smoothness scale, typically 20-50
    gamma: float

    # Gaussians per colour model (foreground and background each)
    n_gaussians: int = 5

    # Stop when the relative energy decrease drops below this
    convergence_threshold: float = 1e-4
    max_iterations: int = 10

    # Show a tqdm progress bar over iterations
    verbose: bool = False

    # Seed and restarts of the k-means initialisation
    random_state: int | None = 0
    kmeans_n_init: int = 5

    def __post_init__(self) -> None:
        if isinstance(self.gamma, bool) or not isinstance(self.gamma, numbers.Real):
            raise InvalidInput("gamma must be a number, got %r" % (self.gamma,))
        if not math.isfinite(self.gamma) or self.gamma <= 0:
            raise InvalidInput("gamma must be positive and finite, got %r" % (self.gamma,))
        _require_positive_int("n_gaussians", self.n_gaussians)
        _require_positive_int("max_iterations", self.max_iterations)
        _require_positive_int("kmeans_n_init", self.kmeans_n_init)
        if not math.isfinite(self.convergence_threshold) or self.convergence_threshold <= 0:
            raise InvalidInput(
                "convergence_threshold must be positive, got %r" % (self.convergence_threshold,))


def _require_positive_int(name: str, value) -> None:
    if isinstance(value, bool) or not isinstance(value, numbers.Integral) or value <= 0:
        raise InvalidInput("%s must be a positive integer, got %r" % (name, value))
