import logging
from dataclasses import dataclass
from typing import List

import numpy as np

from grabcut.errors import InvalidInput

logger = logging.getLogger(__name__)

# Diagonal floor added to every fitted covariance
MIN_VARIANCE = 1e-6
# Covariance used when a component holds a single sample
SINGLE_SAMPLE_VARIANCE = 1e-3

LOG_2PI = np.log(2 * np.pi)


@dataclass
class GaussianComponent:
    weight: float
    mean: np.ndarray
    covariance: np.ndarray


class GaussianMixture:
    """
    Ordered list of gaussian components modelling the colours of one region.
    The position of a component in the list is its identity and the tie-break order of `assign`.
    """

    def __init__(self, components: List[GaussianComponent]):
        if len(components) == 0:
            raise InvalidInput("A gaussian mixture needs at least one component")
        self.components = list(components)

    def __len__(self):
        return len(self.components)

    def __iter__(self):
        return iter(self.components)

    def __getitem__(self, k):
        return self.components[k]

    @property
    def weights(self) -> np.ndarray:
        return np.array([c.weight for c in self.components])

    def negative_log_likelihoods(self, samples) -> np.ndarray:
        """
        :param samples: (n, 3) colours
        :return: (n, k) matrix, -log(N(x; mu_k, Sigma_k)) - log(pi_k) for every sample and component
        """
        samples = _check_samples(samples)
        nll = np.empty((samples.shape[0], len(self.components)))

        for k, comp in enumerate(self.components):
            diff = samples - comp.mean[np.newaxis, :]
            inv_sigma = np.linalg.inv(comp.covariance)
            _, log_det = np.linalg.slogdet(comp.covariance)
            mahalanobis = np.einsum("ni,ij,nj->n", diff, inv_sigma, diff)
            log_density = -0.5 * (3 * LOG_2PI + log_det + mahalanobis)
            nll[:, k] = -log_density - np.log(comp.weight)

        return nll

    def min_negative_log_likelihood(self, samples) -> np.ndarray:
        """
        :return: (n,) best component score of each sample, the unary data cost for this region
        """
        return np.min(self.negative_log_likelihoods(samples), axis=1)


def fit(samples, component_id) -> GaussianMixture:
    """
    Fits one gaussian per distinct component id (hard assignments, no EM).
    :param samples: (n, 3) colours
    :param component_id: (n,) positive integer ids, components are ordered by increasing id
    :return: GaussianMixture with as many components as distinct ids
    """
    samples = _check_samples(samples)
    component_id = np.asarray(component_id)

    n_total = samples.shape[0]
    if n_total == 0:
        raise InvalidInput("Cannot fit a gaussian mixture on zero samples")
    if component_id.ndim != 1 or component_id.shape[0] != n_total:
        raise InvalidInput("Expected %d component ids, got shape %s" % (n_total, component_id.shape))
    if not np.issubdtype(component_id.dtype, np.integer):
        if not np.all(np.mod(component_id, 1) == 0):
            raise InvalidInput("Component ids must be integers")
        component_id = component_id.astype(np.int64)
    if np.any(component_id <= 0):
        raise InvalidInput("Component ids must be positive")

    components = []
    for cid in np.unique(component_id):
        pts = samples[component_id == cid]
        n_pts = pts.shape[0]

        if n_pts > 1:
            # np.cov normalises by n - 1
            sigma = np.cov(pts.T) + MIN_VARIANCE * np.eye(3)
        else:
            logger.debug("Component %d holds a single sample, using %g * I", cid, SINGLE_SAMPLE_VARIANCE)
            sigma = SINGLE_SAMPLE_VARIANCE * np.eye(3)

        components.append(GaussianComponent(
            weight=n_pts / n_total,
            mean=np.mean(pts, axis=0),
            covariance=sigma,
        ))

    return GaussianMixture(components)


def assign(samples, mixture: GaussianMixture) -> np.ndarray:
    """
    Hard-assigns every sample to its most probable component.
    :return: (n,) ids in [1..k], ties go to the lowest index
    """
    nll = mixture.negative_log_likelihoods(samples)
    # argmin returns the first minimum
    return np.argmin(nll, axis=1) + 1


def _check_samples(samples) -> np.ndarray:
    samples = np.asarray(samples, dtype=np.float64)
    if samples.ndim != 2 or samples.shape[1] != 3:
        raise InvalidInput("Expected colour samples of shape (n, 3), got %s" % (samples.shape,))
    if not np.all(np.isfinite(samples)):
        raise InvalidInput("Colour samples contain non-finite values")
    return samples
