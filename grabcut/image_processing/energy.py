import logging
from dataclasses import dataclass

import numpy as np

from grabcut.errors import InvalidInput
from grabcut.image_processing.gmm import GaussianMixture
from grabcut.utils import BACKGROUND, FOREGROUND

logger = logging.getLogger(__name__)


@dataclass
class PairwiseTerms:
    """
    Smoothness costs over the 4-neighbour edges of the region under optimization.
    edges[e] = (i, j) node indices, costs[e, 2 * label_i + label_j] = cost of that label pair.
    """
    edges: np.ndarray
    costs: np.ndarray
    beta: float
    gamma: float

    def __len__(self):
        return self.edges.shape[0]


def region_edges(region_mask):
    """
    :param region_mask: boolean (h, w) array of the pixels under optimization
    :return: (e, 2) array of node index pairs (right and down neighbours only, both ends inside the region),
    nodes being numbered in row-major order of the region pixels
    """
    region_mask = np.asarray(region_mask, dtype=bool)
    node_index = np.full(region_mask.shape, -1, dtype=np.int64)
    node_index[region_mask] = np.arange(np.count_nonzero(region_mask))

    # Horizontal edges (right neighbours)
    left, right = node_index[:, :-1].ravel(), node_index[:, 1:].ravel()
    hori = (left >= 0) & (right >= 0)

    # Vertical edges (down neighbours)
    top, bottom = node_index[:-1, :].ravel(), node_index[1:, :].ravel()
    vert = (top >= 0) & (bottom >= 0)

    return np.vstack([
        np.column_stack([left[hori], right[hori]]),
        np.column_stack([top[vert], bottom[vert]]),
    ]).astype(np.int64)


def squared_color_distances(colors, edges):
    """
    :param colors: (n, 3) colours of the region nodes
    :param edges: (e, 2) node index pairs
    :return: (e,) squared euclidean colour distance along each edge
    """
    diff = colors[edges[:, 0]] - colors[edges[:, 1]]
    return np.sum(diff ** 2, axis=1)


def compute_beta(sq_dist):
    """
    beta = 1 / (2 * <||c_p - c_q||^2>), averaged over every edge of the region.
    A uniform region has no contrast at all, its mean is floored at machine epsilon which gives a huge but finite beta.
    """
    mean_sq_dist = float(np.mean(sq_dist)) if len(sq_dist) > 0 else 0.0
    if mean_sq_dist <= 0:
        logger.debug("Region has no colour contrast, flooring mean squared distance")
        mean_sq_dist = np.finfo(np.float64).eps
    return 1 / (2 * mean_sq_dist)


def compute_pairwise(image, region_mask, gamma) -> PairwiseTerms:
    """
    :param image: (h, w, 3) image
    :param region_mask: boolean (h, w) array of the pixels under optimization
    :param gamma: smoothness scale
    :return: contrast sensitive pairwise terms V = gamma * [l_p != l_q] * exp(-beta * ||c_p - c_q||^2)
    """
    image = np.asarray(image, dtype=np.float64)
    region_mask = np.asarray(region_mask, dtype=bool)
    colors = image[region_mask]

    edges = region_edges(region_mask)
    sq_dist = squared_color_distances(colors, edges)
    beta = compute_beta(sq_dist)

    smooth = gamma * np.exp(-beta * sq_dist)
    costs = np.zeros((edges.shape[0], 4))
    costs[:, 2 * FOREGROUND + BACKGROUND] = smooth
    costs[:, 2 * BACKGROUND + FOREGROUND] = smooth

    logger.debug("Pairwise terms: %d edges, beta = %g", edges.shape[0], beta)
    return PairwiseTerms(edges=edges, costs=costs, beta=beta, gamma=gamma)


def compute_unary(colors, fg_mixture: GaussianMixture, bg_mixture: GaussianMixture) -> np.ndarray:
    """
    :param colors: (n, 3) colours of the region nodes
    :return: (2, n) data costs, row `label` holding the min negative log-likelihood under that label's mixture
    """
    unary = np.empty((2, len(colors)))
    unary[FOREGROUND] = fg_mixture.min_negative_log_likelihood(colors)
    unary[BACKGROUND] = bg_mixture.min_negative_log_likelihood(colors)
    return unary


def compute_energy(unary, pairwise: PairwiseTerms, labels) -> float:
    """
    :param unary: (2, n) data costs
    :param pairwise: smoothness terms over the same n nodes
    :param labels: (n,) labels of the nodes
    :return: sum of the unary cost of every node plus the pairwise cost of every edge
    """
    labels = np.asarray(labels, dtype=np.int64)
    e_unary = np.sum(unary[labels, np.arange(len(labels))])

    if len(pairwise) == 0:
        return float(e_unary)

    label_i = labels[pairwise.edges[:, 0]]
    label_j = labels[pairwise.edges[:, 1]]
    e_pairwise = np.sum(pairwise.costs[np.arange(len(pairwise)), 2 * label_i + label_j])

    return float(e_unary + e_pairwise)


class EnergyModel:
    """
    Energy of a binary labeling of the unknown region.
    The pairwise terms depend only on the image and are computed once, the unary terms are refreshed
    each time the colour models change.
    """

    def __init__(self, image, unknown_mask, gamma):
        image = np.asarray(image, dtype=np.float64)
        unknown_mask = np.asarray(unknown_mask)

        if image.ndim != 3 or image.shape[2] != 3:
            raise InvalidInput("Expected an image of shape (h, w, 3), got %s" % (image.shape,))
        if unknown_mask.shape != image.shape[:2]:
            raise InvalidInput("Mask shape %s does not match image shape %s" % (unknown_mask.shape, image.shape[:2]))
        if not np.all(np.isfinite(image)):
            raise InvalidInput("Image contains non-finite values")

        self.shape = image.shape[:2]
        self.unknown_mask = unknown_mask.astype(bool)
        # Flat indices (row-major) of the nodes of the graph
        self.region_pixels = np.flatnonzero(self.unknown_mask)
        self.colors = image[self.unknown_mask]

        self.pairwise = compute_pairwise(image, self.unknown_mask, gamma)
        self.unary = None

    @property
    def n_nodes(self):
        return len(self.region_pixels)

    def update_unary(self, fg_mixture, bg_mixture):
        self.unary = compute_unary(self.colors, fg_mixture, bg_mixture)
        return self.unary

    def region_labels(self, labeling):
        """
        :param labeling: flat labeling of the whole image
        :return: labels of the region nodes only
        """
        return np.asarray(labeling)[self.region_pixels]

    def energy(self, region_labels):
        if self.unary is None:
            raise RuntimeError("Unary terms have not been computed yet")
        return compute_energy(self.unary, self.pairwise, region_labels)
