import logging
import warnings

import numpy as np
from sklearn.cluster import KMeans
from sklearn.exceptions import ConvergenceWarning

from grabcut.errors import InvalidInput

logger = logging.getLogger(__name__)


class KMeansClustering:
    """
    Colour clustering used to seed the gaussian mixtures.
    """

    def __init__(self, random_state=0, n_init=5):
        self.random_state = random_state
        self.n_init = n_init

    def cluster(self, samples, n_clusters):
        """
        :param samples: (n, 3) colours
        :param n_clusters: number of clusters k, lowered to n when there are fewer samples
        :return: (n,) component ids in [1..k]
        """
        samples = np.asarray(samples, dtype=np.float64)
        if samples.ndim != 2 or samples.shape[0] == 0:
            raise InvalidInput("Cannot cluster an empty set of samples")
        if n_clusters <= 0:
            raise InvalidInput("Number of clusters must be positive, got %r" % (n_clusters,))

        k = min(n_clusters, samples.shape[0])
        kmeans = KMeans(n_clusters=k, n_init=self.n_init, random_state=self.random_state)

        with warnings.catch_warnings():
            # Raised when there are fewer distinct colours than clusters, empty clusters are fine
            warnings.simplefilter("ignore", category=ConvergenceWarning)
            labels = kmeans.fit_predict(samples)

        logger.debug("Clustered %d samples into %d components", samples.shape[0], len(np.unique(labels)))
        return labels + 1
