"""Tests for gaussian mixture fitting and hard component assignment."""

import numpy as np
import pytest

from grabcut.errors import InvalidInput
from grabcut.image_processing.gmm import (
    GaussianComponent, GaussianMixture, fit, assign, MIN_VARIANCE, SINGLE_SAMPLE_VARIANCE,
)


def _two_clusters(n=40, seed=0):
    rng = np.random.default_rng(seed)
    a = rng.normal((30, 40, 50), 5, size=(n, 3))
    b = rng.normal((200, 180, 160), 8, size=(n, 3))
    samples = np.vstack([a, b])
    ids = np.array([1] * n + [2] * n)
    return samples, ids


def test_fit_weights_means_and_covariances():
    samples, ids = _two_clusters()
    mixture = fit(samples, ids)

    assert len(mixture) == 2
    np.testing.assert_allclose(mixture.weights, [0.5, 0.5])
    np.testing.assert_allclose(mixture[0].mean, samples[:40].mean(axis=0))
    np.testing.assert_allclose(mixture[1].covariance, np.cov(samples[40:].T) + MIN_VARIANCE * np.eye(3))


def test_mixture_invariants():
    rng = np.random.default_rng(5)
    samples = rng.uniform(0, 255, size=(101, 3))
    ids = rng.integers(1, 6, size=101)
    mixture = fit(samples, ids)

    assert abs(mixture.weights.sum() - 1) < 1e-10
    for comp in mixture:
        np.testing.assert_allclose(comp.covariance, comp.covariance.T)
        assert np.all(np.linalg.eigvalsh(comp.covariance) > 0)


def test_single_sample_component_gets_small_isotropic_covariance():
    samples = np.array([[10.0, 20.0, 30.0], [1.0, 1.0, 1.0], [2.0, 2.0, 2.0]])
    mixture = fit(samples, [1, 2, 2])

    np.testing.assert_array_equal(mixture[0].covariance, SINGLE_SAMPLE_VARIANCE * np.eye(3))
    np.testing.assert_array_equal(mixture[0].mean, [10.0, 20.0, 30.0])
    assert mixture[0].weight == pytest.approx(1 / 3)


def test_identical_samples_stay_positive_definite():
    samples = np.tile([[5.0, 5.0, 5.0]], (10, 1))
    mixture = fit(samples, np.ones(10, dtype=int))
    np.testing.assert_allclose(mixture[0].covariance, MIN_VARIANCE * np.eye(3))


def test_component_count_follows_distinct_ids():
    samples, _ = _two_clusters(n=10)
    ids = np.array([3] * 5 + [7] * 15)
    mixture = fit(samples, ids)
    assert len(mixture) == 2
    # Ordered by id
    np.testing.assert_allclose(mixture[0].mean, samples[:5].mean(axis=0))


def test_fit_is_deterministic():
    samples, ids = _two_clusters()
    m1, m2 = fit(samples, ids), fit(samples, ids)
    for c1, c2 in zip(m1, m2):
        np.testing.assert_array_equal(c1.mean, c2.mean)
        np.testing.assert_array_equal(c1.covariance, c2.covariance)
        assert c1.weight == c2.weight


@pytest.mark.parametrize("samples, ids", [
    (np.array([[1.0, np.nan, 2.0], [1.0, 1.0, 1.0]]), [1, 1]),
    (np.array([[1.0, np.inf, 2.0], [1.0, 1.0, 1.0]]), [1, 1]),
    (np.ones((3, 3)), [1, 1]),
    (np.ones((3, 3)), [1, 0, 1]),
    (np.ones((3, 3)), [1, -2, 1]),
    (np.ones((3, 2)), [1, 1, 1]),
    (np.zeros((0, 3)), []),
])
def test_fit_rejects_invalid_input(samples, ids):
    with pytest.raises(InvalidInput):
        fit(samples, ids)


def test_negative_log_likelihood_includes_normalisation():
    mixture = GaussianMixture([GaussianComponent(weight=1.0, mean=np.zeros(3), covariance=np.eye(3))])
    nll = mixture.negative_log_likelihoods(np.zeros((1, 3)))
    assert nll[0, 0] == pytest.approx(1.5 * np.log(2 * np.pi))


def test_negative_log_likelihood_includes_weight():
    mixture = GaussianMixture([
        GaussianComponent(weight=0.25, mean=np.zeros(3), covariance=np.eye(3)),
        GaussianComponent(weight=0.75, mean=np.zeros(3), covariance=np.eye(3)),
    ])
    nll = mixture.negative_log_likelihoods(np.array([[1.0, 2.0, 2.0]]))
    base = 1.5 * np.log(2 * np.pi) + 0.5 * 9
    np.testing.assert_allclose(nll[0], [base - np.log(0.25), base - np.log(0.75)])


def test_assign_picks_closest_component():
    samples, ids = _two_clusters()
    mixture = fit(samples, ids)
    np.testing.assert_array_equal(assign(samples, mixture), ids)


def test_assign_ties_go_to_lowest_index():
    comp = GaussianComponent(weight=0.5, mean=np.ones(3), covariance=np.eye(3))
    mixture = GaussianMixture([comp, GaussianComponent(weight=0.5, mean=np.ones(3), covariance=np.eye(3))])
    labels = assign(np.random.default_rng(0).normal(size=(20, 3)), mixture)
    assert (labels == 1).all()


def test_assign_rejects_non_finite_samples(two_block_image):
    mixture = fit(two_block_image.reshape(-1, 3), np.ones(2000, dtype=int))
    with pytest.raises(InvalidInput):
        assign(np.array([[np.nan, 0.0, 0.0]]), mixture)
