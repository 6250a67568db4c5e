"""Shared test fixtures: small synthetic images and trimaps."""

from __future__ import annotations

import numpy as np
import pytest

from grabcut.utils import rect_to_trimap


DARK = (50, 50, 50)
REDDISH = (200, 100, 100)

# Box of the two-block image, (x, y, w, h)
BLOCK_RECT = (10, 15, 20, 20)


@pytest.fixture
def uniform_image():
    """10x10 image of a single colour."""
    image = np.zeros((10, 10, 3), dtype=np.float64)
    image[:, :] = (120, 80, 40)
    return image


@pytest.fixture
def uniform_mask():
    """Rows and columns 3 to 7 inclusive."""
    mask = np.zeros((10, 10), dtype=bool)
    mask[3:8, 3:8] = True
    return mask


@pytest.fixture
def two_block_image():
    """50x40 reddish image with a dark block exactly where BLOCK_RECT lies."""
    image = np.zeros((50, 40, 3), dtype=np.float64)
    image[:, :] = REDDISH
    x, y, w, h = BLOCK_RECT
    image[y:y + h, x:x + w] = DARK
    return image


@pytest.fixture
def two_block_mask(two_block_image):
    return rect_to_trimap(two_block_image.shape, BLOCK_RECT)


@pytest.fixture
def noisy_object():
    """30x30 noisy background with a noisy bright square inside a slightly larger box."""
    rng = np.random.default_rng(0)
    image = rng.normal(60, 12, size=(30, 30, 3))
    image[10:20, 10:20] = rng.normal(190, 12, size=(10, 10, 3))
    image = np.clip(image, 0, 255)

    mask = np.zeros((30, 30), dtype=bool)
    mask[7:23, 7:23] = True
    return image, mask


@pytest.fixture
def small_noisy_image():
    """4x4 random image, small enough to enumerate every labeling of a 3x3 region."""
    rng = np.random.default_rng(3)
    return rng.uniform(0, 255, size=(4, 4, 3))
