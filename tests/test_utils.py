"""Tests for layout helpers, trimap construction and compositing."""

import numpy as np
import pytest

from grabcut.errors import InvalidInput
from grabcut.utils import (
    BACKGROUND, FOREGROUND, flatten_image, unflatten_image, rect_to_trimap, composite_foreground, label_overlay,
)


@pytest.mark.parametrize("shape", [(1, 1), (1, 7), (5, 1), (4, 6), (13, 9)])
def test_flatten_round_trip(shape):
    rng = np.random.default_rng(1)
    image = rng.uniform(0, 255, size=shape + (3,))
    colors = flatten_image(image)
    assert colors.shape == (shape[0] * shape[1], 3)
    np.testing.assert_array_equal(unflatten_image(colors, shape), image)


def test_flatten_is_row_major():
    image = np.arange(2 * 3 * 3).reshape(2, 3, 3)
    colors = flatten_image(image)
    np.testing.assert_array_equal(colors[1], image[0, 1])
    np.testing.assert_array_equal(colors[3], image[1, 0])


def test_flatten_rejects_wrong_shape():
    with pytest.raises(InvalidInput):
        flatten_image(np.zeros((4, 4)))


def test_rect_to_trimap():
    mask = rect_to_trimap((10, 12), (2, 3, 4, 5))
    assert mask.shape == (10, 12)
    assert mask.sum() == 20
    assert mask[3:8, 2:6].all()


def test_rect_to_trimap_clips_to_image():
    mask = rect_to_trimap((10, 10), (-5, 8, 8, 10))
    assert mask.sum() == 3 * 2
    assert mask[8:10, 0:3].all()


def test_rect_outside_image_is_empty():
    assert not rect_to_trimap((10, 10), (20, 20, 5, 5)).any()


def test_composite_foreground_sets_matte():
    image = np.full((2, 2, 3), 7, dtype=np.uint8)
    labeling = np.array([FOREGROUND, BACKGROUND, BACKGROUND, FOREGROUND], dtype=np.uint8)
    out = composite_foreground(image, labeling, matte=255)
    assert (out[0, 0] == 7).all()
    assert (out[0, 1] == 255).all()
    assert (out[1, 1] == 7).all()
    # Input untouched
    assert (image == 7).all()


def test_label_overlay_colours():
    overlay = label_overlay(np.array([FOREGROUND, BACKGROUND]), (1, 2))
    np.testing.assert_array_equal(overlay[0, 0], [0, 0, 255])
    np.testing.assert_array_equal(overlay[0, 1], [255, 0, 0])
