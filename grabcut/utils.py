import numpy as np
import matplotlib.pyplot as plt

from grabcut.errors import InvalidInput

BACKGROUND = 0
FOREGROUND = 1

# Overlay colours used by the GUI
FOREGROUND_RGBA = (0, 0, 255, 255)	# blue
BACKGROUND_RGBA = (255, 0, 0, 255)	# red
RECT_RGBA = (0, 255, 0, 255)


def flatten_image(image):
    """
    :param image: numpy array of shape (h, w, 3)
    :return: (h * w, 3) float64 array of colours, row-major pixel order
    """
    image = np.asarray(image)
    if image.ndim != 3 or image.shape[2] != 3:
        raise InvalidInput("Expected an image of shape (h, w, 3), got %s" % (image.shape,))
    return image.reshape(-1, 3).astype(np.float64)


def unflatten_image(colors, shape):
    """
    :param colors: (h * w, 3) array produced by flatten_image
    :param shape: (h, w) of the original image
    :return: (h, w, 3) array
    """
    h, w = shape[:2]
    return np.asarray(colors).reshape(h, w, 3)


def rect_to_trimap(shape, rect):
    """
    Turns a user rectangle into the unknown mask of a trimap. Everything outside is definite background.
    :param shape: image shape, only (h, w) is used
    :param rect: (x, y, width, height), clipped to the image
    :return: boolean (h, w) array, True inside the rectangle
    """
    h, w = shape[:2]
    x, y, rw, rh = [int(round(v)) for v in rect]
    if rw < 0:
        x, rw = x + rw, -rw
    if rh < 0:
        y, rh = y + rh, -rh

    x_min, y_min = max(x, 0), max(y, 0)
    x_max, y_max = min(x + rw, w), min(y + rh, h)

    unknown = np.zeros((h, w), dtype=bool)
    if x_max > x_min and y_max > y_min:
        unknown[y_min:y_max, x_min:x_max] = True
    return unknown


def composite_foreground(image, labeling, matte=255):
    """
    :param image: (h, w, 3) image
    :param labeling: flat or (h, w) labeling, FOREGROUND / BACKGROUND
    :param matte: colour given to background pixels
    :return: copy of the image with background pixels replaced by the matte colour
    """
    image = np.asarray(image)
    labels = np.asarray(labeling).reshape(image.shape[:2])
    result = image.copy()
    result[labels == BACKGROUND] = matte
    return result


def label_overlay(labeling, shape):
    """
    :return: (h, w, 3) uint8 image, blue where foreground and red where background
    """
    labels = np.asarray(labeling).reshape(shape[:2])
    is_fg = labels == FOREGROUND
    blue = is_fg * 255
    red = (1 - is_fg) * 255
    return np.dstack([red, np.zeros(shape[:2]), blue]).astype(np.uint8)


def plot_progress(image, iteration, labeling, energy, matte=255):
    """
    Displays the intermediate result of one iteration. Bound to an image with functools.partial it is an `on_iteration` observer.
    """
    plt.figure("GrabCut")
    plt.clf()
    plt.imshow(composite_foreground(image, labeling, matte).astype(np.uint8))
    plt.title("GrabCut iteration %d - Energy: %.2f" % (iteration, energy))
    plt.axis("off")
    plt.pause(0.001)
