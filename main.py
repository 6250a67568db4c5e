import argparse
import logging
from functools import partial

import cv2
import numpy as np

import grabcut as gc


def make_config(args):
	return gc.GrabCutConfig(
		gamma=args.gamma,
		n_gaussians=args.gaussians,
		convergence_threshold=args.threshold,
		max_iterations=args.iter,
		verbose=True,
	)


def perform_image_segmentation(image, unknown_mask, args):
	"""
	:param image: (h, w, 3) RGB image
	:param unknown_mask: boolean (h, w) array, True inside the selected box
	:return: (h, w, 3) overlay, blue where foreground and red where background
	"""
	config = make_config(args)
	on_iteration = partial(gc.plot_progress, image) if args.show_progress else None
	result = gc.GrabCut(config).segment(image, unknown_mask, on_iteration=on_iteration)
	return gc.label_overlay(result.labeling, image.shape)


def run_headless(args):
	img = cv2.imread(args.input)
	if img is None:
		raise FileNotFoundError(args.input + " not found!")
	img = cv2.cvtColor(img, cv2.COLOR_BGR2RGB)

	unknown_mask = gc.rect_to_trimap(img.shape, args.rect)
	config = make_config(args)
	on_iteration = partial(gc.plot_progress, img) if args.show_progress else None
	result = gc.GrabCut(config).segment(img, unknown_mask, on_iteration=on_iteration)

	# Background set to white
	out = gc.composite_foreground(img, result.labeling, matte=255).astype(np.uint8)
	cv2.imwrite(args.output, cv2.cvtColor(out, cv2.COLOR_RGB2BGR))
	logging.info("Saved %s (%s after %d iterations)", args.output, result.termination.value, result.n_iterations)


def _cli():
	p = argparse.ArgumentParser(description="GrabCut foreground extraction from a bounding box")
	p.add_argument("input", nargs="?", help="input image path, headless mode only")
	p.add_argument("output", nargs="?", default="output.png", help="output image path [output.png]")
	p.add_argument("--rect", nargs=4, type=int, metavar=("x", "y", "w", "h"),
				   help="box around the object; without it the interactive window opens")
	p.add_argument("--gamma", type=float, default=50.0, help="smoothness weight [50]")
	p.add_argument("--gaussians", type=int, default=5, help="gaussians per colour model [5]")
	p.add_argument("--threshold", type=float, default=1e-4, help="relative energy change to stop at [1e-4]")
	p.add_argument("--iter", type=int, default=10, help="maximum number of iterations [10]")
	p.add_argument("--show-progress", action="store_true", help="plot the result after every iteration")
	p.add_argument("--log-level", default="info", help="logging level [info]")
	args = p.parse_args()

	logging.basicConfig(
		level=getattr(logging, args.log_level.upper(), logging.INFO),
		format="%(asctime)s %(levelname)s %(name)s: %(message)s",
	)

	if args.rect is not None:
		if args.input is None:
			p.error("an input image is required with --rect")
		run_headless(args)
	else:
		from grabcut.gui.gui import Gui
		gui = Gui(segmentation_function=partial(perform_image_segmentation, args=args))
		gui.start(args.input)


if __name__ == "__main__":
	_cli()
