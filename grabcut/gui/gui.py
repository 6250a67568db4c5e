import sys
import os
import logging
import pygame
import numpy as np

from grabcut.errors import InvalidInput
from grabcut.utils import RECT_RGBA, rect_to_trimap

logger = logging.getLogger(__name__)


RECT_WIDTH = 2


class Gui:
	"""
	Rectangle selection front-end. Drag a box around the object with the left mouse button,
	press Enter to segment, R to start over.
	"""
	def __init__(self, segmentation_function, base_path="images/"):
		self.segmentation_function = segmentation_function
		self.base_path = base_path

		self.source_image = None
		self.selection = None
		self.results = None
		self.image_size = None

		self.resized_image = None
		self.resized_selection = None
		self.resized_results = None

		self.screen = None
		self.screen_size = None
		self.font = None

		self.image_position = (0, 0)
		self.image_zoom = 1

		self.drag_start = None
		self.rect = None


	def update_screen(self, size_changed, draw_changed):
		im_w, im_h = self.image_size
		sc_w, sc_h = self.screen_size

		w_ratio = im_w / sc_w
		h_ratio = im_h / sc_h
		self.image_zoom = max(w_ratio, h_ratio)

		new_w = int(im_w / self.image_zoom)
		new_h = int(im_h / self.image_zoom)

		self.image_position = ((sc_w - new_w) // 2, (sc_h - new_h) // 2)

		if size_changed:
			self.resized_image = pygame.transform.scale(self.source_image, (new_w, new_h))
			self.resized_results = pygame.transform.scale(self.results, (new_w, new_h))

		if size_changed or draw_changed:
			self.resized_selection = pygame.transform.scale(self.selection, (new_w, new_h))
			self.screen.fill((0, 0, 0))
			self.screen.blit(self.resized_image, self.image_position)
			self.screen.blit(self.resized_results, self.image_position)
			self.screen.blit(self.resized_selection, self.image_position)

			txt = "Enter: segment   R: reset" if self.rect is None else "Box: %d %d %d %d" % self.rect
			self.screen.blit(self.font.render(txt, True, (255, 255, 255)), (10, 10))


	def reset(self):
		self.selection = pygame.Surface(self.image_size, pygame.SRCALPHA)
		self.selection.fill((0, 0, 0, 0))
		self.results = pygame.Surface(self.image_size, pygame.SRCALPHA)
		self.results.fill((0, 0, 0, 0))
		self.rect = None


	def draw_rect(self, x0, y0, x1, y1):
		"""
		Stores the box as (x, y, width, height) in image coordinates and draws it on the selection layer
		"""
		self.rect = (min(x0, x1), min(y0, y1), abs(x1 - x0), abs(y1 - y0))
		self.selection.fill((0, 0, 0, 0))
		pygame.draw.rect(self.selection, RECT_RGBA, pygame.Rect(*self.rect), RECT_WIDTH)


	def run_segmentation(self):
		if self.rect is None:
			logger.warning("Draw a box around the object first")
			return

		# pygame arrays are (w, h, 3)
		np_image = pygame.surfarray.array3d(self.source_image).swapaxes(0, 1)
		unknown_mask = rect_to_trimap(np_image.shape, self.rect)
		if not np.any(unknown_mask) or np.all(unknown_mask):
			logger.warning("Box %s leaves nothing to segment, draw it inside the image", self.rect)
			return

		# Apply segmentation function
		try:
			np_results = self.segmentation_function(np_image, unknown_mask)
		except InvalidInput as e:
			logger.warning("Segmentation skipped: %s", e)
			return

		# Use results from segmentation method above
		rgb_results = pygame.surfarray.pixels3d(self.results)
		alpha_results = pygame.surfarray.pixels_alpha(self.results)
		rgb_results[:, :, :] = np_results.swapaxes(0, 1)
		alpha_results[:, :] = (np.sum(np_results, axis=2) > 0).swapaxes(0, 1) * 128
		del rgb_results
		del alpha_results


	def choose_file(self, file_name):
		if file_name is not None:
			if os.path.exists(file_name):
				return file_name
			if os.path.exists(self.base_path + file_name):
				return self.base_path + file_name

		saved = [f for f in os.listdir(self.base_path) if f.endswith(('.png', '.jpg', '.jpeg'))]
		if len(saved) == 0:
			raise FileNotFoundError("No image found in " + self.base_path)
		if len(saved) == 1:
			return self.base_path + saved[0]

		while True:
			for i, s in enumerate(saved):
				print('- [' + str(i) + '] ' + s)
			ans = input("Chose an image: ")
			try:
				ans = int(ans)
				assert (0 <= ans < len(saved))
				return self.base_path + saved[ans]
			except (ValueError, AssertionError):
				pass


	def start(self, file_name=None):
		# --- LOADING THE IMAGE ---
		file_name = self.choose_file(file_name)
		self.source_image = pygame.image.load(file_name)
		self.image_size = (self.source_image.get_width(), self.source_image.get_height())

		# --- INITIALIZING PYGAME ---
		pygame.init()
		screen_info = pygame.display.Info()
		self.screen_size = (screen_info.current_w // 2, screen_info.current_h // 2)

		self.screen = pygame.display.set_mode(self.screen_size, pygame.RESIZABLE)
		clock = pygame.time.Clock()
		self.font = pygame.font.SysFont('consolas', 20, True)

		self.reset()

		# --- MAIN LOOP ---
		while 1:
			size_changed = False
			draw_changed = False

			cursor_x, cursor_y = pygame.mouse.get_pos()
			cursor_x = int((cursor_x - self.image_position[0]) * self.image_zoom)
			cursor_y = int((cursor_y - self.image_position[1]) * self.image_zoom)

			# --- EVENTS ---
			for event in pygame.event.get():
				if event.type == pygame.QUIT:
					pygame.quit()
					sys.exit()
				if event.type == pygame.KEYDOWN:
					if event.key in [pygame.K_KP_ENTER, pygame.K_RETURN]:
						self.run_segmentation()
						size_changed = True
						draw_changed = True
					if event.key == pygame.K_r:
						self.reset()
						size_changed = True

				if event.type == pygame.MOUSEBUTTONDOWN and event.button == 1:
					self.drag_start = (cursor_x, cursor_y)
				if event.type == pygame.MOUSEBUTTONUP and event.button == 1:
					self.drag_start = None

				if event.type == pygame.VIDEORESIZE:
					self.screen_size = (event.w, event.h)
					self.screen = pygame.display.set_mode(self.screen_size, pygame.RESIZABLE)
					size_changed = True

			# --- DRAWING ---
			if self.drag_start is not None:
				self.draw_rect(*self.drag_start, cursor_x, cursor_y)
				draw_changed = True

			# --- UPDATING SCREEN ---
			self.update_screen(size_changed, draw_changed)
			pygame.display.flip()
			clock.tick(120)
