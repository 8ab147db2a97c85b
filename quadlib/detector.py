"""
RectangleDetector - finds a document-shaped quadrilateral in an image.

This is the detection collaborator of the scanner: it supplies an optional
screen-space Quadrilateral in the pixel space of the image it was given,
either directly or through a callback fired later from a worker thread.
"""

import logging
import threading

import cv2
import numpy as np

from .quadrilateral import Quadrilateral


class RectangleDetector:
    """
    Detects a document outline using edge detection and contour analysis.

    Works for light documents on dark backgrounds and the reverse. Candidate
    outlines are simplified to four vertices; the largest one that is neither
    tiny nor the image border wins.
    """

    def __init__(self, min_area_ratio=0.05, max_area_ratio=0.95,
                 epsilon_factors=(0.02, 0.03, 0.04, 0.05), max_candidates=20):
        """
        Initialize the detector.

        Args:
            min_area_ratio: Smallest accepted quad, as a fraction of the image area
            max_area_ratio: Largest accepted quad (larger is taken for the image border)
            epsilon_factors: Polygon simplification tolerances to try, as
                             fractions of the contour perimeter
            max_candidates: Number of largest contours examined
        """
        self.min_area_ratio = min_area_ratio
        self.max_area_ratio = max_area_ratio
        self.epsilon_factors = tuple(epsilon_factors)
        self.max_candidates = max_candidates

    def detect(self, image):
        """
        Detect the document rectangle in an image.

        Args:
            image: numpy array in RGB (or grayscale) format

        Returns:
            Quadrilateral in image pixel coordinates, or None if nothing was found
        """
        if image is None:
            return None

        try:
            edges = self._edge_map(image)
            corners = self._find_quad(edges)
        except cv2.error as e:
            logging.error(f"Rectangle detection failed: {e}")
            return None

        if corners is None:
            logging.info("No rectangle detected")
            return None

        quad = Quadrilateral.from_points(corners)
        logging.info(f"Detected rectangle {quad}")
        return quad

    def detect_async(self, image, callback):
        """
        Detect on a worker thread and report through callback(quad_or_none).

        The callback fires from the worker thread whenever detection
        finishes; callers must not assume it has run by any particular time.

        Returns:
            The started threading.Thread
        """
        def run():
            quad = self.detect(image)
            try:
                callback(quad)
            except Exception:
                logging.exception("Rectangle detection callback failed")

        worker = threading.Thread(target=run, name="rectangle-detector", daemon=True)
        worker.start()
        return worker

    def _edge_map(self, image):
        if image.ndim == 3:
            gray = cv2.cvtColor(image, cv2.COLOR_RGB2GRAY)
        else:
            gray = image
        blurred = cv2.GaussianBlur(gray, (5, 5), 0)

        # Dark backgrounds get fixed thresholds, light ones median-relative
        median = np.median(blurred)
        if median < 100:
            lower, upper = 50, 150
        else:
            lower = int(max(0, 0.66 * median))
            upper = int(min(255, 1.33 * median))
        logging.debug(f"Canny thresholds {lower}-{upper} (median {median:.0f})")

        edges = cv2.Canny(blurred, lower, upper, apertureSize=3)
        kernel = np.ones((3, 3), np.uint8)
        return cv2.dilate(edges, kernel, iterations=1)

    def _find_quad(self, edges):
        h, w = edges.shape[:2]
        image_area = float(h * w)
        border_threshold = min(h, w) * 0.02

        contours, _ = cv2.findContours(edges, cv2.RETR_LIST, cv2.CHAIN_APPROX_SIMPLE)
        contours = sorted(contours, key=cv2.contourArea, reverse=True)

        for contour in contours[:self.max_candidates]:
            peri = cv2.arcLength(contour, True)

            for epsilon_factor in self.epsilon_factors:
                approx = cv2.approxPolyDP(contour, epsilon_factor * peri, True)
                if len(approx) != 4:
                    continue

                area = cv2.contourArea(approx)
                if not (self.min_area_ratio * image_area < area < self.max_area_ratio * image_area):
                    continue

                corners = approx.reshape(4, 2).astype(float)
                if self._is_image_border(corners, w, h, border_threshold):
                    continue

                return [(float(x), float(y)) for x, y in corners]

        return None

    @staticmethod
    def _is_image_border(corners, width, height, margin):
        """True when every corner sits in a corner of the image"""
        at_corner = 0
        for x, y in corners:
            near_x = x < margin or x > width - margin
            near_y = y < margin or y > height - margin
            if near_x and near_y:
                at_corner += 1
        return at_corner >= 4
