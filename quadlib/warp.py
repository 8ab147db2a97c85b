"""
Image operations used by the correction pipeline.

The pipeline talks to two capabilities:

- ``PerspectiveWarp.warp(image, top_left, top_right, bottom_left, bottom_right)``
  with corners given in cartesian convention (origin bottom-left, y up)
- ``Thresholder.threshold(image)`` returning a grayscale image

OpenCV-backed implementations of both live here; any object with the same
method can be passed to the pipeline instead.
"""

import logging
from typing import Protocol

import cv2
import numpy as np


class DegenerateRegionError(ValueError):
    """The region to warp encloses no usable area"""


class PerspectiveWarp(Protocol):
    def warp(self, image, top_left, top_right, bottom_left, bottom_right):
        ...


class Thresholder(Protocol):
    def threshold(self, image):
        ...


def output_dimensions(tl, tr, br, bl):
    """
    Size of the rectified output from the corner distances.

    Opposing sides are averaged, so a trapezoid comes out at its mean width
    and mean height.

    Returns:
        tuple: (width, height) in whole pixels
    """
    top_width = np.hypot(tr[0] - tl[0], tr[1] - tl[1])
    bottom_width = np.hypot(br[0] - bl[0], br[1] - bl[1])
    left_height = np.hypot(bl[0] - tl[0], bl[1] - tl[1])
    right_height = np.hypot(br[0] - tr[0], br[1] - tr[1])

    avg_width = (top_width + bottom_width) / 2.0
    avg_height = (left_height + right_height) / 2.0

    return int(round(avg_width)), int(round(avg_height))


class OpenCVPerspectiveWarp:
    """
    Perspective correction with cv2.getPerspectiveTransform / warpPerspective.

    Corners come in cartesian convention for an image of the same height as
    the one being warped; they are converted back to pixel rows before the
    homography is solved.
    """

    def __init__(self, interpolation=cv2.INTER_LINEAR, border_value=0):
        self.interpolation = interpolation
        self.border_value = border_value

    def warp(self, image, top_left, top_right, bottom_left, bottom_right):
        """
        Warp the region bounded by the four corners into an upright rectangle.

        Args:
            image: numpy array (H, W) or (H, W, C)
            top_left, top_right, bottom_left, bottom_right: (x, y) in
                cartesian space of ``image``

        Returns:
            numpy array holding the rectified region

        Raises:
            DegenerateRegionError: if the corners do not span a warpable area
        """
        height = image.shape[0]

        def to_pixel(point):
            x, y = point
            return [float(x), float(height - y)]

        rect = np.array([to_pixel(top_left), to_pixel(top_right),
                         to_pixel(bottom_right), to_pixel(bottom_left)], dtype="float32")
        if not np.isfinite(rect).all():
            raise DegenerateRegionError("Corner coordinates are not finite")

        (tl, tr, br, bl) = rect
        output_width, output_height = output_dimensions(tl, tr, br, bl)
        logging.debug(f"Warp output extent: {output_width}x{output_height}px")
        if output_width < 1 or output_height < 1:
            raise DegenerateRegionError(
                f"Warp output extent is empty ({output_width}x{output_height}px)")

        # Collinear corners have extent but no area; the homography is undefined
        region_area = abs(cv2.contourArea(rect))
        if region_area < 1.0:
            raise DegenerateRegionError(f"Region encloses no area ({region_area:.2f}px)")

        dst = np.array([
            [0, 0],
            [output_width - 1, 0],
            [output_width - 1, output_height - 1],
            [0, output_height - 1]], dtype="float32")

        try:
            M = cv2.getPerspectiveTransform(rect, dst)
        except cv2.error as e:
            raise DegenerateRegionError(f"Cannot solve perspective transform: {e}") from e

        if not np.isfinite(M).all() or abs(np.linalg.det(M)) < 1e-12:
            raise DegenerateRegionError("Perspective transform is singular")

        warped = cv2.warpPerspective(image, M, (output_width, output_height),
                                     flags=self.interpolation,
                                     borderMode=cv2.BORDER_CONSTANT,
                                     borderValue=self.border_value)
        if warped is None or warped.size == 0:
            raise DegenerateRegionError("Perspective warp produced an empty image")
        return warped


class AdaptiveThreshold:
    """
    Adaptive thresholding for a crisp black-and-white scan.

    Each pixel is compared against a weighted mean of its neighbourhood, which
    copes with uneven lighting across a photographed page.
    """

    METHODS = {
        "gaussian": cv2.ADAPTIVE_THRESH_GAUSSIAN_C,
        "mean": cv2.ADAPTIVE_THRESH_MEAN_C,
    }

    def __init__(self, block_size=21, offset=10, method="gaussian"):
        """
        Initialize the thresholder.

        Args:
            block_size: Neighbourhood size in pixels (odd, >= 3)
            offset: Constant subtracted from the neighbourhood mean
            method: "gaussian" or "mean" weighting
        """
        if block_size < 3 or block_size % 2 == 0:
            raise ValueError(f"block_size must be an odd number >= 3, got {block_size}")
        if method not in self.METHODS:
            raise ValueError(f"method must be one of {sorted(self.METHODS)}, got {method!r}")
        self.block_size = block_size
        self.offset = offset
        self.method = method

    def threshold(self, image):
        if image.ndim == 3:
            if image.shape[2] == 4:
                gray = cv2.cvtColor(image, cv2.COLOR_RGBA2GRAY)
            else:
                gray = cv2.cvtColor(image, cv2.COLOR_RGB2GRAY)
        else:
            gray = image

        if gray.dtype != np.uint8:
            gray = cv2.normalize(gray, None, 0, 255, cv2.NORM_MINMAX).astype(np.uint8)

        return cv2.adaptiveThreshold(gray, 255, self.METHODS[self.method],
                                     cv2.THRESH_BINARY, self.block_size, self.offset)
