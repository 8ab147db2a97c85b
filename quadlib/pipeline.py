"""
Perspective-correction pipeline.

Takes a captured image and a screen-space quadrilateral in that image's pixel
space and produces a ScanResult: the deskewed ("scanned") image plus an
optional adaptive-threshold ("enhanced") variant. A failed correction never
raises; it yields a result without scanned/enhanced images.
"""

import logging
from dataclasses import dataclass, replace
from typing import Optional

import cv2
import numpy as np

from .detector import RectangleDetector
from .geometry import Size
from .image_io import ImageFormatError, as_rgb_array, fix_orientation
from .quadrilateral import CoordinateSpace, Quadrilateral, require_space
from .warp import AdaptiveThreshold, DegenerateRegionError, OpenCVPerspectiveWarp


@dataclass(frozen=True, eq=False)
class ScanResult:
    """
    Outcome of one capture or edit commit.

    Attributes:
        original_image: The captured image, untouched
        scanned_image: Deskewed crop of the detected rectangle, if correction worked
        enhanced_image: Adaptive-threshold grayscale version of scanned_image, if available
        prefers_enhanced: Whether the user chose the enhanced image
        detected_rectangle: Quadrilateral (image pixels, screen space) used for the scan
    """
    original_image: np.ndarray
    scanned_image: Optional[np.ndarray] = None
    enhanced_image: Optional[np.ndarray] = None
    prefers_enhanced: bool = False
    detected_rectangle: Optional[Quadrilateral] = None

    @property
    def is_corrected(self):
        return self.scanned_image is not None

    @property
    def preferred_image(self):
        """The image to show: enhanced if preferred and present, else scanned, else original"""
        if self.prefers_enhanced and self.enhanced_image is not None:
            return self.enhanced_image
        if self.scanned_image is not None:
            return self.scanned_image
        return self.original_image

    def with_preference(self, prefers_enhanced):
        return replace(self, prefers_enhanced=bool(prefers_enhanced))

    @classmethod
    def from_picture(cls, picture, detected_rectangle, view_bounds, corrector=None):
        """
        Build a result for a picture whose rectangle was found in another space.

        The rectangle is aspect-fill scaled from ``view_bounds`` (the size of
        the space it was detected or drawn in) to the picture size before
        correction; the scaled quad is what the result keeps.

        Args:
            picture: Captured image
            detected_rectangle: Screen-space Quadrilateral, or None
            view_bounds: (width, height) of the rectangle's reference space
            corrector: PerspectiveCorrector to use (default settings if None)
        """
        corrector = corrector or PerspectiveCorrector()
        if detected_rectangle is None:
            return cls(original_image=picture)

        require_space(detected_rectangle, CoordinateSpace.SCREEN)
        try:
            picture_size = image_size(picture)
        except ImageFormatError as e:
            logging.error(f"Correction unavailable: {e}")
            return cls(original_image=picture, detected_rectangle=detected_rectangle)

        scaled_quad = detected_rectangle.scale(view_bounds, picture_size)
        return corrector.correct(picture, scaled_quad)


def image_size(image):
    """(width, height) of an image array"""
    image = as_rgb_array(image)
    height, width = image.shape[:2]
    return Size(width, height)


class PerspectiveCorrector:
    """
    Deskews the region of an image bounded by a quadrilateral.

    The warp and threshold operations are pluggable; by default OpenCV is
    used for both.
    """

    def __init__(self, warp=None, threshold=None, enhance=True):
        """
        Initialize the corrector.

        Args:
            warp: Object with warp(image, top_left, top_right, bottom_left, bottom_right)
            threshold: Object with threshold(image), used for the enhanced image
            enhance: Produce the enhanced image (default: True)
        """
        self.warp = warp or OpenCVPerspectiveWarp()
        self.thresholder = threshold or AdaptiveThreshold()
        self.enhance = enhance

    def correct(self, image, quad):
        """
        Correct perspective for the region bounded by quad.

        Args:
            image: numpy array or PIL image
            quad: Quadrilateral in the image's pixel space (screen convention)

        Returns:
            ScanResult; scanned_image and enhanced_image are None when the
            correction could not be made
        """
        require_space(quad, CoordinateSpace.SCREEN)

        try:
            working = as_rgb_array(image)
            scanned = self._warp(working, quad)
        except (ImageFormatError, DegenerateRegionError, cv2.error) as e:
            logging.error(f"Correction unavailable: {e}")
            return ScanResult(original_image=image, detected_rectangle=quad)

        enhanced = self._enhance(scanned) if self.enhance else None

        return ScanResult(original_image=image,
                          scanned_image=scanned,
                          enhanced_image=enhanced,
                          detected_rectangle=quad)

    def _warp(self, image, quad):
        height, width = image.shape[:2]
        bounds = quad.bounding_rect
        margin = 1.0
        if (bounds.x > width + margin or bounds.y > height + margin or
                bounds.x + bounds.width < -margin or bounds.y + bounds.height < -margin):
            raise DegenerateRegionError(
                f"Region {quad} lies outside the {width}x{height}px image")

        cartesian = quad.to_cartesian(height)
        require_space(cartesian, CoordinateSpace.CARTESIAN)

        # Cartesian labels follow ascending y, so the visually upper corners
        # sit in bottom_*. The warp's top/bottom are therefore swapped.
        warped = self.warp.warp(image,
                                top_left=cartesian.bottom_left,
                                top_right=cartesian.bottom_right,
                                bottom_left=cartesian.top_left,
                                bottom_right=cartesian.top_right)
        if warped is None or warped.size == 0:
            raise DegenerateRegionError("Warp returned no image")

        logging.info(f"Perspective corrected: {image.shape[1]}x{image.shape[0]}px -> "
                     f"{warped.shape[1]}x{warped.shape[0]}px")
        return fix_orientation(warped)

    def _enhance(self, scanned):
        try:
            enhanced = self.thresholder.threshold(scanned)
        except (ValueError, cv2.error) as e:
            logging.error(f"Enhanced image unavailable: {e}")
            return None
        return fix_orientation(enhanced)


def correct(image, quad, warp=None, threshold=None, enhance=True):
    """Correct an image with a one-off PerspectiveCorrector"""
    return PerspectiveCorrector(warp=warp, threshold=threshold, enhance=enhance).correct(image, quad)


def scan_image(image, detector=None, corrector=None):
    """
    Detect and correct a document in a still image.

    If no rectangle is found the default inset rectangle is used, as offered
    to the user on the edit screen.
    """
    detector = detector or RectangleDetector()
    corrector = corrector or PerspectiveCorrector()

    try:
        working = as_rgb_array(image)
    except ImageFormatError as e:
        logging.error(f"Correction unavailable: {e}")
        return ScanResult(original_image=image)

    quad = detector.detect(working)
    if quad is None:
        height, width = working.shape[:2]
        logging.info("No rectangle detected, using default region")
        quad = Quadrilateral.default_for_size((width, height))

    return corrector.correct(working, quad)
