"""
Viewport - conversions between image pixel space and on-screen display spaces.

Two displays are covered:

- the live preview overlay, where a landscape video frame is shown rotated
  into a portrait view with aspect-fill
- the edit screen, where a captured image is aspect-fitted and centred in a
  view so the user can drag its corners

All quadrilaterals here are screen-space ``Quadrilateral`` values.
"""

import math

from .geometry import (
    Point,
    Rect,
    Size,
    aspect_fill_scale_transform,
    rotation_transform,
    translate_transform,
)
from .quadrilateral import CoordinateSpace, require_space


def video_to_overlay_transforms(image_size, overlay_size):
    """
    Ordered transforms mapping a video-frame quad onto the preview overlay.

    The frame arrives in landscape while the overlay is portrait: the frame
    size is swapped to portrait, aspect-fill scaled into the overlay, rotated
    a quarter turn and finally its rotated bounds are centred on the overlay.

    Args:
        image_size: (width, height) of the video frame in pixels
        overlay_size: (width, height) of the overlay view

    Returns:
        list: [scale, rotation, translation] in application order
    """
    image_size = Size(*image_size)
    overlay_bounds = Rect.from_size(overlay_size)

    portrait_size = Size(image_size.height, image_size.width)
    scale = aspect_fill_scale_transform(portrait_size, overlay_bounds.size)
    scaled_image_size = scale.apply_to_size(image_size)

    rotation = rotation_transform(math.pi / 2.0)
    image_bounds = rotation.apply_to_rect(Rect.from_size(scaled_image_size))

    translation = translate_transform(image_bounds, overlay_bounds)
    return [scale, rotation, translation]


def quad_to_overlay(quad, image_size, overlay_size):
    """Map a quad detected in a video frame into overlay coordinates"""
    require_space(quad, CoordinateSpace.SCREEN)
    return quad.apply_transforms(video_to_overlay_transforms(image_size, overlay_size))


class ImageViewport:
    """
    Maps between image pixels and an edit view showing the whole image.

    The image is scaled uniformly to fit inside the view and centred, leaving
    letterbox bars on one axis.
    """

    def __init__(self, view_size, image_size):
        """
        Initialize the viewport.

        Args:
            view_size: (width, height) of the view
            image_size: (width, height) of the image in pixels
        """
        self.view_size = Size(*view_size)
        self.image_size = Size(*image_size)
        if self.image_size.is_empty:
            raise ValueError(f"Image size must be positive, got {tuple(self.image_size)}")

        self.effective_scale = min(self.view_size.width / self.image_size.width,
                                   self.view_size.height / self.image_size.height)

        # Centre the scaled image in the view
        display_w = self.image_size.width * self.effective_scale
        display_h = self.image_size.height * self.effective_scale
        self.offset = Point((self.view_size.width - display_w) / 2.0,
                            (self.view_size.height - display_h) / 2.0)

    @property
    def image_frame(self):
        """Rect the image occupies inside the view"""
        return Rect(self.offset.x, self.offset.y,
                    self.image_size.width * self.effective_scale,
                    self.image_size.height * self.effective_scale)

    def view_to_image(self, point):
        """Convert view coordinates to image coordinates"""
        x, y = point
        return Point((x - self.offset.x) / self.effective_scale,
                     (y - self.offset.y) / self.effective_scale)

    def image_to_view(self, point):
        """Convert image coordinates to view coordinates"""
        x, y = point
        return Point(x * self.effective_scale + self.offset.x,
                     y * self.effective_scale + self.offset.y)

    def clamp_to_image(self, point):
        """Keep an image-space point inside the image bounds"""
        x, y = point
        return Point(min(max(x, 0.0), self.image_size.width),
                     min(max(y, 0.0), self.image_size.height))

    def quad_to_view(self, quad):
        require_space(quad, CoordinateSpace.SCREEN)
        return type(quad).from_points(self.image_to_view(p) for p in quad.points)

    def quad_to_image(self, quad, clamp=True):
        """Convert a quad edited in the view back to image pixels"""
        require_space(quad, CoordinateSpace.SCREEN)
        points = [self.view_to_image(p) for p in quad.points]
        if clamp:
            points = [self.clamp_to_image(p) for p in points]
        return type(quad).from_points(points)
