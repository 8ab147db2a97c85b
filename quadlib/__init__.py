"""
quadlib - quadrilateral model and perspective correction for document scans.
"""

from .geometry import (
    Point,
    Rect,
    Size,
    Transform,
    apply_transforms,
    aspect_fill_scale_transform,
    aspect_fit_scale_transform,
    compose,
    rotation_transform,
    scale_transform,
    translate_transform,
)
from .quadrilateral import (
    CartesianQuadrilateral,
    CoordinateSpace,
    CornerPosition,
    Quadrilateral,
)
from .viewport import ImageViewport, quad_to_overlay, video_to_overlay_transforms
from .warp import AdaptiveThreshold, DegenerateRegionError, OpenCVPerspectiveWarp
from .image_io import ImageFormatError, load_image, save_image
from .detector import RectangleDetector
from .pipeline import PerspectiveCorrector, ScanResult, correct, scan_image

__all__ = [
    'Point',
    'Rect',
    'Size',
    'Transform',
    'apply_transforms',
    'aspect_fill_scale_transform',
    'aspect_fit_scale_transform',
    'compose',
    'rotation_transform',
    'scale_transform',
    'translate_transform',
    'CartesianQuadrilateral',
    'CoordinateSpace',
    'CornerPosition',
    'Quadrilateral',
    'ImageViewport',
    'quad_to_overlay',
    'video_to_overlay_transforms',
    'AdaptiveThreshold',
    'DegenerateRegionError',
    'OpenCVPerspectiveWarp',
    'ImageFormatError',
    'load_image',
    'save_image',
    'RectangleDetector',
    'PerspectiveCorrector',
    'ScanResult',
    'correct',
    'scan_image',
]
