"""
Geometry primitives - points, sizes, rects and composable affine transforms.

Transforms use the row-vector convention: a point [x, y, 1] is multiplied on
the left of the 3x3 matrix, so composing ``a.then(b)`` is ``a.matrix @ b.matrix``
and applies ``a`` first.
"""

import math
from typing import NamedTuple

import numpy as np


class Point(NamedTuple):
    x: float
    y: float

    def distance_to(self, other):
        """Euclidean distance to another point"""
        return math.hypot(other[0] - self.x, other[1] - self.y)


class Size(NamedTuple):
    width: float
    height: float

    @property
    def is_empty(self):
        return self.width <= 0 or self.height <= 0


class Rect(NamedTuple):
    x: float
    y: float
    width: float
    height: float

    @classmethod
    def from_size(cls, size):
        """Rect at the origin with the given size"""
        return cls(0.0, 0.0, float(size[0]), float(size[1]))

    @classmethod
    def bounding(cls, points):
        """Smallest axis-aligned rect containing all points"""
        xs = [float(p[0]) for p in points]
        ys = [float(p[1]) for p in points]
        return cls(min(xs), min(ys), max(xs) - min(xs), max(ys) - min(ys))

    @property
    def size(self):
        return Size(self.width, self.height)

    @property
    def center(self):
        return Point(self.x + self.width / 2.0, self.y + self.height / 2.0)

    @property
    def corners(self):
        return [
            Point(self.x, self.y),
            Point(self.x + self.width, self.y),
            Point(self.x + self.width, self.y + self.height),
            Point(self.x, self.y + self.height),
        ]


class Transform:
    """
    Immutable 2D affine transform.

    Combines scale, rotation and translation. Build one with the factory
    functions below and chain them with ``then``; nothing is ever reordered
    implicitly.
    """

    __slots__ = ('_matrix',)

    def __init__(self, matrix=None):
        if matrix is None:
            matrix = np.identity(3)
        matrix = np.array(matrix, dtype=np.float64)
        if matrix.shape != (3, 3):
            raise ValueError(f"Transform matrix must be 3x3, got {matrix.shape}")
        matrix.setflags(write=False)
        self._matrix = matrix

    @classmethod
    def identity(cls):
        return cls()

    @property
    def matrix(self):
        return self._matrix

    def then(self, other):
        """Return a transform that applies self, then other"""
        return Transform(self._matrix @ other.matrix)

    def apply_to_point(self, point):
        x, y = point
        vec = np.array([x, y, 1.0]) @ self._matrix
        return Point(float(vec[0]), float(vec[1]))

    def apply_to_size(self, size):
        """
        Transform a size, ignoring translation.

        The result is the absolute extent of the transformed width/height
        vectors, so a rotated size stays non-negative.
        """
        w, h = size
        vec = np.array([w, h, 0.0]) @ self._matrix
        return Size(abs(float(vec[0])), abs(float(vec[1])))

    def apply_to_rect(self, rect):
        """Bounding box of the transformed rect corners"""
        return Rect.bounding([self.apply_to_point(p) for p in Rect(*rect).corners])

    def __eq__(self, other):
        if not isinstance(other, Transform):
            return NotImplemented
        return np.allclose(self._matrix, other.matrix)

    def __repr__(self):
        m = self._matrix
        return (f"Transform(a={m[0, 0]:.4g}, b={m[0, 1]:.4g}, c={m[1, 0]:.4g}, "
                f"d={m[1, 1]:.4g}, tx={m[2, 0]:.4g}, ty={m[2, 1]:.4g})")


def _scale(sx, sy):
    return Transform([[sx, 0.0, 0.0],
                      [0.0, sy, 0.0],
                      [0.0, 0.0, 1.0]])


def scale_transform(from_size, to_size):
    """
    Exact-fit scale from one size to another (independent x and y ratios).

    A zero source dimension raises ZeroDivisionError; callers must guard.
    """
    return _scale(to_size[0] / from_size[0], to_size[1] / from_size[1])


def aspect_fill_scale_transform(from_size, to_size):
    """
    Uniform scale so from_size covers to_size, preserving aspect ratio.

    Uses max(to_w / from_w, to_h / from_h); one dimension may overflow.
    """
    ratio = max(to_size[0] / from_size[0], to_size[1] / from_size[1])
    return _scale(ratio, ratio)


def aspect_fit_scale_transform(from_size, to_size):
    """Uniform scale so from_size fits entirely inside to_size"""
    ratio = min(to_size[0] / from_size[0], to_size[1] / from_size[1])
    return _scale(ratio, ratio)


def translate_transform(from_rect, to_rect):
    """Translation moving the centre of from_rect onto the centre of to_rect"""
    src = Rect(*from_rect).center
    dst = Rect(*to_rect).center
    return Transform([[1.0, 0.0, 0.0],
                      [0.0, 1.0, 0.0],
                      [dst.x - src.x, dst.y - src.y, 1.0]])


def rotation_transform(angle):
    """Rotation about the origin by angle radians"""
    cos_a = math.cos(angle)
    sin_a = math.sin(angle)
    return Transform([[cos_a, sin_a, 0.0],
                      [-sin_a, cos_a, 0.0],
                      [0.0, 0.0, 1.0]])


def compose(transforms):
    """Collapse an ordered sequence of transforms into one"""
    result = Transform.identity()
    for transform in transforms:
        result = result.then(transform)
    return result


def apply_transforms(point, transforms):
    """Fold a point through each transform in sequence order"""
    point = Point(float(point[0]), float(point[1]))
    for transform in transforms:
        point = transform.apply_to_point(point)
    return point
