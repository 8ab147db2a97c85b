"""
Quadrilateral - four labelled corners of a detected or user-placed region.

Two concrete types carry the coordinate space in which their points live:

- ``Quadrilateral``: screen space, origin top-left, y grows downward. This is
  what detectors, overlays and the edit screen work with.
- ``CartesianQuadrilateral``: origin bottom-left, y grows upward. This is what
  the perspective warp consumes.

Moving between them always goes through ``to_cartesian`` / ``to_screen``.

Corner labels are positional roles, not identities. Every constructor and
every geometry-changing method returns a reorganized value, so a label always
matches where its point currently sits.
"""

import enum
from dataclasses import dataclass

import numpy as np

from .geometry import (
    Point,
    Rect,
    Size,
    aspect_fill_scale_transform,
)


class CoordinateSpace(enum.Enum):
    SCREEN = "screen"
    CARTESIAN = "cartesian"


class CornerPosition(enum.Enum):
    TOP_LEFT = "top_left"
    TOP_RIGHT = "top_right"
    BOTTOM_RIGHT = "bottom_right"
    BOTTOM_LEFT = "bottom_left"


def _as_point(value):
    x, y = value
    return Point(float(x), float(y))


def order_points(pts):
    """
    Label four points by position.

    Sort by y (top to bottom); the two smallest-y points are the top pair and
    the others the bottom pair, and within each pair the smaller x is left.
    Sorting is stable so points on a tie keep their incoming order.

    Args:
        pts: Four (x, y) points, any order

    Returns:
        tuple: (top_left, top_right, bottom_right, bottom_left) as Points
    """
    points = [_as_point(p) for p in pts]
    if len(points) != 4:
        raise ValueError(f"A quadrilateral needs exactly 4 points, got {len(points)}")

    sorted_by_y = sorted(points, key=lambda p: p.y)

    top_pts = sorted(sorted_by_y[:2], key=lambda p: p.x)
    tl, tr = top_pts

    bottom_pts = sorted(sorted_by_y[2:], key=lambda p: p.x)
    bl, br = bottom_pts

    return tl, tr, br, bl


@dataclass(frozen=True)
class _QuadrilateralBase:
    top_left: Point
    top_right: Point
    bottom_right: Point
    bottom_left: Point

    space = None

    def __post_init__(self):
        # left-before-right in both pairs keeps reorganize idempotent on ties
        tl, tr, br, bl = order_points([self.top_left, self.top_right,
                                       self.bottom_left, self.bottom_right])
        object.__setattr__(self, 'top_left', tl)
        object.__setattr__(self, 'top_right', tr)
        object.__setattr__(self, 'bottom_right', br)
        object.__setattr__(self, 'bottom_left', bl)

    @classmethod
    def from_points(cls, points):
        """Build from any four points; labels are derived from position"""
        points = list(points)
        if len(points) != 4:
            raise ValueError(f"A quadrilateral needs exactly 4 points, got {len(points)}")
        return cls(*points)

    def reorganize(self):
        """Return a copy whose labels are re-derived from current positions"""
        return type(self)(*self.points)

    # -- derived geometry -------------------------------------------------

    @property
    def points(self):
        """Corners clockwise from top-left: TL, TR, BR, BL"""
        return (self.top_left, self.top_right, self.bottom_right, self.bottom_left)

    path = points

    def as_array(self):
        """Corners as a float32 (4, 2) array in path order"""
        return np.array(self.points, dtype=np.float32)

    @property
    def edges(self):
        """Side lengths in path order: top, right, bottom, left"""
        pts = self.points
        return tuple(pts[i].distance_to(pts[(i + 1) % 4]) for i in range(4))

    @property
    def perimeter(self):
        return sum(self.edges)

    @property
    def area(self):
        """Absolute shoelace area"""
        pts = self.points
        total = 0.0
        for i in range(4):
            x1, y1 = pts[i]
            x2, y2 = pts[(i + 1) % 4]
            total += x1 * y2 - x2 * y1
        return abs(total) / 2.0

    @property
    def centroid(self):
        xs = [p.x for p in self.points]
        ys = [p.y for p in self.points]
        return Point(sum(xs) / 4.0, sum(ys) / 4.0)

    @property
    def bounding_rect(self):
        return Rect.bounding(self.points)

    @property
    def is_degenerate(self):
        """True when the corners enclose (practically) no area"""
        return self.area < 1e-6

    # -- corner editing ---------------------------------------------------

    def corner(self, position):
        return getattr(self, CornerPosition(position).value)

    def with_corner(self, position, point):
        """Move one corner; the result is reorganized like any other edit"""
        corners = {p: self.corner(p) for p in CornerPosition}
        corners[CornerPosition(position)] = _as_point(point)
        return type(self)(corners[CornerPosition.TOP_LEFT],
                          corners[CornerPosition.TOP_RIGHT],
                          corners[CornerPosition.BOTTOM_RIGHT],
                          corners[CornerPosition.BOTTOM_LEFT])

    def corner_near(self, point, threshold=10):
        """
        Find the corner closest to a point.

        Args:
            point: (x, y) to check
            threshold: Maximum distance in the quad's units

        Returns:
            CornerPosition of the nearest corner, or None if none is close enough
        """
        best = None
        best_distance = None
        for position in CornerPosition:
            distance = self.corner(position).distance_to(point)
            if distance <= threshold and (best_distance is None or distance < best_distance):
                best = position
                best_distance = distance
        return best

    # -- transforms -------------------------------------------------------

    def apply_transforms(self, transforms):
        """
        Apply an ordered list of transforms to every corner.

        Rotations and reflections can move a different physical point into
        the top-left role, so the result is reorganized.
        """
        transforms = list(transforms)
        corners = []
        for point in self.points:
            for transform in transforms:
                point = transform.apply_to_point(point)
            corners.append(point)
        return type(self)(*corners)

    def apply_transform(self, transform):
        return self.apply_transforms([transform])

    def scale(self, from_size, to_size):
        """Aspect-fill scale of all corners from one bounding size to another (no re-centring)"""
        return self.apply_transform(aspect_fill_scale_transform(from_size, to_size))

    def _flip_y(self, height):
        return [Point(p.x, height - p.y) for p in self.points]

    def __repr__(self):
        def fmt(p):
            return f"({p.x:.1f}, {p.y:.1f})"
        return (f"{type(self).__name__}(tl={fmt(self.top_left)}, tr={fmt(self.top_right)}, "
                f"br={fmt(self.bottom_right)}, bl={fmt(self.bottom_left)})")


@dataclass(frozen=True, repr=False)
class Quadrilateral(_QuadrilateralBase):
    """Quadrilateral in screen space (origin top-left, y down)"""

    space = CoordinateSpace.SCREEN

    @classmethod
    def default_for_size(cls, size, inset=0.05):
        """Inset rectangle offered for editing when nothing was detected"""
        width, height = Size(*size)
        dx = width * inset
        dy = height * inset
        return cls(Point(dx, dy), Point(width - dx, dy),
                   Point(width - dx, height - dy), Point(dx, height - dy))

    def to_cartesian(self, height):
        """
        Convert to cartesian space of an image with the given height.

        Each y becomes height - y. The flip swaps which points are on top, so
        the result is reorganized; its labels still follow ascending y.
        """
        return CartesianQuadrilateral(*self._flip_y(height))


@dataclass(frozen=True, repr=False)
class CartesianQuadrilateral(_QuadrilateralBase):
    """
    Quadrilateral in cartesian space (origin bottom-left, y up).

    Labels follow the same ascending-y ordering as screen space, which means
    the ``bottom_*`` corners hold the points that are visually at the top of
    the image.
    """

    space = CoordinateSpace.CARTESIAN

    def to_screen(self, height):
        """Inverse of Quadrilateral.to_cartesian"""
        return Quadrilateral(*self._flip_y(height))


def require_space(quad, space):
    """Raise TypeError unless quad lives in the given coordinate space"""
    if not isinstance(quad, _QuadrilateralBase) or quad.space is not space:
        got = getattr(quad, 'space', None)
        raise TypeError(f"Expected a {space.value}-space quadrilateral, got "
                        f"{type(quad).__name__} ({got.value if got else 'untagged'})")
    return quad
