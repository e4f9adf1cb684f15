"""Axis-aligned crop bounds in the XY plane."""

from __future__ import annotations

import numpy as np
import shapely
from shapely.geometry import Polygon as ShapelyPolygon
from shapely.geometry import box

from terratile.exceptions import BoundsError


class CropBounds:
    """Axis-aligned XY box that a generated tile mesh is trimmed to.

    Wraps a shapely box so containment tests can be evaluated for many
    points at once. Containment is strict: a point lying exactly on the box
    outline is outside.

    Args:
        min_x: Minimum X coordinate.
        min_y: Minimum Y coordinate.
        max_x: Maximum X coordinate.
        max_y: Maximum Y coordinate.

    Raises:
        BoundsError: If the box is inverted, has zero area or is not finite.

    Example:
        >>> bounds = CropBounds(0.0, 0.0, 1000.0, 1000.0)
        >>> bounds.center
        (500.0, 500.0)
    """

    def __init__(self, min_x: float, min_y: float, max_x: float, max_y: float):
        values = np.array([min_x, min_y, max_x, max_y], dtype=float)
        if not np.all(np.isfinite(values)):
            raise BoundsError(f"Bounds must be finite, got {tuple(values)}")
        if max_x <= min_x or max_y <= min_y:
            raise BoundsError(
                f"Bounds must have positive extent, got "
                f"x=[{min_x}, {max_x}], y=[{min_y}, {max_y}]"
            )

        self._box = box(float(min_x), float(min_y), float(max_x), float(max_y))

    @classmethod
    def from_shapely(cls, geometry: ShapelyPolygon) -> CropBounds:
        """Create bounds from the envelope of any shapely geometry.

        Args:
            geometry: Shapely geometry (typically a partition polygon).

        Returns:
            New CropBounds instance.
        """
        return cls(*geometry.bounds)

    @property
    def min_x(self) -> float:
        return self._box.bounds[0]

    @property
    def min_y(self) -> float:
        return self._box.bounds[1]

    @property
    def max_x(self) -> float:
        return self._box.bounds[2]

    @property
    def max_y(self) -> float:
        return self._box.bounds[3]

    @property
    def bounds(self) -> tuple[float, float, float, float]:
        """Return bounding box as (xmin, ymin, xmax, ymax)."""
        return self._box.bounds

    @property
    def size(self) -> tuple[float, float]:
        """Return (width, height)."""
        return (self.max_x - self.min_x, self.max_y - self.min_y)

    @property
    def center(self) -> tuple[float, float]:
        """Return box centre as (x, y)."""
        return (
            0.5 * (self.min_x + self.max_x),
            0.5 * (self.min_y + self.max_y),
        )

    @property
    def shapely(self) -> ShapelyPolygon:
        """Return underlying shapely box."""
        return self._box

    def contains_xy(self, x, y) -> np.ndarray | bool:
        """Strict containment test for one or many points.

        Args:
            x: X coordinate(s).
            y: Y coordinate(s).

        Returns:
            Boolean (or boolean array) that is True strictly inside the box.
        """
        return shapely.contains_xy(self._box, x, y)

    def on_boundary(self, x: float, y: float, eps: float) -> bool:
        """Return True if (x, y) lies within ``eps`` of any of the four box lines.

        Only the distance to the supporting lines is checked, so points far
        outside the box along an extended edge also count.
        """
        min_x, min_y, max_x, max_y = self._box.bounds
        on_x = abs(x - min_x) <= eps or abs(x - max_x) <= eps
        on_y = abs(y - min_y) <= eps or abs(y - max_y) <= eps
        return on_x or on_y

    def expanded(self, distance: float) -> CropBounds:
        """Return bounds grown by ``distance`` on every side.

        Args:
            distance: Margin in world units (negative shrinks).

        Returns:
            New CropBounds instance.
        """
        min_x, min_y, max_x, max_y = self._box.bounds
        return CropBounds(
            min_x - distance,
            min_y - distance,
            max_x + distance,
            max_y + distance,
        )

    def __eq__(self, other) -> bool:
        if not isinstance(other, CropBounds):
            return NotImplemented
        return self.bounds == other.bounds

    def __hash__(self) -> int:
        return hash(self.bounds)

    def __repr__(self) -> str:
        return f"CropBounds(bounds={self.bounds})"
