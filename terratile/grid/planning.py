"""Overscanned sampling grid layout for a crop region."""

from __future__ import annotations

import logging
import math

import numpy as np

from terratile.exceptions import GridTooLargeError
from terratile.geometry.bounds import CropBounds

logger = logging.getLogger(__name__)

# 16 million grid points.
DEFAULT_MAX_GRID_POINTS = 16 * 1024 * 1024


class GridPlan:
    """Lattice layout covering a crop region plus an overscan margin.

    The lattice starts at the expanded bounds' minimum corner and has
    ``floor(size / cell_size) + 1`` vertices per axis (never fewer than 2).
    Sampling a little beyond the crop region lets marching-squares cells and
    normals at the crop edge see their outside neighbours.

    Args:
        crop_bounds: Final XY region of the tile.
        cell_size: World distance between grid vertices.
        overscan_cells: Number of extra cells sampled on every side.

    Example:
        >>> plan = GridPlan(CropBounds(0, 0, 1000, 1000), cell_size=100.0)
        >>> plan.grid_x, plan.grid_y
        (13, 13)
    """

    def __init__(
        self,
        crop_bounds: CropBounds,
        cell_size: float,
        overscan_cells: int = 1,
    ):
        if cell_size <= 0 or not math.isfinite(cell_size):
            raise ValueError("Cell size must be positive")
        if overscan_cells < 0:
            raise ValueError("Overscan cells must be non-negative")

        self._crop_bounds = crop_bounds
        self._cell_size = float(cell_size)
        self._overscan_cells = int(overscan_cells)
        self._expanded_bounds = crop_bounds.expanded(
            self._overscan_cells * self._cell_size
        )

        width, height = self._expanded_bounds.size
        self._grid_x = max(2, math.floor(width / self._cell_size) + 1)
        self._grid_y = max(2, math.floor(height / self._cell_size) + 1)

    @property
    def crop_bounds(self) -> CropBounds:
        return self._crop_bounds

    @property
    def expanded_bounds(self) -> CropBounds:
        """Crop bounds grown by the overscan margin."""
        return self._expanded_bounds

    @property
    def cell_size(self) -> float:
        return self._cell_size

    @property
    def overscan_cells(self) -> int:
        return self._overscan_cells

    @property
    def grid_x(self) -> int:
        return self._grid_x

    @property
    def grid_y(self) -> int:
        return self._grid_y

    @property
    def origin_xy(self) -> tuple[float, float]:
        """World-space minimum corner of the lattice."""
        return (self._expanded_bounds.min_x, self._expanded_bounds.min_y)

    @property
    def n_points(self) -> int:
        return self._grid_x * self._grid_y

    def lattice_coords(self) -> np.ndarray:
        """Return world XY of every lattice point, shape (grid_x * grid_y, 2).

        Rows are in row-major order with X changing fastest.
        """
        ox, oy = self.origin_xy
        xs = ox + np.arange(self._grid_x) * self._cell_size
        ys = oy + np.arange(self._grid_y) * self._cell_size
        xx, yy = np.meshgrid(xs, ys)
        return np.column_stack([xx.ravel(), yy.ravel()])

    def __repr__(self) -> str:
        return (
            f"GridPlan(grid_x={self._grid_x}, grid_y={self._grid_y}, "
            f"cell_size={self._cell_size}, overscan_cells={self._overscan_cells})"
        )


def plan_grid(
    crop_bounds: CropBounds,
    cell_size: float,
    overscan_cells: int = 1,
    max_grid_points: int = DEFAULT_MAX_GRID_POINTS,
) -> GridPlan:
    """Plan the sampling lattice for a tile and enforce a point ceiling.

    Args:
        crop_bounds: Final XY region of the tile.
        cell_size: World distance between grid vertices.
        overscan_cells: Number of extra cells sampled on every side.
        max_grid_points: Largest allowed ``grid_x * grid_y``.

    Returns:
        GridPlan describing the lattice.

    Raises:
        GridTooLargeError: If the lattice would exceed ``max_grid_points``.
    """
    plan = GridPlan(crop_bounds, cell_size, overscan_cells)
    if plan.n_points > max_grid_points:
        logger.warning(
            "Rejecting grid of %d points (limit %d, cell_size=%.2f)",
            plan.n_points,
            max_grid_points,
            cell_size,
        )
        raise GridTooLargeError(
            f"Grid too large: {plan.n_points} points "
            f"({plan.grid_x}x{plan.grid_y}), limit is {max_grid_points}"
        )
    return plan
