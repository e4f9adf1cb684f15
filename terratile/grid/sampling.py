"""Resampling scattered points onto a regular sample grid."""

from __future__ import annotations

from typing import Literal

import numpy as np
from scipy.interpolate import griddata
from scipy.spatial import cKDTree

from terratile.exceptions import SamplingError
from terratile.grid.planning import GridPlan
from terratile.grid.samples import SampleGrid


class GridSampler:
    """Build a SampleGrid from a scattered point collection.

    Heights (and optional mask values) are interpolated at every lattice
    point of a GridPlan using scipy. Normals are derived from the gradient
    of the resampled height field.

    Args:
        coords: Source point XY coordinates, shape (n, 2). Extra columns
            are ignored.
        heights: Height at each source point, shape (n,).
        masks: Optional mask value at each source point, shape (n,).
            Defaults to 1.0 everywhere.

    Example:
        >>> sampler = GridSampler(points[:, :2], points[:, 2])
        >>> grid = sampler.sample(plan, method="idw", max_distance=250.0)
    """

    def __init__(
        self,
        coords: np.ndarray,
        heights: np.ndarray,
        masks: np.ndarray | None = None,
    ):
        coords = np.asarray(coords, dtype=float)
        heights = np.asarray(heights, dtype=float)

        if coords.ndim != 2 or coords.shape[1] < 2:
            raise SamplingError("coords must have shape (n, 2)")
        if heights.ndim != 1:
            raise SamplingError("heights must be 1D array")
        if len(coords) != len(heights):
            raise SamplingError(
                f"coords and heights must have same length, "
                f"got {len(coords)} and {len(heights)}"
            )
        if len(coords) == 0:
            raise SamplingError("At least one source point is required")

        if masks is None:
            masks = np.ones(len(heights))
        masks = np.asarray(masks, dtype=float)
        if masks.shape != heights.shape:
            raise SamplingError(
                f"masks must have shape {heights.shape}, got {masks.shape}"
            )

        self._coords = coords[:, :2]
        self._heights = heights
        self._masks = masks
        self._tree = cKDTree(self._coords)

    @property
    def n_points(self) -> int:
        """Number of source points."""
        return len(self._heights)

    def sample(
        self,
        plan: GridPlan,
        method: Literal["nearest", "idw", "linear"] = "idw",
        k: int = 4,
        power: float = 2.0,
        max_distance: float | None = None,
    ) -> SampleGrid:
        """Resample onto the lattice described by ``plan``.

        Args:
            plan: Target lattice.
            method: 'nearest', 'idw' (inverse distance weighting) or 'linear'
                (Delaunay-based, nearest fallback outside the convex hull).
            k: Neighbours used by IDW. Default: 4.
            power: IDW distance power. Default: 2.0.
            max_distance: If set, lattice points farther than this from every
                source point get mask 0 so they are meshed as holes.

        Returns:
            SampleGrid on the plan's lattice.

        Raises:
            SamplingError: If the method is unknown or interpolation fails.
        """
        targets = plan.lattice_coords()

        if method == "nearest":
            heights, masks = self._nearest(targets)
        elif method == "idw":
            heights, masks = self._idw(targets, k=k, power=power)
        elif method == "linear":
            heights, masks = self._linear(targets)
        else:
            raise SamplingError(
                f"Unknown sampling method: {method}. "
                f"Supported methods: 'nearest', 'idw', 'linear'"
            )

        if max_distance is not None:
            distances, _ = self._tree.query(targets, k=1)
            masks = np.where(distances > max_distance, 0.0, masks)

        heights = heights.reshape(plan.grid_y, plan.grid_x)
        masks = np.clip(masks, 0.0, 1.0).reshape(plan.grid_y, plan.grid_x)
        normals = normals_from_heights(heights, plan.cell_size)

        return SampleGrid.from_arrays(
            heights, origin_xy=plan.origin_xy, normals=normals, masks=masks
        )

    def _nearest(self, targets: np.ndarray) -> tuple[np.ndarray, np.ndarray]:
        _, indices = self._tree.query(targets, k=1)
        return self._heights[indices], self._masks[indices]

    def _idw(
        self,
        targets: np.ndarray,
        k: int,
        power: float,
        eps: float = 1e-12,
    ) -> tuple[np.ndarray, np.ndarray]:
        k = min(k, self.n_points)
        distances, indices = self._tree.query(targets, k=k)

        if k == 1:
            distances = distances.reshape(-1, 1)
            indices = indices.reshape(-1, 1)

        weights = 1.0 / (distances**power + eps)
        weights = weights / weights.sum(axis=1, keepdims=True)

        heights = (weights * self._heights[indices]).sum(axis=1)
        masks = (weights * self._masks[indices]).sum(axis=1)
        return heights, masks

    def _linear(self, targets: np.ndarray) -> tuple[np.ndarray, np.ndarray]:
        try:
            values = np.column_stack([self._heights, self._masks])
            result = griddata(self._coords, values, targets, method="linear")
        except Exception as e:
            raise SamplingError(f"Linear interpolation failed: {e}") from e

        # Outside the convex hull griddata returns NaN
        outside = np.isnan(result).any(axis=1)
        if np.any(outside):
            nearest_h, nearest_m = self._nearest(targets[outside])
            result[outside, 0] = nearest_h
            result[outside, 1] = nearest_m

        return result[:, 0], result[:, 1]


def normals_from_heights(heights: np.ndarray, cell_size: float) -> np.ndarray:
    """Unit normals of a height field from central-difference gradients.

    Args:
        heights: Heights, shape (grid_y, grid_x).
        cell_size: Lattice spacing in world units.

    Returns:
        Normals, shape (grid_y, grid_x, 3).
    """
    dz_dy, dz_dx = np.gradient(np.asarray(heights, dtype=float), cell_size)
    normals = np.stack([-dz_dx, -dz_dy, np.ones_like(dz_dx)], axis=-1)
    lengths = np.linalg.norm(normals, axis=-1, keepdims=True)
    return normals / lengths
