"""Regular sample grids of height, normal and mask values."""

from __future__ import annotations

from typing import NamedTuple, Sequence

import numpy as np

from terratile.exceptions import InvalidGridError


class GridSample(NamedTuple):
    """One sample at a grid vertex (corner)."""

    height: float = 0.0
    normal: tuple[float, float, float] = (0.0, 0.0, 1.0)
    mask: float = 0.0


class SampleGrid:
    """Rectangular lattice of samples addressed by integer (x, y).

    Samples are stored row-major with X changing fastest, so the flat index
    of lattice point (x, y) is ``x + y * grid_x``. Internally the values are
    held as numpy arrays of shape (grid_y, grid_x).

    Args:
        grid_x: Number of vertices along X (at least 2).
        grid_y: Number of vertices along Y (at least 2).
        origin_xy: World-space minimum corner of the grid.
        samples: Flat sequence of ``grid_x * grid_y`` GridSample values.

    Raises:
        InvalidGridError: If the dimensions or the sample count are invalid.

    Example:
        >>> samples = [GridSample(height=0.0, mask=1.0)] * 9
        >>> grid = SampleGrid(3, 3, (0.0, 0.0), samples)
        >>> grid.sample(1, 1).mask
        1.0
    """

    def __init__(
        self,
        grid_x: int,
        grid_y: int,
        origin_xy: tuple[float, float],
        samples: Sequence[GridSample] | None,
    ):
        if samples is None:
            raise InvalidGridError("Sample source is missing")
        _validate_dimensions(grid_x, grid_y)
        if len(samples) != grid_x * grid_y:
            raise InvalidGridError(
                f"Expected {grid_x * grid_y} samples for a {grid_x}x{grid_y} "
                f"grid, got {len(samples)}"
            )

        heights = np.array([s.height for s in samples], dtype=np.float64)
        normals = np.array([s.normal for s in samples], dtype=np.float64)
        masks = np.array([s.mask for s in samples], dtype=np.float32)

        self._init_arrays(
            grid_x,
            grid_y,
            origin_xy,
            heights.reshape(grid_y, grid_x),
            normals.reshape(grid_y, grid_x, 3),
            masks.reshape(grid_y, grid_x),
        )

    def _init_arrays(self, grid_x, grid_y, origin_xy, heights, normals, masks):
        self._grid_x = int(grid_x)
        self._grid_y = int(grid_y)
        self._origin_xy = (float(origin_xy[0]), float(origin_xy[1]))
        self._heights = heights
        self._normals = normals
        self._masks = masks

    @classmethod
    def from_arrays(
        cls,
        heights: np.ndarray,
        origin_xy: tuple[float, float] = (0.0, 0.0),
        normals: np.ndarray | None = None,
        masks: np.ndarray | None = None,
    ) -> SampleGrid:
        """Create a grid from 2D arrays indexed ``[y, x]``.

        Args:
            heights: Heights, shape (grid_y, grid_x).
            origin_xy: World-space minimum corner of the grid.
            normals: Unit normals, shape (grid_y, grid_x, 3). Defaults to up.
            masks: Mask values, shape (grid_y, grid_x). Defaults to 1.0.

        Returns:
            New SampleGrid instance.

        Raises:
            InvalidGridError: If the arrays have inconsistent shapes.
        """
        if heights is None:
            raise InvalidGridError("Sample source is missing")
        heights = np.asarray(heights, dtype=np.float64)
        if heights.ndim != 2:
            raise InvalidGridError(
                f"heights must be a 2D array, got shape {heights.shape}"
            )
        grid_y, grid_x = heights.shape
        _validate_dimensions(grid_x, grid_y)

        if normals is None:
            normals = np.zeros((grid_y, grid_x, 3))
            normals[..., 2] = 1.0
        normals = np.asarray(normals, dtype=np.float64)
        if normals.shape != (grid_y, grid_x, 3):
            raise InvalidGridError(
                f"normals must have shape {(grid_y, grid_x, 3)}, "
                f"got {normals.shape}"
            )

        if masks is None:
            masks = np.ones((grid_y, grid_x))
        masks = np.asarray(masks, dtype=np.float32)
        if masks.shape != (grid_y, grid_x):
            raise InvalidGridError(
                f"masks must have shape {(grid_y, grid_x)}, got {masks.shape}"
            )

        grid = cls.__new__(cls)
        grid._init_arrays(
            grid_x, grid_y, origin_xy, heights.copy(), normals.copy(), masks.copy()
        )
        return grid

    @property
    def grid_x(self) -> int:
        """Number of vertices along X."""
        return self._grid_x

    @property
    def grid_y(self) -> int:
        """Number of vertices along Y."""
        return self._grid_y

    @property
    def origin_xy(self) -> tuple[float, float]:
        """World-space minimum corner of the grid."""
        return self._origin_xy

    @property
    def n_samples(self) -> int:
        return self._grid_x * self._grid_y

    @property
    def n_cells(self) -> int:
        return (self._grid_x - 1) * (self._grid_y - 1)

    @property
    def heights(self) -> np.ndarray:
        """Heights as a read-only (grid_y, grid_x) array."""
        view = self._heights.view()
        view.flags.writeable = False
        return view

    @property
    def normals(self) -> np.ndarray:
        """Normals as a read-only (grid_y, grid_x, 3) array."""
        view = self._normals.view()
        view.flags.writeable = False
        return view

    @property
    def masks(self) -> np.ndarray:
        """Masks as a read-only (grid_y, grid_x) array."""
        view = self._masks.view()
        view.flags.writeable = False
        return view

    def index(self, x: int, y: int) -> int:
        """Return the flat row-major index of lattice point (x, y)."""
        return x + y * self._grid_x

    def contains(self, x: int, y: int) -> bool:
        """Return True if (x, y) is a lattice point of this grid."""
        return 0 <= x < self._grid_x and 0 <= y < self._grid_y

    def height(self, x: int, y: int) -> float:
        return float(self._heights[y, x])

    def normal(self, x: int, y: int) -> np.ndarray:
        return self._normals[y, x].copy()

    def mask(self, x: int, y: int) -> float:
        return float(self._masks[y, x])

    def sample(self, x: int, y: int) -> GridSample:
        """Return the sample stored at lattice point (x, y)."""
        return GridSample(
            height=self.height(x, y),
            normal=tuple(float(c) for c in self._normals[y, x]),
            mask=self.mask(x, y),
        )

    def world_position(self, x: float, y: float, cell_size: float) -> tuple[float, float]:
        """Return world XY of (possibly fractional) grid coordinate (x, y)."""
        return (
            self._origin_xy[0] + x * cell_size,
            self._origin_xy[1] + y * cell_size,
        )

    def with_inverted_mask(self) -> SampleGrid:
        """Return a copy of this grid with every mask replaced by ``1 - mask``."""
        return SampleGrid.from_arrays(
            self._heights,
            origin_xy=self._origin_xy,
            normals=self._normals,
            masks=1.0 - self._masks,
        )

    def __iter__(self):
        for y in range(self._grid_y):
            for x in range(self._grid_x):
                yield self.sample(x, y)

    def __len__(self) -> int:
        return self.n_samples

    def __repr__(self) -> str:
        return (
            f"SampleGrid(grid_x={self._grid_x}, grid_y={self._grid_y}, "
            f"origin_xy={self._origin_xy})"
        )


def _validate_dimensions(grid_x: int, grid_y: int) -> None:
    if grid_x < 2 or grid_y < 2:
        raise InvalidGridError(
            f"Grid needs at least 2x2 vertices, got {grid_x}x{grid_y}"
        )
