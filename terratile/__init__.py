"""terratile - tile meshes from regularly sampled terrain grids.

Converts a grid of height/normal/mask samples into a cropped, local-space
triangle mesh with hybrid uniform / marching-squares topology, seam-safe
normals and optional interior-only PN subdivision.

Example:
    >>> from terratile import CropBounds, GridSampler, TileMeshBuilder, plan_grid
    >>> crop = CropBounds(0, 0, 1000, 1000)
    >>> plan = plan_grid(crop, cell_size=100.0, overscan_cells=1)
    >>> grid = GridSampler(points[:, :2], points[:, 2]).sample(plan)
    >>> mesh = (
    ...     TileMeshBuilder(grid)
    ...     .set_cell_size(plan.cell_size)
    ...     .set_mask_threshold(0.5)
    ...     .set_subdivision(levels=1, pn_strength=0.25)
    ...     .build(crop)
    ... )
"""

from terratile.exceptions import (
    BoundsError,
    GridTooLargeError,
    InvalidGridError,
    InvalidInputError,
    MeshTopologyError,
    SamplingError,
    TerraTileError,
)
from terratile.geometry import CropBounds
from terratile.grid import GridPlan, GridSample, GridSampler, SampleGrid, plan_grid
from terratile.mesh import (
    BuilderSettings,
    BuilderStats,
    Mesh,
    MeshConstraints,
    SubdivisionSettings,
    SubdivisionStats,
    TileMeshBuilder,
    apply_interior_subdivision,
    build_mesh_from_samples,
)

__version__ = "0.1.0"

__all__ = [
    # Main API
    "build_mesh_from_samples",
    "apply_interior_subdivision",
    "TileMeshBuilder",
    # Data model
    "GridSample",
    "SampleGrid",
    "CropBounds",
    "Mesh",
    "MeshConstraints",
    "BuilderSettings",
    "BuilderStats",
    "SubdivisionSettings",
    "SubdivisionStats",
    # Grid helpers
    "GridPlan",
    "plan_grid",
    "GridSampler",
    # Exceptions
    "TerraTileError",
    "InvalidInputError",
    "InvalidGridError",
    "BoundsError",
    "GridTooLargeError",
    "MeshTopologyError",
    "SamplingError",
]
