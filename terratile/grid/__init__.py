"""Sample grids and their construction."""

from terratile.grid.planning import DEFAULT_MAX_GRID_POINTS, GridPlan, plan_grid
from terratile.grid.samples import GridSample, SampleGrid
from terratile.grid.sampling import GridSampler, normals_from_heights

__all__ = [
    "GridSample",
    "SampleGrid",
    "GridPlan",
    "plan_grid",
    "DEFAULT_MAX_GRID_POINTS",
    "GridSampler",
    "normals_from_heights",
]
