import numpy as np
import pytest

from terratile import CropBounds, GridTooLargeError, plan_grid
from terratile.grid import GridPlan


def test_plan_dimensions_with_overscan():
    plan = plan_grid(CropBounds(0, 0, 1000, 500), cell_size=100.0, overscan_cells=1)

    assert plan.expanded_bounds.bounds == (-100.0, -100.0, 1100.0, 600.0)
    assert plan.origin_xy == (-100.0, -100.0)
    assert (plan.grid_x, plan.grid_y) == (13, 8)
    assert plan.n_points == 104


def test_plan_never_below_two_vertices():
    plan = GridPlan(CropBounds(0, 0, 10, 10), cell_size=1000.0, overscan_cells=0)

    assert (plan.grid_x, plan.grid_y) == (2, 2)


def test_plan_rejects_bad_cell_size():
    with pytest.raises(ValueError):
        GridPlan(CropBounds(0, 0, 10, 10), cell_size=0.0)
    with pytest.raises(ValueError):
        GridPlan(CropBounds(0, 0, 10, 10), cell_size=1.0, overscan_cells=-1)


def test_plan_grid_enforces_point_ceiling():
    with pytest.raises(GridTooLargeError, match="Grid too large"):
        plan_grid(CropBounds(0, 0, 1000, 1000), cell_size=1.0, max_grid_points=1000)


def test_lattice_coords_row_major():
    plan = GridPlan(CropBounds(0, 0, 200, 100), cell_size=100.0, overscan_cells=0)

    coords = plan.lattice_coords()

    assert coords.shape == (6, 2)
    np.testing.assert_array_equal(coords[1], [100.0, 0.0])
    np.testing.assert_array_equal(coords[3], [0.0, 100.0])
