import numpy as np
import pytest

from terratile import BuilderSettings, CropBounds, SampleGrid, build_mesh_from_samples


def make_grid(masks, heights=None, normals=None, origin=(0.0, 0.0)):
    """SampleGrid from nested lists indexed [y][x]."""
    masks = np.asarray(masks, dtype=float)
    if heights is None:
        heights = np.zeros(masks.shape)
    return SampleGrid.from_arrays(
        np.asarray(heights, dtype=float),
        origin_xy=origin,
        normals=normals,
        masks=masks,
    )


def find_vertex(mesh, x, y, tol=1e-6):
    """Handle of the vertex at (x, y), or None."""
    for vid in mesh.vertex_indices():
        p = mesh.get_vertex(vid)
        if abs(p[0] - x) <= tol and abs(p[1] - y) <= tol:
            return vid
    return None


def face_normals(mesh):
    positions = mesh.positions_array()
    tris = mesh.triangles_array()
    a, b, c = positions[tris[:, 0]], positions[tris[:, 1]], positions[tris[:, 2]]
    return np.cross(b - a, c - a)


@pytest.fixture
def grid_factory():
    return make_grid


@pytest.fixture
def solid_grid():
    """Flat, fully solid 5x5 lattice spanning (0, 0)-(400, 400)."""
    return make_grid(np.ones((5, 5)))


@pytest.fixture
def build():
    """Build with a 100-unit cell size and a crop covering the grid."""

    def _build(grid, crop=None, **settings):
        settings.setdefault("cell_size", 100.0)
        if crop is None:
            ox, oy = grid.origin_xy
            cs = settings["cell_size"]
            crop = CropBounds(
                ox - 1.0,
                oy - 1.0,
                ox + (grid.grid_x - 1) * cs + 1.0,
                oy + (grid.grid_y - 1) * cs + 1.0,
            )
        return build_mesh_from_samples(grid, BuilderSettings(**settings), crop)

    return _build
