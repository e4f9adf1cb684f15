import numpy as np
import pytest

from conftest import make_grid
from terratile import (
    BuilderSettings,
    CropBounds,
    InvalidGridError,
    SubdivisionSettings,
    TerraTileError,
    TileMeshBuilder,
)


@pytest.fixture
def grid():
    ys, xs = np.mgrid[0:6, 0:6]
    masks = 1.0 - np.hypot(xs - 2.5, ys - 2.5) / 4.0
    heights = 10.0 * np.sin(xs / 2.0) * np.cos(ys / 3.0)
    return make_grid(masks, heights=heights)


CROP = CropBounds(0, 0, 500, 500)


def test_requires_cell_size(grid):
    with pytest.raises(TerraTileError, match="Cell size not set"):
        TileMeshBuilder(grid).build(CROP)


def test_requires_grid():
    with pytest.raises(InvalidGridError):
        TileMeshBuilder(None)


def test_chained_build(grid):
    builder = (
        TileMeshBuilder(grid)
        .set_cell_size(100.0)
        .set_mask_threshold(0.5)
        .set_subdivision(levels=1, pn_strength=0.25)
    )

    mesh = builder.build(CROP)

    assert mesh is builder.get_mesh()
    assert mesh.triangle_count > builder.get_stats().triangles_after_crop
    assert builder.get_subdivision_stats().levels_applied == 1
    assert mesh.has_normals


def test_compact_build_is_dense_and_remaps_constraints(grid):
    builder = TileMeshBuilder(grid).set_cell_size(100.0).set_subdivision(levels=1)

    mesh = builder.build(CROP, compact=True)
    constraints = builder.get_constraints()

    assert mesh.vertex_count == mesh.max_vertex_id
    assert mesh.triangle_count == mesh.max_triangle_id
    assert constraints.vertices
    assert all(mesh.is_vertex(v) for v in constraints.vertices)
    assert all(mesh.is_edge(e) for e in constraints.edges)
    for eid in constraints.edges:
        a, b = mesh.get_edge(eid)
        assert constraints.is_vertex_constrained(a) or constraints.is_vertex_constrained(b)


def test_compaction_preserves_geometry(grid):
    loose = TileMeshBuilder(grid).set_cell_size(100.0).build(CROP, compact=False)
    dense = TileMeshBuilder(grid).set_cell_size(100.0).build(CROP, compact=True)

    valid = list(loose.vertex_indices())
    np.testing.assert_array_equal(loose.positions_array()[valid], dense.positions_array())
    assert loose.triangle_count == dense.triangle_count


def test_crop_boundary_subdivision_switch(grid):
    solid = make_grid(np.ones((6, 6)))

    frozen = TileMeshBuilder(solid).set_cell_size(100.0)
    frozen.build(CROP)
    free = TileMeshBuilder(solid).set_cell_size(100.0).set_crop_boundary_subdivision(True)
    free.build(CROP)

    assert frozen.get_constraints().vertices
    assert not free.get_constraints().vertices


def test_builder_settings_object(grid):
    settings = BuilderSettings(cell_size=50.0, mask_threshold=0.25, include_padding=True)

    builder = TileMeshBuilder(grid).set_builder_settings(settings)

    built = builder.build_settings()
    assert built.cell_size == 50.0
    assert built.mask_threshold == 0.25
    assert built.include_padding


def test_subdivision_settings_can_be_cleared(grid):
    builder = (
        TileMeshBuilder(grid)
        .set_cell_size(100.0)
        .set_subdivision_settings(SubdivisionSettings(levels=2))
        .set_subdivision_settings(None)
    )

    builder.build(CROP)

    assert builder.get_subdivision_stats() is None


def test_mesh_info(grid):
    builder = TileMeshBuilder(grid).set_cell_size(100.0).set_material("sand")

    info = builder.get_mesh_info()
    assert info["grid_x"] == 6
    assert "n_triangles" not in info

    mesh = builder.build(CROP)
    info = builder.get_mesh_info()

    assert mesh.material == "sand"
    assert info["crop_bounds"] == (0.0, 0.0, 500.0, 500.0)
    assert info["n_triangles"] == mesh.triangle_count
    assert info["cells_total"] == 25
    assert "subdivision" not in info


def test_invalid_cell_size(grid):
    with pytest.raises(ValueError):
        TileMeshBuilder(grid).set_cell_size(0)
