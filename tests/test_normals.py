import numpy as np
import pytest

from terratile import Mesh
from terratile.mesh import compute_overlay_normals, compute_vertex_normals
from terratile.mesh.normals import corner_normals, recompute_overlay_normals


def _mesh(points, triangles):
    mesh = Mesh()
    for p in points:
        mesh.append_vertex(p)
    for tri in triangles:
        mesh.append_triangle(*tri)
    return mesh


@pytest.fixture
def tent():
    """Four triangles folded along a ridge at x=0, mirror symmetric."""
    return _mesh(
        [(-1, 0, 0), (0, 0, 1), (0, 1, 1), (-1, 1, 0), (1, 0, 0), (1, 1, 0)],
        [(0, 1, 2), (0, 2, 3), (1, 4, 2), (4, 5, 2)],
    )


def test_flat_ccw_points_up():
    mesh = _mesh([(0, 0, 0), (1, 0, 0), (0, 1, 0)], [(0, 1, 2)])

    normals = compute_vertex_normals(mesh)

    np.testing.assert_allclose(normals, np.tile([0, 0, 1.0], (3, 1)))


def test_clockwise_points_down():
    mesh = _mesh([(0, 0, 0), (0, 1, 0), (1, 0, 0)], [(0, 1, 2)])

    normals = compute_vertex_normals(mesh)

    np.testing.assert_allclose(normals[0], [0, 0, -1.0])


def test_degenerate_and_isolated_vertices_fall_back_to_up():
    mesh = _mesh([(0, 0, 0), (1, 0, 0), (2, 0, 0), (5, 5, 5)], [(0, 1, 2)])

    normals = compute_vertex_normals(mesh)

    assert np.isfinite(normals).all()
    np.testing.assert_array_equal(normals, np.tile([0, 0, 1.0], (4, 1)))


def test_ridge_vertex_normal_is_vertical(tent):
    normals = compute_vertex_normals(tent)

    np.testing.assert_allclose(normals[1], [0, 0, 1.0], atol=1e-12)
    assert normals[0][0] < 0
    assert normals[4][0] > 0


def test_overlay_shares_one_element_per_vertex(tent):
    overlay = compute_overlay_normals(tent)

    assert overlay.element_count == tent.vertex_count
    corners = corner_normals(tent, 1)
    assert len(corners) == 2
    for n in corners:
        np.testing.assert_allclose(n, [0, 0, 1.0], atol=1e-12)


def test_recompute_skips_pinned_elements(tent):
    overlay = compute_overlay_normals(tent)
    pinned = overlay.get_triangle(0)[0]
    overlay.set_element(pinned, (1.0, 0.0, 0.0))
    overlay.pin(pinned)

    tent.set_vertex(2, (0, 1, 3))
    recompute_overlay_normals(tent)

    np.testing.assert_array_equal(overlay.get_element(pinned), [1.0, 0.0, 0.0])
    assert np.linalg.norm(overlay.get_element(overlay.get_triangle(0)[2])) == pytest.approx(1.0)


def test_corner_normals_without_overlay(tent):
    assert corner_normals(tent, 0) == []
