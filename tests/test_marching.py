import pytest

from terratile.mesh.marching import (
    AXIS_X,
    AXIS_Y,
    BL,
    BOTTOM,
    BR,
    CASE_TABLE,
    CORNER_OFFSETS,
    LEFT,
    RIGHT,
    TL,
    TOP,
    TR,
    case_code,
    crossing_edges,
    crossing_parameter,
    grid_edge_key,
)

# Unit-square coordinates of edge midpoints, for orientation checks.
EDGE_MIDPOINTS = {
    BOTTOM: (0.5, 0.0),
    RIGHT: (1.0, 0.5),
    TOP: (0.5, 1.0),
    LEFT: (0.0, 0.5),
}


def _signed_area(points):
    area = 0.0
    for (x0, y0), (x1, y1) in zip(points, points[1:] + points[:1]):
        area += x0 * y1 - x1 * y0
    return 0.5 * area


def test_case_code_bits():
    assert case_code(True, False, False, False) == 1
    assert case_code(False, True, False, False) == 2
    assert case_code(False, False, True, False) == 4
    assert case_code(False, False, False, True) == 8
    assert case_code(True, True, True, True) == 15


def test_table_covers_mixed_cases_only():
    assert sorted(CASE_TABLE) == list(range(1, 15))


@pytest.mark.parametrize("code", range(1, 15))
def test_case_polygon_matches_solid_corners(code):
    polygon = CASE_TABLE[code]
    corners = {m.index for m in polygon if not m.is_edge}
    edges = {m.index for m in polygon if m.is_edge}

    solid = {c for c in (BL, BR, TR, TL) if code & (1 << c)}
    assert corners == solid
    assert edges == set(crossing_edges(code))
    assert 3 <= len(polygon) <= 6


@pytest.mark.parametrize("code", range(1, 15))
def test_case_polygon_is_counter_clockwise(code):
    points = [
        EDGE_MIDPOINTS[m.index] if m.is_edge else CORNER_OFFSETS[m.index]
        for m in CASE_TABLE[code]
    ]

    assert _signed_area(points) > 0


def test_saddle_cases_keep_diagonal_corners_connected():
    assert len(CASE_TABLE[5]) == 6
    assert len(CASE_TABLE[10]) == 6


def test_crossing_edges_single_corner():
    assert set(crossing_edges(1)) == {BOTTOM, LEFT}
    assert set(crossing_edges(11)) == {RIGHT, TOP}
    assert crossing_edges(15) == ()


def test_grid_edge_key_shared_between_neighbours():
    assert grid_edge_key(0, 0, RIGHT) == grid_edge_key(1, 0, LEFT) == (1, 0, AXIS_Y)
    assert grid_edge_key(0, 0, TOP) == grid_edge_key(0, 1, BOTTOM) == (0, 1, AXIS_X)


@pytest.mark.parametrize(
    "m0, m1, threshold, expected",
    [
        (1.0, 0.0, 0.5, 0.5),
        (0.8, 0.0, 0.5, 0.375),
        (0.0, 1.0, 0.25, 0.25),
        (0.0, 1.0, 1.5, 1.0),
        (0.0, 1.0, -0.5, 0.0),
        (0.3, 0.3, 0.5, 0.5),
    ],
)
def test_crossing_parameter(m0, m1, threshold, expected):
    assert crossing_parameter(m0, m1, threshold) == pytest.approx(expected)
