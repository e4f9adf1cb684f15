"""Marching-squares lookup table and edge-crossing helpers.

Cell corners are numbered bottom-left, bottom-right, top-right, top-left and
contribute bits 1, 2, 4, 8 to the case code when solid. Cell edges are
numbered bottom, right, top, left. Each table row lists the polygon of the
solid region counter-clockwise (seen from +Z) as corner and edge markers.
"""

from __future__ import annotations

from typing import NamedTuple

# Corners
BL, BR, TR, TL = 0, 1, 2, 3

# Edges
BOTTOM, RIGHT, TOP, LEFT = 0, 1, 2, 3

# Lattice offset of each corner relative to the cell's (x, y).
CORNER_OFFSETS = {
    BL: (0, 0),
    BR: (1, 0),
    TR: (1, 1),
    TL: (0, 1),
}

# Corner pair joined by each edge.
EDGE_CORNERS = {
    BOTTOM: (BL, BR),
    RIGHT: (BR, TR),
    TOP: (TL, TR),
    LEFT: (BL, TL),
}

# Grid edge axes used in edge keys.
AXIS_X = 0
AXIS_Y = 1

# (dx, dy, axis) of each cell edge: the lattice edge starting at
# (x + dx, y + dy) and running along ``axis``.
EDGE_LATTICE = {
    BOTTOM: (0, 0, AXIS_X),
    RIGHT: (1, 0, AXIS_Y),
    TOP: (0, 1, AXIS_X),
    LEFT: (0, 0, AXIS_Y),
}

# Fallback for a vanishing mask difference.
MIN_MASK_DELTA = 1e-8


class Marker(NamedTuple):
    """Polygon vertex reference: a cell corner or a crossing on a cell edge."""

    is_edge: bool
    index: int


def _corner(index: int) -> Marker:
    """Marker for cell corner ``index``."""
    return Marker(False, index)


def _edge(index: int) -> Marker:
    """Marker for the crossing on cell edge ``index``."""
    return Marker(True, index)


CASE_TABLE: dict[int, tuple[Marker, ...]] = {
    1: (_corner(BL), _edge(BOTTOM), _edge(LEFT)),
    2: (_corner(BR), _edge(RIGHT), _edge(BOTTOM)),
    3: (_corner(BL), _corner(BR), _edge(RIGHT), _edge(LEFT)),
    4: (_corner(TR), _edge(TOP), _edge(RIGHT)),
    5: (_corner(BL), _edge(BOTTOM), _edge(RIGHT), _corner(TR), _edge(TOP), _edge(LEFT)),
    6: (_corner(BR), _corner(TR), _edge(TOP), _edge(BOTTOM)),
    7: (_corner(BL), _corner(BR), _corner(TR), _edge(TOP), _edge(LEFT)),
    8: (_corner(TL), _edge(LEFT), _edge(TOP)),
    9: (_corner(BL), _edge(BOTTOM), _edge(TOP), _corner(TL)),
    10: (_corner(BR), _edge(RIGHT), _edge(TOP), _corner(TL), _edge(LEFT), _edge(BOTTOM)),
    11: (_corner(BL), _corner(BR), _edge(RIGHT), _edge(TOP), _corner(TL)),
    12: (_corner(TR), _corner(TL), _edge(LEFT), _edge(RIGHT)),
    13: (_corner(BL), _edge(BOTTOM), _edge(RIGHT), _corner(TR), _corner(TL)),
    14: (_corner(BR), _corner(TR), _corner(TL), _edge(LEFT), _edge(BOTTOM)),
}


def case_code(solid_bl: bool, solid_br: bool, solid_tr: bool, solid_tl: bool) -> int:
    """Return the 4-bit marching-squares case for the corner solid states."""
    return (
        (1 if solid_bl else 0)
        | (2 if solid_br else 0)
        | (4 if solid_tr else 0)
        | (8 if solid_tl else 0)
    )


def crossing_edges(code: int) -> tuple[int, ...]:
    """Return the cell edges whose two corners differ in solid state."""
    solid = [bool(code & (1 << corner)) for corner in (BL, BR, TR, TL)]
    return tuple(
        edge
        for edge, (c0, c1) in EDGE_CORNERS.items()
        if solid[c0] != solid[c1]
    )


def grid_edge_key(cell_x: int, cell_y: int, edge: int) -> tuple[int, int, int]:
    """Key of the lattice edge under cell edge ``edge`` of cell (cell_x, cell_y).

    Adjacent cells that share an edge produce the same key.
    """
    dx, dy, axis = EDGE_LATTICE[edge]
    return (cell_x + dx, cell_y + dy, axis)


def crossing_parameter(mask_0: float, mask_1: float, threshold: float) -> float:
    """Where the mask crosses ``threshold`` between two samples, in [0, 1].

    Falls back to the midpoint when the masks are (nearly) equal.
    """
    delta = mask_1 - mask_0
    if abs(delta) <= MIN_MASK_DELTA:
        return 0.5
    t = (threshold - mask_0) / delta
    return min(1.0, max(0.0, t))
