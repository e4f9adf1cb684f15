"""Interior-only PN-style subdivision that never touches constrained topology."""

from __future__ import annotations

import logging

import numpy as np

from terratile.geometry.vectors import normalize_safe
from terratile.mesh.constraints import MeshConstraints
from terratile.mesh.dynamic import Mesh, edge_key
from terratile.mesh.normals import compute_vertex_normals, recompute_overlay_normals
from terratile.mesh.settings import SubdivisionSettings, SubdivisionStats

logger = logging.getLogger(__name__)


def pn_edge_midpoint(
    a: np.ndarray,
    normal_a: np.ndarray,
    b: np.ndarray,
    normal_b: np.ndarray,
    strength: float,
) -> np.ndarray:
    """Curved midpoint of edge (a, b) bowed along the blended endpoint normals.

    Starts at the linear midpoint and moves it by
    ``strength * (dA - dB) * N``, where ``dA``/``dB`` project the edge vector
    onto each endpoint normal and ``N`` is the normalised sum of the normals.
    """
    a = np.asarray(a, dtype=float)
    b = np.asarray(b, dtype=float)
    mid = 0.5 * (a + b)
    n = normalize_safe(np.asarray(normal_a) + np.asarray(normal_b))
    ab = b - a
    d_a = float(np.dot(ab, normal_a))
    d_b = float(np.dot(-ab, normal_b))
    return mid + strength * (d_a - d_b) * n


def select_candidates(mesh: Mesh, constraints: MeshConstraints) -> list[int]:
    """Return triangles with no constrained vertex or edge, ascending."""
    out = []
    for tid in mesh.triangle_indices():
        if any(constraints.is_vertex_constrained(v) for v in mesh.get_triangle(tid)):
            continue
        if any(constraints.is_edge_constrained(e) for e in mesh.get_tri_edges(tid)):
            continue
        out.append(tid)
    return sorted(out)


class _LevelRefiner:
    """Edge-midpoint cache and triangle replacement for one level."""

    def __init__(self, mesh: Mesh, settings: SubdivisionSettings):
        self.mesh = mesh
        self.settings = settings
        self.vertex_normals = compute_vertex_normals(mesh)
        self.midpoints: dict[tuple[int, int], int] = {}
        self.midpoint_elements: dict[int, int] = {}

    def midpoint(self, v0: int, v1: int) -> int:
        key = edge_key(v0, v1)
        vid = self.midpoints.get(key)
        if vid is not None:
            return vid

        n0 = self.vertex_normals[v0]
        n1 = self.vertex_normals[v1]
        p = pn_edge_midpoint(
            self.mesh.get_vertex(v0), n0,
            self.mesh.get_vertex(v1), n1,
            self.settings.pn_strength,
        )
        vid = self.mesh.append_vertex(p)
        self.midpoints[key] = vid

        overlay = self.mesh.normals
        if overlay is not None:
            self.midpoint_elements[vid] = overlay.append_element(
                normalize_safe(n0 + n1), vid
            )
        return vid

    def replace(self, tid: int, children: list[tuple[int, int, int]]) -> None:
        """Swap triangle ``tid`` for ``children``, keeping shared edge handles."""
        mesh = self.mesh
        overlay = mesh.normals
        group = mesh.get_triangle_group(tid)
        old_edges = mesh.get_tri_edges(tid)

        corner_element = None
        if overlay is not None:
            corners = overlay.get_triangle(tid)
            if corners is not None:
                corner_element = dict(zip(mesh.get_triangle(tid), corners))

        mesh.remove_triangle(tid, remove_isolated_edges=False)
        for child in children:
            new_tid = mesh.append_triangle(*child, group=group)
            if corner_element is not None:
                overlay.set_triangle(
                    new_tid,
                    [self._element(corner_element, v) for v in child],
                )
        mesh.remove_unused_edges(old_edges)

    def _element(self, corner_element: dict[int, int], vid: int) -> int:
        # Parent corners keep their element; anything else is a midpoint.
        element = corner_element.get(vid)
        if element is None:
            element = self.midpoint_elements[vid]
        return element

    def split(self, tid: int) -> int:
        """1-to-4 split of a candidate triangle. Returns triangles added."""
        a, b, c = self.mesh.get_triangle(tid)
        ab = self.midpoint(a, b)
        bc = self.midpoint(b, c)
        ca = self.midpoint(c, a)
        self.replace(
            tid,
            [(a, ab, ca), (ab, b, bc), (ca, bc, c), (ab, bc, ca)],
        )
        return 4

    def close(self, tid: int) -> int:
        """Conforming split of a triangle whose edges got midpoints from neighbours.

        Returns:
            Triangles added (0 if no edge of ``tid`` was split).
        """
        tri = self.mesh.get_triangle(tid)
        split = [edge_key(tri[i], tri[(i + 1) % 3]) in self.midpoints for i in range(3)]
        n_split = sum(split)
        if n_split == 0:
            return 0
        if n_split == 3:
            return self.split(tid)

        # Rotate so the split edges come first: (v0, v1) is always split,
        # and for two split edges (v1, v2) is the second one.
        for shift in range(3):
            s = split[shift:] + split[:shift]
            if s[0] and (n_split == 1 or s[1]):
                break
        v0, v1, v2 = tri[shift:] + tri[:shift]
        m01 = self.midpoints[edge_key(v0, v1)]

        if n_split == 1:
            children = [(v0, m01, v2), (m01, v1, v2)]
        else:
            m12 = self.midpoints[edge_key(v1, v2)]
            children = [(m01, v1, m12), (v0, m01, m12), (v0, m12, v2)]
        self.replace(tid, children)
        return len(children)

    def affected_neighbors(self) -> list[int]:
        """Remaining triangles that still use an edge that received a midpoint."""
        out: set[int] = set()
        for a, b in self.midpoints:
            eid = self.mesh.find_edge(a, b)
            if eid is not None:
                out.update(self.mesh.edge_triangles(eid))
        return sorted(out)


def apply_interior_subdivision(
    mesh: Mesh,
    constraints: MeshConstraints,
    settings: SubdivisionSettings,
) -> tuple[bool, SubdivisionStats]:
    """Refine unconstrained triangles with PN-style 1-to-4 splits.

    Every level recomputes smooth vertex normals, selects the triangles with
    no constrained vertex or edge, processes them in ascending order and
    replaces each by four triangles around three curved edge midpoints.
    Midpoints are shared between adjacent candidates through an undirected
    edge cache. Constrained vertices and edges are never moved, split or
    removed. Refinement stops early when a level finds no candidates.

    With ``settings.require_neighbor_agreement``, remaining triangles that
    share a split edge are split conformingly afterwards, so refined and
    frozen regions meet without T-junctions.

    Args:
        mesh: Mesh to refine in place.
        constraints: Elements that must stay untouched.
        settings: Subdivision settings.

    Returns:
        Tuple of (True if any triangle was refined, stats).
    """
    stats = SubdivisionStats(levels=settings.levels)
    if settings.levels <= 0:
        return False, stats

    any_refined = False
    for level in range(settings.levels):
        candidates = select_candidates(mesh, constraints)
        if not candidates:
            logger.debug("Subdivision level %d: no candidates, stopping", level)
            break

        refiner = _LevelRefiner(mesh, settings)
        for tid in candidates:
            stats.triangles_added += refiner.split(tid)
        stats.triangles_refined += len(candidates)

        n_closed = 0
        if settings.require_neighbor_agreement:
            for tid in refiner.affected_neighbors():
                added = refiner.close(tid)
                if added:
                    n_closed += 1
                    stats.triangles_added += added
        stats.triangles_closed += n_closed

        stats.vertices_added += len(refiner.midpoints)
        stats.levels_applied += 1
        any_refined = True

        if settings.recompute_normals_per_level and mesh.normals is not None:
            recompute_overlay_normals(mesh)

        logger.debug(
            "Subdivision level %d: refined %d, closed %d, added %d vertices",
            level,
            len(candidates),
            n_closed,
            len(refiner.midpoints),
        )

    return any_refined, stats
