"""Normal synthesis for Mesh vertices and normal overlays."""

from __future__ import annotations

import numpy as np

from terratile.geometry.vectors import SMALL_NUMBER, UP
from terratile.mesh.dynamic import Mesh, NormalOverlay


def _normalize_rows(vectors: np.ndarray) -> np.ndarray:
    """Normalise each row; rows too short to normalise become UP."""
    lengths = np.linalg.norm(vectors, axis=1)
    good = np.isfinite(lengths) & (lengths > SMALL_NUMBER)
    out = np.tile(UP, (len(vectors), 1))
    out[good] = vectors[good] / lengths[good, None]
    return out


def _corner_angles(p: np.ndarray, q: np.ndarray, r: np.ndarray) -> np.ndarray:
    """Angle at ``p`` of each triangle (p, q, r); 0 for degenerate corners."""
    u = q - p
    w = r - p
    lu = np.linalg.norm(u, axis=1)
    lw = np.linalg.norm(w, axis=1)
    denom = lu * lw
    good = denom > SMALL_NUMBER * SMALL_NUMBER
    cos = np.zeros(len(p))
    cos[good] = np.einsum("ij,ij->i", u[good], w[good]) / denom[good]
    angles = np.arccos(np.clip(cos, -1.0, 1.0))
    angles[~good] = 0.0
    return angles


def compute_vertex_normals(mesh: Mesh) -> np.ndarray:
    """Smooth per-vertex normals from the current topology.

    Face normals are accumulated at their vertices weighted by triangle area,
    then renormalised. Vertices without a usable contribution (isolated, or
    only degenerate triangles) get the up vector.

    Returns:
        Array of shape (max_vertex_id, 3) indexed by vertex handle.
    """
    positions = mesh.positions_array()
    normals = np.zeros((mesh.max_vertex_id, 3))
    tris = mesh.triangles_array()
    if len(tris):
        a = positions[tris[:, 0]]
        b = positions[tris[:, 1]]
        c = positions[tris[:, 2]]
        # Cross product length is twice the area, so this is area weighted.
        face = np.cross(b - a, c - a)
        for k in range(3):
            np.add.at(normals, tris[:, k], face)
    return _normalize_rows(normals)


def initialize_overlay_per_vertex(mesh: Mesh) -> NormalOverlay:
    """Reset the overlay to one shared element per vertex.

    Every valid triangle corner refers to its vertex's element. Element values
    are set to the up vector; call ``recompute_overlay_normals`` afterwards.
    """
    overlay = mesh.enable_normals()
    overlay.clear()
    element_of: dict[int, int] = {}
    for vid in mesh.vertex_indices():
        element_of[vid] = overlay.append_element(UP, vid)
    for tid in mesh.triangle_indices():
        a, b, c = mesh.get_triangle(tid)
        overlay.set_triangle(tid, (element_of[a], element_of[b], element_of[c]))
    return overlay


def recompute_overlay_normals(
    mesh: Mesh,
    weight_by_area: bool = True,
    weight_by_angle: bool = True,
) -> None:
    """Recompute every unpinned overlay element from its triangles.

    Each triangle contributes its unit face normal to the elements at its
    corners, scaled by the triangle area and/or the corner angle. Elements
    with no usable contribution become the up vector. Pinned elements keep
    their values.
    """
    overlay = mesh.normals
    if overlay is None or overlay.element_count == 0:
        return

    tids = []
    corner_elements = []
    for tid, corners in overlay.triangle_items():
        if mesh.is_triangle(tid):
            tids.append(tid)
            corner_elements.append(corners)

    accum = np.zeros((overlay.element_count, 3))
    if tids:
        positions = mesh.positions_array()
        tris = np.array([mesh.get_triangle(t) for t in tids], dtype=np.int64)
        elems = np.array(corner_elements, dtype=np.int64)

        a = positions[tris[:, 0]]
        b = positions[tris[:, 1]]
        c = positions[tris[:, 2]]
        face = np.cross(b - a, c - a)
        length = np.linalg.norm(face, axis=1)
        good = length > SMALL_NUMBER
        unit = np.zeros_like(face)
        unit[good] = face[good] / length[good, None]

        weight = np.ones(len(tids))
        if weight_by_area:
            weight = weight * 0.5 * length

        corners = ((a, b, c), (b, c, a), (c, a, b))
        for k, (p, q, r) in enumerate(corners):
            w = weight
            if weight_by_angle:
                w = w * _corner_angles(p, q, r)
            np.add.at(accum, elems[:, k], unit * w[:, None])

    values = _normalize_rows(accum)
    for eid in range(overlay.element_count):
        if not overlay.is_pinned(eid):
            overlay.set_element(eid, values[eid])


def compute_overlay_normals(mesh: Mesh) -> NormalOverlay:
    """Initialise the overlay per vertex and fill it with smooth normals."""
    overlay = initialize_overlay_per_vertex(mesh)
    recompute_overlay_normals(mesh, weight_by_area=True, weight_by_angle=True)
    return overlay


def corner_normals(mesh: Mesh, vid: int) -> list[np.ndarray]:
    """Return the overlay normal at every corner that uses vertex ``vid``.

    Triangles are visited in ascending order.
    """
    overlay = mesh.normals
    if overlay is None:
        return []
    out = []
    for tid in mesh.vertex_triangles(vid):
        corners = overlay.get_triangle(tid)
        if corners is None:
            continue
        tri = mesh.get_triangle(tid)
        out.append(overlay.get_element(corners[tri.index(vid)]))
    return out
