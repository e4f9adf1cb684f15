"""Indexed triangle mesh with stable integer handles."""

from __future__ import annotations

from typing import Iterator, Sequence

import numpy as np

from terratile.exceptions import MeshTopologyError


def edge_key(a: int, b: int) -> tuple[int, int]:
    """Undirected key of the edge between vertices ``a`` and ``b``."""
    return (a, b) if a < b else (b, a)


class NormalOverlay:
    """Per-corner normal attribute layered over a Mesh.

    Normals live in a separate element array. Every triangle corner refers
    to an element, so one vertex may carry different normals in different
    triangles (a hard seam). Each element records the vertex it belongs to.

    Elements can be pinned; pinned elements hold authoritative values that
    recomputation leaves untouched.
    """

    def __init__(self):
        self._elements: list[tuple[float, float, float]] = []
        self._parents: list[int] = []
        self._triangles: dict[int, tuple[int, int, int]] = {}
        self._pinned: set[int] = set()

    @property
    def element_count(self) -> int:
        return len(self._elements)

    @property
    def pinned(self) -> frozenset[int]:
        """Ids of pinned elements."""
        return frozenset(self._pinned)

    def clear(self) -> None:
        self._elements.clear()
        self._parents.clear()
        self._triangles.clear()
        self._pinned.clear()

    def append_element(self, normal: Sequence[float], parent_vertex: int) -> int:
        """Add a normal element owned by ``parent_vertex`` and return its id."""
        self._elements.append(tuple(float(c) for c in normal))
        self._parents.append(int(parent_vertex))
        return len(self._elements) - 1

    def get_element(self, element_id: int) -> np.ndarray:
        return np.array(self._elements[element_id])

    def set_element(self, element_id: int, normal: Sequence[float]) -> None:
        self._elements[element_id] = tuple(float(c) for c in normal)

    def parent_vertex(self, element_id: int) -> int:
        return self._parents[element_id]

    def pin(self, element_id: int) -> None:
        self._pinned.add(element_id)

    def is_pinned(self, element_id: int) -> bool:
        return element_id in self._pinned

    def get_triangle(self, tid: int) -> tuple[int, int, int] | None:
        """Return the element ids at the corners of triangle ``tid``, if set."""
        return self._triangles.get(tid)

    def set_triangle(self, tid: int, elements: Sequence[int]) -> None:
        if len(elements) != 3:
            raise MeshTopologyError(f"Expected 3 corner elements, got {len(elements)}")
        self._triangles[tid] = (int(elements[0]), int(elements[1]), int(elements[2]))

    def unset_triangle(self, tid: int) -> None:
        self._triangles.pop(tid, None)

    def triangle_items(self) -> Iterator[tuple[int, tuple[int, int, int]]]:
        """Iterate (triangle id, corner elements) in ascending triangle order."""
        for tid in sorted(self._triangles):
            yield tid, self._triangles[tid]

    def elements_array(self) -> np.ndarray:
        """Return all element values, shape (element_count, 3)."""
        if not self._elements:
            return np.zeros((0, 3))
        return np.array(self._elements, dtype=float)

    def __repr__(self) -> str:
        return (
            f"NormalOverlay(n_elements={self.element_count}, "
            f"n_triangles={len(self._triangles)}, n_pinned={len(self._pinned)})"
        )


class Mesh:
    """Mutable indexed triangle mesh.

    Vertices, triangles and edges are integer handles into growable arrays.
    Removing an element leaves a hole: the handle becomes invalid and is never
    handed out again, so handles held elsewhere (e.g. constraint sets) keep
    their meaning. Use ``is_vertex``/``is_triangle``/``is_edge`` before
    trusting an old handle.

    Edges are created implicitly when triangles are appended and are keyed by
    their undirected vertex pair.

    Each triangle carries an integer polygroup id. A single opaque
    ``material`` reference is passed through untouched.

    Example:
        >>> mesh = Mesh()
        >>> a = mesh.append_vertex((0, 0, 0))
        >>> b = mesh.append_vertex((1, 0, 0))
        >>> c = mesh.append_vertex((0, 1, 0))
        >>> mesh.append_triangle(a, b, c)
        0
    """

    def __init__(self):
        self._vertices: list[np.ndarray] = []
        self._vertex_valid: list[bool] = []
        self._vertex_triangles: list[set[int]] = []
        self._vertex_edges: list[set[int]] = []

        self._triangles: list[tuple[int, int, int]] = []
        self._triangle_valid: list[bool] = []
        self._triangle_edges: list[tuple[int, int, int]] = []
        self._triangle_groups: list[int] = []

        self._edges: list[tuple[int, int]] = []
        self._edge_valid: list[bool] = []
        self._edge_triangles: list[list[int]] = []
        self._edge_lookup: dict[tuple[int, int], int] = {}

        self._n_vertices = 0
        self._n_triangles = 0
        self._n_edges = 0

        self._normals: NormalOverlay | None = None
        self.material = None

    # ------------------------------------------------------------------
    # Counts
    # ------------------------------------------------------------------

    @property
    def vertex_count(self) -> int:
        """Number of valid vertices."""
        return self._n_vertices

    @property
    def triangle_count(self) -> int:
        """Number of valid triangles."""
        return self._n_triangles

    @property
    def edge_count(self) -> int:
        """Number of valid edges."""
        return self._n_edges

    @property
    def max_vertex_id(self) -> int:
        """One past the largest vertex handle ever issued."""
        return len(self._vertices)

    @property
    def max_triangle_id(self) -> int:
        return len(self._triangles)

    @property
    def max_edge_id(self) -> int:
        return len(self._edges)

    # ------------------------------------------------------------------
    # Vertices
    # ------------------------------------------------------------------

    def append_vertex(self, position: Sequence[float]) -> int:
        """Add a vertex and return its handle."""
        p = np.array(position, dtype=np.float64)
        if p.shape != (3,):
            raise MeshTopologyError(f"Vertex position must have 3 components, got {p.shape}")
        self._vertices.append(p)
        self._vertex_valid.append(True)
        self._vertex_triangles.append(set())
        self._vertex_edges.append(set())
        self._n_vertices += 1
        return len(self._vertices) - 1

    def is_vertex(self, vid: int) -> bool:
        return 0 <= vid < len(self._vertices) and self._vertex_valid[vid]

    def get_vertex(self, vid: int) -> np.ndarray:
        """Return a copy of the position of vertex ``vid``."""
        self._check_vertex(vid)
        return self._vertices[vid].copy()

    def set_vertex(self, vid: int, position: Sequence[float]) -> None:
        self._check_vertex(vid)
        self._vertices[vid] = np.array(position, dtype=np.float64)

    def vertex_indices(self) -> Iterator[int]:
        """Iterate valid vertex handles in ascending order."""
        return (v for v, ok in enumerate(self._vertex_valid) if ok)

    def vertex_triangles(self, vid: int) -> list[int]:
        """Return the triangles using vertex ``vid``, ascending."""
        self._check_vertex(vid)
        return sorted(self._vertex_triangles[vid])

    def vertex_edges(self, vid: int) -> list[int]:
        """Return the edges incident to vertex ``vid``, ascending."""
        self._check_vertex(vid)
        return sorted(self._vertex_edges[vid])

    def vertex_triangle_count(self, vid: int) -> int:
        self._check_vertex(vid)
        return len(self._vertex_triangles[vid])

    def remove_vertex(self, vid: int) -> None:
        """Remove an isolated vertex.

        Raises:
            MeshTopologyError: If the vertex is invalid or still used.
        """
        self._check_vertex(vid)
        if self._vertex_triangles[vid]:
            raise MeshTopologyError(
                f"Vertex {vid} is still used by {len(self._vertex_triangles[vid])} triangles"
            )
        for eid in list(self._vertex_edges[vid]):
            self._remove_edge(eid)
        self._vertex_valid[vid] = False
        self._n_vertices -= 1

    # ------------------------------------------------------------------
    # Triangles
    # ------------------------------------------------------------------

    def append_triangle(self, a: int, b: int, c: int, group: int = 0) -> int:
        """Add triangle (a, b, c) and return its handle.

        Raises:
            MeshTopologyError: If a vertex is invalid or repeated.
        """
        for v in (a, b, c):
            self._check_vertex(v)
        if a == b or b == c or a == c:
            raise MeshTopologyError(f"Degenerate triangle ({a}, {b}, {c})")

        tid = len(self._triangles)
        self._triangles.append((a, b, c))
        self._triangle_valid.append(True)
        self._triangle_groups.append(int(group))

        edges = (
            self._get_or_create_edge(a, b),
            self._get_or_create_edge(b, c),
            self._get_or_create_edge(c, a),
        )
        self._triangle_edges.append(edges)
        for eid in edges:
            self._edge_triangles[eid].append(tid)
        for v in (a, b, c):
            self._vertex_triangles[v].add(tid)

        self._n_triangles += 1
        return tid

    def is_triangle(self, tid: int) -> bool:
        return 0 <= tid < len(self._triangles) and self._triangle_valid[tid]

    def get_triangle(self, tid: int) -> tuple[int, int, int]:
        self._check_triangle(tid)
        return self._triangles[tid]

    def get_tri_edges(self, tid: int) -> tuple[int, int, int]:
        """Return edges (ab, bc, ca) of triangle ``tid``."""
        self._check_triangle(tid)
        return self._triangle_edges[tid]

    def get_triangle_group(self, tid: int) -> int:
        self._check_triangle(tid)
        return self._triangle_groups[tid]

    def set_triangle_group(self, tid: int, group: int) -> None:
        self._check_triangle(tid)
        self._triangle_groups[tid] = int(group)

    def triangle_indices(self) -> Iterator[int]:
        """Iterate valid triangle handles in ascending order."""
        return (t for t, ok in enumerate(self._triangle_valid) if ok)

    def triangle_centroid(self, tid: int) -> np.ndarray:
        a, b, c = self.get_triangle(tid)
        return (self._vertices[a] + self._vertices[b] + self._vertices[c]) / 3.0

    def remove_triangle(self, tid: int, remove_isolated_edges: bool = True) -> None:
        """Remove triangle ``tid``; its vertices are kept.

        Args:
            tid: Triangle handle.
            remove_isolated_edges: If True, edges no longer used by any
                triangle are removed as well.
        """
        self._check_triangle(tid)
        a, b, c = self._triangles[tid]
        for v in (a, b, c):
            self._vertex_triangles[v].discard(tid)
        for eid in self._triangle_edges[tid]:
            self._edge_triangles[eid].remove(tid)
            if remove_isolated_edges and not self._edge_triangles[eid]:
                self._remove_edge(eid)

        if self._normals is not None:
            self._normals.unset_triangle(tid)

        self._triangle_valid[tid] = False
        self._n_triangles -= 1

    def remove_unused_edges(self, edge_ids: Sequence[int]) -> None:
        """Remove those of ``edge_ids`` that no triangle uses any more."""
        for eid in edge_ids:
            if self.is_edge(eid) and not self._edge_triangles[eid]:
                self._remove_edge(eid)

    # ------------------------------------------------------------------
    # Edges
    # ------------------------------------------------------------------

    def is_edge(self, eid: int) -> bool:
        return 0 <= eid < len(self._edges) and self._edge_valid[eid]

    def get_edge(self, eid: int) -> tuple[int, int]:
        """Return the (lower, higher) vertex pair of edge ``eid``."""
        self._check_edge(eid)
        return self._edges[eid]

    def edge_triangles(self, eid: int) -> list[int]:
        self._check_edge(eid)
        return list(self._edge_triangles[eid])

    def find_edge(self, a: int, b: int) -> int | None:
        """Return the edge between ``a`` and ``b``, or None."""
        return self._edge_lookup.get(edge_key(a, b))

    def edge_indices(self) -> Iterator[int]:
        return (e for e, ok in enumerate(self._edge_valid) if ok)

    def is_boundary_edge(self, eid: int) -> bool:
        self._check_edge(eid)
        return len(self._edge_triangles[eid]) == 1

    def _get_or_create_edge(self, a: int, b: int) -> int:
        key = edge_key(a, b)
        eid = self._edge_lookup.get(key)
        if eid is not None:
            return eid
        eid = len(self._edges)
        self._edges.append(key)
        self._edge_valid.append(True)
        self._edge_triangles.append([])
        self._edge_lookup[key] = eid
        self._vertex_edges[a].add(eid)
        self._vertex_edges[b].add(eid)
        self._n_edges += 1
        return eid

    def _remove_edge(self, eid: int) -> None:
        a, b = self._edges[eid]
        del self._edge_lookup[(a, b)]
        self._vertex_edges[a].discard(eid)
        self._vertex_edges[b].discard(eid)
        self._edge_valid[eid] = False
        self._n_edges -= 1

    # ------------------------------------------------------------------
    # Attributes
    # ------------------------------------------------------------------

    @property
    def normals(self) -> NormalOverlay | None:
        """Per-corner normal overlay, or None if not enabled."""
        return self._normals

    @property
    def has_normals(self) -> bool:
        return self._normals is not None

    def enable_normals(self) -> NormalOverlay:
        """Create the normal overlay if needed and return it."""
        if self._normals is None:
            self._normals = NormalOverlay()
        return self._normals

    def disable_normals(self) -> None:
        self._normals = None

    # ------------------------------------------------------------------
    # Bulk operations
    # ------------------------------------------------------------------

    def positions_array(self) -> np.ndarray:
        """Return every vertex slot's position, shape (max_vertex_id, 3).

        Rows of removed vertices hold their last position.
        """
        if not self._vertices:
            return np.zeros((0, 3))
        return np.array(self._vertices)

    def triangles_array(self) -> np.ndarray:
        """Return valid triangles (by vertex handle), shape (triangle_count, 3)."""
        tris = [t for t, ok in zip(self._triangles, self._triangle_valid) if ok]
        if not tris:
            return np.zeros((0, 3), dtype=np.int64)
        return np.array(tris, dtype=np.int64)

    def translate(self, dx: float, dy: float, dz: float = 0.0) -> None:
        """Move every valid vertex by (dx, dy, dz)."""
        offset = np.array([dx, dy, dz], dtype=np.float64)
        for vid in self.vertex_indices():
            self._vertices[vid] = self._vertices[vid] + offset

    def compact(self) -> tuple[Mesh, dict[int, int]]:
        """Return a densely indexed copy of this mesh.

        Valid vertices and triangles are renumbered in ascending order of
        their old handles. Normal elements referenced by triangles are
        carried over (pinned state included).

        Returns:
            Tuple of (compacted mesh, mapping of old to new vertex handles).
        """
        out = Mesh()
        out.material = self.material
        vertex_map: dict[int, int] = {}
        for vid in self.vertex_indices():
            vertex_map[vid] = out.append_vertex(self._vertices[vid])

        triangle_map: dict[int, int] = {}
        for tid in self.triangle_indices():
            a, b, c = self._triangles[tid]
            triangle_map[tid] = out.append_triangle(
                vertex_map[a], vertex_map[b], vertex_map[c],
                group=self._triangle_groups[tid],
            )

        if self._normals is not None:
            overlay = out.enable_normals()
            element_map: dict[int, int] = {}
            for tid, corners in self._normals.triangle_items():
                if tid not in triangle_map:
                    continue
                new_corners = []
                for eid in corners:
                    if eid not in element_map:
                        new_eid = overlay.append_element(
                            self._normals.get_element(eid),
                            vertex_map[self._normals.parent_vertex(eid)],
                        )
                        if self._normals.is_pinned(eid):
                            overlay.pin(new_eid)
                        element_map[eid] = new_eid
                    new_corners.append(element_map[eid])
                overlay.set_triangle(triangle_map[tid], new_corners)

        return out, vertex_map

    # ------------------------------------------------------------------
    # Validation helpers
    # ------------------------------------------------------------------

    def _check_vertex(self, vid: int) -> None:
        if not self.is_vertex(vid):
            raise MeshTopologyError(f"Invalid vertex id {vid}")

    def _check_triangle(self, tid: int) -> None:
        if not self.is_triangle(tid):
            raise MeshTopologyError(f"Invalid triangle id {tid}")

    def _check_edge(self, eid: int) -> None:
        if not self.is_edge(eid):
            raise MeshTopologyError(f"Invalid edge id {eid}")

    def __repr__(self) -> str:
        return (
            f"Mesh(n_vertices={self.vertex_count}, "
            f"n_triangles={self.triangle_count}, n_edges={self.edge_count})"
        )
