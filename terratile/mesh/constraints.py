"""Hard constraints protecting mesh elements from refinement."""

from __future__ import annotations

from typing import Iterable

from terratile.mesh.dynamic import Mesh


class MeshConstraints:
    """Vertices and edges that refinement must never move, split or remove.

    An edge is constrained when either endpoint is constrained (see
    ``add_incident_edges``) or when a boundary rule marks it directly.

    Args:
        vertices: Initial constrained vertex handles.
        edges: Initial constrained edge handles.
    """

    def __init__(
        self,
        vertices: Iterable[int] = (),
        edges: Iterable[int] = (),
    ):
        self.vertices: set[int] = set(vertices)
        self.edges: set[int] = set(edges)

    def is_vertex_constrained(self, vid: int) -> bool:
        return vid in self.vertices

    def is_edge_constrained(self, eid: int) -> bool:
        return eid in self.edges

    def add_vertices(self, vids: Iterable[int]) -> None:
        self.vertices.update(vids)

    def add_edges(self, eids: Iterable[int]) -> None:
        self.edges.update(eids)

    def add_incident_edges(self, mesh: Mesh) -> set[int]:
        """Constrain every edge incident to a constrained vertex.

        Handles that are no longer valid vertices are skipped. Repeated calls
        with an unchanged vertex set leave the edge set unchanged.

        Returns:
            The edges derived in this call.
        """
        derived: set[int] = set()
        for vid in self.vertices:
            if not mesh.is_vertex(vid):
                continue
            derived.update(mesh.vertex_edges(vid))
        self.edges.update(derived)
        return derived

    def clear(self) -> None:
        self.vertices.clear()
        self.edges.clear()

    def copy(self) -> MeshConstraints:
        return MeshConstraints(self.vertices, self.edges)

    def __repr__(self) -> str:
        return (
            f"MeshConstraints(n_vertices={len(self.vertices)}, "
            f"n_edges={len(self.edges)})"
        )
