"""Mesh building and refinement."""

from terratile.mesh.builder import TileMeshBuilder, build_mesh_from_samples
from terratile.mesh.constraints import MeshConstraints
from terratile.mesh.dynamic import Mesh, NormalOverlay, edge_key
from terratile.mesh.normals import (
    compute_overlay_normals,
    compute_vertex_normals,
    recompute_overlay_normals,
)
from terratile.mesh.settings import (
    BuilderSettings,
    BuilderStats,
    SubdivisionSettings,
    SubdivisionStats,
)
from terratile.mesh.subdivision import apply_interior_subdivision, pn_edge_midpoint

__all__ = [
    "Mesh",
    "NormalOverlay",
    "edge_key",
    "MeshConstraints",
    "BuilderSettings",
    "BuilderStats",
    "SubdivisionSettings",
    "SubdivisionStats",
    "TileMeshBuilder",
    "build_mesh_from_samples",
    "apply_interior_subdivision",
    "pn_edge_midpoint",
    "compute_vertex_normals",
    "compute_overlay_normals",
    "recompute_overlay_normals",
]
