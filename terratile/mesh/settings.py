"""Settings and statistics for mesh building and subdivision."""

from __future__ import annotations

import math


class BuilderSettings:
    """Topology, threshold and crop settings for the grid mesh builder.

    Args:
        cell_size: World distance between grid vertices. Must be positive.
        mask_threshold: A corner is solid when its mask is >= this value.
        use_marching_squares: If True, mixed cells are resolved with marching
            squares; if False, they are skipped.
        solid_quads_diagonal_bl_to_tr: Split fully solid quads along the
            bottom-left to top-right diagonal (otherwise bottom-right to
            top-left).
        deterministic_triangulation: Fan marching-squares polygons from their
            first vertex. If False, fan around an added centroid vertex.
        constrain_crop_boundary: Add vertices on the crop outline to the
            constraint set.
        crop_boundary_epsilon: Distance (world units) within which a vertex
            counts as lying on the crop outline. Negative values become 0.
        remove_isolated_vertices: Drop vertices without triangles after
            cropping.
        include_padding: Keep triangles outside the crop bounds, tagged with
            ``padding_polygroup_id``, instead of removing them.
        padding_polygroup_id: Polygroup assigned to padding triangles.
        material: Opaque material reference copied onto the mesh.

    Example:
        >>> settings = BuilderSettings(cell_size=100.0, mask_threshold=0.5)
    """

    def __init__(
        self,
        cell_size: float = 100.0,
        mask_threshold: float = 0.5,
        use_marching_squares: bool = True,
        solid_quads_diagonal_bl_to_tr: bool = True,
        deterministic_triangulation: bool = True,
        constrain_crop_boundary: bool = True,
        crop_boundary_epsilon: float = 0.01,
        remove_isolated_vertices: bool = True,
        include_padding: bool = False,
        padding_polygroup_id: int = 1,
        material=None,
    ):
        if not math.isfinite(cell_size) or cell_size <= 0:
            raise ValueError("Cell size must be positive")
        if not math.isfinite(mask_threshold):
            raise ValueError("Mask threshold must be finite")

        self.cell_size = float(cell_size)
        self.mask_threshold = float(mask_threshold)
        self.use_marching_squares = bool(use_marching_squares)
        self.solid_quads_diagonal_bl_to_tr = bool(solid_quads_diagonal_bl_to_tr)
        self.deterministic_triangulation = bool(deterministic_triangulation)
        self.constrain_crop_boundary = bool(constrain_crop_boundary)
        self.crop_boundary_epsilon = max(0.0, float(crop_boundary_epsilon))
        self.remove_isolated_vertices = bool(remove_isolated_vertices)
        self.include_padding = bool(include_padding)
        self.padding_polygroup_id = int(padding_polygroup_id)
        self.material = material

    def __repr__(self) -> str:
        return (
            f"BuilderSettings(cell_size={self.cell_size}, "
            f"mask_threshold={self.mask_threshold}, "
            f"use_marching_squares={self.use_marching_squares}, "
            f"constrain_crop_boundary={self.constrain_crop_boundary})"
        )


class SubdivisionSettings:
    """Parameters of interior-only PN subdivision.

    Args:
        levels: Number of refinement passes (>= 0).
        pn_strength: Curvature blend of the PN midpoint. 0 gives flat
            midpoints; typical values are 0.15-0.35.
        guard_ring: Topological rings kept unrefined around constraints.
            Reserved; currently has no effect.
        require_neighbor_agreement: Close non-refined neighbours of refined
            triangles conformingly so no T-junctions remain.
        recompute_normals_per_level: Recompute unpinned overlay normals after
            every level.
    """

    def __init__(
        self,
        levels: int = 0,
        pn_strength: float = 0.25,
        guard_ring: int = 1,
        require_neighbor_agreement: bool = True,
        recompute_normals_per_level: bool = True,
    ):
        if levels < 0:
            raise ValueError("Subdivision levels must be non-negative")
        if not math.isfinite(pn_strength):
            raise ValueError("PN strength must be finite")
        if guard_ring < 0:
            raise ValueError("Guard ring must be non-negative")

        self.levels = int(levels)
        self.pn_strength = float(pn_strength)
        self.guard_ring = int(guard_ring)
        self.require_neighbor_agreement = bool(require_neighbor_agreement)
        self.recompute_normals_per_level = bool(recompute_normals_per_level)

    def __repr__(self) -> str:
        return (
            f"SubdivisionSettings(levels={self.levels}, "
            f"pn_strength={self.pn_strength}, "
            f"require_neighbor_agreement={self.require_neighbor_agreement})"
        )


class _Stats:
    _fields: tuple[str, ...] = ()

    def __init__(self, **values):
        for name in self._fields:
            setattr(self, name, int(values.pop(name, 0)))
        if values:
            raise TypeError(f"Unknown stats fields: {sorted(values)}")

    def as_dict(self) -> dict:
        return {name: getattr(self, name) for name in self._fields}

    def __eq__(self, other) -> bool:
        if type(other) is not type(self):
            return NotImplemented
        return self.as_dict() == other.as_dict()

    def __repr__(self) -> str:
        fields = ", ".join(f"{k}={v}" for k, v in self.as_dict().items())
        return f"{type(self).__name__}({fields})"


class BuilderStats(_Stats):
    """Counters collected while building a tile mesh."""

    _fields = (
        "grid_x",
        "grid_y",
        "cells_total",
        "cells_solid",
        "cells_empty",
        "cells_mixed",
        "edge_vertices",
        "triangles_before_crop",
        "triangles_after_crop",
        "padding_triangles",
        "constrained_vertices",
        "constrained_edges",
        "seam_normals",
    )


class SubdivisionStats(_Stats):
    """Counters collected during subdivision."""

    _fields = (
        "levels",
        "levels_applied",
        "triangles_refined",
        "triangles_closed",
        "vertices_added",
        "triangles_added",
    )
