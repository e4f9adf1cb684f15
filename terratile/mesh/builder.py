"""Grid-to-mesh builder with hybrid uniform / marching-squares topology."""

from __future__ import annotations

import logging

import numpy as np

from terratile.exceptions import InvalidGridError, MeshTopologyError, TerraTileError
from terratile.geometry.bounds import CropBounds
from terratile.geometry.vectors import lerp, normalize_safe
from terratile.grid.samples import SampleGrid
from terratile.mesh.constraints import MeshConstraints
from terratile.mesh.dynamic import Mesh
from terratile.mesh.marching import (
    AXIS_X,
    BL,
    BR,
    CASE_TABLE,
    CORNER_OFFSETS,
    TL,
    TR,
    case_code,
    crossing_edges,
    crossing_parameter,
    grid_edge_key,
)
from terratile.mesh.normals import compute_overlay_normals
from terratile.mesh.settings import (
    BuilderSettings,
    BuilderStats,
    SubdivisionSettings,
    SubdivisionStats,
)
from terratile.mesh.subdivision import apply_interior_subdivision

logger = logging.getLogger(__name__)

# Tolerance for "exactly on the crop outline" and "on a lattice point" when
# restoring sampled normals at the tile seam.
SEAM_EPSILON = 1e-4


class _CellTopology:
    """Per-build state for emitting cell triangles.

    Holds the corner vertex lookup, the crossing-vertex cache keyed by
    lattice edge and the set of mask-boundary vertices.
    """

    def __init__(self, mesh: Mesh, grid: SampleGrid, settings: BuilderSettings):
        self.mesh = mesh
        self.grid = grid
        self.settings = settings
        self.corner_vids = np.full((grid.grid_y, grid.grid_x), -1, dtype=np.int64)
        self.edge_vertices: dict[tuple[int, int, int], int] = {}
        self.mask_boundary: set[int] = set()

    def append_corner_vertices(self) -> None:
        heights = self.grid.heights
        cell_size = self.settings.cell_size
        for y in range(self.grid.grid_y):
            for x in range(self.grid.grid_x):
                wx, wy = self.grid.world_position(x, y, cell_size)
                self.corner_vids[y, x] = self.mesh.append_vertex(
                    (wx, wy, float(heights[y, x]))
                )

    def corner(self, cell_x: int, cell_y: int, corner: int) -> int:
        dx, dy = CORNER_OFFSETS[corner]
        return int(self.corner_vids[cell_y + dy, cell_x + dx])

    def edge_vertex(self, cell_x: int, cell_y: int, edge: int) -> int:
        """Return the crossing vertex on a cell edge, creating it once."""
        key = grid_edge_key(cell_x, cell_y, edge)
        vid = self.edge_vertices.get(key)
        if vid is not None:
            return vid

        x0, y0, axis = key
        x1, y1 = (x0 + 1, y0) if axis == AXIS_X else (x0, y0 + 1)
        grid = self.grid

        t = crossing_parameter(
            grid.mask(x0, y0), grid.mask(x1, y1), self.settings.mask_threshold
        )
        p0 = self.mesh.get_vertex(int(self.corner_vids[y0, x0]))
        p1 = self.mesh.get_vertex(int(self.corner_vids[y1, x1]))

        vid = self.mesh.append_vertex(lerp(p0, p1, t))
        self.edge_vertices[key] = vid
        self.mask_boundary.add(vid)
        return vid

    def add_triangle(self, a: int, b: int, c: int) -> None:
        # Counter-clockwise in XY, so front faces point up (+Z).
        self.mesh.append_triangle(a, b, c)

    def emit_solid_quad(self, cell_x: int, cell_y: int) -> None:
        v00 = self.corner(cell_x, cell_y, BL)
        v10 = self.corner(cell_x, cell_y, BR)
        v11 = self.corner(cell_x, cell_y, TR)
        v01 = self.corner(cell_x, cell_y, TL)
        if self.settings.solid_quads_diagonal_bl_to_tr:
            self.add_triangle(v00, v10, v11)
            self.add_triangle(v00, v11, v01)
        else:
            self.add_triangle(v00, v10, v01)
            self.add_triangle(v10, v11, v01)

    def cell_polygon(self, cell_x: int, cell_y: int, code: int) -> list[int]:
        """Resolve a mixed cell into its marching-squares polygon."""
        crossing = set(crossing_edges(code))
        polygon = []
        for marker in CASE_TABLE[code]:
            if marker.is_edge:
                if marker.index not in crossing:
                    raise MeshTopologyError(
                        f"Case {code} references edge {marker.index} "
                        f"without a mask crossing"
                    )
                polygon.append(self.edge_vertex(cell_x, cell_y, marker.index))
            else:
                polygon.append(self.corner(cell_x, cell_y, marker.index))
        return polygon

    def emit_polygon(self, polygon: list[int]) -> None:
        n = len(polygon)
        if n < 3:
            return
        if self.settings.deterministic_triangulation:
            root = polygon[0]
            for i in range(1, n - 1):
                self.add_triangle(root, polygon[i], polygon[i + 1])
            return

        center = np.mean([self.mesh.get_vertex(v) for v in polygon], axis=0)
        root = self.mesh.append_vertex(center)
        for i in range(n):
            self.add_triangle(root, polygon[i], polygon[(i + 1) % n])


def _classify_and_emit(
    topology: _CellTopology,
    solid: np.ndarray,
    stats: BuilderStats,
) -> None:
    grid = topology.grid
    for y in range(grid.grid_y - 1):
        for x in range(grid.grid_x - 1):
            code = case_code(
                bool(solid[y, x]),
                bool(solid[y, x + 1]),
                bool(solid[y + 1, x + 1]),
                bool(solid[y + 1, x]),
            )
            if code == 0:
                stats.cells_empty += 1
                continue
            if code == 15:
                stats.cells_solid += 1
                topology.emit_solid_quad(x, y)
                continue

            stats.cells_mixed += 1
            if not topology.settings.use_marching_squares:
                continue
            topology.emit_polygon(topology.cell_polygon(x, y, code))


def _crop_boundary_vertices(
    mesh: Mesh, crop_bounds: CropBounds, eps: float
) -> list[int]:
    out = []
    for vid in mesh.vertex_indices():
        p = mesh.get_vertex(vid)
        if crop_bounds.on_boundary(p[0], p[1], eps):
            out.append(vid)
    return out


def _crop_to_bounds(
    mesh: Mesh, crop_bounds: CropBounds, settings: BuilderSettings
) -> int:
    """Drop (or tag as padding) triangles whose XY centroid is outside.

    Returns:
        Number of triangles kept as padding.
    """
    tids = list(mesh.triangle_indices())
    if not tids:
        return 0
    centroids = np.array([mesh.triangle_centroid(t) for t in tids])
    inside = np.asarray(
        crop_bounds.contains_xy(centroids[:, 0], centroids[:, 1]), dtype=bool
    )

    n_padding = 0
    for tid, keep in zip(tids, inside):
        if keep:
            continue
        if settings.include_padding:
            mesh.set_triangle_group(tid, settings.padding_polygroup_id)
            n_padding += 1
        else:
            mesh.remove_triangle(tid)
    return n_padding


def _remove_isolated_vertices(mesh: Mesh) -> int:
    isolated = [v for v in mesh.vertex_indices() if mesh.vertex_triangle_count(v) == 0]
    for vid in isolated:
        mesh.remove_vertex(vid)
    return len(isolated)


def _override_seam_normals(
    mesh: Mesh,
    crop_bounds: CropBounds,
    grid: SampleGrid,
    cell_size: float,
) -> int:
    """Give crop-outline lattice vertices their sampled grid normal.

    Neighbouring tiles built from the same lattice then agree exactly on the
    normals along their shared edge. Marching-squares crossing vertices are
    not lattice points and are left alone.

    Returns:
        Number of vertices overridden.
    """
    overlay = mesh.normals
    if overlay is None:
        return 0

    ox, oy = grid.origin_xy
    n_overridden = 0
    for vid in list(mesh.vertex_indices()):
        p = mesh.get_vertex(vid)
        if not crop_bounds.on_boundary(p[0], p[1], SEAM_EPSILON):
            continue

        fx = (p[0] - ox) / cell_size
        fy = (p[1] - oy) / cell_size
        ix = round(fx)
        iy = round(fy)
        if abs(fx - ix) > SEAM_EPSILON or abs(fy - iy) > SEAM_EPSILON:
            continue
        if not grid.contains(ix, iy):
            continue

        element = overlay.append_element(normalize_safe(grid.normal(ix, iy)), vid)
        overlay.pin(element)

        for tid in mesh.vertex_triangles(vid):
            corners = overlay.get_triangle(tid)
            if corners is None:
                continue
            tri = mesh.get_triangle(tid)
            overlay.set_triangle(
                tid, tuple(element if v == vid else e for v, e in zip(tri, corners))
            )
        n_overridden += 1
    return n_overridden


def build_mesh_from_samples(
    grid: SampleGrid,
    settings: BuilderSettings,
    crop_bounds: CropBounds,
) -> tuple[Mesh, MeshConstraints, BuilderStats]:
    """Build a cropped, local-space triangle mesh from a sample grid.

    Fully solid cells become two triangles, empty cells are skipped and mixed
    cells are traced with marching squares (or skipped). Crossing vertices
    and, optionally, vertices on the crop outline become hard constraints for
    later refinement. Triangles are then cropped by XY centroid, normals are
    computed, crop-outline lattice vertices get their sampled normals back,
    and the mesh is translated so the crop centre sits at the XY origin.

    Args:
        grid: Overscanned sample grid.
        settings: Builder settings.
        crop_bounds: Final XY bounds of the tile (world space).

    Returns:
        Tuple of (mesh, constraints, stats).

    Raises:
        InvalidGridError: If the grid is missing or malformed.
    """
    if grid is None:
        raise InvalidGridError("Sample grid is missing")
    if not isinstance(grid, SampleGrid):
        raise InvalidGridError(f"Expected SampleGrid, got {type(grid).__name__}")

    stats = BuilderStats(
        grid_x=grid.grid_x,
        grid_y=grid.grid_y,
        cells_total=grid.n_cells,
    )

    mesh = Mesh()
    mesh.material = settings.material
    constraints = MeshConstraints()

    # 1) Corner vertices, world space
    topology = _CellTopology(mesh, grid, settings)
    topology.append_corner_vertices()

    # 2) Per-cell topology
    solid = grid.masks >= settings.mask_threshold
    _classify_and_emit(topology, solid, stats)
    stats.edge_vertices = len(topology.edge_vertices)
    stats.triangles_before_crop = mesh.triangle_count

    # 3) Constraints: mask boundary, crop boundary, then incident edges
    constraints.add_vertices(topology.mask_boundary)
    if settings.constrain_crop_boundary:
        constraints.add_vertices(
            _crop_boundary_vertices(mesh, crop_bounds, settings.crop_boundary_epsilon)
        )
    constraints.add_incident_edges(mesh)
    stats.constrained_vertices = len(constraints.vertices)
    stats.constrained_edges = len(constraints.edges)

    # 4) Crop
    stats.padding_triangles = _crop_to_bounds(mesh, crop_bounds, settings)
    stats.triangles_after_crop = mesh.triangle_count - stats.padding_triangles

    if settings.remove_isolated_vertices:
        _remove_isolated_vertices(mesh)

    # 5) Normals (world space), then seam repair
    compute_overlay_normals(mesh)
    stats.seam_normals = _override_seam_normals(
        mesh, crop_bounds, grid, settings.cell_size
    )

    # 6) Local space
    cx, cy = crop_bounds.center
    mesh.translate(-cx, -cy)

    logger.debug(
        "Built %dx%d grid: %d solid, %d empty, %d mixed cells; "
        "%d -> %d triangles, %d constrained vertices",
        grid.grid_x,
        grid.grid_y,
        stats.cells_solid,
        stats.cells_empty,
        stats.cells_mixed,
        stats.triangles_before_crop,
        stats.triangles_after_crop,
        stats.constrained_vertices,
    )
    return mesh, constraints, stats


def _remap_constraints(
    old_mesh: Mesh,
    new_mesh: Mesh,
    constraints: MeshConstraints,
    vertex_map: dict[int, int],
) -> MeshConstraints:
    remapped = MeshConstraints(
        vertices=(vertex_map[v] for v in constraints.vertices if v in vertex_map)
    )
    for eid in constraints.edges:
        if not old_mesh.is_edge(eid):
            continue
        a, b = old_mesh.get_edge(eid)
        new_eid = new_mesh.find_edge(vertex_map[a], vertex_map[b])
        if new_eid is not None:
            remapped.edges.add(new_eid)
    return remapped


class TileMeshBuilder:
    """High-level API for building one tile mesh from a sample grid.

    Orchestrates the tile workflow:
    1. Configure cell size, mask threshold and topology options
    2. Build the cropped mesh with constraints
    3. Optionally refine the interior with PN subdivision
    4. Optionally compact the result

    Args:
        grid: Overscanned sample grid.

    Example:
        >>> from terratile import TileMeshBuilder, CropBounds
        >>> mesh = (
        ...     TileMeshBuilder(grid)
        ...     .set_cell_size(100.0)
        ...     .set_mask_threshold(0.5)
        ...     .set_subdivision(levels=2, pn_strength=0.25)
        ...     .build(CropBounds(0, 0, 1000, 1000))
        ... )
    """

    def __init__(self, grid: SampleGrid):
        if grid is None:
            raise InvalidGridError("Sample grid is missing")
        self._grid = grid

        # Configuration (set via builder methods)
        self._cell_size: float | None = None
        self._options: dict = {}
        self._subdivision: SubdivisionSettings | None = None

        # Results (created during build)
        self._mesh: Mesh | None = None
        self._constraints: MeshConstraints | None = None
        self._stats: BuilderStats | None = None
        self._subdivision_stats: SubdivisionStats | None = None
        self._crop_bounds: CropBounds | None = None

    @property
    def grid(self) -> SampleGrid:
        """Return the sample grid."""
        return self._grid

    def set_cell_size(self, cell_size: float) -> TileMeshBuilder:
        """Set world distance between grid vertices.

        Args:
            cell_size: Lattice spacing in world units.

        Returns:
            Self for method chaining.
        """
        if cell_size <= 0:
            raise ValueError("Cell size must be positive")
        self._cell_size = float(cell_size)
        return self

    def set_mask_threshold(self, threshold: float) -> TileMeshBuilder:
        """Set the mask value at and above which a sample is solid.

        Returns:
            Self for method chaining.
        """
        self._options["mask_threshold"] = float(threshold)
        return self

    def set_builder_settings(self, settings: BuilderSettings) -> TileMeshBuilder:
        """Set every builder option from a BuilderSettings object.

        Args:
            settings: BuilderSettings object; its cell size replaces any
                value given to ``set_cell_size``.

        Returns:
            Self for method chaining.
        """
        self._options = dict(vars(settings))
        self._cell_size = self._options.pop("cell_size")
        return self

    def set_crop_boundary_subdivision(self, allow: bool) -> TileMeshBuilder:
        """Choose whether vertices on the crop outline may be refined.

        Allowing it leaves the crop outline out of the constraint set, which
        only stays seamless across tiles when neighbours do the same.

        Returns:
            Self for method chaining.
        """
        self._options["constrain_crop_boundary"] = not allow
        return self

    def set_subdivision(
        self,
        levels: int,
        pn_strength: float = 0.25,
        **kwargs,
    ) -> TileMeshBuilder:
        """Enable interior PN subdivision.

        Args:
            levels: Number of refinement passes.
            pn_strength: PN curvature strength.
            **kwargs: Further SubdivisionSettings arguments.

        Returns:
            Self for method chaining.
        """
        self._subdivision = SubdivisionSettings(
            levels=levels, pn_strength=pn_strength, **kwargs
        )
        return self

    def set_subdivision_settings(
        self, settings: SubdivisionSettings | None
    ) -> TileMeshBuilder:
        """Set subdivision settings directly (None disables subdivision).

        Returns:
            Self for method chaining.
        """
        self._subdivision = settings
        return self

    def set_material(self, material) -> TileMeshBuilder:
        """Set the material reference passed through to the mesh.

        Returns:
            Self for method chaining.
        """
        self._options["material"] = material
        return self

    def _validate_configuration(self) -> None:
        """Validate that all required parameters are set."""
        if self._cell_size is None:
            raise TerraTileError(
                "Cell size not set. Call set_cell_size() first."
            )

    def build_settings(self) -> BuilderSettings:
        """Return the BuilderSettings the next build will use."""
        self._validate_configuration()
        return BuilderSettings(cell_size=self._cell_size, **self._options)

    def build(self, crop_bounds: CropBounds, compact: bool = True) -> Mesh:
        """Build the tile mesh.

        Args:
            crop_bounds: Final XY bounds of the tile (world space).
            compact: If True, renumber the result densely (constraints are
                remapped accordingly).

        Returns:
            Local-space Mesh with a normal overlay.

        Raises:
            TerraTileError: If required parameters are not set.
            InvalidGridError: If the grid is malformed.
        """
        settings = self.build_settings()

        mesh, constraints, stats = build_mesh_from_samples(
            self._grid, settings, crop_bounds
        )

        subdivision_stats = None
        if self._subdivision is not None:
            _, subdivision_stats = apply_interior_subdivision(
                mesh, constraints, self._subdivision
            )

        if compact:
            compacted, vertex_map = mesh.compact()
            constraints = _remap_constraints(mesh, compacted, constraints, vertex_map)
            mesh = compacted

        self._mesh = mesh
        self._constraints = constraints
        self._stats = stats
        self._subdivision_stats = subdivision_stats
        self._crop_bounds = crop_bounds
        return mesh

    def get_mesh(self) -> Mesh | None:
        """Return the built mesh (available after build)."""
        return self._mesh

    def get_constraints(self) -> MeshConstraints | None:
        """Return the constraints of the built mesh (available after build)."""
        return self._constraints

    def get_stats(self) -> BuilderStats | None:
        """Return the build statistics (available after build)."""
        return self._stats

    def get_subdivision_stats(self) -> SubdivisionStats | None:
        """Return the subdivision statistics, or None if subdivision was off."""
        return self._subdivision_stats

    def get_mesh_info(self) -> dict:
        """Return information about the configuration and built mesh.

        Returns:
            Dictionary with configuration and statistics.
        """
        info = {
            "grid_x": self._grid.grid_x,
            "grid_y": self._grid.grid_y,
            "origin_xy": self._grid.origin_xy,
            "cell_size": self._cell_size,
        }

        if self._crop_bounds is not None:
            info["crop_bounds"] = self._crop_bounds.bounds

        if self._mesh is not None:
            info["n_vertices"] = self._mesh.vertex_count
            info["n_triangles"] = self._mesh.triangle_count

        if self._stats is not None:
            info.update(self._stats.as_dict())

        if self._subdivision_stats is not None:
            info["subdivision"] = self._subdivision_stats.as_dict()

        return info
