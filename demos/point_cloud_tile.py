"""
Point Cloud Tile Demo

This script demonstrates using terratile to turn a scattered point cloud
into a cropped, seam-safe terrain tile mesh.

Usage:
    python point_cloud_tile.py

The script will:
1. Generate a synthetic point cloud of a hill with a circular pond
2. Plan an overscanned sampling grid for one tile
3. Resample the points onto the grid
4. Build the tile mesh with marching squares around the pond
5. Refine the interior with one level of PN subdivision
"""

import numpy as np

from terratile import CropBounds, GridSampler, TileMeshBuilder, plan_grid


def make_point_cloud(n_points=20000, size=2000.0, seed=0):
    rng = np.random.default_rng(seed)
    xy = rng.uniform(0.0, size, size=(n_points, 2))
    r = np.hypot(xy[:, 0] - size / 2, xy[:, 1] - size / 2)
    z = 150.0 * np.exp(-((r / (0.35 * size)) ** 2))

    # Mask out a pond (mask 0 inside radius 200)
    pond = np.hypot(xy[:, 0] - 600.0, xy[:, 1] - 700.0)
    mask = np.clip((pond - 150.0) / 100.0, 0.0, 1.0)
    return xy, z, mask


def main():
    xy, z, mask = make_point_cloud()

    # Tile parameters
    crop = CropBounds(0.0, 0.0, 1000.0, 1000.0)
    cell_size = 25.0

    print("Building point cloud tile...")
    print(f"  Crop bounds: {crop.bounds}")
    print(f"  Cell size: {cell_size} m")

    plan = plan_grid(crop, cell_size=cell_size, overscan_cells=1)
    grid = GridSampler(xy, z, masks=mask).sample(plan, method="idw")

    builder = (
        TileMeshBuilder(grid)
        .set_cell_size(cell_size)
        .set_mask_threshold(0.5)
        .set_subdivision(levels=1, pn_strength=0.25)
    )
    mesh = builder.build(crop)

    info = builder.get_mesh_info()
    positions = mesh.positions_array()
    print(f"\nMesh generated successfully:")
    print(f"  Grid: {info['grid_x']} x {info['grid_y']}")
    print(f"  Cells solid/empty/mixed: {info['cells_solid']}/{info['cells_empty']}/{info['cells_mixed']}")
    print(f"  Number of vertices: {mesh.vertex_count}")
    print(f"  Number of triangles: {mesh.triangle_count}")
    print(f"  Subdivision: {info['subdivision']}")
    print(f"  X range: [{positions[:, 0].min():.0f}, {positions[:, 0].max():.0f}] m (local)")
    print(f"  Z range: [{positions[:, 2].min():.1f}, {positions[:, 2].max():.1f}] m")

    return mesh


if __name__ == "__main__":
    main()
