"""Geometric primitives shared by the grid and mesh modules."""

from terratile.geometry.bounds import CropBounds
from terratile.geometry.vectors import UP, lerp, normalize_safe

__all__ = ["CropBounds", "UP", "lerp", "normalize_safe"]
