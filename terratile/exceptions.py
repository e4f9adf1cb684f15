"""Custom exceptions for the terratile package."""


class TerraTileError(Exception):
    """Base exception for terratile package."""

    pass


class InvalidInputError(TerraTileError):
    """Structural precondition of a build call was violated."""

    pass


class InvalidGridError(InvalidInputError):
    """Sample grid has bad dimensions or a mismatched sample count."""

    pass


class BoundsError(TerraTileError):
    """Invalid or degenerate bounding box."""

    pass


class GridTooLargeError(TerraTileError):
    """Planned grid exceeds the allowed number of grid points."""

    pass


class MeshTopologyError(TerraTileError):
    """Invalid vertex, edge or triangle handle."""

    pass


class SamplingError(TerraTileError):
    """Resampling scattered data onto a grid failed."""

    pass
