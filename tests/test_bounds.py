import numpy as np
import pytest
from shapely.geometry import Polygon as ShapelyPolygon

from terratile import BoundsError, CropBounds


def test_center_and_size():
    bounds = CropBounds(100.0, 200.0, 300.0, 600.0)

    assert bounds.center == (200.0, 400.0)
    assert bounds.size == (200.0, 400.0)
    assert bounds.bounds == (100.0, 200.0, 300.0, 600.0)


@pytest.mark.parametrize(
    "coords",
    [
        (0.0, 0.0, 0.0, 10.0),
        (0.0, 0.0, 10.0, 0.0),
        (10.0, 0.0, 0.0, 10.0),
        (0.0, 0.0, float("nan"), 10.0),
    ],
)
def test_degenerate_bounds_rejected(coords):
    with pytest.raises(BoundsError):
        CropBounds(*coords)


def test_containment_is_strict():
    bounds = CropBounds(0.0, 0.0, 10.0, 10.0)

    assert bounds.contains_xy(5.0, 5.0)
    assert not bounds.contains_xy(0.0, 5.0)
    assert not bounds.contains_xy(10.0, 10.0)
    assert not bounds.contains_xy(-0.1, 5.0)


def test_containment_vectorised():
    bounds = CropBounds(0.0, 0.0, 10.0, 10.0)
    x = np.array([1.0, 11.0, 5.0, 10.0])
    y = np.array([1.0, 5.0, 9.9, 5.0])

    result = bounds.contains_xy(x, y)

    np.testing.assert_array_equal(result, [True, False, True, False])


def test_on_boundary():
    bounds = CropBounds(0.0, 0.0, 10.0, 10.0)

    assert bounds.on_boundary(0.005, 5.0, eps=0.01)
    assert bounds.on_boundary(5.0, 10.0, eps=0.0)
    assert not bounds.on_boundary(5.0, 5.0, eps=0.01)
    assert not bounds.on_boundary(0.02, 5.0, eps=0.01)


def test_expanded():
    bounds = CropBounds(0.0, 0.0, 10.0, 10.0).expanded(5.0)

    assert bounds.bounds == (-5.0, -5.0, 15.0, 15.0)


def test_from_shapely_uses_envelope():
    triangle = ShapelyPolygon([(0, 0), (4, 0), (2, 3)])

    bounds = CropBounds.from_shapely(triangle)

    assert bounds.bounds == (0.0, 0.0, 4.0, 3.0)


def test_equality():
    assert CropBounds(0, 0, 1, 1) == CropBounds(0.0, 0.0, 1.0, 1.0)
    assert CropBounds(0, 0, 1, 1) != CropBounds(0, 0, 2, 1)
