import pytest

from geodata.core import zones
from geodata.models import BoundingBox


def test_generate_grid_covers_box_inclusively():
    bbox = BoundingBox(0.0, 1.0, 0.0, 1.0)

    grid = zones.generate_grid(bbox, 0.25)

    assert len(grid) == 25
    assert grid[0].name == "Grid-1"
    assert grid[-1].name == "Grid-25"
    assert (grid[0].latitude, grid[0].longitude) == (0.0, 0.0)
    assert (grid[-1].latitude, grid[-1].longitude) == (1.0, 1.0)
    assert all(zone.radius_meters == zones.DEFAULT_GRID_RADIUS_METERS for zone in grid)


def test_generate_grid_never_leaves_the_box_under_float_drift():
    bbox = BoundingBox(0.0, 0.3, 0.0, 0.3)

    grid = zones.generate_grid(bbox, 0.1)

    assert len(grid) == 16
    assert max(zone.latitude for zone in grid) == 0.3
    assert max(zone.longitude for zone in grid) == 0.3


def test_generate_grid_over_mexico_city_stays_in_bounds():
    bbox = BoundingBox(19.2, 19.6, -99.35, -99.0)

    grid = zones.generate_grid(bbox, 0.04)

    assert len(grid) == 11 * 9
    for zone in grid:
        assert bbox.lat_min <= zone.latitude <= bbox.lat_max
        assert bbox.lng_min <= zone.longitude <= bbox.lng_max
    assert len({zone.name for zone in grid}) == len(grid)


def test_generate_grid_rejects_bad_input():
    bbox = BoundingBox(0.0, 1.0, 0.0, 1.0)
    with pytest.raises(ValueError):
        zones.generate_grid(bbox, 0)
    with pytest.raises(ValueError):
        zones.generate_grid(BoundingBox(1.0, 0.0, 0.0, 1.0), 0.5)


def test_generate_zones_puts_grid_before_curated():
    bbox = BoundingBox(0.0, 1.0, 0.0, 1.0)

    combined = zones.generate_zones(bbox, 0.5, zones.DENUE_CURATED_ZONES)

    assert [zone.name for zone in combined[:9]] == [f"Grid-{i}" for i in range(1, 10)]
    assert combined[9:] == list(zones.DENUE_CURATED_ZONES)
    assert zones.describe(combined) == f"{len(combined)} zones (9 grid, {len(zones.DENUE_CURATED_ZONES)} curated)"


def test_curated_zones_are_valid():
    for zone in zones.GOOGLE_CURATED_ZONES + zones.DENUE_CURATED_ZONES:
        assert zone.radius_meters > 0
        assert 19.0 < zone.latitude < 19.7
        assert -99.4 < zone.longitude < -98.9


def test_grid_key_truncates_to_hundredths():
    assert zones.grid_key(19.4326, -99.1332) == "1943--9913"
    assert zones.grid_key(19.4399, -99.1301) == zones.grid_key(19.4326, -99.1332)
