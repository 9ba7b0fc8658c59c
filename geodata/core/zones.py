"""Zones scanned over Mexico City: hand-picked areas plus a uniform lat/lng grid."""

import math
from typing import Iterable, List, Sequence

from geodata.models import BoundingBox, Zone

DEFAULT_GRID_RADIUS_METERS = 3000.0

# Tolerates float noise such as (19.6 - 19.2) / 0.04 == 9.999999999999998.
_STEP_EPSILON = 1e-9

_VIP_ZONES = (
    Zone(19.4326, -99.1332, "Centro Histórico - Zócalo", 4000.0),
    Zone(19.4343, -99.1331, "Centro - Catedral", 3000.0),
    Zone(19.4350, -99.1420, "Centro - Alameda Central", 3500.0),
    Zone(19.4250, -99.1500, "Centro - Bellas Artes", 3000.0),
    Zone(19.4200, -99.1719, "Polanco - Masaryk", 4000.0),
    Zone(19.4260, -99.1820, "Polanco - Antara", 3000.0),
    Zone(19.4180, -99.1650, "Polanco - Parque Lincoln", 3000.0),
    Zone(19.4483, -99.2065, "Chapultepec - Bosque", 5000.0),
    Zone(19.4520, -99.1820, "Chapultepec - Museo Antropología", 3000.0),
    Zone(19.4250, -99.2100, "Chapultepec - Auditorio", 3000.0),
    Zone(19.4180, -99.1750, "Zona Rosa - Reforma", 3500.0),
    Zone(19.4220, -99.1680, "Zona Rosa - Ángel", 3000.0),
    Zone(19.3623, -99.1763, "Condesa - Parque México", 3500.0),
    Zone(19.3650, -99.1850, "Condesa - Amsterdam", 3000.0),
    Zone(19.3700, -99.1650, "Roma Norte", 3500.0),
    Zone(19.3580, -99.1700, "Roma Sur", 3000.0),
    Zone(19.3550, -99.1870, "Coyoacán - Centro", 4000.0),
    Zone(19.3520, -99.1810, "Coyoacán - Jardín Centenario", 3000.0),
    Zone(19.3500, -99.1750, "Coyoacán - Frida Kahlo", 3000.0),
    Zone(19.3460, -99.1790, "San Ángel", 3500.0),
    Zone(19.3470, -99.1890, "San Ángel - Bazar Sábado", 2500.0),
    Zone(19.3600, -99.2740, "Santa Fe - Centro", 5000.0),
    Zone(19.3650, -99.2650, "Santa Fe - Samara", 3500.0),
    Zone(19.3570, -99.2700, "Santa Fe - Parque La Mexicana", 3000.0),
)

_SPORTS_ZONES = (
    Zone(19.3029, -99.1504, "Estadio Azteca", 4000.0),
    Zone(19.3000, -99.1550, "Estadio Azteca - Norte", 3000.0),
    Zone(19.3050, -99.1450, "Estadio Azteca - Sur", 3000.0),
    Zone(19.4110, -99.2007, "Estadio Azul", 3500.0),
    Zone(19.4733, -99.2467, "Estadio CU", 4000.0),
    Zone(19.4036, -99.1915, "Palacio de los Deportes", 3000.0),
    Zone(19.4510, -99.1370, "Foro Sol/Autódromo", 4000.0),
    Zone(19.4050, -99.0960, "Arena CDMX", 3000.0),
)

_PERIPHERAL_ZONES = (
    Zone(19.4970, -99.1050, "Basílica de Guadalupe", 4000.0),
    Zone(19.5100, -99.1200, "Villa de Guadalupe", 3500.0),
    Zone(19.5200, -99.1500, "Lindavista", 3500.0),
    Zone(19.4850, -99.1280, "La Villa - Mercado", 3000.0),
    Zone(19.2800, -99.1790, "Tlalpan Centro", 4000.0),
    Zone(19.2900, -99.1700, "Tlalpan - Parque Nacional", 3500.0),
    Zone(19.2971, -99.1808, "Cuicuilco", 3500.0),
    Zone(19.2600, -99.1550, "Tlalpan - Carretera Picacho", 3000.0),
    Zone(19.2900, -99.1870, "Xochimilco Centro", 4000.0),
    Zone(19.2750, -99.1020, "Xochimilco - Embarcadero", 3500.0),
    Zone(19.4285, -99.0730, "Aeropuerto AICM", 5000.0),
    Zone(19.4000, -99.0850, "Terminal Aérea", 3500.0),
    Zone(19.3700, -99.0900, "Iztacalco", 3500.0),
    Zone(19.3510, -99.0730, "Iztapalapa Norte", 3500.0),
    Zone(19.3200, -99.0900, "Iztapalapa Centro", 3500.0),
    Zone(19.3400, -99.2900, "Cuajimalpa", 3500.0),
)

_COMMERCIAL_ZONES = (
    Zone(19.3900, -99.1700, "Insurgentes Sur - Del Valle", 4000.0),
    Zone(19.3750, -99.1750, "Insurgentes - WTC", 3500.0),
    Zone(19.3920, -99.1730, "Del Valle Centro", 3000.0),
    Zone(19.3688, -99.1812, "Universidad - Manacar", 3500.0),
    Zone(19.3670, -99.1660, "Universidad - Plaza", 3000.0),
    Zone(19.3600, -99.1645, "Cineteca Nacional", 2500.0),
    Zone(19.4400, -99.2040, "Plaza Carso - Soumaya", 3500.0),
    Zone(19.4420, -99.2065, "Nuevo Polanco", 3000.0),
)

GOOGLE_CURATED_ZONES = _VIP_ZONES + _SPORTS_ZONES + _PERIPHERAL_ZONES + _COMMERCIAL_ZONES

DENUE_CURATED_ZONES = (
    Zone(19.4326, -99.1332, "Centro Histórico - Zócalo", 4000.0),
    Zone(19.4200, -99.1719, "Polanco - Masaryk", 4000.0),
    Zone(19.4483, -99.2065, "Chapultepec - Bosque", 5000.0),
    Zone(19.4180, -99.1750, "Zona Rosa - Reforma", 3500.0),
    Zone(19.3623, -99.1763, "Condesa - Parque México", 3500.0),
    Zone(19.3700, -99.1650, "Roma Norte", 3500.0),
    Zone(19.3550, -99.1870, "Coyoacán - Centro", 4000.0),
    Zone(19.3460, -99.1790, "San Ángel", 3500.0),
    Zone(19.3600, -99.2740, "Santa Fe - Centro", 5000.0),
    Zone(19.3029, -99.1504, "Estadio Azteca", 4000.0),
    Zone(19.4110, -99.2007, "Estadio Azul", 3500.0),
    Zone(19.4733, -99.2467, "Estadio CU", 4000.0),
)


def _step_count(span: float, step: float) -> int:
    """Number of grid lines from min to max inclusive."""
    return math.floor(span / step + _STEP_EPSILON) + 1


def generate_grid(
    bbox: BoundingBox,
    step: float,
    radius_meters: float = DEFAULT_GRID_RADIUS_METERS,
    start_index: int = 1,
) -> List[Zone]:
    """Tile ``bbox`` row by row, computing each point from an integer index.

    Points are never accumulated, so float drift cannot push the loop past
    the max edge or make it run forever.
    """
    if step <= 0:
        raise ValueError("grid step must be positive")
    if bbox.lat_min > bbox.lat_max or bbox.lng_min > bbox.lng_max:
        raise ValueError("bounding box min must not exceed max")

    rows = _step_count(bbox.lat_max - bbox.lat_min, step)
    cols = _step_count(bbox.lng_max - bbox.lng_min, step)

    zones: List[Zone] = []
    counter = start_index
    for row in range(rows):
        lat = min(bbox.lat_min + row * step, bbox.lat_max)
        for col in range(cols):
            lng = min(bbox.lng_min + col * step, bbox.lng_max)
            zones.append(Zone(lat, lng, f"Grid-{counter}", radius_meters))
            counter += 1
    return zones


def generate_zones(bbox: BoundingBox, step: float, curated: Iterable[Zone] = ()) -> List[Zone]:
    """Grid zones followed by the curated ones; overlap is left to record dedup."""
    zones = generate_grid(bbox, step)
    zones.extend(curated)
    return zones


def grid_key(latitude: float, longitude: float) -> str:
    """Cell key with a resolution of 0.01 degrees (roughly one kilometre)."""
    return f"{int(latitude * 100)}-{int(longitude * 100)}"


def describe(zones: Sequence[Zone]) -> str:
    grid = sum(1 for zone in zones if zone.name.startswith("Grid-"))
    return f"{len(zones)} zones ({grid} grid, {len(zones) - grid} curated)"
