from __future__ import annotations

from typing import NamedTuple


class MapPoint(NamedTuple):
    x: float
    y: float


# Normalized 0-100 map space, origin top-left.
REGION_COORDINATES: dict[str, MapPoint] = {
    "Dubai": MapPoint(62, 58),
    "Abu Dhabi": MapPoint(45, 65),
    "Sharjah": MapPoint(65, 56),
    "Ajman": MapPoint(67, 54),
    "Ras Al Khaimah": MapPoint(70, 42),
    "Fujairah": MapPoint(75, 52),
    "Umm Al Quwain": MapPoint(68, 50),
    "Al Ain": MapPoint(52, 68),
}

FALLBACK_REGION = "Dubai"

# Outline drawn behind the bubbles, same coordinate space.
MAP_OUTLINE: list[tuple[float, float]] = [
    (72, 38), (75, 45), (76, 50), (75, 55), (70, 58), (68, 60), (65, 62),
    (60, 64), (55, 66), (50, 68), (45, 69), (40, 68), (35, 66), (32, 63),
    (30, 59), (28, 54), (28, 48), (30, 43), (33, 39), (37, 36), (42, 34),
    (48, 33), (54, 33), (60, 34), (65, 36), (69, 38),
]


def lookup(region: str) -> MapPoint:
    return REGION_COORDINATES.get(region, REGION_COORDINATES[FALLBACK_REGION])


def is_known(region: str) -> bool:
    return region in REGION_COORDINATES
