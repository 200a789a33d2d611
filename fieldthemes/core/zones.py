# Field Themes zone taxonomy and field layout
#
# Zones are named placement regions around the field center. The layout mirrors the
# in-game hex board (5 columns x 8 rows, player rows 0-3, enemy rows 4-7) so that zone
# markers line up with where the runtime spawns theme decorations.

from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum
from typing import Any, Iterable, List, Optional, Tuple

Vec3 = Tuple[float, float, float]


class Zone(Enum):
    GROUND = "ground"              # Under/around the hex grid (catch-all)
    BACK_LEFT = "back_left"        # Behind player, left corner
    BACK_RIGHT = "back_right"
    BACK_CENTER = "back_center"
    SIDE_LEFT = "side_left"        # Beside the field
    SIDE_RIGHT = "side_right"
    FRONT_LEFT = "front_left"      # Enemy side
    FRONT_RIGHT = "front_right"
    FRONT_CENTER = "front_center"  # Units fight here
    BENCH_AREA = "bench_area"      # Behind the bench slots
    SURROUNDING = "surrounding"    # Far perimeter, no marker

    @classmethod
    def parse(cls, value: Any) -> "Zone":
        """Map a zone value (enum, name or serialized string) to a Zone; unknown -> GROUND."""
        if isinstance(value, Zone):
            return value
        if isinstance(value, str):
            s = value.strip().lower()
            for z in cls:
                if s == z.value or s == z.name.lower():
                    return z
        return cls.GROUND

    @property
    def label(self) -> str:
        return self.value.replace("_", " ").title()


# Markers in enumeration order; ties during classification go to the earliest.
MARKER_ZONES: Tuple[Zone, ...] = (
    Zone.GROUND,
    Zone.BACK_LEFT,
    Zone.BACK_RIGHT,
    Zone.BACK_CENTER,
    Zone.SIDE_LEFT,
    Zone.SIDE_RIGHT,
    Zone.FRONT_LEFT,
    Zone.FRONT_RIGHT,
    Zone.FRONT_CENTER,
    Zone.BENCH_AREA,
)


def _as_vec3(value: Iterable[float]) -> Vec3:
    x, y, z = (float(v) for v in value)
    return (x, y, z)


@dataclass(frozen=True)
class FieldLayout:
    """
    Geometry of the playing field in Blender coordinates (Z-up): X runs across the
    field and Y runs from the player side (negative) to the enemy side.
    """
    grid_width: int = 5
    grid_height: int = 8
    hex_radius: float = 0.5
    origin: Vec3 = (0.0, 0.0, 0.0)

    def marker_position(self, zone: Zone) -> Vec3:
        """Marker position for a zone, relative to the field origin."""
        hex_width = self.hex_radius * 1.732
        hex_height = self.hex_radius * 2.0
        row_spacing = self.hex_radius * 1.5
        total_depth = (self.grid_height - 1) * row_spacing + hex_height

        row0_y = -total_depth / 2.0 + hex_height / 2.0                # player front row
        last_row_y = row0_y + (self.grid_height - 1) * row_spacing   # enemy front row
        half_width = (self.grid_width * hex_width) / 2.0

        back_y = row0_y - 2.0
        front_y = last_row_y + 2.0

        positions = {
            Zone.BACK_LEFT: (-half_width - 1.0, back_y, 0.0),
            Zone.BACK_RIGHT: (half_width + 1.0, back_y, 0.0),
            Zone.BACK_CENTER: (0.0, back_y - 1.0, 0.0),
            Zone.SIDE_LEFT: (-half_width - 2.0, 0.0, 0.0),
            Zone.SIDE_RIGHT: (half_width + 2.0, 0.0, 0.0),
            Zone.FRONT_LEFT: (-half_width - 1.0, front_y, 0.0),
            Zone.FRONT_RIGHT: (half_width + 1.0, front_y, 0.0),
            Zone.FRONT_CENTER: (0.0, front_y + 1.0, 0.0),
            Zone.BENCH_AREA: (0.0, row0_y - 1.5, 0.0),
        }
        return positions.get(zone, (0.0, 0.0, 0.0))

    def markers(self) -> List[Tuple[Zone, Vec3]]:
        return [(z, self.marker_position(z)) for z in MARKER_ZONES]

    def to_local(self, world_position: Iterable[float]) -> Vec3:
        wx, wy, wz = _as_vec3(world_position)
        ox, oy, oz = self.origin
        return (wx - ox, wy - oy, wz - oz)

    def to_world(self, local_position: Iterable[float]) -> Vec3:
        lx, ly, lz = _as_vec3(local_position)
        ox, oy, oz = self.origin
        return (lx + ox, ly + oy, lz + oz)

    def classify(self, local_position: Optional[Iterable[float]]) -> Zone:
        """
        Nearest marker wins; ties keep the first enumerated marker.
        Height is ignored so props stacked on top of each other share a zone.
        """
        if local_position is None:
            return Zone.GROUND
        px, py, _pz = _as_vec3(local_position)
        best = Zone.GROUND
        best_dist = math.inf
        for zone, (mx, my, _mz) in self.markers():
            dist = math.hypot(px - mx, py - my)
            if dist < best_dist:
                best_dist = dist
                best = zone
        return best
