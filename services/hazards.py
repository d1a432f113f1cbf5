# services/hazards.py
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Optional, Tuple, Union

from services.units import Unit, meters_to_feet, to_kilograms, POUNDS_TO_KG


class RestrictionKind(str, Enum):
    """OSM tag keys carrying a truck restriction."""
    MAX_HEIGHT = "maxheight"
    MAX_WEIGHT = "maxweight"
    MAX_WIDTH = "maxwidth"
    MAX_LENGTH = "maxlength"


class HazardKind(str, Enum):
    LOW_BRIDGE = "low_bridge"
    WEIGHT_LIMIT = "weight_limit"
    WIDTH_RESTRICTION = "width_restriction"
    LENGTH_RESTRICTION = "length_restriction"
    TUNNEL_RESTRICTION = "tunnel_restriction"
    SHARP_TURN = "sharp_turn"
    STEEP_GRADE = "steep_grade"


@dataclass(frozen=True)
class VehicleProfile:
    # Defaults: 13'6" x 8' x 53', 80,000 lbs
    height_m: float = 4.11
    width_m: float = 2.44
    length_m: float = 16.15
    weight_kg: float = 36287.0


# ----------------- hazard variants -----------------
@dataclass(frozen=True)
class LowBridge:
    clearance: float
    unit: Unit
    kind = HazardKind.LOW_BRIDGE

@dataclass(frozen=True)
class WeightLimit:
    limit: float
    unit: Unit
    kind = HazardKind.WEIGHT_LIMIT

@dataclass(frozen=True)
class WidthRestriction:
    width: float
    unit: Unit
    kind = HazardKind.WIDTH_RESTRICTION

@dataclass(frozen=True)
class LengthRestriction:
    length: float
    unit: Unit
    kind = HazardKind.LENGTH_RESTRICTION

@dataclass(frozen=True)
class TunnelRestriction:
    kind = HazardKind.TUNNEL_RESTRICTION

@dataclass(frozen=True)
class SharpTurn:
    kind = HazardKind.SHARP_TURN

@dataclass(frozen=True)
class SteepGrade:
    percent: float
    kind = HazardKind.STEEP_GRADE


HazardType = Union[
    LowBridge, WeightLimit, WidthRestriction, LengthRestriction,
    TunnelRestriction, SharpTurn, SteepGrade,
]

TITLES: Dict[HazardKind, str] = {
    HazardKind.LOW_BRIDGE: "LOW BRIDGE AHEAD",
    HazardKind.WEIGHT_LIMIT: "WEIGHT LIMIT AHEAD",
    HazardKind.WIDTH_RESTRICTION: "WIDTH RESTRICTION AHEAD",
    HazardKind.LENGTH_RESTRICTION: "LENGTH RESTRICTION AHEAD",
    HazardKind.TUNNEL_RESTRICTION: "TUNNEL RESTRICTION AHEAD",
    HazardKind.SHARP_TURN: "SHARP TURN AHEAD",
    HazardKind.STEEP_GRADE: "STEEP GRADE AHEAD",
}

CRITICAL: Dict[HazardKind, bool] = {
    HazardKind.LOW_BRIDGE: True,
    HazardKind.WEIGHT_LIMIT: True,
    HazardKind.WIDTH_RESTRICTION: True,
    HazardKind.LENGTH_RESTRICTION: True,
    HazardKind.TUNNEL_RESTRICTION: False,
    HazardKind.SHARP_TURN: False,
    HazardKind.STEEP_GRADE: False,
}


def _feet_inches_label(feet: float) -> str:
    whole = int(feet)
    inches = int(round((feet - whole) * 12))
    if inches == 12:
        whole, inches = whole + 1, 0
    return f"{whole}'{inches}\""

def _feet(value: float, unit: Unit) -> float:
    return value if unit == Unit.FEET else meters_to_feet(value)

def hazard_title(hazard: HazardType) -> str:
    return TITLES[hazard.kind]

def is_critical(hazard: HazardType) -> bool:
    return CRITICAL[hazard.kind]

def hazard_detail(hazard: HazardType) -> str:
    """One-line description of the limit, US units for display."""
    if isinstance(hazard, LowBridge):
        return f"Bridge clearance: {_feet_inches_label(_feet(hazard.clearance, hazard.unit))}"
    if isinstance(hazard, WeightLimit):
        lbs = to_kilograms(hazard.limit, hazard.unit) / POUNDS_TO_KG
        return f"Weight limit: {int(round(lbs))} lbs"
    if isinstance(hazard, WidthRestriction):
        return f"Width restriction: {_feet(hazard.width, hazard.unit):.1f}'"
    if isinstance(hazard, LengthRestriction):
        return f"Length restriction: {_feet(hazard.length, hazard.unit):.1f}'"
    if isinstance(hazard, TunnelRestriction):
        return "Tunnel restrictions apply - Check clearance and hazmat regulations"
    if isinstance(hazard, SharpTurn):
        return "Sharp turn ahead - Reduce speed and use caution"
    if isinstance(hazard, SteepGrade):
        return f"Steep grade: {hazard.percent:.1f}% - Use appropriate gear"
    raise TypeError(f"Unknown hazard: {hazard!r}")


# ----------------- records & alerts -----------------
@dataclass(frozen=True)
class RestrictionRecord:
    location: Tuple[float, float]  # (lat, lon)
    kind: RestrictionKind
    value: float
    unit: Unit
    road_name: Optional[str] = None
    osm_id: Optional[int] = None

    def to_hazard(self) -> HazardType:
        if self.kind == RestrictionKind.MAX_HEIGHT:
            return LowBridge(clearance=self.value, unit=self.unit)
        if self.kind == RestrictionKind.MAX_WEIGHT:
            return WeightLimit(limit=self.value, unit=self.unit)
        if self.kind == RestrictionKind.MAX_WIDTH:
            return WidthRestriction(width=self.value, unit=self.unit)
        if self.kind == RestrictionKind.MAX_LENGTH:
            return LengthRestriction(length=self.value, unit=self.unit)
        raise ValueError(f"Unknown restriction kind: {self.kind!r}")

    def to_dict(self) -> Dict:
        return {
            "lat": self.location[0],
            "lon": self.location[1],
            "kind": self.kind.value,
            "value": self.value,
            "unit": self.unit.value,
            "road_name": self.road_name,
            "osm_id": self.osm_id,
        }


@dataclass(frozen=True)
class HazardAlert:
    hazard: HazardType
    distance_m: float
    road_name: Optional[str] = None

    @property
    def kind(self) -> HazardKind:
        return self.hazard.kind

    @property
    def distance_description(self) -> str:
        distance_ft = self.distance_m * 3.28084
        if distance_ft < 300:  # ~100 m
            return "NOW"
        if distance_ft < 5280:
            return f"in {int(distance_ft)} ft"
        return f"in {distance_ft / 5280:.1f} mi"

    def to_dict(self) -> Dict:
        return {
            "kind": self.kind.value,
            "title": hazard_title(self.hazard),
            "detail": hazard_detail(self.hazard),
            "critical": is_critical(self.hazard),
            "distance_m": round(self.distance_m, 1),
            "distance_description": self.distance_description,
            "road_name": self.road_name,
        }


@dataclass(frozen=True)
class HazardEvent:
    """What the alert sink receives each time a hazard is forwarded."""
    alert: HazardAlert
    is_update: bool = False
    play_audio: bool = False

    def to_dict(self) -> Dict:
        d = self.alert.to_dict()
        d["is_update"] = self.is_update
        d["play_audio"] = self.play_audio
        return d
