# services/units.py
import re
import logging
from enum import Enum
from typing import Optional, Tuple

logger = logging.getLogger("truckhazard.units")


class Unit(str, Enum):
    METERS = "m"
    FEET = "ft"
    METRIC_TONS = "t"
    POUNDS = "lbs"


# ----------------- unit helpers -----------------
FEET_TO_METERS = 0.3048
POUNDS_TO_KG = 0.453592
TONS_TO_KG = 1000.0

def feet_to_meters(ft: float) -> float:
    return ft * FEET_TO_METERS

def meters_to_feet(m: float) -> float:
    return m / FEET_TO_METERS

def pounds_to_kg(lb: float) -> float:
    return lb * POUNDS_TO_KG

def metric_tons_to_kg(t: float) -> float:
    return t * TONS_TO_KG

def to_meters(value: float, unit: Unit) -> float:
    if unit == Unit.FEET:
        return feet_to_meters(value)
    if unit == Unit.METERS:
        return value
    raise ValueError(f"Not a length unit: {unit!r}")

def to_kilograms(value: float, unit: Unit) -> float:
    if unit == Unit.POUNDS:
        return pounds_to_kg(value)
    if unit == Unit.METRIC_TONS:
        return metric_tons_to_kg(value)
    raise ValueError(f"Not a mass unit: {unit!r}")


# ----------------- parsing -----------------
_NON_NUMERIC = re.compile(r"[^0-9.]")
_DECIMAL = re.compile(r"^(?:\d+(?:\.\d+)?|\.\d+)$")
# 11'6", 11' 6", 11'6'', 13', 12 ft, 12ft 6in, 12 feet
_FEET_INCHES = re.compile(
    r"""^(\d+(?:\.\d+)?)\s*(?:'|ft|feet|foot)\s*(?:(\d+(?:\.\d+)?)\s*(?:"|''|in|inch|inches)?)?$"""
)
_FEET_MARKERS = ("'", "ft", "feet", "foot")


def _number(text: str) -> Optional[float]:
    """Keep digits and '.', then parse. None on empty or multiple decimal points."""
    digits = _NON_NUMERIC.sub("", text)
    if not _DECIMAL.match(digits):
        return None
    return float(digits)


def parse_dimension(raw: Optional[str]) -> Optional[Tuple[float, Unit]]:
    """
    Parse an OSM maxheight/maxwidth/maxlength value.

    "3.5", "3.5 m", "3.5m" -> (3.5, m)
    "11'6\"" -> (11.5, ft)   inches folded into decimal feet
    "13'", "13 ft" -> (13.0, ft)
    Anything without a usable non-negative number returns None.
    """
    if raw is None:
        return None
    cleaned = str(raw).strip().lower()
    if not cleaned or "-" in cleaned:
        return None

    if any(marker in cleaned for marker in _FEET_MARKERS):
        m = _FEET_INCHES.match(cleaned)
        if not m:
            return None
        feet = float(m.group(1))
        inches = float(m.group(2) or 0.0)
        return feet + inches / 12.0, Unit.FEET

    value = _number(cleaned)
    if value is None:
        return None
    return value, Unit.METERS


def parse_weight(raw: Optional[str]) -> Optional[Tuple[float, Unit]]:
    """
    Parse an OSM maxweight value. "10", "10 t", "10t" are metric tons;
    "22000 lbs" / "22000 lb" are pounds.
    """
    if raw is None:
        return None
    cleaned = str(raw).strip().lower()
    if not cleaned or "-" in cleaned:
        return None
    value = _number(cleaned)
    if value is None:
        return None
    unit = Unit.POUNDS if "lb" in cleaned else Unit.METRIC_TONS
    return value, unit


def parse_restriction_value(key: str, raw: Optional[str]) -> Optional[Tuple[float, Unit]]:
    """Dispatch on the OSM tag key (maxheight, maxweight, maxwidth, maxlength)."""
    if key == "maxweight":
        parsed = parse_weight(raw)
    else:
        parsed = parse_dimension(raw)
    if parsed is None:
        logger.debug("Unparseable %s value: %r", key, raw)
    return parsed
