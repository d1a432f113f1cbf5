# services/overpass.py
import os
import time
import logging
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

import requests
from dotenv import load_dotenv

from services.geo import Coordinate, sample_route, valid_coordinate
from services.hazards import RestrictionKind, RestrictionRecord
from services.units import parse_restriction_value

# Load env for local dev; in production rely on host envs
load_dotenv()

logger = logging.getLogger("truckhazard.overpass")

OVERPASS_URL = os.getenv("OVERPASS_URL", "https://overpass-api.de/api/interpreter")
OVERPASS_TIMEOUT_SEC = float(os.getenv("OVERPASS_TIMEOUT_SEC", "25"))
OSM_SEARCH_RADIUS_M = int(os.getenv("OSM_SEARCH_RADIUS_M", "100"))
OSM_SAMPLE_INTERVAL_M = float(os.getenv("OSM_SAMPLE_INTERVAL_M", "500"))
OSM_CACHE_TTL_SEC = float(os.getenv("OSM_CACHE_TTL_SEC", "3600"))

RESTRICTION_KEYS = [k.value for k in RestrictionKind]


# ----------------- query building -----------------
def build_overpass_query(points: Sequence[Coordinate], radius_m: int = OSM_SEARCH_RADIUS_M,
                         timeout_sec: int = int(OVERPASS_TIMEOUT_SEC)) -> str:
    """
    One union over every sample point and restriction key:
      way(around:R,lat,lon)["maxheight"]; ...
    `out body geom` returns tags plus the way geometry.
    """
    parts: List[str] = []
    for lat, lon in points:
        for key in RESTRICTION_KEYS:
            parts.append(f'way(around:{radius_m},{lat:.6f},{lon:.6f})["{key}"];')
    body = "\n".join(parts)
    return f"[out:json][timeout:{timeout_sec}];\n(\n{body}\n);\nout body geom;"


# ----------------- response parsing -----------------
def _element_coordinate(el: Dict[str, Any]) -> Optional[Coordinate]:
    """First geometry vertex if present, else the element's own lat/lon."""
    geom = el.get("geometry")
    candidates = []
    if isinstance(geom, list) and geom and isinstance(geom[0], dict):
        candidates.append((geom[0].get("lat"), geom[0].get("lon")))
    candidates.append((el.get("lat"), el.get("lon")))
    for lat, lon in candidates:
        try:
            lat = float(lat); lon = float(lon)
        except (TypeError, ValueError):
            continue
        if valid_coordinate(lat, lon):
            return (lat, lon)
    return None


def parse_elements(data: Dict[str, Any]) -> List[RestrictionRecord]:
    """
    Turn an Overpass JSON body into restriction records. Elements without
    tags or coordinates are skipped; tag values the unit normalizer can't read
    are dropped. Identical records from overlapping sample circles collapse.
    """
    records: List[RestrictionRecord] = []
    seen = set()
    for el in data.get("elements") or []:
        if not isinstance(el, dict):
            continue
        tags = el.get("tags")
        if not isinstance(tags, dict):
            continue
        coord = _element_coordinate(el)
        if coord is None:
            continue
        road_name = tags.get("name")
        osm_id = el.get("id") if isinstance(el.get("id"), int) else None

        for kind in RestrictionKind:
            raw = tags.get(kind.value)
            if raw is None:
                continue
            parsed = parse_restriction_value(kind.value, raw)
            if parsed is None:
                logger.debug("Dropped way %s: %s=%r", osm_id, kind.value, raw)
                continue
            value, unit = parsed
            key = (kind, value, unit, round(coord[0], 6), round(coord[1], 6))
            if key in seen:
                continue
            seen.add(key)
            records.append(RestrictionRecord(
                location=coord, kind=kind, value=value, unit=unit,
                road_name=road_name, osm_id=osm_id,
            ))
    return records


def _route_key(route: Sequence[Coordinate]) -> Tuple:
    return tuple((round(la, 6), round(lo, 6)) for la, lo in route)


# ----------------- data source -----------------
class OverpassRestrictionSource:
    """
    Fetches maxheight/maxweight/maxwidth/maxlength ways along a route from
    the Overpass API. Blocking; callers on an event loop should run it in a
    worker thread.

    Never raises for remote problems: any network error, non-2xx status or
    malformed body yields an empty list.
    """

    def __init__(
        self,
        url: str = OVERPASS_URL,
        timeout_sec: float = OVERPASS_TIMEOUT_SEC,
        radius_m: int = OSM_SEARCH_RADIUS_M,
        sample_interval_m: float = OSM_SAMPLE_INTERVAL_M,
        cache_ttl_sec: float = OSM_CACHE_TTL_SEC,
        http: Optional[requests.Session] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.url = url
        self.timeout_sec = timeout_sec
        self.radius_m = radius_m
        self.sample_interval_m = sample_interval_m
        self.cache_ttl_sec = cache_ttl_sec
        self._http = http or requests.Session()
        self._clock = clock
        # (route key, fetch time, records), always replaced whole
        self._cache: Optional[Tuple[Tuple, float, List[RestrictionRecord]]] = None

    @property
    def cached(self) -> List[RestrictionRecord]:
        return list(self._cache[2]) if self._cache else []

    def clear_cache(self) -> None:
        self._cache = None

    def _post(self, query: str) -> Optional[Dict[str, Any]]:
        try:
            r = self._http.post(self.url, data={"data": query}, timeout=self.timeout_sec)
        except requests.RequestException as e:
            logger.warning("Overpass request failed: %s", e)
            return None
        if not (200 <= r.status_code < 300):
            logger.warning("Overpass HTTP %s: %s", r.status_code, (r.text or "")[:300])
            return None
        try:
            data = r.json()
        except ValueError as e:
            logger.warning("Overpass returned malformed JSON: %s", e)
            return None
        if not isinstance(data, dict) or not isinstance(data.get("elements"), list):
            logger.warning("Overpass response has no elements array")
            return None
        return data

    def query_points(self, points: Sequence[Coordinate], radius_m: Optional[int] = None) -> Optional[List[RestrictionRecord]]:
        """Raw query; None signals failure so callers can tell it from 'nothing found'."""
        if not points:
            return []
        query = build_overpass_query(points, radius_m or self.radius_m, int(self.timeout_sec))
        data = self._post(query)
        if data is None:
            return None
        return parse_elements(data)

    def fetch_restrictions(self, route: Sequence[Coordinate]) -> List[RestrictionRecord]:
        """Restrictions within `radius_m` of the route, sampled every `sample_interval_m`."""
        if not route:
            return []
        key = _route_key(route)
        now = self._clock()
        cache = self._cache
        if cache is not None and cache[0] == key and now - cache[1] < self.cache_ttl_sec:
            logger.debug("Overpass cache hit (%d restrictions)", len(cache[2]))
            return list(cache[2])

        sampled = sample_route(route, self.sample_interval_m)
        logger.info("Querying restrictions for %d sample points", len(sampled))
        records = self.query_points(sampled)
        if records is None:
            return []

        self._cache = (key, now, list(records))
        logger.info("Found %d restrictions", len(records))
        return list(records)

    def fetch_nearby(self, coordinate: Coordinate, radius_m: int = 1000) -> List[RestrictionRecord]:
        """Restrictions around a single point; not cached."""
        return self.query_points([coordinate], radius_m=radius_m) or []
