# services/analytics.py
import os, json, threading
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Tuple

from services.hazards import HazardEvent

_LOCK = threading.Lock()

ANALYTICS_ENABLE = os.getenv("ANALYTICS_ENABLE", "0") == "1"
ANALYTICS_PATH = os.getenv("ANALYTICS_PATH", os.path.join(os.path.dirname(os.path.dirname(__file__)), "data", "events.jsonl"))

def _ensure_dir(path: str):
    d = os.path.dirname(path)
    if d and not os.path.exists(d):
        os.makedirs(d, exist_ok=True)

def round_coord(latlng: Optional[Tuple[float,float]], places: int = 2) -> Optional[Tuple[float,float]]:
    if not latlng:
        return None
    (lat, lng) = latlng
    return (round(float(lat), places), round(float(lng), places))

def hazard_event_record(session_id: str, event: HazardEvent, position: Optional[Tuple[float, float]]) -> Dict[str, Any]:
    """Anonymized analytics payload for a forwarded hazard (coarse position only)."""
    return {
        "type": "hazard_alert",
        "session": session_id,
        "kind": event.alert.kind.value,
        "distance_m": round(event.alert.distance_m),
        "is_update": event.is_update,
        "coord_round": list(round_coord(position)) if position else None,
    }

def log_event(event: Dict[str, Any], path: Optional[str] = None, enabled: Optional[bool] = None) -> None:
    """
    Append a single JSON event to analytics file if enabled.
    """
    if not (ANALYTICS_ENABLE if enabled is None else enabled):
        return
    path = path or ANALYTICS_PATH
    _ensure_dir(path)
    event = dict(event)
    event["ts_iso"] = datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")
    line = json.dumps(event, separators=(",", ":"), ensure_ascii=False)
    with _LOCK:
        with open(path, "a", encoding="utf-8") as f:
            f.write(line + "\n")
