# api_hazards.py
import os
import time
import uuid
import logging
from collections import deque
from typing import Annotated, Any, Deque, Dict, List, Optional, Tuple

import anyio
from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field

from services.analytics import hazard_event_record, log_event
from services.hazards import HazardEvent, VehicleProfile
from services.monitor import HazardMonitor
from services.overpass import OverpassRestrictionSource
from services.settings import HazardSettings

logger = logging.getLogger("truckhazard.api")

router = APIRouter(prefix="/hazards")

# Pending events kept per session between polls
MAX_PENDING_EVENTS = 50
# Sessions untouched this long are stopped and dropped
SESSION_TTL_SEC = float(os.getenv("HAZARD_SESSION_TTL_SEC", "1800"))

Latitude = Annotated[float, Field(ge=-90.0, le=90.0)]
Longitude = Annotated[float, Field(ge=-180.0, le=180.0)]
LatLon = Tuple[Latitude, Longitude]


class ProfileIn(BaseModel):
    height_m: float = Field(default=VehicleProfile.height_m, gt=0)
    width_m: float = Field(default=VehicleProfile.width_m, gt=0)
    length_m: float = Field(default=VehicleProfile.length_m, gt=0)
    weight_kg: float = Field(default=VehicleProfile.weight_kg, gt=0)


class SettingsIn(BaseModel):
    enabled: Optional[bool] = None
    audio_enabled: Optional[bool] = None
    warning_distance_m: Optional[float] = Field(default=None, gt=0)
    lookahead_m: Optional[float] = Field(default=None, gt=0)
    poll_interval_s: Optional[float] = Field(default=None, gt=0)
    match_strategy: Optional[str] = Field(default=None, pattern="^(first|nearest)$")


class RestrictionsRequest(BaseModel):
    route: List[LatLon]


class SessionRequest(BaseModel):
    route: List[LatLon] = Field(min_length=1)
    position: LatLon
    profile: Optional[ProfileIn] = None
    settings: Optional[SettingsIn] = None


class LocationUpdate(BaseModel):
    lat: Latitude
    lon: Longitude
    timestamp: Optional[float] = None


class HazardSession:
    def __init__(self, session_id: str, monitor: Optional[HazardMonitor] = None):
        self.id = session_id
        self.monitor = monitor
        self.events: Deque[Dict[str, Any]] = deque(maxlen=MAX_PENDING_EVENTS)
        self.touched = time.monotonic()

    def touch(self) -> None:
        self.touched = time.monotonic()

    def on_alert(self, event: HazardEvent) -> None:
        self.events.append(event.to_dict())
        pos = self.monitor.last_position if self.monitor else None
        log_event(hazard_event_record(self.id, event, pos))

    def drain(self) -> List[Dict[str, Any]]:
        out = list(self.events)
        self.events.clear()
        return out

    def status(self) -> Dict[str, Any]:
        m = self.monitor
        last = m.last_alert
        return {
            "session_id": self.id,
            "state": m.state.value,
            "paused": m.paused,
            "generation": m.generation,
            "restrictions": len(m.restrictions),
            "last_alert": last.to_dict() if last else None,
            "settings": m.settings.to_dict(),
        }


_SESSIONS: Dict[str, HazardSession] = {}


def get_restriction_source() -> OverpassRestrictionSource:
    # One source per session so its cache lives and dies with the session
    return OverpassRestrictionSource()


def _settings_changes(s: Optional[SettingsIn]) -> Dict[str, Any]:
    if s is None:
        return {}
    return {
        "enabled": s.enabled,
        "audio_enabled": s.audio_enabled,
        "warning_distance_m": s.warning_distance_m,
        "lookahead_m": s.lookahead_m,
        "poll_interval_s": s.poll_interval_s,
        "match_strategy": s.match_strategy,
    }


def _session(session_id: str) -> HazardSession:
    sess = _SESSIONS.get(session_id)
    if sess is None:
        raise HTTPException(status_code=404, detail=f"Unknown session: {session_id}")
    sess.touch()
    return sess


def evict_idle_sessions(ttl_sec: Optional[float] = None, now: Optional[float] = None) -> List[str]:
    """Stop and drop sessions no request has touched for `ttl_sec`."""
    ttl = SESSION_TTL_SEC if ttl_sec is None else ttl_sec
    now = time.monotonic() if now is None else now
    expired = [sid for sid, s in _SESSIONS.items() if now - s.touched > ttl]
    for sid in expired:
        _SESSIONS.pop(sid).monitor.stop()
        logger.info("Session %s expired after %.0fs idle", sid, ttl)
    return expired


def stop_all_sessions() -> None:
    for sess in list(_SESSIONS.values()):
        sess.monitor.stop()
    _SESSIONS.clear()


# -----------------------------
# One-shot lookup
# -----------------------------
@router.post("/restrictions")
async def restrictions_along_route(req: RestrictionsRequest,
                                   source: OverpassRestrictionSource = Depends(get_restriction_source)):
    records = await anyio.to_thread.run_sync(source.fetch_restrictions, req.route)
    return {"count": len(records), "restrictions": [r.to_dict() for r in records]}


# -----------------------------
# Monitoring sessions
# Handlers are async so every monitor call runs on the event loop.
# -----------------------------
@router.post("/sessions")
async def create_session(req: SessionRequest, wait_for_restrictions: bool = False,
                         source: OverpassRestrictionSource = Depends(get_restriction_source)):
    evict_idle_sessions()
    settings = HazardSettings.from_env().update(_settings_changes(req.settings))
    if not settings.enabled:
        raise HTTPException(status_code=409, detail="Hazard warnings are disabled.")

    p = req.profile or ProfileIn()
    profile = VehicleProfile(height_m=p.height_m, width_m=p.width_m, length_m=p.length_m, weight_kg=p.weight_kg)

    sess = HazardSession(uuid.uuid4().hex)
    sess.monitor = HazardMonitor(source, sess.on_alert, settings=settings, profile=profile)
    sess.monitor.start(req.position, req.route)
    _SESSIONS[sess.id] = sess
    logger.info("Session %s started (%d route points)", sess.id, len(req.route))

    if wait_for_restrictions:
        await sess.monitor.wait_for_restrictions()
    return sess.status()


@router.get("/sessions/{session_id}")
async def session_status(session_id: str):
    return _session(session_id).status()


@router.post("/sessions/{session_id}/location")
async def update_location(session_id: str, loc: LocationUpdate):
    sess = _session(session_id)
    event = sess.monitor.update_location((loc.lat, loc.lon))
    return {"session_id": sess.id, "event": event.to_dict() if event else None}


@router.patch("/sessions/{session_id}/settings")
async def patch_settings(session_id: str, changes: SettingsIn):
    sess = _session(session_id)
    sess.monitor.settings.update(_settings_changes(changes))
    return sess.status()


@router.post("/sessions/{session_id}/pause")
async def pause_session(session_id: str):
    sess = _session(session_id)
    sess.monitor.pause()
    return sess.status()


@router.post("/sessions/{session_id}/resume")
async def resume_session(session_id: str):
    sess = _session(session_id)
    sess.monitor.resume()
    return sess.status()


@router.post("/sessions/{session_id}/dismiss")
async def dismiss_alert(session_id: str):
    sess = _session(session_id)
    sess.monitor.dismiss()
    return sess.status()


@router.get("/sessions/{session_id}/alerts")
async def pending_alerts(session_id: str):
    sess = _session(session_id)
    return {"session_id": sess.id, "events": sess.drain()}


@router.delete("/sessions/{session_id}")
async def stop_session(session_id: str):
    sess = _SESSIONS.pop(session_id, None)
    if sess is None:
        raise HTTPException(status_code=404, detail=f"Unknown session: {session_id}")
    sess.monitor.stop()
    return {"ok": True, "session_id": session_id}
