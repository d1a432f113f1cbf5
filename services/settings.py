# services/settings.py
import os
from dataclasses import dataclass
from typing import Any, Dict, Optional

from dotenv import load_dotenv

# Load env for local dev; in production rely on host envs
load_dotenv()


def _env_flag(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    try:
        return float(raw) if raw not in (None, "") else default
    except ValueError:
        return default


@dataclass
class HazardSettings:
    """
    User-configurable knobs for hazard monitoring. Held by reference by the
    monitor, so toggles changed mid-session apply on the next cycle.
    """
    enabled: bool = True
    audio_enabled: bool = True
    warning_distance_m: float = 2400.0  # 1.5 miles
    lookahead_m: float = 2000.0
    poll_interval_s: float = 5.0
    movement_threshold_m: float = 100.0
    dedup_distance_m: float = 100.0
    match_strategy: str = "first"

    @classmethod
    def from_env(cls) -> "HazardSettings":
        return cls(
            enabled=_env_flag("HAZARD_WARNINGS_ENABLED", True),
            audio_enabled=_env_flag("HAZARD_AUDIO_ENABLED", True),
            warning_distance_m=_env_float("HAZARD_WARNING_DISTANCE_M", 2400.0),
            lookahead_m=_env_float("HAZARD_LOOKAHEAD_M", 2000.0),
            poll_interval_s=_env_float("HAZARD_POLL_INTERVAL_SEC", 5.0),
        )

    def update(self, changes: Optional[Dict[str, Any]]) -> "HazardSettings":
        """Apply non-None values in place; unknown keys are ignored."""
        for k, v in (changes or {}).items():
            if v is not None and hasattr(self, k):
                setattr(self, k, v)
        return self

    def to_dict(self) -> Dict[str, Any]:
        return {
            "enabled": self.enabled,
            "audio_enabled": self.audio_enabled,
            "warning_distance_m": self.warning_distance_m,
            "lookahead_m": self.lookahead_m,
            "poll_interval_s": self.poll_interval_s,
            "movement_threshold_m": self.movement_threshold_m,
            "dedup_distance_m": self.dedup_distance_m,
            "match_strategy": self.match_strategy,
        }


def debug_enabled() -> bool:
    return os.getenv("HAZARD_DEBUG", "0") == "1"
