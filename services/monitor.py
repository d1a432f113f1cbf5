# services/monitor.py
"""
Hazard monitoring session.

One HazardMonitor drives one active route: it loads restrictions for the
whole route once, then on every position update (and on a fixed-interval
timer) evaluates the upcoming route window and forwards at most one hazard
to the alert sink.

Everything runs on a single asyncio event loop. The only blocking work, the
Overpass fetch, runs in a worker thread; its result is committed back on the
loop only if the session generation it was started for is still current, so
a fetch that outlives stop() (or a restart on a new route) is dropped.
"""
import asyncio
import logging
from enum import Enum
from typing import Callable, List, Optional, Sequence

import anyio

from services.geo import Coordinate, distance_m
from services.geometry_hazards import detect_sharp_turn
from services.hazards import HazardAlert, HazardEvent, RestrictionRecord, VehicleProfile, is_critical
from services.restrictions import match_restrictions
from services.route_window import route_window
from services.settings import HazardSettings

logger = logging.getLogger("truckhazard.monitor")

AlertSink = Callable[[HazardEvent], None]


class MonitorState(str, Enum):
    IDLE = "idle"
    MONITORING = "monitoring"


class HazardMonitor:
    def __init__(self, source, on_alert: AlertSink,
                 settings: Optional[HazardSettings] = None,
                 profile: Optional[VehicleProfile] = None):
        """
        :param source: object with a blocking fetch_restrictions(route) -> list
        :param on_alert: called on the loop with each forwarded HazardEvent
        :param settings: shared, may be mutated between cycles
        :param profile: vehicle dimensions, fixed for the session
        """
        self._source = source
        self._on_alert = on_alert
        self.settings = settings or HazardSettings()
        self.profile = profile or VehicleProfile()

        self.state = MonitorState.IDLE
        self.paused = False
        self._generation = 0
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._route: List[Coordinate] = []
        self._restrictions: List[RestrictionRecord] = []
        self._last_position: Optional[Coordinate] = None
        self._last_evaluated: Optional[Coordinate] = None
        self._last_alert: Optional[HazardAlert] = None
        self._timer_task: Optional[asyncio.Task] = None
        self._fetch_task: Optional[asyncio.Task] = None

    # ----------------- read-only views -----------------
    @property
    def generation(self) -> int:
        return self._generation

    @property
    def restrictions(self) -> List[RestrictionRecord]:
        return list(self._restrictions)

    @property
    def last_alert(self) -> Optional[HazardAlert]:
        return self._last_alert

    @property
    def last_position(self) -> Optional[Coordinate]:
        return self._last_position

    # ----------------- lifecycle -----------------
    def start(self, position: Coordinate, route: Sequence[Coordinate]) -> bool:
        """
        Begin monitoring `route`. Must be called on the event loop.
        Returns False (and stays idle) when hazard warnings are disabled.
        """
        if not self.settings.enabled:
            logger.info("Hazard monitoring disabled by user settings")
            return False
        if self.state == MonitorState.MONITORING:
            self.stop()

        self._loop = asyncio.get_running_loop()
        self._generation += 1
        generation = self._generation
        self.state = MonitorState.MONITORING
        self.paused = False
        self._route = [tuple(p) for p in route]
        self._last_position = tuple(position)

        self._fetch_task = self._loop.create_task(self._load_restrictions(generation, list(self._route)))
        self._start_timer()
        logger.info("Hazard monitoring started (generation %d, %d route points)", generation, len(self._route))
        return True

    def stop(self) -> None:
        if self.state == MonitorState.IDLE:
            return
        self._generation += 1
        self._cancel_timer()
        if self._fetch_task is not None and not self._fetch_task.done():
            self._fetch_task.cancel()
        self._fetch_task = None
        self.state = MonitorState.IDLE
        self.paused = False
        self._route = []
        self._restrictions = []
        self._last_position = None
        self._last_evaluated = None
        self._last_alert = None
        logger.info("Hazard monitoring stopped")

    def pause(self) -> None:
        """Host went to background: stop the timer, keep the session."""
        if self.state != MonitorState.MONITORING or self.paused:
            return
        self.paused = True
        self._cancel_timer()
        logger.debug("Hazard monitoring paused")

    def resume(self) -> Optional[HazardEvent]:
        if self.state != MonitorState.MONITORING or not self.paused:
            return None
        self.paused = False
        self._start_timer()
        logger.debug("Hazard monitoring resumed")
        return self.evaluate()

    def dismiss(self) -> None:
        """The on-screen warning was closed; the next detection counts as new."""
        self._last_alert = None

    async def wait_for_restrictions(self) -> None:
        task = self._fetch_task
        if task is None or task.done():
            return
        await asyncio.wait({task})

    # ----------------- position input -----------------
    def update_location(self, position: Coordinate) -> Optional[HazardEvent]:
        if self.state != MonitorState.MONITORING:
            return None
        position = tuple(position)
        self._last_position = position
        if (self._last_evaluated is not None
                and distance_m(self._last_evaluated, position) < self.settings.movement_threshold_m):
            return None
        return self.evaluate(position)

    def post_location(self, position: Coordinate) -> None:
        """Thread-safe variant of update_location for providers on other threads."""
        loop = self._loop
        if loop is None or loop.is_closed():
            return
        loop.call_soon_threadsafe(self.update_location, position)

    # ----------------- evaluation -----------------
    def evaluate(self, position: Optional[Coordinate] = None) -> Optional[HazardEvent]:
        """One cycle: window -> restrictions -> (else) geometry -> forward."""
        if self.state != MonitorState.MONITORING or not self.settings.enabled:
            return None
        position = tuple(position) if position is not None else self._last_position
        if position is None:
            return None
        self._last_evaluated = position

        window = route_window(position, self._route, self.settings.lookahead_m)
        if not window:
            return None

        alert = match_restrictions(
            position, window, self._restrictions, self.profile,
            self.settings.warning_distance_m, strategy=self.settings.match_strategy,
        )
        if alert is None:
            alert = detect_sharp_turn(position, window)
        if alert is None:
            return None
        return self._forward(alert)

    def _forward(self, alert: HazardAlert) -> HazardEvent:
        last = self._last_alert
        is_update = (
            last is not None
            and last.kind == alert.kind
            and abs(last.distance_m - alert.distance_m) <= self.settings.dedup_distance_m
        )
        self._last_alert = alert
        event = HazardEvent(
            alert=alert,
            is_update=is_update,
            play_audio=(not is_update) and is_critical(alert.hazard) and self.settings.audio_enabled,
        )
        try:
            self._on_alert(event)
        except Exception:
            logger.exception("Alert sink failed for %s", alert.kind.value)
        return event

    # ----------------- async plumbing -----------------
    async def _load_restrictions(self, generation: int, route: List[Coordinate]) -> None:
        try:
            records = await anyio.to_thread.run_sync(self._source.fetch_restrictions, route)
        except Exception:
            logger.exception("Restriction fetch failed; continuing with geometry hazards only")
            records = []
        if generation != self._generation:
            logger.debug("Discarding stale restriction fetch (generation %d, current %d)",
                         generation, self._generation)
            return
        self._restrictions = list(records or [])
        logger.info("Cached %d restrictions", len(self._restrictions))
        self.evaluate()

    async def _run_timer(self, generation: int) -> None:
        while True:
            await asyncio.sleep(self.settings.poll_interval_s)
            if generation != self._generation:
                return
            self.evaluate()

    def _start_timer(self) -> None:
        self._cancel_timer()
        if self._loop is None:
            return
        self._timer_task = self._loop.create_task(self._run_timer(self._generation))

    def _cancel_timer(self) -> None:
        if self._timer_task is not None and not self._timer_task.done():
            self._timer_task.cancel()
        self._timer_task = None
