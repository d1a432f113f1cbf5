"""
Shared pytest fixtures for the hazard monitor tests.
"""

import os
import sys
import threading

import pytest

# Add project root to path for imports
PROJECT_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
sys.path.insert(0, PROJECT_ROOT)

from services.geo import offset_point  # noqa: E402

ORIGIN = (40.0, -75.0)


@pytest.fixture
def anyio_backend():
    # The monitor schedules asyncio tasks directly
    return "asyncio"


@pytest.fixture
def straight_route():
    """Factory: n points heading due north from ORIGIN, `spacing_m` apart."""
    def _build(n, spacing_m, start=ORIGIN, bearing=0.0):
        pts = [start]
        for _ in range(n - 1):
            pts.append(offset_point(pts[-1][0], pts[-1][1], spacing_m, bearing))
        return pts
    return _build


class FakeSource:
    """Stands in for OverpassRestrictionSource; returns canned records."""

    def __init__(self, records=None):
        self.records = list(records or [])
        self.calls = []

    def fetch_restrictions(self, route):
        self.calls.append(list(route))
        return list(self.records)


class BlockingSource(FakeSource):
    """First fetch blocks until `release` is set; later fetches return nothing."""

    def __init__(self, records=None):
        super().__init__(records)
        self.release = threading.Event()
        self.started = threading.Event()

    def fetch_restrictions(self, route):
        self.calls.append(list(route))
        if len(self.calls) == 1:
            self.started.set()
            self.release.wait(timeout=5)
            return list(self.records)
        return []


@pytest.fixture
def fake_source():
    return FakeSource


@pytest.fixture
def blocking_source():
    return BlockingSource
