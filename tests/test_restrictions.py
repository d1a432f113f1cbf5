import pytest

from services.geo import offset_point
from services.hazards import (
    HazardKind, LengthRestriction, LowBridge, RestrictionKind, RestrictionRecord,
    VehicleProfile, WeightLimit,
)
from services.restrictions import closest_window_point, match_restrictions, violates
from services.route_window import route_window
from services.units import Unit


def _rec(location, kind=RestrictionKind.MAX_HEIGHT, value=3.0, unit=Unit.METERS, name=None):
    return RestrictionRecord(location=location, kind=kind, value=value, unit=unit, road_name=name)


def _check(route, records, profile=None, warning=2400.0, strategy="first"):
    window = route_window(route[0], route, 2000)
    return match_restrictions(route[0], window, records, profile or VehicleProfile(), warning, strategy=strategy)


def test_height_margin_is_conservative(straight_route):
    route = straight_route(10, 100.0)
    truck = VehicleProfile(height_m=4.0)

    hit = _check(route, [_rec(route[3], value=4.0)], truck)
    assert hit is not None
    assert hit.kind == HazardKind.LOW_BRIDGE
    assert hit.hazard == LowBridge(clearance=4.0, unit=Unit.METERS)
    assert hit.distance_m == pytest.approx(300.0, abs=0.5)

    assert _check(route, [_rec(route[3], value=4.10)], truck) is None


def test_distance_floor_and_ceiling():
    p0 = (40.0, -75.0)
    p40 = offset_point(p0[0], p0[1], 40.0, 0.0)
    p51 = offset_point(p0[0], p0[1], 51.0, 0.0)
    p300 = offset_point(p0[0], p0[1], 300.0, 0.0)
    route = [p0, p40, p51, p300]

    assert _check(route, [_rec(p40)]) is None
    hit = _check(route, [_rec(p51)])
    assert hit is not None and hit.distance_m == pytest.approx(51.0, abs=0.01)

    # Beyond the user's warning distance
    assert _check(route, [_rec(p300)], warning=250.0) is None
    assert _check(route, [_rec(p300)], warning=300.5) is not None


def test_off_route_restriction_is_ignored(straight_route):
    route = straight_route(10, 100.0)
    beside = offset_point(route[3][0], route[3][1], 300.0, 90.0)
    near = offset_point(route[3][0], route[3][1], 150.0, 90.0)
    assert _check(route, [_rec(beside)]) is None
    assert _check(route, [_rec(near)]) is not None
    assert closest_window_point(beside, route) is None
    assert closest_window_point(near, route) == route[3]


def test_feet_heights_convert_before_comparing():
    truck = VehicleProfile(height_m=4.11)
    assert violates(_rec((0, 0), value=13.5, unit=Unit.FEET), truck)       # 4.115 m
    assert not violates(_rec((0, 0), value=14.0, unit=Unit.FEET), truck)   # 4.267 m


def test_weight_width_length_rules():
    truck = VehicleProfile()  # 36,287 kg, 2.44 m wide, 16.15 m long
    w = RestrictionKind.MAX_WEIGHT
    assert violates(_rec((0, 0), w, 36.0, Unit.METRIC_TONS), truck)
    assert not violates(_rec((0, 0), w, 40.0, Unit.METRIC_TONS), truck)
    assert violates(_rec((0, 0), w, 80000.0, Unit.POUNDS), truck)
    assert not violates(_rec((0, 0), w, 90000.0, Unit.POUNDS), truck)

    wd = RestrictionKind.MAX_WIDTH
    assert violates(_rec((0, 0), wd, 2.45), truck)
    assert not violates(_rec((0, 0), wd, 2.5), truck)

    ln = RestrictionKind.MAX_LENGTH
    assert violates(_rec((0, 0), ln, 16.2), truck)
    assert not violates(_rec((0, 0), ln, 16.3), truck)
    assert violates(_rec((0, 0), ln, 53.0, Unit.FEET), truck)


def test_mismatched_unit_never_fires():
    truck = VehicleProfile()
    bogus = _rec((0, 0), RestrictionKind.MAX_HEIGHT, 1.0, Unit.POUNDS)
    assert not violates(bogus, truck)


def test_alert_carries_variant_and_road_name(straight_route):
    route = straight_route(10, 100.0)
    rec = _rec(route[4], RestrictionKind.MAX_WEIGHT, 20.0, Unit.METRIC_TONS, name="Old Mill Bridge")
    hit = _check(route, [rec])
    assert hit.hazard == WeightLimit(limit=20.0, unit=Unit.METRIC_TONS)
    assert hit.road_name == "Old Mill Bridge"


def test_first_match_wins_by_default(straight_route):
    route = straight_route(10, 100.0)
    far = _rec(route[6], RestrictionKind.MAX_LENGTH, 10.0)
    near = _rec(route[3])
    hit = _check(route, [far, near])
    assert hit.hazard == LengthRestriction(length=10.0, unit=Unit.METERS)
    assert hit.distance_m == pytest.approx(600.0, abs=0.5)


def test_nearest_strategy_ranks_by_distance(straight_route):
    route = straight_route(10, 100.0)
    far = _rec(route[6], RestrictionKind.MAX_LENGTH, 10.0)
    near = _rec(route[3])
    hit = _check(route, [far, near], strategy="nearest")
    assert hit.kind == HazardKind.LOW_BRIDGE
    assert hit.distance_m == pytest.approx(300.0, abs=0.5)


def test_nothing_to_match(straight_route):
    route = straight_route(10, 100.0)
    assert _check(route, []) is None
    assert match_restrictions(route[0], [], [_rec(route[3])], VehicleProfile(), 2400.0) is None
    with pytest.raises(ValueError):
        _check(route, [_rec(route[3])], strategy="closest")
