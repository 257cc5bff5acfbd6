from datetime import date, datetime, timedelta
from zoneinfo import ZoneInfo

import pytest

from tripmemories.config.overrides import apply_settings_overrides
from tripmemories.config.settings import Settings, TransportSettings
from tripmemories.domain.models import Home, Photo, Place
from tripmemories.vacation.days.record import DaySummary
from tripmemories.vacation.runs import Run, RunDetector
from tripmemories.vacation.staypoints import Staypoint
from tripmemories.vacation.transport import TransportDayExtender

TZ = ZoneInfo("Europe/Berlin")
HOME = Home(lat=52.52, lon=13.405, radius_km=15.0, country_code="de", timezone_offset_min=120)


def _key(offset: int) -> str:
    return (date(2025, 6, 2) + timedelta(days=offset)).isoformat()


def _day(offset: int, kind: str, **fields) -> DaySummary:
    key = _key(offset)
    weekday = date.fromisoformat(key).isoweekday()
    if kind == "gap":
        return DaySummary(date=key, weekday=weekday, is_synthetic=True)
    at = datetime.fromisoformat(key).replace(hour=12, tzinfo=TZ)
    lat, lon = (52.52, 13.405) if kind == "home" else (48.137, 11.575)
    photos = [Photo(id=offset * 100 + i, taken_at=at + timedelta(minutes=i), lat=lat, lon=lon) for i in range(4)]
    defaults = dict(
        members=photos,
        gps_members=photos,
        photo_count=len(photos),
        is_away_candidate=kind == "away",
        sufficient_samples=True,
    )
    defaults.update(fields)
    return DaySummary(date=key, weekday=weekday, **defaults)


def _days(*kinds: str) -> dict[str, DaySummary]:
    return {_key(i): _day(i, kind) for i, kind in enumerate(kinds)}


def test_run_requires_contiguous_increasing_dates():
    with pytest.raises(ValueError):
        Run(dates=("2025-06-02", "2025-06-04"))
    with pytest.raises(ValueError):
        Run(dates=("2025-06-03", "2025-06-02"))
    with pytest.raises(ValueError):
        Run(dates=())

    run = Run(dates=("2025-06-02", "2025-06-03"))
    assert (run.first, run.last, len(run)) == ("2025-06-02", "2025-06-03", 2)


def test_gap_of_two_sparse_days_is_bridged():
    days = _days("home", "away", "gap", "gap", "away", "home")

    runs = RunDetector(Settings()).detect_vacation_runs(days, HOME)

    assert len(runs) == 1
    assert runs[0].dates == (_key(1), _key(2), _key(3), _key(4))
    assert runs[0].bridged == frozenset({_key(2), _key(3)})


def test_gap_of_three_sparse_days_splits_the_trip():
    days = _days("home", "away", "gap", "gap", "gap", "away", "home")

    runs = RunDetector(Settings()).detect_vacation_runs(days, HOME)

    assert [r.dates for r in runs] == [(_key(1),), (_key(5),)]


def test_bridge_limit_is_configurable():
    days = _days("away", "gap", "gap", "gap", "away")
    settings = apply_settings_overrides(Settings(), {"runs": {"max_bridge_days": 3}})

    runs = RunDetector(settings).detect_vacation_runs(days, HOME)

    assert len(runs) == 1 and len(runs[0]) == 5


def test_well_covered_home_day_is_never_bridged():
    days = _days("away", "home", "away")

    runs = RunDetector(Settings()).detect_vacation_runs(days, HOME)

    assert [r.dates for r in runs] == [(_key(0),), (_key(2),)]


def test_well_covered_home_day_without_gps_is_never_bridged():
    days = _days("away", "home", "away")
    berlin = Place(country_code="de", city="Berlin")
    at_home = [
        Photo(id=900 + i, taken_at=datetime(2025, 6, 3, 9 + i, 0, tzinfo=TZ), place=berlin) for i in range(10)
    ]
    days[_key(1)] = _day(1, "home", members=at_home, gps_members=[], photo_count=10, country_codes={"de": 10})

    runs = RunDetector(Settings()).detect_vacation_runs(days, HOME)

    assert [r.dates for r in runs] == [(_key(0),), (_key(2),)]


def test_few_home_country_photos_without_gps_are_not_sparse():
    detector = RunDetector(Settings())
    berlin = Place(country_code="de", city="Berlin")
    photos = [Photo(id=950, taken_at=datetime(2025, 6, 3, 12, 0, tzinfo=TZ), place=berlin)]
    annotated = _day(1, "home", members=photos, gps_members=[], photo_count=1, country_codes={"de": 1})
    unannotated = _day(1, "home", members=photos, gps_members=[], photo_count=1)

    assert not detector.is_sparse(annotated, HOME)
    assert detector.is_sparse(unannotated, HOME)


def test_sparse_day_away_from_home_is_bridged():
    days = _days("away", "home", "away")
    abroad = [Photo(id=999, taken_at=datetime(2025, 6, 3, 12, 0, tzinfo=TZ), lat=48.137, lon=11.575)]
    days[_key(1)] = _day(1, "home", members=abroad, gps_members=abroad, photo_count=1)

    runs = RunDetector(Settings()).detect_vacation_runs(days, HOME)

    assert len(runs) == 1
    assert runs[0].bridged == frozenset({_key(1)})


def test_dominant_staypoint_at_home_disqualifies_day():
    at = datetime(2025, 6, 2, 12, 0, tzinfo=TZ)
    sp = Staypoint(lat=52.52, lon=13.405, start=at, end=at + timedelta(hours=5), dwell_seconds=18000, member_ids=(1,))
    day = _day(0, "away", dominant_staypoints=[sp])

    detector = RunDetector(Settings())

    assert detector.dominant_inside_home(day, HOME)
    assert not detector.is_qualifying(day, HOME)


def test_lodging_day_qualifies_with_few_photos():
    day = _day(0, "home", is_away_candidate=False, has_lodging_poi=True, base_away=True, photo_count=1)

    assert RunDetector(Settings()).is_qualifying(day, HOME)


def test_transport_days_extend_a_run():
    days = _days("home", "home", "away", "away", "home", "home")
    days[_key(1)].has_airport_poi = True
    days[_key(4)].has_high_speed_transit = True

    runs = RunDetector(Settings()).detect_vacation_runs(days, HOME)

    assert len(runs) == 1
    assert runs[0].dates == (_key(1), _key(2), _key(3), _key(4))
    assert runs[0].extended == frozenset({_key(1), _key(4)})


def test_extender_crosses_synthetic_days_and_respects_bounds():
    days = _days("away", "away", "gap", "home", "home")
    days[_key(3)].has_airport_poi = True
    extender = TransportDayExtender(TransportSettings())

    dates, extended = extender.extend([_key(0), _key(1)], days)
    bounded, none = extender.extend([_key(0), _key(1)], days, upper_bound=_key(3))

    assert dates == [_key(0), _key(1), _key(2), _key(3)]
    assert extended == [_key(2), _key(3)]
    assert bounded == [_key(0), _key(1)] and none == []


def test_extension_limit_per_side():
    days = _days("away", "home", "home")
    days[_key(1)].has_airport_poi = True
    days[_key(2)].has_airport_poi = True

    dates, extended = TransportDayExtender(TransportSettings()).extend([_key(0)], days)

    assert extended == [_key(1)]
    assert dates == [_key(0), _key(1)]


def test_transit_heavy_day_is_extendable():
    extender = TransportDayExtender(TransportSettings())
    day = _day(0, "home", transit_ratio=0.8, max_speed_kmh=120.0)

    assert extender.is_transit_heavy(day)
    assert extender.is_extendable(day)
    assert not extender.is_extendable(_day(1, "away", has_airport_poi=True))
