from datetime import datetime, timedelta
from zoneinfo import ZoneInfo

from tripmemories.config.settings import StaypointSettings
from tripmemories.domain.models import Photo
from tripmemories.vacation.staypoints import StaypointDetector

TZ = ZoneInfo("Europe/Berlin")
START = datetime(2025, 6, 5, 10, 0, tzinfo=TZ)


def _photo(pid: int, minutes: int, lat: float, lon: float) -> Photo:
    return Photo(id=pid, taken_at=START + timedelta(minutes=minutes), lat=lat, lon=lon)


def test_lingering_window_becomes_a_staypoint():
    cafe = [_photo(i, i * 10, 52.52 + i * 0.0001, 13.405) for i in range(5)]
    walk = [_photo(10, 90, 52.565, 13.405), _photo(11, 95, 52.566, 13.405)]

    staypoints = StaypointDetector(StaypointSettings()).detect(walk + cafe)

    assert len(staypoints) == 1
    sp = staypoints[0]
    assert sp.member_ids == (0, 1, 2, 3, 4)
    assert sp.dwell_seconds == 40 * 60
    assert sp.start == cafe[0].taken_at and sp.end == cafe[-1].taken_at
    assert abs(sp.lat - 52.5202) < 1e-6


def test_short_stops_are_not_staypoints():
    photos = [_photo(i, i * 3, 52.52, 13.405) for i in range(3)]

    assert StaypointDetector(StaypointSettings()).detect(photos) == []


def test_fewer_than_two_gps_samples():
    photos = [_photo(1, 0, 52.52, 13.405), Photo(id=2, taken_at=START + timedelta(hours=1))]

    assert StaypointDetector(StaypointSettings()).detect(photos) == []


def test_calibration_without_adaptation_uses_configured_values():
    settings = StaypointSettings(adaptive=False, radius_km=0.3, min_dwell_minutes=30)
    photos = [_photo(i, i * 10, 52.52, 13.405) for i in range(3)]

    assert StaypointDetector(settings).calibrate(photos) == (0.3, 1800)


def test_calibration_stays_within_configured_bounds():
    settings = StaypointSettings()
    detector = StaypointDetector(settings)
    # Sparse, long-distance day: loose end of the range.
    road_trip = [_photo(i, i * 120, 52.52 + i * 0.5, 13.405) for i in range(4)]
    # Dense, compact day: tight end of the range.
    city = [_photo(i, i * 2, 52.52 + i * 0.0001, 13.405) for i in range(60)]

    loose_radius, loose_dwell = detector.calibrate(road_trip)
    tight_radius, tight_dwell = detector.calibrate(city)

    assert settings.min_radius_km <= tight_radius < loose_radius <= settings.max_radius_km
    assert settings.min_dwell_floor_minutes * 60 <= tight_dwell < loose_dwell <= settings.max_dwell_minutes * 60


def test_dbscan_fallback_finds_revisited_place():
    # The same square visited twice with a detour in between: no single sequential window lingers long enough.
    photos = [
        _photo(1, 0, 52.52, 13.405),
        _photo(2, 8, 52.5201, 13.405),
        _photo(3, 12, 52.54, 13.405),
        _photo(4, 20, 52.5202, 13.405),
        _photo(5, 26, 52.5201, 13.4051),
        _photo(6, 30, 52.56, 13.405),
    ]

    staypoints = StaypointDetector(StaypointSettings()).detect(photos)

    assert len(staypoints) == 1
    assert staypoints[0].member_ids == (1, 2, 4, 5)
    assert staypoints[0].dwell_seconds == 26 * 60
