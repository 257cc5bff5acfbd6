import random
from datetime import datetime, timedelta, timezone
from zoneinfo import ZoneInfo

from tripmemories.config.overrides import apply_settings_overrides, with_home
from tripmemories.config.settings import Settings
from tripmemories.domain.models import Photo, Place
from tripmemories.vacation.strategy import VacationClusterStrategy

BERLIN_TZ = ZoneInfo("Europe/Berlin")


class RecordingEmitter:
    def __init__(self):
        self.events: list[tuple[str, str, dict]] = []

    def emit(self, job, status, context):
        self.events.append((job, status, dict(context)))

    @property
    def statuses(self) -> list[str]:
        return [status for _, status, _ in self.events]


class FailingEmitter:
    def emit(self, job, status, context):
        raise RuntimeError("monitoring backend down")


def _place(country_code: str, city: str, country: str, kind: str | None = "attraction") -> Place:
    if kind == "airport":
        return Place(country_code=country_code, city=city, country=country, category="aeroway", type="aerodrome")
    if kind is None:
        return Place(country_code=country_code, city=city, country=country)
    return Place(country_code=country_code, city=city, country=country, category="tourism", type=kind)


def _day_photos(
    first_id: int,
    day: int,
    lat: float,
    lon: float,
    *,
    count: int,
    place: Place,
    tz=BERLIN_TZ,
    offset: int | None = None,
    step_minutes: int = 30,
) -> list[Photo]:
    start = datetime(2025, 6, day, 10, 0, tzinfo=tz)
    return [
        Photo(
            id=first_id + i,
            taken_at=start + timedelta(minutes=step_minutes * i),
            lat=lat + i * 0.0005,
            lon=lon,
            place=place,
            timezone_offset_min=offset,
            checksum=f"c{first_id + i:05d}",
        )
        for i in range(count)
    ]


def _home_days(days: list[int]) -> list[Photo]:
    berlin = _place("de", "Berlin", "Germany", kind=None)
    photos: list[Photo] = []
    for day in days:
        photos += _day_photos(day * 100, day, 52.52, 13.405, count=4, place=berlin)
    return photos


def _vacation_corpus() -> list[Photo]:
    """Three days at home, five days in Lisbon and Madrid, three days at home (June 2025)."""
    lisbon_tz = timezone(timedelta(hours=1))
    madrid_tz = timezone(timedelta(hours=2))
    lisbon = _place("pt", "Lisbon", "Portugal")
    madrid = _place("es", "Madrid", "Spain")

    abroad: list[Photo] = []
    for day in (5, 6, 7):
        abroad += _day_photos(day * 100, day, 38.7223, -9.1393, count=6, place=lisbon, tz=lisbon_tz, offset=60)
    for day in (8, 9):
        abroad += _day_photos(day * 100, day, 40.4168, -3.7038, count=6, place=madrid, tz=madrid_tz, offset=120)

    # Departure and return through the airport.
    abroad[0] = abroad[0].model_copy(update={"place": _place("pt", "Lisbon", "Portugal", kind="airport")})
    abroad[-1] = abroad[-1].model_copy(update={"place": _place("es", "Madrid", "Spain", kind="airport")})

    return _home_days([2, 3, 4]) + abroad + _home_days([10, 11, 12])


def _berlin_settings() -> Settings:
    return with_home(Settings(), lat=52.52, lon=13.405, country_code="de")


def test_strategy_name():
    assert VacationClusterStrategy(Settings()).name() == "vacation"


def test_week_abroad_is_one_vacation():
    photos = _vacation_corpus()

    drafts = VacationClusterStrategy(_berlin_settings(), emitter=RecordingEmitter()).cluster(photos)

    assert len(drafts) == 1
    draft = drafts[0]
    params = draft.params
    assert draft.algorithm == "vacation"
    assert params.classification == "vacation"
    assert params.classification_label == "Urlaub"
    assert (params.first_date, params.last_date) == ("2025-06-05", "2025-06-09")
    assert (params.away_days, params.nights) == (5, 4)
    assert params.countries == ["es", "pt"]
    assert params.country_change
    assert params.timezone_change
    assert params.timezones == [60, 120]
    assert params.airport_transfer
    assert params.weekend_holiday_days == 2
    assert params.score >= Settings().scoring.thresholds["vacation"]
    abroad_ids = {p.id for p in photos if p.place is not None and p.place.country_code in {"pt", "es"}}
    assert set(draft.members) == abroad_ids
    assert params.member_count == 30
    # Centroid lies between Lisbon and Madrid.
    assert 38.7 < draft.centroid.lat < 40.5
    assert -9.2 < draft.centroid.lon < -3.7


def test_inferred_home_finds_the_same_vacation():
    drafts = VacationClusterStrategy(Settings(), emitter=RecordingEmitter()).cluster(_vacation_corpus())

    assert [(d.params.first_date, d.params.last_date, d.params.classification) for d in drafts] == [
        ("2025-06-05", "2025-06-09", "vacation")
    ]


def test_saturday_outing_is_a_day_trip():
    lake = _place("de", "Baruth", "Germany", kind="attraction")
    saturday = _day_photos(700, 7, 51.89, 13.405, count=4, place=lake, step_minutes=45)
    photos = _home_days([2, 3, 4, 5, 6]) + saturday + _home_days([8])

    drafts = VacationClusterStrategy(_berlin_settings(), emitter=RecordingEmitter()).cluster(photos)

    assert len(drafts) == 1
    params = drafts[0].params
    assert params.classification == "day_trip"
    assert params.classification_label == "Tagesausflug"
    assert (params.first_date, params.last_date) == ("2025-06-07", "2025-06-07")
    assert params.nights == 0
    assert params.weekend_holiday_days == 1
    assert 60 < params.max_distance_km < 80
    assert not params.country_change
    assert drafts[0].members == [700, 701, 702, 703]


def test_lifecycle_events_are_emitted_in_order():
    emitter = RecordingEmitter()
    photos = _vacation_corpus() + [Photo(id=99999)]

    VacationClusterStrategy(_berlin_settings(), emitter=emitter).cluster(photos)

    assert emitter.statuses == ["start", "filtered", "home_determined", "days_aggregated", "completed"]
    assert {job for job, _, _ in emitter.events} == {"vacation_curation"}
    contexts = {status: context for _, status, context in emitter.events}
    assert contexts["filtered"]["dropped"] == 1
    assert contexts["home_determined"]["source"] == "configured"
    assert contexts["days_aggregated"] == {"days": 11, "synthetic_days": 0, "away_candidates": 5}
    assert contexts["completed"]["clusters"] == 1


def test_degenerate_home_is_reported_and_yields_nothing():
    emitter = RecordingEmitter()
    settings = with_home(Settings(), lat=0.0, lon=0.0)

    drafts = VacationClusterStrategy(settings, emitter=emitter).cluster(_vacation_corpus())

    assert drafts == []
    assert emitter.statuses == ["start", "filtered", "warning"]
    assert emitter.events[-1][2]["reason"] == "home_degenerate"


def test_missing_home_is_reported_and_yields_nothing():
    emitter = RecordingEmitter()
    photos = _home_days([2])

    drafts = VacationClusterStrategy(Settings(), emitter=emitter).cluster(photos)

    assert drafts == []
    assert emitter.events[-1][1:] == ("warning", {"reason": "home_unavailable", "photos": 4})


def test_no_timestamped_photos():
    emitter = RecordingEmitter()

    drafts = VacationClusterStrategy(_berlin_settings(), emitter=emitter).cluster([Photo(id=1), Photo(id=2)])

    assert drafts == []
    assert emitter.statuses == ["start", "filtered", "completed"]


def test_failing_emitter_does_not_break_clustering():
    drafts = VacationClusterStrategy(_berlin_settings(), emitter=FailingEmitter()).cluster(_vacation_corpus())

    assert len(drafts) == 1


def test_result_does_not_depend_on_input_order():
    photos = _vacation_corpus()
    shuffled = list(photos)
    random.Random(42).shuffle(shuffled)
    settings = _berlin_settings()

    first = VacationClusterStrategy(settings, emitter=RecordingEmitter()).cluster(photos)
    second = VacationClusterStrategy(settings, emitter=RecordingEmitter()).cluster(shuffled)

    assert [d.model_dump() for d in first] == [d.model_dump() for d in second]


def test_prepare_normalizes_sorts_and_deduplicates():
    strategy = VacationClusterStrategy(Settings())
    naive = Photo(id=3, taken_at=datetime(2025, 6, 2, 9, 0))
    early = Photo(id=2, taken_at=datetime(2025, 6, 2, 8, 0, tzinfo=BERLIN_TZ))
    same_time = Photo(id=1, taken_at=datetime(2025, 6, 2, 8, 0, tzinfo=BERLIN_TZ), checksum="b")
    duplicate = Photo(id=2, taken_at=datetime(2025, 6, 2, 12, 0, tzinfo=BERLIN_TZ))

    prepared = strategy.prepare([naive, duplicate, same_time, Photo(id=4), early])

    assert [p.id for p in prepared] == [2, 1, 3]
    assert prepared[2].taken_at.tzinfo is not None


def _lisbon_days(counts: dict[int, int]) -> list[Photo]:
    lisbon = _place("pt", "Lisbon", "Portugal")
    lisbon_tz = timezone(timedelta(hours=1))
    photos: list[Photo] = []
    for day, count in counts.items():
        photos += _day_photos(day * 100, day, 38.7223, -9.1393, count=count, place=lisbon, tz=lisbon_tz, offset=60)
    return photos


def _thin_trip_settings() -> Settings:
    return apply_settings_overrides(_berlin_settings(), {"scoring": {"member_floor_ratio": 1.0}})


def test_thin_trip_reports_insufficient_members():
    emitter = RecordingEmitter()
    photos = _home_days([4]) + _lisbon_days({5: 3, 6: 1, 7: 3})

    drafts = VacationClusterStrategy(_thin_trip_settings(), emitter=emitter).cluster(photos)

    assert drafts == []
    assert "insufficient_members" in emitter.statuses
    assert emitter.statuses[-1] == "completed"


def test_failing_emitter_on_thin_trip_does_not_break_clustering():
    photos = _home_days([4]) + _lisbon_days({5: 3, 6: 1, 7: 3})

    drafts = VacationClusterStrategy(_thin_trip_settings(), emitter=FailingEmitter()).cluster(photos)

    assert drafts == []


def test_winter_home_photos_do_not_hide_a_summer_timezone_change():
    berlin = _place("de", "Berlin", "Germany", kind=None)
    january = [
        Photo(
            id=10 + i,
            taken_at=datetime(2025, 1, 10, 10 + i, 0, tzinfo=BERLIN_TZ),
            lat=52.52,
            lon=13.405,
            place=berlin,
        )
        for i in range(4)
    ]
    trip = _lisbon_days({5: 6, 6: 6, 7: 6})

    with_winter_home = VacationClusterStrategy(_berlin_settings(), emitter=RecordingEmitter()).cluster(january + trip)
    with_summer_home = VacationClusterStrategy(_berlin_settings(), emitter=RecordingEmitter()).cluster(
        _home_days([4]) + trip
    )

    assert len(with_winter_home) == 1
    assert with_winter_home[0].params.timezones == [60]
    assert with_winter_home[0].params.timezone_change
    assert with_winter_home[0].params.score == with_summer_home[0].params.score
