import json
from datetime import datetime, timedelta
from zoneinfo import ZoneInfo

import pytest

from tripmemories.catalog.photos import load_photos
from tripmemories.cli import build_parser, main
from tripmemories.domain.models import Photo, Place

TZ = ZoneInfo("Europe/Berlin")


def _photos() -> list[Photo]:
    berlin = Place(country_code="de", city="Berlin", country="Germany")
    lake = Place(country_code="de", city="Baruth", country="Germany", category="tourism", type="attraction")
    photos: list[Photo] = []
    for day, lat, place, step in [(5, 52.52, berlin, 30), (6, 52.52, berlin, 30), (7, 51.89, lake, 45), (8, 52.52, berlin, 30)]:
        start = datetime(2025, 6, day, 10, 0, tzinfo=TZ)
        photos += [
            Photo(
                id=day * 100 + i,
                taken_at=start + timedelta(minutes=step * i),
                lat=lat + i * 0.0005,
                lon=13.405,
                place=place,
            )
            for i in range(4)
        ]
    return photos


def _write(tmp_path, payload) -> str:
    path = tmp_path / "photos.json"
    path.write_text(json.dumps(payload), encoding="utf-8")
    return str(path)


def test_load_photos_accepts_list_and_wrapped_payloads(tmp_path):
    payload = [p.model_dump(mode="json") for p in _photos()]

    from_list = load_photos(_write(tmp_path, payload))
    from_object = load_photos(_write(tmp_path, {"photos": payload}))

    assert from_list == _photos()
    assert from_object == from_list


def test_load_photos_validates_coordinates(tmp_path):
    with pytest.raises(ValueError):
        load_photos(_write(tmp_path, [{"id": 1, "taken_at": "2025-06-05T10:00:00+02:00", "lat": 52.5}]))


def test_detect_prints_json(tmp_path, capsys):
    path = _write(tmp_path, [p.model_dump(mode="json") for p in _photos()])

    code = main(["detect", path, "--home-lat", "52.52", "--home-lon", "13.405", "--home-country", "de", "--json"])

    assert code == 0
    drafts = json.loads(capsys.readouterr().out)
    assert len(drafts) == 1
    assert drafts[0]["params"]["classification"] == "day_trip"
    assert drafts[0]["params"]["first_date"] == "2025-06-07"


def test_detect_prints_summary_with_locale_override(tmp_path, capsys):
    path = _write(tmp_path, [p.model_dump(mode="json") for p in _photos()])

    code = main(
        [
            "detect",
            path,
            "--home-lat",
            "52.52",
            "--home-lon",
            "13.405",
            "--override",
            '{"scoring": {"locale": "en"}}',
            "--explain",
        ]
    )

    out = capsys.readouterr().out
    assert code == 0
    assert "Detected 1 trip(s)" in out
    assert "Day trip" in out
    assert "away_days: value=1.000" in out


def test_detect_rejects_disallowed_override(tmp_path):
    path = _write(tmp_path, [])

    with pytest.raises(ValueError, match="disallowed key"):
        main(["detect", path, "--override", '{"app": {"timezone": "UTC"}}'])


def test_home_requires_both_coordinates(tmp_path):
    path = _write(tmp_path, [])

    with pytest.raises(ValueError, match="together"):
        main(["home", path, "--home-lat", "52.52"])


def test_home_command(tmp_path, capsys):
    path = _write(tmp_path, [p.model_dump(mode="json") for p in _photos()])

    assert main(["home", path]) == 0
    home = json.loads(capsys.readouterr().out)
    assert home["source"] == "inferred"
    assert home["distinct_days"] == 3

    assert main(["home", _write(tmp_path, [])]) == 1


def test_parser_requires_a_command():
    with pytest.raises(SystemExit):
        build_parser().parse_args([])
