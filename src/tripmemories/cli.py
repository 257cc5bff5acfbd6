"""
TripMemories CLI entrypoint.

This CLI is intended for quick local runs and debugging over a photo export.
It delegates all detection logic to `tripmemories.vacation.strategy.VacationClusterStrategy`.
"""

from __future__ import annotations

import argparse
import json
from typing import Any

from tripmemories.catalog.photos import load_photos
from tripmemories.config.overrides import apply_settings_overrides, with_home
from tripmemories.config.settings import Settings, get_settings
from tripmemories.core.logging import configure_logging
from tripmemories.scoring.explain import one_line_summary, term_lines
from tripmemories.vacation.holidays import FixedHolidayResolver
from tripmemories.vacation.home import HomeLocator
from tripmemories.vacation.monitoring import LoggingEmitter
from tripmemories.vacation.strategy import VacationClusterStrategy


def _settings_from_args(args: argparse.Namespace) -> Settings:
    """Apply `--override` JSON and `--home-*` flags on top of the loaded settings."""
    settings = get_settings()
    if args.override:
        overrides = json.loads(args.override)
        if not isinstance(overrides, dict):
            raise ValueError("--override must be a JSON object")
        settings = apply_settings_overrides(settings, overrides)
    if (args.home_lat is None) != (args.home_lon is None):
        raise ValueError("--home-lat and --home-lon must be given together")
    if args.home_lat is not None:
        settings = with_home(
            settings,
            lat=float(args.home_lat),
            lon=float(args.home_lon),
            radius_km=float(args.home_radius_km) if args.home_radius_km is not None else None,
            country_code=args.home_country,
        )
    return settings


def _cmd_detect(args: argparse.Namespace) -> int:
    """Handle the `detect` subcommand."""
    settings = _settings_from_args(args)
    photos = load_photos(args.photos)

    strategy = VacationClusterStrategy(
        settings,
        emitter=LoggingEmitter(),
        holiday_resolver=FixedHolidayResolver.from_settings(settings.holidays),
    )
    drafts = strategy.cluster(photos)

    if args.json:
        print(json.dumps([d.model_dump(mode="json") for d in drafts], ensure_ascii=False, indent=2))
        return 0

    if not drafts:
        print(f"No trips detected among {len(photos)} photos.")
        return 0

    print(f"Detected {len(drafts)} trip(s) among {len(photos)} photos:")
    for i, draft in enumerate(drafts, start=1):
        print(f"{i:>2}. {one_line_summary(draft)}")
        if args.explain:
            for line in term_lines(draft):
                print(f"    - {line}")
    return 0


def _cmd_home(args: argparse.Namespace) -> int:
    """Handle the `home` subcommand: print the configured or inferred home."""
    settings = _settings_from_args(args)
    photos = load_photos(args.photos)
    strategy = VacationClusterStrategy(settings)
    home = HomeLocator(settings).determine_home(strategy.prepare(photos))
    if home is None:
        print("Home could not be determined.")
        return 1
    print(json.dumps(home.model_dump(mode="json"), ensure_ascii=False, indent=2))
    return 0


def _add_settings_arguments(p: argparse.ArgumentParser) -> None:
    p.add_argument("photos", help="Path to a photo export JSON file")
    p.add_argument("--home-lat", type=float, default=None)
    p.add_argument("--home-lon", type=float, default=None)
    p.add_argument("--home-radius-km", type=float, default=None)
    p.add_argument("--home-country", type=str, default=None, help="ISO country code of home (e.g. de)")
    p.add_argument(
        "--override",
        type=str,
        default=None,
        help='JSON object of settings overrides, e.g. \'{"scoring": {"locale": "en"}}\'',
    )


def build_parser() -> argparse.ArgumentParser:
    """Build the argparse parser for the TripMemories CLI."""
    parser = argparse.ArgumentParser(prog="tripmemories")
    sub = parser.add_subparsers(dest="command", required=True)

    det = sub.add_parser("detect", help="Detect vacations, short trips and day trips in a photo export.")
    _add_settings_arguments(det)
    det.add_argument("--explain", action="store_true", help="Print score terms for each trip")
    det.add_argument("--json", action="store_true", help="Output machine-readable JSON")
    det.set_defaults(func=_cmd_detect)

    home = sub.add_parser("home", help="Show the configured or inferred home location.")
    _add_settings_arguments(home)
    home.set_defaults(func=_cmd_home)
    return parser


def main(argv: list[str] | None = None) -> int:
    """CLI entrypoint callable used by `python -m tripmemories.cli`."""
    configure_logging()
    parser = build_parser()
    args = parser.parse_args(argv)
    func: Any = getattr(args, "func")
    return int(func(args))


if __name__ == "__main__":
    raise SystemExit(main())
