"""
Time parsing and timezone resolution.

TripMemories treats all timestamps as timezone-aware datetimes. Photos travel
across offsets, so the local calendar day of a photo is derived from the
timezone resolved for that photo, never from one corpus-wide timezone.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone, tzinfo
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from tripmemories.domain.models import Home, Photo, Place

# Tag keys that may carry an IANA identifier on a POI.
_POI_TIMEZONE_TAGS = ("timezone", "opening_hours:timezone", "tz")


def ensure_tz(dt: datetime, timezone_name: str) -> datetime:
    """Ensure `dt` has tzinfo; attach `timezone_name` if naive."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=ZoneInfo(timezone_name))
    return dt


def parse_datetime(value: str, timezone_name: str) -> datetime:
    """Parse ISO-8601 datetime string and ensure tzinfo is present.

    Notes:
    - Accepts a trailing `Z` (UTC) and converts it to `+00:00` for `fromisoformat`.
    - If the parsed value is naive, the provided `timezone_name` is attached.
    """
    value = value.strip()
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    dt = datetime.fromisoformat(value)
    return ensure_tz(dt, timezone_name)


def load_zone(identifier: str | None) -> ZoneInfo | None:
    """Return the IANA zone for `identifier`, or None when it is empty or unknown."""
    if not identifier or not identifier.strip():
        return None
    try:
        return ZoneInfo(identifier.strip())
    except (ZoneInfoNotFoundError, ValueError):
        return None


def format_offset(offset_min: int) -> str:
    sign = "+" if offset_min >= 0 else "-"
    hours, minutes = divmod(abs(offset_min), 60)
    return f"UTC{sign}{hours:02d}:{minutes:02d}"


def fixed_offset_zone(offset_min: int) -> timezone:
    return timezone(timedelta(minutes=offset_min), format_offset(offset_min))


def offset_minutes(dt: datetime) -> int:
    delta = dt.utcoffset()
    if delta is None:
        raise ValueError("offset_minutes() requires an aware datetime")
    return int(delta.total_seconds() // 60)


def _zone_identifier(tz: tzinfo, dt: datetime) -> str:
    key = getattr(tz, "key", None)
    if isinstance(key, str) and key:
        return key
    return format_offset(offset_minutes(dt))


def place_timezone_identifier(place: Place | None) -> str | None:
    """First valid IANA identifier carried by the place or one of its POIs."""
    if place is None:
        return None
    candidates: list[str] = []
    if place.timezone:
        candidates.append(place.timezone)
    for poi in place.pois:
        for key in _POI_TIMEZONE_TAGS:
            value = poi.tags.get(key)
            if value:
                candidates.append(value)
    for candidate in candidates:
        if load_zone(candidate) is not None:
            return candidate.strip()
    return None


@dataclass(frozen=True)
class ResolvedZone:
    """Timezone resolved for one photo."""

    identifier: str
    offset_min: int
    local: datetime
    source: str

    @property
    def date_key(self) -> str:
        return self.local.date().isoformat()


class TimezoneResolver:
    """Resolve the local timezone of a photo.

    Order: explicit capture offset, place/POI identifier, the timestamp's own
    tzinfo, the home zone (or its fixed offset), the configured default timezone.
    """

    def __init__(self, default_timezone: str):
        zone = load_zone(default_timezone)
        if zone is None:
            raise ValueError(f"Unknown default timezone '{default_timezone}'")
        self.default_timezone = default_timezone
        self._default_zone = zone

    def resolve(self, photo: Photo, home: Home | None = None) -> ResolvedZone:
        if photo.taken_at is None:
            raise ValueError(f"photo {photo.id} has no capture timestamp")
        taken_at = photo.taken_at
        place_identifier = place_timezone_identifier(photo.place)

        if photo.timezone_offset_min is not None:
            local = self._to_local(taken_at, fixed_offset_zone(photo.timezone_offset_min))
            identifier = format_offset(photo.timezone_offset_min)
            zone = load_zone(place_identifier)
            # Keep the named zone when it agrees with the explicit offset.
            if zone is not None and offset_minutes(local.astimezone(zone)) == photo.timezone_offset_min:
                identifier = place_identifier or identifier
            return ResolvedZone(identifier, photo.timezone_offset_min, local, "explicit_offset")

        if place_identifier is not None:
            zone = load_zone(place_identifier)
            if zone is not None:
                local = self._to_local(taken_at, zone)
                return ResolvedZone(place_identifier, offset_minutes(local), local, "place")

        if taken_at.tzinfo is not None:
            return ResolvedZone(
                _zone_identifier(taken_at.tzinfo, taken_at), offset_minutes(taken_at), taken_at, "timestamp"
            )

        home_zone = load_zone(home.timezone_identifier) if home is not None else None
        if home_zone is not None:
            local = taken_at.replace(tzinfo=home_zone)
            return ResolvedZone(home_zone.key, offset_minutes(local), local, "home")

        if home is not None and home.timezone_offset_min is not None:
            local = taken_at.replace(tzinfo=fixed_offset_zone(home.timezone_offset_min))
            return ResolvedZone(format_offset(home.timezone_offset_min), home.timezone_offset_min, local, "home")

        local = taken_at.replace(tzinfo=self._default_zone)
        return ResolvedZone(self.default_timezone, offset_minutes(local), local, "default")

    def _to_local(self, taken_at: datetime, zone: tzinfo) -> datetime:
        if taken_at.tzinfo is None:
            # Naive wall-clock values are read in the default timezone first.
            taken_at = taken_at.replace(tzinfo=self._default_zone)
        return taken_at.astimezone(zone)
