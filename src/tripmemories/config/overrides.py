from __future__ import annotations


# Overrides arrive as plain dict-like payloads (CLI JSON, test fixtures), so typing stays loose
# and every unexpected shape is reported with its dotted path.
from typing import Any, Mapping

from tripmemories.config.settings import Settings

"""
Per-run settings overrides (safe subset).

Callers (the CLI `--override` option, tests, embedding applications) can tune
detection and scoring knobs for a single clustering run. This module:
- validates the override payload against a whitelist,
- deep-merges the safe subset onto the given settings,
- re-validates with Pydantic to ensure types/ranges remain correct.

The returned object is a new `Settings`; the input instance is never mutated.
"""

# A value of True means "allow any keys under this subtree".
# A nested dict means "only allow the listed keys, recursively".
#
# `app` (timezone, log level) and configured home coordinates are deliberately absent:
# they describe the deployment, not a tuning knob.
ALLOWED_SETTINGS_OVERRIDES_TREE: dict[str, Any] = {
    "home": {
        "default_radius_km": True,
        "max_radius_km": True,
        "daylight_start_hour": True,
        "daylight_end_hour": True,
        "grid_cell_km": True,
        "spread_percentile": True,
        "min_distinct_days": True,
    },
    "days": True,
    "staypoints": True,
    "transport": True,
    "runs": True,
    "scoring": True,
    "cohort": True,
    "holidays": True,
}


def _deep_merge(base: dict[str, Any], override: Mapping[str, Any]) -> dict[str, Any]:
    # A fresh dict keeps the caller's `base` untouched.
    merged: dict[str, Any] = dict(base)
    for key, override_value in override.items():
        if isinstance(override_value, Mapping) and isinstance(merged.get(key), Mapping):
            merged[key] = _deep_merge(dict(merged[key]), override_value)
            continue
        merged[key] = override_value
    return merged


def _filter_overrides(
    overrides: Mapping[str, Any],
    *,
    allowed_tree: Mapping[str, Any],
    path: tuple[str, ...] = (),
) -> dict[str, Any]:
    filtered: dict[str, Any] = {}
    for key, value in overrides.items():
        if key not in allowed_tree:
            dotted_path = ".".join((*path, key))
            raise ValueError(
                f"settings_overrides contains a disallowed key: '{dotted_path}'"
            )

        allowed = allowed_tree[key]
        if allowed is True:
            filtered[key] = value
            continue

        # Restricted subtrees must be mappings so we can check their keys.
        if not isinstance(value, Mapping):
            dotted_path = ".".join((*path, key))
            raise ValueError(
                f"settings_overrides key '{dotted_path}' must be a mapping"
            )

        filtered[key] = _filter_overrides(
            value, allowed_tree=allowed, path=(*path, key)
        )
    return filtered


def apply_settings_overrides(
    settings: Settings, overrides: Mapping[str, Any] | None
) -> Settings:
    """Return `settings` with the whitelisted `overrides` merged in and re-validated."""
    if not overrides:
        return settings

    safe_overrides = _filter_overrides(
        overrides, allowed_tree=ALLOWED_SETTINGS_OVERRIDES_TREE
    )
    merged_payload = _deep_merge(settings.model_dump(mode="python"), safe_overrides)
    return Settings.model_validate(merged_payload)


def with_home(
    settings: Settings,
    *,
    lat: float,
    lon: float,
    radius_km: float | None = None,
    country_code: str | None = None,
) -> Settings:
    """Return a copy of `settings` with an explicitly configured home anchor."""
    payload = settings.model_dump(mode="python")
    payload["home"].update(
        {"lat": lat, "lon": lon, "radius_km": radius_km, "country_code": country_code}
    )
    return Settings.model_validate(payload)
