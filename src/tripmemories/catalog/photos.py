"""
Photo export loader.

The photo corpus is a local JSON file: a list of photo objects with capture
time, optional GPS, reverse-geocoded place and quality metrics. We validate it
into typed Pydantic models so the detection pipeline can assume a consistent shape.
"""

from __future__ import annotations

import json
from pathlib import Path

from pydantic import TypeAdapter

from tripmemories.core.env import resolve_project_path
from tripmemories.domain.models import Photo


_PHOTOS_ADAPTER = TypeAdapter(list[Photo])


def load_photos(path: str | Path) -> list[Photo]:
    """Load and validate a photo export JSON file.

    Accepts either a bare list or an object with a `photos` list.
    """
    resolved = resolve_project_path(path)
    payload = json.loads(resolved.read_text(encoding="utf-8"))
    if isinstance(payload, dict):
        payload = payload.get("photos", [])
    return _PHOTOS_ADAPTER.validate_python(payload)
