"""
Projection of live query frames into printable objects.

Everything here is pure: no network, no state. `project_record` picks the
fields of a record according to the display toggles; `render` turns the result
into one JSON document.

| keys_only | keys  | meta  | fields                |
|-----------|-------|-------|-----------------------|
| True      | any   | False | key                   |
| True      | any   | True  | key, metadata         |
| False     | False | False | value                 |
| False     | False | True  | value, metadata       |
| False     | True  | False | key, value            |
| False     | True  | True  | key, value, metadata  |
"""

import json
from typing import Any

from .models import LiveFrame, RecordData, StopData
from .session import DisplayToggles


def projected_fields(toggles: DisplayToggles) -> tuple[str, ...]:
    """Field names a record is reduced to under the given toggles."""
    if toggles.keys_only:
        selected: tuple[str, ...] = ("key",)
    elif toggles.keys:
        selected = ("key", "value")
    else:
        selected = ("value",)
    if toggles.meta:
        selected += ("metadata",)
    return selected


def project_record(record: RecordData, toggles: DisplayToggles) -> dict[str, Any]:
    """Reduce a record to the shape selected by the toggles."""
    return {name: getattr(record, name) for name in projected_fields(toggles)}


def project_stats(frame: LiveFrame) -> dict[str, Any]:
    """Stats frames are printed whole, tagged with their kind."""
    return {"type": "stats", "data": frame.stats}


def project_stop(stop: StopData) -> dict[str, Any]:
    """Completion counters with the fields the server left out dropped."""
    return {"type": "stop", "data": stop.model_dump(by_alias=True, exclude_none=True)}


def render(obj: Any, pretty: bool = False) -> str:
    """Serialize a projected object; `pretty` indents it over several lines."""
    if pretty:
        return json.dumps(obj, indent=4, ensure_ascii=False, default=str)
    return json.dumps(obj, ensure_ascii=False, default=str)
