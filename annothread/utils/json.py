"""JSON parsing helpers for configuration values and transport frames."""

import json
from typing import Any


def parse_json_object(raw: str | bytes | dict | None) -> dict[str, Any] | None:
    """Decode a JSON object from text, bytes or an already-decoded dict.

    Frames from the push transport and the ANNOTHREAD_FOCUS setting are both
    JSON objects. Anything else (missing, empty, malformed, or a JSON value
    that isn't an object) yields None.
    """
    if isinstance(raw, dict):
        return raw or None
    if not raw or not isinstance(raw, (str, bytes)):
        return None
    try:
        parsed = json.loads(raw)
    except (json.JSONDecodeError, UnicodeDecodeError):
        return None
    return parsed if isinstance(parsed, dict) and parsed else None
