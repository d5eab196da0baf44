from __future__ import annotations

import json
from typing import Any

from pydantic import ValidationError

from notifyagg.core.errors import MalformedEventError
from notifyagg.domain.events import OutcomeEvent


def decode_outcome_event(raw: str | bytes | bytearray | dict[str, Any]) -> OutcomeEvent:
    # Accept raw JSON from the queue or an already-decoded dict from arq's job serializer.
    if isinstance(raw, (bytes, bytearray)):
        try:
            raw = raw.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise MalformedEventError("Outcome payload is not valid UTF-8") from exc
    if isinstance(raw, str):
        try:
            payload = json.loads(raw)
        except json.JSONDecodeError as exc:
            raise MalformedEventError(f"Outcome payload is not valid JSON: {exc.msg}") from exc
    else:
        payload = raw
    if not isinstance(payload, dict):
        raise MalformedEventError("Outcome payload must be a JSON object")
    try:
        return OutcomeEvent.model_validate(payload)
    except ValidationError as exc:
        raise MalformedEventError(_summarize_errors(exc)) from exc


def _summarize_errors(exc: ValidationError) -> str:
    # Keep error text short enough for job results and logs.
    parts = []
    for error in exc.errors():
        location = ".".join(str(item) for item in error.get("loc", ())) or "payload"
        parts.append(f"{location}: {error.get('msg', 'invalid')}")
    return "Malformed outcome event (" + "; ".join(parts) + ")"
