"""Strict parsing of untrusted edit payloads into schedule deltas.

Edit requests arrive as free text from a suggestion model or as JSON from an editor.
Nothing reaches the version manager until it has passed the ScheduleDelta schema.
"""

import json
import logging
import re
from collections.abc import Mapping
from typing import Any

from pydantic import BaseModel, Field, ValidationError

from tripline.models.delta import ScheduleDelta

logger = logging.getLogger(__name__)

_FENCE_PATTERN = re.compile(r"^```(?:json)?\s*\n?(.*?)\n?```$", re.DOTALL)


class ParseError(BaseModel):
    """Payload rejected before reaching the version manager."""

    message: str
    errors: list[str] = Field(default_factory=list)


def strip_markdown_code_fences(text: str) -> str:
    """Remove a surrounding ```json ... ``` fence if present."""
    trimmed = text.strip()
    match = _FENCE_PATTERN.match(trimmed)
    if match:
        return match.group(1).strip()
    return trimmed


def _format_errors(error: ValidationError) -> list[str]:
    formatted = []
    for item in error.errors():
        location = ".".join(str(part) for part in item["loc"])
        formatted.append(f"{location}: {item['msg']}" if location else item["msg"])
    return formatted


def parse_delta(raw: str | bytes | Mapping[str, Any]) -> ScheduleDelta | ParseError:
    """Parse an edit payload into a ScheduleDelta.

    Args:
        raw: Model output text (optionally fenced), JSON bytes, or a decoded mapping

    Returns:
        ScheduleDelta on success, ParseError describing every schema problem otherwise
    """
    if isinstance(raw, bytes):
        raw = raw.decode("utf-8", errors="replace")

    if isinstance(raw, str):
        text = strip_markdown_code_fences(raw)
        if not text:
            return ParseError(message="Edit payload is empty")
        try:
            payload = json.loads(text)
        except json.JSONDecodeError as e:
            logger.warning(f"Edit payload is not valid JSON: {e}")
            return ParseError(message="Edit payload is not valid JSON", errors=[str(e)])
    else:
        payload = raw

    if not isinstance(payload, Mapping):
        return ParseError(
            message="Edit payload must be a JSON object",
            errors=[f"got {type(payload).__name__}"],
        )

    try:
        delta = ScheduleDelta.model_validate(dict(payload))
    except ValidationError as e:
        errors = _format_errors(e)
        logger.warning(
            f"Edit payload failed schema validation ({len(errors)} errors)",
            extra={"structured": {"errors": errors}},
        )
        return ParseError(message="Edit payload failed schema validation", errors=errors)

    return delta
