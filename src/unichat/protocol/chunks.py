from __future__ import annotations
import json
import logging
from typing import Any, Dict, Optional

from unichat.core.errors import DecodeError
from unichat.core.models import EMPTY_DELTA, NormalizedDelta
from unichat.protocol.path import extract

logger = logging.getLogger(__name__)

# finish reasons that end an OpenAI-style stream
TERMINAL_FINISH_REASONS = frozenset({"stop", "length", "content_filter", "tool_calls", "function_call"})


def decode_chunk(raw: str, provider: str, *, objects_only: bool = True) -> Optional[Any]:
    """
    json.loads for one chunk. Returns None (after logging) when the chunk is
    malformed, or not a JSON object when objects_only is set, so callers can
    return EMPTY_DELTA and keep streaming.
    """
    text = (raw or "").strip()
    if not text:
        return None
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        err = DecodeError(f"{provider}: malformed chunk ({e.msg} at pos {e.pos})")
        logger.warning("%s; chunk skipped: %.120r", err, text)
        return None
    if objects_only and not isinstance(data, dict):
        logger.warning("%s: expected a JSON object, got %s; chunk skipped", provider, type(data).__name__)
        return None
    return data


def finished(data: Any) -> bool:
    reason = extract(data, "choices[0].finish_reason")
    return isinstance(reason, str) and reason in TERMINAL_FINISH_REASONS


def as_text(value: Any) -> str:
    return value if isinstance(value, str) else ""


def openai_delta(data: Dict[str, Any]) -> NormalizedDelta:
    err = data.get("error")
    if err:
        msg = extract(err, "message") if isinstance(err, dict) else err
        return NormalizedDelta("", True, str(msg or err))
    content = as_text(extract(data, "choices[0].delta.content"))
    done = finished(data)
    if not content and not done:
        return EMPTY_DELTA
    return NormalizedDelta(content, done)
