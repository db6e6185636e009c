"""
Minimal JSON path evaluator: dot-separated field names, each optionally
followed by bracketed non-negative indices.

    choices[0].delta.content
    a.b[1]
    grid[0][2]
    [0].text          (top-level array)

Absence is a normal outcome: providers omit fields across chunks (``usage``
only shows up on the last one), so ``extract`` returns None instead of raising.
"""
from __future__ import annotations
import json
import re
from functools import lru_cache
from typing import Any, Optional, Tuple, Union

from unichat.core.errors import ConfigError

Step = Union[str, int]

_SEGMENT = re.compile(r"^(?P<name>[^.\[\]]*)(?P<indices>(?:\[\d+\])*)$")
_INDEX = re.compile(r"\[(\d+)\]")


@lru_cache(maxsize=256)
def parse_path(path: str) -> Tuple[Step, ...]:
    if not isinstance(path, str) or not path.strip():
        raise ConfigError("JSON path must be a non-empty string")
    steps: list[Step] = []
    for i, segment in enumerate(path.strip().split(".")):
        m = _SEGMENT.match(segment)
        if not m or (not m.group("name") and not m.group("indices")):
            raise ConfigError(f"Invalid JSON path '{path}' near segment {segment!r}")
        name = m.group("name")
        if name:
            steps.append(name)
        elif i > 0:
            # "a.[0]" is ambiguous; only the first segment may start with an index
            raise ConfigError(f"Invalid JSON path '{path}': empty field name")
        steps.extend(int(ix) for ix in _INDEX.findall(m.group("indices")))
    return tuple(steps)


def validate_path(path: str) -> str:
    parse_path(path)
    return path


def extract(document: Any, path: str) -> Optional[Any]:
    try:
        steps = parse_path(path)
    except ConfigError:
        return None

    cur = document
    for step in steps:
        if isinstance(step, int):
            if not isinstance(cur, list) or step >= len(cur):
                return None
            cur = cur[step]
        else:
            if not isinstance(cur, dict) or step not in cur:
                return None
            cur = cur[step]
    return cur


def extract_text(document: Any, path: str) -> str:
    """extract() coerced to the string form a delta carries; absent/null -> ''."""
    value = extract(document, path)
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    if isinstance(value, (dict, list)):
        return json.dumps(value, ensure_ascii=False)
    return str(value)
