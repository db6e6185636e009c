# src/unichat/config_loader.py

from __future__ import annotations
from pathlib import Path
from typing import Any, Dict
import yaml

from unichat.core.errors import ConfigError

_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


def _require(d: Dict[str, Any], dotted: str, typ: type) -> Any:
    cur: Any = d
    for k in dotted.split("."):
        if not isinstance(cur, dict) or k not in cur:
            raise ConfigError(f"Missing config key: {dotted}")
        cur = cur[k]
    _check_type(dotted, cur, typ)
    return cur


def _optional(d: Dict[str, Any], dotted: str, typ: type) -> Any:
    cur: Any = d
    for k in dotted.split("."):
        if not isinstance(cur, dict) or k not in cur or cur[k] is None:
            return None
        cur = cur[k]
    _check_type(dotted, cur, typ)
    return cur


def _check_type(dotted: str, value: Any, typ: type) -> None:
    if typ is str and not isinstance(value, str):
        raise ConfigError(f"'{dotted}' must be a string")
    # bool is an int subclass; reject it for numeric keys
    if typ in (int, float) and (isinstance(value, bool) or not isinstance(value, (int, float))):
        raise ConfigError(f"'{dotted}' must be a number")
    if typ is int and not isinstance(value, int):
        raise ConfigError(f"'{dotted}' must be an integer")
    if typ is dict and not isinstance(value, dict):
        raise ConfigError(f"'{dotted}' must be a mapping")


def load_config(path: Path) -> Dict[str, Any]:
    if not path or not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")
    try:
        raw = yaml.safe_load(path.read_text(encoding="utf-8"))
    except yaml.YAMLError as e:
        raise ConfigError(f"Config is not valid YAML: {path}: {e}") from e
    if not isinstance(raw, dict) or not raw:
        raise ConfigError(f"Config is empty or invalid YAML: {path}")

    # Required keys (no defaults here)
    _require(raw, "store.path", str)
    _require(raw, "runtime.timeout", float)

    _optional(raw, "store.namespace", str)
    _optional(raw, "runtime.retries", int)
    _optional(raw, "context", dict)
    _optional(raw, "context.max_input_tokens", int)
    _optional(raw, "system_prompt", str)
    _optional(raw, "secrets.mapping", dict)

    level = _optional(raw, "logging.level", str)
    if level is not None:
        if level.upper() not in _LOG_LEVELS:
            raise ConfigError(f"Unknown logging.level '{level}' (expected one of {', '.join(_LOG_LEVELS)}).")
        raw["logging"]["level"] = level.upper()

    if _optional(raw, "context", dict) is not None and "max_input_tokens" not in raw["context"]:
        raise ConfigError("Missing config key: context.max_input_tokens")

    # Leave paths as provided; bootstrap resolves them relative to the config file
    return raw
