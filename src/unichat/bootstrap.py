from __future__ import annotations
from pathlib import Path
from typing import Any, Dict, Optional

import httpx
from dotenv import load_dotenv

from .config_loader import load_config
from .core.chat_session import ChatSession
from .core.context import ContextPolicy
from .core.errors import ConfigError
from .core.models import ModelConfig
from .logging_config import init_logging
from .resilience.retry import RetryPolicy
from .secrets.sources import SecretsResolver
from .storage.kv import JsonFileKeyValueStore
from .storage.model_store import ModelStore

DEFAULT_SYSTEM_PROMPT = "You're a helpful AI."


def _resolve(config_dir: Path, raw: str) -> Path:
    p = Path(raw).expanduser()
    return p if p.is_absolute() else (config_dir / p).resolve()


def build_app(config_path: Path, *, configure_logging: bool = True) -> Dict[str, Any]:
    """
    Composition root: load YAML, set up logging, the model store, secrets and
    the shared HTTP client. Returns a dict the CLI and web app read from.
    """
    load_dotenv()
    cfg = load_config(config_path)
    config_dir = config_path.resolve().parent

    log_cfg = cfg.get("logging") or {}
    log_file = _resolve(config_dir, log_cfg["file"]) if log_cfg.get("file") else None
    if configure_logging:
        init_logging(level=log_cfg.get("level", "INFO"), log_file=log_file)

    store_cfg = cfg["store"]
    store_path = _resolve(config_dir, store_cfg["path"])
    store = ModelStore(JsonFileKeyValueStore(store_path), namespace=store_cfg.get("namespace") or "")

    secrets_cfg = cfg.get("secrets") or {}
    resolver = SecretsResolver(method=secrets_cfg.get("method", "env"), mapping=secrets_cfg.get("mapping"))

    runtime = cfg["runtime"]
    retries = runtime.get("retries")
    policy = RetryPolicy(max_retries=int(retries)) if retries else None
    # read timeout belongs to the transport, not to the stream core
    client = httpx.Client(timeout=httpx.Timeout(float(runtime["timeout"])))

    return {
        "cfg": cfg,
        "paths": {"config_dir": config_dir, "store": store_path, "log_file": log_file},
        "store": store,
        "secrets": resolver,
        "client": client,
        "policy": policy,
        "context": ContextPolicy.from_config(cfg.get("context")),
        "system_prompt": cfg.get("system_prompt") or DEFAULT_SYSTEM_PROMPT,
    }


def resolve_model(ctx: Dict[str, Any], model_id: Optional[str] = None) -> ModelConfig:
    """The requested (or active) model, with its API key filled from secrets if it has none."""
    store: ModelStore = ctx["store"]
    model = store.get(model_id) if model_id else store.active()
    if model is None:
        if model_id:
            raise ConfigError(f"No model with id '{model_id}'")
        raise ConfigError("No active model. Run 'unichat models use <id>' first.")
    if not model.enabled:
        raise ConfigError(f"Model '{model.name}' is disabled")
    if not model.api_key:
        key = ctx["secrets"].api_key(model.model_type, model.id)
        if key:
            model = model.model_copy(update={"api_key": key})
    return model


def open_session(ctx: Dict[str, Any], model: ModelConfig) -> ChatSession:
    return ChatSession(
        model,
        client=ctx["client"],
        policy=ctx["policy"],
        context=ctx["context"],
        system_prompt=ctx["system_prompt"],
    )
