# src/unichat/secrets/sources.py

from __future__ import annotations
from typing import Protocol, Optional, Dict, Iterable, List, Union
import os

import keyring
from keyring.errors import KeyringError

SERVICE_PREFIX = "unichat"


class SecretSource(Protocol):
    def get(self, name: str) -> Optional[str]: ...


def _env_key(text: str) -> str:
    return "".join(c if c.isalnum() else "_" for c in text).upper()


class EnvSource:
    def get(self, name: str) -> Optional[str]:
        # 1) exact env var name (mapping may point straight at one)
        # 2) UNICHAT_<TYPE>_API_KEY, <TYPE>_API_KEY
        for key in (name, f"{SERVICE_PREFIX.upper()}_{_env_key(name)}_API_KEY", f"{_env_key(name)}_API_KEY"):
            val = os.getenv(key)
            if val and val.strip():
                return val.strip()
        return None


class SystemKeyringSource:
    def get(self, name: str) -> Optional[str]:
        service = name if name.startswith(f"{SERVICE_PREFIX}-") else f"{SERVICE_PREFIX}-{name}"
        try:
            cred = keyring.get_credential(service, None)
            if cred and cred.password:
                return cred.password.strip()
            val = keyring.get_password(service, "api_key")
        except KeyringError:
            # no usable backend on this machine
            return None
        return val.strip() if val else None


_SOURCES = {"env": EnvSource, "keyring": SystemKeyringSource}


def _normalise_methods(method: Union[str, Iterable[str]]) -> List[str]:
    methods = [method] if isinstance(method, str) else list(method)
    norm: List[str] = []
    for m in methods:
        key = str(m).strip().lower()
        if key not in _SOURCES:
            raise ValueError(f"Unknown secrets method '{m}'. Allowed: {sorted(_SOURCES)}")
        if key not in norm:
            norm.append(key)
    return norm


def build_secret_sources(method: Union[str, Iterable[str]]) -> List[SecretSource]:
    return [_SOURCES[name]() for name in _normalise_methods(method)]


class SecretsResolver:
    """
    Finds an API key for a model whose stored config has none.
    mapping: per model type (or model id) -> env var / keyring service name
      e.g. { "openai": "OPENAI_API_KEY", "model-123-abc": "work-openai" }
    """

    def __init__(self, method: Union[str, Iterable[str]] = "env", mapping: Optional[Dict[str, str]] = None):
        self._sources = build_secret_sources(method)
        self._map = {str(k).lower(): str(v) for k, v in (mapping or {}).items()}

    def api_key(self, model_type: str, model_id: Optional[str] = None) -> Optional[str]:
        names = []
        if model_id and model_id.lower() in self._map:
            names.append(self._map[model_id.lower()])
        names.append(self._map.get(model_type.lower(), model_type.lower()))
        for name in names:
            for src in self._sources:
                val = src.get(name)
                if val:
                    return val
        return None
