from __future__ import annotations
from typing import Callable, Dict, Type
from importlib import import_module

from unichat.core.errors import UnsupportedProviderError
from unichat.core.models import ModelConfig
from unichat.core.ports import ChunkParser, ProviderAdapter

_BUILTIN_MODULES = (
    "unichat.providers.openai_compat",
    "unichat.providers.baidu",
    "unichat.providers.anthropic",
    "unichat.providers.gemini",
    "unichat.providers.custom",
    "unichat.providers.local",
)


class ProviderRegistry:
    """modelType tag -> adapter class. Lookups are case-insensitive."""

    _classes: Dict[str, Type] = {}
    _loaded = False

    @classmethod
    def register(cls, *names: str) -> Callable[[Type], Type]:
        def deco(klass: Type) -> Type:
            for name in names:
                cls._classes[name.lower()] = klass
            return klass
        return deco

    @classmethod
    def get(cls, name: str) -> Type:
        cls.ensure_imports()
        key = (name or "").strip().lower()
        if key not in cls._classes:
            raise UnsupportedProviderError(name)
        return cls._classes[key]

    @classmethod
    def names(cls) -> list[str]:
        cls.ensure_imports()
        return sorted(cls._classes)

    @classmethod
    def adapter_for(cls, config: ModelConfig) -> ProviderAdapter:
        return cls.get(config.model_type)()

    @classmethod
    def ensure_imports(cls) -> None:
        """Import built-in adapters so their @register decorators run."""
        if cls._loaded:
            return
        for mod in _BUILTIN_MODULES:
            import_module(mod)
        cls._loaded = True


def select_parser(config: ModelConfig) -> ChunkParser:
    """
    One parser per request, chosen from modelType (and, for 'custom', whether
    the template config is enabled). Unknown types fail here, before any I/O.
    """
    return ProviderRegistry.adapter_for(config).create_parser(config)
