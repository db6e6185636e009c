# tests/unit/test_registry.py

from __future__ import annotations
import sys
from pathlib import Path
import pytest

# Make "src" importable
sys.path.insert(0, str(Path(__file__).resolve().parents[2] / "src"))

from unichat.core.errors import ProviderClientError, UnsupportedProviderError
from unichat.core.models import ModelConfig
from unichat.providers.openai_compat import OpenAIAdapter
from unichat.providers.registry import ProviderRegistry, select_parser


def test_register_and_lookup_case_insensitive():
    @ProviderRegistry.register("Unit-Dummy")
    class Dummy:
        pass

    assert ProviderRegistry.get("unit-dummy") is Dummy
    assert ProviderRegistry.get("UNIT-DUMMY") is Dummy
    assert "unit-dummy" in ProviderRegistry.names()


def test_builtin_names_load_lazily():
    names = ProviderRegistry.names()
    for tag in ("openai", "deepseek", "microsoft", "perplexity", "llama", "local",
                "baidu", "baidu-qianfan", "claude", "anthropic", "gemini", "custom"):
        assert tag in names
    assert ProviderRegistry.get("Perplexity") is OpenAIAdapter


def test_unknown_model_type_is_rejected_every_time():
    cfg = ModelConfig(id="m", model_type="cohere", api_url="https://api.cohere.ai/v1/chat")
    for _ in range(2):
        with pytest.raises(UnsupportedProviderError) as ei:
            select_parser(cfg)
        assert ei.value.model_type == "cohere"
        assert "cohere" in str(ei.value)
        assert isinstance(ei.value, ProviderClientError)
