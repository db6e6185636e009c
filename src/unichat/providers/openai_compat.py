from __future__ import annotations
from typing import Any, Dict, List

from unichat.core.models import EMPTY_DELTA, ModelConfig, NormalizedDelta
from unichat.core.ports import Message
from unichat.protocol.chunks import decode_chunk, openai_delta
from unichat.protocol.request import bearer
from unichat.providers.registry import ProviderRegistry


class OpenAIChunkParser:
    """data: {"choices":[{"delta":{"content":"..."},"finish_reason":null}]}"""

    provider = "openai"

    def parse_chunk(self, raw: str) -> NormalizedDelta:
        data = decode_chunk(raw, self.provider)
        if data is None:
            return EMPTY_DELTA
        return openai_delta(data)


@ProviderRegistry.register("openai", "deepseek", "microsoft", "perplexity", "llama")
class OpenAIAdapter:
    """OpenAI chat completions and the providers that clone its wire format."""

    multimodal = True
    default_model = "gpt-4"

    def request_url(self, config: ModelConfig) -> str:
        return config.api_url

    def auth_headers(self, config: ModelConfig) -> Dict[str, str]:
        return bearer(config)

    def build_body(self, config: ModelConfig, messages: List[Message]) -> Dict[str, Any]:
        body: Dict[str, Any] = {
            "model": config.model_name or self.default_model,
            "messages": messages,
            "stream": True,
        }
        if config.max_tokens is not None:
            body["max_tokens"] = config.max_tokens
        if config.temperature is not None:
            body["temperature"] = config.temperature
        return body

    def create_parser(self, config: ModelConfig) -> OpenAIChunkParser:
        return OpenAIChunkParser()

