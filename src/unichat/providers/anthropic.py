from __future__ import annotations
from typing import Any, Dict, List

from unichat.core.models import EMPTY_DELTA, ModelConfig, NormalizedDelta
from unichat.core.ports import Message
from unichat.protocol.chunks import as_text, decode_chunk
from unichat.protocol.path import extract
from unichat.providers.registry import ProviderRegistry

ANTHROPIC_VERSION = "2023-06-01"


class AnthropicChunkParser:
    """
    Messages API events; the ``event:`` lines are dropped by the decoder and
    the type is read from the payload instead:
      content_block_delta -> {"delta": {"type": "text_delta", "text": "..."}}
      message_stop        -> end of stream
      error               -> {"error": {"type": "...", "message": "..."}}
    """

    provider = "anthropic"

    def parse_chunk(self, raw: str) -> NormalizedDelta:
        data = decode_chunk(raw, self.provider)
        if data is None:
            return EMPTY_DELTA

        kind = data.get("type")
        if kind == "error":
            return NormalizedDelta("", True, str(extract(data, "error.message") or "Anthropic API error"))
        if kind == "message_stop":
            return NormalizedDelta("", True)

        text = as_text(extract(data, "delta.text"))
        return NormalizedDelta(text, False) if text else EMPTY_DELTA


@ProviderRegistry.register("claude", "anthropic")
class AnthropicAdapter:
    multimodal = False

    def request_url(self, config: ModelConfig) -> str:
        return config.api_url

    def auth_headers(self, config: ModelConfig) -> Dict[str, str]:
        headers = {"anthropic-version": ANTHROPIC_VERSION}
        if config.api_key:
            headers["x-api-key"] = config.api_key
        return headers

    def build_body(self, config: ModelConfig, messages: List[Message]) -> Dict[str, Any]:
        system = [str(m["content"]) for m in messages if m.get("role") == "system"]
        body: Dict[str, Any] = {
            "messages": [m for m in messages if m.get("role") != "system"],
            "stream": True,
            # required by the Messages API
            "max_tokens": config.max_tokens or 1024,
        }
        if config.model_name:
            body["model"] = config.model_name
        if system:
            body["system"] = "\n\n".join(system)
        if config.temperature is not None:
            body["temperature"] = config.temperature
        return body

    def create_parser(self, config: ModelConfig) -> AnthropicChunkParser:
        return AnthropicChunkParser()
