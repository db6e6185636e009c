from __future__ import annotations
from typing import Any, Dict, List
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

from unichat.core.models import EMPTY_DELTA, ModelConfig, NormalizedDelta
from unichat.core.ports import Message
from unichat.protocol.chunks import as_text, decode_chunk
from unichat.protocol.path import extract
from unichat.providers.registry import ProviderRegistry


class GeminiChunkParser:
    """data: {"candidates":[{"content":{"parts":[{"text":"..."}]},"finishReason":"STOP"}]}"""

    provider = "gemini"

    def parse_chunk(self, raw: str) -> NormalizedDelta:
        data = decode_chunk(raw, self.provider)
        if data is None:
            return EMPTY_DELTA
        if data.get("error"):
            return NormalizedDelta("", True, str(extract(data, "error.message") or data["error"]))

        text = as_text(extract(data, "candidates[0].content.parts[0].text"))
        done = bool(extract(data, "candidates[0].finishReason"))
        if not text and not done:
            return EMPTY_DELTA
        return NormalizedDelta(text, done)


def streaming_url(url: str) -> str:
    """:generateContent -> :streamGenerateContent?alt=sse, other query params (blank or repeated) kept."""
    parts = urlsplit(url)
    path = parts.path
    if path.endswith(":generateContent"):
        path = path[: -len(":generateContent")] + ":streamGenerateContent"
    query = parse_qsl(parts.query, keep_blank_values=True)
    if not any(key == "alt" for key, _ in query):
        query.append(("alt", "sse"))
    return urlunsplit((parts.scheme, parts.netloc, path, urlencode(query), parts.fragment))


@ProviderRegistry.register("gemini")
class GeminiAdapter:
    multimodal = False

    def request_url(self, config: ModelConfig) -> str:
        return streaming_url(config.api_url)

    def auth_headers(self, config: ModelConfig) -> Dict[str, str]:
        return {"x-goog-api-key": config.api_key} if config.api_key else {}

    def build_body(self, config: ModelConfig, messages: List[Message]) -> Dict[str, Any]:
        contents = []
        system = []
        for m in messages:
            if m.get("role") == "system":
                system.append({"text": str(m["content"])})
                continue
            role = "model" if m.get("role") == "assistant" else "user"
            contents.append({"role": role, "parts": [{"text": str(m["content"])}]})

        body: Dict[str, Any] = {"contents": contents}
        if system:
            body["systemInstruction"] = {"parts": system}
        generation: Dict[str, Any] = {}
        if config.max_tokens:
            generation["maxOutputTokens"] = config.max_tokens
        if config.temperature is not None:
            generation["temperature"] = config.temperature
        if generation:
            body["generationConfig"] = generation
        return body

    def create_parser(self, config: ModelConfig) -> GeminiChunkParser:
        return GeminiChunkParser()
