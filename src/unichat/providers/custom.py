"""
The configuration escape hatch: a user-authored request body template plus
JSON paths that locate the answer (and optionally an error or end marker) in
each streamed chunk. A 'custom' model without an enabled template is sent an
OpenAI-shaped body and its chunks are auto-detected.
"""
from __future__ import annotations
import json
from typing import Any, List, Optional

from unichat.core.models import (
    DEFAULT_MAX_TOKENS,
    DEFAULT_TEMPERATURE,
    EMPTY_DELTA,
    ModelConfig,
    NormalizedDelta,
    ResponseParserConfig,
)
from unichat.core.ports import Message
from unichat.protocol.chunks import as_text, decode_chunk, finished
from unichat.protocol.path import extract, extract_text
from unichat.protocol.template import render_json_template, template_values
from unichat.providers.openai_compat import OpenAIAdapter
from unichat.providers.registry import ProviderRegistry

# tried in order when no contentPath is configured
AUTODETECT_CONTENT_PATHS = (
    "choices[0].delta.content",             # OpenAI
    "delta.text",                           # Claude
    "candidates[0].content.parts[0].text",  # Gemini
    "message.content",                      # Ollama
    "result",                               # Baidu Qianfan
    "output",
    "content",
    "text",
)


def _present(value: Any) -> bool:
    if isinstance(value, (dict, list, str)):
        return len(value) > 0
    return value is not None and value is not False and value != 0


class CustomTemplateChunkParser:
    provider = "custom"

    def __init__(self, response_parser: ResponseParserConfig):
        self.response_parser = response_parser

    def parse_chunk(self, raw: str) -> NormalizedDelta:
        data = decode_chunk(raw, self.provider, objects_only=False)
        if data is None:
            return EMPTY_DELTA
        rp = self.response_parser

        if rp.error_path:
            err = extract(data, rp.error_path)
            if _present(err):
                msg = err if isinstance(err, str) else json.dumps(err, ensure_ascii=False)
                return NormalizedDelta("", True, msg)

        content = extract_text(data, rp.content_path)
        done = bool(extract(data, rp.done_path)) if rp.done_path else False
        if not content and not done:
            return EMPTY_DELTA
        return NormalizedDelta(content, done)


class AutoDetectChunkParser:
    """Best-effort parser for custom endpoints that did not say where the text lives."""

    provider = "custom"

    def parse_chunk(self, raw: str) -> NormalizedDelta:
        data = decode_chunk(raw, self.provider)
        if data is None:
            return EMPTY_DELTA

        err = data.get("error")
        if _present(err):
            msg = extract(err, "message") if isinstance(err, dict) else err
            return NormalizedDelta("", True, str(msg or err))

        content = ""
        for path in AUTODETECT_CONTENT_PATHS:
            content = as_text(extract(data, path))
            if content:
                break
        done = (
            finished(data)
            or data.get("is_end") is True
            or data.get("done") is True
            or data.get("type") == "message_stop"
            or bool(extract(data, "candidates[0].finishReason"))
        )
        if not content and not done:
            return EMPTY_DELTA
        return NormalizedDelta(content, done)


@ProviderRegistry.register("custom")
class CustomAdapter(OpenAIAdapter):
    multimodal = True

    def build_body(self, config: ModelConfig, messages: List[Message]) -> Any:
        if not config.uses_custom_template:
            return super().build_body(config, messages)
        crc = config.custom_request_config
        values = template_values(
            messages=messages,
            model_name=config.model_name or config.name,
            max_tokens=config.max_tokens if config.max_tokens is not None else DEFAULT_MAX_TOKENS,
            temperature=config.temperature if config.temperature is not None else DEFAULT_TEMPERATURE,
            api_key=config.api_key or "",
        )
        return render_json_template(crc.request_body_template, values)

    def create_parser(self, config: ModelConfig):
        rp: Optional[ResponseParserConfig] = None
        if config.uses_custom_template:
            rp = config.custom_request_config.response_parser
        if rp is None:
            return AutoDetectChunkParser()
        return CustomTemplateChunkParser(rp)
