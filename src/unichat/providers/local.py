from __future__ import annotations
from typing import Any, Dict, List

from unichat.core.models import ModelConfig
from unichat.core.ports import Message
from unichat.providers.custom import AutoDetectChunkParser
from unichat.providers.openai_compat import OpenAIAdapter
from unichat.providers.registry import ProviderRegistry


@ProviderRegistry.register("local")
class LocalAdapter(OpenAIAdapter):
    """
    LM Studio / Ollama endpoints. Only sends the sampling params that were
    actually set, since some local models reject the rest.

    Replies may be OpenAI chunks over SSE (``/v1/chat/completions``) or
    Ollama's native ``{"message": {"content": ...}, "done": ...}`` lines over
    NDJSON (``/api/chat``), so the parser detects the shape per chunk.
    """

    multimodal = False
    default_model = "llama2"

    def build_body(self, config: ModelConfig, messages: List[Message]) -> Dict[str, Any]:
        body: Dict[str, Any] = {
            "model": config.model_name or self.default_model,
            "messages": messages,
            "stream": True,
        }
        params: Dict[str, Any] = {}
        if config.temperature is not None:
            params["temperature"] = config.temperature
        if config.max_tokens and config.max_tokens > 0:
            params["num_predict"] = config.max_tokens

        # deepseek-r1 builds only accept sampling params under "options"
        if "deepseek-r1" in (config.model_name or ""):
            body["options"] = params
        else:
            body.update(params)
        return body

    def create_parser(self, config: ModelConfig) -> AutoDetectChunkParser:
        return AutoDetectChunkParser()
