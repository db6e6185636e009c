from __future__ import annotations
from typing import Any, Dict, List

from unichat.core.models import EMPTY_DELTA, ModelConfig, NormalizedDelta
from unichat.core.ports import Message
from unichat.protocol.chunks import as_text, decode_chunk, openai_delta
from unichat.protocol.request import bearer
from unichat.providers.registry import ProviderRegistry


class BaiduQianfanChunkParser:
    """
    Two shapes come back from Qianfan:
      v1 (wenxinworkshop): {"id": "...", "result": "...", "is_end": false}
      v2 (OpenAI compatible): {"choices": [{"delta": {"content": "..."}}]}
    """

    provider = "baidu"

    def parse_chunk(self, raw: str) -> NormalizedDelta:
        data = decode_chunk(raw, self.provider)
        if data is None:
            return EMPTY_DELTA

        if data.get("error_code"):
            msg = data.get("error_msg") or "Qianfan API error"
            return NormalizedDelta("", True, f"{msg} (error_code {data['error_code']})")

        if "is_end" in data or "result" in data:
            return NormalizedDelta(as_text(data.get("result")), data.get("is_end") is True)

        return openai_delta(data)


@ProviderRegistry.register("baidu", "baidu-qianfan")
class BaiduQianfanAdapter:
    multimodal = True

    def request_url(self, config: ModelConfig) -> str:
        return config.api_url

    def auth_headers(self, config: ModelConfig) -> Dict[str, str]:
        return bearer(config)

    def build_body(self, config: ModelConfig, messages: List[Message]) -> Dict[str, Any]:
        body: Dict[str, Any] = {"messages": messages, "stream": True}
        # without a model name the endpoint URL selects the model (v1 routes)
        if config.model_name:
            body["model"] = config.model_name
        if config.max_tokens:
            body["max_output_tokens"] = config.max_tokens
        if config.temperature is not None:
            body["temperature"] = config.temperature
        return body

    def create_parser(self, config: ModelConfig) -> BaiduQianfanChunkParser:
        return BaiduQianfanChunkParser()
