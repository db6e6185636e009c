from __future__ import annotations
from typing import Any, Dict, List, Optional, Protocol, TYPE_CHECKING

if TYPE_CHECKING:
    from .models import ModelConfig, NormalizedDelta

# {'role': 'system'|'user'|'assistant', 'content': '...', 'attachments': [{'type': 'image', 'url': ...}]}
Message = Dict[str, Any]


class ChunkParser(Protocol):
    """
    Maps one raw chunk string (already stripped of its ``data:`` prefix) to a delta.
    Must never raise: malformed input degrades to an empty, non-terminal delta.
    """

    def parse_chunk(self, raw: str) -> "NormalizedDelta":
        ...


class ProviderAdapter(Protocol):
    """
    Everything provider-specific about one chat-completion API:
    request URL, auth headers, body shape and the parser for its stream.
    """

    # whether message content may be sent as a multimodal parts array
    multimodal: bool

    def request_url(self, config: "ModelConfig") -> str:
        ...

    def auth_headers(self, config: "ModelConfig") -> Dict[str, str]:
        ...

    def build_body(self, config: "ModelConfig", messages: List[Message]) -> Any:
        ...

    def create_parser(self, config: "ModelConfig") -> ChunkParser:
        ...


class KeyValueStore(Protocol):
    """String-to-string persistence, the shape of browser localStorage."""

    def get(self, key: str) -> Optional[str]:
        ...

    def set(self, key: str, value: str) -> None:
        ...

    def delete(self, key: str) -> None:
        ...
