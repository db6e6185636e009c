"""Multi-provider LLM chat: one request builder and one delta stream for many wire formats."""
from unichat.core.errors import (
    ConfigError,
    DecodeError,
    ProviderClientError,
    ProviderError,
    TransportError,
    UnsupportedProviderError,
)
from unichat.core.models import (
    CustomRequestConfig,
    ModelConfig,
    NormalizedDelta,
    ResponseParserConfig,
    TransportRequest,
)
from unichat.protocol.path import extract
from unichat.protocol.request import build_request
from unichat.protocol.stream import DeltaStream, stream_completion
from unichat.providers.registry import ProviderRegistry, select_parser

__all__ = [
    "ConfigError",
    "CustomRequestConfig",
    "DecodeError",
    "DeltaStream",
    "ModelConfig",
    "NormalizedDelta",
    "ProviderClientError",
    "ProviderError",
    "ProviderRegistry",
    "ResponseParserConfig",
    "TransportError",
    "TransportRequest",
    "UnsupportedProviderError",
    "build_request",
    "extract",
    "select_parser",
    "stream_completion",
]
