from __future__ import annotations
from typing import Optional


class ProviderError(Exception):
    """Base class for provider-level failures."""


class ProviderClientError(ProviderError):
    """
    Non-retryable: caller/config issue (bad model config, unknown provider,
    invalid template, 4xx auth). The fix is change input/config, not retry.
    """


class ConfigError(ProviderClientError, ValueError):
    """Bad or incomplete ModelConfig, request template, JSON path or app config."""


class UnsupportedProviderError(ProviderClientError):
    """Raised at parser selection time for an unrecognized modelType."""

    def __init__(self, model_type: str):
        super().__init__(f"Unsupported model type: '{model_type}'")
        self.model_type = model_type


class TransportError(ProviderError):
    """
    Connection refused, DNS failure, read failure or a non-2xx status.
    Once streaming has started this is reported as a terminal delta, not raised.
    """

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code

    @property
    def retryable(self) -> bool:
        if self.status_code is None:
            return True
        return self.status_code == 429 or 500 <= self.status_code <= 599


class DecodeError(ProviderError):
    """Malformed chunk. Recovered locally: logged and skipped."""
