from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

from unichat.protocol.path import validate_path

CUSTOM_MODEL_TYPE = "custom"

DEFAULT_MAX_TOKENS = 2000
DEFAULT_TEMPERATURE = 0.7


class _CamelModel(BaseModel):
    # Persisted layout is camelCase (apiUrl, modelType, ...); Python side is snake_case.
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)


class ResponseParserConfig(_CamelModel):
    content_path: str
    error_path: Optional[str] = None
    usage_path: Optional[str] = None
    done_path: Optional[str] = None

    @field_validator("content_path", "error_path", "usage_path", "done_path")
    @classmethod
    def _check_path(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return value
        # raises ConfigError (a ValueError) so pydantic reports it as a validation error
        validate_path(value)
        return value


class CustomRequestConfig(_CamelModel):
    enabled: bool = False
    request_body_template: str = ""
    headers: Optional[Dict[str, str]] = None
    response_parser: Optional[ResponseParserConfig] = None


class ModelConfig(_CamelModel):
    """
    One model configuration as stored by the model store.
    Immutable: use model_copy(update=...) to derive a changed snapshot.
    """

    id: str
    name: str = ""
    model_type: str
    api_url: str
    api_key: Optional[str] = None
    model_name: Optional[str] = None
    description: Optional[str] = None
    max_tokens: Optional[int] = DEFAULT_MAX_TOKENS
    temperature: Optional[float] = DEFAULT_TEMPERATURE
    enabled: bool = True
    supports_multimodal: bool = False
    custom_request_config: Optional[CustomRequestConfig] = None
    created_at: int = 0
    updated_at: int = 0

    @model_validator(mode="before")
    @classmethod
    def _default_name(cls, data: Any) -> Any:
        if isinstance(data, dict) and not data.get("name"):
            data = dict(data)
            data["name"] = data.get("modelName") or data.get("model_name") or data.get("id") or ""
        return data

    @property
    def uses_custom_template(self) -> bool:
        crc = self.custom_request_config
        return self.model_type.lower() == CUSTOM_MODEL_TYPE and crc is not None and crc.enabled

    def to_record(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


@dataclass(frozen=True)
class NormalizedDelta:
    """One provider-agnostic increment of generated text plus completion/error status."""

    content: str = ""
    done: bool = False
    error_message: Optional[str] = None

    @property
    def is_terminal(self) -> bool:
        return self.done or self.error_message is not None

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {"content": self.content, "done": self.done}
        if self.error_message is not None:
            out["errorMessage"] = self.error_message
        return out


EMPTY_DELTA = NormalizedDelta()


@dataclass(frozen=True)
class TransportRequest:
    method: str
    url: str
    headers: Dict[str, str] = field(default_factory=dict)
    body: Any = None
