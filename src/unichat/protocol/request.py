from __future__ import annotations
import logging
from typing import Any, Dict, Iterable, List, Mapping, Optional

import httpx

from unichat.core.errors import ConfigError
from unichat.core.models import ModelConfig, TransportRequest
from unichat.core.ports import Message
from unichat.providers.registry import ProviderRegistry

logger = logging.getLogger(__name__)

API_KEY_TOKEN = "{{apiKey}}"

_ATTACHMENT_PARTS = {
    "image": lambda url: {"type": "image_url", "image_url": {"url": url}},
    "audio": lambda url: {"type": "audio", "audio": {"url": url}},
    "video": lambda url: {"type": "video", "video": {"url": url}},
}


def mask_key(api_key: Optional[str]) -> str:
    return f"{api_key[:8]}..." if api_key else "None"


def bearer(config: ModelConfig) -> Dict[str, str]:
    return {"Authorization": f"Bearer {config.api_key}"} if config.api_key else {}


def _content_parts(message: Message) -> Any:
    parts: List[Dict[str, Any]] = []
    for att in message.get("attachments") or []:
        make = _ATTACHMENT_PARTS.get(str(att.get("type")))
        if make and att.get("url"):
            parts.append(make(att["url"]))
    text = str(message.get("content") or "")
    if text.strip():
        parts.append({"type": "text", "text": text})
    return parts


def serialize_messages(config: ModelConfig, messages: Iterable[Message], *, multimodal: bool) -> List[Message]:
    """
    Reduce chat messages to the {role, content} wire shape.
    Attachments become a content-parts array only when both the model and the
    provider accept multimodal input; otherwise they are dropped.
    """
    allow_parts = multimodal and config.supports_multimodal
    out: List[Message] = []
    for m in messages:
        role = m.get("role", "user")
        if m.get("attachments"):
            if allow_parts:
                out.append({"role": role, "content": _content_parts(m)})
                continue
            logger.warning("Model '%s' does not accept attachments; sending text only", config.name)
        out.append({"role": role, "content": str(m.get("content") or "")})
    return out


def merge_headers(base: Mapping[str, str], user: Optional[Mapping[str, str]], api_key: Optional[str]) -> Dict[str, str]:
    """User-supplied headers win; names compare case-insensitively."""
    merged: Dict[str, str] = dict(base)
    for name, value in (user or {}).items():
        for existing in [k for k in merged if k.lower() == name.lower()]:
            del merged[existing]
        value = str(value)
        if API_KEY_TOKEN in value:
            value = value.replace(API_KEY_TOKEN, api_key or "")
        merged[name] = value
    return merged


def _checked_url(config: ModelConfig, url: str) -> str:
    try:
        parsed = httpx.URL(url)
    except httpx.InvalidURL as e:
        raise ConfigError(f"Model '{config.name}' has an invalid apiUrl: {e}") from e
    if parsed.scheme not in ("http", "https") or not parsed.host:
        raise ConfigError(f"Model '{config.name}' apiUrl must be an absolute http(s) URL: {url!r}")
    return url


def _check_headers(config: ModelConfig, headers: Mapping[str, str]) -> None:
    # HTTP/1.1 header names and values go out as ASCII
    for name, value in headers.items():
        try:
            name.encode("ascii")
            value.encode("ascii")
        except UnicodeEncodeError:
            raise ConfigError(
                f"Model '{config.name}': header '{name}' contains non-ASCII characters (check apiKey and custom headers)"
            ) from None


def build_request(config: ModelConfig, messages: Iterable[Message]) -> TransportRequest:
    """
    ModelConfig + history -> request descriptor. No I/O.
    Raises UnsupportedProviderError / ConfigError before anything is sent.
    """
    adapter = ProviderRegistry.adapter_for(config)
    if not (config.api_url or "").strip():
        raise ConfigError(f"Model '{config.name}' has no apiUrl")

    wire = serialize_messages(config, messages, multimodal=adapter.multimodal)
    body = adapter.build_body(config, wire)

    crc = config.custom_request_config
    user_headers = crc.headers if crc is not None and crc.enabled else None
    headers = merge_headers(
        {"Content-Type": "application/json", **adapter.auth_headers(config)},
        user_headers,
        config.api_key,
    )
    url = _checked_url(config, adapter.request_url(config))
    _check_headers(config, headers)
    logger.debug(
        "Request for %s (%s): POST %s key=%s messages=%d",
        config.name, config.model_type, url, mask_key(config.api_key), len(wire),
    )
    return TransportRequest(method="POST", url=url, headers=headers, body=body)
