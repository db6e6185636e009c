"""
Placeholder substitution for user-authored request body templates.

Supported tokens: {{messages}}, {{modelName}}, {{maxTokens}}, {{temperature}},
{{apiKey}}. ``{{messages}}`` is substituted as a JSON array, the others as
JSON-safe text so they can sit inside or outside quotes in the template.
"""
from __future__ import annotations
import json
import re
from typing import Any, Dict, List, Mapping

from unichat.core.errors import ConfigError

_PLACEHOLDER = re.compile(r"\{\{\s*(\w+)\s*\}\}")


def _escape(value: str) -> str:
    # json-escaped body of a string literal, without the surrounding quotes
    return json.dumps(value, ensure_ascii=False)[1:-1]


def substitute(template: str, values: Mapping[str, str]) -> str:
    """Replace known {{tokens}}; unknown tokens are left as written."""
    def repl(m: re.Match) -> str:
        key = m.group(1)
        return values[key] if key in values else m.group(0)
    return _PLACEHOLDER.sub(repl, template)


def template_values(
    *,
    messages: List[Dict[str, Any]],
    model_name: str,
    max_tokens: Any,
    temperature: Any,
    api_key: str,
) -> Dict[str, str]:
    return {
        "messages": json.dumps(messages, ensure_ascii=False),
        "modelName": _escape(model_name),
        "maxTokens": str(max_tokens),
        "temperature": str(temperature),
        "apiKey": _escape(api_key),
    }


def render_json_template(template: str, values: Mapping[str, str]) -> Any:
    if not template or not template.strip():
        raise ConfigError("Custom request body template is empty")
    rendered = substitute(template, values)
    try:
        return json.loads(rendered)
    except json.JSONDecodeError as e:
        raise ConfigError(f"Request body template is not valid JSON after substitution: {e}") from e
