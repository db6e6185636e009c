from __future__ import annotations
from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple

from .models import DEFAULT_MAX_TOKENS, DEFAULT_TEMPERATURE


@dataclass(frozen=True)
class ModelPreset:
    id: str
    name: str
    model_type: str
    api_url_placeholder: str
    description: str
    model_name: Optional[str] = None

    def to_fields(self, **overrides: Any) -> Dict[str, Any]:
        """Starting fields for ModelStore.add()."""
        fields: Dict[str, Any] = {
            "name": self.name,
            "modelType": self.model_type,
            "apiUrl": self.api_url_placeholder,
            "modelName": self.model_name,
            "description": self.description,
            "maxTokens": DEFAULT_MAX_TOKENS,
            "temperature": DEFAULT_TEMPERATURE,
            "enabled": True,
            "supportsMultimodal": False,
        }
        fields.update(overrides)
        return {k: v for k, v in fields.items() if v is not None}


MODEL_PRESETS: Tuple[ModelPreset, ...] = (
    ModelPreset("openai-gpt4", "OpenAI GPT-4", "openai",
                "https://api.openai.com/v1/chat/completions", "OpenAI GPT-4", "gpt-4"),
    ModelPreset("openai-gpt35", "OpenAI GPT-3.5", "openai",
                "https://api.openai.com/v1/chat/completions", "OpenAI GPT-3.5 Turbo", "gpt-3.5-turbo"),
    ModelPreset("openai-gpt4v", "OpenAI GPT-4V", "openai",
                "https://api.openai.com/v1/chat/completions", "OpenAI GPT-4 vision", "gpt-4-vision-preview"),
    ModelPreset("claude-3-opus", "Claude 3 Opus", "claude",
                "https://api.anthropic.com/v1/messages", "Anthropic Claude 3 Opus", "claude-3-opus-20240229"),
    ModelPreset("claude-3-sonnet", "Claude 3 Sonnet", "claude",
                "https://api.anthropic.com/v1/messages", "Anthropic Claude 3 Sonnet", "claude-3-sonnet-20240229"),
    ModelPreset("gemini-pro", "Google Gemini Pro", "gemini",
                "https://generativelanguage.googleapis.com/v1beta/models/gemini-pro:generateContent",
                "Google Gemini Pro"),
    ModelPreset("gemini-15-pro", "Google Gemini 1.5 Pro", "gemini",
                "https://generativelanguage.googleapis.com/v1beta/models/gemini-1.5-pro:generateContent",
                "Google Gemini 1.5 Pro"),
    ModelPreset("baidu-wenxin", "Baidu Wenxin (Qianfan)", "baidu",
                "https://qianfan.baidubce.com/v2/chat/completions", "Baidu Qianfan", "ernie-4.0-turbo-8k"),
    ModelPreset("baidu-qwen-vl", "Baidu Qwen VL", "baidu",
                "https://qianfan.baidubce.com/v2/chat/completions", "Qwen multimodal vision model",
                "qwen3-vl-8b-thinking"),
    ModelPreset("deepseek-coder", "DeepSeek Coder", "deepseek",
                "https://api.deepseek.com/v1/chat/completions", "DeepSeek code model", "deepseek-coder"),
    ModelPreset("microsoft-phi", "Microsoft Phi-3", "microsoft",
                "https://phi.microsoft.com/v1/chat/completions", "Microsoft Phi-3 small language model",
                "phi-3-mini-4k"),
    ModelPreset("perplexity-llama", "Perplexity Llama 3", "perplexity",
                "https://api.perplexity.ai/chat/completions", "Perplexity Llama 3",
                "llama-3-sonar-large-32k-chat"),
    ModelPreset("local-lmstudio", "Local LM Studio", "local",
                "http://localhost:1234/v1/chat/completions", "Local LM Studio server"),
    ModelPreset("local-ollama", "Local Ollama", "local",
                "http://localhost:11434/v1/chat/completions", "Local Ollama server", "llama3"),
    ModelPreset("custom", "Custom model", "custom",
                "https://your-api-endpoint.com/v1/chat/completions", "Custom API endpoint"),
)


def get_preset(preset_id: str) -> Optional[ModelPreset]:
    return next((p for p in MODEL_PRESETS if p.id == preset_id), None)
