"""
meez - Model Router.

Maps a provider and a parsing task to the model config used for the call.

Providers:
- gemini: primary (cheap, fast)
- openai: secondary, used only when gemini fails
"""

from typing import Literal, TypedDict

from meez.config import settings

Provider = Literal["gemini", "openai"]


class ModelConfig(TypedDict, total=False):
    """Configuration for model calls."""

    model: str
    temperature: float
    max_output_tokens: int


# Fallback order for run_default_llm
PROVIDER_ORDER: tuple[Provider, Provider] = ("gemini", "openai")

DEFAULT_CONFIG: ModelConfig = {
    "temperature": 0.2,
    "max_output_tokens": 8192,
}

# Task-specific temperature overrides
TASK_TEMPERATURE: dict[str, float] = {
    "url_parse": 0.1,
    "text_parse": 0.2,
}


def get_model(provider: Provider | str) -> str:
    """Configured model name for a provider."""
    if provider == "gemini":
        return settings.gemini_model
    if provider == "openai":
        return settings.openai_model
    raise ValueError(f"Unknown provider: {provider}")


def get_model_config(provider: Provider | str, task: str | None = None) -> ModelConfig:
    """
    Full model configuration for a provider and task.

    Args:
        provider: "gemini" or "openai"
        task: Optional task name ("url_parse", "text_parse", ...)

    Returns:
        Model configuration with model name and temperature
    """
    config: ModelConfig = {**DEFAULT_CONFIG, "model": get_model(provider)}

    if task in TASK_TEMPERATURE:
        config["temperature"] = TASK_TEMPERATURE[task]

    return config
