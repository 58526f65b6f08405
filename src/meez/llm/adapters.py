"""
meez - Model Adapters.

Uniform request/response contract over language-model providers.

Each adapter turns a PromptPayload into one provider call and normalizes
the result (text + token usage) into an AdapterResponse. Adapters let SDK
exceptions propagate; run_default_llm is the layer that turns failures,
timeouts and empty output into provider fallback, and it never raises.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Protocol, runtime_checkable

from google import genai
from google.genai import types
from openai import AsyncOpenAI

from meez.config import settings
from meez.models import TokenUsage

from .model_router import get_model, get_model_config
from .prompt_logger import log_prompt
from .usage import CostTracker, estimate_cost, normalize_usage

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PromptPayload:
    """
    One logical prompt. The same payload may be sent to several providers
    in sequence; each attempt is independent.
    """

    system_instruction: str
    user_text: str
    expect_json: bool = True
    temperature: float | None = None  # None = per-task default from the router
    task: str | None = None
    request_id: str | None = None

    @property
    def char_count(self) -> int:
        return len(self.system_instruction) + len(self.user_text)


@dataclass
class AdapterResponse:
    """Outcome of one provider attempt (or of a whole fallback run)."""

    raw_output: str | None = None
    usage: TokenUsage = field(default_factory=TokenUsage)
    error: str | None = None
    provider: str | None = None
    model: str | None = None
    cost_usd: float = 0.0

    @property
    def has_output(self) -> bool:
        return bool(self.raw_output and self.raw_output.strip())


@runtime_checkable
class ModelAdapter(Protocol):
    """A language-model provider behind the uniform contract."""

    name: str
    model: str

    async def generate(self, prompt: PromptPayload) -> AdapterResponse:
        """Make one call. May raise on provider errors."""
        ...


def _temperature(prompt: PromptPayload, provider: str) -> float:
    if prompt.temperature is not None:
        return prompt.temperature
    return get_model_config(provider, prompt.task)["temperature"]


# =============================================================================
# Providers
# =============================================================================


class GeminiAdapter:
    """Google Gemini via the google-genai SDK."""

    name = "gemini"

    def __init__(
        self,
        client: genai.Client | None = None,
        model: str | None = None,
        api_key: str | None = None,
    ):
        self._client = client
        self._api_key = api_key
        self.model = model or get_model(self.name)

    @property
    def client(self) -> genai.Client:
        if self._client is None:
            self._client = genai.Client(api_key=self._api_key or settings.gemini_api_key)
        return self._client

    async def generate(self, prompt: PromptPayload) -> AdapterResponse:
        config = get_model_config(self.name, prompt.task)
        generation_config = types.GenerateContentConfig(
            system_instruction=prompt.system_instruction,
            temperature=_temperature(prompt, self.name),
            max_output_tokens=config.get("max_output_tokens"),
            response_mime_type="application/json" if prompt.expect_json else None,
        )

        try:
            response = await self.client.aio.models.generate_content(
                model=self.model,
                contents=prompt.user_text,
                config=generation_config,
            )
        except Exception as e:
            log_prompt(
                provider=self.name,
                model=self.model,
                system_prompt=prompt.system_instruction,
                user_prompt=prompt.user_text,
                request_id=prompt.request_id,
                error=str(e),
            )
            raise

        usage = normalize_usage(response.usage_metadata, self.name)
        text = response.text
        error = None

        feedback = getattr(response, "prompt_feedback", None)
        block_reason = getattr(feedback, "block_reason", None) if feedback else None
        if not text and block_reason:
            error = f"Gemini blocked the prompt: {block_reason}"

        log_prompt(
            provider=self.name,
            model=self.model,
            system_prompt=prompt.system_instruction,
            user_prompt=prompt.user_text,
            request_id=prompt.request_id,
            response=text,
            error=error,
            usage={"input_tokens": usage.input_tokens, "output_tokens": usage.output_tokens},
        )

        return AdapterResponse(
            raw_output=text,
            usage=usage,
            error=error,
            provider=self.name,
            model=self.model,
            cost_usd=estimate_cost(self.model, usage.input_tokens, usage.output_tokens),
        )


class OpenAIAdapter:
    """OpenAI chat completions."""

    name = "openai"

    def __init__(
        self,
        client: AsyncOpenAI | None = None,
        model: str | None = None,
        api_key: str | None = None,
    ):
        self._client = client
        self._api_key = api_key
        self.model = model or get_model(self.name)

    @property
    def client(self) -> AsyncOpenAI:
        if self._client is None:
            self._client = AsyncOpenAI(api_key=self._api_key or settings.openai_api_key)
        return self._client

    async def generate(self, prompt: PromptPayload) -> AdapterResponse:
        config = get_model_config(self.name, prompt.task)

        api_kwargs = {
            "model": self.model,
            "messages": [
                {"role": "system", "content": prompt.system_instruction},
                {"role": "user", "content": prompt.user_text},
            ],
            "temperature": _temperature(prompt, self.name),
            "max_tokens": min(config.get("max_output_tokens", 4096), 4096),
        }
        if prompt.expect_json:
            api_kwargs["response_format"] = {"type": "json_object"}

        try:
            response = await self.client.chat.completions.create(**api_kwargs)
        except Exception as e:
            log_prompt(
                provider=self.name,
                model=self.model,
                system_prompt=prompt.system_instruction,
                user_prompt=prompt.user_text,
                request_id=prompt.request_id,
                error=str(e),
            )
            raise

        text = response.choices[0].message.content if response.choices else None
        usage = normalize_usage(response.usage, self.name)

        log_prompt(
            provider=self.name,
            model=self.model,
            system_prompt=prompt.system_instruction,
            user_prompt=prompt.user_text,
            request_id=prompt.request_id,
            response=text,
            usage={"input_tokens": usage.input_tokens, "output_tokens": usage.output_tokens},
        )

        return AdapterResponse(
            raw_output=text,
            usage=usage,
            provider=self.name,
            model=self.model,
            cost_usd=estimate_cost(self.model, usage.input_tokens, usage.output_tokens),
        )


# =============================================================================
# Fallback
# =============================================================================


class FallbackState(str, Enum):
    """States of one run_default_llm call."""

    ATTEMPT_PRIMARY = "attempt_primary"
    ATTEMPT_SECONDARY = "attempt_secondary"
    FAIL = "fail"


_NEXT_STATE = {
    FallbackState.ATTEMPT_PRIMARY: FallbackState.ATTEMPT_SECONDARY,
    FallbackState.ATTEMPT_SECONDARY: FallbackState.FAIL,
}


async def _attempt(adapter: ModelAdapter, prompt: PromptPayload, timeout_s: float) -> AdapterResponse:
    """One bounded provider call; every failure comes back as an error response."""
    try:
        return await asyncio.wait_for(adapter.generate(prompt), timeout=timeout_s)
    except asyncio.TimeoutError:
        return AdapterResponse(
            error=f"{adapter.name} timed out after {timeout_s:g}s",
            provider=adapter.name,
            model=adapter.model,
        )
    except Exception as e:
        return AdapterResponse(
            error=f"{adapter.name} call failed: {e}",
            provider=adapter.name,
            model=adapter.model,
        )


async def run_default_llm(
    prompt: PromptPayload,
    primary: ModelAdapter,
    secondary: ModelAdapter | None = None,
    *,
    timeout_s: float | None = None,
    max_prompt_chars: int | None = None,
    tracker: CostTracker | None = None,
) -> AdapterResponse:
    """
    Run a prompt against the primary provider, falling back to the secondary.

    Each provider is tried at most once, in sequence. A raise, a timeout,
    an adapter error or empty output moves on to the next provider.
    Oversized prompts are rejected before any call. Every attempt that
    reached a provider is recorded on tracker, when one is given.

    Returns:
        AdapterResponse with output from the first provider that produced
        any, usage summed across attempts; or an error response when every
        provider failed. Never raises.
    """
    timeout_s = timeout_s if timeout_s is not None else settings.llm_timeout_seconds
    max_prompt_chars = max_prompt_chars if max_prompt_chars is not None else settings.max_prompt_chars
    rid = prompt.request_id or "-"

    if prompt.char_count > max_prompt_chars:
        logger.warning(f"[{rid}] Prompt rejected before sending: {prompt.char_count} chars > {max_prompt_chars}")
        return AdapterResponse(error=f"Prompt is too large ({prompt.char_count} chars).")

    adapters = {
        FallbackState.ATTEMPT_PRIMARY: primary,
        FallbackState.ATTEMPT_SECONDARY: secondary,
    }
    usage = TokenUsage()
    cost = 0.0
    failures: list[str] = []

    state = FallbackState.ATTEMPT_PRIMARY
    while state is not FallbackState.FAIL:
        adapter = adapters[state]
        if adapter is None:
            state = _NEXT_STATE[state]
            continue

        response = await _attempt(adapter, prompt, timeout_s)
        usage = usage + response.usage
        cost += response.cost_usd
        if tracker is not None and (response.usage.input_tokens or response.usage.output_tokens):
            tracker.add(adapter.model, response.usage.input_tokens, response.usage.output_tokens, provider=adapter.name)

        if response.error is None and response.has_output:
            logger.info(
                f"[{rid}] {adapter.name} answered ({response.usage.input_tokens} in / "
                f"{response.usage.output_tokens} out)"
            )
            return AdapterResponse(
                raw_output=response.raw_output,
                usage=usage,
                provider=adapter.name,
                model=adapter.model,
                cost_usd=cost,
            )

        reason = response.error or "empty output"
        failures.append(reason)
        logger.warning(f"[{rid}] {adapter.name} failed ({reason}), moving on")
        state = _NEXT_STATE[state]

    names = [a.name for a in (primary, secondary) if a is not None]
    if len(names) == 2:
        message = f"Both {names[0]} and {names[1]} failed."
    else:
        message = f"{names[0] if names else 'No provider'} failed."
    logger.error(f"[{rid}] {message} {'; '.join(failures)}")

    return AdapterResponse(error=message, usage=usage, cost_usd=cost)
