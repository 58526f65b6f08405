"""
Test doubles for the parse pipeline: model providers, embedder, fetcher.
"""

import asyncio

from meez.llm.adapters import AdapterResponse, PromptPayload
from meez.models import TokenUsage
from meez.recipe_import.models import FetchMethod, FetchResult


def run(coro):
    """Drive a coroutine to completion from a sync test."""
    return asyncio.run(coro)


class FakeAdapter:
    """
    Scripted provider. Each call pops the next output; an Exception in
    the script is raised instead of returned.
    """

    def __init__(self, name="fake", outputs=None, model="fake-model", delay=0.0, usage=(100, 50)):
        self.name = name
        self.model = model
        self.outputs = list(outputs or [])
        self.delay = delay
        self.usage = TokenUsage(*usage)
        self.calls: list[PromptPayload] = []

    async def generate(self, prompt: PromptPayload) -> AdapterResponse:
        self.calls.append(prompt)
        if self.delay:
            await asyncio.sleep(self.delay)
        output = self.outputs.pop(0) if self.outputs else ""
        if isinstance(output, Exception):
            raise output
        return AdapterResponse(
            raw_output=output,
            usage=self.usage,
            provider=self.name,
            model=self.model,
            cost_usd=0.001,
        )


class FakeEmbedder:
    """Returns a fixed vector per exact text, default otherwise."""

    def __init__(self, vectors=None, default=None, error=None):
        self.vectors = vectors or {}
        self.default = default or [1.0, 0.0, 0.0]
        self.error = error
        self.calls: list[str] = []

    async def embed(self, text: str, max_chars: int = 8192) -> list[float]:
        self.calls.append(text)
        if self.error:
            raise self.error
        return self.vectors.get(text, self.default)


class FakeFetcher:
    """Serves canned HTML for any URL."""

    def __init__(self, html=None, error=None, fallback_message=None):
        self.html = html
        self.error = error
        self.fallback_message = fallback_message
        self.calls: list[str] = []

    async def __call__(self, url: str) -> FetchResult:
        self.calls.append(url)
        if self.error:
            return FetchResult(
                success=False,
                method=FetchMethod.FAILED,
                error=self.error,
                fallback_message=self.fallback_message,
            )
        return FetchResult(success=True, method=FetchMethod.DIRECT, html=self.html, final_url=url)
