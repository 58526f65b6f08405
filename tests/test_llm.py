"""
Tests for provider adapters, provider fallback and prompt building.
"""

from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest

from meez.llm.adapters import (
    GeminiAdapter,
    ModelAdapter,
    OpenAIAdapter,
    PromptPayload,
    run_default_llm,
)
from meez.llm import prompt_logger
from meez.llm.embeddings import OpenAIEmbedder, build_embedding_input
from meez.llm.prompts import (
    FALLBACK_PREFIX,
    SYSTEM_PROMPT,
    URL_PREFIX,
    build_text_prompt,
    build_url_prompt,
)
from meez.llm.usage import CostTracker
from meez.recipe_import.models import ExtractedContent, FallbackType

from fakes import FakeAdapter, run

PROMPT = PromptPayload(system_instruction="Return JSON.", user_text="2 cups flour", task="text_parse")


class TestRunDefaultLlm:
    """Primary/secondary fallback."""

    def test_primary_success_skips_secondary(self):
        primary = FakeAdapter("gemini", ['{"title": "A"}'])
        secondary = FakeAdapter("openai", ['{"title": "B"}'])

        response = run(run_default_llm(PROMPT, primary, secondary))

        assert response.raw_output == '{"title": "A"}'
        assert response.provider == "gemini"
        assert response.error is None
        assert len(primary.calls) == 1
        assert secondary.calls == []

    def test_exception_falls_back(self):
        primary = FakeAdapter("gemini", [RuntimeError("quota exceeded")])
        secondary = FakeAdapter("openai", ['{"title": "B"}'])

        response = run(run_default_llm(PROMPT, primary, secondary))

        assert response.raw_output == '{"title": "B"}'
        assert response.provider == "openai"
        assert len(secondary.calls) == 1

    def test_empty_output_falls_back(self):
        primary = FakeAdapter("gemini", ["   "])
        secondary = FakeAdapter("openai", ['{"title": "B"}'])

        response = run(run_default_llm(PROMPT, primary, secondary))

        assert response.provider == "openai"

    def test_timeout_falls_back(self):
        primary = FakeAdapter("gemini", ['{"title": "slow"}'], delay=1.0)
        secondary = FakeAdapter("openai", ['{"title": "fast"}'])

        response = run(run_default_llm(PROMPT, primary, secondary, timeout_s=0.05))

        assert response.raw_output == '{"title": "fast"}'

    def test_both_fail(self):
        primary = FakeAdapter("gemini", [RuntimeError("boom")])
        secondary = FakeAdapter("openai", [""])

        response = run(run_default_llm(PROMPT, primary, secondary))

        assert response.raw_output is None
        assert response.error == "Both gemini and openai failed."
        assert len(primary.calls) == 1
        assert len(secondary.calls) == 1

    def test_single_provider_failure_message(self):
        primary = FakeAdapter("gemini", [""])

        response = run(run_default_llm(PROMPT, primary))

        assert response.error == "gemini failed."

    def test_usage_summed_across_attempts(self):
        primary = FakeAdapter("gemini", [""], usage=(100, 0))
        secondary = FakeAdapter("openai", ['{"title": "B"}'], usage=(120, 60))

        response = run(run_default_llm(PROMPT, primary, secondary))

        assert response.usage.input_tokens == 220
        assert response.usage.output_tokens == 60
        assert response.cost_usd == pytest.approx(0.002)

    def test_oversized_prompt_never_sent(self):
        primary = FakeAdapter("gemini", ['{"title": "A"}'])
        secondary = FakeAdapter("openai", ['{"title": "B"}'])

        response = run(run_default_llm(PROMPT, primary, secondary, max_prompt_chars=10))

        assert response.error.startswith("Prompt is too large")
        assert primary.calls == []
        assert secondary.calls == []

    def test_tracker_records_each_attempt(self):
        tracker = CostTracker()
        primary = FakeAdapter("gemini", [""], model="gemini-2.5-flash")
        secondary = FakeAdapter("openai", ['{"title": "B"}'], model="gpt-4-turbo")

        run(run_default_llm(PROMPT, primary, secondary, tracker=tracker))

        assert [c["provider"] for c in tracker.calls] == ["gemini", "openai"]
        assert tracker.total_input_tokens == 200

    def test_fake_satisfies_protocol(self):
        assert isinstance(FakeAdapter(), ModelAdapter)


class TestGeminiAdapter:
    """google-genai calls through a mocked client."""

    def _client(self, text, usage=None, feedback=None):
        client = MagicMock()
        client.aio.models.generate_content = AsyncMock(
            return_value=SimpleNamespace(
                text=text,
                usage_metadata=usage,
                prompt_feedback=feedback,
            )
        )
        return client

    def test_generate(self):
        usage = SimpleNamespace(prompt_token_count=1000, candidates_token_count=200)
        client = self._client('{"title": "A"}', usage)
        adapter = GeminiAdapter(client=client, model="gemini-2.5-flash")

        response = run(adapter.generate(PROMPT))

        assert response.raw_output == '{"title": "A"}'
        assert response.usage.input_tokens == 1000
        assert response.usage.output_tokens == 200
        assert response.cost_usd > 0

        kwargs = client.aio.models.generate_content.call_args.kwargs
        assert kwargs["model"] == "gemini-2.5-flash"
        assert kwargs["contents"] == "2 cups flour"
        assert kwargs["config"].response_mime_type == "application/json"
        assert kwargs["config"].system_instruction == "Return JSON."
        assert kwargs["config"].temperature == 0.2

    def test_blocked_prompt(self):
        feedback = SimpleNamespace(block_reason="SAFETY")
        adapter = GeminiAdapter(client=self._client(None, feedback=feedback))

        response = run(adapter.generate(PROMPT))

        assert response.raw_output is None
        assert "SAFETY" in response.error

    def test_sdk_error_propagates(self):
        client = MagicMock()
        client.aio.models.generate_content = AsyncMock(side_effect=RuntimeError("503"))
        adapter = GeminiAdapter(client=client)

        with pytest.raises(RuntimeError):
            run(adapter.generate(PROMPT))


class TestOpenAIAdapter:
    """chat.completions through a mocked client."""

    def test_generate(self):
        client = MagicMock()
        client.chat.completions.create = AsyncMock(
            return_value=SimpleNamespace(
                choices=[SimpleNamespace(message=SimpleNamespace(content='{"title": "B"}'))],
                usage=SimpleNamespace(prompt_tokens=50, completion_tokens=20),
            )
        )
        adapter = OpenAIAdapter(client=client, model="gpt-4-turbo")

        response = run(adapter.generate(PROMPT))

        assert response.raw_output == '{"title": "B"}'
        assert response.usage.input_tokens == 50
        assert response.usage.output_tokens == 20

        kwargs = client.chat.completions.create.call_args.kwargs
        assert kwargs["response_format"] == {"type": "json_object"}
        assert kwargs["max_tokens"] == 4096
        assert kwargs["messages"][0] == {"role": "system", "content": "Return JSON."}

    def test_no_choices(self):
        client = MagicMock()
        client.chat.completions.create = AsyncMock(return_value=SimpleNamespace(choices=[], usage=None))
        adapter = OpenAIAdapter(client=client)

        response = run(adapter.generate(PROMPT))

        assert not response.has_output
        assert response.usage.input_tokens == 0


class TestPrompts:
    """Prompt payloads for pages and pasted text."""

    def test_url_prompt(self):
        content = ExtractedContent(
            title="Chili",
            ingredients_text="1 lb beef\n2 tbsp chili powder",
            instructions_text="Brown the beef.\nSimmer.",
            yield_text="4",
        )

        prompt = build_url_prompt(content, request_id="abc")

        assert prompt.system_instruction == SYSTEM_PROMPT
        assert prompt.user_text.startswith(URL_PREFIX)
        assert "Title: Chili" in prompt.user_text
        assert "Prep Time: N/A" in prompt.user_text
        assert "Ingredients:\n1 lb beef\n2 tbsp chili powder" in prompt.user_text
        assert prompt.task == "url_parse"
        assert prompt.request_id == "abc"

    def test_sections_capped_at_forty_lines(self):
        lines = "\n".join(f"{i} cups flour" for i in range(1, 51))
        content = ExtractedContent(ingredients_text=lines, instructions_text="Mix.")

        prompt = build_url_prompt(content)

        assert "40 cups flour" in prompt.user_text
        assert "41 cups flour" not in prompt.user_text
        assert "[INGREDIENTS TRUNCATED]" in prompt.user_text

    def test_fallback_prompt(self):
        body = "Pancakes\n2 cups flour\nMix and cook."
        content = ExtractedContent(
            ingredients_text=body,
            instructions_text=body,
            is_fallback=True,
            fallback_type=FallbackType.RAW_BODY,
        )

        prompt = build_url_prompt(content)

        assert prompt.user_text.startswith(FALLBACK_PREFIX)
        assert "Raw Page Content:\nPancakes" in prompt.user_text
        assert prompt.user_text.count("2 cups flour") == 1

    def test_fallback_prompt_sends_whole_page(self):
        content = ExtractedContent(
            ingredients_text="2 eggs\n1 cup milk",
            instructions_text="Crepes\n2 eggs\n1 cup milk\nWhisk and fry thin.",
            raw_text="Crepes\n2 eggs\n1 cup milk\nWhisk and fry thin.",
            is_fallback=True,
            fallback_type=FallbackType.RAW_BODY,
        )

        prompt = build_url_prompt(content)

        assert "Raw Page Content:\nCrepes" in prompt.user_text
        assert "Whisk and fry thin." in prompt.user_text

    def test_text_prompt(self):
        prompt = build_text_prompt("  2 eggs, scrambled  ")
        assert prompt.user_text == "2 eggs, scrambled"
        assert prompt.task == "text_parse"


class TestEmbeddings:
    """Embedding input and the OpenAI embedder."""

    def test_embedding_input(self, sample_recipe):
        text = build_embedding_input(sample_recipe)
        assert text.startswith("Title: Buttermilk Pancakes\n")
        assert "2 egg, beaten" in text
        assert "Instructions: Whisk the flour" in text

    def test_embed_truncates(self):
        client = MagicMock()
        client.embeddings.create = AsyncMock(
            return_value=SimpleNamespace(data=[SimpleNamespace(embedding=[0.1, 0.2])])
        )
        embedder = OpenAIEmbedder(client=client, model="text-embedding-3-small")

        vector = run(embedder.embed("x" * 100, max_chars=10))

        assert vector == [0.1, 0.2]
        assert client.embeddings.create.call_args.kwargs["input"] == "x" * 10

    def test_embed_empty_raises(self):
        embedder = OpenAIEmbedder(client=MagicMock())
        with pytest.raises(ValueError):
            run(embedder.embed("   "))


class TestPromptLogger:
    """Markdown prompt logs, off unless enabled."""

    def test_disabled_by_default(self):
        assert prompt_logger.log_prompt(
            provider="gemini", model="m", system_prompt="s", user_prompt="u"
        ) is None

    def test_writes_markdown_when_enabled(self, tmp_path, monkeypatch):
        monkeypatch.setattr(prompt_logger, "LOG_DIR", tmp_path)
        prompt_logger.reset_session()
        prompt_logger.enable_prompt_logging(True)
        try:
            path = prompt_logger.log_prompt(
                provider="openai",
                model="gpt-4-turbo",
                system_prompt="Return JSON.",
                user_prompt="2 cups flour",
                request_id="abc123",
                response='{"title": "Flour"}',
                usage={"input_tokens": 10, "output_tokens": 4},
            )
        finally:
            prompt_logger.enable_prompt_logging(False)
            prompt_logger.reset_session()

        assert path.name == "01_openai.md"
        content = path.read_text(encoding="utf-8")
        assert "**Request:** abc123" in content
        assert "input=10, output=4" in content
        assert '{"title": "Flour"}' in content
