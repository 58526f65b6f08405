"""
meez - Parse Orchestrator.

One parse request, start to finish:

    CLASSIFY_INPUT
      -> URL:      FETCH_HTML -> EXTRACT
      -> RAW_TEXT: PREPARE_TEXT
    -> cache lookup (exact key; fuzzy embedding match when asked)
    -> BUILD_PROMPT -> CALL_MODEL -> SANITIZE -> VALIDATE
    -> CACHE_WRITE -> DONE   |   REJECTED   |   FAILED

Providers, cache, embedder and fetcher are injected, so tests run the
whole pipeline with fakes. Nothing here raises to the caller: every
failure ends up as a ParseError on the ParseResult.
"""

import logging
import time
import uuid
from collections.abc import Awaitable, Callable
from contextlib import contextmanager
from functools import partial
from typing import Literal

from meez.config import settings
from meez.db.adapter import CacheEntryNotFound, RecipeCache
from meez.db.memory import InMemoryRecipeCache
from meez.llm.adapters import GeminiAdapter, ModelAdapter, OpenAIAdapter, run_default_llm
from meez.llm.embeddings import Embedder, OpenAIEmbedder, build_embedding_input
from meez.llm.model_router import PROVIDER_ORDER
from meez.llm.prompt_logger import enable_prompt_logging
from meez.llm.prompts import build_text_prompt, build_url_prompt
from meez.llm.sanitizer import SanitizeError, sanitize
from meez.llm.usage import CostTracker
from meez.models import (
    CacheEntry,
    CombinedRecipe,
    InputType,
    ParseError,
    ParseErrorCode,
    ParseResult,
)
from meez.recipe_import.extractor import extract_content
from meez.recipe_import.fetch import fetch_html
from meez.recipe_import.models import ExtractedContent, FetchResult
from meez.recipe_import.normalizer import normalize_servings

from .input_type import cache_key_for, classify, ensure_scheme
from .text_processor import prepare_text, validate_recipe_text
from .validation import validate_recipe

logger = logging.getLogger(__name__)

Intent = Literal["literal", "fuzzy_match"]
Fetcher = Callable[[str], Awaitable[FetchResult]]

# User-facing messages. Diagnostic detail goes to the logs only.
INVALID_INPUT_MESSAGE = "Please enter a recipe URL or some recipe text."
UNSUPPORTED_MESSAGE = "Images and videos aren't supported yet. Paste a recipe URL or the recipe text."
NO_RECIPE_MESSAGE = "We couldn't find a recipe at that link. Try pasting the recipe text instead."
GENERATION_FAILED_MESSAGE = "We couldn't process this recipe right now. Please try again."

_RECIPE_ALIASES = {
    name: info.alias or name for name, info in CombinedRecipe.model_fields.items()
}

_ADAPTER_CLASSES = {"gemini": GeminiAdapter, "openai": OpenAIAdapter}


class _Rejected(Exception):
    """Ends a parse early with a user-facing error."""

    def __init__(self, code: ParseErrorCode, message: str):
        super().__init__(message)
        self.error = ParseError(code, message)


def _elapsed_ms(start: float) -> float:
    return round((time.perf_counter() - start) * 1000, 1)


@contextmanager
def _timed(result: ParseResult, stage: str):
    start = time.perf_counter()
    try:
        yield
    finally:
        result.timings[stage] = _elapsed_ms(start)


class RecipeParser:
    """
    Turns a URL or pasted text into a CombinedRecipe.

    Usage:
        parser = RecipeParser.from_settings()
        result = await parser.parse("https://example.com/pancakes")
        if result.success:
            print(result.recipe.title)
    """

    def __init__(
        self,
        primary: ModelAdapter,
        secondary: ModelAdapter | None = None,
        *,
        cache: RecipeCache | None = None,
        embedder: Embedder | None = None,
        fetcher: Fetcher | None = None,
        fuzzy_threshold: float | None = None,
        timeout_s: float | None = None,
        max_prompt_chars: int | None = None,
    ):
        self.primary = primary
        self.secondary = secondary
        self.cache = cache if cache is not None else InMemoryRecipeCache()
        self.embedder = embedder
        self.fetcher = fetcher or partial(fetch_html, timeout=settings.fetch_timeout_seconds)
        self.fuzzy_threshold = (
            fuzzy_threshold if fuzzy_threshold is not None else settings.fuzzy_match_threshold
        )
        self.timeout_s = timeout_s
        self.max_prompt_chars = max_prompt_chars
        self.costs = CostTracker()

    @classmethod
    def from_settings(cls) -> "RecipeParser":
        """
        Production wiring: providers in PROVIDER_ORDER, skipping any without
        an API key. Supabase cache when credentials are present (in-memory
        otherwise).
        """
        api_keys = {"gemini": settings.gemini_api_key, "openai": settings.openai_api_key}
        adapters: list[ModelAdapter] = [
            _ADAPTER_CLASSES[provider]() for provider in PROVIDER_ORDER if api_keys[provider]
        ]
        if not adapters:
            raise RuntimeError("Set GEMINI_API_KEY and/or OPENAI_API_KEY to parse recipes")

        if settings.has_cache_credentials:
            from meez.db.client import SupabaseRecipeCache

            cache: RecipeCache = SupabaseRecipeCache()
        else:
            logger.info("No Supabase credentials, using an in-memory cache")
            cache = InMemoryRecipeCache()

        if settings.meez_log_prompts:
            enable_prompt_logging(True)

        embedder = None
        if settings.enable_embeddings and settings.openai_api_key:
            embedder = OpenAIEmbedder()

        return cls(
            adapters[0],
            adapters[1] if len(adapters) > 1 else None,
            cache=cache,
            embedder=embedder,
        )

    # =========================================================================
    # Parse
    # =========================================================================

    async def parse(
        self,
        text: str,
        *,
        force_new_parse: bool = False,
        intent: Intent = "literal",
    ) -> ParseResult:
        """
        Parse one input. Never raises.

        Args:
            text: A recipe URL or pasted recipe text
            force_new_parse: Skip every cache lookup and call the model
            intent: "fuzzy_match" lets pasted text reuse a semantically
                similar cached recipe instead of calling the model

        Returns:
            ParseResult with either recipe or error set
        """
        request_id = uuid.uuid4().hex[:12]
        start = time.perf_counter()
        result = ParseResult()

        try:
            await self._run(text, result, request_id, force_new_parse, intent)
        except _Rejected as rejection:
            result.recipe = None
            result.error = rejection.error
        except Exception as e:
            logger.exception(f"[{request_id}] Unexpected failure while parsing: {e}")
            result.recipe = None
            result.error = ParseError(ParseErrorCode.GENERATION_FAILED, GENERATION_FAILED_MESSAGE)

        result.timings["total"] = _elapsed_ms(start)
        outcome = result.error.code.value if result.error else "ok"
        logger.info(
            f"[{request_id}] Parse finished: {outcome} from_cache={result.from_cache} "
            f"total={result.timings['total']}ms cost=${result.cost_usd:.6f}"
        )
        return result

    async def _run(
        self,
        text: str,
        result: ParseResult,
        rid: str,
        force_new_parse: bool,
        intent: Intent,
    ) -> None:
        raw = classify(text)
        result.input_type = raw.detected_type
        logger.info(f"[{rid}] Received {raw.detected_type.value} input ({len(raw.text)} chars)")

        if raw.detected_type is InputType.INVALID:
            raise _Rejected(ParseErrorCode.INVALID_INPUT, INVALID_INPUT_MESSAGE)
        if raw.detected_type in (InputType.IMAGE, InputType.VIDEO):
            raise _Rejected(ParseErrorCode.UNSUPPORTED_INPUT_TYPE, UNSUPPORTED_MESSAGE)

        source_text = raw.text
        if raw.detected_type is InputType.RAW_TEXT:
            prepared = prepare_text(raw.text, rid)
            if not prepared.ok:
                raise _Rejected(ParseErrorCode.INVALID_INPUT, prepared.error)
            source_text = prepared.text

        result.cache_key = cache_key_for(raw)

        if not force_new_parse:
            with _timed(result, "cache_check"):
                cached = await self._cache_lookup(result.cache_key, rid)
            if cached is not None:
                result.recipe = cached.recipe_data
                result.from_cache = True
                return

            if intent == "fuzzy_match" and raw.detected_type is InputType.RAW_TEXT:
                with _timed(result, "fuzzy_match"):
                    matched = await self._fuzzy_lookup(source_text, rid)
                if matched is not None:
                    result.recipe = matched.recipe_data
                    result.cache_key = matched.key
                    result.from_cache = True
                    return

        content: ExtractedContent | None = None
        if raw.detected_type is InputType.URL:
            content = await self._fetch_and_extract(ensure_scheme(raw.text), result, rid)
            prompt = build_url_prompt(content, request_id=rid)
        else:
            prompt = build_text_prompt(source_text, request_id=rid)

        with _timed(result, "generate"):
            response = await run_default_llm(
                prompt,
                self.primary,
                self.secondary,
                timeout_s=self.timeout_s,
                max_prompt_chars=self.max_prompt_chars,
                tracker=self.costs,
            )
        result.usage = response.usage
        result.cost_usd = response.cost_usd

        if response.error:
            logger.error(f"[{rid}] Generation failed: {response.error}")
            raise _Rejected(ParseErrorCode.GENERATION_FAILED, GENERATION_FAILED_MESSAGE)

        sanitized = sanitize(response.raw_output)
        if isinstance(sanitized, SanitizeError):
            logger.error(f"[{rid}] Could not parse model output: {sanitized.message}")
            logger.debug(f"[{rid}] Raw model output: {sanitized.raw_text[:2000]}")
            raise _Rejected(ParseErrorCode.GENERATION_FAILED, GENERATION_FAILED_MESSAGE)

        outcome = validate_recipe(sanitized, used_fallback=result.used_fallback, request_id=rid)
        result.warnings = outcome.warnings
        if outcome.error:
            raise _Rejected(outcome.error.code, outcome.error.message)

        recipe = self._finalize(sanitized, content)
        result.recipe = recipe

        with _timed(result, "cache_write"):
            await self._cache_write(result.cache_key, recipe, raw.detected_type.value, rid)

    # =========================================================================
    # Stages
    # =========================================================================

    async def _cache_lookup(self, key: str, rid: str) -> CacheEntry | None:
        try:
            entry = await self.cache.get(key)
        except Exception as e:
            logger.error(f"[{rid}] Cache lookup failed, treating as miss: {e}")
            return None

        if entry is not None:
            logger.info(f"[{rid}] Cache hit for {key}")
        return entry

    async def _fuzzy_lookup(self, text: str, rid: str) -> CacheEntry | None:
        if self.embedder is None:
            logger.info(f"[{rid}] Fuzzy match requested but no embedder is configured")
            return None

        try:
            vector = await self.embedder.embed(text)
            matches = await self.cache.similarity_search(vector, self.fuzzy_threshold, limit=1)
        except Exception as e:
            logger.error(f"[{rid}] Fuzzy match failed, continuing with a full parse: {e}")
            return None

        if matches and matches[0].similarity >= self.fuzzy_threshold:
            best = matches[0]
            logger.info(f"[{rid}] Fuzzy match {best.entry.key} (similarity {best.similarity:.3f})")
            return best.entry

        logger.info(f"[{rid}] No fuzzy match at or above {self.fuzzy_threshold}")
        return None

    async def _fetch_and_extract(self, url: str, result: ParseResult, rid: str) -> ExtractedContent:
        with _timed(result, "fetch"):
            fetched = await self.fetcher(url)
        result.fetch_method = fetched.method.value

        if not fetched.success or not fetched.html:
            logger.warning(f"[{rid}] Fetch failed for {url}: {fetched.error}")
            if fetched.fallback_message:
                logger.info(f"[{rid}] {fetched.fallback_message}")
            raise _Rejected(ParseErrorCode.NO_RECIPE_FOUND, NO_RECIPE_MESSAGE)

        with _timed(result, "extract"):
            content = extract_content(fetched.html, fetched.final_url or url)

        if content is None:
            logger.warning(f"[{rid}] Extraction found no recipe content at {url}")
            raise _Rejected(ParseErrorCode.NO_RECIPE_FOUND, NO_RECIPE_MESSAGE)

        result.used_fallback = content.is_fallback
        result.fallback_type = content.fallback_type.value if content.fallback_type else None

        if content.is_fallback:
            problem = validate_recipe_text(content.raw_text or content.ingredients_text)
            if problem:
                logger.warning(f"[{rid}] Fallback page text rejected: {problem}")
                raise _Rejected(ParseErrorCode.NO_RECIPE_FOUND, NO_RECIPE_MESSAGE)

        return content

    def _finalize(self, recipe: CombinedRecipe, content: ExtractedContent | None) -> CombinedRecipe:
        """Normalize yield and fill page metadata the model never produces."""
        updates = {"recipe_yield": normalize_servings(recipe.recipe_yield)}

        if content is not None:
            updates["title"] = recipe.title or content.title
            updates["description"] = recipe.description or content.description
            updates["image"] = recipe.image or content.image_url
            updates["source_url"] = recipe.source_url or content.source_url

        return recipe.model_copy(update=updates)

    async def _cache_write(self, key: str, recipe: CombinedRecipe, source_type: str, rid: str) -> None:
        embedding = None
        if self.embedder is not None:
            try:
                embedding = await self.embedder.embed(build_embedding_input(recipe))
            except Exception as e:
                logger.error(f"[{rid}] Embedding failed, caching without one: {e}")

        try:
            await self.cache.put(key, recipe, source_type, embedding=embedding)
        except Exception as e:
            logger.error(f"[{rid}] Cache write failed for {key}: {e}")

    # =========================================================================
    # Fork
    # =========================================================================

    async def fork(self, entry_key: str, edits: dict) -> CacheEntry:
        """
        Save a user-edited copy of a cached recipe.

        The parent entry is left untouched. Edits may use either field
        names (prep_time) or JSON names (prepTime).

        Raises:
            CacheEntryNotFound: no entry under entry_key
            ValueError: the edited recipe lacks ingredients or instructions
        """
        parent = await self.cache.get(entry_key)
        if parent is None:
            raise CacheEntryNotFound(entry_key)

        data = parent.recipe_data.to_json_dict()
        for name, value in edits.items():
            data[_RECIPE_ALIASES.get(name, name)] = value

        recipe = CombinedRecipe.model_validate(data)
        if not recipe.ingredients or not recipe.instructions:
            raise ValueError("Edited recipe must keep its ingredients and instructions")

        entry = await self.cache.fork(entry_key, recipe)
        logger.info(f"Forked {entry_key} into {entry.key}")
        return entry
