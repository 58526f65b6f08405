"""
meez - Recipe Embeddings.

Semantic vectors for fuzzy recipe matching. Pasted text is embedded on
lookup; freshly parsed recipes are embedded on the cache write.
"""

import logging
from typing import Protocol, runtime_checkable

from openai import AsyncOpenAI

from meez.config import settings
from meez.models import CombinedRecipe

logger = logging.getLogger(__name__)

# Input is cut to this many characters before embedding
MAX_EMBEDDING_CHARS = 8192


@runtime_checkable
class Embedder(Protocol):
    """Anything that turns text into a vector."""

    async def embed(self, text: str, max_chars: int = MAX_EMBEDDING_CHARS) -> list[float]:
        ...


class OpenAIEmbedder:
    """OpenAI embeddings (text-embedding-3-small by default)."""

    def __init__(
        self,
        client: AsyncOpenAI | None = None,
        model: str | None = None,
        api_key: str | None = None,
    ):
        self._client = client
        self._api_key = api_key
        self.model = model or settings.embedding_model

    @property
    def client(self) -> AsyncOpenAI:
        if self._client is None:
            self._client = AsyncOpenAI(api_key=self._api_key or settings.openai_api_key)
        return self._client

    async def embed(self, text: str, max_chars: int = MAX_EMBEDDING_CHARS) -> list[float]:
        """Embed text, truncated to max_chars. Raises on provider errors."""
        text = text.strip()[:max_chars]
        if not text:
            raise ValueError("Cannot embed empty text")

        response = await self.client.embeddings.create(model=self.model, input=text)
        return response.data[0].embedding


def build_embedding_input(recipe: CombinedRecipe) -> str:
    """
    Flatten a recipe into the text that gets embedded.

    Examples:
        Title: Pancakes
        Ingredients: 1 cup flour; 2 egg; 1 cup milk, warmed
        Instructions: Mix. Cook on a griddle.
    """
    parts = []

    if recipe.title:
        parts.append(f"Title: {recipe.title}")

    if recipe.ingredients:
        lines = []
        for ing in recipe.ingredients:
            line = " ".join(p for p in (ing.amount, ing.unit, ing.name) if p)
            if ing.preparation:
                line += f", {ing.preparation}"
            lines.append(line)
        parts.append("Ingredients: " + "; ".join(lines))

    if recipe.instructions:
        parts.append("Instructions: " + " ".join(recipe.instructions))

    return "\n".join(parts)
