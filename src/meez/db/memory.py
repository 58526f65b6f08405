"""
meez - In-memory recipe cache.

Process-local RecipeCache for tests and offline runs. Similarity is plain
cosine similarity over stored embeddings.
"""

import math
import uuid

from meez.models import CacheEntry, CombinedRecipe, SimilarMatch

from .adapter import USER_MODIFIED_SOURCE, CacheEntryNotFound


def cosine_similarity(a: list[float], b: list[float]) -> float:
    """Cosine similarity; 0.0 for mismatched or zero-length vectors."""
    if not a or len(a) != len(b):
        return 0.0
    dot = sum(x * y for x, y in zip(a, b))
    norm = math.sqrt(sum(x * x for x in a)) * math.sqrt(sum(y * y for y in b))
    if norm == 0:
        return 0.0
    return dot / norm


class InMemoryRecipeCache:
    """Dict-backed cache keyed by normalized URL or content hash."""

    def __init__(self):
        self.entries: dict[str, CacheEntry] = {}

    async def get(self, key: str) -> CacheEntry | None:
        return self.entries.get(key)

    async def put(
        self,
        key: str,
        recipe: CombinedRecipe,
        source_type: str,
        embedding: list[float] | None = None,
    ) -> CacheEntry:
        entry = CacheEntry(
            id=str(uuid.uuid4()),
            key=key,
            recipe_data=recipe,
            source_type=source_type,
            embedding=embedding,
        )
        self.entries[key] = entry
        return entry

    async def similarity_search(
        self,
        vector: list[float],
        threshold: float,
        limit: int = 1,
    ) -> list[SimilarMatch]:
        matches = []
        for entry in self.entries.values():
            if entry.is_user_modified or not entry.embedding:
                continue
            score = cosine_similarity(vector, entry.embedding)
            if score >= threshold:
                matches.append(SimilarMatch(entry=entry, similarity=score))

        matches.sort(key=lambda m: m.similarity, reverse=True)
        return matches[:limit]

    async def fork(self, parent_key: str, recipe: CombinedRecipe) -> CacheEntry:
        parent = self.entries.get(parent_key)
        if parent is None:
            raise CacheEntryNotFound(parent_key)

        entry = CacheEntry(
            id=str(uuid.uuid4()),
            key=f"fork:{uuid.uuid4()}",
            recipe_data=recipe,
            source_type=USER_MODIFIED_SOURCE,
            parent_id=parent.id,
            is_user_modified=True,
        )
        self.entries[entry.key] = entry
        return entry

    async def set_embedding(self, key: str, vector: list[float]) -> None:
        entry = self.entries.get(key)
        if entry is None:
            raise CacheEntryNotFound(key)
        self.entries[key] = entry.model_copy(update={"embedding": vector})
