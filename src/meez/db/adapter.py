"""
Recipe Cache Protocol.

Defines the interface the parse pipeline uses for persistence: a
key-value store of parsed recipes plus vector-similarity search.
Implementations: SupabaseRecipeCache (production) and
InMemoryRecipeCache (tests, offline CLI runs).

Entries are never edited in place. A user edit is a fork: a new entry
with its own key and a parent pointer. Forks are kept out of similarity
search so fuzzy matching only ever returns recipes parsed from a source.
"""

from typing import Protocol, runtime_checkable

from meez.models import CacheEntry, CombinedRecipe, SimilarMatch

# source_type recorded on forked entries
USER_MODIFIED_SOURCE = "user_modified"


class CacheEntryNotFound(LookupError):
    """No cache entry for the given key."""


@runtime_checkable
class RecipeCache(Protocol):
    """Async recipe store used by RecipeParser."""

    async def get(self, key: str) -> CacheEntry | None:
        """Entry stored under key, or None."""
        ...

    async def put(
        self,
        key: str,
        recipe: CombinedRecipe,
        source_type: str,
        embedding: list[float] | None = None,
    ) -> CacheEntry:
        """Store a freshly parsed recipe. Duplicate keys are last-write-wins."""
        ...

    async def similarity_search(
        self,
        vector: list[float],
        threshold: float,
        limit: int = 1,
    ) -> list[SimilarMatch]:
        """Best matches at or above threshold, most similar first. Forks excluded."""
        ...

    async def fork(self, parent_key: str, recipe: CombinedRecipe) -> CacheEntry:
        """
        Store an edited copy of an entry under a fresh key.

        Raises:
            CacheEntryNotFound: parent_key is not in the cache
        """
        ...

    async def set_embedding(self, key: str, vector: list[float]) -> None:
        """Attach an embedding to an existing entry."""
        ...
