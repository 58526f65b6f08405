"""
meez - Supabase recipe cache.

Production RecipeCache over the processed_recipes_cache table:
  id, url (cache key), recipe_data (jsonb), source_type, embedding (vector),
  parent_recipe_id, is_user_modified, created_at

Similarity search goes through the match_recipes_by_embedding Postgres
function. The supabase client is synchronous; calls run in a worker
thread so the event loop is never blocked.
"""

import asyncio
import json
import logging
import uuid

from supabase import Client, create_client

from meez.config import settings
from meez.models import CacheEntry, CombinedRecipe, SimilarMatch

from .adapter import USER_MODIFIED_SOURCE, CacheEntryNotFound

logger = logging.getLogger(__name__)

MATCH_FUNCTION = "match_recipes_by_embedding"

_COLUMNS = "id, url, recipe_data, source_type, embedding, parent_recipe_id, is_user_modified, created_at"

# Singleton client instance
_client: Client | None = None


def get_client() -> Client:
    """
    Get the Supabase client.

    Uses singleton pattern to reuse connection.
    """
    global _client

    if _client is None:
        if not settings.has_cache_credentials:
            raise RuntimeError("SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY must be set")
        _client = create_client(
            settings.supabase_url,
            settings.supabase_service_role_key,
        )

    return _client


def _parse_embedding(value) -> list[float] | None:
    """pgvector columns come back from PostgREST as '[0.1,0.2,...]' strings."""
    if value is None:
        return None
    if isinstance(value, str):
        return json.loads(value)
    return list(value)


def _row_to_entry(row: dict) -> CacheEntry:
    data = {
        "id": str(row["id"]),
        "key": row["url"],
        "recipe_data": row["recipe_data"] or {},
        "source_type": row.get("source_type"),
        "embedding": _parse_embedding(row.get("embedding")),
        "parent_id": row.get("parent_recipe_id"),
        "is_user_modified": bool(row.get("is_user_modified")),
    }
    if row.get("created_at"):
        data["created_at"] = row["created_at"]
    return CacheEntry.model_validate(data)


class SupabaseRecipeCache:
    """RecipeCache backed by a Supabase table."""

    def __init__(self, client: Client | None = None, table: str | None = None):
        self._client = client
        self.table = table or settings.cache_table

    @property
    def client(self) -> Client:
        if self._client is None:
            self._client = get_client()
        return self._client

    # =========================================================================
    # Reads
    # =========================================================================

    async def get(self, key: str) -> CacheEntry | None:
        def _query():
            return (
                self.client.table(self.table)
                .select(_COLUMNS)
                .eq("url", key)
                .order("created_at", desc=True)
                .limit(1)
                .execute()
            )

        response = await asyncio.to_thread(_query)
        if not response.data:
            return None
        return _row_to_entry(response.data[0])

    async def similarity_search(
        self,
        vector: list[float],
        threshold: float,
        limit: int = 1,
    ) -> list[SimilarMatch]:
        def _query():
            return self.client.rpc(
                MATCH_FUNCTION,
                {
                    "query_embedding": vector,
                    "match_threshold": threshold,
                    "match_count": limit,
                },
            ).execute()

        response = await asyncio.to_thread(_query)

        matches = []
        for row in response.data or []:
            if row.get("is_user_modified"):
                continue
            similarity = float(row.get("similarity") or 0.0)
            if similarity < threshold:
                continue
            row = {**row, "id": row.get("id") or row.get("recipe_id"), "url": row.get("url") or ""}
            matches.append(SimilarMatch(entry=_row_to_entry(row), similarity=similarity))

        matches.sort(key=lambda m: m.similarity, reverse=True)
        return matches[:limit]

    # =========================================================================
    # Writes
    # =========================================================================

    async def put(
        self,
        key: str,
        recipe: CombinedRecipe,
        source_type: str,
        embedding: list[float] | None = None,
    ) -> CacheEntry:
        row = {
            "url": key,
            "recipe_data": recipe.to_json_dict(),
            "source_type": source_type,
        }
        if embedding is not None:
            row["embedding"] = embedding

        def _insert():
            return self.client.table(self.table).insert(row).execute()

        response = await asyncio.to_thread(_insert)
        logger.info(f"Cached recipe under {key}")
        return _row_to_entry(response.data[0])

    async def fork(self, parent_key: str, recipe: CombinedRecipe) -> CacheEntry:
        parent = await self.get(parent_key)
        if parent is None:
            raise CacheEntryNotFound(parent_key)

        row = {
            "url": f"fork:{uuid.uuid4()}",
            "recipe_data": recipe.to_json_dict(),
            "source_type": USER_MODIFIED_SOURCE,
            "parent_recipe_id": parent.id,
            "is_user_modified": True,
        }

        def _insert():
            return self.client.table(self.table).insert(row).execute()

        response = await asyncio.to_thread(_insert)
        logger.info(f"Forked {parent_key} -> {row['url']}")
        return _row_to_entry(response.data[0])

    async def set_embedding(self, key: str, vector: list[float]) -> None:
        def _update():
            return (
                self.client.table(self.table)
                .update({"embedding": vector})
                .eq("url", key)
                .execute()
            )

        response = await asyncio.to_thread(_update)
        if not response.data:
            raise CacheEntryNotFound(key)
