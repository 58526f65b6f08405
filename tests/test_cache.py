"""
Tests for the recipe cache: in-memory store and Supabase row mapping.
"""

from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest

from meez.db.adapter import USER_MODIFIED_SOURCE, CacheEntryNotFound, RecipeCache
from meez.db.client import SupabaseRecipeCache
from meez.db.memory import InMemoryRecipeCache, cosine_similarity

from fakes import run


class TestCosineSimilarity:
    def test_identical(self):
        assert cosine_similarity([1.0, 2.0], [1.0, 2.0]) == pytest.approx(1.0)

    def test_orthogonal(self):
        assert cosine_similarity([1.0, 0.0], [0.0, 1.0]) == 0.0

    def test_degenerate(self):
        assert cosine_similarity([], []) == 0.0
        assert cosine_similarity([1.0], [1.0, 0.0]) == 0.0
        assert cosine_similarity([0.0, 0.0], [1.0, 0.0]) == 0.0


class TestInMemoryRecipeCache:
    """Key-value store plus similarity search."""

    def test_satisfies_protocol(self, memory_cache):
        assert isinstance(memory_cache, RecipeCache)

    def test_put_and_get(self, memory_cache, sample_recipe):
        entry = run(memory_cache.put("https://example.com/a", sample_recipe, "url"))

        fetched = run(memory_cache.get("https://example.com/a"))
        assert fetched.id == entry.id
        assert fetched.recipe_data.title == "Buttermilk Pancakes"
        assert fetched.source_type == "url"
        assert run(memory_cache.get("missing")) is None

    def test_similarity_threshold_and_order(self, memory_cache, sample_recipe):
        run(memory_cache.put("near", sample_recipe, "raw_text", embedding=[3.0, 4.0, 0.0]))
        run(memory_cache.put("exact", sample_recipe, "raw_text", embedding=[1.0, 0.0, 0.0]))
        run(memory_cache.put("far", sample_recipe, "raw_text", embedding=[0.0, 1.0, 0.0]))
        run(memory_cache.put("unembedded", sample_recipe, "raw_text"))

        matches = run(memory_cache.similarity_search([1.0, 0.0, 0.0], 0.6, limit=5))

        assert [m.entry.key for m in matches] == ["exact", "near"]
        # 3/5 sits exactly on the threshold
        assert matches[1].similarity == 0.6

    def test_forks_excluded_from_similarity(self, memory_cache, sample_recipe):
        run(memory_cache.put("parent", sample_recipe, "raw_text", embedding=[1.0, 0.0]))
        fork = run(memory_cache.fork("parent", sample_recipe))
        run(memory_cache.set_embedding(fork.key, [1.0, 0.0]))

        matches = run(memory_cache.similarity_search([1.0, 0.0], 0.5, limit=5))

        assert [m.entry.key for m in matches] == ["parent"]

    def test_fork_creates_new_entry(self, memory_cache, sample_recipe):
        parent = run(memory_cache.put("parent", sample_recipe, "url"))
        edited = sample_recipe.model_copy(update={"title": "My Pancakes"})

        fork = run(memory_cache.fork("parent", edited))

        assert fork.key.startswith("fork:")
        assert fork.key != "parent"
        assert fork.parent_id == parent.id
        assert fork.is_user_modified
        assert fork.source_type == USER_MODIFIED_SOURCE
        assert run(memory_cache.get("parent")).recipe_data.title == "Buttermilk Pancakes"

    def test_fork_missing_parent(self, memory_cache, sample_recipe):
        with pytest.raises(CacheEntryNotFound):
            run(memory_cache.fork("nope", sample_recipe))

    def test_set_embedding(self, memory_cache, sample_recipe):
        run(memory_cache.put("k", sample_recipe, "url"))
        run(memory_cache.set_embedding("k", [0.5, 0.5]))
        assert run(memory_cache.get("k")).embedding == [0.5, 0.5]

        with pytest.raises(CacheEntryNotFound):
            run(memory_cache.set_embedding("missing", [1.0]))


def _row(recipe_dict, **overrides):
    row = {
        "id": "8f14e45f-ceea-467f-a9f4-2f6a4b9c1d2e",
        "url": "https://example.com/a",
        "recipe_data": recipe_dict,
        "source_type": "url",
        "embedding": "[0.1,0.2,0.3]",
        "parent_recipe_id": None,
        "is_user_modified": False,
        "created_at": "2026-01-05T10:00:00+00:00",
    }
    row.update(overrides)
    return row


class TestSupabaseRecipeCache:
    """Row mapping over a mocked supabase client."""

    def test_get_maps_row(self, recipe_dict):
        client = MagicMock()
        query = client.table.return_value.select.return_value.eq.return_value
        query.order.return_value.limit.return_value.execute.return_value = SimpleNamespace(
            data=[_row(recipe_dict)]
        )
        cache = SupabaseRecipeCache(client=client, table="processed_recipes_cache")

        entry = run(cache.get("https://example.com/a"))

        assert entry.key == "https://example.com/a"
        assert entry.recipe_data.title == "Buttermilk Pancakes"
        assert entry.embedding == [0.1, 0.2, 0.3]
        client.table.assert_called_with("processed_recipes_cache")
        client.table.return_value.select.return_value.eq.assert_called_with("url", "https://example.com/a")

    def test_get_miss(self):
        client = MagicMock()
        query = client.table.return_value.select.return_value.eq.return_value
        query.order.return_value.limit.return_value.execute.return_value = SimpleNamespace(data=[])

        assert run(SupabaseRecipeCache(client=client, table="t").get("k")) is None

    def test_similarity_search_uses_rpc(self, recipe_dict):
        client = MagicMock()
        client.rpc.return_value.execute.return_value = SimpleNamespace(
            data=[
                {**_row(recipe_dict, url="low"), "similarity": 0.4},
                {**_row(recipe_dict, url="fork:1", is_user_modified=True), "similarity": 0.99},
                {**_row(recipe_dict, url="best"), "similarity": 0.9},
            ]
        )
        cache = SupabaseRecipeCache(client=client, table="t")

        matches = run(cache.similarity_search([0.1, 0.2, 0.3], 0.55, limit=3))

        assert [m.entry.key for m in matches] == ["best"]
        client.rpc.assert_called_once_with(
            "match_recipes_by_embedding",
            {"query_embedding": [0.1, 0.2, 0.3], "match_threshold": 0.55, "match_count": 3},
        )

    def test_put_inserts_row(self, sample_recipe, recipe_dict):
        client = MagicMock()
        client.table.return_value.insert.return_value.execute.return_value = SimpleNamespace(
            data=[_row(recipe_dict, embedding=None)]
        )
        cache = SupabaseRecipeCache(client=client, table="t")

        run(cache.put("https://example.com/a", sample_recipe, "url", embedding=[0.1]))

        inserted = client.table.return_value.insert.call_args.args[0]
        assert inserted["url"] == "https://example.com/a"
        assert inserted["source_type"] == "url"
        assert inserted["embedding"] == [0.1]
        assert inserted["recipe_data"]["recipeYield"] == "4, 4 servings"
