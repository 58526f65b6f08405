"""
Tests for turning raw model output into a validated recipe.
"""

import json

from meez.llm.sanitizer import SanitizeError, sanitize, strip_markdown_fences
from meez.models import CombinedRecipe


class TestFences:
    """Code fences around the whole payload."""

    def test_fenced_json(self, recipe_json):
        result = sanitize(f"```json\n{recipe_json}\n```")
        assert isinstance(result, CombinedRecipe)
        assert result.title == "Buttermilk Pancakes"

    def test_minimal_fenced_object(self):
        result = sanitize("```json\n{\"title\":\"X\"}\n```")
        assert result.title == "X"

    def test_bare_fence(self):
        assert strip_markdown_fences('```\n{"a": 1}\n```') == '{"a": 1}'

    def test_fence_not_wrapping_everything_is_kept(self):
        text = 'Here you go: ```json {"a": 1} ```'
        assert strip_markdown_fences(text) == text


class TestParsing:
    """Strict JSON with one repair."""

    def test_plain_json(self, recipe_json):
        result = sanitize(recipe_json)
        assert isinstance(result, CombinedRecipe)
        assert result.ingredient_count == 3
        assert result.instruction_count == 2
        assert result.recipe_yield == "4, 4 servings"
        assert result.nutrition.calories == "320"

    def test_trailing_prose_is_cut(self, recipe_json):
        result = sanitize(recipe_json + "\n\nHope this helps!")
        assert isinstance(result, CombinedRecipe)
        assert result.title == "Buttermilk Pancakes"

    def test_trailing_comma_is_an_error(self):
        raw = '{"title": "Toast", "instructions": ["Toast the bread."],}'
        result = sanitize(raw)
        assert isinstance(result, SanitizeError)
        assert result.message.startswith("invalid JSON")
        assert result.raw_text == raw

    def test_empty_response(self):
        for raw in (None, "", "   ", "``` ```"):
            result = sanitize(raw)
            assert isinstance(result, SanitizeError)
            assert result.message == "empty response"

    def test_array_is_rejected(self):
        result = sanitize('[{"title": "Toast"}]')
        assert isinstance(result, SanitizeError)
        assert result.message == "expected a JSON object, got list"

    def test_schema_violation(self):
        raw = json.dumps({
            "title": "Toast",
            "ingredients": [{"name": "bread", "suggested_substitutions": [{"name": 5}]}],
        })
        result = sanitize(raw)
        assert isinstance(result, SanitizeError)
        assert result.message.startswith("recipe validation failed")


class TestIdempotence:
    """Sanitizing a sanitized recipe changes nothing."""

    def test_validated_recipe_passes_through(self, sample_recipe):
        assert sanitize(sample_recipe) is sample_recipe

    def test_twice_equals_once(self, recipe_json):
        once = sanitize(recipe_json)
        assert sanitize(once) == once


class TestCoercion:
    """Shape problems are normalized instead of rejected."""

    def test_non_list_fields_become_null(self):
        raw = json.dumps({
            "title": "Soup",
            "ingredients": "water, salt",
            "instructions": {"text": "Boil"},
            "nutrition": "lots",
        })
        result = sanitize(raw)
        assert isinstance(result, CombinedRecipe)
        assert result.ingredients is None
        assert result.instructions is None
        assert result.nutrition is None

    def test_numbers_become_strings(self):
        raw = json.dumps({
            "title": "Rice",
            "ingredients": [{"name": "rice", "amount": 2, "unit": "cup"}],
            "instructions": ["Cook."],
            "recipeYield": 4,
        })
        result = sanitize(raw)
        assert result.ingredients[0].amount == "2"
        assert result.recipe_yield == "4"

    def test_string_ingredients_are_parsed(self):
        raw = json.dumps({
            "title": "Bread",
            "ingredients": ["2 cups flour", "1 tsp salt"],
            "instructions": ["Mix.", "Bake."],
        })
        result = sanitize(raw)
        assert result.ingredients[0].amount == "2"
        assert result.ingredients[0].unit == "cup"
        assert result.ingredients[0].name == "flour"

    def test_ingredient_groups_are_flattened(self):
        raw = json.dumps({
            "title": "Lasagna",
            "ingredientGroups": [
                {"name": "Sauce", "ingredients": [{"name": "tomato", "amount": "2", "unit": "cup"}]},
                {"name": "Pasta", "ingredients": [{"name": "lasagna noodles"}]},
            ],
            "instructions": ["Layer.", "Bake."],
        })
        result = sanitize(raw)
        assert [i.name for i in result.ingredients] == ["tomato", "lasagna noodles"]

    def test_nameless_ingredients_and_blank_steps_dropped(self):
        raw = json.dumps({
            "title": "Salad",
            "ingredients": [{"amount": "1"}, {"name": "lettuce"}],
            "instructions": ["", {"step": "Toss."}, 7],
        })
        result = sanitize(raw)
        assert [i.name for i in result.ingredients] == ["lettuce"]
        assert result.instructions == ["Toss."]

    def test_bad_substitutions_dropped(self):
        raw = json.dumps({
            "title": "Tea",
            "ingredients": [{"name": "tea", "suggested_substitutions": "none"}],
            "instructions": ["Steep."],
        })
        result = sanitize(raw)
        assert result.ingredients[0].substitutions is None
