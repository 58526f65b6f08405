"""JSON-LD/Schema.org structured data lookup."""

import logging

import extruct

from .normalizer import (
    extract_image_url,
    flatten_instructions,
    normalize_ingredient_lines,
    yield_to_text,
)

logger = logging.getLogger(__name__)


def find_structured_recipe(html: str, base_url: str | None = None) -> dict | None:
    """
    Find the first schema.org Recipe embedded in a page.

    JSON-LD is scanned before microdata. Within JSON-LD the first Recipe
    found in document order wins, whether it sits at the top level, inside
    a top-level array, or inside @graph.
    """
    try:
        data = extruct.extract(
            html,
            base_url=base_url,
            syntaxes=["json-ld", "microdata"],
            uniform=False,
            errors="log",
        )
    except Exception as e:
        # extruct raises on documents lxml cannot parse at all
        logger.debug(f"Structured data extraction failed: {e}")
        return None

    recipe = _find_recipe_in_json_ld(data.get("json-ld", []))
    if recipe is None:
        recipe = _find_recipe_in_microdata(data.get("microdata", []))
    return recipe


def _is_recipe_type(item_type) -> bool:
    if isinstance(item_type, list):
        return any(_is_recipe_type(t) for t in item_type)
    if not isinstance(item_type, str):
        return False
    return item_type == "Recipe" or item_type.endswith("/Recipe")


def _find_recipe_in_json_ld(items) -> dict | None:
    """Depth-first, document-order search for a Recipe object."""
    if isinstance(items, list):
        for item in items:
            found = _find_recipe_in_json_ld(item)
            if found is not None:
                return found
        return None

    if not isinstance(items, dict):
        return None

    if _is_recipe_type(items.get("@type")):
        return items

    graph = items.get("@graph")
    if graph:
        return _find_recipe_in_json_ld(graph)

    return None


def _find_recipe_in_microdata(microdata_items: list) -> dict | None:
    """Find Recipe schema in microdata."""
    for item in microdata_items:
        if isinstance(item, dict) and _is_recipe_type(item.get("type")):
            return item.get("properties", {})
    return None


def structured_fields(recipe: dict) -> dict:
    """
    Pull prompt-ready text fields out of a schema.org Recipe.

    Ingredients and instruction steps are joined with newlines; yield and
    times are kept verbatim.
    """
    title = recipe.get("name") or recipe.get("headline")
    if isinstance(title, list):
        title = title[0] if title else None

    ingredients = normalize_ingredient_lines(
        recipe.get("recipeIngredient") or recipe.get("ingredients")
    )
    steps = flatten_instructions(recipe.get("recipeInstructions"))

    description = recipe.get("description")
    if not isinstance(description, str):
        description = None

    return {
        "title": title.strip() if isinstance(title, str) and title.strip() else None,
        "ingredients_text": "\n".join(ingredients) or None,
        "instructions_text": "\n".join(steps) or None,
        "yield_text": yield_to_text(recipe.get("recipeYield") or recipe.get("yield")),
        "prep_time": _text_or_none(recipe.get("prepTime")),
        "cook_time": _text_or_none(recipe.get("cookTime")),
        "total_time": _text_or_none(recipe.get("totalTime")),
        "description": description.strip() if description else None,
        "image_url": extract_image_url(recipe.get("image")),
    }


def _text_or_none(value) -> str | None:
    if isinstance(value, list):
        value = value[0] if value else None
    if value is None:
        return None
    text = str(value).strip()
    return text or None
