"""
meez - Final recipe validation.

Completeness check on a sanitized recipe. Most problems are warnings;
three are hard rejections:
- nothing at all (no title, ingredients or instructions)
- a thin recipe produced from the raw-page fallback
- ingredients or instructions missing
"""

import logging
from dataclasses import dataclass, field

from meez.models import CombinedRecipe, ParseError, ParseErrorCode

logger = logging.getLogger(__name__)

MIN_TITLE_CHARS = 3
MIN_INGREDIENTS = 2
MIN_INSTRUCTIONS = 2

EMPTY_MESSAGE = "We couldn't find a recipe in that input."
NOT_A_RECIPE_MESSAGE = "This page doesn't appear to contain a recipe."
INCOMPLETE_MESSAGE = "The recipe generated was incomplete."

_OPTIONAL_FIELDS = ("recipe_yield", "prep_time", "cook_time", "total_time")


@dataclass
class ValidationOutcome:
    warnings: list[str] = field(default_factory=list)
    error: ParseError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


def is_thin(recipe: CombinedRecipe) -> bool:
    """Fewer than two ingredients, or no instructions."""
    return recipe.ingredient_count < MIN_INGREDIENTS or recipe.instruction_count == 0


def validate_recipe(
    recipe: CombinedRecipe,
    *,
    used_fallback: bool = False,
    request_id: str | None = None,
) -> ValidationOutcome:
    rid = request_id or "-"
    outcome = ValidationOutcome()

    if recipe.is_empty:
        logger.warning(f"[{rid}] Rejected: recipe is structurally empty")
        outcome.error = ParseError(ParseErrorCode.GENERATION_EMPTY, EMPTY_MESSAGE)
        return outcome

    if used_fallback and is_thin(recipe):
        logger.warning(
            f"[{rid}] Rejected: fallback extraction produced a thin recipe "
            f"({recipe.ingredient_count} ingredients, {recipe.instruction_count} steps)"
        )
        outcome.error = ParseError(ParseErrorCode.NO_RECIPE_FOUND, NOT_A_RECIPE_MESSAGE)
        return outcome

    if not recipe.title or len(recipe.title.strip()) < MIN_TITLE_CHARS:
        outcome.warnings.append("Title is missing or very short")
    if recipe.ingredient_count < MIN_INGREDIENTS:
        outcome.warnings.append(f"Only {recipe.ingredient_count} ingredient(s)")
    if recipe.instruction_count < MIN_INSTRUCTIONS:
        outcome.warnings.append(f"Only {recipe.instruction_count} instruction(s)")

    for warning in outcome.warnings:
        logger.warning(f"[{rid}] Validation: {warning}")

    missing = [name for name in _OPTIONAL_FIELDS if not getattr(recipe, name)]
    if missing:
        logger.info(f"[{rid}] Optional fields missing: {', '.join(missing)}")

    if not recipe.ingredients or not recipe.instructions:
        outcome.error = ParseError(ParseErrorCode.FINAL_VALIDATION_FAILED, INCOMPLETE_MESSAGE)

    return outcome
