"""
meez - Pasted text preparation.

Cheap plausibility checks that run before any model call.
"""

import logging
import re
from dataclasses import dataclass

logger = logging.getLogger(__name__)

MIN_TEXT_CHARS = 2
MIN_WORDS = 3
MIN_RECIPE_TEXT_CHARS = 100

FOOD_KEYWORDS = re.compile(
    r"(?:eggs?|chicken|soup|sandwich|pasta|salad|toast|rice|steak|cookies|roast|tacos?)",
    re.IGNORECASE,
)

RECIPE_KEYWORDS = re.compile(
    r"ingredients|directions|instructions|recipe|servings|yield|method|steps",
    re.IGNORECASE,
)


@dataclass
class PreparedText:
    """Result of prepare_text: text on success, error otherwise."""

    text: str | None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.text is not None and self.error is None


def preprocess_text(text: str) -> str:
    """Trim, unify line endings, collapse runs of blank lines."""
    text = text.strip().replace("\r\n", "\n").replace("\r", "\n")
    return re.sub(r"\n{3,}", "\n\n", text)


def prepare_text(text: str | None, request_id: str | None = None) -> PreparedText:
    """
    Prepare pasted text for parsing.

    Short dish names are allowed ("chicken soup", "lasagna"), but two
    random words are not.
    """
    rid = request_id or "-"

    if not text or len(text.strip()) < MIN_TEXT_CHARS:
        logger.warning(f"[{rid}] Input text is empty or too short")
        return PreparedText(None, "Input text is empty or too short.")

    prepared = preprocess_text(text)
    word_count = len(prepared.split())

    if word_count < MIN_WORDS and not FOOD_KEYWORDS.search(prepared):
        logger.warning(f"[{rid}] Plausibility check failed ({word_count} words, no food keyword)")
        return PreparedText(None, "Input text has too few words and does not appear to describe a recipe.")

    return PreparedText(prepared)


def validate_recipe_text(text: str | None) -> str | None:
    """
    Heuristic check that a block of text is probably a recipe.

    Returns an error message, or None when the text looks like a recipe.
    """
    if not text:
        return "Input text is empty."

    has_keywords = bool(RECIPE_KEYWORDS.search(text))
    too_short = len(text) < MIN_RECIPE_TEXT_CHARS

    if too_short and not has_keywords:
        return "Input does not appear to be a valid recipe (too short and missing keywords)."
    if too_short:
        return f"Input is too short (length {len(text)}) to likely be a recipe."
    if not has_keywords:
        return "Input is missing common recipe keywords (e.g., ingredients, instructions)."

    return None
