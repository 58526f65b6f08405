"""Tiered recipe content extraction from raw HTML.

Extraction tiers, each run only while fields are still missing:
1. Structured data (JSON-LD / microdata Recipe)
2. Boilerplate stripping + main content isolation
3. Recipe-plugin CSS selectors
4. Yield by keyword
5. Whole-page text fallback, followed by a quality gate
"""

import logging
import re
from dataclasses import dataclass, field

from bs4 import BeautifulSoup, Tag

from .json_ld import find_structured_recipe, structured_fields
from .models import ExtractedContent, FallbackType
from .normalizer import clean_text, dedupe_lines, has_quantity_marker

logger = logging.getLogger(__name__)

# Fields shorter than this are treated as missing by the fallback tier
MIN_FIELD_CHARS = 50

# A main-content candidate must hold more text than this
MIN_MAIN_CONTENT_CHARS = 500

# Raw fallback text is capped before prompting
MAX_FALLBACK_CHARS = 100_000

MAX_YIELD_LINE_CHARS = 120

STRIP_SELECTORS = (
    "script",
    "style",
    "noscript",
    "template",
    "svg",
    "iframe",
    "nav",
    "header",
    "footer",
    "aside",
    "form",
    "[class*='cookie']",
    "[id*='cookie']",
    "[class*='consent']",
    "[id*='consent']",
    "[class*='modal']",
    "[class*='popup']",
    "[class*='newsletter']",
    "[class*='social-share']",
    "[class*='comments']",
    "[id*='comments']",
    "[role='dialog']",
)

MAIN_CONTENT_SELECTORS = (
    ".wprm-recipe-container",
    ".tasty-recipes",
    ".easyrecipe",
    "[itemtype*='Recipe']",
    ".recipe-card",
    ".recipe",
    "#recipe",
    "main",
    "article",
    "[role='main']",
)

INGREDIENT_SELECTORS = (
    "[itemprop='recipeIngredient']",
    ".wprm-recipe-ingredient",
    ".tasty-recipes-ingredients li",
    ".easyrecipe-ingredient",
    ".recipe-ingredients li",
    ".ingredients li",
    ".ingredient-list li",
)

INSTRUCTION_ITEM_SELECTORS = (
    ".wprm-recipe-instructions li",
    ".wprm-recipe-instructions p",
    ".tasty-recipes-instructions li",
    ".tasty-recipes-instructions p",
    ".easyrecipe-instructions li",
    ".easyrecipe-instructions p",
    ".recipe-instructions li",
    ".recipe-instructions p",
    ".instructions li",
    ".instructions p",
    ".direction-list li",
    ".direction-list p",
    "[itemprop='recipeInstructions'] li",
    "[itemprop='recipeInstructions'] p",
    "[itemprop='recipeInstructions']",
)

INSTRUCTION_BLOCK_SELECTORS = (
    ".wprm-recipe-instructions",
    ".tasty-recipes-instructions",
    ".easyrecipe-instructions-content",
    ".recipe-instructions",
    ".instructions",
    ".directions",
)

YIELD_SELECTORS = (
    "[itemprop='recipeYield']",
    ".wprm-recipe-servings-with-unit",
    ".wprm-recipe-servings",
    ".tasty-recipes-yield",
    ".recipe-yield",
    ".yield",
)

TIME_SELECTORS = {
    "prep_time": ("[itemprop='prepTime']", ".wprm-recipe-prep_time-container", ".tasty-recipes-prep-time"),
    "cook_time": ("[itemprop='cookTime']", ".wprm-recipe-cook_time-container", ".tasty-recipes-cook-time"),
    "total_time": ("[itemprop='totalTime']", ".wprm-recipe-total_time-container", ".tasty-recipes-total-time"),
}

YIELD_KEYWORD_PATTERN = re.compile(r"\b(?:servings?|yields?|makes)\s*:|\bserves\s+\d", re.IGNORECASE)


@dataclass
class _Draft:
    """Mutable working copy; frozen into ExtractedContent at the end."""

    title: str | None = None
    ingredients_text: str | None = None
    instructions_text: str | None = None
    yield_text: str | None = None
    prep_time: str | None = None
    cook_time: str | None = None
    total_time: str | None = None
    description: str | None = None
    image_url: str | None = None
    is_fallback: bool = False
    fallback_type: FallbackType | None = None
    raw_text: str | None = None
    tiers: list[str] = field(default_factory=list)

    def freeze(self, source_url: str | None) -> ExtractedContent:
        return ExtractedContent(
            title=self.title,
            ingredients_text=self.ingredients_text,
            instructions_text=self.instructions_text,
            yield_text=self.yield_text,
            prep_time=self.prep_time,
            cook_time=self.cook_time,
            total_time=self.total_time,
            is_fallback=self.is_fallback,
            fallback_type=self.fallback_type,
            description=self.description,
            image_url=self.image_url,
            source_url=source_url,
            raw_text=self.raw_text,
        )


def extract_content(html: str, base_url: str | None = None) -> ExtractedContent | None:
    """
    Extract recipe text sections from a page.

    Args:
        html: Raw page HTML
        base_url: Page URL, used to resolve relative structured-data URLs

    Returns:
        ExtractedContent, or None when the page fails the fallback
        quality gate (most likely not a recipe page)
    """
    if not html or not html.strip():
        return None

    draft = _Draft()

    # Tier 1: structured data
    recipe = find_structured_recipe(html, base_url)
    if recipe:
        for key, value in structured_fields(recipe).items():
            setattr(draft, key, value)
        draft.tiers.append("structured")

    soup = BeautifulSoup(html, "html.parser")
    if not draft.title:
        draft.title = _page_title(soup)

    if draft.ingredients_text and draft.instructions_text:
        logger.info(f"Structured data complete for {base_url or 'page'}, skipping selector tiers")
        return draft.freeze(base_url)

    # Tier 2: strip boilerplate, isolate main content
    _strip_boilerplate(soup)
    region = _isolate_main_content(soup) or soup

    # Tier 3: plugin selectors
    if not draft.ingredients_text:
        draft.ingredients_text = _collect_ingredients(region)
    if not draft.instructions_text:
        draft.instructions_text = _collect_instructions(region)
    if not draft.yield_text:
        draft.yield_text = _first_selector_text(region, YIELD_SELECTORS)
    for key, selectors in TIME_SELECTORS.items():
        if not getattr(draft, key):
            setattr(draft, key, _first_selector_text(region, selectors))
    draft.tiers.append("selectors")

    # Tier 4: yield by keyword
    if not draft.yield_text:
        draft.yield_text = _yield_by_keyword(region)

    # Tier 5: whole-page fallback
    if _too_short(draft.ingredients_text) or _too_short(draft.instructions_text):
        body_text = _page_text(soup)
        if _too_short(draft.ingredients_text):
            draft.ingredients_text = body_text or draft.ingredients_text
        if _too_short(draft.instructions_text):
            draft.instructions_text = body_text or draft.instructions_text
        draft.raw_text = body_text or None
        draft.is_fallback = True
        draft.fallback_type = FallbackType.RAW_BODY
        draft.tiers.append("fallback")

    logger.info(
        f"Extraction tiers={draft.tiers} title={bool(draft.title)} "
        f"ingredients={bool(draft.ingredients_text)} instructions={bool(draft.instructions_text)} "
        f"fallback={draft.is_fallback}"
    )

    if draft.is_fallback and not passes_quality_gate(draft.ingredients_text, draft.instructions_text):
        logger.info(f"Fallback content rejected by quality gate for {base_url or 'page'}")
        return None

    return draft.freeze(base_url)


def passes_quality_gate(ingredients_text: str | None, instructions_text: str | None) -> bool:
    """
    Decide whether fallback text plausibly holds a recipe.

    Fails when both fields are under MIN_FIELD_CHARS, or when the
    ingredients carry no digit or fraction glyph.
    """
    if _too_short(ingredients_text) and _too_short(instructions_text):
        return False
    return has_quantity_marker(ingredients_text)


def _too_short(text: str | None) -> bool:
    return not text or len(text.strip()) < MIN_FIELD_CHARS


def _page_title(soup: BeautifulSoup) -> str | None:
    for tag_name in ("title", "h1"):
        tag = soup.find(tag_name)
        if tag:
            text = clean_text(tag.get_text(" "))
            if text:
                return text
    return None


def _strip_boilerplate(soup: BeautifulSoup) -> None:
    for selector in STRIP_SELECTORS:
        for element in soup.select(selector):
            if element.decomposed:
                continue
            # Never strip the html/body shell itself
            if element.name not in ("html", "body"):
                element.decompose()


def _isolate_main_content(soup: BeautifulSoup) -> Tag | None:
    for selector in MAIN_CONTENT_SELECTORS:
        for candidate in soup.select(selector):
            if len(clean_text(candidate.get_text(" "))) > MIN_MAIN_CONTENT_CHARS:
                logger.debug(f"Main content isolated with selector {selector!r}")
                return candidate
    return None


def _collect_ingredients(region: Tag) -> str | None:
    lines = []
    for selector in INGREDIENT_SELECTORS:
        for element in region.select(selector):
            lines.append(clean_text(element.get_text(" ")))
    lines = dedupe_lines(lines)
    return "\n".join(lines) or None


def _collect_instructions(region: Tag) -> str | None:
    lines = []
    for selector in INSTRUCTION_ITEM_SELECTORS:
        for element in region.select(selector):
            lines.extend(_element_lines(element))

    if not lines:
        for selector in INSTRUCTION_BLOCK_SELECTORS:
            for element in region.select(selector):
                lines.extend(_element_lines(element, force_split=True))
            if lines:
                break

    lines = dedupe_lines(lines)
    return "\n".join(lines) or None


def _element_lines(element: Tag, force_split: bool = False) -> list[str]:
    """A list item or paragraph is one line; containers split per line."""
    is_container = element.name not in ("li", "p") and element.find(True) is not None
    if force_split or is_container:
        return [clean_text(line) for line in element.get_text("\n").splitlines() if clean_text(line)]
    text = clean_text(element.get_text(" "))
    return [text] if text else []


def _first_selector_text(region: Tag, selectors: tuple[str, ...]) -> str | None:
    for selector in selectors:
        element = region.select_one(selector)
        if element is None:
            continue
        value = element.get("content") or element.get("datetime") or element.get_text(" ")
        if isinstance(value, list):
            value = " ".join(value)
        text = clean_text(value)
        if text:
            return text
    return None


def _yield_by_keyword(region: Tag) -> str | None:
    for line in region.get_text("\n").splitlines():
        line = clean_text(line)
        if line and len(line) <= MAX_YIELD_LINE_CHARS and YIELD_KEYWORD_PATTERN.search(line):
            return line
    return None


def _page_text(soup: BeautifulSoup) -> str:
    root = soup.body or soup
    lines = [clean_text(line) for line in root.get_text("\n").splitlines()]
    text = "\n".join(line for line in lines if line)
    return text[:MAX_FALLBACK_CHARS]
