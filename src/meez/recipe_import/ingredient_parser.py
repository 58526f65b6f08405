"""Ingredient Parser - Transform raw ingredient strings to structured data.

Rule-based, no model call. Turns "1 1/2 cups flour, sifted" into:
- amount: Decimal string ("1.5"), ranges kept as "1-2"
- unit: Canonical unit (cup, tbsp, clove, ...)
- name: What is left once amount and unit are removed
- preparation: The trailing comma clause
"""

import logging
import re

from meez.models import StructuredIngredient
from meez.tools.normalize import canonicalize_name
from meez.tools.units import format_amount, match_leading_unit, parse_amount

logger = logging.getLogger(__name__)

_FRACTION_GLYPHS = "½⅓⅔¼¾⅕⅖⅗⅘⅙⅚⅛⅜⅝⅞"
_NUMBER = rf"(?:\d+\s+\d+/\d+|\d*[{_FRACTION_GLYPHS}]|\d+/\d+|\d*\.\d+|\d+)"
_END = r"(?:\s+|(?=[A-Za-z(])|$)"

# Checked in order; the first match wins
AMOUNT_PATTERNS: list[tuple[str, re.Pattern]] = [
    ("mixed_fraction", re.compile(rf"^(\d+\s+\d+/\d+){_END}")),
    ("unicode_fraction", re.compile(rf"^(\d*\s?[{_FRACTION_GLYPHS}]){_END}")),
    ("range", re.compile(rf"^({_NUMBER}\s*(?:-|–|to)\s*{_NUMBER}){_END}", re.IGNORECASE)),
    ("fraction", re.compile(rf"^(\d+/\d+){_END}")),
    ("decimal", re.compile(rf"^(\d*\.\d+){_END}")),
    ("integer", re.compile(rf"^(\d+){_END}")),
    ("approximate", re.compile(rf"^((?:about|approximately|approx\.?|~)\s*{_NUMBER}){_END}", re.IGNORECASE)),
]

# Amount-less quantities normalized to "1"
INDEFINITE_PATTERNS: list[re.Pattern] = [
    re.compile(r"^a\s+(pinch\s+of)\s+", re.IGNORECASE),
    re.compile(r"^a\s+(dash\s+of)\s+", re.IGNORECASE),
    re.compile(r"^a\s+(splash\s+of)\s+", re.IGNORECASE),
    re.compile(r"^a\s+(handful\s+of)\s+", re.IGNORECASE),
    re.compile(r"^(some)\s+", re.IGNORECASE),
]


def _split_preparation(text: str) -> tuple[str, str | None]:
    """Split on the first comma that is not inside parentheses."""
    depth = 0
    for i, char in enumerate(text):
        if char == "(":
            depth += 1
        elif char == ")":
            depth = max(0, depth - 1)
        elif char == "," and depth == 0:
            prep = text[i + 1:].strip()
            return text[:i].strip(), prep or None
    return text.strip(), None


def _render_amount(raw: str, kind: str) -> str:
    """Render a matched amount as a decimal string."""
    if kind == "range":
        low, high = re.split(r"\s*(?:-|–|to)\s*", raw, maxsplit=1, flags=re.IGNORECASE)
        low_value, high_value = parse_amount(low), parse_amount(high)
        if low_value is None or high_value is None:
            return raw
        return f"{format_amount(low_value)}-{format_amount(high_value)}"

    value = parse_amount(raw)
    return format_amount(value) if value is not None else raw


def _match_amount(text: str) -> tuple[str | None, str]:
    for kind, pattern in AMOUNT_PATTERNS:
        match = pattern.match(text)
        if match:
            return _render_amount(match.group(1).strip(), kind), text[match.end():].strip()
    return None, text


def parse_ingredient(line: str) -> StructuredIngredient:
    """
    Parse one free-text ingredient line.

    Never raises: anything unparseable comes back with the original text
    as the name and no amount or unit.

    Examples:
        "1 1/2 cups flour" -> amount "1.5", unit "cup", name "flour"
        "2 cloves garlic, minced" -> amount "2", unit "clove", name "garlic", prep "minced"
        "a pinch of salt" -> amount "1", unit None, name "pinch of salt"
        "2 large eggs" -> amount "2", unit None, name "large eggs"
        "salt and pepper" -> amount None, unit None, name "salt and pepper"
    """
    original = (line or "").strip()
    if not original:
        return StructuredIngredient(name="")

    try:
        return _parse(original)
    except Exception as e:
        logger.debug(f"Ingredient parse fell back to raw text for {original!r}: {e}")
        return StructuredIngredient(name=original)


def _parse(original: str) -> StructuredIngredient:
    main, preparation = _split_preparation(original)
    remaining = main.lstrip("-•*▢ ").strip()

    amount, remaining = _match_amount(remaining)
    indefinite = False

    if amount is None:
        for pattern in INDEFINITE_PATTERNS:
            match = pattern.match(remaining)
            if match:
                amount = "1"
                indefinite = True
                phrase = match.group(1)
                rest = remaining[match.end():].strip()
                # "some" carries no information; "pinch of" does
                remaining = rest if phrase.lower() == "some" else f"{phrase} {rest}"
                break

    # "1 (14 oz) can tomatoes": the parenthetical is a note, not the unit
    note = None
    paren = re.match(r"^\(([^)]*)\)\s*", remaining)
    if amount and paren:
        note = paren.group(1).strip() or None
        remaining = remaining[paren.end():]

    unit = None
    if amount and not indefinite:
        unit_match = match_leading_unit(remaining)
        if unit_match:
            if unit_match.is_descriptive:
                remaining = f"{unit_match.raw} {unit_match.rest}".strip()
            else:
                unit = unit_match.canonical
                remaining = unit_match.rest

    remaining = re.sub(r"^of\s+", "", remaining, flags=re.IGNORECASE).strip()

    if amount is None and unit is None:
        return StructuredIngredient(name=original)

    if note:
        preparation = f"{note}, {preparation}" if preparation else note

    return StructuredIngredient(
        name=remaining or original,
        amount=amount,
        unit=unit,
        preparation=preparation,
    )


def parse_ingredients(lines: list[str]) -> list[StructuredIngredient]:
    """Parse many lines, skipping blanks."""
    return [parse_ingredient(line) for line in lines if line and line.strip()]


def ingredient_key(ingredient: StructuredIngredient) -> str:
    """Canonical name used to match an ingredient across recipes."""
    return canonicalize_name(ingredient.name)
