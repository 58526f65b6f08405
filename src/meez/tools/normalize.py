"""
meez - Name Normalization.

Canonical ingredient names for cross-recipe matching (grocery lists).
"""

import re
from dataclasses import dataclass, field

from meez.tools.units import UnitHandler, canonical_unit, format_amount, parse_amount

# Words that never change what you buy
PREPARATION_ADJECTIVES = (
    "plus more for garnish",
    "for garnish",
    "to taste",
    "optional",
    "extra-large",
    "extra large",
    "large",
    "medium",
    "small",
    "jumbo",
    "mini",
    "fresh",
    "frozen",
    "organic",
    "free-range",
    "grass-fed",
    "whole",
    "chopped",
    "finely",
    "roughly",
    "coarsely",
    "thinly",
    "diced",
    "minced",
    "sliced",
    "grated",
    "shredded",
    "crushed",
    "peeled",
    "unpeeled",
    "seeded",
    "skinless",
    "boneless",
    "raw",
    "cooked",
    "uncooked",
    "steamed",
    "roasted",
    "grilled",
    "ripe",
    "unripe",
)
_ADJECTIVE_PATTERN = re.compile(
    r"\b(" + "|".join(re.escape(a) for a in PREPARATION_ADJECTIVES) + r")\b",
    re.IGNORECASE,
)

# Unit words that sometimes stay glued to a name ("garlic cloves")
NAME_UNIT_WORDS = frozenset(
    {
        "clove",
        "cloves",
        "piece",
        "pieces",
        "sprig",
        "sprigs",
        "stalk",
        "stalks",
        "head",
        "heads",
        "bunch",
        "bunches",
        "can",
        "cans",
        "slice",
        "slices",
        "stick",
        "sticks",
        "pinch",
        "dash",
        "splash",
        "handful",
    }
)

# Names where the unit-looking word is what you actually buy
NAME_PART_PHRASES = frozenset(
    {
        "cinnamon stick",
        "celery stalk",
        "lemongrass stalk",
        "bread slice",
        "celery stick",
    }
)

# Left plural on purpose
PLURAL_EXCEPTIONS = frozenset(
    {
        "beans",
        "peas",
        "lentils",
        "oats",
        "grits",
        "grains",
        "noodles",
        "sprouts",
        "seeds",
        "greens",
        "chives",
        "molasses",
        "hummus",
        "couscous",
        "asparagus",
        "citrus",
        "swiss",
        "brussels",
        "herbes",
        "harissa",
        "gas",
    }
)

IRREGULAR_PLURALS = {
    "leaves": "leaf",
    "loaves": "loaf",
    "halves": "half",
    "knives": "knife",
    "cookies": "cookie",
    "brownies": "brownie",
    "veggies": "veggie",
}


def normalize_name(name: str) -> str:
    """
    Normalize a name for consistent matching.

    Examples:
        normalize_name("  Chicken Thighs  ") -> "chicken thighs"
        normalize_name("green   pepper") -> "green pepper"
    """
    return " ".join(name.lower().strip().split())


def singularize(word: str) -> str:
    """
    Singularize one word, leaving known plurals alone.

    Examples:
        singularize("tomatoes") -> "tomato"
        singularize("berries") -> "berry"
        singularize("leaves") -> "leaf"
        singularize("beans") -> "beans"
    """
    if word in PLURAL_EXCEPTIONS or word in IRREGULAR_PLURALS.values():
        return word
    if word in IRREGULAR_PLURALS:
        return IRREGULAR_PLURALS[word]
    if len(word) <= 3 or not word.endswith("s") or word.endswith(("ss", "us", "is")):
        return word
    if word.endswith("ies") and len(word) > 4:
        return word[:-3] + "y"
    if word.endswith("oes"):
        return word[:-2]
    if word.endswith(("ches", "shes", "sses", "xes", "zes")):
        return word[:-2]
    return word[:-1]


def _singularize_phrase(name: str) -> str:
    words = name.split()
    if not words:
        return name
    words[-1] = singularize(words[-1])
    return " ".join(words)


def strip_unit_words(name: str) -> str:
    """
    Drop unit words glued to a name unless they are part of it.

    Examples:
        strip_unit_words("garlic cloves") -> "garlic"
        strip_unit_words("cloves of garlic") -> "garlic"
        strip_unit_words("cinnamon sticks") -> "cinnamon sticks"
        strip_unit_words("chicken breast") -> "chicken breast"
    """
    words = name.split()
    if len(words) < 2:
        return name

    if _singularize_phrase(name) in NAME_PART_PHRASES:
        return name

    if words[-1] in NAME_UNIT_WORDS:
        return " ".join(words[:-1])

    if words[0] in NAME_UNIT_WORDS:
        rest = words[1:]
        if rest and rest[0] == "of":
            rest = rest[1:]
        if rest:
            return " ".join(rest)

    return name


def canonicalize_name(name: str) -> str:
    """
    Canonical ingredient name for aggregation.

    Operations, in order:
    - Lowercase, drop parentheticals and anything after a comma
    - Keep the first option of "x or y"
    - Strip preparation/size adjectives
    - Strip unit words that are not part of the name
    - Singularize the last word

    Examples:
        canonicalize_name("Tamari or soy sauce") -> "tamari"
        canonicalize_name("garlic cloves, minced") -> "garlic"
        canonicalize_name("Large Chicken Breasts") -> "chicken breast"
        canonicalize_name("fresh chopped tomatoes") -> "tomato"
    """
    if not name:
        return ""

    normalized = name.lower().strip()
    normalized = re.sub(r"\([^)]*\)", " ", normalized)
    normalized = normalized.split(",")[0]

    # Disjunction: keep the first option
    normalized = re.split(r"\s+(?:or|and/or)\s+|\s*/\s*", normalized)[0]

    normalized = _ADJECTIVE_PATTERN.sub(" ", normalized)
    normalized = normalize_name(normalized)
    normalized = normalized.strip(" -.")

    normalized = strip_unit_words(normalized)
    normalized = _singularize_phrase(normalized)

    return normalized or normalize_name(name)


# =============================================================================
# Aggregation
# =============================================================================


@dataclass
class AggregatedIngredient:
    """One grocery line built from one or more recipe ingredients."""

    name: str
    amount: float | None
    unit: str | None
    sources: list[str] = field(default_factory=list)

    @property
    def display(self) -> str:
        if self.amount is None:
            return self.name
        return f"{UnitHandler.format_quantity(self.amount, self.unit)} {self.name}"


def aggregate_ingredients(items: list) -> list[AggregatedIngredient]:
    """
    Merge ingredients that share a canonical name and compatible units.

    Accepts StructuredIngredient objects or dicts with name/amount/unit.
    Volume and weight amounts are converted into the unit seen first;
    incompatible units stay as separate lines.
    """
    aggregated: list[AggregatedIngredient] = []

    for item in items:
        if isinstance(item, dict):
            raw_name, raw_amount, raw_unit = item.get("name"), item.get("amount"), item.get("unit")
        else:
            raw_name, raw_amount, raw_unit = item.name, item.amount, item.unit
        if not raw_name:
            continue

        name = canonicalize_name(raw_name)
        unit = canonical_unit(raw_unit) or (raw_unit.strip().lower() if raw_unit else None)
        amount = parse_amount(raw_amount) if raw_amount is not None else None
        source = " ".join(p for p in (str(raw_amount or ""), raw_unit or "", raw_name) if p)

        target = next(
            (a for a in aggregated if a.name == name and UnitHandler.are_compatible(a.unit, unit)),
            None,
        )
        if target is None:
            aggregated.append(AggregatedIngredient(name=name, amount=amount, unit=unit, sources=[source]))
            continue

        target.sources.append(source)
        if amount is None:
            continue
        if target.unit and unit and target.unit != unit:
            amount = UnitHandler.convert(amount, unit, target.unit)
        target.amount = amount if target.amount is None else target.amount + amount

    for entry in aggregated:
        if entry.amount is not None:
            entry.amount = float(format_amount(entry.amount))

    return aggregated
