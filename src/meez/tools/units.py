"""
meez - Unit Handling.

Canonical unit table, descriptive-unit detection and volume/weight
conversion used by the ingredient parser and grocery aggregation.
"""

import re
from dataclasses import dataclass
from fractions import Fraction

# Raw token -> canonical unit. Keys are lowercase except the single-letter
# "T" (tablespoon) / "t" (teaspoon) pair, which only differs by case.
CANONICAL_UNITS: dict[str, str] = {
    # Volume
    "cups": "cup",
    "cup": "cup",
    "c": "cup",
    "tablespoons": "tbsp",
    "tablespoon": "tbsp",
    "tbsps": "tbsp",
    "tbsp": "tbsp",
    "tbs": "tbsp",
    "tbl": "tbsp",
    "T": "tbsp",
    "teaspoons": "tsp",
    "teaspoon": "tsp",
    "tsps": "tsp",
    "tsp": "tsp",
    "t": "tsp",
    "fluid ounces": "fl oz",
    "fluid ounce": "fl oz",
    "fl oz": "fl oz",
    "fl. oz": "fl oz",
    "fl. oz.": "fl oz",
    "pints": "pint",
    "pint": "pint",
    "pt": "pint",
    "quarts": "quart",
    "quart": "quart",
    "qt": "quart",
    "gallons": "gallon",
    "gallon": "gallon",
    "gal": "gallon",
    "liters": "l",
    "liter": "l",
    "litres": "l",
    "litre": "l",
    "l": "l",
    "milliliters": "ml",
    "milliliter": "ml",
    "millilitres": "ml",
    "ml": "ml",
    # Weight
    "ounces": "oz",
    "ounce": "oz",
    "oz": "oz",
    "pounds": "lb",
    "pound": "lb",
    "lbs": "lb",
    "lb": "lb",
    "grams": "g",
    "gram": "g",
    "g": "g",
    "kilograms": "kg",
    "kilogram": "kg",
    "kg": "kg",
    # Count
    "cloves": "clove",
    "clove": "clove",
    "heads": "head",
    "head": "head",
    "bunches": "bunch",
    "bunch": "bunch",
    "pieces": "piece",
    "piece": "piece",
    "slices": "slice",
    "slice": "slice",
    "stalks": "stalk",
    "stalk": "stalk",
    "sprigs": "sprig",
    "sprig": "sprig",
    "leaves": "leaf",
    "leaf": "leaf",
    "cans": "can",
    "can": "can",
    "packages": "package",
    "package": "package",
    "pkg": "package",
    "bottles": "bottle",
    "bottle": "bottle",
    "jars": "jar",
    "jar": "jar",
    "containers": "container",
    "container": "container",
    "sticks": "stick",
    "stick": "stick",
    "pinches": "pinch",
    "pinch": "pinch",
    "dashes": "dash",
    "dash": "dash",
}

# Tokens that sit where a unit would but describe the ingredient instead
DESCRIPTIVE_UNITS = frozenset(
    {
        "small",
        "medium",
        "large",
        "extra large",
        "extra-large",
        "jumbo",
        "thin",
        "thick",
        "fine",
        "coarse",
        "rough",
        "fresh",
        "dried",
        "frozen",
        "canned",
        "whole",
        "half",
        "quarter",
        "ripe",
        "unripe",
        "green",
        "red",
    }
)

_CASE_SENSITIVE = {"T", "t"}

# Longest tokens first so "fl oz" wins over "fl", "extra large" over "large"
_UNIT_TOKENS = sorted(
    {k.lower() for k in CANONICAL_UNITS if k not in _CASE_SENSITIVE} | set(DESCRIPTIVE_UNITS),
    key=len,
    reverse=True,
)
_UNIT_PATTERN = re.compile(
    r"^(" + "|".join(re.escape(t) for t in _UNIT_TOKENS) + r")(?=\s|$|\.|,)",
    re.IGNORECASE,
)
_SINGLE_LETTER_PATTERN = re.compile(r"^(T|t)\.?(?=\s|$)")


@dataclass
class UnitMatch:
    """A unit token found at the start of a string."""

    raw: str
    canonical: str | None  # None when the token is descriptive
    rest: str

    @property
    def is_descriptive(self) -> bool:
        return self.canonical is None


def canonical_unit(token: str | None) -> str | None:
    """
    Map a raw unit token to its canonical spelling.

    Returns None for unknown tokens.

    Examples:
        canonical_unit("Tablespoons") -> "tbsp"
        canonical_unit("T") -> "tbsp"
        canonical_unit("t") -> "tsp"
        canonical_unit("furlong") -> None
    """
    if not token:
        return None
    token = token.strip()
    if token in _CASE_SENSITIVE:
        return CANONICAL_UNITS[token]
    token = token.rstrip(".") if token.lower() not in CANONICAL_UNITS else token
    return CANONICAL_UNITS.get(token.lower())


def is_descriptive_unit(token: str | None) -> bool:
    """True for size/state words like "large" or "fresh"."""
    return bool(token) and token.strip().lower() in DESCRIPTIVE_UNITS


def match_leading_unit(text: str) -> UnitMatch | None:
    """
    Match a unit (or descriptive pseudo-unit) at the start of text.

    Examples:
        "cups flour" -> UnitMatch("cups", "cup", "flour")
        "T olive oil" -> UnitMatch("T", "tbsp", "olive oil")
        "large eggs" -> UnitMatch("large", None, "eggs")
        "flour" -> None
    """
    text = text.strip()
    single = _SINGLE_LETTER_PATTERN.match(text)
    if single:
        raw = single.group(1)
        return UnitMatch(raw=raw, canonical=CANONICAL_UNITS[raw], rest=text[single.end():].strip())

    match = _UNIT_PATTERN.match(text)
    if not match:
        return None

    raw = match.group(1)
    rest = text[match.end():].lstrip(".").strip()
    if raw.lower() in DESCRIPTIVE_UNITS:
        return UnitMatch(raw=raw, canonical=None, rest=rest)
    return UnitMatch(raw=raw, canonical=CANONICAL_UNITS[raw.lower()], rest=rest)


# =============================================================================
# Conversion
# =============================================================================

# Millilitres per unit
VOLUME_TO_ML: dict[str, float] = {
    "tsp": 4.92892159375,
    "tbsp": 14.78676478125,
    "fl oz": 29.5735295625,
    "cup": 236.5882365,
    "pint": 473.176473,
    "quart": 946.352946,
    "gallon": 3785.411784,
    "ml": 1.0,
    "l": 1000.0,
}

# Grams per unit
WEIGHT_TO_G: dict[str, float] = {
    "g": 1.0,
    "kg": 1000.0,
    "oz": 28.349523125,
    "lb": 453.59237,
}


@dataclass
class ParsedQuantity:
    """A parsed quantity with value and unit."""

    value: float
    unit: str | None
    original: str  # Original input for reference


class UnitHandler:
    """Unit categories, conversion and display formatting."""

    VOLUME_UNITS = set(VOLUME_TO_ML)
    WEIGHT_UNITS = set(WEIGHT_TO_G)
    COUNT_UNITS = {
        "piece",
        "can",
        "bottle",
        "jar",
        "container",
        "package",
        "bunch",
        "head",
        "clove",
        "slice",
        "stalk",
        "sprig",
        "leaf",
        "stick",
        "pinch",
        "dash",
    }

    @staticmethod
    def parse(quantity: float | str, unit: str | None) -> ParsedQuantity:
        """
        Parse and normalize a quantity and unit.

        Accepts "1.5", "1/2", "1 1/2", and ranges like "1-2" (upper bound
        is used so grocery lists never come up short).

        Raises:
            ValueError: If the quantity is not numeric
        """
        value = quantity if isinstance(quantity, (int, float)) else parse_amount(str(quantity))
        if value is None:
            raise ValueError(f"Not a numeric quantity: {quantity!r}")

        return ParsedQuantity(
            value=float(value),
            unit=canonical_unit(unit) or (unit.strip().lower() if unit else None),
            original=f"{quantity} {unit or ''}".strip(),
        )

    @classmethod
    def category(cls, unit: str | None) -> str | None:
        unit = canonical_unit(unit) or (unit or "").strip().lower()
        if unit in cls.VOLUME_UNITS:
            return "volume"
        if unit in cls.WEIGHT_UNITS:
            return "weight"
        if unit in cls.COUNT_UNITS:
            return "count"
        return None

    @classmethod
    def convert(cls, value: float, from_unit: str, to_unit: str) -> float:
        """
        Convert between units of the same category.

        Raises:
            ValueError: If the units are unknown or incompatible
        """
        src = canonical_unit(from_unit) or from_unit.strip().lower()
        dst = canonical_unit(to_unit) or to_unit.strip().lower()

        if src == dst:
            return value

        if src in VOLUME_TO_ML and dst in VOLUME_TO_ML:
            return value * VOLUME_TO_ML[src] / VOLUME_TO_ML[dst]
        if src in WEIGHT_TO_G and dst in WEIGHT_TO_G:
            return value * WEIGHT_TO_G[src] / WEIGHT_TO_G[dst]

        raise ValueError(f"Cannot convert '{from_unit}' to '{to_unit}'")

    @classmethod
    def are_compatible(cls, unit1: str | None, unit2: str | None) -> bool:
        """True if two units can be summed after conversion."""
        if not unit1 or not unit2:
            return unit1 == unit2
        u1 = canonical_unit(unit1) or unit1.strip().lower()
        u2 = canonical_unit(unit2) or unit2.strip().lower()
        if u1 == u2:
            return True
        return cls.category(u1) in ("volume", "weight") and cls.category(u1) == cls.category(u2)

    @staticmethod
    def format_quantity(value: float, unit: str | None) -> str:
        """
        Format a quantity for display.

        Examples:
            format_quantity(1.5, "cup") -> "1.5 cup"
            format_quantity(2.0, None) -> "2"
        """
        text = format_amount(value)
        return f"{text} {unit}" if unit else text


# =============================================================================
# Amount helpers
# =============================================================================

UNICODE_FRACTIONS: dict[str, Fraction] = {
    "½": Fraction(1, 2),
    "⅓": Fraction(1, 3),
    "⅔": Fraction(2, 3),
    "¼": Fraction(1, 4),
    "¾": Fraction(3, 4),
    "⅕": Fraction(1, 5),
    "⅖": Fraction(2, 5),
    "⅗": Fraction(3, 5),
    "⅘": Fraction(4, 5),
    "⅙": Fraction(1, 6),
    "⅚": Fraction(5, 6),
    "⅛": Fraction(1, 8),
    "⅜": Fraction(3, 8),
    "⅝": Fraction(5, 8),
    "⅞": Fraction(7, 8),
}


def parse_amount(text: str | None) -> float | None:
    """
    Parse an amount string to a number.

    Examples:
        "1 1/2" -> 1.5
        "3/4" -> 0.75
        "1½" -> 1.5
        "2-3" -> 3.0
        "about 2" -> 2.0
        "a few" -> None
    """
    if text is None:
        return None
    text = str(text).strip().lower()
    text = re.sub(r"^(about|approximately|approx\.?|~)\s*", "", text)
    if not text:
        return None

    range_match = re.match(r"^(.+?)\s*(?:-|–|to)\s*(.+)$", text)
    if range_match and not text.startswith("-"):
        high = parse_amount(range_match.group(2))
        if high is not None:
            return high

    total = Fraction(0)
    parsed_any = False
    for part in text.split():
        whole = re.match(r"^(\d+)?([½⅓⅔¼¾⅕⅖⅗⅘⅙⅚⅛⅜⅝⅞])$", part)
        if whole:
            total += Fraction(int(whole.group(1) or 0)) + UNICODE_FRACTIONS[whole.group(2)]
        elif re.match(r"^\d+/\d+$", part):
            num, den = part.split("/")
            if int(den) == 0:
                return None
            total += Fraction(int(num), int(den))
        elif re.match(r"^\d*\.?\d+$", part):
            total += Fraction(part)
        else:
            return None
        parsed_any = True

    return float(total) if parsed_any else None


def format_amount(value: float) -> str:
    """Render a number without trailing zeros ("1.5", "2", "0.33")."""
    rounded = round(value, 2)
    if rounded == int(rounded):
        return str(int(rounded))
    return f"{rounded:.2f}".rstrip("0").rstrip(".")
