"""Normalization utilities for recipe data."""

import re

# Characters that signal a quantity in ingredient text
FRACTION_GLYPHS = "½⅓⅔¼¾⅕⅖⅗⅘⅙⅚⅛⅜⅝⅞"
_QUANTITY_PATTERN = re.compile(rf"[\d{FRACTION_GLYPHS}]")


def has_quantity_marker(text: str | None) -> bool:
    """True if text contains a digit or a fraction glyph."""
    return bool(text) and bool(_QUANTITY_PATTERN.search(text))


def clean_text(text: str | None) -> str:
    """Collapse all whitespace runs to single spaces."""
    if not text:
        return ""
    return re.sub(r"\s+", " ", text).strip()


def clean_lines(text: str | None) -> str:
    """Trim every line and drop the blank ones."""
    if not text:
        return ""
    return "\n".join(line.strip() for line in text.splitlines() if line.strip())


def dedupe_lines(lines: list[str]) -> list[str]:
    """Drop repeated lines, keeping first-seen order."""
    seen: set[str] = set()
    result = []
    for line in lines:
        line = line.strip()
        if line and line not in seen:
            seen.add(line)
            result.append(line)
    return result


def flatten_instructions(instructions) -> list[str]:
    """
    Flatten schema.org instructions into plain steps.

    Handles:
        - A single string (split on newlines)
        - List of strings
        - HowToStep dicts with 'text' (or 'name')
        - HowToSection dicts with 'itemListElement', nested any depth
    """
    if not instructions:
        return []

    if isinstance(instructions, str):
        return [line.strip() for line in instructions.splitlines() if line.strip()]

    if isinstance(instructions, dict):
        if "itemListElement" in instructions:
            return flatten_instructions(instructions.get("itemListElement"))
        text = instructions.get("text") or instructions.get("name") or ""
        return [text.strip()] if isinstance(text, str) and text.strip() else []

    if isinstance(instructions, list):
        steps: list[str] = []
        for item in instructions:
            steps.extend(flatten_instructions(item))
        return steps

    return []


def normalize_ingredient_lines(ingredients) -> list[str]:
    """
    Normalize schema.org recipeIngredient to a list of strings.

    Handles:
        - List of strings
        - List of dicts with 'text' or 'name' field
        - A single newline-separated string
    """
    if not ingredients:
        return []

    if isinstance(ingredients, str):
        return [line.strip() for line in ingredients.splitlines() if line.strip()]

    result = []
    for item in ingredients:
        if isinstance(item, str):
            text = item.strip()
            if text:
                result.append(text)
        elif isinstance(item, dict):
            text = item.get("text") or item.get("name") or ""
            if isinstance(text, str) and text.strip():
                result.append(text.strip())

    return result


def yield_to_text(recipe_yield) -> str | None:
    """
    Keep a schema.org recipeYield verbatim as a string.

    Examples:
        "4 servings" -> "4 servings"
        ["4", "4 servings"] -> "4, 4 servings"
        6 -> "6"
    """
    if recipe_yield is None or recipe_yield == "":
        return None
    if isinstance(recipe_yield, list):
        parts = [str(p).strip() for p in recipe_yield if str(p).strip()]
        return ", ".join(parts) or None
    return str(recipe_yield).strip() or None


def normalize_servings(recipe_yield: str | None) -> str | None:
    """
    Collapse a messy yield string into one value.

    - Comma-separated duplicates are collapsed
    - A purely numeric part wins
    - Otherwise the first number of a range is used
    - Otherwise the first part is kept

    Examples:
        "4, 4 servings" -> "4"
        "4-6 servings" -> "4"
        "1.5-2 loaves" -> "1.5"
        "Makes 1 loaf" -> "Makes 1 loaf"
        "one loaf" -> "one loaf"
    """
    if not recipe_yield:
        return recipe_yield

    parts = dedupe_lines([p for p in str(recipe_yield).split(",")])
    if not parts:
        return None

    for part in parts:
        if re.fullmatch(r"\d+(?:\.\d+)?", part):
            return part

    for part in parts:
        match = re.search(r"(\d+(?:\.\d+)?)\s*(?:-|–|to)\s*\d+(?:\.\d+)?", part)
        if match:
            return match.group(1)

    return parts[0]


def parse_duration(duration: str | None) -> int | None:
    """
    Parse ISO 8601 duration to minutes.

    Examples:
        PT30M -> 30
        PT1H30M -> 90
        P1DT2H -> 1560
    """
    if not duration:
        return None

    if isinstance(duration, int):
        return duration

    match = re.fullmatch(
        r"P(?:(\d+)D)?(?:T(?:(\d+)H)?(?:(\d+)M)?(?:(\d+(?:\.\d+)?)S)?)?",
        str(duration).strip(),
    )
    if not match:
        try:
            return int(duration)
        except (ValueError, TypeError):
            return None

    days, hours, minutes = (int(g or 0) for g in match.groups()[:3])
    total = days * 1440 + hours * 60 + minutes
    return total or None


def humanize_duration(duration: str | None) -> str | None:
    """
    Render an ISO 8601 duration for display; non-ISO text passes through.

    Examples:
        PT1H30M -> "1 hour 30 minutes"
        PT45M -> "45 minutes"
        "20 min" -> "20 min"
    """
    if not duration:
        return None

    text = str(duration).strip()
    if not text.upper().startswith("P"):
        return text

    minutes = parse_duration(text.upper())
    if minutes is None:
        return None

    days, remainder = divmod(minutes, 1440)
    hours, mins = divmod(remainder, 60)
    parts = []
    for value, label in ((days, "day"), (hours, "hour"), (mins, "minute")):
        if value:
            parts.append(f"{value} {label}{'s' if value > 1 else ''}")
    return " ".join(parts)


def truncate_lines(text: str | None, max_lines: int, marker: str = "\n\n[CONTENT TRUNCATED]") -> str:
    """Keep the first max_lines lines, appending a marker when cut."""
    if not text:
        return ""
    lines = text.split("\n")
    if len(lines) > max_lines:
        return "\n".join(lines[:max_lines]) + marker
    return text


def extract_image_url(image) -> str | None:
    """
    Extract image URL from various formats.

    Handles:
        - Plain URL string
        - Dict with 'url' field
        - List of images (take first)
    """
    if not image:
        return None

    if isinstance(image, str):
        return image if image.startswith("http") else None

    if isinstance(image, dict):
        url = image.get("url") or image.get("@url") or image.get("contentUrl")
        if isinstance(url, str) and url.startswith("http"):
            return url

    if isinstance(image, list) and len(image) > 0:
        return extract_image_url(image[0])

    return None
