"""
meez - Response Sanitizer.

Turns raw model output into a validated CombinedRecipe, or a SanitizeError
that keeps the raw text for the logs.

Local recovery, never surfaced to the caller:
- markdown code fences around the whole payload are stripped
- trailing prose after a complete JSON body is cut off (one retry)
- list fields that came back as something else become null
"""

import json
import logging
import re
from dataclasses import dataclass
from typing import Any

from pydantic import ValidationError

from meez.models import CombinedRecipe
from meez.recipe_import.ingredient_parser import parse_ingredient

logger = logging.getLogger(__name__)

_FENCE_PATTERN = re.compile(r"^```[a-zA-Z0-9_-]*\s*\n?(.*?)\n?\s*```$", re.DOTALL)

_LIST_FIELDS = ("ingredients", "instructions")


@dataclass
class SanitizeError:
    """Model output that could not be turned into a recipe."""

    message: str
    raw_text: str = ""


def strip_markdown_fences(text: str) -> str:
    """
    Remove a code fence that wraps the entire payload.

    Examples:
        '```json\\n{"a": 1}\\n```' -> '{"a": 1}'
        'prefix ```json {} ```'   -> unchanged (fence is not the whole payload)
    """
    stripped = text.strip()
    match = _FENCE_PATTERN.match(stripped)
    if match:
        return match.group(1).strip()
    return stripped


def _loads_with_repair(text: str) -> Any:
    """
    Strict JSON parse with one repair: when a valid body is followed by
    extra characters, parse only the body.
    """
    try:
        return json.loads(text)
    except json.JSONDecodeError as e:
        if e.msg != "Extra data":
            raise
        logger.debug(f"Trailing characters after JSON body at position {e.pos}, truncating")
        return json.loads(text[: e.pos])


def _flatten_groups(groups: Any) -> list | None:
    """ingredientGroups: [{"name": "Sauce", "ingredients": [...]}, ...] -> flat list."""
    if not isinstance(groups, list):
        return None
    flat = []
    for group in groups:
        if isinstance(group, dict) and isinstance(group.get("ingredients"), list):
            flat.extend(group["ingredients"])
    return flat or None


def _coerce_ingredient(item: Any) -> dict | None:
    if isinstance(item, str):
        if not item.strip():
            return None
        return parse_ingredient(item).model_dump(by_alias=True)
    if isinstance(item, dict) and isinstance(item.get("name"), str) and item["name"].strip():
        return item
    return None


def _coerce_instruction(item: Any) -> str | None:
    if isinstance(item, str):
        return item.strip() or None
    if isinstance(item, dict):
        text = item.get("text") or item.get("step")
        if isinstance(text, str):
            return text.strip() or None
    return None


def _coerce_fields(data: dict) -> dict:
    """Normalize shape problems instead of rejecting the whole recipe."""
    data = dict(data)

    if data.get("ingredients") is None and "ingredientGroups" in data:
        data["ingredients"] = _flatten_groups(data.pop("ingredientGroups"))

    for name in _LIST_FIELDS:
        if not isinstance(data.get(name), list):
            if data.get(name) is not None:
                logger.debug(f"Field '{name}' was {type(data[name]).__name__}, coercing to null")
            data[name] = None

    if data["ingredients"] is not None:
        data["ingredients"] = [i for i in map(_coerce_ingredient, data["ingredients"]) if i] or None

    if data["instructions"] is not None:
        data["instructions"] = [s for s in map(_coerce_instruction, data["instructions"]) if s] or None

    if data.get("nutrition") is not None and not isinstance(data["nutrition"], dict):
        data["nutrition"] = None

    return data


def sanitize(raw: str | CombinedRecipe | None) -> CombinedRecipe | SanitizeError:
    """
    Parse raw model output into a CombinedRecipe.

    Already-validated recipes pass through unchanged, so sanitizing twice
    gives the same result as sanitizing once.

    Returns:
        CombinedRecipe on success, SanitizeError otherwise. Never raises.
    """
    if isinstance(raw, CombinedRecipe):
        return raw

    if raw is None or not raw.strip():
        return SanitizeError("empty response", raw or "")

    text = strip_markdown_fences(raw)
    if not text:
        return SanitizeError("empty response", raw)

    try:
        data = _loads_with_repair(text)
    except json.JSONDecodeError as e:
        logger.warning(f"Model output is not valid JSON: {e}")
        return SanitizeError(f"invalid JSON: {e.msg} at position {e.pos}", raw)

    if not isinstance(data, dict):
        return SanitizeError(f"expected a JSON object, got {type(data).__name__}", raw)

    try:
        return CombinedRecipe.model_validate(_coerce_fields(data))
    except ValidationError as e:
        logger.warning(f"Model output failed recipe validation: {e.error_count()} error(s)")
        return SanitizeError(f"recipe validation failed: {e.errors()[0]['msg']}", raw)
