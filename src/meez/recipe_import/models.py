"""Data models for recipe import."""

from dataclasses import dataclass
from enum import Enum


class FetchMethod(str, Enum):
    """How the page HTML was obtained."""

    DIRECT = "direct"
    FAILED = "failed"


class FallbackType(str, Enum):
    """Which fallback tier filled the extracted text."""

    RAW_BODY = "raw_body"


@dataclass(frozen=True)
class ExtractedContent:
    """
    Text sections pulled out of a recipe page, ready for prompting.

    Produced once per fetch and never mutated afterwards.
    """

    title: str | None = None
    ingredients_text: str | None = None
    instructions_text: str | None = None
    yield_text: str | None = None
    prep_time: str | None = None
    cook_time: str | None = None
    total_time: str | None = None
    is_fallback: bool = False
    fallback_type: FallbackType | None = None
    description: str | None = None
    image_url: str | None = None
    source_url: str | None = None
    # Cleaned whole-page text, set only by the fallback tier
    raw_text: str | None = None


@dataclass
class FetchResult:
    """Result of fetching a page."""

    success: bool
    method: FetchMethod
    html: str | None = None
    final_url: str | None = None
    error: str | None = None
    fallback_message: str | None = None
