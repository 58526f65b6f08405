"""
meez - Recipe data models.

CombinedRecipe is the terminal artifact of the pipeline. It is validated
once, at the sanitizer boundary, and everything downstream consumes the
validated shape. Field aliases match the JSON the language model is asked
to produce, so cached JSON and model JSON share one shape.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


def _to_optional_str(value: Any) -> str | None:
    """Models sometimes answer 2 instead of "2"; keep everything a string."""
    if value is None:
        return None
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return f"{value:g}"
    text = str(value).strip()
    return text or None


# =============================================================================
# Recipe Shape
# =============================================================================


class Substitution(BaseModel):
    """A suggested replacement for one ingredient."""

    model_config = ConfigDict(extra="ignore")

    name: str
    amount: str | float | int | None = None
    unit: str | None = None
    description: str | None = None


class StructuredIngredient(BaseModel):
    """One ingredient line broken into amount / unit / name / preparation."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    name: str
    amount: str | None = None
    unit: str | None = None
    preparation: str | None = None
    substitutions: list[Substitution] | None = Field(
        default=None, alias="suggested_substitutions"
    )

    @field_validator("amount", "unit", "preparation", mode="before")
    @classmethod
    def _stringify(cls, value: Any) -> str | None:
        return _to_optional_str(value)

    @field_validator("substitutions", mode="before")
    @classmethod
    def _drop_bad_substitutions(cls, value: Any) -> list | None:
        if not isinstance(value, list):
            return None
        subs = [s for s in value if isinstance(s, dict) and s.get("name")]
        return subs or None


class Nutrition(BaseModel):
    """Headline nutrition facts, kept as display strings."""

    model_config = ConfigDict(extra="ignore")

    calories: str | None = None
    protein: str | None = None

    @field_validator("calories", "protein", mode="before")
    @classmethod
    def _stringify(cls, value: Any) -> str | None:
        return _to_optional_str(value)


class CombinedRecipe(BaseModel):
    """Structured recipe produced by the pipeline."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    title: str | None = None
    ingredients: list[StructuredIngredient] | None = None
    instructions: list[str] | None = None
    recipe_yield: str | None = Field(default=None, alias="recipeYield")
    prep_time: str | None = Field(default=None, alias="prepTime")
    cook_time: str | None = Field(default=None, alias="cookTime")
    total_time: str | None = Field(default=None, alias="totalTime")
    nutrition: Nutrition | None = None
    substitutions_text: str | None = None
    tips: list[str] | None = None

    # Enrichment from the source page (never produced by the model)
    description: str | None = None
    image: str | None = None
    source_url: str | None = Field(default=None, alias="sourceUrl")

    @field_validator(
        "title",
        "recipe_yield",
        "prep_time",
        "cook_time",
        "total_time",
        "substitutions_text",
        mode="before",
    )
    @classmethod
    def _stringify(cls, value: Any) -> str | None:
        return _to_optional_str(value)

    @field_validator("tips", mode="before")
    @classmethod
    def _tips_list(cls, value: Any) -> list[str] | None:
        if isinstance(value, str):
            return [value] if value.strip() else None
        if not isinstance(value, list):
            return None
        return [str(t) for t in value if str(t).strip()] or None

    @property
    def ingredient_count(self) -> int:
        return len(self.ingredients or [])

    @property
    def instruction_count(self) -> int:
        return len(self.instructions or [])

    @property
    def is_empty(self) -> bool:
        """No title, no ingredients and no instructions."""
        return not self.title and not self.ingredients and not self.instructions

    def to_json_dict(self) -> dict:
        """Serialize with the model-facing aliases (recipeYield, prepTime...)."""
        return self.model_dump(by_alias=True, mode="json")


# =============================================================================
# Cache Shape
# =============================================================================


class CacheEntry(BaseModel):
    """A stored recipe, keyed by normalized URL or content hash."""

    model_config = ConfigDict(extra="ignore")

    id: str
    key: str
    recipe_data: CombinedRecipe
    source_type: str | None = None
    embedding: list[float] | None = None
    parent_id: str | None = None
    is_user_modified: bool = False
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


@dataclass
class SimilarMatch:
    """One hit from a similarity search."""

    entry: CacheEntry
    similarity: float


# =============================================================================
# Pipeline Results
# =============================================================================


class InputType(str, Enum):
    """What kind of input the caller handed us."""

    URL = "url"
    RAW_TEXT = "raw_text"
    IMAGE = "image"
    VIDEO = "video"
    INVALID = "invalid"


@dataclass(frozen=True)
class RawInput:
    """Caller input after classification."""

    text: str
    detected_type: InputType


class ParseErrorCode(str, Enum):
    """Error codes surfaced to callers of the parser."""

    INVALID_INPUT = "INVALID_INPUT"
    UNSUPPORTED_INPUT_TYPE = "UNSUPPORTED_INPUT_TYPE"
    NO_RECIPE_FOUND = "NO_RECIPE_FOUND"
    GENERATION_FAILED = "GENERATION_FAILED"
    GENERATION_EMPTY = "GENERATION_EMPTY"
    FINAL_VALIDATION_FAILED = "FINAL_VALIDATION_FAILED"


@dataclass
class ParseError:
    """User-facing error. Diagnostic detail stays in the logs."""

    code: ParseErrorCode
    message: str


@dataclass
class TokenUsage:
    """Normalized token counts across providers."""

    input_tokens: int = 0
    output_tokens: int = 0

    def __add__(self, other: "TokenUsage") -> "TokenUsage":
        return TokenUsage(
            input_tokens=self.input_tokens + other.input_tokens,
            output_tokens=self.output_tokens + other.output_tokens,
        )


@dataclass
class ParseResult:
    """Outcome of one parse request."""

    recipe: CombinedRecipe | None = None
    error: ParseError | None = None
    from_cache: bool = False
    cache_key: str | None = None
    input_type: InputType | None = None
    timings: dict[str, float] = field(default_factory=dict)
    usage: TokenUsage = field(default_factory=TokenUsage)
    fetch_method: str | None = None
    used_fallback: bool = False
    fallback_type: str | None = None
    cost_usd: float = 0.0
    warnings: list[str] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return self.recipe is not None and self.error is None
