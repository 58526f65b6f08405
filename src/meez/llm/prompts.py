"""
meez - Parsing prompts.

One system instruction shared by every parsing call, plus builders that
turn extracted page sections or pasted text into a PromptPayload.
"""

from meez.recipe_import.models import ExtractedContent
from meez.recipe_import.normalizer import clean_lines, truncate_lines

from .adapters import PromptPayload

MAX_INGREDIENT_LINES = 40
MAX_INSTRUCTION_LINES = 40
MAX_FALLBACK_CHARS = 100_000
MAX_TEXT_CHARS = 100_000

SYSTEM_PROMPT = """You are a recipe parser. Read the recipe text you are given and return exactly one JSON object, nothing else.

**JSON shape:**
{
  "title": "string | null",
  "ingredients": [
    {
      "name": "string",
      "amount": "string | null",
      "unit": "string | null",
      "preparation": "string | null",
      "suggested_substitutions": [
        {
          "name": "string",
          "amount": "string | number | null",
          "unit": "string | null",
          "description": "string | null"
        }
      ] | null
    }
  ] | null,
  "instructions": ["string"] | null,
  "substitutions_text": "string | null",
  "recipeYield": "string | null",
  "prepTime": "string | null",
  "cookTime": "string | null",
  "totalTime": "string | null",
  "nutrition": {"calories": "string | null", "protein": "string | null"} | null,
  "tips": ["string"] | null
}

**Rules:**
1. Extract every ingredient, including ones that only appear inside an instruction step.
2. Amounts are decimal strings: "1/2" becomes "0.5", "1 1/2" becomes "1.5". Keep ranges as "1-2".
3. "name" is the core ingredient ("carrots"); preparation words ("finely chopped", "melted") go in "preparation".
4. Each instruction is one or two sentences, without numbering. Split long steps.
5. Times are short readable strings ("15 minutes", "1 hour 30 minutes"), never ISO 8601 like "PT15M".
6. Yield is a short readable string ("4 servings", "12 cookies").
7. Suggest 1-2 realistic substitutions per ingredient, or null when none make sense. Never return a substitution whose fields are all null.
8. Put explicit substitution notes from the text in "substitutions_text"; cooking tips and notes go in "tips".
9. If a value is not in the text, use null. Do not invent values, except a concise title when the text has none.
10. Leave out brand names, promotional text, social media handles and hashtags.
11. If the text is not a recipe, return {"title": null, "ingredients": null, "instructions": null}.
"""

URL_PREFIX = "This is structured text from a recipe page with the ingredients and instructions already separated."

FALLBACK_PREFIX = (
    "This is raw text from a cooking website. The recipe, if there is one, is somewhere inside it. "
    "Ignore navigation, ads, comments and stories; extract only the recipe."
)


def build_url_prompt(content: ExtractedContent, request_id: str | None = None) -> PromptPayload:
    """
    Build the parsing prompt for extracted page content.

    Standard extractions send each section capped at 40 lines; fallback
    extractions send the raw page text capped at 100,000 characters.
    """
    header = (
        f"Title: {content.title or 'N/A'}\n"
        f"Prep Time: {content.prep_time or 'N/A'}\n"
        f"Cook Time: {content.cook_time or 'N/A'}\n"
        f"Total Time: {content.total_time or 'N/A'}\n"
        f"Yield: {content.yield_text or 'N/A'}\n"
    )

    if content.is_fallback:
        raw_body = clean_lines(content.raw_text or content.ingredients_text)
        if len(raw_body) > MAX_FALLBACK_CHARS:
            raw_body = raw_body[:MAX_FALLBACK_CHARS] + "\n\n[RAW PAGE TEXT TRUNCATED]"
        body = f"{FALLBACK_PREFIX}\n\n{header}\nRaw Page Content:\n{raw_body or 'N/A'}"
    else:
        ingredients = truncate_lines(
            clean_lines(content.ingredients_text),
            MAX_INGREDIENT_LINES,
            "\n\n[INGREDIENTS TRUNCATED]",
        )
        instructions = truncate_lines(
            clean_lines(content.instructions_text),
            MAX_INSTRUCTION_LINES,
            "\n\n[INSTRUCTIONS TRUNCATED]",
        )
        body = (
            f"{URL_PREFIX}\n\n{header}"
            f"Ingredients:\n{ingredients or 'N/A'}\n\n"
            f"Instructions:\n{instructions or 'N/A'}"
        )

    return PromptPayload(
        system_instruction=SYSTEM_PROMPT,
        user_text=body.strip(),
        expect_json=True,
        task="url_parse",
        request_id=request_id,
    )


def build_text_prompt(text: str, request_id: str | None = None) -> PromptPayload:
    """Build the parsing prompt for pasted recipe text."""
    text = text.strip()
    if len(text) > MAX_TEXT_CHARS:
        text = text[:MAX_TEXT_CHARS] + "\n\n[TEXT TRUNCATED]"

    return PromptPayload(
        system_instruction=SYSTEM_PROMPT,
        user_text=text,
        expect_json=True,
        task="text_parse",
        request_id=request_id,
    )
