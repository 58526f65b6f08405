"""
Pytest configuration and fixtures for meez tests.
"""

import json
import os

import pytest

# Set test environment before importing meez modules
os.environ["MEEZ_ENV"] = "development"
os.environ["MEEZ_LOG_PROMPTS"] = "0"
os.environ.setdefault("GEMINI_API_KEY", "test-key-not-real")
os.environ.setdefault("OPENAI_API_KEY", "test-key-not-real")

from meez.db.memory import InMemoryRecipeCache  # noqa: E402
from meez.models import CombinedRecipe  # noqa: E402


@pytest.fixture
def recipe_dict():
    """A complete recipe as the model is asked to return it."""
    return {
        "title": "Buttermilk Pancakes",
        "ingredients": [
            {"name": "flour", "amount": "2", "unit": "cup", "preparation": None,
             "suggested_substitutions": [{"name": "oat flour", "amount": "2", "unit": "cup", "description": None}]},
            {"name": "buttermilk", "amount": "1.5", "unit": "cup", "preparation": None,
             "suggested_substitutions": None},
            {"name": "egg", "amount": "2", "unit": None, "preparation": "beaten",
             "suggested_substitutions": None},
        ],
        "instructions": [
            "Whisk the flour with the buttermilk and eggs.",
            "Cook ladlefuls on a hot griddle until golden.",
        ],
        "recipeYield": "4, 4 servings",
        "prepTime": "10 minutes",
        "cookTime": "15 minutes",
        "totalTime": "25 minutes",
        "nutrition": {"calories": "320", "protein": "9g"},
        "tips": ["Let the batter rest for 5 minutes."],
    }


@pytest.fixture
def recipe_json(recipe_dict):
    return json.dumps(recipe_dict)


@pytest.fixture
def sample_recipe(recipe_dict):
    return CombinedRecipe.model_validate(recipe_dict)


@pytest.fixture
def memory_cache():
    return InMemoryRecipeCache()


@pytest.fixture
def json_ld_page():
    """A recipe page with a complete JSON-LD Recipe block."""
    block = {
        "@context": "https://schema.org",
        "@graph": [
            {"@type": "WebSite", "name": "Example Kitchen"},
            {
                "@type": "Recipe",
                "name": "Weeknight Chili",
                "recipeIngredient": ["1 lb ground beef", "1 (15 oz) can kidney beans", "2 tbsp chili powder"],
                "recipeInstructions": [
                    {"@type": "HowToStep", "text": "Brown the beef."},
                    {"@type": "HowToStep", "text": "Add beans and chili powder and simmer 20 minutes."},
                ],
                "recipeYield": ["4", "4 servings"],
                "prepTime": "PT10M",
                "cookTime": "PT30M",
                "image": {"@type": "ImageObject", "url": "https://example.com/chili.jpg"},
            },
        ],
    }
    return f"""<html><head><title>Chili | Example Kitchen</title>
<script type="application/ld+json">{json.dumps(block)}</script></head>
<body><h1>Weeknight Chili</h1><div class="wprm-recipe-ingredient">should not be used</div></body></html>"""


@pytest.fixture
def plugin_page():
    """A recipe page with plugin markup but no structured data."""
    story = "<p>" + "This chili has been in my family for years and we make it every winter. " * 8 + "</p>"
    return f"""<html><head><title>Grandma's Chili</title></head><body>
<nav>Home | Recipes | About</nav>
<main>
  {story}
  <div class="wprm-recipe-container">
    <div class="wprm-recipe-servings">6</div>
    <ul>
      <li class="wprm-recipe-ingredient">2 lb ground beef</li>
      <li class="wprm-recipe-ingredient">1 onion, diced</li>
      <li class="wprm-recipe-ingredient">3 tbsp chili powder</li>
      <li class="wprm-recipe-ingredient">1 tsp kosher salt</li>
    </ul>
    <div class="wprm-recipe-instructions">
      <ul>
        <li>Brown the beef with the onion in a large pot over medium heat.</li>
        <li>Stir in the chili powder and simmer for 45 minutes, stirring often.</li>
      </ul>
    </div>
  </div>
</main>
<footer>Copyright Example</footer>
</body></html>"""


@pytest.fixture
def partial_plugin_page():
    """Plugin markup for the ingredients only; the steps are plain paragraphs."""
    return """<html><head><title>Lemon Chicken</title></head><body>
<h1>Lemon Chicken</h1>
<ul>
  <li class="wprm-recipe-ingredient">2 chicken breasts</li>
  <li class="wprm-recipe-ingredient">1 lemon, juiced</li>
  <li class="wprm-recipe-ingredient">2 tbsp olive oil</li>
  <li class="wprm-recipe-ingredient">1 tsp dried oregano</li>
</ul>
<h2>Instructions</h2>
<p>Marinate the chicken in the lemon juice, olive oil and oregano for 30 minutes.</p>
<p>Roast at 200C for 25 minutes and rest for 5 minutes before slicing.</p>
<p>Spoon the pan juices over the sliced chicken.</p>
</body></html>"""
