"""
Tests for rule-based ingredient line parsing.
"""

from meez.recipe_import.ingredient_parser import ingredient_key, parse_ingredient, parse_ingredients


class TestAmounts:
    """Amount recognition and decimal rendering."""

    def test_mixed_fraction(self):
        result = parse_ingredient("1 1/2 cups flour")
        assert result.amount == "1.5"
        assert result.unit == "cup"
        assert result.name == "flour"

    def test_unicode_fraction(self):
        result = parse_ingredient("½ cup sugar")
        assert result.amount == "0.5"
        assert result.unit == "cup"
        assert result.name == "sugar"

    def test_decimal(self):
        result = parse_ingredient("1.5 cups milk")
        assert result.amount == "1.5"
        assert result.name == "milk"

    def test_range_is_kept(self):
        result = parse_ingredient("2-3 tbsp olive oil")
        assert result.amount == "2-3"
        assert result.unit == "tbsp"
        assert result.name == "olive oil"

    def test_worded_range(self):
        result = parse_ingredient("2 to 3 cloves garlic")
        assert result.amount == "2-3"
        assert result.unit == "clove"

    def test_approximate(self):
        result = parse_ingredient("about 2 cups broth")
        assert result.amount == "2"
        assert result.unit == "cup"
        assert result.name == "broth"

    def test_unit_glued_to_number(self):
        result = parse_ingredient("200g butter")
        assert result.amount == "200"
        assert result.unit == "g"
        assert result.name == "butter"


class TestUnitsAndNames:
    """Unit extraction, descriptive words and preparation."""

    def test_preparation_after_comma(self):
        result = parse_ingredient("2 cloves garlic, minced")
        assert result.amount == "2"
        assert result.unit == "clove"
        assert result.name == "garlic"
        assert result.preparation == "minced"

    def test_descriptive_word_stays_in_name(self):
        result = parse_ingredient("2 large eggs")
        assert result.amount == "2"
        assert result.unit is None
        assert result.name == "large eggs"

    def test_capital_t_tablespoon(self):
        result = parse_ingredient("3 T butter")
        assert result.unit == "tbsp"

    def test_parenthetical_becomes_preparation(self):
        result = parse_ingredient("1 (14 oz) can diced tomatoes")
        assert result.amount == "1"
        assert result.unit == "can"
        assert result.name == "diced tomatoes"
        assert result.preparation == "14 oz"


class TestIndefiniteAmounts:
    """Phrases like "a pinch of" have no number."""

    def test_pinch(self):
        result = parse_ingredient("a pinch of salt")
        assert result.amount == "1"
        assert result.unit is None
        assert result.name == "pinch of salt"

    def test_some_is_dropped(self):
        result = parse_ingredient("some fresh basil")
        assert result.amount == "1"
        assert result.name == "fresh basil"


class TestFallbacks:
    """Lines the rules cannot read come back untouched."""

    def test_no_amount_no_unit(self):
        result = parse_ingredient("salt and pepper")
        assert result.amount is None
        assert result.unit is None
        assert result.name == "salt and pepper"

    def test_empty_line(self):
        assert parse_ingredient("").name == ""
        assert parse_ingredient(None).name == ""

    def test_parse_many_skips_blanks(self):
        results = parse_ingredients(["", "1 cup rice", "   "])
        assert len(results) == 1
        assert results[0].name == "rice"


class TestIngredientKey:
    """Canonical matching key."""

    def test_cloves_of_garlic(self):
        assert ingredient_key(parse_ingredient("9 cloves garlic")) == "garlic"

    def test_pinch_of_salt(self):
        assert ingredient_key(parse_ingredient("a pinch of salt")) == "salt"

    def test_plural_and_size(self):
        assert ingredient_key(parse_ingredient("2 large eggs")) == "egg"
