"""Tests for ingredient line parsing."""

import pytest

from recipebox.ingredients.parser import (
    CZECH,
    ENGLISH,
    parse_ingredient,
    vocabulary_for,
)
from recipebox.models import ParsedIngredient

# -- Number + known unit --


@pytest.mark.parametrize(
    "amount, unit, name",
    [
        ("500", "g", "flour"),
        ("2", "cups", "all-purpose flour"),
        ("1.5", "kg", "potatoes"),
        ("3", "tbsp", "olive oil"),
        ("2", "cloves", "garlic"),
        ("0.25", "l", "milk"),
    ],
)
def test_parse_number_and_unit(amount, unit, name):
    result = parse_ingredient(f"{amount} {unit} {name}")
    assert result.amount == float(amount)
    assert result.unit == unit
    assert result.ingredient_name == name


def test_parse_unit_is_case_insensitive():
    result = parse_ingredient("2 Tbsp olive oil")
    assert result.unit == "tbsp"
    assert result.amount == 2.0


def test_parse_skips_connector_after_unit():
    result = parse_ingredient("2 cups of sugar")
    assert result.unit == "cups"
    assert result.ingredient_name == "sugar"


def test_parse_unit_prefix_does_not_match_word():
    result = parse_ingredient("2 large eggs")
    assert result.amount == 2.0
    assert result.unit == "piece"
    assert result.ingredient_name == "large eggs"


# -- Descriptive amounts --


def test_parse_descriptive_amount():
    result = parse_ingredient("pinch of salt")
    assert result.amount == 1
    assert result.unit == "pinch"
    assert result.ingredient_name == "salt"


def test_parse_descriptive_amount_with_article():
    result = parse_ingredient("A handful of parsley")
    assert result.amount == 1
    assert result.unit == "handful"
    assert result.ingredient_name == "parsley"


# -- Bare numbers --


def test_parse_bare_number_uses_piece_unit():
    result = parse_ingredient("3 eggs")
    assert result.amount == 3.0
    assert result.unit == "piece"
    assert result.ingredient_name == "eggs"


# -- Fallback --


def test_parse_no_amount():
    result = parse_ingredient("salt to taste")
    assert result == ParsedIngredient(
        text="salt to taste", amount=None, unit=None, ingredient_name="salt to taste"
    )


def test_parse_fraction_is_not_a_number():
    result = parse_ingredient("1/2 tsp salt")
    assert result.amount is None
    assert result.ingredient_name == "1/2 tsp salt"


def test_parse_trims_whitespace():
    result = parse_ingredient("   2 cups water  ")
    assert result.text == "2 cups water"
    assert result.ingredient_name == "water"


def test_parse_empty_string():
    result = parse_ingredient("")
    assert result.text == ""
    assert result.amount is None
    assert result.ingredient_name == ""


# -- Czech vocabulary --


def test_parse_czech_amount_and_unit():
    result = parse_ingredient("500 g hovězí kližky", CZECH)
    assert result == ParsedIngredient(
        text="500 g hovězí kližky", amount=500, unit="g", ingredient_name="hovězí kližky"
    )


def test_parse_czech_count_unit():
    result = parse_ingredient("2 stroužky česneku", CZECH)
    assert result.amount == 2
    assert result.unit == "stroužky"
    assert result.ingredient_name == "česneku"


def test_parse_czech_descriptive_amount():
    result = parse_ingredient("špetka soli", CZECH)
    assert result.amount == 1
    assert result.unit == "špetka"
    assert result.ingredient_name == "soli"


def test_parse_czech_bare_number_uses_ks():
    result = parse_ingredient("2 cibule", CZECH)
    assert result.unit == "ks"
    assert result.ingredient_name == "cibule"


def test_parse_czech_no_amount():
    result = parse_ingredient("sůl podle chuti", CZECH)
    assert result.amount is None
    assert result.ingredient_name == "sůl podle chuti"


# -- Vocabulary lookup --


def test_vocabulary_for_known_locales():
    assert vocabulary_for("en") is ENGLISH
    assert vocabulary_for("cs") is CZECH


def test_vocabulary_for_unknown_locale():
    with pytest.raises(ValueError, match="Unknown ingredient locale"):
        vocabulary_for("de")
