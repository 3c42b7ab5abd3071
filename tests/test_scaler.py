"""Tests for ingredient scaling."""

import pytest

from recipebox.ingredients.parser import CZECH, parse_ingredient
from recipebox.ingredients.scaler import (
    format_amount,
    next_scale,
    previous_scale,
    scale_ingredient,
)
from recipebox.models import NormalizedIngredient, ParsedIngredient


def test_scale_doubles_amount_and_text():
    result = scale_ingredient(parse_ingredient("500 g mouky", CZECH), 2)
    assert result.amount == 1000
    assert result.text == "1000 g mouky"


def test_scale_halves_to_whole_number():
    result = scale_ingredient(parse_ingredient("4 vejce", CZECH), 0.5)
    assert result.amount == 2
    assert result.text == "2 vejce"


def test_scale_decimal_result_uses_one_decimal():
    result = scale_ingredient(parse_ingredient("3 vejce", CZECH), 0.5)
    assert result.amount == 1.5
    assert result.text == "1.5 vejce"


def test_scale_replaces_only_first_occurrence():
    ingredient = parse_ingredient("2 cups water, 2 tbsp sugar")
    result = scale_ingredient(ingredient, 3)
    assert result.text == "6 cups water, 2 tbsp sugar"


def test_scale_decimal_amount_in_text():
    result = scale_ingredient(parse_ingredient("0.5 kg butter"), 3)
    assert result.amount == 1.5
    assert result.text == "1.5 kg butter"


def test_scale_without_amount_is_noop():
    ingredient = parse_ingredient("salt to taste")
    for factor in (0, 0.5, 3):
        assert scale_ingredient(ingredient, factor) == ingredient


def test_scale_by_one_is_identity():
    for line in ("500 g flour", "0.25 kg butter", "pinch of salt", "3 eggs"):
        ingredient = parse_ingredient(line)
        assert scale_ingredient(ingredient, 1) == ingredient


def test_scale_is_linear():
    ingredient = parse_ingredient("3 eggs")
    result = scale_ingredient(scale_ingredient(ingredient, 0.5), 4)
    assert result.amount == pytest.approx(3 * 0.5 * 4)


def test_scale_does_not_mutate_input():
    ingredient = parse_ingredient("2 cups water")
    scale_ingredient(ingredient, 2)
    assert ingredient.amount == 2
    assert ingredient.text == "2 cups water"


def test_scale_text_left_alone_when_amount_not_verbatim():
    """An amount written differently from its parsed form only scales the field."""
    ingredient = ParsedIngredient(
        text="two cups water", amount=2, unit="cups", ingredient_name="water"
    )
    result = scale_ingredient(ingredient, 2)
    assert result.amount == 4
    assert result.text == "two cups water"


def test_scale_keeps_subclass_fields():
    ingredient = NormalizedIngredient(
        text="2 cups water",
        amount=2,
        unit="cups",
        ingredient_name="water",
        export_default=False,
    )
    result = scale_ingredient(ingredient, 2)
    assert isinstance(result, NormalizedIngredient)
    assert result.export_default is False


def test_scale_rejects_negative_factor():
    with pytest.raises(ValueError):
        scale_ingredient(parse_ingredient("2 eggs"), -1)


# -- Formatting --


def test_format_amount():
    assert format_amount(4.0) == "4"
    assert format_amount(1.25) == "1.2"
    assert format_amount(0.5) == "0.5"


# -- Scale steps --


def test_next_scale():
    assert next_scale(1) == 2
    assert next_scale(0.3) == 0.5
    assert next_scale(4) == 4


def test_previous_scale():
    assert previous_scale(1) == 0.5
    assert previous_scale(3) == 2
    assert previous_scale(0.25) == 0.25
