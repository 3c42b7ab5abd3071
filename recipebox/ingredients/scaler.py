"""Proportional rescaling of parsed ingredients."""

from typing import TypeVar

from recipebox.models import ParsedIngredient

IngredientT = TypeVar("IngredientT", bound=ParsedIngredient)

# Practical cooking ratios offered by the scale stepper.
SCALE_STEPS = (0.25, 0.5, 1, 2, 4)


def format_amount(value: float) -> str:
    """Render a scaled amount: whole numbers without decimals, else one decimal."""
    if float(value).is_integer():
        return str(int(value))
    return f"{value:.1f}"


def _amount_token(value: float) -> str:
    """The string form an amount takes inside its original ingredient line."""
    if float(value).is_integer():
        return str(int(value))
    return repr(float(value))


def scale_ingredient(ingredient: IngredientT, factor: float) -> IngredientT:
    """Return a copy of ``ingredient`` with its amount multiplied by ``factor``.

    The display text is rewritten by replacing only the first occurrence of the
    original amount, so "2 cups water, 2 tbsp sugar" keeps its second "2". When
    the amount does not appear verbatim in the text (e.g. "2.0 cups" parsed as
    2), the text is left alone while ``amount`` is still scaled.
    """
    if factor < 0:
        raise ValueError(f"Scale factor must not be negative: {factor}")
    if ingredient.amount is None or factor == 1:
        return ingredient.model_copy()

    scaled = ingredient.amount * factor
    text = ingredient.text.replace(
        _amount_token(ingredient.amount), format_amount(scaled), 1
    )
    return ingredient.model_copy(update={"amount": scaled, "text": text})


def next_scale(current: float) -> float:
    """Next larger step in SCALE_STEPS, staying at the maximum."""
    for step in SCALE_STEPS:
        if step > current:
            return step
    return SCALE_STEPS[-1]


def previous_scale(current: float) -> float:
    """Next smaller step in SCALE_STEPS, staying at the minimum."""
    for step in reversed(SCALE_STEPS):
        if step < current:
            return step
    return SCALE_STEPS[0]
