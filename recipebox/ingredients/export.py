"""Shopping-list export helpers built on the normalizer and scaler."""

from collections.abc import Iterable, Mapping, Sequence
from typing import Any

from pydantic import BaseModel, Field

from recipebox.ingredients.normalizer import normalize_ingredients
from recipebox.ingredients.parser import ENGLISH, UnitVocabulary
from recipebox.ingredients.scaler import scale_ingredient
from recipebox.models import NormalizedIngredient


class RecipeIngredients(BaseModel):
    """Ingredients of one selected recipe, exported with its own scale."""

    recipe_key: str
    recipe_name: str
    ingredients: list[NormalizedIngredient]
    scale: float = Field(default=1, gt=0)


def default_selection(ingredients: Sequence[NormalizedIngredient]) -> list[int]:
    """Indices of the ingredients that are exported unless deselected."""
    return [i for i, ingredient in enumerate(ingredients) if ingredient.export_default]


def group_recipe_ingredients(
    recipes: Mapping[str, Mapping[str, Any]],
    selected_keys: Iterable[str],
    vocabulary: UnitVocabulary = ENGLISH,
) -> list[RecipeIngredients]:
    """Build one export group per selected recipe, skipping unknown keys."""
    groups = []
    for key in selected_keys:
        recipe = recipes.get(key)
        if not recipe or not recipe.get("ingredients"):
            continue
        groups.append(
            RecipeIngredients(
                recipe_key=key,
                recipe_name=str(recipe.get("name") or key),
                ingredients=normalize_ingredients(recipe["ingredients"], vocabulary),
            )
        )
    return groups


def export_lines(
    group: RecipeIngredients, selected: Iterable[int] | None = None
) -> list[str]:
    """Display lines of the selected ingredients, scaled by the group's scale."""
    indices = default_selection(group.ingredients) if selected is None else selected
    return [
        scale_ingredient(group.ingredients[i], group.scale).text for i in indices
    ]


def clipboard_text(lines: Iterable[str]) -> str:
    return "\n".join(lines)
