"""Turn the ingredient lists stored in recipe documents into structured lists."""

import logging
from collections.abc import Mapping

from recipebox.ingredients.parser import ENGLISH, UnitVocabulary, parse_ingredient
from recipebox.models import NormalizedIngredient

logger = logging.getLogger(__name__)


def normalize_ingredients(
    ingredients: object, vocabulary: UnitVocabulary = ENGLISH
) -> list[NormalizedIngredient]:
    """Parse every ``{"text": ..., "exportDefault": ...}`` record of a list.

    Anything that is not a list yields an empty list. Records without a
    ``text`` field are logged and parsed from their string form. Order is kept
    and repeated ingredients are not merged.
    """
    if not isinstance(ingredients, (list, tuple)):
        return []
    return [_normalize_single(item, vocabulary) for item in ingredients]


def _normalize_single(item: object, vocabulary: UnitVocabulary) -> NormalizedIngredient:
    if isinstance(item, Mapping) and "text" in item:
        text = str(item["text"])
        export_default = _export_default(item)
    else:
        logger.warning(
            "Unsupported ingredient format, expected object with 'text': %r", item
        )
        text = str(item)
        export_default = True

    parsed = parse_ingredient(text, vocabulary)
    return NormalizedIngredient(
        **parsed.model_dump(exclude={"text"}),
        text=text,
        export_default=export_default,
    )


def _export_default(item: Mapping) -> bool:
    """Read the export flag, accepting both JSON and Python spellings."""
    for field in ("exportDefault", "export_default"):
        if field in item:
            return bool(item[field])
    return True
