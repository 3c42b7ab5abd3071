"""Ingredient line parsing with locale-specific unit vocabularies."""

import logging
import re
from dataclasses import dataclass
from functools import lru_cache

from recipebox.models import ParsedIngredient

logger = logging.getLogger(__name__)

_NUMBER = r"([0-9]+(?:\.[0-9]+)?)"


@dataclass(frozen=True)
class UnitVocabulary:
    """Unit tokens and filler words of one language.

    ``units`` follow a number ("500 g flour"), ``descriptive`` words stand on
    their own and mean "one of these" ("pinch of salt"). Lines with a bare
    number get ``piece`` as their unit.
    """

    name: str
    units: tuple[str, ...]
    descriptive: tuple[str, ...]
    piece: str
    articles: tuple[str, ...] = ()
    connector: str | None = None


ENGLISH = UnitVocabulary(
    name="en",
    units=(
        "g", "gram", "grams", "kg", "kilogram", "kilograms", "mg",
        "ml", "l", "dl", "cl", "liter", "liters", "litre", "litres",
        "oz", "ounce", "ounces", "lb", "lbs", "pound", "pounds",
        "tsp", "tsps", "teaspoon", "teaspoons",
        "tbsp", "tbsps", "tablespoon", "tablespoons",
        "cup", "cups", "pint", "pints", "quart", "quarts", "gallon", "gallons",
        "clove", "cloves", "can", "cans", "slice", "slices",
        "stick", "sticks", "piece", "pieces", "pinch", "pinches", "dash", "dashes",
    ),
    descriptive=("pinch", "dash", "handful", "cup", "splash", "sprig", "bunch", "knob"),
    piece="piece",
    articles=("a", "an"),
    connector="of",
)

CZECH = UnitVocabulary(
    name="cs",
    units=(
        "g", "kg", "ml", "l", "dl", "ks",
        "lžíce", "lžička", "lžic", "lžiček",
        "stroužky", "stroužek", "stroužků",
        "špetka", "špetek", "hrnek", "hrnků",
        "šálek", "šálků", "sklenice", "sklenic",
    ),
    descriptive=("špetka", "hrnek", "šálek", "lžíce", "lžička", "sklenice"),
    piece="ks",
)

_VOCABULARIES = {v.name: v for v in (ENGLISH, CZECH)}


def vocabulary_for(locale: str) -> UnitVocabulary:
    """Return the unit vocabulary registered for ``locale``."""
    try:
        return _VOCABULARIES[locale]
    except KeyError:
        raise ValueError(f"Unknown ingredient locale: {locale!r}") from None


def _alternation(words: tuple[str, ...]) -> str:
    # Longest first so "tbsps" wins over "tbsp" when both could match.
    return "|".join(re.escape(w) for w in sorted(words, key=len, reverse=True))


@lru_cache
def _patterns(vocabulary: UnitVocabulary) -> tuple[re.Pattern, re.Pattern, re.Pattern]:
    article = ""
    if vocabulary.articles:
        article = rf"(?:(?:{_alternation(vocabulary.articles)})\s+)?"
    connector = ""
    if vocabulary.connector:
        connector = rf"(?:{re.escape(vocabulary.connector)}\s+)?"

    with_unit = re.compile(
        rf"^{_NUMBER}\s+({_alternation(vocabulary.units)})\s+{connector}(.+)$",
        re.IGNORECASE,
    )
    descriptive = re.compile(
        rf"^{article}({_alternation(vocabulary.descriptive)})\s+{connector}(.+)$",
        re.IGNORECASE,
    )
    bare_number = re.compile(rf"^{_NUMBER}\s+(.+)$")
    return with_unit, descriptive, bare_number


def parse_ingredient(text: str, vocabulary: UnitVocabulary = ENGLISH) -> ParsedIngredient:
    """Split an ingredient line into amount, unit and ingredient name.

    Rules are tried in order: number + known unit, descriptive amount word,
    bare number. Anything else comes back with no amount and the whole line
    as the ingredient name.
    """
    text = text.strip()
    with_unit, descriptive, bare_number = _patterns(vocabulary)

    match = with_unit.match(text)
    if match:
        return ParsedIngredient(
            text=text,
            amount=float(match.group(1)),
            unit=match.group(2).lower(),
            ingredient_name=match.group(3).strip(),
        )

    match = descriptive.match(text)
    if match:
        return ParsedIngredient(
            text=text,
            amount=1,
            unit=match.group(1).lower(),
            ingredient_name=match.group(2).strip(),
        )

    match = bare_number.match(text)
    if match:
        return ParsedIngredient(
            text=text,
            amount=float(match.group(1)),
            unit=vocabulary.piece,
            ingredient_name=match.group(2).strip(),
        )

    logger.debug("No amount found in ingredient: %s", text)
    return ParsedIngredient(text=text, ingredient_name=text)
