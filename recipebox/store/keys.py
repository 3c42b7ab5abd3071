"""Cache keys and remote filenames for recipe documents."""

import re
import unicodedata

JSON_SUFFIX = ".json"


def recipe_key(name_or_filename: str) -> str:
    """Derive the cache key of a recipe from its name or its filename.

    "Guláš" and "gulas.json" both map to "gulas"; "Gulas_Polevka.json" maps
    to "gulas-polevka".
    """
    text = name_or_filename.lower()
    if text.endswith(JSON_SUFFIX):
        text = text[: -len(JSON_SUFFIX)]
    decomposed = unicodedata.normalize("NFD", text)
    text = "".join(c for c in decomposed if not unicodedata.combining(c))
    text = re.sub(r"[^a-z0-9\s_-]", "", text)
    text = re.sub(r"[\s_]+", "-", text)
    text = re.sub(r"-+", "-", text)
    return text.strip("-")


def recipe_filename(key: str) -> str:
    return f"{recipe_key(key)}{JSON_SUFFIX}"
