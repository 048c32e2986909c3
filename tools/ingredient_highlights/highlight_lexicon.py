#!/usr/bin/env python3
"""Static lookup tables for ingredient highlighting.

Everything here is built once at import time and exposed read-only.
"""

from __future__ import annotations

from types import MappingProxyType
from typing import Dict, FrozenSet, Mapping, Tuple

FRACTION_MAP: Mapping[str, str] = MappingProxyType(
    {
        "¼": "1/4",
        "½": "1/2",
        "¾": "3/4",
        "⅓": "1/3",
        "⅔": "2/3",
        "⅛": "1/8",
        "⅜": "3/8",
        "⅝": "5/8",
        "⅞": "7/8",
    }
)

_UNIT_ALIAS_TERMS: Tuple[str, ...] = (
    "teaspoon",
    "teaspoons",
    "tsp",
    "tsps",
    "tablespoon",
    "tablespoons",
    "tbsp",
    "tbsps",
    "fluid ounce",
    "fluid ounces",
    "fl oz",
    "floz",
    "fl. oz",
    "cup",
    "cups",
    "pint",
    "pints",
    "pt",
    "pts",
    "quart",
    "quarts",
    "qt",
    "qts",
    "gallon",
    "gallons",
    "gal",
    "gals",
    "ounce",
    "ounces",
    "oz",
    "ozs",
    "pound",
    "pounds",
    "lb",
    "lbs",
    "stick",
    "sticks",
    "g",
    "gram",
    "grams",
    "gramme",
    "grammes",
    "kg",
    "kgs",
    "kilogram",
    "kilograms",
    "ml",
    "mls",
    "milliliter",
    "milliliters",
    "millilitre",
    "millilitres",
    "l",
    "liter",
    "liters",
    "litre",
    "litres",
    "pinch",
    "pinches",
    "dash",
    "dashes",
    "bunch",
    "bunches",
    "can",
    "cans",
    "package",
    "packages",
    "piece",
    "pieces",
)


def _unit_token(alias: str) -> str:
    # "fl. oz" -> "fl  oz"; punctuation is matched as whitespace later on.
    return "".join(char if char.isalnum() or char.isspace() else " " for char in alias.lower()).strip()


# Longest first so "fl oz" is stripped before "oz".
UNIT_TOKENS: Tuple[str, ...] = tuple(
    sorted(
        {_unit_token(alias) for alias in _UNIT_ALIAS_TERMS if _unit_token(alias)},
        key=lambda alias: (-len(alias), alias),
    )
)

SEASONING_TOKENS: FrozenSet[str] = frozenset({"salt", "pepper"})

PREP_WORDS: FrozenSet[str] = frozenset(
    {
        "chopped",
        "sliced",
        "diced",
        "minced",
        "grated",
        "peeled",
        "shelled",
        "shucked",
        "deveined",
        "pitted",
        "seeded",
        "cored",
        "zested",
        "crushed",
        "finely",
        "roughly",
        "coarsely",
        "thinly",
        "thickly",
        "fresh",
        "dried",
        "ground",
        "whole",
        "large",
        "medium",
        "small",
        "extra",
        "virgin",
        "boneless",
        "skinless",
        "unsalted",
        "salted",
        "cold",
        "hot",
        "warm",
        "melted",
        "room",
        "temperature",
        "softened",
        "beaten",
        "whisked",
        "sifted",
        "divided",
        "separated",
        "optional",
        "garnish",
        "needed",
        "removed",
        "reserved",
        "drained",
        "rinsed",
        "cleaned",
        "trimmed",
        "halved",
        "quartered",
        "cubed",
        "chunks",
        "strips",
        "wedges",
        "scrubbed",
        "washed",
        "bruised",
        "leaves",
        "only",
        "shell",
        "shells",
        "skin",
        "skins",
        "bone",
        "bones",
        "seed",
        "seeds",
        "stem",
        "stems",
        "tail",
        "tails",
        "extract",
        "granulated",
        "powdered",
        "icing",
        "superfine",
        "plain",
        "all-purpose",
        "cooled",
        "cool",
        "chilled",
        "refrigerated",
        "leftover",
        "leftovers",
        "half",
        "halves",
        "third",
        "thirds",
        "plus",
        "more",
    }
)

STOP_WORDS: FrozenSet[str] = frozenset(
    {"and", "or", "the", "a", "an", "of", "in", "with", "for", "to", "from", "into", "as"}
)

HEAD_NOUN_IGNORE_WORDS: FrozenSet[str] = PREP_WORDS | STOP_WORDS | frozenset({"into", "onto", "over", "under"})

# Values are looked up in both directions by the matcher: a step token's
# variants are compared against ingredient tokens, and an ingredient token's
# variants against step tokens.
_SYNONYMS: Dict[str, Tuple[str, ...]] = {
    "bacon": ("lardon", "lardons", "pancetta"),
    "scallop": ("scallops",),
    "potato": ("potatoes", "spud", "spuds"),
    "butter": ("butters", "ghee"),
    "milk": ("dairy",),
    "sage": ("herb", "herbs"),
    "garlic": ("garlics", "clove", "cloves"),
    "onion": ("onions", "shallot", "shallots", "scallion", "scallions", "spring", "green"),
    "tomato": ("tomatoes",),
    "oil": ("olive", "oil"),
    "shrimp": ("prawn", "prawns"),
    "prawn": ("shrimp", "shrimps"),
    "cilantro": ("coriander",),
    "coriander": ("cilantro",),
    "zucchini": ("courgette", "courgettes"),
    "courgette": ("zucchini", "zucchinis"),
    "eggplant": ("aubergine", "aubergines"),
    "aubergine": ("eggplant", "eggplants"),
    "pepper": ("bell", "capsicum", "capsicums"),
    "arugula": ("rocket",),
    "rocket": ("arugula",),
    "yogurt": ("yoghurt", "yogurt"),
    "yoghurt": ("yogurt",),
    "chilli": ("chili", "chilies", "chillies", "chile"),
    "chili": ("chilli", "chilies", "chillies", "chile"),
    "sugar": ("caster", "powdered", "icing", "confectioners"),
    "corn": ("sweetcorn", "kernels"),
    "bicarbonate": ("baking", "soda", "bicarb"),
    "soda": ("bicarbonate",),
    "salt": ("salted",),
    "salmon": ("fillet", "filet"),
    "noodle": ("noodles", "udon", "ramen", "spaghetti"),
    "crisp": ("crisps",),
}

SYNONYM_MAP: Mapping[str, Tuple[str, ...]] = MappingProxyType(dict(_SYNONYMS))

GENERIC_INGREDIENT_SECTIONS: FrozenSet[str] = frozenset(
    {
        "ingredient",
        "ingredients",
        "shopping list",
        "what you'll need",
        "you will need",
    }
)

GENERIC_INSTRUCTION_SECTIONS: FrozenSet[str] = frozenset(
    {
        "instruction",
        "instructions",
        "direction",
        "directions",
        "method",
        "step",
        "steps",
        "preparation",
    }
)
