"""Nutrition label extraction from Portuguese product descriptions."""

from __future__ import annotations

import html
import re
from dataclasses import asdict, dataclass

from ..normalize import to_float

_ENERGY = re.compile(r"Energia:\s*([\d,.]+)\s*kj\s*/\s*([\d,.]+)\s*kcal", re.I)

# One pattern per nutrient; sub-lines may be prefixed with "Dos quais"
_PATTERNS: dict[str, re.Pattern[str]] = {
    "fat": re.compile(r"L[ií]pidos:\s*([\d,.]+)\s*g", re.I),
    "saturated_fat": re.compile(r"(?:Dos quais )?saturados:\s*([\d,.]+)\s*g", re.I),
    "carbohydrates": re.compile(r"Hidratos de carbono:\s*([\d,.]+)\s*g", re.I),
    "sugars": re.compile(r"(?:Dos quais )?a[çc][úu]cares:\s*([\d,.]+)\s*g", re.I),
    "fiber": re.compile(r"Fibras?:\s*([\d,.]+)\s*g", re.I),
    "protein": re.compile(r"Prote[ií]nas?:\s*([\d,.]+)\s*g", re.I),
    "salt": re.compile(r"Sal:\s*([\d,.]+)\s*g", re.I),
}

_INGREDIENTS = re.compile(
    r"Ingredientes[:\s]*(.+?)(?:\Z|Alerg|Conservar|Pode conter)",
    re.I | re.S,
)

_BR_TAG = re.compile(r"<br\s*/?>", re.I)
_ANY_TAG = re.compile(r"<[^>]+>")
_WHITESPACE = re.compile(r"\s+")

_NUTRITION_MARKERS = ("Nutri", "Energia", "kcal")


@dataclass
class NutritionFacts:
    """Values per 100 g/ml as printed on the label. Energy in kJ/kcal, rest in g."""

    energy_kj: float | None = None
    energy_kcal: float | None = None
    fat: float | None = None
    saturated_fat: float | None = None
    carbohydrates: float | None = None
    sugars: float | None = None
    fiber: float | None = None
    protein: float | None = None
    salt: float | None = None
    ingredients: str | None = None

    @property
    def is_storable(self) -> bool:
        """True when the label yielded enough to be worth persisting."""
        return self.energy_kcal is not None or self.protein is not None

    def to_dict(self) -> dict:
        return asdict(self)


def html_to_text(raw: str) -> str:
    """Flatten an HTML fragment to a single line of plain text."""
    text = _BR_TAG.sub("\n", raw)
    text = _ANY_TAG.sub(" ", text)
    text = html.unescape(text)
    return _WHITESPACE.sub(" ", text).strip()


def parse_nutrition(raw: str | None) -> NutritionFacts:
    """Extract nutrition values and the ingredient list from a description.

    Never raises; fields that cannot be found stay None.
    """
    if not raw:
        return NutritionFacts()

    text = html_to_text(raw)
    facts = NutritionFacts(ingredients=_extract_ingredients(text))

    energy = _ENERGY.search(text)
    if energy:
        facts.energy_kj = to_float(energy.group(1))
        facts.energy_kcal = to_float(energy.group(2))

    for name, pattern in _PATTERNS.items():
        m = pattern.search(text)
        if m:
            setattr(facts, name, to_float(m.group(1)))

    return facts


def has_nutrition_data(raw: str | None) -> bool:
    """Check whether a description contains a nutrition section at all."""
    if not raw:
        return False
    text = html_to_text(raw)
    return any(marker in text for marker in _NUTRITION_MARKERS)


def _extract_ingredients(text: str) -> str | None:
    m = _INGREDIENTS.search(text)
    if not m:
        return None
    ingredients = _WHITESPACE.sub(" ", m.group(1).strip())
    ingredients = re.sub(r"\.$", "", ingredients).strip()
    return ingredients or None
