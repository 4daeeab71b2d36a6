"""Nutrition label parsing for product descriptions."""

from .parser import NutritionFacts, has_nutrition_data, html_to_text, parse_nutrition

__all__ = [
    "NutritionFacts",
    "has_nutrition_data",
    "html_to_text",
    "parse_nutrition",
]
