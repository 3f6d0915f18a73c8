"""
meal_parser package: turn free-form meal descriptions into matched,
nutrient-scaled food records.
"""

from .constants import Settings, load_settings
from .exceptions import CatalogUnavailable, InvalidQuantity, MealParserError, NoCatalogMatch, ParseAmbiguity
from .models import CatalogFood, FoodItem, MatchResult, MealLog, ParsedMention, ParsedMessage
from .pipeline import MealLogger

__all__ = [
    "CatalogFood",
    "CatalogUnavailable",
    "FoodItem",
    "InvalidQuantity",
    "MatchResult",
    "MealLog",
    "MealLogger",
    "MealParserError",
    "NoCatalogMatch",
    "ParseAmbiguity",
    "ParsedMention",
    "ParsedMessage",
    "Settings",
    "load_settings",
]
