"""Parsing, matching and scaling services."""

from .catalog import FoodCatalog, InMemoryFoodCatalog, JsonFoodCatalog, RestFoodCatalog
from .cooking import CookingTable
from .entry_store import EntryStore, InMemoryEntryStore, JsonEntryStore
from .food_matcher import FoodMatcher
from .nutrient_scaler import NutrientScaler
from .units import UnitTable
from .utterance_parser import UtteranceParser

__all__ = [
    "CookingTable",
    "EntryStore",
    "FoodCatalog",
    "FoodMatcher",
    "InMemoryEntryStore",
    "InMemoryFoodCatalog",
    "JsonEntryStore",
    "JsonFoodCatalog",
    "NutrientScaler",
    "RestFoodCatalog",
    "UnitTable",
    "UtteranceParser",
]
