"""
Unit and quantity normalization.

Maps quantity words ("a", "two", "half") and unit spellings ("grams",
"cups", "tbsp") to canonical values, and converts a (quantity, unit) pair
into grams for a given food.

Gram resolution, most specific rule first:
1. The food's own declared serving (user-defined foods, or "serving" units)
2. Direct weight/volume conversion (g, kg, oz, lb, ml, l, fl oz)
3. The catalog entry's own portion weights
4. Built-in food-specific portion weights
5. Generic per-unit defaults (piece, slice, cup, ...)
6. Unknown unit: one generic serving per unit
"""

import logging
import math
import re
from fractions import Fraction
from types import MappingProxyType
from typing import Mapping, Optional

from ..constants import DEFAULT_UNIT_GRAMS
from ..exceptions import InvalidQuantity
from ..models import CatalogFood

logger = logging.getLogger(__name__)

# ═══════════════════════════════════════════════════════════════════
# QUANTITY WORDS
# ═══════════════════════════════════════════════════════════════════

QUANTITY_WORDS: Mapping[str, float] = MappingProxyType({
    "a": 1, "an": 1, "one": 1, "single": 1,
    "two": 2, "three": 3, "four": 4, "five": 5,
    "six": 6, "seven": 7, "eight": 8, "nine": 9, "ten": 10,
    "couple": 2, "few": 3, "several": 4, "many": 6,
    "half": 0.5, "quarter": 0.25, "third": 0.33,
})

# ═══════════════════════════════════════════════════════════════════
# UNIT NORMALIZATION
# ═══════════════════════════════════════════════════════════════════

UNIT_ALIASES: Mapping[str, str] = MappingProxyType({
    # Weight
    "g": "g", "gr": "g", "gm": "g", "gram": "g", "grams": "g", "gramme": "g", "grammes": "g",
    "kg": "kg", "kgs": "kg", "kilo": "kg", "kilos": "kg", "kilogram": "kg", "kilograms": "kg",
    "oz": "oz", "ounce": "oz", "ounces": "oz",
    "lb": "lb", "lbs": "lb", "pound": "lb", "pounds": "lb",
    # Volume
    "ml": "ml", "milliliter": "ml", "milliliters": "ml", "millilitre": "ml", "millilitres": "ml",
    "l": "l", "liter": "l", "liters": "l", "litre": "l", "litres": "l",
    "fl oz": "fl oz", "floz": "fl oz",
    "cup": "cup", "cups": "cup",
    "tsp": "tsp", "teaspoon": "tsp", "teaspoons": "tsp",
    "tbsp": "tbsp", "tbs": "tbsp", "tablespoon": "tbsp", "tablespoons": "tbsp",
    "glass": "glass", "glasses": "glass",
    # Household
    "piece": "piece", "pieces": "piece", "pc": "piece", "pcs": "piece",
    "slice": "slice", "slices": "slice",
    "serving": "serving", "servings": "serving",
    "portion": "portion", "portions": "portion",
    "bowl": "bowl", "bowls": "bowl",
    "plate": "plate", "plates": "plate",
})

# Units that convert to grams without knowing the food (water density for volume)
DIRECT_UNIT_GRAMS: Mapping[str, float] = MappingProxyType({
    "g": 1.0,
    "kg": 1000.0,
    "oz": 28.35,
    "lb": 453.59,
    "ml": 1.0,
    "l": 1000.0,
    "fl oz": 29.57,
})

# Grams per unit for specific foods, keyed by food word
FOOD_PORTION_GRAMS: Mapping[str, Mapping[str, float]] = MappingProxyType({
    "apple": MappingProxyType({"piece": 182.0, "slice": 15.0}),
    "banana": MappingProxyType({"piece": 118.0}),
    "egg": MappingProxyType({"piece": 50.0}),
    "eggs": MappingProxyType({"piece": 50.0}),
    "rice": MappingProxyType({"cup": 185.0}),
    "pasta": MappingProxyType({"cup": 220.0}),
    "milk": MappingProxyType({"cup": 240.0}),
    "cheese": MappingProxyType({"slice": 28.0, "cup": 113.0}),
    "chicken": MappingProxyType({"piece": 85.0}),
    "broccoli": MappingProxyType({"cup": 91.0}),
    "spinach": MappingProxyType({"cup": 30.0}),
})

# Upper bound for one logged amount (100 kg)
MAX_PORTION_GRAMS = 100_000.0

_NUMBER_RE = re.compile(r"^(\d+)\s*/\s*(\d+)$|^\d+(?:\.\d+)?$")


def parse_number(token: str) -> Optional[float]:
    """
    Parse a numeral or fraction ("2", "1.5", "1/2").

    Returns:
        The value, or None if the token is not numeric.
    """
    token = token.strip()
    match = _NUMBER_RE.match(token)
    if not match:
        return None
    if match.group(1) is not None:
        denominator = int(match.group(2))
        if denominator == 0:
            return None
        return float(Fraction(int(match.group(1)), denominator))
    return float(token)


def _singular(word: str) -> str:
    if word.endswith("es") and word[:-2].endswith(("s", "x", "ch", "sh")):
        return word[:-2]
    if word.endswith("s") and not word.endswith("ss") and len(word) > 2:
        return word[:-1]
    return word


class UnitTable:
    """Read-only unit tables plus the gram conversion built on them."""

    def __init__(
        self,
        unit_grams: Optional[Mapping[str, float]] = None,
        food_portions: Optional[Mapping[str, Mapping[str, float]]] = None,
        aliases: Mapping[str, str] = UNIT_ALIASES,
        quantity_words: Mapping[str, float] = QUANTITY_WORDS,
        max_grams: float = MAX_PORTION_GRAMS,
    ):
        """
        Args:
            unit_grams: Generic grams per household unit.
            food_portions: Food-specific grams per unit, keyed by food word.
            aliases: Unit spelling -> canonical unit.
            quantity_words: Quantity word -> numeric value.
            max_grams: Largest gram amount to_grams accepts.
        """
        self.unit_grams = MappingProxyType(dict(unit_grams or DEFAULT_UNIT_GRAMS))
        self.food_portions = food_portions if food_portions is not None else FOOD_PORTION_GRAMS
        self.aliases = aliases
        self.quantity_words = quantity_words
        self.max_grams = max_grams
        # Longest keys first so "brown rice" style keys win over "rice"
        self._portion_keys = sorted(self.food_portions, key=len, reverse=True)

    def canonical_unit(self, word: Optional[str]) -> Optional[str]:
        if not word:
            return None
        key = re.sub(r"\s+", " ", word.strip().lower().rstrip("."))
        return self.aliases.get(key)

    def quantity_value(self, word: str) -> Optional[float]:
        """Numeric value of a numeral or quantity word."""
        number = parse_number(word)
        if number is not None:
            return number
        value = self.quantity_words.get(word.strip().lower())
        return float(value) if value is not None else None

    def is_direct(self, unit: str) -> bool:
        return unit in DIRECT_UNIT_GRAMS

    def food_portion_grams(self, food_name: str, unit: str) -> Optional[float]:
        """Built-in grams per unit for a food, matched on whole words."""
        name = food_name.lower()
        for key in self._portion_keys:
            if re.search(rf"\b{re.escape(key)}\b", name):
                grams = self.food_portions[key].get(unit)
                if grams is not None:
                    return grams
        return None

    def serving_unit_matches(self, food: CatalogFood, unit: str) -> bool:
        """Whether ``unit`` names the food's own serving unit (singular or plural)."""
        if not food.serving_unit:
            return False
        declared = food.serving_unit.strip().lower()
        canonical = self.canonical_unit(declared) or _singular(declared)
        return canonical == unit or _singular(declared) == _singular(unit)

    def to_grams(
        self,
        quantity: float,
        unit: str,
        food: Optional[CatalogFood] = None,
        food_name: Optional[str] = None,
    ) -> float:
        """
        Convert a quantity of a unit into grams.

        Args:
            quantity: Amount in ``unit``. Must be greater than zero.
            unit: Canonical or raw unit spelling.
            food: Matched catalog entry, if any.
            food_name: Name used for food-specific portions when there is no entry.

        Returns:
            Grams.

        Raises:
            InvalidQuantity: If quantity is zero, negative or not finite, or
                the result exceeds ``max_grams``.
        """
        if quantity is None or not math.isfinite(quantity) or quantity <= 0:
            raise InvalidQuantity(quantity)

        grams = self._grams(quantity, unit, food, food_name)
        if not math.isfinite(grams) or grams > self.max_grams:
            raise InvalidQuantity(quantity, reason=f"exceeds {self.max_grams:g}g")
        return grams

    def _grams(
        self,
        quantity: float,
        unit: str,
        food: Optional[CatalogFood],
        food_name: Optional[str],
    ) -> float:
        unit = self.canonical_unit(unit) or unit.strip().lower()
        name = food.name if food is not None else (food_name or "")

        # 1. Food's own serving
        if food is not None and food.serving_size and food.serving_size > 0:
            if unit in ("serving", "portion"):
                return quantity * food.serving_size
            if food.user_defined and not self.is_direct(unit) and self.serving_unit_matches(food, unit):
                return quantity * food.serving_size

        # 2. Weight / volume
        if unit in DIRECT_UNIT_GRAMS:
            return quantity * DIRECT_UNIT_GRAMS[unit]

        # 3. Catalog portion weights
        if food is not None and unit in food.portion_grams:
            return quantity * food.portion_grams[unit]

        # 4. Built-in food-specific portions
        if name:
            grams = self.food_portion_grams(name, unit)
            if grams is not None:
                return quantity * grams

        # 5. Generic defaults
        if unit in self.unit_grams:
            return quantity * self.unit_grams[unit]

        # 6. Unknown unit
        serving = self.unit_grams.get("serving", 100.0)
        logger.warning(f"Unknown unit '{unit}' for '{name}' — assuming {serving}g per unit")
        return quantity * serving
