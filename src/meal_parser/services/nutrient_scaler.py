"""
Nutrient scaler.

Turns a mention and its match into a FoodItem with absolute nutrients:

1. Resolve grams from quantity/unit (UnitTable)
2. Scale the food's per-100g vector by grams / 100
3. Apply the cooking adjustment unless the requested state is the food's
   own preparation state
4. Without a match, estimate from calories alone with fixed macro ratios
5. Round: calories to an integer, everything else to one decimal

scale() never raises: every branch has a numeric fallback.
"""

import logging
from datetime import datetime, timezone
from typing import Callable, List, Optional, Tuple

from ..constants import Settings
from ..exceptions import InvalidQuantity
from ..models import CatalogFood, FoodItem, MatchResult, NutrientInfo, NutrientVector, ParsedMention
from .cooking import CookingTable
from .rounding import round_to_integer, round_to_one_decimal
from .units import UnitTable

logger = logging.getLogger(__name__)

DEFAULT_PORTION_GRAMS = 100.0

# Share of calories per nutrient for the coarse estimate, and kcal per gram
_ESTIMATE_RATIOS = {
    "protein": (0.10, 4.0),
    "carbs": (0.50, 4.0),
    "fat": (0.30, 9.0),
    "fiber": (0.05, 4.0),
    "sugar": (0.20, 4.0),
}
_ESTIMATE_SODIUM_MG_PER_KCAL = 0.01

# field -> (display name, unit, category, daily value)
NUTRIENT_DEFINITIONS = {
    "protein": ("Protein", "g", "macronutrient", 50.0),
    "carbs": ("Carbohydrates", "g", "macronutrient", 275.0),
    "fat": ("Fat", "g", "macronutrient", 78.0),
    "fiber": ("Fiber", "g", "macronutrient", 28.0),
    "sugar": ("Sugar", "g", "macronutrient", 50.0),
    "sodium": ("Sodium", "mg", "mineral", 2300.0),
    "calcium": ("Calcium", "mg", "mineral", 1000.0),
    "iron": ("Iron", "mg", "mineral", 18.0),
    "potassium": ("Potassium", "mg", "mineral", 4700.0),
    "vitamin_a": ("Vitamin A", "mcg", "vitamin", 900.0),
    "vitamin_c": ("Vitamin C", "mg", "vitamin", 90.0),
    "vitamin_d": ("Vitamin D", "mcg", "vitamin", 20.0),
}


class NutrientScaler:
    """Deterministic nutrient scaling for matched and unmatched mentions."""

    def __init__(
        self,
        units: Optional[UnitTable] = None,
        cooking: Optional[CookingTable] = None,
        settings: Optional[Settings] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self._settings = settings or Settings()
        self._units = units or UnitTable(unit_grams=self._settings.unit_grams)
        self._cooking = cooking or CookingTable()
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def scale(
        self,
        mention: ParsedMention,
        match: MatchResult,
        cooking_state: Optional[str] = None,
    ) -> FoodItem:
        """
        Build the FoodItem for a mention.

        Args:
            mention: Parsed mention.
            match: Matcher output for the mention.
            cooking_state: Requested state. Defaults to the mention's cooking
                method, then the food's own state, then raw.

        Returns:
            The scaled FoodItem.
        """
        food = match.best_match.food if match.best_match else None
        requested = cooking_state or mention.cooking_method
        if requested is None:
            requested = food.preparation_state if food is not None else None
        state = self._cooking.resolve(requested)

        grams, quantity, unit = self.resolve_amount(mention, food)

        if food is not None:
            vector = food.nutrients_per_100g.scaled(grams / 100.0)
            vector = self._cooking.apply(vector, state, native_state=food.preparation_state)
        else:
            vector = self.estimate(grams)
            vector = self._cooking.apply(vector, state)
            logger.info(
                f"No match for '{mention.food_name}' — estimated {vector.calories:.0f} kcal "
                f"for {grams:g}g"
            )

        confidence = mention.confidence
        if match.best_match is not None:
            confidence = min(confidence, match.best_match.confidence)

        return FoodItem(
            name=food.name if food is not None else mention.food_name,
            quantity=quantity,
            unit=unit,
            grams=round_to_one_decimal(grams),
            cooking_state=state,
            calories=round_to_integer(vector.calories),
            nutrients=self.nutrient_infos(vector),
            timestamp=self._clock(),
            food_id=food.id if food is not None else None,
            estimated=food is None,
            confidence=confidence,
        )

    def scale_all(self, matches: List[MatchResult]) -> List[FoodItem]:
        """Scale every match with its mention's own cooking method."""
        return [self.scale(m.mention, m) for m in matches]

    # ------------------------------------------------------------------
    # Steps
    # ------------------------------------------------------------------

    def resolve_amount(
        self, mention: ParsedMention, food: Optional[CatalogFood]
    ) -> Tuple[float, float, str]:
        """
        Grams for a mention, plus the quantity and unit actually used.

        A missing or unusable quantity falls back to one declared serving
        of a user-defined food, or 100 g.
        """
        if mention.quantity is not None:
            unit = mention.unit or "piece"
            try:
                grams = self._units.to_grams(
                    mention.quantity, unit, food=food, food_name=mention.food_name
                )
                return grams, mention.quantity, unit
            except InvalidQuantity as e:
                logger.warning(f"{e} for '{mention.food_name}' — using the default portion")

        if food is not None and food.user_defined and food.serving_size and food.serving_size > 0:
            return food.serving_size, 1.0, food.serving_unit or "serving"
        return DEFAULT_PORTION_GRAMS, DEFAULT_PORTION_GRAMS, "g"

    def estimate(self, grams: float) -> NutrientVector:
        """Coarse nutrients for an unknown food, from a flat kcal-per-100 heuristic."""
        calories = self._settings.fallback_kcal_per_100 * grams / 100.0
        values = {
            field: calories * share / kcal_per_gram
            for field, (share, kcal_per_gram) in _ESTIMATE_RATIOS.items()
        }
        return NutrientVector(
            calories=calories,
            sodium=calories * _ESTIMATE_SODIUM_MG_PER_KCAL,
            **values,
        )

    @staticmethod
    def nutrient_infos(vector: NutrientVector) -> List[NutrientInfo]:
        """Rounded NutrientInfo list, in a fixed order, for every present field."""
        values = vector.values()
        infos = []
        for field, (name, unit, category, daily_value) in NUTRIENT_DEFINITIONS.items():
            if field not in values:
                continue
            infos.append(
                NutrientInfo(
                    id=field,
                    name=name,
                    amount=round_to_one_decimal(values[field]),
                    unit=unit,
                    category=category,
                    daily_value=daily_value,
                )
            )
        return infos
