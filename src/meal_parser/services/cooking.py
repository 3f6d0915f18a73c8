"""
Cooking-adjustment table.

Per-state multipliers that turn a food's stored nutrient values into the
values for another preparation state (frying adds fat and calories,
boiling leaches vitamins, drying concentrates everything per gram).
"""

import logging
from types import MappingProxyType
from typing import Dict, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field

from ..models import NutrientVector

logger = logging.getLogger(__name__)

DEFAULT_STATE = "raw"


class CookingAdjustment(BaseModel):
    """Multipliers for one cooking state."""

    model_config = ConfigDict(frozen=True)

    calories: float = 1.0
    protein: float = 1.0
    carbs: float = 1.0
    fat: float = 1.0
    fiber: float = 1.0
    vitamins: float = Field(default=1.0, description="Water-soluble vitamins (C)")
    vitamin_a: float = Field(default=1.0, description="Fat-soluble vitamin A")
    vitamin_d: float = Field(default=1.0, description="Vitamin D, heat stable")
    minerals: float = 1.0
    sugar: float = 1.0
    sodium: float = 1.0
    description: str = Field(default="", description="Short human-readable note")

    def factors(self) -> Dict[str, float]:
        """Multiplier for every NutrientVector field."""
        return {field: getattr(self, column) for field, column in NUTRIENT_COLUMNS.items()}

    @property
    def is_identity(self) -> bool:
        return all(value == 1.0 for value in self.factors().values())


# NutrientVector field -> multiplier column
NUTRIENT_COLUMNS: Mapping[str, str] = MappingProxyType({
    "calories": "calories",
    "protein": "protein",
    "carbs": "carbs",
    "fat": "fat",
    "fiber": "fiber",
    "sugar": "sugar",
    "sodium": "sodium",
    "calcium": "minerals",
    "iron": "minerals",
    "potassium": "minerals",
    "vitamin_a": "vitamin_a",
    "vitamin_c": "vitamins",
    "vitamin_d": "vitamin_d",
})

COOKING_ADJUSTMENTS: Mapping[str, CookingAdjustment] = MappingProxyType({
    "raw": CookingAdjustment(description="Uncooked, nutrients as stored"),
    "fresh": CookingAdjustment(description="Fresh, nutrients as stored"),
    "cooked": CookingAdjustment(
        fiber=0.9, vitamins=0.85, vitamin_a=0.95, minerals=0.95,
        description="Generic cooking, slight vitamin loss",
    ),
    "boiled": CookingAdjustment(
        protein=0.95, carbs=1.1, fiber=0.8, vitamins=0.7, vitamin_a=0.9, minerals=0.85,
        description="Water-soluble vitamins and minerals leach into the water",
    ),
    "steamed": CookingAdjustment(
        protein=0.98, carbs=1.05, fiber=0.9, vitamins=0.9, vitamin_a=0.95, minerals=0.95,
        description="Gentle cooking, good nutrient retention",
    ),
    "fried": CookingAdjustment(
        calories=1.3, protein=0.95, fat=1.5, fiber=0.85, vitamins=0.8, vitamin_a=1.05,
        minerals=0.9,
        description="Absorbs cooking oil, adds fat and calories",
    ),
    "pan-fried": CookingAdjustment(
        calories=1.25, protein=0.95, fat=1.4, fiber=0.85, vitamins=0.8, vitamin_a=1.05,
        minerals=0.9,
        description="Less oil than deep frying",
    ),
    "baked": CookingAdjustment(
        calories=1.05, protein=0.95, fiber=0.9, vitamins=0.85, vitamin_a=0.95, minerals=0.95,
        description="Dry heat, slight moisture loss",
    ),
    "grilled": CookingAdjustment(
        calories=0.95, protein=0.9, fat=0.85, fiber=0.9, vitamins=0.8, vitamin_a=0.9,
        minerals=0.9,
        description="Fat drips away",
    ),
    "roasted": CookingAdjustment(
        protein=0.95, fat=0.9, fiber=0.85, vitamins=0.8, vitamin_a=0.95, minerals=0.9,
        description="Dry heat, some fat rendered",
    ),
    # Cooking leaves sugar and sodium per gram unchanged; drying concentrates them
    "dried": CookingAdjustment(
        calories=3.5, protein=3.5, carbs=3.5, fat=3.5, fiber=3.0, vitamins=0.6, minerals=3.5,
        sugar=3.5, sodium=3.5,
        description="Water removed, nutrients concentrated per gram",
    ),
    "smoked": CookingAdjustment(
        calories=1.1, protein=0.95, fat=0.9, fiber=0.9, vitamins=0.7, minerals=0.85,
        description="Slow smoke, some vitamin loss",
    ),
    "fermented": CookingAdjustment(
        carbs=0.9, fiber=0.9, vitamins=1.1,
        description="Microbes consume some sugars and produce B vitamins",
    ),
    "processed": CookingAdjustment(
        calories=1.1, protein=0.9, fat=1.1, fiber=0.8, vitamins=0.7, minerals=0.8,
        description="Industrial processing",
    ),
})

# Cooking words the parser recognizes that share a row with another state
METHOD_ALIASES: Mapping[str, str] = MappingProxyType({
    "deep-fried": "fried",
    "sautéed": "pan-fried",
    "sauteed": "pan-fried",
    "broiled": "grilled",
    "toasted": "baked",
    "microwaved": "cooked",
    "pickled": "fermented",
})


class CookingTable:
    """Lookup and application of cooking adjustments."""

    def __init__(
        self,
        adjustments: Mapping[str, CookingAdjustment] = COOKING_ADJUSTMENTS,
        aliases: Mapping[str, str] = METHOD_ALIASES,
    ):
        self._adjustments = adjustments
        self._aliases = aliases

    def resolve(self, state: Optional[str]) -> str:
        """Canonical state for a cooking word; unknown words resolve to raw."""
        if not state:
            return DEFAULT_STATE
        key = state.strip().lower()
        key = self._aliases.get(key, key)
        if key not in self._adjustments:
            logger.debug(f"Unknown cooking state '{state}' — using {DEFAULT_STATE}")
            return DEFAULT_STATE
        return key

    def apply(
        self,
        vector: NutrientVector,
        state: Optional[str],
        native_state: Optional[str] = None,
    ) -> NutrientVector:
        """
        Adjust a nutrient vector for a cooking state.

        Args:
            vector: Nutrients as stored.
            state: Requested cooking state.
            native_state: State the stored values already describe. When it
                resolves to the requested state nothing is changed.

        Returns:
            The adjusted vector.
        """
        resolved = self.resolve(state)
        if native_state is not None and self.resolve(native_state) == resolved:
            return vector
        adjustment = self._adjustments[resolved]
        if adjustment.is_identity:
            return vector
        return vector.multiplied(adjustment.factors())
