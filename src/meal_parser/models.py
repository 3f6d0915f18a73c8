"""Pydantic models shared by the parser, matcher, scaler and stores."""

import math
from datetime import datetime
from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

from .exceptions import NoCatalogMatch, ParseAmbiguity

MatchType = Literal["exact", "partial", "synonym", "llm", "fuzzy"]
NutrientCategory = Literal["macronutrient", "vitamin", "mineral", "other"]
NutrientBasis = Literal["per_100g", "per_serving"]


# ── Parsing ──────────────────────────────────────────────────────────


class ParsedMention(BaseModel):
    """A single food reference extracted from an utterance."""

    model_config = ConfigDict(frozen=True)

    raw_text: str = Field(description="Segment of the utterance this mention came from")
    food_name: str = Field(min_length=1, description="Cleaned food name")
    quantity: Optional[float] = Field(default=None, description="Parsed amount, if any")
    unit: Optional[str] = Field(default=None, description="Canonical unit, if any")
    cooking_method: Optional[str] = Field(default=None, description="Cooking method word, if any")
    confidence: float = Field(ge=0, le=1, description="Extraction confidence")

    @property
    def has_valid_quantity(self) -> bool:
        return self.quantity is not None and math.isfinite(self.quantity) and self.quantity > 0


class ParsedMessage(BaseModel):
    """All mentions of an utterance plus the context around them."""

    model_config = ConfigDict(frozen=True)

    original_text: str
    mentions: List[ParsedMention] = Field(default_factory=list)
    meal_context: Optional[str] = Field(default=None, description="breakfast, lunch, dinner or snack")
    time_context: Optional[str] = Field(default=None, description="e.g. 'this morning', 'yesterday'")
    confidence: float = Field(default=0.0, ge=0, le=1, description="Mean mention confidence")
    needs_clarification: bool = False
    clarification_prompts: List[str] = Field(default_factory=list)

    def raise_for_ambiguity(self) -> None:
        """Raise ParseAmbiguity if the message should be confirmed by the user."""
        if self.needs_clarification:
            raise ParseAmbiguity(self.clarification_prompts)


# ── Catalog ──────────────────────────────────────────────────────────


class NutrientVector(BaseModel):
    """Calories, macros and optional micronutrients for some amount of food.

    Macros are in grams, sodium and most minerals in mg, vitamin A and D in mcg.
    """

    model_config = ConfigDict(frozen=True)

    calories: float = Field(default=0.0, ge=0)
    protein: float = Field(default=0.0, ge=0)
    carbs: float = Field(default=0.0, ge=0)
    fat: float = Field(default=0.0, ge=0)
    fiber: float = Field(default=0.0, ge=0)
    sugar: float = Field(default=0.0, ge=0)
    sodium: float = Field(default=0.0, ge=0)
    calcium: Optional[float] = Field(default=None, ge=0)
    iron: Optional[float] = Field(default=None, ge=0)
    potassium: Optional[float] = Field(default=None, ge=0)
    vitamin_a: Optional[float] = Field(default=None, ge=0)
    vitamin_c: Optional[float] = Field(default=None, ge=0)
    vitamin_d: Optional[float] = Field(default=None, ge=0)

    def values(self) -> Dict[str, float]:
        """Fields that carry a value, in declaration order."""
        return {k: v for k, v in self.model_dump().items() if v is not None}

    def scaled(self, factor: float) -> "NutrientVector":
        """Multiply every present field by ``factor``."""
        return self.multiplied({k: factor for k in self.values()})

    def multiplied(self, factors: Dict[str, float]) -> "NutrientVector":
        """Multiply each present field by its own factor (missing factors count as 1)."""
        updated = {k: v * factors.get(k, 1.0) for k, v in self.values().items()}
        return self.model_copy(update=updated)


class CatalogFood(BaseModel):
    """A food entry owned by the catalog service."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    brand: Optional[str] = None
    category: Optional[str] = None
    serving_size: Optional[float] = Field(default=None, description="Grams in one serving")
    serving_unit: Optional[str] = Field(default=None, description="Household unit one serving is expressed in")
    nutrients: NutrientVector = Field(default_factory=NutrientVector)
    nutrient_basis: NutrientBasis = "per_100g"
    preparation_state: str = Field(default="raw", description="State the stored values describe")
    user_defined: bool = False
    portion_grams: Dict[str, float] = Field(
        default_factory=dict,
        description="Food-specific grams per canonical unit, e.g. {'slice': 30}",
    )

    @property
    def nutrients_per_100g(self) -> NutrientVector:
        """Stored nutrients expressed per 100 g.

        Per-serving values are converted with ``value * 100 / serving_size``;
        without a usable serving size they are returned unchanged.
        """
        if self.nutrient_basis == "per_100g":
            return self.nutrients
        if not self.serving_size or self.serving_size <= 0:
            return self.nutrients
        return self.nutrients.scaled(100.0 / self.serving_size)


# ── Matching ─────────────────────────────────────────────────────────


class MatchCandidate(BaseModel):
    model_config = ConfigDict(frozen=True)

    food: CatalogFood
    confidence: float = Field(ge=0, le=1)
    match_type: MatchType


class MatchResult(BaseModel):
    """Outcome of resolving one mention against the catalog."""

    model_config = ConfigDict(frozen=True)

    mention: ParsedMention
    candidates: List[MatchCandidate] = Field(default_factory=list)
    best_match: Optional[MatchCandidate] = None
    needs_disambiguation: bool = False
    suggestions: List[str] = Field(default_factory=list)
    stage: Optional[str] = Field(default=None, description="Cascade stage that produced the candidates")

    def require_best(self) -> MatchCandidate:
        """Return the best match or raise NoCatalogMatch."""
        if self.best_match is None:
            raise NoCatalogMatch(self.mention.food_name)
        return self.best_match


# ── Output ───────────────────────────────────────────────────────────


class NutrientInfo(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    amount: float = Field(ge=0)
    unit: str
    category: NutrientCategory
    daily_value: Optional[float] = None


class FoodItem(BaseModel):
    """Final, scaled record for one mention."""

    model_config = ConfigDict(frozen=True)

    name: str
    quantity: float
    unit: str
    grams: float = Field(ge=0)
    cooking_state: str
    calories: int = Field(ge=0)
    nutrients: List[NutrientInfo] = Field(default_factory=list)
    timestamp: datetime
    food_id: Optional[str] = None
    estimated: bool = Field(default=False, description="True when built from the coarse fallback estimate")
    confidence: float = Field(default=0.0, ge=0, le=1)

    def nutrient(self, nutrient_id: str) -> Optional[float]:
        """Amount of a nutrient by id, or None when absent."""
        for info in self.nutrients:
            if info.id == nutrient_id:
                return info.amount
        return None


class NutritionTotals(BaseModel):
    calories: int = 0
    nutrients: Dict[str, float] = Field(default_factory=dict)
    item_count: int = 0


class MealLog(BaseModel):
    """Everything produced for one utterance by the pipeline."""

    message: ParsedMessage
    matches: List[MatchResult] = Field(default_factory=list)
    items: List[FoodItem] = Field(default_factory=list)
    totals: NutritionTotals = Field(default_factory=NutritionTotals)
    stored: int = 0
