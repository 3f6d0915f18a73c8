"""Totals across logged food items."""

from typing import Dict, Iterable

from ..models import FoodItem, NutritionTotals
from .rounding import round_to_integer, round_to_one_decimal


def calculate_total_nutrition(items: Iterable[FoodItem]) -> NutritionTotals:
    """Sum calories and each nutrient (by id) over ``items``."""
    calories = 0.0
    nutrients: Dict[str, float] = {}
    count = 0
    for item in items:
        count += 1
        calories += item.calories
        for info in item.nutrients:
            nutrients[info.id] = nutrients.get(info.id, 0.0) + info.amount

    return NutritionTotals(
        calories=round_to_integer(calories),
        nutrients={k: round_to_one_decimal(v) for k, v in nutrients.items()},
        item_count=count,
    )
