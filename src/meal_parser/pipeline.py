"""
Meal logging pipeline.

utterance -> UtteranceParser -> FoodMatcher (catalog) -> NutrientScaler
-> EntryStore

Stateless between calls: every ``log()`` works only on its own text plus
the read-only tables and clients given at construction.
"""

import logging
from typing import Optional

from .constants import Settings
from .models import MealLog
from .observability import langfuse_context, observe
from .services.catalog import FoodCatalog
from .services.entry_store import EntryStore
from .services.food_matcher import FoodMatcher
from .services.llm_matcher import LLMMatchStrategy
from .services.nutrient_scaler import NutrientScaler
from .services.totals import calculate_total_nutrition
from .services.units import UnitTable
from .services.utterance_parser import UtteranceParser

logger = logging.getLogger(__name__)


class MealLogger:
    """Runs the full parse, match, scale and store pipeline for one utterance at a time."""

    def __init__(
        self,
        catalog: FoodCatalog,
        store: Optional[EntryStore] = None,
        settings: Optional[Settings] = None,
        parser: Optional[UtteranceParser] = None,
        matcher: Optional[FoodMatcher] = None,
        scaler: Optional[NutrientScaler] = None,
        use_llm: bool = False,
    ):
        """
        Args:
            catalog: Food catalog backend.
            store: Where finished items are saved. Optional.
            settings: Shared settings. Defaults to ``Settings()``.
            parser, matcher, scaler: Pre-built components (override defaults).
            use_llm: Add the LLM strategy to the match cascade. It is skipped
                silently when no OpenRouter key is configured.
        """
        self.settings = settings or Settings()
        units = UnitTable(unit_grams=self.settings.unit_grams)

        extra = []
        if use_llm:
            strategy = LLMMatchStrategy(
                catalog,
                api_key=self.settings.openrouter_api_key,
                model=self.settings.llm_model,
            )
            if strategy.enabled:
                extra.append(("llm", strategy))
            else:
                logger.warning("LLM matching requested but OPENROUTER_API_KEY is not set — skipping")

        self.parser = parser or UtteranceParser(units=units, settings=self.settings)
        self.matcher = matcher or FoodMatcher(catalog, settings=self.settings, extra_strategies=extra)
        self.scaler = scaler or NutrientScaler(units=units, settings=self.settings)
        self.store = store

    @observe(name="meal_log")
    async def log(self, text: str, persist: bool = True) -> MealLog:
        """
        Parse, match and scale an utterance, then save the items.

        Args:
            text: Free-form meal description.
            persist: Save items to the entry store (if one is configured).

        Returns:
            MealLog with the parsed message, match results, items and totals.
            Store failures propagate.
        """
        message = self.parser.parse_message(text)
        matches = await self.matcher.match_all(message.mentions)
        items = self.scaler.scale_all(matches)
        totals = calculate_total_nutrition(items)

        stored = 0
        if persist and self.store is not None and items:
            stored = await self.store.save(items)

        langfuse_context.update_current_trace(
            metadata={
                "mentions": len(message.mentions),
                "matched": sum(1 for m in matches if m.best_match is not None),
                "needs_clarification": message.needs_clarification,
            }
        )
        logger.info(
            f"Logged '{text}': {len(items)} item(s), {totals.calories} kcal"
            + (f", {stored} stored" if stored else "")
        )

        return MealLog(message=message, matches=matches, items=items, totals=totals, stored=stored)
