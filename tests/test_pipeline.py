"""End-to-end tests for MealLogger."""

import pytest

from meal_parser.constants import Settings
from meal_parser.pipeline import MealLogger
from meal_parser.services.entry_store import InMemoryEntryStore


class BrokenStore:
    async def save(self, items):
        raise OSError("disk full")


async def test_bread_and_coffee(catalog):
    store = InMemoryEntryStore()
    log = await MealLogger(catalog, store=store).log(
        "I had 2 slices of bread and a cup of coffee for breakfast"
    )

    assert log.message.meal_context == "breakfast"
    assert [m.food_name for m in log.message.mentions] == ["bread", "coffee"]

    bread, coffee = log.items
    assert bread.name == "Bread"
    assert bread.calories == 133
    assert coffee.estimated
    assert coffee.calories == 240

    assert log.totals.calories == 373
    assert log.totals.item_count == 2
    assert log.stored == 2
    assert [i.name for i in store.items] == ["Bread", "coffee"]


async def test_items_follow_mention_order(catalog):
    log = await MealLogger(catalog).log("an apple, 2 eggs and 100g broccoli")
    assert [i.name for i in log.items] == ["Apple", "Egg", "Broccoli"]
    assert [m.mention.food_name for m in log.matches] == ["apple", "eggs", "broccoli"]
    assert log.stored == 0


async def test_disambiguation_is_reported(catalog):
    log = await MealLogger(catalog).log("200g chicken")
    match = log.matches[0]
    assert match.needs_disambiguation
    assert set(match.suggestions) == {"Chicken Breast", "Chicken Thigh"}
    assert len(log.items) == 1


async def test_no_persist(catalog):
    store = InMemoryEntryStore()
    log = await MealLogger(catalog, store=store).log("an apple", persist=False)
    assert log.stored == 0
    assert store.items == []


async def test_nothing_to_log(catalog):
    store = InMemoryEntryStore()
    log = await MealLogger(catalog, store=store).log("for lunch")
    assert log.items == []
    assert log.message.needs_clarification
    assert log.stored == 0


async def test_store_failure_propagates(catalog):
    with pytest.raises(OSError):
        await MealLogger(catalog, store=BrokenStore()).log("an apple")


async def test_llm_skipped_without_key(catalog):
    meal_logger = MealLogger(catalog, settings=Settings(), use_llm=True)
    assert "llm" not in meal_logger.matcher.strategy_names


async def test_llm_enabled_with_key(catalog):
    meal_logger = MealLogger(catalog, settings=Settings(openrouter_api_key="sk-test"), use_llm=True)
    assert meal_logger.matcher.strategy_names == ["exact", "partial", "synonym", "llm", "fuzzy"]


async def test_absurd_quantity_uses_default_portion(catalog):
    log = await MealLogger(catalog).log("99999999999999999999999999999999 kg bread")
    item = log.items[0]
    assert item.name == "Bread"
    assert item.grams == 100.0
    assert item.calories == 265
    assert log.totals.calories == 265


async def test_overflowing_numeral_asks_for_clarification(catalog):
    log = await MealLogger(catalog).log("9" * 400 + " g bread")
    mention = log.message.mentions[0]
    assert mention.food_name == "bread"
    assert not mention.has_valid_quantity
    assert log.message.needs_clarification
    assert "The amount for bread is too large to log." in log.message.clarification_prompts
    assert log.items[0].grams == 100.0
    assert log.items[0].calories == 265
