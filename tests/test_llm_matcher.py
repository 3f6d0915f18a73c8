"""Tests for the LLM match strategy, with a fake OpenAI-compatible client."""

import asyncio
from types import SimpleNamespace

from conftest import make_food
from meal_parser.models import ParsedMention
from meal_parser.services.catalog import InMemoryFoodCatalog
from meal_parser.services.food_matcher import FoodMatcher
from meal_parser.services.llm_matcher import LLM_CONFIDENCE, LLMMatchStrategy

FOODS = [make_food("Cassava"), make_food("Yam"), make_food("Plantain")]


class FakeCompletions:
    def __init__(self, answer=None, error=None, delay=0.0):
        self.answer = answer
        self.error = error
        self.delay = delay
        self.calls = []

    async def create(self, **kwargs):
        self.calls.append(kwargs)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error:
            raise self.error
        message = SimpleNamespace(content=self.answer)
        return SimpleNamespace(choices=[SimpleNamespace(message=message)])


def fake_client(**kwargs):
    completions = FakeCompletions(**kwargs)
    return SimpleNamespace(chat=SimpleNamespace(completions=completions)), completions


def mention(name="eba"):
    return ParsedMention(raw_text=f"a bowl of {name}", food_name=name, confidence=0.8)


def strategy_with(answer=None, **kwargs):
    client, completions = fake_client(answer=answer, **kwargs)
    strategy = LLMMatchStrategy(InMemoryFoodCatalog(FOODS), client=client, timeout=0.5)
    return strategy, completions


async def test_picks_index():
    strategy, completions = strategy_with("0")
    candidates = await strategy(mention("cassava flakes"))
    assert len(candidates) == 1
    assert candidates[0].food.name == "Cassava"
    assert candidates[0].confidence == LLM_CONFIDENCE
    assert candidates[0].match_type == "llm"

    prompt = completions.calls[0]["messages"][1]["content"]
    assert "Food: cassava flakes" in prompt
    assert "0: Cassava" in prompt


async def test_none_answer():
    strategy, _ = strategy_with("NONE")
    assert await strategy(mention()) == []


async def test_unparseable_answer():
    strategy, _ = strategy_with("I think it is cassava")
    assert await strategy(mention()) == []


async def test_out_of_range_index():
    strategy, _ = strategy_with("17")
    assert await strategy(mention()) == []


async def test_api_error():
    strategy, _ = strategy_with(error=RuntimeError("rate limited"))
    assert await strategy(mention()) == []


async def test_timeout():
    strategy, _ = strategy_with("0", delay=2.0)
    assert await strategy(mention()) == []


async def test_disabled_without_key_or_client():
    strategy = LLMMatchStrategy(InMemoryFoodCatalog(FOODS))
    assert not strategy.enabled
    assert await strategy(mention()) == []


async def test_empty_catalog():
    client, completions = fake_client(answer="0")
    strategy = LLMMatchStrategy(InMemoryFoodCatalog([]), client=client)
    assert await strategy(mention()) == []
    assert completions.calls == []


async def test_shortlist_is_ranked_by_similarity():
    client, completions = fake_client(answer="0")
    strategy = LLMMatchStrategy(InMemoryFoodCatalog(FOODS), client=client, max_candidates=1)
    candidates = await strategy(mention("plantian"))
    assert candidates[0].food.name == "Plantain"
    prompt = completions.calls[0]["messages"][1]["content"]
    assert "Yam" not in prompt


async def test_llm_stage_in_cascade():
    client, _ = fake_client(answer="1")
    catalog = InMemoryFoodCatalog(FOODS)
    strategy = LLMMatchStrategy(catalog, client=client)
    matcher = FoodMatcher(catalog, extra_strategies=[("llm", strategy)])

    result = await matcher.match(mention("eba"))
    assert result.stage == "llm"
    assert result.best_match.food.name in {"Cassava", "Yam", "Plantain"}
