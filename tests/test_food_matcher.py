"""Tests for the food matching cascade."""

import asyncio

import pytest

from conftest import BREAD, make_food
from meal_parser.constants import Settings
from meal_parser.exceptions import CatalogUnavailable, NoCatalogMatch
from meal_parser.models import MatchCandidate, ParsedMention
from meal_parser.services.catalog import InMemoryFoodCatalog
from meal_parser.services.food_matcher import (
    FoodMatcher,
    containment_score,
    levenshtein_distance,
    rank_candidates,
    similarity,
)


def mention(name, **kwargs):
    kwargs.setdefault("confidence", 0.6)
    return ParsedMention(raw_text=name, food_name=name, **kwargs)


class FailingCatalog:
    def __init__(self):
        self.calls = []

    async def search(self, term):
        self.calls.append(term)
        raise CatalogUnavailable("database down")


class SlowCatalog:
    async def search(self, term):
        await asyncio.sleep(1)
        return [BREAD]


class RecordingCatalog(InMemoryFoodCatalog):
    def __init__(self, foods):
        super().__init__(foods)
        self.calls = []

    async def search(self, term):
        self.calls.append(term)
        return await super().search(term)


class FlakyCatalog:
    """Fails only for the listed terms."""

    def __init__(self, foods, failing_terms):
        self._inner = InMemoryFoodCatalog(foods)
        self._failing = set(failing_terms)

    async def search(self, term):
        if term in self._failing:
            raise CatalogUnavailable(f"timeout for {term}")
        return await self._inner.search(term)


# ──────────────────────────────────────────────
# String helpers
# ──────────────────────────────────────────────


def test_levenshtein_distance():
    assert levenshtein_distance("kitten", "sitting") == 3
    assert levenshtein_distance("", "abc") == 3
    assert levenshtein_distance("bread", "bread") == 0


def test_similarity():
    assert similarity("brocoli", "Broccoli") == pytest.approx(1 - 1 / 8)
    assert similarity("", "") == 1.0
    assert similarity("abc", "xyz") == 0.0


def test_containment_score():
    assert containment_score("chicken", "Chicken Breast") == pytest.approx(7 / 14)
    assert containment_score("apple pie", "apple") == pytest.approx(5 / 9)
    assert containment_score("rice", "bread") is None


# ──────────────────────────────────────────────
# Cascade stages
# ──────────────────────────────────────────────


async def test_exact_match(catalog):
    result = await FoodMatcher(catalog).match(mention("bread"))
    assert result.stage == "exact"
    assert result.best_match.food.name == "Bread"
    assert result.best_match.confidence == 1.0
    assert result.best_match.match_type == "exact"
    assert not result.needs_disambiguation


async def test_exact_match_wins_over_other_candidates():
    foods = [make_food("Rice Cake"), make_food("Rice"), make_food("Brown Rice"), make_food("Rica")]
    result = await FoodMatcher(InMemoryFoodCatalog(foods)).match(mention("rice"))
    assert result.candidates[0].food.name == "Rice"
    assert result.candidates[0].confidence == 1.0
    assert all(c.match_type == "exact" for c in result.candidates)


async def test_partial_match(catalog):
    result = await FoodMatcher(catalog).match(mention("chicken"))
    assert result.stage == "partial"
    names = [c.food.name for c in result.candidates]
    assert set(names) == {"Chicken Breast", "Chicken Thigh"}
    # 7/13 for "chicken thigh" beats 7/14 for "chicken breast"
    assert names[0] == "Chicken Thigh"
    assert result.needs_disambiguation
    assert result.suggestions == ["Chicken Thigh", "Chicken Breast"]


async def test_partial_match_when_mention_is_longer(catalog):
    result = await FoodMatcher(catalog).match(mention("banana bread loaf"))
    assert result.stage == "partial"
    by_name = {c.food.name: c.confidence for c in result.candidates}
    assert set(by_name) == {"Banana", "Bread"}
    assert by_name["Banana"] == pytest.approx(6 / 17)
    assert by_name["Bread"] == pytest.approx(5 / 17)
    assert result.best_match.food.name == "Banana"
    assert result.needs_disambiguation


async def test_partial_searches_each_word():
    catalog = RecordingCatalog([BREAD])
    result = await FoodMatcher(catalog).match(mention("toasted bread roll"))
    assert result.stage == "partial"
    assert result.best_match.food.name == "Bread"
    assert "bread" in catalog.calls
    assert "roll" in catalog.calls


async def test_synonym_match_brioche():
    catalog = InMemoryFoodCatalog([BREAD])
    result = await FoodMatcher(catalog).match(mention("brioche"))
    assert result.stage == "synonym"
    assert result.best_match.food.name == "Bread"
    assert result.best_match.confidence == 0.8
    assert result.best_match.match_type == "synonym"


async def test_synonym_reverse_direction():
    catalog = InMemoryFoodCatalog([make_food("Poultry Mix")])
    result = await FoodMatcher(catalog).match(mention("chicken"))
    assert result.stage == "synonym"
    assert result.best_match.food.name == "Poultry Mix"


async def test_partial_synonym_match():
    catalog = InMemoryFoodCatalog([make_food("Coffee")])
    result = await FoodMatcher(catalog).match(mention("iced latte"))
    assert result.stage == "synonym"
    assert result.best_match.confidence == 0.7


async def test_fuzzy_match(catalog):
    result = await FoodMatcher(catalog).match(mention("brocoli"))
    assert result.stage in ("synonym", "fuzzy")
    assert result.best_match.food.name == "Broccoli"


async def test_fuzzy_only():
    catalog = InMemoryFoodCatalog([make_food("Quinoa"), make_food("Bread")])
    result = await FoodMatcher(catalog).match(mention("quinao"))
    assert result.stage == "fuzzy"
    assert result.best_match.food.name == "Quinoa"
    assert result.best_match.match_type == "fuzzy"
    assert result.best_match.confidence > 0.5


async def test_fuzzy_limit_and_threshold():
    foods = [make_food(f"Food{i}", food_id=f"id{i}") for i in range(10)]
    settings = Settings(fuzzy_limit=3)
    result = await FoodMatcher(InMemoryFoodCatalog(foods), settings=settings).match(mention("foodx"))
    assert len(result.candidates) == 3
    assert all(c.confidence > 0.5 for c in result.candidates)


async def test_no_match(catalog):
    result = await FoodMatcher(catalog).match(mention("zzqx"))
    assert result.best_match is None
    assert result.candidates == []
    assert result.stage is None
    with pytest.raises(NoCatalogMatch):
        result.require_best()


# ──────────────────────────────────────────────
# Failure policy
# ──────────────────────────────────────────────


async def test_catalog_failure_is_no_match():
    catalog = FailingCatalog()
    result = await FoodMatcher(catalog).match(mention("bread"))
    assert result.best_match is None
    # every stage was still attempted
    assert "" in catalog.calls
    assert "bread" in catalog.calls


async def test_catalog_failure_falls_through_to_next_stage():
    catalog = FlakyCatalog([BREAD], failing_terms={"brioche"})
    result = await FoodMatcher(catalog).match(mention("brioche"))
    assert result.stage == "synonym"
    assert result.best_match.food.name == "Bread"


async def test_catalog_timeout_is_no_match():
    settings = Settings(catalog_timeout=0.01)
    result = await FoodMatcher(SlowCatalog(), settings=settings).match(mention("bread"))
    assert result.best_match is None


# ──────────────────────────────────────────────
# Ranking
# ──────────────────────────────────────────────


def test_rank_candidates_disambiguation():
    breast = make_food("Chicken Breast")
    thigh = make_food("Chicken Thigh")
    result = rank_candidates(
        mention("chicken"),
        [
            MatchCandidate(food=thigh, confidence=0.70, match_type="partial"),
            MatchCandidate(food=breast, confidence=0.72, match_type="partial"),
        ],
    )
    assert result.best_match.food.name == "Chicken Breast"
    assert result.needs_disambiguation
    assert result.suggestions == ["Chicken Breast", "Chicken Thigh"]


def test_rank_candidates_clear_winner():
    result = rank_candidates(
        mention("bread"),
        [
            MatchCandidate(food=BREAD, confidence=1.0, match_type="exact"),
            MatchCandidate(food=make_food("Toast"), confidence=0.7, match_type="synonym"),
        ],
    )
    assert not result.needs_disambiguation
    assert result.suggestions == []


def test_rank_candidates_gap_boundary():
    # a gap equal to the threshold is not ambiguous
    result = rank_candidates(
        mention("bread"),
        [
            MatchCandidate(food=BREAD, confidence=1.0, match_type="exact"),
            MatchCandidate(food=make_food("Toast"), confidence=0.8, match_type="synonym"),
        ],
    )
    assert not result.needs_disambiguation


def test_rank_candidates_dedupes_by_id():
    result = rank_candidates(
        mention("bread"),
        [
            MatchCandidate(food=BREAD, confidence=0.7, match_type="synonym"),
            MatchCandidate(food=BREAD, confidence=0.8, match_type="synonym"),
        ],
    )
    assert len(result.candidates) == 1
    assert result.best_match.confidence == 0.8


def test_rank_candidates_custom_gap():
    settings = Settings(disambiguation_gap=0.01)
    result = rank_candidates(
        mention("chicken"),
        [
            MatchCandidate(food=make_food("Chicken Breast"), confidence=0.72, match_type="partial"),
            MatchCandidate(food=make_food("Chicken Thigh"), confidence=0.70, match_type="partial"),
        ],
        settings,
    )
    assert not result.needs_disambiguation


# ──────────────────────────────────────────────
# match_all / extra strategies
# ──────────────────────────────────────────────


async def test_match_all_preserves_order(catalog):
    mentions = [mention("egg"), mention("zzqx"), mention("apple"), mention("bread")]
    results = await FoodMatcher(catalog).match_all(mentions)
    assert [r.mention.food_name for r in results] == ["egg", "zzqx", "apple", "bread"]
    assert results[1].best_match is None
    assert results[2].best_match.food.name == "Apple"


async def test_extra_strategy_runs_before_fuzzy():
    quinoa = make_food("Quinoa")
    calls = []

    async def always_quinoa(m):
        calls.append(m.food_name)
        return [MatchCandidate(food=quinoa, confidence=0.75, match_type="llm")]

    matcher = FoodMatcher(
        InMemoryFoodCatalog([quinoa]),
        extra_strategies=[("llm", always_quinoa)],
    )
    assert matcher.strategy_names == ["exact", "partial", "synonym", "llm", "fuzzy"]

    result = await matcher.match(mention("quinao"))
    assert result.stage == "llm"
    assert calls == ["quinao"]

    result = await matcher.match(mention("quinoa"))
    assert result.stage == "exact"
    assert calls == ["quinao"]
