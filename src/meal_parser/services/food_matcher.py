"""
Food matcher.

Resolves a parsed mention against the catalog with a cascade of
strategies, stopping at the first one that returns candidates:

1. exact:   catalog name equals the mention name (1.0)
2. partial: searched by the whole name and by each of its words; one name
   contains the other (len(shorter) / len(longer)), or they share a word (0.5)
3. synonym: the mention is a known synonym (0.8) or overlaps one (0.7)
4. optional extra strategies (e.g. LLMMatchStrategy)
5. fuzzy:   normalized Levenshtein similarity above a threshold, top N

Every strategy has the same signature: ``async (mention) -> candidates``.
Catalog errors and timeouts are logged and count as "no candidates".
"""

import asyncio
import logging
import re
from typing import Awaitable, Callable, Dict, List, Optional, Sequence, Tuple

from ..constants import Settings
from ..models import CatalogFood, MatchCandidate, MatchResult, ParsedMention
from .catalog import FoodCatalog
from .rounding import safe_divide
from .synonyms import SynonymTable
from .utterance_parser import normalize_food_name

logger = logging.getLogger(__name__)

MatchStrategy = Callable[[ParsedMention], Awaitable[List[MatchCandidate]]]

EXACT_CONFIDENCE = 1.0
OVERLAP_CONFIDENCE = 0.5
SYNONYM_CONFIDENCE = 0.8
PARTIAL_SYNONYM_CONFIDENCE = 0.7


# ═══════════════════════════════════════════════════════════════════
# STRING SIMILARITY
# ═══════════════════════════════════════════════════════════════════

def levenshtein_distance(s1: str, s2: str) -> int:
    """Edit distance between two strings (insert, delete, substitute)."""
    if len(s1) < len(s2):
        return levenshtein_distance(s2, s1)
    if len(s2) == 0:
        return len(s1)

    prev_row = list(range(len(s2) + 1))
    for i, c1 in enumerate(s1):
        curr_row = [i + 1]
        for j, c2 in enumerate(s2):
            insertions = prev_row[j + 1] + 1
            deletions = curr_row[j] + 1
            substitutions = prev_row[j] + (c1 != c2)
            curr_row.append(min(insertions, deletions, substitutions))
        prev_row = curr_row

    return prev_row[-1]


def similarity(s1: str, s2: str) -> float:
    """``1 - distance / max_len``, case-insensitive. Two empty strings are identical."""
    s1, s2 = s1.lower(), s2.lower()
    longest = max(len(s1), len(s2))
    if longest == 0:
        return 1.0
    return 1.0 - safe_divide(levenshtein_distance(s1, s2), longest)


def containment_score(a: str, b: str) -> Optional[float]:
    """len(shorter) / len(longer) when one string contains the other."""
    a, b = a.lower(), b.lower()
    if not a or not b:
        return None
    if a in b or b in a:
        shorter, longer = sorted((a, b), key=len)
        return len(shorter) / len(longer)
    return None


def _words(text: str) -> set:
    return set(re.findall(r"[a-z0-9]+", text.lower()))


# ═══════════════════════════════════════════════════════════════════
# RANKING
# ═══════════════════════════════════════════════════════════════════

def rank_candidates(
    mention: ParsedMention,
    candidates: Sequence[MatchCandidate],
    settings: Optional[Settings] = None,
    stage: Optional[str] = None,
) -> MatchResult:
    """
    Deduplicate, sort and assess a stage's candidates.

    The same food found twice keeps its highest confidence. Disambiguation is
    needed when the top two confidences are closer than the configured gap;
    suggestions then list the top names.
    """
    settings = settings or Settings()

    best_by_id: Dict[str, MatchCandidate] = {}
    for candidate in candidates:
        current = best_by_id.get(candidate.food.id)
        if current is None or candidate.confidence > current.confidence:
            best_by_id[candidate.food.id] = candidate

    ranked = sorted(best_by_id.values(), key=lambda c: c.confidence, reverse=True)

    needs_disambiguation = False
    if len(ranked) >= 2:
        gap = round(ranked[0].confidence - ranked[1].confidence, 6)
        needs_disambiguation = gap < settings.disambiguation_gap

    suggestions = []
    if needs_disambiguation:
        suggestions = [c.food.name for c in ranked[: settings.suggestion_limit]]

    return MatchResult(
        mention=mention,
        candidates=ranked,
        best_match=ranked[0] if ranked else None,
        needs_disambiguation=needs_disambiguation,
        suggestions=suggestions,
        stage=stage if ranked else None,
    )


# ═══════════════════════════════════════════════════════════════════
# MATCHER
# ═══════════════════════════════════════════════════════════════════

class FoodMatcher:
    """Cascading matcher over a FoodCatalog."""

    def __init__(
        self,
        catalog: FoodCatalog,
        settings: Optional[Settings] = None,
        synonyms: Optional[SynonymTable] = None,
        extra_strategies: Sequence[Tuple[str, MatchStrategy]] = (),
    ):
        """
        Args:
            catalog: Catalog to search.
            settings: Thresholds and catalog timeout.
            synonyms: Synonym table. Defaults to the built-in one.
            extra_strategies: ``(name, strategy)`` pairs tried after the
                synonym stage and before the fuzzy stage.
        """
        self._catalog = catalog
        self._settings = settings or Settings()
        self._synonyms = synonyms or SynonymTable()
        self._strategies: List[Tuple[str, MatchStrategy]] = [
            ("exact", self.exact),
            ("partial", self.partial),
            ("synonym", self.synonym),
            *extra_strategies,
            ("fuzzy", self.fuzzy),
        ]

    @property
    def strategy_names(self) -> List[str]:
        return [name for name, _ in self._strategies]

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def match(self, mention: ParsedMention) -> MatchResult:
        """Run the cascade for one mention."""
        for name, strategy in self._strategies:
            candidates = await strategy(mention)
            if candidates:
                result = rank_candidates(mention, candidates, self._settings, stage=name)
                logger.debug(
                    f"Matched '{mention.food_name}' via {name}: "
                    f"{result.best_match.food.name} ({result.best_match.confidence:.2f})"
                )
                return result

        logger.info(f"No catalog match for '{mention.food_name}'")
        return rank_candidates(mention, [], self._settings)

    async def match_all(self, mentions: Sequence[ParsedMention]) -> List[MatchResult]:
        """Match mentions concurrently; results keep the input order."""
        return list(await asyncio.gather(*(self.match(m) for m in mentions)))

    # ------------------------------------------------------------------
    # Catalog access
    # ------------------------------------------------------------------

    async def search(self, term: str) -> List[CatalogFood]:
        """Catalog search with a timeout; failures yield an empty list."""
        try:
            return list(
                await asyncio.wait_for(
                    self._catalog.search(term), timeout=self._settings.catalog_timeout
                )
            )
        except asyncio.TimeoutError:
            logger.warning(f"Catalog search timed out for '{term}' — treating as no results")
        except Exception as e:
            logger.error(f"Catalog search failed for '{term}': {e} — treating as no results")
        return []

    # ------------------------------------------------------------------
    # Strategies
    # ------------------------------------------------------------------

    @staticmethod
    def _name(mention: ParsedMention) -> str:
        return normalize_food_name(mention.food_name) or mention.food_name.lower().strip()

    async def exact(self, mention: ParsedMention) -> List[MatchCandidate]:
        name = self._name(mention)
        return [
            MatchCandidate(food=food, confidence=EXACT_CONFIDENCE, match_type="exact")
            for food in await self.search(name)
            if food.name.lower().strip() == name
        ]

    async def partial(self, mention: ParsedMention) -> List[MatchCandidate]:
        name = self._name(mention)
        name_words = _words(name)
        # Whole name, then each word of it
        terms = [name] + sorted(w for w in name_words if len(w) > 2 and w != name)
        foods: Dict[str, CatalogFood] = {}
        for term in terms:
            for food in await self.search(term):
                foods.setdefault(food.id, food)

        candidates = []
        for food in foods.values():
            score = containment_score(name, food.name)
            if score is None and name_words & _words(food.name):
                score = OVERLAP_CONFIDENCE
            if score is not None:
                candidates.append(MatchCandidate(food=food, confidence=score, match_type="partial"))
        return candidates

    async def synonym(self, mention: ParsedMention) -> List[MatchCandidate]:
        name = self._name(mention)
        terms = self._synonyms.search_terms(name)
        confidence = SYNONYM_CONFIDENCE
        if not terms:
            terms = self._synonyms.partial_terms(name)
            confidence = PARTIAL_SYNONYM_CONFIDENCE

        candidates = []
        for term in terms:
            for food in await self.search(term):
                candidates.append(
                    MatchCandidate(food=food, confidence=confidence, match_type="synonym")
                )
        return candidates

    async def fuzzy(self, mention: ParsedMention) -> List[MatchCandidate]:
        name = self._name(mention)
        scored = []
        for food in await self.search(""):
            score = similarity(name, food.name)
            if score > self._settings.fuzzy_threshold:
                scored.append((score, food))
        scored.sort(key=lambda pair: pair[0], reverse=True)
        return [
            MatchCandidate(food=food, confidence=round(score, 4), match_type="fuzzy")
            for score, food in scored[: self._settings.fuzzy_limit]
        ]
