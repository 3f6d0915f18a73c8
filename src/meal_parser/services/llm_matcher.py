"""
LLM match strategy.

Optional cascade stage for mentions the deterministic stages missed
("a bowl of eba", "my usual latte"). The model only picks which catalog
entry to use; all nutrient values still come from the catalog.

Any failure (no API key, timeout, API error, unparseable answer, NONE)
returns no candidates, so the matcher falls through to the fuzzy stage.
"""

import asyncio
import logging
import re
from typing import Any, List, Optional

from ..constants import DEFAULT_LLM_MODEL
from ..models import CatalogFood, MatchCandidate, ParsedMention
from ..observability import get_async_openai_class, observe
from .food_matcher import similarity

logger = logging.getLogger(__name__)

LLM_CONFIDENCE = 0.75

_SYSTEM_PROMPT = (
    "You are a nutrition database expert. "
    "Reply with a single number or NONE. No explanation."
)


class LLMMatchStrategy:
    """Cascade stage asking an OpenRouter model to pick a catalog entry."""

    def __init__(
        self,
        catalog,
        api_key: Optional[str] = None,
        model: str = DEFAULT_LLM_MODEL,
        client: Any = None,
        timeout: float = 15.0,
        max_candidates: int = 40,
    ):
        """
        Args:
            catalog: FoodCatalog to list entries from.
            api_key: OpenRouter API key. Without it (and without ``client``)
                the strategy is disabled.
            model: Model identifier on OpenRouter.
            client: Pre-built AsyncOpenAI-compatible client.
            timeout: Seconds to wait for the model.
            max_candidates: Catalog entries shown to the model, most similar first.
        """
        self._catalog = catalog
        self._api_key = api_key
        self._model = model
        self._client = client
        self._timeout = timeout
        self._max_candidates = max_candidates

    @property
    def enabled(self) -> bool:
        return self._client is not None or bool(self._api_key)

    def _get_client(self):
        """Lazy-initialize the OpenRouter client."""
        if self._client is None and self._api_key:
            AsyncOpenAI = get_async_openai_class()
            self._client = AsyncOpenAI(
                api_key=self._api_key,
                base_url="https://openrouter.ai/api/v1",
                default_headers={"X-Title": "Meal Parser"},
            )
        return self._client

    def _shortlist(self, name: str, foods: List[CatalogFood]) -> List[CatalogFood]:
        ranked = sorted(foods, key=lambda f: similarity(name, f.name), reverse=True)
        return ranked[: self._max_candidates]

    @staticmethod
    def _build_prompt(mention: ParsedMention, foods: List[CatalogFood]) -> str:
        lines = []
        for i, food in enumerate(foods):
            extra = ", ".join(x for x in (food.brand, food.category) if x)
            lines.append(f"{i}: {food.name}" + (f" [{extra}]" if extra else ""))

        return f"""Pick the catalog entry that best matches the food a user logged.

Rules:
- Match the same food, not merely a dish that contains it.
- Regional or brand names map to the generic food they are.
- Reply NONE if no entry is the same food.

Food: {mention.food_name}
User said: {mention.raw_text}

Catalog:
{chr(10).join(lines)}

Reply with ONLY the number (0-{len(foods) - 1}) or NONE."""

    @observe(name="llm_match")
    async def __call__(self, mention: ParsedMention) -> List[MatchCandidate]:
        client = self._get_client()
        if client is None:
            return []

        try:
            foods = list(await self._catalog.search(""))
        except Exception as e:
            logger.error(f"LLM matching skipped for '{mention.food_name}': catalog failed: {e}")
            return []
        if not foods:
            return []

        shortlist = self._shortlist(mention.food_name, foods)

        try:
            response = await asyncio.wait_for(
                client.chat.completions.create(
                    model=self._model,
                    messages=[
                        {"role": "system", "content": _SYSTEM_PROMPT},
                        {"role": "user", "content": self._build_prompt(mention, shortlist)},
                    ],
                    max_tokens=8,
                    temperature=0.0,
                ),
                timeout=self._timeout,
            )
            answer = (response.choices[0].message.content or "").strip()
        except asyncio.TimeoutError:
            logger.warning(f"LLM matching timed out for '{mention.food_name}'")
            return []
        except Exception as e:
            logger.error(f"LLM matching failed for '{mention.food_name}': {e}")
            return []

        logger.debug(f"LLM matching for '{mention.food_name}': raw answer = '{answer}'")
        if answer.upper().startswith("NONE"):
            return []

        match = re.search(r"\d+", answer)
        if not match:
            logger.warning(f"LLM returned unparseable answer '{answer}' for '{mention.food_name}'")
            return []

        idx = int(match.group())
        if not 0 <= idx < len(shortlist):
            logger.warning(
                f"LLM returned out-of-range index {idx} for '{mention.food_name}' "
                f"(max={len(shortlist) - 1})"
            )
            return []

        chosen = shortlist[idx]
        logger.info(f"LLM matched '{mention.food_name}' → '{chosen.name}'")
        return [MatchCandidate(food=chosen, confidence=LLM_CONFIDENCE, match_type="llm")]
