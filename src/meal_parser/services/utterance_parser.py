"""
Utterance parser.

Turns a free-form meal description ("I had 2 slices of bread and a cup of
coffee for breakfast") into one ParsedMention per food, with quantity,
canonical unit, cooking method and a confidence score.

Per segment, in order:
1. Cooking method (longest vocabulary word first, whole words only)
2. Quantity + unit: numeral + unit word, "half a" + unit word, then
   quantity word + unit word
3. Bare count ("2 eggs", "an apple"): quantity without a unit
4. Remaining text, cleaned, is the food name
"""

import logging
import re
from typing import Iterable, List, Optional, Pattern, Sequence, Tuple

from ..constants import Settings
from ..models import ParsedMention, ParsedMessage
from .rounding import round_to_two_decimals
from .units import UnitTable

logger = logging.getLogger(__name__)

# ═══════════════════════════════════════════════════════════════════
# VOCABULARY
# ═══════════════════════════════════════════════════════════════════

COOKING_METHODS: Tuple[str, ...] = (
    "raw", "fresh", "cooked", "boiled", "steamed", "fried", "baked", "grilled",
    "roasted", "pan-fried", "deep-fried", "sautéed", "sauteed", "broiled", "smoked",
    "dried", "pickled", "fermented", "toasted", "microwaved",
)

MEAL_CONTEXT_KEYWORDS: Tuple[Tuple[str, str], ...] = (
    ("breakfast", "breakfast"), ("brunch", "breakfast"), ("morning", "breakfast"),
    ("lunch", "lunch"), ("noon", "lunch"), ("afternoon", "lunch"),
    ("dinner", "dinner"), ("supper", "dinner"), ("evening", "dinner"),
    ("snack", "snack"), ("treat", "snack"), ("dessert", "snack"),
)

_TIME_CONTEXT_RE = re.compile(
    r"\b(this (?:morning|afternoon|evening)|last night|tonight|yesterday|today)\b"
)

_FILLER_PATTERNS = (
    re.compile(r"\bfor (?:breakfast|brunch|lunch|dinner|supper|a snack|snack|dessert)\b"),
    re.compile(r"\bthis (?:morning|afternoon|evening)\b"),
    re.compile(r"\b(?:last night|tonight|yesterday|today)\b"),
    re.compile(r"\bi(?:'ve| have)? (?:just |also )?(?:had|ate|drank|consumed)\b"),
    re.compile(r"^\s*(?:had|ate|drank|consumed)\s+"),
)

_SEPARATOR_RE = re.compile(r"\s+and\s+|\s*,\s*|\s*;\s*|\s+with\s+|\s*\+\s*")

# Sentence punctuation; a dot between digits is a decimal point
_PUNCTUATION_RE = re.compile(r"[!?]|\.(?!\d)")

_NUMERAL = r"\d+(?:\.\d+)?(?:\s*/\s*\d+)?"
_ARTICLE = r"(?:an?\s+)?"

_LEADING_FILLER_RE = re.compile(r"^(?:of|the|some)\b\s*")

# ═══════════════════════════════════════════════════════════════════
# FOOD NAME NORMALIZATION
# ═══════════════════════════════════════════════════════════════════

_NAME_PREFIX_RE = re.compile(r"^(?:grilled|fried|baked|steamed|roasted|boiled|raw|fresh)\s+")
_NAME_TAIL_RE = re.compile(r"\s+(?:with|and)\s+.*$")


def normalize_food_name(name: str) -> str:
    """
    Normalize a food name for catalog lookups.

    "Grilled chicken with rice" -> "chicken"
    """
    text = re.sub(r"\s+", " ", name.lower()).strip()
    text = _NAME_PREFIX_RE.sub("", text)
    text = _NAME_TAIL_RE.sub("", text)
    return text.strip()


def clean_food_name(text: str) -> str:
    """Drop leading "of", "the" or "some" and collapse whitespace."""
    text = re.sub(r"\s+", " ", text).strip()
    previous = None
    while previous != text:
        previous = text
        text = _LEADING_FILLER_RE.sub("", text).strip()
    return text


def _alternation(words: Iterable[str]) -> str:
    """Regex alternation, longest first; spaces inside a word match any whitespace."""
    parts = [
        r"\s+".join(re.escape(piece) for piece in word.split())
        for word in sorted(words, key=len, reverse=True)
    ]
    return "|".join(parts)


def build_quantity_patterns(
    unit_words: Iterable[str], quantity_words: Iterable[str]
) -> Tuple[Tuple[Pattern, ...], Pattern]:
    """
    Compile the quantity extraction patterns for a unit and quantity vocabulary.

    Returns:
        The ordered (quantity, unit) pattern families, and the bare-count
        pattern used when no family matches.
    """
    unit = rf"({_alternation(unit_words)})(?![a-z])"
    word = _alternation(quantity_words)
    families = (
        # "200g", "1/2 cup", "8 fl oz"
        re.compile(rf"({_NUMERAL})\s*{unit}"),
        # "half a cup"
        re.compile(rf"\b(half|quarter|third)\s+an?\s+{unit}"),
        # "two glasses", "a couple of slices", "a half cup"
        re.compile(rf"\b{_ARTICLE}({word})\s+(?:of\s+)?{unit}"),
    )
    bare_count = re.compile(rf"^\s*{_ARTICLE}({_NUMERAL}|(?:{word})\b)\s*(?:of\s+)?(?=[a-z])")
    return families, bare_count


class UtteranceParser:
    """
    Pattern-based meal description parser.

    Pure and synchronous: the result only depends on the input text and the
    tables given at construction.
    """

    def __init__(
        self,
        units: Optional[UnitTable] = None,
        cooking_methods: Sequence[str] = COOKING_METHODS,
        settings: Optional[Settings] = None,
    ):
        self._units = units or UnitTable()
        self._settings = settings or Settings()
        # Longest first so "pan-fried" wins over "fried"
        self._cooking_patterns = [
            (method, re.compile(rf"(?<![\w-]){re.escape(method)}(?![\w-])"))
            for method in sorted(cooking_methods, key=len, reverse=True)
        ]
        self._quantity_patterns, self._bare_count = build_quantity_patterns(
            self._units.aliases, self._units.quantity_words
        )

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def parse(self, text: str) -> List[ParsedMention]:
        """
        Parse an utterance into food mentions, in utterance order.

        Segments that hold nothing but a cooking method or a quantity are
        dropped.
        """
        mentions = []
        for segment in self.segment(text):
            mention = self.parse_segment(segment)
            if mention is not None:
                mentions.append(mention)
        logger.debug(f"Parsed {len(mentions)} mention(s) from '{text}'")
        return mentions

    def parse_message(self, text: str) -> ParsedMessage:
        """Parse an utterance and attach meal context and clarification prompts."""
        normalized = self._normalize(text)
        mentions = self.parse(text)

        confidence = 0.0
        if mentions:
            confidence = round_to_two_decimals(sum(m.confidence for m in mentions) / len(mentions))

        needs_clarification = (
            not mentions
            or confidence < self._settings.clarification_threshold
            or any(m.quantity is None or m.unit is None or not m.has_valid_quantity for m in mentions)
        )
        prompts = self.clarification_prompts(mentions)
        if not mentions and normalized:
            prompts.append(f'Could you clarify "{normalized}"? I couldn\'t find any food in it.')

        return ParsedMessage(
            original_text=text,
            mentions=mentions,
            meal_context=self.extract_meal_context(normalized),
            time_context=self.extract_time_context(normalized),
            confidence=confidence,
            needs_clarification=needs_clarification,
            clarification_prompts=prompts,
        )

    def segment(self, text: str) -> List[str]:
        """Strip filler phrases and split into food segments."""
        clean = self._normalize(text)
        for pattern in _FILLER_PATTERNS:
            clean = pattern.sub(" ", clean)
        clean = re.sub(r"\s+", " ", clean).strip()
        return [s.strip() for s in _SEPARATOR_RE.split(clean) if s.strip()]

    def parse_segment(self, segment: str) -> Optional[ParsedMention]:
        """Parse one segment, or return None if it names no food."""
        raw_text = segment.strip()
        text = raw_text

        cooking_method, text = self._extract_cooking_method(text)
        quantity, unit, text = self._extract_quantity_unit(text)
        food_name = clean_food_name(text)

        if not food_name:
            if cooking_method or quantity is not None:
                logger.debug(f"Dropping segment without a food name: '{raw_text}'")
            return None

        return ParsedMention(
            raw_text=raw_text,
            food_name=food_name,
            quantity=quantity,
            unit=unit,
            cooking_method=cooking_method,
            confidence=self.score(quantity, unit, food_name),
        )

    @staticmethod
    def score(quantity: Optional[float], unit: Optional[str], food_name: str) -> float:
        """Confidence: 0.5 base, +0.2 quantity, +0.2 unit, +0.1 for a name longer than 2."""
        confidence = 0.5
        if quantity is not None:
            confidence += 0.2
        if unit is not None:
            confidence += 0.2
        if len(food_name) > 2:
            confidence += 0.1
        return min(round_to_two_decimals(confidence), 1.0)

    # ------------------------------------------------------------------
    # Context
    # ------------------------------------------------------------------

    @staticmethod
    def extract_meal_context(text: str) -> Optional[str]:
        for keyword, context in MEAL_CONTEXT_KEYWORDS:
            if re.search(rf"\b{keyword}\b", text):
                return context
        return None

    @staticmethod
    def extract_time_context(text: str) -> Optional[str]:
        match = _TIME_CONTEXT_RE.search(text)
        return match.group(1) if match else None

    @staticmethod
    def clarification_prompts(mentions: Sequence[ParsedMention]) -> List[str]:
        prompts = []
        for mention in mentions:
            name = mention.food_name
            if mention.quantity is None:
                prompts.append(f"How much {name} did you have?")
            elif not mention.has_valid_quantity:
                if mention.quantity > 0:
                    prompts.append(f"The amount for {name} is too large to log.")
                else:
                    prompts.append(f"The amount for {name} must be greater than zero.")
            elif mention.unit is None:
                prompts.append(
                    f"What unit for the {mention.quantity:g} {name}? (grams, cups, pieces, etc.)"
                )
            if mention.confidence < 0.6:
                prompts.append(
                    f'Could you clarify "{mention.raw_text}"? I\'m not sure I understood correctly.'
                )
        return prompts

    # ------------------------------------------------------------------
    # Extraction helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _normalize(text: str) -> str:
        text = _PUNCTUATION_RE.sub(" ", text.lower())
        return re.sub(r"\s+", " ", text).strip()

    def _extract_cooking_method(self, text: str) -> Tuple[Optional[str], str]:
        for method, pattern in self._cooking_patterns:
            if pattern.search(text):
                return method, re.sub(r"\s+", " ", pattern.sub(" ", text, count=1)).strip()
        return None, text

    def _extract_quantity_unit(self, text: str) -> Tuple[Optional[float], Optional[str], str]:
        for pattern in self._quantity_patterns:
            match = pattern.search(text)
            if match:
                quantity = self._units.quantity_value(match.group(1))
                unit = self._units.canonical_unit(match.group(2))
                if quantity is not None and unit is not None:
                    remaining = text[:match.start()] + " " + text[match.end():]
                    return quantity, unit, remaining

        match = self._bare_count.match(text)
        if match:
            quantity = self._units.quantity_value(match.group(1))
            if quantity is not None:
                return quantity, None, text[match.end():]

        return None, None, text
