"""Configuration for the meal parser package.

Values come from environment variables (a ``.env`` file is loaded by the
CLI) and are validated into an immutable ``Settings`` object which is passed
to the parser, matcher and scaler.
"""

import os
from types import MappingProxyType
from typing import Dict, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field

# Generic grams per household unit. Heuristic values pending review by a
# nutritionist; food-specific portions and user servings take precedence.
DEFAULT_UNIT_GRAMS: Mapping[str, float] = MappingProxyType({
    "piece": 50.0,
    "slice": 25.0,
    "cup": 240.0,
    "tbsp": 15.0,
    "tsp": 5.0,
    "serving": 100.0,
    "portion": 100.0,
    "glass": 250.0,
    "bowl": 300.0,
    "plate": 350.0,
})

DEFAULT_LLM_MODEL = "deepseek/deepseek-v3.2"


class Settings(BaseModel):
    """Tunable thresholds and backend locations."""

    model_config = ConfigDict(frozen=True)

    disambiguation_gap: float = Field(default=0.2, ge=0, le=1)
    fuzzy_threshold: float = Field(default=0.5, ge=0, le=1)
    fuzzy_limit: int = Field(default=5, ge=1)
    suggestion_limit: int = Field(default=3, ge=1)
    catalog_timeout: float = Field(default=5.0, gt=0)
    clarification_threshold: float = Field(default=0.7, ge=0, le=1)
    fallback_kcal_per_100: float = Field(default=100.0, ge=0)
    unit_grams: Dict[str, float] = Field(default_factory=lambda: dict(DEFAULT_UNIT_GRAMS))

    catalog_path: Optional[str] = None
    catalog_url: Optional[str] = None
    catalog_key: Optional[str] = None
    openrouter_api_key: Optional[str] = None
    llm_model: str = DEFAULT_LLM_MODEL


# Env var -> Settings field
_ENV_FIELDS = {
    "MEAL_PARSER_DISAMBIGUATION_GAP": "disambiguation_gap",
    "MEAL_PARSER_FUZZY_THRESHOLD": "fuzzy_threshold",
    "MEAL_PARSER_FUZZY_LIMIT": "fuzzy_limit",
    "MEAL_PARSER_SUGGESTION_LIMIT": "suggestion_limit",
    "MEAL_PARSER_CATALOG_TIMEOUT": "catalog_timeout",
    "MEAL_PARSER_CLARIFICATION_THRESHOLD": "clarification_threshold",
    "MEAL_PARSER_FALLBACK_KCAL_PER_100": "fallback_kcal_per_100",
    "MEAL_PARSER_CATALOG_PATH": "catalog_path",
    "MEAL_PARSER_CATALOG_URL": "catalog_url",
    "MEAL_PARSER_CATALOG_KEY": "catalog_key",
    "OPENROUTER_API_KEY": "openrouter_api_key",
    "MEAL_PARSER_LLM_MODEL": "llm_model",
}


def load_settings(environ: Optional[Mapping[str, str]] = None) -> Settings:
    """
    Build settings from environment variables.

    Args:
        environ: Mapping to read from. Defaults to ``os.environ``.

    Returns:
        A frozen Settings instance.

    Raises:
        ValueError: If a variable holds a value of the wrong type or range.
    """
    env = os.environ if environ is None else environ
    values = {}
    for var, field in _ENV_FIELDS.items():
        raw = env.get(var)
        if raw is None or raw.strip() == "":
            continue
        values[field] = raw.strip()

    try:
        return Settings(**values)
    except ValueError as e:
        names = ", ".join(var for var, field in _ENV_FIELDS.items() if field in values)
        raise ValueError(f"Invalid meal parser configuration ({names}): {e}") from e
