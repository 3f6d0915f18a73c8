"""Tests for settings loading."""

import pytest
from pydantic import ValidationError

from meal_parser.constants import DEFAULT_UNIT_GRAMS, Settings, load_settings


def test_defaults():
    settings = load_settings({})
    assert settings == Settings()
    assert settings.disambiguation_gap == 0.2
    assert settings.fuzzy_threshold == 0.5
    assert settings.unit_grams["cup"] == 240.0
    assert settings.catalog_url is None


def test_from_environment_mapping():
    settings = load_settings({
        "MEAL_PARSER_DISAMBIGUATION_GAP": "0.1",
        "MEAL_PARSER_FUZZY_LIMIT": "3",
        "MEAL_PARSER_CATALOG_URL": "https://example.supabase.co",
        "OPENROUTER_API_KEY": "sk-test",
        "MEAL_PARSER_CLARIFICATION_THRESHOLD": "  ",
    })
    assert settings.disambiguation_gap == 0.1
    assert settings.fuzzy_limit == 3
    assert settings.catalog_url == "https://example.supabase.co"
    assert settings.openrouter_api_key == "sk-test"
    assert settings.clarification_threshold == 0.7


def test_invalid_value_names_variable():
    with pytest.raises(ValueError, match="MEAL_PARSER_FUZZY_THRESHOLD"):
        load_settings({"MEAL_PARSER_FUZZY_THRESHOLD": "1.5"})


def test_settings_are_frozen():
    settings = Settings()
    with pytest.raises(ValidationError):
        settings.fuzzy_limit = 10


def test_default_unit_grams_read_only():
    with pytest.raises(TypeError):
        DEFAULT_UNIT_GRAMS["cup"] = 1.0
