import pytest

from meal_parser.constants import Settings
from meal_parser.models import CatalogFood, NutrientVector
from meal_parser.services.catalog import InMemoryFoodCatalog


def pytest_collection_modifyitems(items):
    for item in items:
        if item.get_closest_marker("asyncio") is None:
            if "async" in item.name or "await" in item.name:
                item.add_marker(pytest.mark.asyncio)


def make_food(name, calories=100.0, food_id=None, **kwargs):
    """CatalogFood with a simple per-100g profile."""
    nutrients = kwargs.pop("nutrients", None) or NutrientVector(
        calories=calories, protein=10.0, carbs=20.0, fat=5.0, fiber=2.0, sugar=4.0, sodium=50.0,
    )
    return CatalogFood(
        id=food_id or name.lower().replace(" ", "-"),
        name=name,
        nutrients=nutrients,
        **kwargs,
    )


BREAD = make_food(
    "Bread",
    food_id="bread",
    category="Bakery",
    nutrients=NutrientVector(
        calories=265, protein=9, carbs=49, fat=3.2, fiber=2.7, sugar=5, sodium=491,
    ),
)


@pytest.fixture
def settings():
    return Settings()


@pytest.fixture
def sample_foods():
    return [
        BREAD,
        make_food("Chicken Breast", 165, category="Proteins"),
        make_food("Chicken Thigh", 177, category="Proteins"),
        make_food("Apple", 52, category="Fruits"),
        make_food("Banana", 89, category="Fruits"),
        make_food("Egg", 143, category="Proteins"),
        make_food("Broccoli", 34, category="Vegetables"),
        make_food("White Rice", 130, category="Grains", preparation_state="cooked"),
    ]


@pytest.fixture
def catalog(sample_foods):
    return InMemoryFoodCatalog(sample_foods)
