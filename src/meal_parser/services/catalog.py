"""
Food catalog backends.

Every backend exposes ``async search(term) -> List[CatalogFood]``: a
case-insensitive substring search over name, brand and category, where an
empty term returns the whole catalog. Transient failures are raised as
CatalogUnavailable; the matcher decides what to do with them.

Backends:
- InMemoryFoodCatalog: a fixed list, used by tests and as the JSON base
- JsonFoodCatalog: the bundled (or a user-supplied) JSON file
- RestFoodCatalog: a PostgREST ``foods`` / ``custom_foods`` table over httpx
"""

import json
import logging
import re
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Protocol

import httpx

from ..exceptions import CatalogUnavailable
from ..models import CatalogFood, NutrientVector

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Paths
# ---------------------------------------------------------------------------
_DATA_DIR = Path(__file__).parent.parent / "data"
_CATALOG_FILE = _DATA_DIR / "food_catalog.json"

# Row column suffix -> NutrientVector field
_NUTRIENT_COLUMNS = {
    "calories": "calories",
    "protein": "protein",
    "carbs": "carbs",
    "fat": "fat",
    "fiber": "fiber",
    "sugar": "sugar",
    "sodium": "sodium",
    "calcium": "calcium",
    "iron": "iron",
    "potassium": "potassium",
    "vitamin_a": "vitamin_a",
    "vitamin_c": "vitamin_c",
    "vitamin_d": "vitamin_d",
}


class FoodCatalog(Protocol):
    async def search(self, term: str) -> List[CatalogFood]:
        ...


def catalog_food_from_row(row: Dict[str, Any]) -> CatalogFood:
    """
    Build a CatalogFood from a flat catalog row.

    Rows carry either ``<nutrient>_per_100g`` columns (reference foods) or
    ``<nutrient>_per_serving`` columns (user-defined foods, which also set
    ``serving_size`` in grams and ``serving_unit``).

    Raises:
        ValueError: If the row has no id/name or holds invalid values.
    """
    if not row.get("name"):
        raise ValueError(f"Catalog row without a name: {row}")

    per_serving = any(f"{col}_per_serving" in row for col in _NUTRIENT_COLUMNS)
    suffix = "_per_serving" if per_serving else "_per_100g"

    values = {}
    for column, field in _NUTRIENT_COLUMNS.items():
        value = row.get(f"{column}{suffix}")
        if value is not None:
            values[field] = float(value)

    return CatalogFood(
        id=str(row.get("id") or row["name"].lower()),
        name=row["name"],
        brand=row.get("brand"),
        category=row.get("category"),
        serving_size=row.get("serving_size"),
        serving_unit=row.get("serving_unit"),
        nutrients=NutrientVector(**values),
        nutrient_basis="per_serving" if per_serving else "per_100g",
        preparation_state=row.get("preparation_state") or "raw",
        user_defined=bool(row.get("user_defined", per_serving)),
        portion_grams=row.get("portion_grams") or {},
    )


def _matches(food: CatalogFood, term: str) -> bool:
    for field in (food.name, food.brand, food.category):
        if field and term in field.lower():
            return True
    return False


class InMemoryFoodCatalog:
    """Catalog over a fixed list of foods."""

    def __init__(self, foods: Iterable[CatalogFood], limit: Optional[int] = None):
        self._foods = tuple(foods)
        self._limit = limit

    def __len__(self) -> int:
        return len(self._foods)

    async def search(self, term: str) -> List[CatalogFood]:
        term = term.strip().lower()
        if not term:
            return list(self._foods)
        found = [food for food in self._foods if _matches(food, term)]
        return found[: self._limit] if self._limit else found


class JsonFoodCatalog(InMemoryFoodCatalog):
    """In-memory catalog loaded from a JSON list of rows."""

    @classmethod
    def from_path(cls, path: Optional[Path] = None, limit: Optional[int] = None) -> "JsonFoodCatalog":
        """
        Load a catalog file.

        Args:
            path: JSON file holding a list of rows (or ``{"foods": [...]}``).
                Defaults to the bundled catalog.
            limit: Maximum results per non-empty search.

        Raises:
            FileNotFoundError: If the file does not exist.
        """
        path = Path(path) if path else _CATALOG_FILE
        if not path.exists():
            raise FileNotFoundError(f"Food catalog not found at {path}")

        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
        rows = data.get("foods", []) if isinstance(data, dict) else data

        foods = []
        for row in rows:
            try:
                foods.append(catalog_food_from_row(row))
            except ValueError as e:
                logger.warning(f"Skipping invalid catalog row in {path.name}: {e}")

        logger.info(f"Loaded food catalog: {len(foods)} entries from {path}")
        return cls(foods, limit=limit)


class RestFoodCatalog:
    """
    Catalog backed by a PostgREST endpoint (e.g. a Supabase project).

    Search issues ``GET {base_url}/rest/v1/{table}`` with an ``or`` filter of
    ``ilike`` clauses over name, brand and category.
    """

    def __init__(
        self,
        base_url: str,
        api_key: Optional[str] = None,
        table: str = "foods",
        limit: int = 20,
        full_limit: int = 1000,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Args:
            base_url: Project URL, without the ``/rest/v1`` suffix.
            api_key: Anonymous or service key, sent as ``apikey`` and bearer token.
            table: Table to query (``foods`` or ``custom_foods``).
            limit: Maximum rows for a non-empty search.
            full_limit: Maximum rows when listing the whole catalog.
            timeout: HTTP timeout in seconds.
            transport: Custom httpx transport (tests).
        """
        self._url = f"{base_url.rstrip('/')}/rest/v1/{table}"
        self._api_key = api_key
        self._limit = limit
        self._full_limit = full_limit
        self._timeout = timeout
        self._transport = transport

    def _headers(self) -> Dict[str, str]:
        headers = {"Accept": "application/json"}
        if self._api_key:
            headers["apikey"] = self._api_key
            headers["Authorization"] = f"Bearer {self._api_key}"
        return headers

    @staticmethod
    def _params(term: str, limit: int) -> Dict[str, str]:
        params = {"select": "*", "limit": str(limit)}
        # PostgREST filter syntax reserves these characters
        term = re.sub(r"[,().*%]", " ", term).strip()
        if term:
            params["or"] = f"(name.ilike.*{term}*,brand.ilike.*{term}*,category.ilike.*{term}*)"
        return params

    async def search(self, term: str) -> List[CatalogFood]:
        term = term.strip().lower()
        limit = self._limit if term else self._full_limit
        try:
            async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
                response = await client.get(
                    self._url, params=self._params(term, limit), headers=self._headers()
                )
        except httpx.HTTPError as e:
            raise CatalogUnavailable(f"Catalog request failed for '{term}': {e}") from e

        if response.status_code != 200:
            raise CatalogUnavailable(
                f"Catalog error {response.status_code} for '{term}': {response.text[:200]}"
            )

        try:
            rows = response.json()
        except ValueError as e:
            raise CatalogUnavailable(f"Catalog returned invalid JSON for '{term}': {e}") from e

        foods = []
        for row in rows:
            try:
                foods.append(catalog_food_from_row(row))
            except ValueError as e:
                logger.warning(f"Skipping invalid catalog row: {e}")
        logger.debug(f"Catalog search '{term}': {len(foods)} result(s)")
        return foods
