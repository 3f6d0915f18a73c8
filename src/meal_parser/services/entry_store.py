"""
Entry stores.

The pipeline hands finished FoodItems to a store. Stores do not retry:
a failed save raises to the caller.
"""

import json
import logging
from datetime import datetime
from pathlib import Path
from typing import List, Protocol, Sequence

from ..models import FoodItem

logger = logging.getLogger(__name__)


class EntryStore(Protocol):
    async def save(self, items: Sequence[FoodItem]) -> int:
        ...


class InMemoryEntryStore:
    """Keeps entries in a list; used by tests and one-off CLI runs."""

    def __init__(self):
        self._items: List[FoodItem] = []

    @property
    def items(self) -> List[FoodItem]:
        return list(self._items)

    async def save(self, items: Sequence[FoodItem]) -> int:
        self._items.extend(items)
        return len(items)


class JsonEntryStore:
    """Appends entries to a JSON file with a ``_meta`` header."""

    def __init__(self, path: Path):
        self._path = Path(path)

    def load(self) -> List[FoodItem]:
        """Read back every stored entry."""
        if not self._path.exists():
            return []
        with open(self._path, "r", encoding="utf-8") as f:
            data = json.load(f)
        return [FoodItem.model_validate(entry) for entry in data.get("entries", [])]

    async def save(self, items: Sequence[FoodItem]) -> int:
        if not items:
            return 0

        entries = []
        if self._path.exists():
            with open(self._path, "r", encoding="utf-8") as f:
                entries = json.load(f).get("entries", [])
        entries.extend(item.model_dump(mode="json") for item in items)

        data = {
            "_meta": {
                "description": "Food log entries produced by meal_parser.",
                "last_updated": datetime.now().isoformat(),
                "total_entries": len(entries),
            },
            "entries": entries,
        }

        self._path.parent.mkdir(parents=True, exist_ok=True)
        with open(self._path, "w", encoding="utf-8") as f:
            json.dump(data, f, ensure_ascii=False, indent=2)

        logger.info(f"Saved {len(items)} entries to {self._path} ({len(entries)} total)")
        return len(items)
