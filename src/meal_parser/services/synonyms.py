"""
Food synonym table.

Canonical food term -> alternative names people use for it. The table is
read both ways: "brioche" leads to "bread" and "bread" leads to "brioche".
"""

from types import MappingProxyType
from typing import Dict, FrozenSet, Iterable, List, Mapping, Set, Tuple

FOOD_SYNONYMS: Mapping[str, Tuple[str, ...]] = MappingProxyType({
    # Proteins
    "chicken": ("poultry", "hen", "fowl"),
    "beef": ("cow", "steak", "meat"),
    "fish": ("seafood",),
    "egg": ("eggs",),
    "tofu": ("bean curd",),
    # Fruits
    "apple": ("apples",),
    "banana": ("bananas",),
    "orange": ("oranges",),
    "avocado": ("avocados", "avo"),
    # Vegetables
    "tomato": ("tomatoes",),
    "potato": ("potatoes", "spud"),
    "onion": ("onions",),
    "pepper": ("peppers", "bell pepper"),
    "broccoli": ("brocolli",),
    # Grains and bread
    "rice": ("white rice", "brown rice"),
    "bread": ("loaf", "slice", "brioche", "brioche bread", "white bread", "whole wheat bread"),
    "brioche": ("bread", "white bread"),
    "white bread": ("bread", "brioche", "loaf"),
    "pasta": ("noodles", "spaghetti", "macaroni"),
    "oats": ("oatmeal", "porridge"),
    # Dairy
    "milk": ("dairy",),
    "cheese": ("cheddar", "mozzarella"),
    "yogurt": ("yoghurt",),
    # Drinks
    "coffee": ("black coffee", "espresso", "americano", "latte", "cappuccino"),
    "tea": ("black tea", "green tea"),
    "water": ("h2o",),
    # West African staples
    "yam": ("yams",),
    "plantain": ("plantains",),
    "cassava": ("tapioca",),
    "garri": ("gari",),
    "fufu": ("foo foo",),
    "jollof": ("jollof rice",),
    "suya": ("grilled meat",),
    "pap": ("akamu", "ogi"),
})


class SynonymTable:
    """Bidirectional, read-only view over a synonym mapping."""

    def __init__(self, synonyms: Mapping[str, Iterable[str]] = FOOD_SYNONYMS):
        related: Dict[str, Set[str]] = {}
        for canonical, names in synonyms.items():
            canonical = canonical.lower()
            for name in names:
                name = name.lower()
                related.setdefault(name, set()).add(canonical)
                related.setdefault(canonical, set()).add(name)
        self._related: Mapping[str, FrozenSet[str]] = MappingProxyType(
            {name: frozenset(terms) for name, terms in related.items()}
        )

    def aliases_for(self, name: str) -> FrozenSet[str]:
        """Every name linked to ``name``, in either direction."""
        return self._related.get(name.lower().strip(), frozenset())

    def search_terms(self, name: str) -> List[str]:
        """Terms to search when ``name`` is itself a known synonym (sorted)."""
        return sorted(self.aliases_for(name))

    def partial_terms(self, name: str) -> List[str]:
        """
        Terms to search when ``name`` only overlaps a known synonym.

        "whole wheat bread slice" contains "whole wheat bread", which leads to
        "bread".
        """
        name = name.lower().strip()
        terms: Set[str] = set()
        for synonym, linked in self._related.items():
            if synonym == name:
                continue
            if synonym in name or name in synonym:
                terms.update(linked)
        terms.discard(name)
        return sorted(terms)
