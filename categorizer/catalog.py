"""Static two-level taxonomy: categories and their sub-categories."""

from __future__ import annotations

from categorizer.config import CATEGORY_CATALOG, DEFAULT_SUB_CATEGORIES


class CategoryCatalog:
    """Ordered category table with case-insensitive sub-category lookup."""

    def __init__(self, table: dict[str, list[str]] | None = None) -> None:
        self._table = {name: list(subs) for name, subs in (table or CATEGORY_CATALOG).items()}
        self._by_key = {name.lower(): name for name in self._table}

    def categories(self) -> list[str]:
        return list(self._table)

    def sub_categories(self, category: str | None) -> list[str]:
        """Sub-categories of *category*; ``["General"]`` when it is unknown."""
        name = self.canonical(category)
        if name is None:
            return list(DEFAULT_SUB_CATEGORIES)
        return list(self._table[name])

    def canonical(self, category: str | None) -> str | None:
        """Catalog spelling of *category*, or ``None`` if it is not listed."""
        return self._by_key.get(str(category or "").strip().lower())


DEFAULT_CATALOG = CategoryCatalog()
