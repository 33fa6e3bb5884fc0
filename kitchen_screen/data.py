"""Static catalog data."""

from __future__ import annotations

from dataclasses import dataclass

from kitchen_screen.constant import CATEGORY_LABELS, MENU_BY_CATEGORY


@dataclass(frozen=True)
class Category:
    """A menu category with its ordered item names."""

    key: str
    label: str
    items: tuple[str, ...]


@dataclass(frozen=True)
class Catalog:
    """Read-only category -> items mapping consumed by composition sessions."""

    categories: tuple[Category, ...]

    def get(self, key: str) -> Category | None:
        for category in self.categories:
            if category.key == key:
                return category
        return None

    def has_item(self, name: str) -> bool:
        return any(name in category.items for category in self.categories)


def build_catalog(
    menu: dict[str, list[str]],
    labels: dict[str, str] | None = None,
) -> Catalog:
    """Wrap a raw menu mapping, keeping category and item order."""
    labels = labels or {}
    return Catalog(
        categories=tuple(
            Category(key=key, label=labels.get(key, key), items=tuple(items)) for key, items in menu.items()
        )
    )


CATALOG = build_catalog(MENU_BY_CATEGORY, CATEGORY_LABELS)
