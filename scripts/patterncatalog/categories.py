"""Category taxonomy for pattern entries."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Iterator, Optional

from scripts.patterncatalog.errors import CatalogStateError, DuplicateCategoryError


@dataclass(frozen=True)
class Category:
    """A pattern category (creational, structural, ...)."""

    id: str
    name: str
    description: str


class CategoryIndex:
    """Ordered, closed set of categories keyed by id.

    Categories are registered once while the catalog is being built and the
    index is frozen afterwards.
    """

    def __init__(self, categories: Iterable[Category] = ()):
        self._categories: dict[str, Category] = {}
        self._frozen = False
        for category in categories:
            self.register(category)

    def register(self, category: Category) -> None:
        """Add a category.

        Raises:
            DuplicateCategoryError: If the id is already registered.
            CatalogStateError: If the index has been frozen.
        """
        if self._frozen:
            raise CatalogStateError(
                f"Cannot register category '{category.id}': index is frozen"
            )
        if category.id in self._categories:
            raise DuplicateCategoryError(category.id)
        self._categories[category.id] = category

    def freeze(self) -> None:
        self._frozen = True

    @property
    def frozen(self) -> bool:
        return self._frozen

    def contains(self, category_id: str) -> bool:
        return category_id in self._categories

    def get(self, category_id: str) -> Optional[Category]:
        return self._categories.get(category_id)

    def ids(self) -> tuple[str, ...]:
        return tuple(self._categories)

    def __contains__(self, category_id: object) -> bool:
        return category_id in self._categories

    def __iter__(self) -> Iterator[Category]:
        return iter(self._categories.values())

    def __len__(self) -> int:
        return len(self._categories)
