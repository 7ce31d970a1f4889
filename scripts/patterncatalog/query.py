"""Read-only query interface for a built catalog."""

from __future__ import annotations

from collections import Counter
from typing import Any, Iterable, Optional

from scripts.patterncatalog.categories import Category
from scripts.patterncatalog.config import CatalogConfig
from scripts.patterncatalog.errors import CatalogValidationReport
from scripts.patterncatalog.model import PatternEntry
from scripts.patterncatalog.registry import CatalogRegistry


def get_entry(registry: CatalogRegistry, entry_id: str) -> PatternEntry:
    """Return a pattern entry by id.

    Raises:
        NotFoundError: If the id is unknown.
    """
    return registry.get(entry_id)


def list_categories(registry: CatalogRegistry) -> tuple[Category, ...]:
    """Return all categories in taxonomy order."""
    return registry.categories()


def list_entries(
    registry: CatalogRegistry,
    category_id: Optional[str] = None,
) -> tuple[PatternEntry, ...]:
    """Return entries, optionally restricted to one category.

    Args:
        registry: A READY registry.
        category_id: Category to filter by; all entries when None.

    Returns:
        Entries in catalog order. Unknown categories give an empty tuple.
    """
    if category_id is None:
        return registry.entries()
    return registry.list_by_category(category_id)


def get_explanation_for_line(
    registry: CatalogRegistry,
    entry_id: str,
    language: str,
    line: int,
) -> tuple[str, ...]:
    """Return the explanations bound to one line of one code sample.

    Args:
        registry: A READY registry.
        entry_id: Pattern id.
        language: Language tag of the implementation.
        line: 1-indexed line number.

    Returns:
        Explanation strings; empty if the entry has no such implementation
        or the line is not annotated.

    Raises:
        NotFoundError: If the entry id is unknown.
    """
    entry = registry.get(entry_id)
    implementation = entry.implementations.get(language)
    if implementation is None:
        return ()
    return implementation.explanation.lookup(line)


def validate_catalog(
    entries: Iterable[PatternEntry],
    categories: Iterable[Category],
    config: Optional[CatalogConfig] = None,
) -> CatalogValidationReport:
    """Lint a catalog without keeping the registry (intended for CI).

    Returns:
        The full validation report.
    """
    return CatalogRegistry(config).build(entries, categories)


def get_summary(registry: CatalogRegistry) -> dict[str, Any]:
    """Get summary statistics from a READY registry.

    Returns:
        Summary dictionary with counts by category and by language.
    """
    by_language: Counter[str] = Counter()
    theory_only = 0
    annotation_count = 0
    for entry in registry.entries():
        if not entry.implementations:
            theory_only += 1
        for language, implementation in entry.implementations.items():
            by_language[language] += 1
            annotation_count += len(implementation.explanation)

    report = registry.report
    return {
        "entry_count": len(registry),
        "category_count": len(registry.categories()),
        "by_category": {
            category.id: len(registry.list_by_category(category.id))
            for category in registry.categories()
        },
        "by_language": dict(by_language),
        "theory_only": theory_only,
        "annotation_count": annotation_count,
        "warning_count": len(report.warnings) if report else 0,
    }
