"""Catalog registry: owns every entry and validates the whole catalog.

The registry is built once. ``build`` runs every check and returns the
complete report; the registry only answers queries once it is READY, and
a READY registry can never be rebuilt or mutated.
"""

from __future__ import annotations

import logging
from enum import Enum
from types import MappingProxyType
from typing import Iterable, Mapping, Optional, Sequence

from scripts.patterncatalog.categories import Category, CategoryIndex
from scripts.patterncatalog.config import CatalogConfig, get_default_config
from scripts.patterncatalog.errors import (
    CatalogStateError,
    CatalogValidationReport,
    DuplicateCategoryError,
    NotFoundError,
    Violation,
    ViolationKind,
)
from scripts.patterncatalog.model import SLUG_RE, PatternEntry

logger = logging.getLogger(__name__)


class RegistryState(str, Enum):
    """Lifecycle: UNBUILT -> VALIDATING -> READY | FAILED."""

    UNBUILT = "unbuilt"
    VALIDATING = "validating"
    READY = "ready"
    FAILED = "failed"


class CatalogRegistry:
    """Indexes pattern entries by id and by category."""

    def __init__(self, config: Optional[CatalogConfig] = None):
        self.config = config or get_default_config()
        self._state = RegistryState.UNBUILT
        self._report: Optional[CatalogValidationReport] = None
        self._categories = CategoryIndex()
        self._by_id: Mapping[str, PatternEntry] = MappingProxyType({})
        self._by_category: Mapping[str, tuple[PatternEntry, ...]] = MappingProxyType({})

    # -- lifecycle ----------------------------------------------------------

    @property
    def state(self) -> RegistryState:
        return self._state

    @property
    def report(self) -> Optional[CatalogValidationReport]:
        """The report of the last build, or None before the first build."""
        return self._report

    @property
    def is_ready(self) -> bool:
        return self._state is RegistryState.READY

    def build(
        self,
        entries: Iterable[PatternEntry],
        categories: Iterable[Category],
    ) -> CatalogValidationReport:
        """Validate and index the catalog.

        Runs category registration, per-entry validation and cross-entry
        checks, collecting every violation. Error-severity violations leave
        the registry FAILED with nothing indexed; otherwise it becomes READY.

        Args:
            entries: Pattern entries, in display order.
            categories: Category taxonomy, in display order.

        Returns:
            The complete validation report.

        Raises:
            CatalogStateError: If the registry is already READY or mid-build.
        """
        if self._state in (RegistryState.READY, RegistryState.VALIDATING):
            raise CatalogStateError(
                f"Cannot build a registry in state '{self._state.value}'"
            )

        previous_state = self._state
        self._state = RegistryState.VALIDATING

        try:
            entries = list(entries)
            logger.info(f"Building pattern catalog: {len(entries)} entries")
            category_index, violations = self._validate(entries, categories)
        except BaseException:
            self._state = previous_state
            raise

        report = CatalogValidationReport.from_violations(violations)
        self._report = report

        if not report.ok:
            self._state = RegistryState.FAILED
            logger.info(
                f"Catalog build failed: {len(report.errors)} error(s),"
                f" {len(report.warnings)} warning(s)"
            )
            return report

        by_category: dict[str, list[PatternEntry]] = {c.id: [] for c in category_index}
        for entry in entries:
            by_category[entry.category].append(entry)

        self._categories = category_index
        self._by_id = MappingProxyType({entry.id: entry for entry in entries})
        self._by_category = MappingProxyType(
            {cid: tuple(items) for cid, items in by_category.items()}
        )
        self._state = RegistryState.READY
        logger.info(
            f"Catalog ready: {len(self._by_id)} entries in {len(category_index)} categories,"
            f" {len(report.warnings)} warning(s)"
        )
        return report

    def _validate(
        self,
        entries: Sequence[PatternEntry],
        categories: Iterable[Category],
    ) -> tuple[CategoryIndex, list[Violation]]:
        violations: list[Violation] = []

        # Step 1: categories
        category_index, category_violations = self._build_category_index(categories)
        violations.extend(category_violations)

        # Step 2: entries in isolation
        for entry in entries:
            entry_violations = entry.validate(category_index, self.config)
            if entry_violations:
                logger.debug(f"Entry '{entry.id}': {len(entry_violations)} violation(s)")
            violations.extend(entry_violations)

        # Step 3: cross-entry invariants
        violations.extend(_check_duplicate_ids(entries))
        violations.extend(_check_related_links(entries))
        if self.config.require_populated_categories:
            violations.extend(_check_populated_categories(entries, category_index))

        return category_index, violations

    def _build_category_index(
        self, categories: Iterable[Category]
    ) -> tuple[CategoryIndex, list[Violation]]:
        index = CategoryIndex()
        violations: list[Violation] = []

        for position, category in enumerate(categories):
            field_name = f"categories[{position}]"
            if not category.id.strip():
                violations.append(Violation(
                    entry_id=None,
                    field=f"{field_name}.id",
                    kind=ViolationKind.EMPTY_IDENTITY,
                    detail="category id is blank",
                ))
                continue
            if not SLUG_RE.match(category.id):
                violations.append(Violation(
                    entry_id=None,
                    field=f"{field_name}.id",
                    kind=ViolationKind.INVALID_SLUG,
                    detail=f"category id '{category.id}' must be lowercase words separated by hyphens",
                ))
            if not category.name.strip():
                violations.append(Violation(
                    entry_id=None,
                    field=f"{field_name}.name",
                    kind=ViolationKind.EMPTY_IDENTITY,
                    detail=f"category '{category.id}' has a blank name",
                ))
            if not category.description.strip():
                violations.append(Violation(
                    entry_id=None,
                    field=f"{field_name}.description",
                    kind=ViolationKind.EMPTY_TEXT,
                    detail=f"category '{category.id}' has a blank description",
                ))
            try:
                index.register(category)
            except DuplicateCategoryError as e:
                violations.append(Violation(
                    entry_id=None,
                    field=f"{field_name}.id",
                    kind=ViolationKind.DUPLICATE_CATEGORY,
                    detail=e.message,
                ))

        index.freeze()
        return index, violations

    def _require_ready(self) -> None:
        if self._state is not RegistryState.READY:
            raise CatalogStateError(
                f"Catalog is not ready (state '{self._state.value}'); build it without errors first"
            )

    # -- queries ------------------------------------------------------------

    def get(self, entry_id: str) -> PatternEntry:
        """Return the entry with ``entry_id``.

        Raises:
            NotFoundError: If no entry has that id.
            CatalogStateError: If the registry is not READY.
        """
        self._require_ready()
        try:
            return self._by_id[entry_id]
        except KeyError:
            raise NotFoundError(f"Pattern not found: '{entry_id}'", key=entry_id) from None

    def contains(self, entry_id: str) -> bool:
        self._require_ready()
        return entry_id in self._by_id

    def list_by_category(self, category_id: str) -> tuple[PatternEntry, ...]:
        """Entries of a category in catalog order; empty for unknown categories."""
        self._require_ready()
        return self._by_category.get(category_id, ())

    def entries(self) -> tuple[PatternEntry, ...]:
        self._require_ready()
        return tuple(self._by_id.values())

    def categories(self) -> tuple[Category, ...]:
        self._require_ready()
        return tuple(self._categories)

    def get_category(self, category_id: str) -> Category:
        self._require_ready()
        category = self._categories.get(category_id)
        if category is None:
            raise NotFoundError(f"Category not found: '{category_id}'", key=category_id)
        return category

    def __len__(self) -> int:
        return len(self._by_id)

    def __repr__(self) -> str:
        return f"CatalogRegistry(state={self._state.value}, entries={len(self._by_id)})"


# ---------------------------------------------------------------------------
# Cross-entry checks
# ---------------------------------------------------------------------------


def _position(entry: PatternEntry, ordinal: int) -> str:
    return str(entry.source) if entry.source else f"entry #{ordinal}"


def _check_duplicate_ids(entries: Sequence[PatternEntry]) -> list[Violation]:
    """One violation per duplicated id, naming every position it was defined at."""
    positions: dict[str, list[str]] = {}
    for ordinal, entry in enumerate(entries):
        if not entry.id.strip():
            continue
        positions.setdefault(entry.id, []).append(_position(entry, ordinal))

    violations: list[Violation] = []
    for entry_id, where in positions.items():
        if len(where) > 1:
            violations.append(Violation(
                entry_id=entry_id,
                field="id",
                kind=ViolationKind.DUPLICATE_ENTRY_ID,
                detail=f"id '{entry_id}' is defined {len(where)} times: {', '.join(where)}",
            ))
    return violations


def _check_related_links(entries: Sequence[PatternEntry]) -> list[Violation]:
    known = {entry.id for entry in entries}
    violations: list[Violation] = []
    for entry in entries:
        for i, target in enumerate(entry.related):
            if target == entry.id:
                detail = "entry links to itself"
            elif target not in known:
                detail = f"related pattern '{target}' does not exist"
            else:
                continue
            violations.append(Violation(
                entry_id=entry.id,
                field=f"related[{i}]",
                kind=ViolationKind.DANGLING_RELATED_PATTERN,
                detail=detail,
            ))
    return violations


def _check_populated_categories(
    entries: Sequence[PatternEntry], category_index: CategoryIndex
) -> list[Violation]:
    used = {entry.category for entry in entries}
    return [
        Violation(
            entry_id=None,
            field="categories",
            kind=ViolationKind.EMPTY_CATEGORY,
            detail=f"category '{category.id}' has no entries",
        )
        for category in category_index
        if category.id not in used
    ]
