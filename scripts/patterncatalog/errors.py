"""Error taxonomy and validation report for the pattern catalog.

Two kinds of problems exist:

- Data-authoring problems (bad line numbers, unknown categories, dangling
  comparison columns, ...) are collected as ``Violation`` records in a
  ``CatalogValidationReport`` so a whole catalog can be linted in one pass.
- Caller bugs against a built registry (unknown id, query before the
  registry is ready) raise a ``CatalogError`` subclass immediately.
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Iterable, Optional


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------


class CatalogError(Exception):
    """Base error for the pattern catalog.

    Attributes:
        message: Human-readable error description.
        file: Path to the file that caused the error.
        line: Line number (or record index) where the error was detected.
        error_type: Machine-readable error category.
    """

    def __init__(
        self,
        message: str,
        file: Optional[str] = None,
        line: Optional[int] = None,
        error_type: str = "catalog_invalid",
    ):
        super().__init__(message)
        self.message = message
        self.file = file
        self.line = line
        self.error_type = error_type

    def to_json(self) -> dict[str, Any]:
        """Serialize error to JSON format for machine parsing."""
        result: dict[str, Any] = {
            "error": self.error_type,
            "message": self.message,
        }
        if self.file:
            result["file"] = self.file
        if self.line is not None:
            result["line"] = self.line
        return result

    def __str__(self) -> str:
        parts = [self.message]
        if self.file:
            parts.append(f"file: {self.file}")
        if self.line is not None:
            parts.append(f"line: {self.line}")
        return " | ".join(parts)


class NotFoundError(CatalogError, LookupError):
    """Raised when a query names an entry that is not in the registry."""

    def __init__(self, message: str, key: Optional[str] = None):
        super().__init__(message, error_type="not_found")
        self.key = key


class CatalogStateError(CatalogError):
    """Raised when an operation is not allowed in the registry's current state."""

    def __init__(self, message: str):
        super().__init__(message, error_type="invalid_state")


class DuplicateCategoryError(CatalogError):
    """Raised by CategoryIndex.register when a category id is already taken."""

    def __init__(self, category_id: str):
        super().__init__(
            f"Category '{category_id}' is already registered",
            error_type="duplicate_category",
        )
        self.category_id = category_id


class RecordError(CatalogError):
    """Structural error in a raw entry record (cannot be mapped to the model)."""

    def __init__(
        self,
        message: str,
        file: Optional[str] = None,
        line: Optional[int] = None,
    ):
        super().__init__(message, file=file, line=line, error_type="record_invalid")


# ---------------------------------------------------------------------------
# Violations
# ---------------------------------------------------------------------------


class ViolationKind(str, Enum):
    """Machine-readable kind of a data-authoring violation."""

    OUT_OF_RANGE_ANNOTATION = "out_of_range_annotation"
    DUPLICATE_ANNOTATION = "duplicate_annotation"
    UNKNOWN_CATEGORY = "unknown_category"
    EMPTY_IDENTITY = "empty_identity"
    INVALID_SLUG = "invalid_slug"
    EMPTY_TEXT = "empty_text"
    EMPTY_APPLICABILITY_LIST = "empty_applicability_list"
    UNKNOWN_LANGUAGE = "unknown_language"
    DANGLING_COMPARISON_COLUMN = "dangling_comparison_column"
    MISSING_COMPARISON_CELL = "missing_comparison_cell"
    DUPLICATE_CATEGORY = "duplicate_category"
    DUPLICATE_ENTRY_ID = "duplicate_entry_id"
    DANGLING_RELATED_PATTERN = "dangling_related_pattern"
    EMPTY_CATEGORY = "empty_category"
    UNKNOWN_FIELD = "unknown_field"


class Severity(str, Enum):
    """Errors fail the build; warnings are reported only."""

    ERROR = "error"
    WARNING = "warning"


@dataclass(frozen=True)
class Violation:
    """A single problem found while validating the catalog.

    ``entry_id`` is None for catalog-level problems (categories, empty
    categories). ``language`` and ``line`` are set for annotation problems.
    """

    entry_id: Optional[str]
    field: str
    kind: ViolationKind
    detail: str
    severity: Severity = Severity.ERROR
    language: Optional[str] = None
    line: Optional[int] = None

    @property
    def is_error(self) -> bool:
        return self.severity is Severity.ERROR

    def to_json(self) -> dict[str, Any]:
        """Serialize violation to JSON format for machine parsing."""
        result: dict[str, Any] = {
            "entry_id": self.entry_id,
            "field": self.field,
            "kind": self.kind.value,
            "severity": self.severity.value,
            "detail": self.detail,
        }
        if self.language is not None:
            result["language"] = self.language
        if self.line is not None:
            result["line"] = self.line
        return result

    def __str__(self) -> str:
        where = self.entry_id or "<catalog>"
        return f"[{self.severity.value}] {where}: {self.field}: {self.kind.value}: {self.detail}"


@dataclass(frozen=True)
class CatalogValidationReport:
    """Every violation found in one validation pass, in discovery order."""

    violations: tuple[Violation, ...] = field(default_factory=tuple)

    @classmethod
    def from_violations(cls, violations: Iterable[Violation]) -> CatalogValidationReport:
        return cls(violations=tuple(violations))

    @property
    def errors(self) -> tuple[Violation, ...]:
        return tuple(v for v in self.violations if v.is_error)

    @property
    def warnings(self) -> tuple[Violation, ...]:
        return tuple(v for v in self.violations if not v.is_error)

    @property
    def ok(self) -> bool:
        """True when the report contains no error-severity violations."""
        return not self.errors

    def of_kind(self, kind: ViolationKind) -> tuple[Violation, ...]:
        return tuple(v for v in self.violations if v.kind is kind)

    def for_entry(self, entry_id: str) -> tuple[Violation, ...]:
        return tuple(v for v in self.violations if v.entry_id == entry_id)

    def counts_by_kind(self) -> dict[str, int]:
        return dict(Counter(v.kind.value for v in self.violations))

    def __len__(self) -> int:
        return len(self.violations)

    def __iter__(self):
        return iter(self.violations)

    def to_json(self) -> dict[str, Any]:
        """Serialize the full report, with totals, for CI output."""
        return {
            "ok": self.ok,
            "error_count": len(self.errors),
            "warning_count": len(self.warnings),
            "by_kind": self.counts_by_kind(),
            "violations": [v.to_json() for v in self.violations],
        }
