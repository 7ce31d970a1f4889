"""Pattern entry model: theory, language implementations and comparisons.

Entries are immutable once constructed. Validation never raises; it
returns the full list of violations so a hand-authored entry can be fixed
in one editing pass.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Iterable, Mapping, Optional

from scripts.patterncatalog.annotations import DUPLICATE_POLICY_ERROR, LineAnnotationSet
from scripts.patterncatalog.categories import CategoryIndex
from scripts.patterncatalog.config import CatalogConfig, get_default_config
from scripts.patterncatalog.errors import Severity, Violation, ViolationKind

SLUG_RE = re.compile(r"^[a-z0-9]+(?:-[a-z0-9]+)*$")

_LINE_BREAK_RE = re.compile(r"\r\n|\r|\n")


def _frozen_mapping(mapping: Optional[Mapping[str, Any]]) -> Mapping[str, Any]:
    return MappingProxyType(dict(mapping or {}))


@dataclass(frozen=True)
class SourcePosition:
    """Where a record was read from: file path and index within that file."""

    file: str
    index: int

    def __str__(self) -> str:
        return f"{self.file}#{self.index}"


@dataclass(frozen=True)
class LanguageImplementation:
    """One code sample plus its line annotations."""

    code: str
    explanation: LineAnnotationSet = field(default_factory=LineAnnotationSet)

    @classmethod
    def from_record(cls, code: str, explanation: Iterable[dict[str, Any]] = ()) -> LanguageImplementation:
        return cls(code=code, explanation=LineAnnotationSet.from_records(explanation))

    def line_count(self) -> int:
        """Number of lines in the code; an empty string is one empty line."""
        return len(_LINE_BREAK_RE.split(self.code))

    def lines(self) -> list[str]:
        return _LINE_BREAK_RE.split(self.code)

    def validate(
        self,
        duplicate_policy: str = DUPLICATE_POLICY_ERROR,
        entry_id: Optional[str] = None,
        language: Optional[str] = None,
    ) -> list[Violation]:
        return self.explanation.validate(
            self.line_count(),
            duplicate_policy=duplicate_policy,
            entry_id=entry_id,
            language=language,
        )


@dataclass(frozen=True)
class Theory:
    """Theory text for an entry. ``None`` means the field is absent."""

    background: Optional[str] = None
    problem: Optional[str] = None
    solution: Optional[str] = None
    applicability: Optional[tuple[str, ...]] = None
    consequences: Optional[tuple[str, ...]] = None
    benefits: Optional[tuple[str, ...]] = None
    drawbacks: Optional[tuple[str, ...]] = None


@dataclass(frozen=True)
class ComparisonRow:
    """A titled row contrasting language variants on one aspect."""

    title: str
    cells: Mapping[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "cells", _frozen_mapping(self.cells))

    def columns(self) -> tuple[str, ...]:
        return tuple(self.cells)


@dataclass(frozen=True)
class PatternEntry:
    """A documented design pattern."""

    id: str
    category: str
    name: str
    description: str
    theory: Optional[Theory] = None
    implementations: Mapping[str, LanguageImplementation] = field(default_factory=dict)
    comparisons: tuple[ComparisonRow, ...] = ()
    comparison_only: tuple[str, ...] = ()
    notes: Optional[str] = None
    related: tuple[str, ...] = ()
    unknown_fields: tuple[str, ...] = ()
    source: Optional[SourcePosition] = field(default=None, compare=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "implementations", _frozen_mapping(self.implementations))
        object.__setattr__(self, "comparisons", tuple(self.comparisons))
        object.__setattr__(self, "comparison_only", tuple(self.comparison_only))
        object.__setattr__(self, "related", tuple(self.related))
        object.__setattr__(self, "unknown_fields", tuple(self.unknown_fields))

    def languages(self) -> tuple[str, ...]:
        return tuple(self.implementations)

    def to_json(self) -> dict[str, Any]:
        """Serialize to the record shape the loader reads, omitting absent fields."""
        result: dict[str, Any] = {
            "id": self.id,
            "category": self.category,
            "name": self.name,
            "description": self.description,
        }
        if self.theory is not None:
            result["theory"] = {
                name: list(value) if isinstance(value, tuple) else value
                for name, value in vars(self.theory).items()
                if value is not None
            }
        if self.implementations:
            result["implementations"] = {
                language: {
                    "code": implementation.code,
                    "explanation": [
                        {"line": a.line, "text": a.text} for a in implementation.explanation
                    ],
                }
                for language, implementation in self.implementations.items()
            }
        if self.comparisons:
            result["comparisons"] = [
                {"title": row.title, **row.cells} for row in self.comparisons
            ]
        if self.comparison_only:
            result["comparison_only"] = list(self.comparison_only)
        if self.notes is not None:
            result["notes"] = self.notes
        if self.related:
            result["related"] = list(self.related)
        return result

    def validate(
        self,
        category_index: CategoryIndex,
        config: Optional[CatalogConfig] = None,
    ) -> list[Violation]:
        """Validate this entry in isolation (cross-entry checks live in the registry).

        Args:
            category_index: Known categories.
            config: Language tags and policies; defaults when omitted.

        Returns:
            Every violation found, grouped by area in a stable order.
        """
        config = config or get_default_config()
        violations: list[Violation] = []
        violations.extend(self._validate_identity())
        for path in self.unknown_fields:
            violations.append(self._violation(
                path,
                ViolationKind.UNKNOWN_FIELD,
                f"'{path}' is not a recognized field; its content is ignored",
            ))
        if not category_index.contains(self.category):
            violations.append(self._violation(
                "category",
                ViolationKind.UNKNOWN_CATEGORY,
                f"category '{self.category}' is not registered",
            ))
        violations.extend(self._validate_theory())
        violations.extend(self._validate_implementations(config))
        violations.extend(self._validate_comparisons(config))
        return violations

    # -- helpers ------------------------------------------------------------

    def _violation(
        self,
        field_name: str,
        kind: ViolationKind,
        detail: str,
        severity: Severity = Severity.ERROR,
        language: Optional[str] = None,
    ) -> Violation:
        return Violation(
            entry_id=self.id,
            field=field_name,
            kind=kind,
            detail=detail,
            severity=severity,
            language=language,
        )

    def _blank(self, field_name: str, detail: Optional[str] = None) -> Violation:
        return self._violation(field_name, ViolationKind.EMPTY_TEXT, detail or f"'{field_name}' is blank")

    def _validate_identity(self) -> list[Violation]:
        violations: list[Violation] = []
        if not self.id.strip():
            where = f" (record {self.source})" if self.source else ""
            violations.append(self._violation("id", ViolationKind.EMPTY_IDENTITY, f"id is blank{where}"))
        elif not SLUG_RE.match(self.id):
            violations.append(self._violation(
                "id",
                ViolationKind.INVALID_SLUG,
                f"id '{self.id}' must be lowercase words separated by hyphens",
            ))
        if not self.name.strip():
            violations.append(self._violation("name", ViolationKind.EMPTY_IDENTITY, "name is blank"))
        if not self.description.strip():
            violations.append(self._blank("description"))
        if self.notes is not None and not self.notes.strip():
            violations.append(self._blank("notes"))
        return violations

    def _validate_theory(self) -> list[Violation]:
        theory = self.theory
        if theory is None:
            return []

        violations: list[Violation] = []
        for name in ("background", "problem", "solution"):
            value = getattr(theory, name)
            if value is not None and not value.strip():
                violations.append(self._blank(f"theory.{name}"))

        if theory.applicability is not None:
            if not theory.applicability:
                violations.append(self._violation(
                    "theory.applicability",
                    ViolationKind.EMPTY_APPLICABILITY_LIST,
                    "applicability is present but empty",
                ))
            for i, item in enumerate(theory.applicability):
                if not item.strip():
                    violations.append(self._blank(f"theory.applicability[{i}]"))

        for name in ("consequences", "benefits", "drawbacks"):
            items = getattr(theory, name)
            if items is None:
                continue
            if not items:
                violations.append(self._blank(f"theory.{name}", f"{name} is present but empty"))
            for i, item in enumerate(items):
                if not item.strip():
                    violations.append(self._blank(f"theory.{name}[{i}]"))

        return violations

    def _validate_implementations(self, config: CatalogConfig) -> list[Violation]:
        violations: list[Violation] = []
        for language, implementation in self.implementations.items():
            if language not in config.language_tags:
                violations.append(self._violation(
                    f"implementations.{language}",
                    ViolationKind.UNKNOWN_LANGUAGE,
                    f"'{language}' is not one of: {', '.join(config.language_tags)}",
                    language=language,
                ))
            violations.extend(implementation.validate(
                duplicate_policy=config.duplicate_annotations,
                entry_id=self.id,
                language=language,
            ))
        return violations

    def _validate_comparisons(self, config: CatalogConfig) -> list[Violation]:
        violations: list[Violation] = []

        for language in self.comparison_only:
            if language not in config.language_tags:
                violations.append(self._violation(
                    "comparison_only",
                    ViolationKind.UNKNOWN_LANGUAGE,
                    f"'{language}' is not one of: {', '.join(config.language_tags)}",
                    language=language,
                ))

        allowed = set(self.implementations) | set(self.comparison_only) | set(config.comparison_only_columns)

        for i, row in enumerate(self.comparisons):
            field_name = f"comparisons[{i}]"
            if not row.title.strip():
                violations.append(self._blank(f"{field_name}.title"))

            for column, text in row.cells.items():
                if column not in allowed:
                    violations.append(self._violation(
                        f"{field_name}.{column}",
                        ViolationKind.DANGLING_COMPARISON_COLUMN,
                        f"row '{row.title}' has a '{column}' cell but the entry has no"
                        f" '{column}' implementation",
                        language=column,
                    ))
                    if column not in config.language_tags:
                        violations.append(self._violation(
                            f"{field_name}.{column}",
                            ViolationKind.UNKNOWN_LANGUAGE,
                            f"'{column}' is not one of: {', '.join(config.language_tags)}",
                            language=column,
                        ))
                if not text.strip():
                    violations.append(self._blank(f"{field_name}.{column}"))

            for language in self.implementations:
                if language not in row.cells:
                    violations.append(self._violation(
                        f"{field_name}.{language}",
                        ViolationKind.MISSING_COMPARISON_CELL,
                        f"row '{row.title}' has no cell for implemented language '{language}'",
                        severity=Severity.WARNING,
                        language=language,
                    ))

        return violations
