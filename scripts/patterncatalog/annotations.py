"""Line-indexed explanation annotations for one code block."""

from __future__ import annotations

from collections import OrderedDict
from dataclasses import dataclass
from typing import Any, Iterable, Iterator, Optional

from scripts.patterncatalog.errors import Violation, ViolationKind

DUPLICATE_POLICY_ERROR = "error"
DUPLICATE_POLICY_MERGE = "merge"
VALID_DUPLICATE_POLICIES: list[str] = [DUPLICATE_POLICY_ERROR, DUPLICATE_POLICY_MERGE]


@dataclass(frozen=True)
class Annotation:
    """Explanatory text bound to one source line (1-indexed)."""

    line: int
    text: str


class LineAnnotationSet:
    """Mapping of line number to the explanation strings attached to it.

    The raw annotations are kept in their authored order so that duplicate
    lines can be reported; ``lookup`` always sees every text for a line.
    """

    def __init__(self, annotations: Iterable[Annotation] = ()):
        self._annotations: tuple[Annotation, ...] = tuple(annotations)
        by_line: dict[int, list[str]] = OrderedDict()
        for annotation in self._annotations:
            by_line.setdefault(annotation.line, []).append(annotation.text)
        self._by_line: dict[int, tuple[str, ...]] = {
            line: tuple(texts) for line, texts in by_line.items()
        }

    @classmethod
    def from_records(cls, records: Iterable[dict[str, Any]]) -> LineAnnotationSet:
        """Build from ``{"line": int, "text": str}`` records."""
        return cls(Annotation(line=r["line"], text=r["text"]) for r in records)

    @property
    def annotations(self) -> tuple[Annotation, ...]:
        return self._annotations

    def lines(self) -> tuple[int, ...]:
        """Annotated line numbers in ascending order."""
        return tuple(sorted(self._by_line))

    def lookup(self, line: int) -> tuple[str, ...]:
        """Return the explanations for ``line``; empty if none. Never raises."""
        return self._by_line.get(line, ())

    def validate(
        self,
        line_count: int,
        duplicate_policy: str = DUPLICATE_POLICY_ERROR,
        entry_id: Optional[str] = None,
        language: Optional[str] = None,
    ) -> list[Violation]:
        """Check every annotation against the code block's line count.

        Args:
            line_count: Number of lines in the annotated code block.
            duplicate_policy: "error" reports lines annotated more than once,
                "merge" accepts them.
            entry_id: Owning entry, for the report.
            language: Owning language tag, for the report.

        Returns:
            All violations found, in authored order.
        """
        violations: list[Violation] = []
        field_name = f"implementations.{language}.explanation" if language else "explanation"

        for annotation in self._annotations:
            if annotation.line < 1 or annotation.line > line_count:
                violations.append(Violation(
                    entry_id=entry_id,
                    field=field_name,
                    kind=ViolationKind.OUT_OF_RANGE_ANNOTATION,
                    detail=f"line {annotation.line} is outside 1..{line_count}",
                    language=language,
                    line=annotation.line,
                ))
            if not annotation.text.strip():
                violations.append(Violation(
                    entry_id=entry_id,
                    field=field_name,
                    kind=ViolationKind.EMPTY_TEXT,
                    detail=f"annotation for line {annotation.line} has no text",
                    language=language,
                    line=annotation.line,
                ))

        if duplicate_policy == DUPLICATE_POLICY_ERROR:
            for line, texts in self._by_line.items():
                if len(texts) > 1:
                    violations.append(Violation(
                        entry_id=entry_id,
                        field=field_name,
                        kind=ViolationKind.DUPLICATE_ANNOTATION,
                        detail=f"line {line} is annotated {len(texts)} times",
                        language=language,
                        line=line,
                    ))

        return violations

    def __len__(self) -> int:
        return len(self._annotations)

    def __iter__(self) -> Iterator[Annotation]:
        return iter(self._annotations)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, LineAnnotationSet):
            return NotImplemented
        return self._annotations == other._annotations

    def __hash__(self) -> int:
        return hash(self._annotations)

    def __repr__(self) -> str:
        return f"LineAnnotationSet({len(self._annotations)} annotations)"
