"""Tests for line annotation sets."""

from scripts.patterncatalog.annotations import (
    DUPLICATE_POLICY_MERGE,
    Annotation,
    LineAnnotationSet,
)
from scripts.patterncatalog.errors import ViolationKind


class TestLookup:
    """Tests for LineAnnotationSet.lookup."""

    def test_lookup_returns_texts_for_line(self):
        annotations = LineAnnotationSet.from_records([
            {"line": 1, "text": "first"},
            {"line": 3, "text": "third"},
        ])
        assert annotations.lookup(3) == ("third",)

    def test_lookup_missing_line_returns_empty(self):
        """Unannotated lines give an empty result, never an error."""
        annotations = LineAnnotationSet.from_records([{"line": 1, "text": "first"}])
        assert annotations.lookup(2) == ()
        assert annotations.lookup(-5) == ()

    def test_lookup_keeps_every_text_for_duplicate_line(self):
        annotations = LineAnnotationSet([
            Annotation(line=2, text="a"),
            Annotation(line=2, text="b"),
        ])
        assert annotations.lookup(2) == ("a", "b")

    def test_lines_are_sorted(self):
        annotations = LineAnnotationSet.from_records([
            {"line": 5, "text": "x"},
            {"line": 2, "text": "y"},
        ])
        assert annotations.lines() == (2, 5)

    def test_len_counts_raw_annotations(self):
        annotations = LineAnnotationSet([
            Annotation(line=2, text="a"),
            Annotation(line=2, text="b"),
        ])
        assert len(annotations) == 2

    def test_equal_sets_compare_equal(self):
        records = [{"line": 1, "text": "x"}]
        assert LineAnnotationSet.from_records(records) == LineAnnotationSet.from_records(records)


class TestValidate:
    """Tests for LineAnnotationSet.validate."""

    def test_lines_in_range_are_valid(self):
        annotations = LineAnnotationSet.from_records([
            {"line": 1, "text": "first"},
            {"line": 4, "text": "last"},
        ])
        assert annotations.validate(4) == []

    def test_line_past_end_is_out_of_range(self):
        annotations = LineAnnotationSet.from_records([{"line": 3, "text": "x"}])
        violations = annotations.validate(2, entry_id="singleton", language="java")

        assert len(violations) == 1
        v = violations[0]
        assert v.kind is ViolationKind.OUT_OF_RANGE_ANNOTATION
        assert v.entry_id == "singleton"
        assert v.language == "java"
        assert v.line == 3
        assert v.field == "implementations.java.explanation"

    def test_line_zero_is_out_of_range(self):
        annotations = LineAnnotationSet.from_records([{"line": 0, "text": "x"}])
        violations = annotations.validate(5)
        assert [v.kind for v in violations] == [ViolationKind.OUT_OF_RANGE_ANNOTATION]

    def test_blank_text_is_reported(self):
        annotations = LineAnnotationSet.from_records([{"line": 1, "text": "   "}])
        violations = annotations.validate(1)
        assert [v.kind for v in violations] == [ViolationKind.EMPTY_TEXT]

    def test_duplicate_line_is_error_by_default(self):
        annotations = LineAnnotationSet.from_records([
            {"line": 2, "text": "a"},
            {"line": 2, "text": "b"},
        ])
        violations = annotations.validate(3)

        assert len(violations) == 1
        assert violations[0].kind is ViolationKind.DUPLICATE_ANNOTATION
        assert violations[0].line == 2
        assert "2 times" in violations[0].detail

    def test_duplicate_line_accepted_with_merge_policy(self):
        annotations = LineAnnotationSet.from_records([
            {"line": 2, "text": "a"},
            {"line": 2, "text": "b"},
        ])
        assert annotations.validate(3, duplicate_policy=DUPLICATE_POLICY_MERGE) == []

    def test_every_problem_is_reported(self):
        """Validation collects all violations rather than stopping at the first."""
        annotations = LineAnnotationSet.from_records([
            {"line": 9, "text": "a"},
            {"line": 10, "text": ""},
        ])
        kinds = [v.kind for v in annotations.validate(2)]
        assert kinds == [
            ViolationKind.OUT_OF_RANGE_ANNOTATION,
            ViolationKind.OUT_OF_RANGE_ANNOTATION,
            ViolationKind.EMPTY_TEXT,
        ]
