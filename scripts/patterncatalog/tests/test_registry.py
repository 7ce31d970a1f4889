"""Tests for building and querying the catalog registry."""

import dataclasses
import logging

import pytest

from scripts.patterncatalog.categories import Category
from scripts.patterncatalog.config import CatalogConfig
from scripts.patterncatalog.errors import (
    CatalogStateError,
    NotFoundError,
    ViolationKind,
)
from scripts.patterncatalog.model import ComparisonRow, LanguageImplementation, SourcePosition
from scripts.patterncatalog.registry import CatalogRegistry, RegistryState


@pytest.fixture
def entries(make_entry, java_singleton):
    return [
        java_singleton,
        make_entry("factory-method"),
        make_entry("observer", category="behavioral", related=("command",)),
        make_entry("command", category="behavioral"),
    ]


class TestLifecycle:
    """Tests for the Unbuilt -> Validating -> Ready/Failed state machine."""

    def test_new_registry_is_unbuilt(self):
        registry = CatalogRegistry()
        assert registry.state is RegistryState.UNBUILT
        assert registry.report is None
        assert not registry.is_ready

    def test_valid_catalog_becomes_ready(self, entries, categories):
        registry = CatalogRegistry()
        report = registry.build(entries, categories)

        assert report.ok
        assert registry.state is RegistryState.READY
        assert registry.report is report
        assert len(registry) == 4

    def test_invalid_catalog_becomes_failed(self, make_entry, categories):
        registry = CatalogRegistry()
        report = registry.build([make_entry(category="unknown")], categories)

        assert not report.ok
        assert registry.state is RegistryState.FAILED
        assert len(registry) == 0

    def test_failed_registry_rejects_queries(self, make_entry, categories):
        registry = CatalogRegistry()
        registry.build([make_entry(category="unknown")], categories)
        with pytest.raises(CatalogStateError):
            registry.get("singleton")

    def test_unbuilt_registry_rejects_queries(self):
        with pytest.raises(CatalogStateError):
            CatalogRegistry().list_by_category("creational")

    def test_ready_registry_cannot_be_rebuilt(self, entries, categories):
        registry = CatalogRegistry()
        registry.build(entries, categories)
        with pytest.raises(CatalogStateError):
            registry.build(entries, categories)

    def test_failed_registry_can_be_rebuilt(self, make_entry, entries, categories):
        registry = CatalogRegistry()
        registry.build([make_entry(category="unknown")], categories)
        report = registry.build(entries, categories)
        assert report.ok
        assert registry.is_ready

    def test_failing_entry_iterable_restores_state(self, entries, categories):
        """An iterable that raises mid-build leaves the registry rebuildable."""

        def broken_source():
            yield entries[0]
            raise RuntimeError("data source went away")

        registry = CatalogRegistry()
        with pytest.raises(RuntimeError):
            registry.build(broken_source(), categories)
        assert registry.state is RegistryState.UNBUILT

        report = registry.build(entries, categories)
        assert report.ok
        assert registry.is_ready

    def test_warnings_do_not_fail_the_build(self, java_singleton, categories):
        entry = dataclasses.replace(
            java_singleton,
            comparisons=(ComparisonRow(title="Thread safety", cells={}),),
        )
        registry = CatalogRegistry()
        report = registry.build([entry], categories)

        assert registry.is_ready
        assert len(report.warnings) == 1
        assert report.errors == ()

    def test_build_logs_outcome(self, entries, categories, caplog):
        with caplog.at_level(logging.INFO, logger="scripts.patterncatalog.registry"):
            CatalogRegistry().build(entries, categories)
        assert "Catalog ready: 4 entries" in caplog.text


class TestQueries:
    def test_round_trip_identity(self, entries, categories):
        """Every entry used to build the registry comes back unchanged."""
        registry = CatalogRegistry()
        registry.build(entries, categories)
        for entry in entries:
            assert registry.get(entry.id) is entry

    def test_get_unknown_id_raises_not_found(self, entries, categories):
        registry = CatalogRegistry()
        registry.build(entries, categories)
        with pytest.raises(NotFoundError) as exc_info:
            registry.get("visitor")
        assert exc_info.value.key == "visitor"
        assert isinstance(exc_info.value, LookupError)

    def test_list_by_category_keeps_catalog_order(self, entries, categories):
        registry = CatalogRegistry()
        registry.build(entries, categories)
        assert [e.id for e in registry.list_by_category("creational")] == [
            "singleton",
            "factory-method",
        ]

    def test_list_by_unknown_category_is_empty(self, entries, categories):
        registry = CatalogRegistry()
        registry.build(entries, categories)
        assert registry.list_by_category("nonexistent") == ()

    def test_list_by_registered_empty_category(self, entries, categories):
        registry = CatalogRegistry()
        registry.build(entries, categories)
        assert registry.list_by_category("structural") == ()

    def test_categories_in_taxonomy_order(self, entries, categories):
        registry = CatalogRegistry()
        registry.build(entries, categories)
        assert [c.id for c in registry.categories()] == ["creational", "structural", "behavioral"]
        assert registry.get_category("behavioral").name == "Behavioral Patterns"

    def test_get_unknown_category_raises(self, entries, categories):
        registry = CatalogRegistry()
        registry.build(entries, categories)
        with pytest.raises(NotFoundError):
            registry.get_category("nonexistent")

    def test_idempotent_build(self, entries, categories):
        """Two builds from the same input answer every query identically."""
        first = CatalogRegistry()
        second = CatalogRegistry()
        first.build(entries, categories)
        second.build(entries, categories)

        assert first.entries() == second.entries()
        for category in categories:
            assert first.list_by_category(category.id) == second.list_by_category(category.id)
        for entry in entries:
            assert first.get(entry.id) == second.get(entry.id)


class TestCatalogChecks:
    """Cross-entry and category checks run during build."""

    def test_singleton_out_of_range_annotation(self, make_entry, categories):
        entry = make_entry(
            implementations={
                "java": LanguageImplementation.from_record(
                    "line1\nline2", [{"line": 3, "text": "x"}]
                ),
            },
        )
        report = CatalogRegistry().build([entry], categories)

        assert len(report) == 1
        violation = report.violations[0]
        assert violation.kind is ViolationKind.OUT_OF_RANGE_ANNOTATION
        assert violation.entry_id == "singleton"
        assert violation.language == "java"
        assert violation.line == 3

    def test_duplicate_entry_id_names_both_positions(self, make_entry, categories):
        first = make_entry("command", category="behavioral",
                           source=SourcePosition("patterns/behavioral.yaml", 2))
        second = make_entry("command", category="behavioral", name="Command (v2)",
                            source=SourcePosition("patterns/extra.yaml", 0))
        registry = CatalogRegistry()
        report = registry.build([first, second], categories)

        assert registry.state is RegistryState.FAILED
        duplicates = report.of_kind(ViolationKind.DUPLICATE_ENTRY_ID)
        assert len(duplicates) == 1
        assert duplicates[0].entry_id == "command"
        assert "patterns/behavioral.yaml#2" in duplicates[0].detail
        assert "patterns/extra.yaml#0" in duplicates[0].detail

    def test_duplicate_without_source_uses_ordinal(self, make_entry, categories):
        report = CatalogRegistry().build([make_entry(), make_entry()], categories)
        detail = report.of_kind(ViolationKind.DUPLICATE_ENTRY_ID)[0].detail
        assert "entry #0" in detail
        assert "entry #1" in detail

    def test_duplicate_category(self, make_entry, categories):
        categories = categories + [Category(id="creational", name="Again", description="Dup.")]
        report = CatalogRegistry().build([make_entry()], categories)
        assert [v.kind for v in report] == [ViolationKind.DUPLICATE_CATEGORY]
        assert report.violations[0].entry_id is None

    def test_invalid_category_records(self, make_entry, categories):
        categories = categories + [
            Category(id="", name="Blank", description="No id."),
            Category(id="Data_Access", name="", description=" "),
        ]
        report = CatalogRegistry().build([make_entry()], categories)
        assert [v.kind for v in report] == [
            ViolationKind.EMPTY_IDENTITY,
            ViolationKind.INVALID_SLUG,
            ViolationKind.EMPTY_IDENTITY,
            ViolationKind.EMPTY_TEXT,
        ]

    def test_dangling_related_pattern(self, make_entry, categories):
        entry = make_entry(related=("prototype", "singleton"))
        report = CatalogRegistry().build([entry], categories)

        dangling = report.of_kind(ViolationKind.DANGLING_RELATED_PATTERN)
        assert [v.field for v in dangling] == ["related[0]", "related[1]"]
        assert "prototype" in dangling[0].detail
        assert "itself" in dangling[1].detail

    def test_empty_category_only_when_required(self, make_entry, categories):
        entries = [make_entry()]
        assert CatalogRegistry().build(entries, categories).ok

        config = CatalogConfig(require_populated_categories=True)
        report = CatalogRegistry(config).build(entries, categories)
        empty = report.of_kind(ViolationKind.EMPTY_CATEGORY)
        assert [v.detail for v in empty] == [
            "category 'structural' has no entries",
            "category 'behavioral' has no entries",
        ]

    def test_all_violations_collected_in_one_pass(self, make_entry, categories):
        entries = [
            make_entry("a", category="nope"),
            make_entry("b", name=""),
            make_entry("b"),
        ]
        report = CatalogRegistry().build(entries, categories)
        assert report.counts_by_kind() == {
            "unknown_category": 1,
            "empty_identity": 1,
            "duplicate_entry_id": 1,
        }
