"""Shared fixtures for pattern catalog tests."""

import pytest
import yaml

from scripts.patterncatalog.categories import Category
from scripts.patterncatalog.model import LanguageImplementation, PatternEntry


@pytest.fixture
def categories():
    """A small taxonomy in display order."""
    return [
        Category(id="creational", name="Creational Patterns", description="Object creation."),
        Category(id="structural", name="Structural Patterns", description="Object composition."),
        Category(id="behavioral", name="Behavioral Patterns", description="Object collaboration."),
    ]


@pytest.fixture
def make_entry():
    """Factory for entries with sensible defaults; override any field by keyword."""

    def _make(entry_id="singleton", category="creational", **kwargs):
        kwargs.setdefault("name", entry_id.replace("-", " ").title())
        kwargs.setdefault("description", f"The {entry_id} pattern.")
        return PatternEntry(id=entry_id, category=category, **kwargs)

    return _make


@pytest.fixture
def java_singleton(make_entry):
    """A valid entry with one annotated Java sample."""
    return make_entry(
        implementations={
            "java": LanguageImplementation.from_record(
                "public class Singleton {\n"
                "    private static final Singleton INSTANCE = new Singleton();\n"
                "    private Singleton() {}\n"
                "}",
                [
                    {"line": 2, "text": "Eager instance."},
                    {"line": 3, "text": "Private constructor."},
                ],
            ),
        },
    )


@pytest.fixture
def pattern_project(tmp_path):
    """A project directory with a config and two valid pattern files."""
    config_dir = tmp_path / ".patterncatalog"
    config_dir.mkdir()
    (config_dir / "config.yaml").write_text(yaml.dump({
        "version": "1.0",
        "data_dirs": ["patterns"],
    }))

    patterns_dir = tmp_path / "patterns"
    patterns_dir.mkdir()
    (patterns_dir / "creational.yaml").write_text(yaml.dump({
        "patterns": [
            {
                "id": "singleton",
                "category": "creational",
                "name": "Singleton",
                "description": "One instance per process.",
                "implementations": {
                    "java": {
                        "code": "class Singleton {\n    static Singleton get() { return I; }\n}",
                        "explanation": [{"line": 2, "text": "Global access point."}],
                    },
                },
                "related": ["observer"],
            },
        ],
    }))
    (patterns_dir / "observer.yaml").write_text(yaml.dump({
        "id": "observer",
        "category": "behavioral",
        "name": "Observer",
        "description": "Notify dependents of state changes.",
        "theory": {
            "problem": "Objects need to react to changes elsewhere.",
            "applicability": ["A change to one object requires changing others."],
        },
    }))
    return tmp_path
