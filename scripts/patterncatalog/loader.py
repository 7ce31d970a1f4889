"""Load pattern entry and category records from YAML/JSON files.

Follows the three-stage validation pattern (parse → structure →
semantics). This module covers the first two stages and raises
``RecordError`` for anything that cannot be mapped onto the model; the
semantic stage is the registry build, which collects violations instead
of raising.

Accepted entry file shapes::

    # a single record
    id: singleton
    category: creational
    ...

    # a list of records, or a mapping with a 'patterns' list
    patterns:
      - id: singleton
        ...
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

import yaml

from scripts.patterncatalog.annotations import Annotation, LineAnnotationSet
from scripts.patterncatalog.categories import Category
from scripts.patterncatalog.config import CatalogConfig
from scripts.patterncatalog.errors import RecordError
from scripts.patterncatalog.model import (
    ComparisonRow,
    LanguageImplementation,
    PatternEntry,
    SourcePosition,
    Theory,
)

logger = logging.getLogger(__name__)

YAML_SUFFIXES: tuple[str, ...] = (".yaml", ".yml")
DATA_SUFFIXES: tuple[str, ...] = YAML_SUFFIXES + (".json",)

THEORY_TEXT_FIELDS: list[str] = ["background", "problem", "solution"]
THEORY_LIST_FIELDS: list[str] = ["applicability", "consequences", "benefits", "drawbacks"]
ENTRY_REQUIRED_FIELDS: list[str] = ["id", "category", "name", "description"]
ENTRY_OPTIONAL_FIELDS: list[str] = [
    "theory",
    "implementations",
    "comparisons",
    "comparison_only",
    "notes",
    "related",
]
IMPLEMENTATION_FIELDS: list[str] = ["code", "explanation"]
ANNOTATION_FIELDS: list[str] = ["line", "text"]
CATEGORY_REQUIRED_FIELDS: list[str] = ["id", "name", "description"]


@dataclass
class LoadResult:
    """Everything read from a data directory, plus the files that failed."""

    entries: list[PatternEntry] = field(default_factory=list)
    categories: list[Category] = field(default_factory=list)
    errors: list[RecordError] = field(default_factory=list)
    files: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors


# ---------------------------------------------------------------------------
# Stage 1: parsing
# ---------------------------------------------------------------------------


def load_structured(path: Path) -> Any:
    """Load and parse a YAML or JSON file.

    Args:
        path: Path to a .yaml, .yml or .json file.

    Returns:
        The parsed document.

    Raises:
        RecordError: If the file is missing, unreadable, empty or malformed.
    """
    file_str = str(path)

    if not path.exists():
        raise RecordError(f"File not found: {path}", file=file_str)

    try:
        content = path.read_text(encoding="utf-8")
    except OSError as e:
        raise RecordError(f"Cannot read file: {e}", file=file_str)

    if not content.strip():
        raise RecordError("File is empty", file=file_str)

    if path.suffix == ".json":
        try:
            return json.loads(content)
        except json.JSONDecodeError as e:
            raise RecordError(f"Invalid JSON: {e}", file=file_str)

    try:
        return yaml.safe_load(content)
    except yaml.YAMLError as e:
        raise RecordError(f"Invalid YAML: {e}", file=file_str)


# ---------------------------------------------------------------------------
# Stage 2: structure mapping
# ---------------------------------------------------------------------------


def _require_str(value: Any, name: str, file: Optional[str], index: Optional[int]) -> str:
    if not isinstance(value, str):
        raise RecordError(f"'{name}' must be a string", file=file, line=index)
    return value


def _optional_str(data: dict[str, Any], name: str, file: Optional[str], index: Optional[int]) -> Optional[str]:
    if name not in data or data[name] is None:
        return None
    return _require_str(data[name], name, file, index)


def _str_list(value: Any, name: str, file: Optional[str], index: Optional[int]) -> tuple[str, ...]:
    if not isinstance(value, list):
        raise RecordError(f"'{name}' must be a list", file=file, line=index)
    return tuple(_require_str(item, f"{name}[{i}]", file, index) for i, item in enumerate(value))


def _require_mapping(value: Any, name: str, file: Optional[str], index: Optional[int]) -> dict[str, Any]:
    if not isinstance(value, dict):
        raise RecordError(f"'{name}' must be a mapping", file=file, line=index)
    return value


def _unknown_keys(data: dict[str, Any], known: list[str], prefix: str = "") -> list[str]:
    """Dotted paths of keys in ``data`` that are not in ``known``."""
    return [f"{prefix}{key}" for key in data if key not in known]


def _is_yaml_source(file: Optional[str]) -> bool:
    return file is not None and Path(file).suffix in YAML_SUFFIXES


def _normalize_code(code: str) -> str:
    # YAML block scalars end with a newline that is not part of the sample
    if code.endswith("\r\n"):
        return code[:-2]
    if code.endswith("\n"):
        return code[:-1]
    return code


def _parse_theory(
    data: Any,
    file: Optional[str],
    index: Optional[int],
    unknown: list[str],
) -> Theory:
    data = _require_mapping(data, "theory", file, index)
    unknown.extend(_unknown_keys(data, THEORY_TEXT_FIELDS + THEORY_LIST_FIELDS, "theory."))

    lists: dict[str, Optional[tuple[str, ...]]] = {}
    for name in THEORY_LIST_FIELDS:
        value = data.get(name)
        lists[name] = None if value is None else _str_list(value, f"theory.{name}", file, index)

    return Theory(
        background=_optional_str(data, "background", file, index),
        problem=_optional_str(data, "problem", file, index),
        solution=_optional_str(data, "solution", file, index),
        applicability=lists["applicability"],
        consequences=lists["consequences"],
        benefits=lists["benefits"],
        drawbacks=lists["drawbacks"],
    )


def _parse_annotations(
    raw: Any,
    language: str,
    file: Optional[str],
    index: Optional[int],
    unknown: list[str],
) -> LineAnnotationSet:
    name = f"implementations.{language}.explanation"
    if raw is None:
        return LineAnnotationSet()
    if not isinstance(raw, list):
        raise RecordError(f"'{name}' must be a list", file=file, line=index)

    annotations = []
    for i, item in enumerate(raw):
        item = _require_mapping(item, f"{name}[{i}]", file, index)
        unknown.extend(_unknown_keys(item, ANNOTATION_FIELDS, f"{name}[{i}]."))
        line = item.get("line")
        # bool is an int subclass; 'line: true' is an authoring mistake
        if not isinstance(line, int) or isinstance(line, bool):
            raise RecordError(
                f"'{name}[{i}].line' must be an integer, got {line!r}",
                file=file,
                line=index,
            )
        text = _require_str(item.get("text"), f"{name}[{i}].text", file, index)
        annotations.append(Annotation(line=line, text=text))
    return LineAnnotationSet(annotations)


def _parse_implementations(
    data: Any,
    file: Optional[str],
    index: Optional[int],
    unknown: list[str],
) -> dict[str, LanguageImplementation]:
    data = _require_mapping(data, "implementations", file, index)
    trim_code = _is_yaml_source(file)
    implementations: dict[str, LanguageImplementation] = {}
    for language, raw in data.items():
        language = str(language)
        prefix = f"implementations.{language}"
        raw = _require_mapping(raw, prefix, file, index)
        if "code" not in raw:
            raise RecordError(
                f"Missing required field '{prefix}.code'",
                file=file,
                line=index,
            )
        unknown.extend(_unknown_keys(raw, IMPLEMENTATION_FIELDS, f"{prefix}."))
        code = _require_str(raw["code"], f"{prefix}.code", file, index)
        implementations[language] = LanguageImplementation(
            code=_normalize_code(code) if trim_code else code,
            explanation=_parse_annotations(raw.get("explanation"), language, file, index, unknown),
        )
    return implementations


def _parse_comparisons(
    data: Any,
    file: Optional[str],
    index: Optional[int],
) -> tuple[ComparisonRow, ...]:
    if not isinstance(data, list):
        raise RecordError("'comparisons' must be a list", file=file, line=index)

    rows = []
    for i, raw in enumerate(data):
        raw = _require_mapping(raw, f"comparisons[{i}]", file, index)
        if "title" not in raw:
            raise RecordError(
                f"Missing required field 'comparisons[{i}].title'",
                file=file,
                line=index,
            )
        title = _require_str(raw["title"], f"comparisons[{i}].title", file, index)
        # every other key is a language column, checked during validation
        cells = {
            str(column): _require_str(text, f"comparisons[{i}].{column}", file, index)
            for column, text in raw.items()
            if column != "title"
        }
        rows.append(ComparisonRow(title=title, cells=cells))
    return tuple(rows)


def parse_entry(
    data: Any,
    file: Optional[str] = None,
    index: Optional[int] = None,
) -> PatternEntry:
    """Map a raw record onto a PatternEntry.

    Keys the model does not define are kept in ``unknown_fields`` so the
    validator can report them. Code read from a YAML file loses the one
    trailing line break a block scalar adds; JSON and in-memory records keep
    their code verbatim.

    Args:
        data: Raw record (a mapping).
        file: Source file path for error reporting.
        index: Position of the record within its file.

    Returns:
        The parsed entry, not yet semantically validated.

    Raises:
        RecordError: If required fields are missing or have the wrong type.
    """
    if not isinstance(data, dict):
        raise RecordError("Pattern record must be a mapping", file=file, line=index)

    for key in ENTRY_REQUIRED_FIELDS:
        if key not in data:
            raise RecordError(f"Missing required field: '{key}'", file=file, line=index)

    unknown = _unknown_keys(data, ENTRY_REQUIRED_FIELDS + ENTRY_OPTIONAL_FIELDS)

    theory = None
    if data.get("theory") is not None:
        theory = _parse_theory(data["theory"], file, index, unknown)

    implementations = _parse_implementations(data.get("implementations") or {}, file, index, unknown)

    return PatternEntry(
        id=_require_str(data["id"], "id", file, index),
        category=_require_str(data["category"], "category", file, index),
        name=_require_str(data["name"], "name", file, index),
        description=_require_str(data["description"], "description", file, index),
        theory=theory,
        implementations=implementations,
        comparisons=_parse_comparisons(data.get("comparisons") or [], file, index),
        comparison_only=_str_list(data.get("comparison_only") or [], "comparison_only", file, index),
        notes=_optional_str(data, "notes", file, index),
        related=_str_list(data.get("related") or [], "related", file, index),
        unknown_fields=tuple(unknown),
        source=SourcePosition(file=file or "<memory>", index=index or 0),
    )


def parse_category(
    data: Any,
    file: Optional[str] = None,
    index: Optional[int] = None,
) -> Category:
    """Map a raw record onto a Category.

    Raises:
        RecordError: If required fields are missing or have the wrong type.
    """
    if not isinstance(data, dict):
        raise RecordError("Category record must be a mapping", file=file, line=index)
    for key in CATEGORY_REQUIRED_FIELDS:
        if key not in data:
            raise RecordError(f"Missing required field: '{key}'", file=file, line=index)
    return Category(
        id=_require_str(data["id"], "id", file, index),
        name=_require_str(data["name"], "name", file, index),
        description=_require_str(data["description"], "description", file, index),
    )


def _records(document: Any, list_key: str, file: str) -> list[Any]:
    """Normalize a document to a list of records."""
    if isinstance(document, list):
        return document
    if isinstance(document, dict):
        if list_key in document:
            records = document[list_key]
            if not isinstance(records, list):
                raise RecordError(f"'{list_key}' must be a list", file=file)
            return records
        return [document]
    raise RecordError(
        f"Expected a record, a list of records or a '{list_key}' list",
        file=file,
    )


def load_entries_file(path: Path | str) -> tuple[list[PatternEntry], list[RecordError]]:
    """Load every pattern record in one file.

    A malformed record is reported and skipped; the file's other records are
    still returned so they can be validated.

    Returns:
        Tuple of (entries, record errors).

    Raises:
        RecordError: If the file itself cannot be read or has the wrong shape.
    """
    path = Path(path)
    file_str = str(path)
    records = _records(load_structured(path), "patterns", file_str)
    logger.debug(f"Read {len(records)} pattern record(s) from {file_str}")

    entries: list[PatternEntry] = []
    errors: list[RecordError] = []
    for i, record in enumerate(records):
        try:
            entries.append(parse_entry(record, file_str, i))
        except RecordError as e:
            errors.append(e)
    return entries, errors


def load_categories_file(path: Path | str) -> list[Category]:
    """Load the category taxonomy.

    Raises:
        RecordError: If the file or any record is malformed.
    """
    path = Path(path)
    file_str = str(path)
    records = _records(load_structured(path), "categories", file_str)
    return [parse_category(record, file_str, i) for i, record in enumerate(records)]


# ---------------------------------------------------------------------------
# Directory loading
# ---------------------------------------------------------------------------


def find_data_files(root: Path, data_dirs: list[str]) -> list[Path]:
    """Find entry files under the configured data directories, in sorted order."""
    files: list[Path] = []
    for data_dir in data_dirs:
        base = root / data_dir
        if not base.is_dir():
            logger.warning(f"Data directory not found, skipping: {base}")
            continue
        files.extend(
            p for p in sorted(base.rglob("*"))
            if p.is_file() and p.suffix in DATA_SUFFIXES
        )
    return files


def load_catalog_dir(root: Path | str, config: CatalogConfig) -> LoadResult:
    """Load categories and every entry file for a project.

    An unreadable file or a malformed record is recorded in ``errors`` and
    skipped, so every other record is still read.

    Args:
        root: Project root that ``data_dirs`` and relative paths resolve against.
        config: Catalog configuration.

    Returns:
        LoadResult with entries, categories, structural errors and file list.
    """
    root = Path(root)
    result = LoadResult()

    try:
        result.categories = load_categories_file(config.categories_path(root))
    except RecordError as e:
        result.errors.append(e)

    for path in find_data_files(root, config.data_dirs):
        try:
            entries, errors = load_entries_file(path)
        except RecordError as e:
            logger.warning(f"Skipping {path}: {e.message}")
            result.errors.append(e)
            continue
        for error in errors:
            logger.warning(f"Skipping record {error.line} of {path}: {error.message}")
        result.entries.extend(entries)
        result.errors.extend(errors)
        result.files.append(str(path))

    return result
