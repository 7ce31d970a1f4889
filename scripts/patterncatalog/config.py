"""Configuration loading and validation for the pattern catalog."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

import yaml

from scripts.patterncatalog.annotations import (
    DUPLICATE_POLICY_ERROR,
    VALID_DUPLICATE_POLICIES,
)
from scripts.patterncatalog.errors import CatalogError


class ConfigError(CatalogError):
    """Error in catalog configuration."""

    def __init__(
        self,
        message: str,
        file: Optional[str] = None,
        line: Optional[int] = None,
        error_type: str = "config_invalid",
    ):
        super().__init__(message, file=file, line=line, error_type=error_type)


# Default paths for the catalog
DEFAULT_CONFIG_PATH = ".patterncatalog/config.yaml"
LEGACY_CONFIG_PATH = "patterncatalog.yaml"
BUNDLED_CATEGORIES_PATH = Path(__file__).parent / "data" / "categories.yaml"

DEFAULT_LANGUAGE_TAGS: list[str] = ["cppTraditional", "cppModern", "java"]

# Language tags are used as mapping keys in records, so keep them identifier-like
_LANGUAGE_TAG_RE = re.compile(r"^[A-Za-z][A-Za-z0-9_]*$")


@dataclass
class CatalogConfig:
    """Complete catalog configuration."""

    version: str = "1.0"
    language_tags: list[str] = field(default_factory=lambda: list(DEFAULT_LANGUAGE_TAGS))
    comparison_only_columns: list[str] = field(default_factory=list)
    duplicate_annotations: str = DUPLICATE_POLICY_ERROR
    require_populated_categories: bool = False
    data_dirs: list[str] = field(default_factory=lambda: ["patterns"])
    categories_file: Optional[str] = None

    def categories_path(self, root: Optional[Path] = None) -> Path:
        """Resolve the categories file, falling back to the bundled taxonomy."""
        if self.categories_file is None:
            return BUNDLED_CATEGORIES_PATH
        path = Path(self.categories_file)
        if root is not None and not path.is_absolute():
            path = root / path
        return path


def get_default_config() -> CatalogConfig:
    """Return the default catalog configuration."""
    return CatalogConfig()


def _as_str_list(value: Any, key: str, config_file: Optional[str]) -> list[str]:
    """Coerce a YAML value into a list of strings, rejecting scalars and mappings."""
    if not isinstance(value, list):
        raise ConfigError(
            f"'{key}' must be a list",
            file=config_file,
        )
    return [str(item) for item in value]


def validate_config(config: CatalogConfig, config_file: Optional[str] = None) -> None:
    """Validate configuration values.

    Raises:
        ConfigError: If configuration is invalid.
    """
    if not config.language_tags:
        raise ConfigError(
            "'language_tags' must name at least one language",
            file=config_file,
        )

    seen: set[str] = set()
    for tag in config.language_tags:
        if not _LANGUAGE_TAG_RE.match(tag):
            raise ConfigError(
                f"Invalid language tag '{tag}': must start with a letter and "
                "contain only letters, digits and underscores",
                file=config_file,
            )
        if tag in seen:
            raise ConfigError(
                f"Duplicate language tag '{tag}'",
                file=config_file,
            )
        seen.add(tag)

    for column in config.comparison_only_columns:
        if column not in seen:
            raise ConfigError(
                f"Comparison-only column '{column}' is not a declared language tag."
                f" Must be one of: {', '.join(config.language_tags)}",
                file=config_file,
            )

    if config.duplicate_annotations not in VALID_DUPLICATE_POLICIES:
        raise ConfigError(
            f"Invalid duplicate_annotations policy: '{config.duplicate_annotations}'."
            f" Must be one of: {', '.join(VALID_DUPLICATE_POLICIES)}",
            file=config_file,
        )

    if not isinstance(config.require_populated_categories, bool):
        raise ConfigError(
            "'require_populated_categories' must be a boolean",
            file=config_file,
        )


def load_config(config_path: Path | str) -> CatalogConfig:
    """Load configuration from a YAML file.

    Args:
        config_path: Path to the config YAML file.

    Returns:
        CatalogConfig with loaded values merged with defaults.

    Raises:
        ConfigError: If the file exists but contains invalid configuration.
    """
    config_path = Path(config_path)
    config_file = str(config_path)

    # Start with defaults
    defaults = get_default_config()

    if not config_path.exists():
        return defaults

    try:
        content = config_path.read_text(encoding="utf-8")
        if not content.strip():
            return defaults

        data = yaml.safe_load(content)
        if not data:
            return defaults
        if not isinstance(data, dict):
            raise ConfigError(
                "Top-level catalog config must be a mapping",
                file=config_file,
            )

    except yaml.YAMLError as e:
        raise ConfigError(
            f"Invalid YAML: {e}",
            file=config_file,
        )

    categories_file = data.get("categories_file", defaults.categories_file)
    if categories_file is not None:
        # Relative to the config file, not the working directory
        categories_path = Path(str(categories_file))
        if not categories_path.is_absolute():
            categories_path = config_path.parent / categories_path
        categories_file = str(categories_path)

    config = CatalogConfig(
        version=str(data.get("version", defaults.version)),
        language_tags=_as_str_list(
            data.get("language_tags", defaults.language_tags), "language_tags", config_file
        ),
        comparison_only_columns=_as_str_list(
            data.get("comparison_only_columns", defaults.comparison_only_columns),
            "comparison_only_columns",
            config_file,
        ),
        duplicate_annotations=str(data.get("duplicate_annotations", defaults.duplicate_annotations)),
        require_populated_categories=data.get(
            "require_populated_categories", defaults.require_populated_categories
        ),
        data_dirs=_as_str_list(data.get("data_dirs", defaults.data_dirs), "data_dirs", config_file),
        categories_file=categories_file,
    )

    # Validate the loaded config
    validate_config(config, config_file)

    return config
