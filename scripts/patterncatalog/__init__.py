"""Pattern catalog - validated model of a design-pattern reference.

This package provides tools for:
- Modelling pattern entries with per-language code samples
- Binding explanations to line numbers of those samples
- Indexing entries by id and category
- Linting the whole catalog in one pass (line ranges, categories,
  comparison columns, cross-pattern links, duplicate ids)

Usage:
    python -m scripts.patterncatalog validate   # Lint the catalog
    python -m scripts.patterncatalog query      # Query entries
    python -m scripts.patterncatalog status     # Show status
"""

__version__ = "1.0.0"
