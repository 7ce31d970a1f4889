"""CLI entry point: python -m scripts.patterncatalog."""

import sys

from scripts.patterncatalog.cli import main

sys.exit(main())
