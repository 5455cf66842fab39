#!/usr/bin/env python3
"""
paths.py
-------------------
Path constants and configuration for the SACRED project.

All project paths are Path objects resolved relative to the project root:

    ROOT/
    ├── sacred/            # Package code
    │   └── migrations/    # Alembic environment and versions
    ├── alembic.ini
    ├── data/              # User data (database, exports)
    └── logs/              # Application logs

The database location can be overridden with the SACRED_DB_PATH
environment variable; every path can also be overridden on the CLI.
"""
# --- Annotations ---
from __future__ import annotations

# --- Standard library imports ---
import os
from pathlib import Path


def _get_project_root() -> Path:
    """
    Determine project root directory.

    Assumes this file is at ROOT/sacred/core/paths.py.

    Returns:
        Path object for project root
    """
    return Path(__file__).resolve().parent.parent.parent


# ----- Project directory -----
ROOT: Path = _get_project_root()
PACKAGE_DIR = ROOT / "sacred"
DATA_DIR = ROOT / "data"

# --- Database ---
ALEMBIC_INI = ROOT / "alembic.ini"
ALEMBIC_DIR = PACKAGE_DIR / "migrations"
DB_PATH = Path(os.environ.get("SACRED_DB_PATH", DATA_DIR / "sacred.db"))

# --- Exports ---
EXPORT_DIR = DATA_DIR / "exports"

# --- Logs ---
LOG_DIR = ROOT / "logs"
