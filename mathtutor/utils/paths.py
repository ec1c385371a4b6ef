"""File path resolution using platformdirs.

Paths default to platform-appropriate user directories:
  macOS: ~/Library/Application Support/mathtutor/
  Linux: ~/.local/share/mathtutor/
  Windows: %LOCALAPPDATA%/mathtutor/

MATHTUTOR_DATA_DIR overrides the base directory (containers, tests).
"""

import os
from pathlib import Path

import platformdirs

APP_NAME = "mathtutor"


def get_data_dir() -> Path:
    """Return the directory for persistent data (DB, stored agent files)."""
    override = os.environ.get("MATHTUTOR_DATA_DIR", "").strip()
    if override:
        return Path(override)
    return Path(platformdirs.user_data_dir(APP_NAME, appauthor=False))


def get_files_dir() -> Path:
    """Return the directory for locally stored agent files."""
    return get_data_dir() / "agent-files"


def get_default_db_path() -> Path:
    """Return the default SQLite database file path."""
    return get_data_dir() / "mathtutor.db"


def ensure_dirs_exist() -> None:
    """Create all required directories if they don't exist."""
    for d in [get_data_dir(), get_files_dir()]:
        d.mkdir(parents=True, exist_ok=True)
