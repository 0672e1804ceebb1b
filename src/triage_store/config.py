"""Storage configuration — reads file locations from environment.

Supports two variables:
1. ``TRIAGE_DATA_FILE`` — path of the primary queue document
   (default ``data/patients.json`` relative to the working directory).
2. ``TRIAGE_BACKUP_FILE`` — path of the backup copy.  When unset the
   backup sits next to the primary with ``.backup`` before the suffix
   (``patients.json`` → ``patients.backup.json``).
"""

import os
from pathlib import Path

DEFAULT_DATA_FILE = "data/patients.json"


def get_data_file() -> Path:
    """Return the configured primary document path."""
    return Path(os.getenv("TRIAGE_DATA_FILE") or DEFAULT_DATA_FILE)


def backup_path_for(data_file: Path | str) -> Path:
    """Return the backup path for ``data_file``.

    ``TRIAGE_BACKUP_FILE`` wins when set; otherwise ``.backup`` is inserted
    before the file suffix.
    """
    override = os.getenv("TRIAGE_BACKUP_FILE")
    if override:
        return Path(override)
    path = Path(data_file)
    return path.with_name(f"{path.stem}.backup{path.suffix or '.json'}")
