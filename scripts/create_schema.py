#!/usr/bin/env python3
"""Ensure the document table exists for the configured database."""

import sys
from pathlib import Path

ROOT_DIR = Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

from matchplay.settings import configure_logging, load_settings
from matchplay.store import SQLITE_PREFIX, open_store


def main() -> None:
    settings = load_settings()
    configure_logging(settings)
    open_store(settings.database_url).ensure_schema()
    print("Document schema ensured.")
    if settings.database_url.startswith(SQLITE_PREFIX):
        print(f"Database file: {Path(settings.database_url[len(SQLITE_PREFIX):]).resolve()}")
    else:
        print(f"Database url: {settings.database_url}")


if __name__ == "__main__":
    main()
