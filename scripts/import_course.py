#!/usr/bin/env python3
"""Import a course (par and hole layout) from the Golf Course API into the store."""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

ROOT_DIR = Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

from matchplay.course_sync import GolfApiError, import_course
from matchplay.settings import configure_logging, load_settings
from matchplay.store import open_store


def main() -> None:
    parser = argparse.ArgumentParser(description="Import a course from the Golf Course API.")
    parser.add_argument("course_id", type=int, help="Golf Course API course id.")
    parser.add_argument("--doc-id", type=str, help="Store the course under this document id.")
    parser.add_argument("--tee", type=str, help="Tee name to take hole pars and yardages from.")
    args = parser.parse_args()

    settings = load_settings()
    configure_logging(settings)
    store = open_store(settings.database_url)
    store.ensure_schema()
    try:
        course = import_course(store, args.course_id, settings.golf_api_key, args.doc_id, args.tee)
    except GolfApiError as exc:
        raise SystemExit(f"Import failed: {exc}")
    print(f"Imported {course['name'] or args.course_id} as courses/{course['id']} (par {course['par']}).")


if __name__ == "__main__":
    main()
