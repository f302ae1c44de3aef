"""Seed helper that brings MongoDB up to the demo baseline."""

from __future__ import annotations

import logging
import sys
from pathlib import Path

from dotenv import load_dotenv
from pymongo.errors import PyMongoError

ROOT_DIR = Path(__file__).resolve().parent.parent
BACKEND_DIR = ROOT_DIR / "backend"
ENV_PATH = BACKEND_DIR / ".env"

if str(BACKEND_DIR) not in sys.path:
    sys.path.insert(0, str(BACKEND_DIR))

from enrollment.config import ConfigError, get_db_name  # noqa: E402
from enrollment.seeding import seed_database  # noqa: E402


def load_env() -> None:
    if ENV_PATH.exists():
        load_dotenv(ENV_PATH)


def main() -> None:
    load_env()
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(message)s")
    try:
        db_name = get_db_name()
    except ConfigError as exc:  # pragma: no cover - simple CLI utility
        print(f"Configuration error: {exc}")
        raise SystemExit(1)

    try:
        summary = seed_database()
    except PyMongoError as exc:  # pragma: no cover - requires Mongo connection
        print(f"MongoDB error: {exc}")
        raise SystemExit(1)

    for collection_name, count in summary.items():
        print(f"Added {count} document(s) to '{collection_name}' collection")
    print(f"Seeding complete for database '{db_name}'.")


if __name__ == "__main__":
    main()
