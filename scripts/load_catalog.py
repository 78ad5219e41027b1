#!/usr/bin/env python3
"""Load catalog documents from a JSON file into the search database."""

from __future__ import annotations

import argparse
import asyncio
import logging
from pathlib import Path

import orjson

from clinidex.persistence.local_db import LocalDB

logger = logging.getLogger("clinidex.scripts.load_catalog")


async def load_catalog(source: Path, db_path: str | None) -> int:
    documents = orjson.loads(source.read_bytes())
    if isinstance(documents, dict):
        documents = documents.get("documents", [])
    if not isinstance(documents, list):
        raise SystemExit(f"{source} must contain a JSON list of documents")

    async with LocalDB(db_path) as db:
        inserted = await db.documents.insert_many(documents)
        total = await db.documents.count()
    logger.info("Loaded %d documents (catalog now holds %d)", inserted, total)
    return inserted


def main() -> None:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("source", type=Path, help="JSON file with a list of documents")
    parser.add_argument(
        "--db",
        default=None,
        help="Database path (defaults to DATABASE.path from settings)",
    )
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )
    asyncio.run(load_catalog(args.source, args.db))


if __name__ == "__main__":
    main()
