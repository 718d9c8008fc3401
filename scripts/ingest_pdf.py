#!/usr/bin/env python3
"""
Ingest the FK PDF into Postgres/pgvector (Solution 2), without Celery.

Creates the schema if needed, skips the file if an identical copy was
already ingested, then parses, chunks, embeds and stores it.

Usage:
    python scripts/ingest_pdf.py [path/to/FK.pdf] [--chunk-size 256] [--chunk-overlap 50]
"""

import argparse
import logging
import sys
from pathlib import Path

from app.config import settings
from app.db.engine import init_db_sync
from app.services.ingestion import register_document, run_ingestion

logger = logging.getLogger("ingest_pdf")


def main() -> int:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[1])
    parser.add_argument("pdf", nargs="?", default=settings.default_pdf_path)
    parser.add_argument("--chunk-size", type=int, default=settings.chunk_size)
    parser.add_argument("--chunk-overlap", type=int, default=settings.chunk_overlap)
    args = parser.parse_args()

    pdf_path = Path(args.pdf)
    if not pdf_path.exists():
        logger.error("PDF not found: %s", pdf_path)
        return 1

    init_db_sync()

    document_id, needs_ingestion = register_document(str(pdf_path))
    if not needs_ingestion:
        logger.info("%s already ingested as document_id=%d", pdf_path.name, document_id)
        return 0

    summary = run_ingestion(
        document_id,
        str(pdf_path),
        chunk_size=args.chunk_size,
        chunk_overlap=args.chunk_overlap,
        label="cli",
    )
    logger.info("Done: %s", summary)
    return 0


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")
    sys.exit(main())
