#!/usr/bin/env python3
"""
Upload the FK PDF to a new OpenAI hosted vector store (Solution 1).

Prints the vector store id to put in .env as VECTOR_STORE_ID.

Usage:
    python scripts/init_vector_store.py [path/to/FK.pdf]
"""

import asyncio
import logging
import sys
from pathlib import Path

from app.config import settings
from app.services.hosted_store import upload_document

logger = logging.getLogger("init_vector_store")


async def main(pdf_path: Path) -> int:
    if not pdf_path.exists():
        logger.error("PDF not found: %s", pdf_path)
        return 1

    data = pdf_path.read_bytes()
    if len(data) > settings.upload_max_bytes:
        logger.error(
            "%s is %d bytes, limit is %d", pdf_path, len(data), settings.upload_max_bytes,
        )
        return 1

    result = await upload_document(pdf_path.name, data)
    logger.info("Vector store ready: %s (file %s)", result.vector_store_id, result.file_id)
    print(f"VECTOR_STORE_ID={result.vector_store_id}")
    return 0


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")
    path = Path(sys.argv[1]) if len(sys.argv) > 1 else Path(settings.default_pdf_path)
    sys.exit(asyncio.run(main(path)))
