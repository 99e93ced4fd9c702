#!/usr/bin/env python3
"""
Upload a local directory of photos to the configured object store under
photos/, skipping files that are already there.

Usage:
    python scripts/upload_photos.py [DIRECTORY]   (default: ./photos)
"""

import logging
import sys
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

from phototitler.ai.prompts import mime_type_for  # noqa: E402
from phototitler.storage import (  # noqa: E402
    IMAGE_EXTENSIONS,
    PHOTOS_PREFIX,
    StorageError,
    get_storage_backend,
)

logger = logging.getLogger(__name__)
PROGRESS_EVERY = 10


def main(argv: list[str]) -> int:
    logging.basicConfig(level=logging.INFO, format="%(asctime)s - %(levelname)s - %(message)s")
    directory = Path(argv[1]) if len(argv) > 1 else Path("photos")
    if not directory.is_dir():
        logger.error("Not a directory: %s", directory)
        return 1

    local = sorted(
        p for p in directory.iterdir()
        if p.is_file() and p.suffix.lower() in IMAGE_EXTENSIONS
    )
    logger.info("Found %d local photos in %s", len(local), directory)

    storage = get_storage_backend()
    try:
        existing = set(storage.list_photos())
    except StorageError:
        logger.exception("Could not list existing photos")
        return 1
    to_upload = [p for p in local if p.name not in existing]
    logger.info("%d already uploaded, %d to upload", len(existing), len(to_upload))

    for count, path in enumerate(to_upload, start=1):
        try:
            storage.put_object(
                PHOTOS_PREFIX + path.name, path.read_bytes(), mime_type_for(path.name)
            )
        except StorageError:
            logger.exception("Upload failed for %s", path.name)
            return 1
        if count % PROGRESS_EVERY == 0 or count == len(to_upload):
            logger.info("  %d/%d uploaded", count, len(to_upload))

    logger.info("Done: %d photos uploaded", len(to_upload))
    return 0


if __name__ == "__main__":
    sys.exit(main(sys.argv))
