"""
Delete duplicate records (same title, or same name for sponsors) from the
configured store, keeping the earliest-created record of each group.
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from maio.config import get_settings
from maio.db import StoreError
from maio.dependencies import build_store
from maio.resources import ALL_RESOURCES
from maio.service import remove_duplicates
from maio.uploads import UploadStore

logger = logging.getLogger(__name__)


def main() -> int:
    parser = argparse.ArgumentParser(description="Remove duplicate MAIO records")
    parser.add_argument(
        "-c",
        "--collection",
        action="append",
        choices=[spec.collection for spec in ALL_RESOURCES],
        help="Only clean these collections (repeatable, default: all)",
    )
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.INFO,
        format="%(name)s %(levelname)s %(asctime)s %(message)s",
        datefmt="%m/%d/%Y %I:%M:%S %p",
    )

    settings = get_settings()
    store = build_store(settings)
    uploads = UploadStore(settings.upload_dir)
    specs = [
        spec
        for spec in ALL_RESOURCES
        if not args.collection or spec.collection in args.collection
    ]

    try:
        for spec in specs:
            counts = remove_duplicates(store, uploads, spec)
            logger.info(
                "%s: %d duplicate groups, %d documents deleted",
                spec.collection,
                counts["duplicate_groups"],
                counts["deleted_documents"],
            )
    except StoreError as exc:
        logger.error("Cleanup failed: %s", exc)
        return 1
    finally:
        store.close()
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
