import sys
import os
import argparse
import logging

# Add the project root directory to Python path
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from app.config import SYNC_BATCH_SIZE
from app.logging_utils import setup_logging
from app.services.images import ImageRelay, create_image_host
from app.services.jotform import SubmissionSource
from app.services.reconciler import Reconciler
from app.services.store import SubmissionStore

logger = logging.getLogger("backfill")

def main():
    parser = argparse.ArgumentParser(description="Mirror every active Jotform submission into the gallery store")
    parser.add_argument("--limit", type=int, default=SYNC_BATCH_SIZE, help="submissions relayed per batch")
    parser.add_argument("--max-batches", type=int, default=100)
    args = parser.parse_args()

    setup_logging()
    reconciler = Reconciler(SubmissionStore(), SubmissionSource(), ImageRelay(host=create_image_host()))
    summaries = reconciler.backfill(args.limit, args.max_batches)

    processed = sum(s.processed for s in summaries)
    failed = sum(s.failed for s in summaries)
    removed = sum(s.removed for s in summaries)
    logger.info(f"Backfill finished in {len(summaries)} batches: processed={processed} failed={failed} removed={removed}")
    for summary in summaries:
        for error in summary.errors:
            logger.warning(error)

    return 1 if failed else 0

if __name__ == "__main__":
    sys.exit(main())
