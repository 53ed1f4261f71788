import logging

from fastapi import APIRouter, Depends, HTTPException, Query

from ..config import SYNC_BATCH_SIZE
from ..exceptions import GalleryError
from ..services.images import get_relay
from ..services.jotform import get_source
from ..services.reconciler import Reconciler
from ..services.store import get_store

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/sync",
    tags=["Sync"]
)

@router.get("")
def sync_submissions(
    offset: int = Query(0, ge=0),
    limit: int = Query(SYNC_BATCH_SIZE, ge=1),
    store=Depends(get_store),
    source=Depends(get_source),
    relay=Depends(get_relay)
):
    """Backfill one batch of missing Jotform submissions and prune deleted ones.

    `nextOffset` indexes the missing set this call saw. Submissions stored by this
    call leave that set, so after a successful batch start the next pass from 0
    (or run `scripts/backfill.py`) instead of following `nextOffset` blindly.
    Partial failures are reported in `failed`/`errors` with a 200 response.
    """
    try:
        summary = Reconciler(store, source, relay).reconcile(offset, limit)
    except GalleryError:
        raise
    except Exception as e:
        logger.exception("Sync error")
        raise HTTPException(status_code=500, detail=str(e))

    logger.info(
        f"Sync offset={offset} limit={limit}: processed={summary.processed} "
        f"failed={summary.failed} removed={summary.removed} hasMore={summary.has_more}"
    )
    return summary.to_response()
