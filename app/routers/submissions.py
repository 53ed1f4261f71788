import logging

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from ..exceptions import StoreUnavailable
from ..services.store import get_store
from ..services.submissions import visible_records

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/submissions",
    tags=["Submissions"]
)

NO_CACHE_HEADERS = {"Cache-Control": "no-store, no-cache, must-revalidate"}

@router.get("")
def list_submissions(store=Depends(get_store)):
    try:
        records = store.load()
    except StoreUnavailable as e:
        logger.error(f"Submissions fetch error: {e.message}")
        if e.upstream_status is not None:
            return JSONResponse(
                status_code=e.upstream_status,
                content={"error": "JSONBin error", "detail": e.upstream_body},
                headers=NO_CACHE_HEADERS
            )
        return JSONResponse(status_code=500, content={"error": e.message}, headers=NO_CACHE_HEADERS)
    except Exception as e:
        logger.exception("Submissions fetch error")
        return JSONResponse(status_code=500, content={"error": str(e)}, headers=NO_CACHE_HEADERS)

    return JSONResponse(
        content=[record.to_document() for record in visible_records(records)],
        headers=NO_CACHE_HEADERS
    )
