import logging

from fastapi import APIRouter, Depends, HTTPException, Request
from starlette.concurrency import run_in_threadpool

from ..exceptions import GalleryError, InvalidInput
from ..services.images import get_relay
from ..services.payload import read_fields, extract_submission
from ..services.store import get_store
from ..services.submissions import insert_if_absent

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/webhook",
    tags=["Webhook"]
)

@router.post("")
async def receive_submission(request: Request, store=Depends(get_store), relay=Depends(get_relay)):
    fields = await read_fields(request)
    name, file_url, submission_id = extract_submission(fields)
    logger.info(f"Extracted name={name!r} file_url={file_url!r} submission_id={submission_id!r}")

    if not file_url:
        raise InvalidInput("No image URL found in payload")

    try:
        result = await run_in_threadpool(insert_if_absent, store, relay, name, file_url, submission_id)
    except GalleryError:
        raise
    except Exception as e:
        logger.exception("Webhook error")
        raise HTTPException(status_code=500, detail=str(e))

    if result.skipped:
        return {"success": True, "skipped": True, "reason": result.reason}
    return {"success": True, "imageUrl": result.image_url}
