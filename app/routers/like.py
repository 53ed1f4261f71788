import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field

from ..exceptions import GalleryError
from ..services.store import get_store
from ..services.submissions import increment_like

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/like",
    tags=["Like"]
)

class LikeRequest(BaseModel):
    submission_id: Optional[str] = Field(default=None, alias="submissionId")

class LikeResponse(BaseModel):
    success: bool
    likes: int

@router.post("", response_model=LikeResponse)
def like_submission(like: LikeRequest, store=Depends(get_store)):
    try:
        likes = increment_like(store, like.submission_id)
    except GalleryError:
        raise
    except Exception as e:
        logger.exception("Like error")
        raise HTTPException(status_code=500, detail=str(e))
    return LikeResponse(success=True, likes=likes)
