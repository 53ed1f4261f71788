import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Iterable, List, Optional

from ..exceptions import InvalidInput, NotFound
from ..models.submission import SubmissionRecord

logger = logging.getLogger(__name__)


@dataclass
class InsertResult:
    image_url: Optional[str] = None
    skipped: bool = False
    reason: Optional[str] = None


def visible_records(records: Iterable[SubmissionRecord]) -> List[SubmissionRecord]:
    return [record for record in records if record.is_visible]


def _has_id(records: Iterable[SubmissionRecord], submission_id: Optional[str]) -> bool:
    return bool(submission_id) and any(record.submission_id == submission_id for record in records)


def insert_if_absent(
    store,
    relay,
    name: Optional[str],
    file_url: Optional[str],
    submission_id: Optional[str] = None
) -> InsertResult:
    """Relay the uploaded picture and prepend a new record unless the id is already stored."""
    if not file_url:
        raise InvalidInput("No image URL found in payload")

    if _has_id(store.load(), submission_id):
        logger.info(f"Skipping duplicate submission {submission_id}")
        return InsertResult(skipped=True, reason="duplicate")

    image_url = relay.relay(file_url)

    # The relay can take seconds; another writer may have inserted the same id meanwhile
    records = store.load()
    if _has_id(records, submission_id):
        logger.info(f"Skipping duplicate submission {submission_id} after relay")
        return InsertResult(image_url=image_url, skipped=True, reason="duplicate")

    record = SubmissionRecord(
        submission_id=submission_id,
        name=name,
        image_url=image_url,
        timestamp=datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
        likes=0
    )
    store.replace_all([record] + records)
    logger.info(f"Saved submission {submission_id or '<no id>'}: {name}")
    return InsertResult(image_url=image_url)


def increment_like(store, submission_id: Optional[str]) -> int:
    if not submission_id:
        raise InvalidInput("submissionId is required")

    records = store.load()
    target = next((record for record in records if record.submission_id == submission_id), None)
    if target is None:
        raise NotFound("Submission not found")

    target.likes += 1
    store.replace_all(records)
    logger.info(f"Submission {submission_id} now has {target.likes} likes")
    return target.likes
