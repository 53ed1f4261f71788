"""Keeps the stored submission records consistent with the active Jotform submissions.

The planning and merging steps are pure functions over snapshots so every entry point
shares one implementation; `Reconciler` wires them to the store, the source and the
image relay.
"""

import logging
from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Set

from ..config import FORM_NAME_FIELD, FORM_FILE_FIELD
from ..models.submission import SubmissionRecord, UpstreamSubmission, ReconciliationSummary

logger = logging.getLogger(__name__)


@dataclass
class ReconciliationPlan:
    retained: List[SubmissionRecord]
    removed: int
    missing: List[UpstreamSubmission]
    batch: List[UpstreamSubmission]
    has_more: bool
    next_offset: Optional[int] = None
    active_ids: Set[str] = field(default_factory=set)


def is_retained(record: SubmissionRecord, active_ids: Set[str]) -> bool:
    # Records without an id are manual or legacy entries and are never pruned
    return not record.submission_id or record.submission_id in active_ids


def prune(records: Iterable[SubmissionRecord], active_ids: Set[str]) -> List[SubmissionRecord]:
    return [record for record in records if is_retained(record, active_ids)]


def plan_reconciliation(
    stored: List[SubmissionRecord],
    upstream: List[UpstreamSubmission],
    offset: int,
    limit: int
) -> ReconciliationPlan:
    active = [submission for submission in upstream if submission.is_active]
    active_ids = {submission.id for submission in active}

    retained = prune(stored, active_ids)
    stored_ids = {record.submission_id for record in retained if record.submission_id}

    # Oldest first; sorted() is stable so equal timestamps keep upstream order
    missing = sorted(
        (submission for submission in active if submission.id not in stored_ids),
        key=lambda submission: submission.created_at or ""
    )

    start = min(max(offset, 0), len(missing))
    end = start + max(limit, 0)
    has_more = end < len(missing)

    return ReconciliationPlan(
        retained=retained,
        removed=len(stored) - len(retained),
        missing=missing,
        batch=missing[start:end],
        has_more=has_more,
        next_offset=end if has_more else None,
        active_ids=active_ids
    )


def merge_records(
    fresh: List[SubmissionRecord],
    new_records: List[SubmissionRecord],
    active_ids: Set[str]
) -> List[SubmissionRecord]:
    """
    Combine staged records with a fresh read of the store.

    The fresh read is pruned with the same predicate as the plan, staged records whose id
    is already present are dropped, and the result lists new records first, newest first.
    """
    pruned = prune(fresh, active_ids)
    present = {record.submission_id for record in pruned if record.submission_id}

    additions = []
    for record in reversed(new_records):
        if record.submission_id in present:
            continue
        present.add(record.submission_id)
        additions.append(record)

    return additions + pruned


def build_record(submission: UpstreamSubmission, name: Optional[str], image_url: str) -> SubmissionRecord:
    return SubmissionRecord(
        submission_id=submission.id,
        name=name,
        image_url=image_url,
        timestamp=submission.created_at,
        likes=0
    )


class Reconciler:
    def __init__(self, store, source, relay, name_field: str = FORM_NAME_FIELD, file_field: str = FORM_FILE_FIELD):
        self.store = store
        self.source = source
        self.relay = relay
        self.name_field = name_field
        self.file_field = file_field

    def reconcile(self, offset: int, limit: int) -> ReconciliationSummary:
        stored = self.store.fetch_all()
        upstream = self.source.fetch_submissions()
        logger.info(f"Jotform submissions: {len(upstream)}, already saved: {len(stored)}")

        plan = plan_reconciliation(stored, upstream, offset, limit)
        summary = ReconciliationSummary(
            removed=plan.removed,
            total_missing=len(plan.missing),
            has_more=plan.has_more,
            next_offset=plan.next_offset,
            total=len(plan.retained)
        )

        staged = []
        for submission in plan.batch:
            name = submission.display_name(self.name_field)
            file_url = submission.file_url(self.file_field)
            if not file_url:
                summary.skipped += 1
                continue

            try:
                image_url = self.relay.relay(file_url)
            except Exception as e:
                summary.failed += 1
                summary.errors.append(f"{submission.id}: {e}")
                logger.warning(f"Failed {submission.id}: {e}")
                continue

            staged.append(build_record(submission, name, image_url))
            summary.processed += 1
            logger.info(f"Processed submission {submission.id}: {name}")

        if staged or plan.removed:
            # Re-read right before writing to narrow the window for lost updates
            fresh = self.store.load()
            merged = merge_records(fresh, staged, plan.active_ids)
            self.store.replace_all(merged)
            summary.total = len(merged)

        return summary

    def backfill(self, limit: int, max_batches: int = 100) -> List[ReconciliationSummary]:
        """Run batches in one process until nothing is left to materialize."""
        summaries = []
        offset = 0
        for _ in range(max_batches):
            summary = self.reconcile(offset, limit)
            summaries.append(summary)
            if not summary.has_more:
                break
            # Stored submissions leave the missing set; failed and skipped ones keep their place
            offset += summary.failed + summary.skipped
        return summaries
