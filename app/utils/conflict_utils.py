import logging
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Awaitable, Callable, List, Optional
from pydantic import BaseModel

from exceptions import ConflictResolutionError, NotFoundError, StoreError, ValidationError
from models.work_logs import Closed, Open, WorkLog
from utils.edit_utils import EditProvenance, provenance_patch
from utils.store import WorkLogStore
from utils.time_utils import day_range, ensure_utc, local_day

logger = logging.getLogger(__name__)

UTC = timezone.utc

AppliedHook = Callable[[WorkLogStore, WorkLog], Awaitable[None]]


class MutationKind(str, Enum):
    TRUNCATE = "truncate" # open interval closed at the candidate start
    DELETE = "delete"
    SPLIT = "split"
    SHRINK = "shrink"
    SHIFT = "shift"


class Mutation(BaseModel):
    kind: MutationKind
    interval_id: str
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    tail_start: Optional[datetime] = None
    tail_end: Optional[datetime] = None


class ResolutionPlan(BaseModel):
    user_id: str
    candidate_start: datetime
    candidate_end: Optional[datetime] = None
    mutations: List[Mutation] = []

    @property
    def is_empty(self) -> bool:
        return not self.mutations


def validate_candidate(start: datetime, end: Optional[datetime]) -> None:
    if start is None:
        raise ValidationError("Start time is required")
    if end is not None and ensure_utc(end) <= ensure_utc(start):
        raise ValidationError("End time must be after start time")


def classify(existing: WorkLog, cs: datetime, ce: datetime, candidate_open: bool) -> Optional[Mutation]:
    """
    Decide what happens to one existing interval when [cs, ce) is written.

    For an open candidate `ce` is the instant it is considered to run
    through (now, or its start if that lies ahead).
    """
    es = ensure_utc(existing.start_time)
    bound = existing.bound

    if isinstance(bound, Open):
        if es < cs:
            return Mutation(kind=MutationKind.TRUNCATE, interval_id=existing.id, end_time=cs)
        if candidate_open:
            return Mutation(kind=MutationKind.DELETE, interval_id=existing.id)
        if es < ce:
            return Mutation(kind=MutationKind.SHIFT, interval_id=existing.id, start_time=ce)
        return None

    if not isinstance(bound, Closed):
        raise TypeError(f"Unknown interval bound {bound!r}")
    ee = ensure_utc(bound.at)

    if ee <= cs or es >= ce:
        return None
    if es < cs and ee > ce:
        if candidate_open:
            # the candidate keeps running, a tail would overlap it
            return Mutation(kind=MutationKind.SHRINK, interval_id=existing.id, end_time=cs)
        return Mutation(kind=MutationKind.SPLIT, interval_id=existing.id, end_time=cs, tail_start=ce, tail_end=ee)
    if es < cs:
        return Mutation(kind=MutationKind.SHRINK, interval_id=existing.id, end_time=cs)
    if ee > ce:
        return Mutation(kind=MutationKind.SHIFT, interval_id=existing.id, start_time=ce)
    return Mutation(kind=MutationKind.DELETE, interval_id=existing.id)


def plan_resolution(
    user_id: str,
    candidate_start: datetime,
    candidate_end: Optional[datetime],
    existing: List[WorkLog],
    now: Optional[datetime] = None,
) -> ResolutionPlan:
    """Compute the mutations that keep the day overlap-free once the candidate is written."""
    validate_candidate(candidate_start, candidate_end)
    cs = ensure_utc(candidate_start)
    candidate_open = candidate_end is None
    if candidate_open:
        ce = max(ensure_utc(now or datetime.now(UTC)), cs)
    else:
        ce = ensure_utc(candidate_end)

    plan = ResolutionPlan(user_id=user_id, candidate_start=cs, candidate_end=None if candidate_open else ce)
    for interval in existing:
        if interval.user_id != user_id:
            continue
        mutation = classify(interval, cs, ce, candidate_open)
        if mutation is not None:
            plan.mutations.append(mutation)
    return plan


async def load_overlapping(
    store: WorkLogStore,
    user_id: str,
    candidate: WorkLog,
    exclude_id: Optional[str] = None,
    now: Optional[datetime] = None,
) -> List[WorkLog]:
    """
    Load the logs a candidate can collide with.

    The window runs from the local midnight before the candidate's day (a
    closed log crossing midnight starts on the previous day) to the later of
    the next midnight and the candidate's end. The user's latest open log
    is added whatever day it started on.
    """
    start = ensure_utc(candidate.start_time)
    if candidate.end_time is None:
        end = max(ensure_utc(now or datetime.now(UTC)), start)
    else:
        end = ensure_utc(candidate.end_time)
    day_start, day_end = day_range(local_day(start))
    window = (day_start - timedelta(days=1), max(day_end, end))

    existing = await store.find_intervals(user_id, window, exclude_id)
    ongoing = await store.find_open_interval(user_id)
    if ongoing is not None and ongoing.id != exclude_id and all(log.id != ongoing.id for log in existing):
        existing.insert(0, ongoing)
    return existing


async def apply_mutation(tx: WorkLogStore, mutation: Mutation, existing: WorkLog) -> None:
    if mutation.kind == MutationKind.DELETE:
        await tx.delete_interval(mutation.interval_id)
    elif mutation.kind in (MutationKind.TRUNCATE, MutationKind.SHRINK):
        await tx.update_interval(mutation.interval_id, {"end_time": mutation.end_time})
    elif mutation.kind == MutationKind.SHIFT:
        await tx.update_interval(mutation.interval_id, {"start_time": mutation.start_time})
    elif mutation.kind == MutationKind.SPLIT:
        await tx.update_interval(mutation.interval_id, {"end_time": mutation.end_time})
        tail = WorkLog(
            **existing.descriptive_fields(),
            start_time=mutation.tail_start,
            end_time=mutation.tail_end,
            created_at=datetime.now(UTC),
        )
        await tx.create_interval(tail)
    logger.info("Work log %s: %s", mutation.interval_id, mutation.kind.value)


async def apply_plan(
    tx: WorkLogStore,
    plan: ResolutionPlan,
    candidate: WorkLog,
    existing: List[WorkLog],
    exclude_id: Optional[str] = None,
    provenance: Optional[EditProvenance] = None,
) -> WorkLog:
    """Apply the plan's mutations, then create or update the candidate verbatim."""
    by_id = {interval.id: interval for interval in existing}
    for mutation in plan.mutations:
        await apply_mutation(tx, mutation, by_id[mutation.interval_id])

    if exclude_id is None:
        data = candidate.model_copy(update={"id": None, "created_at": candidate.created_at or datetime.now(UTC)})
        return await tx.create_interval(data)

    patch = {
        "project_code": candidate.project_code,
        "project_name": candidate.project_name,
        "category": candidate.category,
        "content": candidate.content,
        "start_time": plan.candidate_start,
        "end_time": plan.candidate_end,
        "is_overtime": candidate.is_overtime,
    }
    if provenance is not None:
        current = await tx.get_interval(exclude_id, plan.user_id)
        patch.update(provenance_patch(
            current, provenance,
            {"original_start_time": "start_time", "original_end_time": "end_time"},
        ))
    return await tx.update_interval(exclude_id, patch)


async def resolve_and_apply(
    store: WorkLogStore,
    user_id: str,
    candidate: WorkLog,
    exclude_id: Optional[str] = None,
    now: Optional[datetime] = None,
    provenance: Optional[EditProvenance] = None,
    on_applied: Optional[AppliedHook] = None,
) -> WorkLog:
    """
    Write a new or edited work log, reshaping the user's other logs that day.

    Existing logs around the candidate are truncated, shrunk, shifted,
    split or deleted so that none overlaps the candidate, then the candidate
    is created (no exclude_id) or the record exclude_id is updated to match
    it. Everything runs in one atomic unit; `on_applied` runs inside the same
    unit with the written log.

    Raises:
        ValidationError: end is not after start, before any store access.
        NotFoundError: exclude_id is not a work log of this user.
        ConflictResolutionError: the store failed; nothing was applied.
    """
    validate_candidate(candidate.start_time, candidate.end_time)
    candidate = candidate.model_copy(update={"user_id": user_id})

    async def reconcile(tx: WorkLogStore) -> WorkLog:
        if exclude_id is not None and await tx.get_interval(exclude_id, user_id) is None:
            raise NotFoundError("Work log", exclude_id)
        existing = await load_overlapping(tx, user_id, candidate, exclude_id, now)
        plan = plan_resolution(user_id, candidate.start_time, candidate.end_time, existing, now)
        written = await apply_plan(tx, plan, candidate, existing, exclude_id, provenance)
        if on_applied is not None:
            await on_applied(tx, written)
        logger.info(
            "Work log %s written for user %s with %d adjustment(s)",
            written.id, user_id, len(plan.mutations),
        )
        return written

    try:
        return await store.run_atomic(reconcile)
    except StoreError as e:
        if isinstance(e, ConflictResolutionError):
            raise
        raise ConflictResolutionError(f"Could not reconcile work logs - {e}") from e


async def preview_conflicts(
    store: WorkLogStore,
    user_id: str,
    candidate: WorkLog,
    exclude_id: Optional[str] = None,
    now: Optional[datetime] = None,
) -> ResolutionPlan:
    validate_candidate(candidate.start_time, candidate.end_time)
    if exclude_id is not None and await store.get_interval(exclude_id, user_id) is None:
        raise NotFoundError("Work log", exclude_id)
    existing = await load_overlapping(store, user_id, candidate, exclude_id, now)
    return plan_resolution(user_id, candidate.start_time, candidate.end_time, existing, now)
