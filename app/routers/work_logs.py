from datetime import date, datetime, timezone
from typing import List, Optional
from fastapi import APIRouter, Depends, Query, Request

from exceptions import (NotFoundError, StoreError, ValidationError, get_store_exception,
                        get_unknown_entity_exception, get_validation_exception)
from models.work_logs import WorkLog
from schemas.work_log import ConflictPreview, CreateWorkLog, EditWorkLog, MergeRequest, QuickWorkLog
from utils.app_utils import get_client_ip, get_current_user
from utils.clock_utils import retime_latest_clock_in
from utils.conflict_utils import preview_conflicts, resolve_and_apply
from utils.edit_utils import EditProvenance
from utils.merge_utils import MergePreview, MergeReport, merge_day, preview_merge
from utils.store import WorkLogStore, get_work_log_store
from utils.time_utils import day_range

UTC = timezone.utc

router = APIRouter()


def build_candidate(user_id: str, payload) -> WorkLog:
    return WorkLog(
        user_id=user_id,
        project_code=payload.project_code,
        project_name=payload.project_name,
        category=payload.category,
        content=payload.content,
        start_time=payload.start_time,
        end_time=payload.end_time,
        is_overtime=payload.is_overtime,
    )


@router.get("", response_model=List[WorkLog])
async def list_work_logs(
    day: date = Query(..., alias="date", description="Local day, YYYY-MM-DD"),
    user_and_type: tuple = Depends(get_current_user),
    store: WorkLogStore = Depends(get_work_log_store),
):
    user, _ = user_and_type
    try:
        return await store.find_intervals(user["id"], day_range(day))
    except StoreError as e:
        raise get_store_exception(e)


@router.post("", response_model=WorkLog)
async def create_work_log(
    payload: CreateWorkLog,
    request: Request,
    user_and_type: tuple = Depends(get_current_user),
    store: WorkLogStore = Depends(get_work_log_store),
):
    """
    Creates a work log and reshapes the user's other logs of that day around it.
    Overlapping logs are truncated, shrunk, shifted, split or deleted so the day
    stays overlap-free.
    When the entry comes from a punch-clock correction (is_clock_mode with a
    clock_edit_reason), the most recent clock-in of that day is moved to the
    new start time in the same atomic unit.
    Args:
        payload (CreateWorkLog): the new log.
        user_and_type (tuple): authenticated user and type from get_current_user.
    Returns:
        WorkLog: the created record.
    Raises:
        HTTPException:
            - 400 if the time range is invalid
            - 500 if storage failed; nothing is applied in that case
    """
    user, _ = user_and_type
    user_id = user["id"]
    on_applied = None

    if payload.is_clock_mode and payload.clock_edit_reason and payload.clock_edit_reason.strip():
        provenance = EditProvenance(
            reason=payload.clock_edit_reason,
            edited_by=user_id,
            ip_address=get_client_ip(request),
            edited_at=datetime.now(UTC),
        )

        async def on_applied(tx: WorkLogStore, written: WorkLog):
            await retime_latest_clock_in(tx, user_id, written.start_time, provenance)

    try:
        return await resolve_and_apply(store, user_id, build_candidate(user_id, payload), on_applied=on_applied)
    except ValidationError as e:
        raise get_validation_exception(e)
    except StoreError as e:
        raise get_store_exception(e)


@router.post("/conflicts/preview", response_model=ConflictPreview)
async def preview_work_log_conflicts(
    payload: CreateWorkLog,
    exclude_id: Optional[str] = Query(None, description="Id of the log being edited"),
    user_and_type: tuple = Depends(get_current_user),
    store: WorkLogStore = Depends(get_work_log_store),
):
    """Lists the adjustments a create or edit would make, without applying them."""
    user, _ = user_and_type
    try:
        plan = await preview_conflicts(store, user["id"], build_candidate(user["id"], payload), exclude_id)
    except ValidationError as e:
        raise get_validation_exception(e)
    except NotFoundError:
        raise get_unknown_entity_exception()
    except StoreError as e:
        raise get_store_exception(e)

    return {"mutations": [mutation.model_dump() for mutation in plan.mutations]}


@router.put("/{log_id}", response_model=WorkLog)
async def edit_work_log(
    log_id: str,
    payload: EditWorkLog,
    request: Request,
    user_and_type: tuple = Depends(get_current_user),
    store: WorkLogStore = Depends(get_work_log_store),
):
    """
    Retimes or rewrites an existing work log.
    The edit goes through the same reconciliation as a new entry, with the
    edited record itself excluded from the overlap check. Edit provenance is
    stamped and the original times are kept from the first edit.
    """
    user, _ = user_and_type
    provenance = EditProvenance(
        reason=payload.edit_reason,
        edited_by=user["id"],
        ip_address=get_client_ip(request),
        edited_at=datetime.now(UTC),
    )
    try:
        return await resolve_and_apply(
            store, user["id"], build_candidate(user["id"], payload),
            exclude_id=log_id, provenance=provenance,
        )
    except ValidationError as e:
        raise get_validation_exception(e)
    except NotFoundError:
        raise get_unknown_entity_exception()
    except StoreError as e:
        raise get_store_exception(e)


@router.delete("/{log_id}")
async def delete_work_log(
    log_id: str,
    user_and_type: tuple = Depends(get_current_user),
    store: WorkLogStore = Depends(get_work_log_store),
):
    user, _ = user_and_type
    try:
        existing = await store.get_interval(log_id, user["id"])
        if not existing:
            raise get_unknown_entity_exception()
        await store.delete_interval(log_id)
    except StoreError as e:
        raise get_store_exception(e)

    return {"message": "Work log deleted"}


@router.post("/quick", response_model=WorkLog)
async def start_quick_work_log(
    payload: QuickWorkLog,
    user_and_type: tuple = Depends(get_current_user),
    store: WorkLogStore = Depends(get_work_log_store),
):
    """Starts an ongoing log now; a log still running is closed at this instant."""
    user, _ = user_and_type
    now = datetime.now(UTC)
    candidate = WorkLog(user_id=user["id"], start_time=now, **payload.model_dump())
    try:
        return await resolve_and_apply(store, user["id"], candidate, now=now)
    except ValidationError as e:
        raise get_validation_exception(e)
    except StoreError as e:
        raise get_store_exception(e)


@router.post("/merge-overlaps")
async def merge_overlapping_work_logs(
    payload: MergeRequest,
    user_and_type: tuple = Depends(get_current_user),
    store: WorkLogStore = Depends(get_work_log_store),
):
    """
    Folds fragmented duplicate logs of one day back together.
    Logs with the same project, category and content that overlap or are at
    most one minute apart become a single record, unless that record would
    swallow a log of another kind.
    Returns:
        dict:
            - merged_count (int): number of merged records created
            - details (list): original_count and merged_interval per merge
    """
    user, _ = user_and_type
    try:
        reports: List[MergeReport] = await merge_day(store, user["id"], payload.date)
    except StoreError as e:
        raise get_store_exception(e)

    return {"merged_count": len(reports), "details": [report.model_dump() for report in reports]}


@router.post("/merge-overlaps/preview")
async def preview_overlapping_work_logs(
    payload: MergeRequest,
    user_and_type: tuple = Depends(get_current_user),
    store: WorkLogStore = Depends(get_work_log_store),
):
    user, _ = user_and_type
    try:
        previews: List[MergePreview] = await preview_merge(store, user["id"], payload.date)
    except StoreError as e:
        raise get_store_exception(e)

    return {"preview": [preview.model_dump() for preview in previews]}
