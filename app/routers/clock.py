from datetime import date, datetime, timedelta, timezone
from typing import List, Optional
from fastapi import APIRouter, Depends, HTTPException, Query, Request

from exceptions import StoreError, get_store_exception, get_unknown_entity_exception
from models.clock_records import ClockRecord
from schemas.clock import CreateClockRecord, EditClockRecord
from utils.app_utils import get_client_ip, get_current_user
from utils.clock_utils import ClockStatus, derive_clock_status, edit_punch_event
from utils.edit_utils import EditProvenance
from utils.store import WorkLogStore, get_work_log_store
from utils.time_utils import day_range

UTC = timezone.utc

router = APIRouter()


def can_edit(user: dict, user_type: str, owner_id: str) -> bool:
    return user_type == "admin" or user["id"] == owner_id


@router.post("", response_model=ClockRecord)
async def punch(
    payload: CreateClockRecord,
    user_and_type: tuple = Depends(get_current_user),
    store: WorkLogStore = Depends(get_work_log_store),
):
    user, _ = user_and_type
    record = ClockRecord(user_id=user["id"], type=payload.type, timestamp=datetime.now(UTC))
    try:
        return await store.create_punch_event(record)
    except StoreError as e:
        raise get_store_exception(e)


@router.get("/status", response_model=ClockStatus)
async def get_clock_status(
    user_and_type: tuple = Depends(get_current_user),
    store: WorkLogStore = Depends(get_work_log_store),
):
    """
    Returns whether the user is currently clocked in, with the punches the answer is based on.
    Early in the morning a day without punches falls back to yesterday's, so a
    shift started before midnight still reads as clocked in.
    """
    user, _ = user_and_type
    try:
        return await derive_clock_status(store, user["id"])
    except StoreError as e:
        raise get_store_exception(e)


@router.get("/history", response_model=List[ClockRecord])
async def get_clock_history(
    start: date = Query(..., description="First local day, YYYY-MM-DD"),
    end: Optional[date] = Query(None, description="Last local day, defaults to start"),
    user_and_type: tuple = Depends(get_current_user),
    store: WorkLogStore = Depends(get_work_log_store),
):
    user, _ = user_and_type
    end = end or start
    if end < start:
        raise HTTPException(status_code=400, detail="End date must not be before start date")

    records = []
    try:
        current = end
        while current >= start:
            records.extend(await store.find_punch_events(user["id"], day_range(current)))
            current -= timedelta(days=1)
    except StoreError as e:
        raise get_store_exception(e)
    return records


@router.put("/{record_id}", response_model=ClockRecord)
async def edit_clock_record(
    record_id: str,
    payload: EditClockRecord,
    request: Request,
    owner_id: Optional[str] = Query(None, description="Owner of the record, for admins"),
    user_and_type: tuple = Depends(get_current_user),
    store: WorkLogStore = Depends(get_work_log_store),
):
    """
    Corrects the time of a punch.
    An edit reason is required. The first edit keeps the original timestamp;
    later edits only refresh who, when, why and from where.
    Raises:
        HTTPException:
            - 400 if the edit reason is blank
            - 403 if the user is neither the owner nor an admin
            - 404 if the record does not exist
    """
    user, user_type = user_and_type
    owner_id = owner_id or user["id"]
    if not payload.edit_reason.strip():
        raise HTTPException(status_code=400, detail="An edit reason is required")
    if not can_edit(user, user_type, owner_id):
        raise HTTPException(status_code=403, detail="You are not authorized to edit this record")

    provenance = EditProvenance(
        reason=payload.edit_reason,
        edited_by=user["id"],
        ip_address=get_client_ip(request),
        edited_at=datetime.now(UTC),
    )
    try:
        record = await store.get_punch_event(record_id, owner_id)
        if not record:
            raise get_unknown_entity_exception()
        return await edit_punch_event(store, record, payload.timestamp, provenance)
    except StoreError as e:
        raise get_store_exception(e)


@router.delete("/{record_id}")
async def delete_clock_record(
    record_id: str,
    edit_reason: str = Query(..., description="Why the punch is removed"),
    owner_id: Optional[str] = Query(None, description="Owner of the record, for admins"),
    user_and_type: tuple = Depends(get_current_user),
    store: WorkLogStore = Depends(get_work_log_store),
):
    user, user_type = user_and_type
    owner_id = owner_id or user["id"]
    if not edit_reason.strip():
        raise HTTPException(status_code=400, detail="A reason is required to delete a punch")
    if not can_edit(user, user_type, owner_id):
        raise HTTPException(status_code=403, detail="You are not authorized to delete this record")

    try:
        record = await store.get_punch_event(record_id, owner_id)
        if not record:
            raise get_unknown_entity_exception()
        await store.delete_punch_event(record_id)
    except StoreError as e:
        raise get_store_exception(e)

    return {"message": "Clock record deleted"}
