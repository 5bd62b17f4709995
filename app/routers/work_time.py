from datetime import date, datetime, timezone
from typing import Optional
from fastapi import APIRouter, Depends, HTTPException, Query

from exceptions import StoreError, ValidationError, get_store_exception, get_validation_exception
from models.work_time_settings import WorkTimeSettings
from schemas.work_time import ComputeWorkTime
from utils.app_utils import get_current_user
from utils.store import WorkLogStore, get_work_log_store
from utils.stats_utils import StatsRange, WorkTimeStats, summarize_period
from utils.time_utils import day_range, local_day
from utils.work_time_utils import WorkTimeResult, WorkTimeSummary, compute_work_time, summarize_work_logs

router = APIRouter()


@router.get("/settings", response_model=WorkTimeSettings)
async def get_work_time_settings(
    user_and_type: tuple = Depends(get_current_user),
    store: WorkLogStore = Depends(get_work_log_store),
):
    try:
        return await store.load_daily_schedule_config()
    except StoreError as e:
        raise get_store_exception(e)


@router.put("/settings", response_model=WorkTimeSettings)
async def update_work_time_settings(
    payload: WorkTimeSettings,
    user_and_type: tuple = Depends(get_current_user),
    store: WorkLogStore = Depends(get_work_log_store),
):
    _, user_type = user_and_type
    if user_type != "admin":
        raise HTTPException(status_code=403, detail="Only admins can change the work schedule")

    try:
        return await store.save_daily_schedule_config(payload)
    except StoreError as e:
        raise get_store_exception(e)


@router.post("/compute", response_model=WorkTimeResult)
async def compute(
    payload: ComputeWorkTime,
    user_and_type: tuple = Depends(get_current_user),
    store: WorkLogStore = Depends(get_work_log_store),
):
    """
    Splits an HH:mm start/end pair into normal and overtime minutes using the stored schedule.
    Lunch is never paid. Overtime is rounded to the nearest minimum overtime unit.
    """
    try:
        schedule = await store.load_daily_schedule_config()
        return compute_work_time(payload.start, payload.end, schedule)
    except ValidationError as e:
        raise get_validation_exception(e)
    except StoreError as e:
        raise get_store_exception(e)


@router.get("/summary", response_model=WorkTimeSummary)
async def get_daily_summary(
    day: date = Query(..., alias="date", description="Local day, YYYY-MM-DD"),
    user_and_type: tuple = Depends(get_current_user),
    store: WorkLogStore = Depends(get_work_log_store),
):
    user, _ = user_and_type
    try:
        schedule = await store.load_daily_schedule_config()
        logs = await store.find_intervals(user["id"], day_range(day))
        return summarize_work_logs(logs, schedule)
    except StoreError as e:
        raise get_store_exception(e)


@router.get("/stats", response_model=WorkTimeStats)
async def get_work_time_stats(
    time_range: StatsRange = Query(StatsRange.WEEK, alias="range", description="week or month"),
    day: Optional[date] = Query(None, alias="date", description="Any local day inside the period"),
    user_id: Optional[str] = Query(None, description="Whose punches to total, for admins"),
    user_and_type: tuple = Depends(get_current_user),
    store: WorkLogStore = Depends(get_work_log_store),
):
    """
    Payroll hours for the week (Monday to Sunday) or month around `date`.
    Weekday and weekend hours are totalled separately with overtime split
    into tiers, and breaches of the daily, weekly and monthly limits are
    listed under violations.
    Raises:
        HTTPException:
            - 403 if a non-admin asks for another user's stats
    """
    user, user_type = user_and_type
    user_id = user_id or user["id"]
    if user_id != user["id"] and user_type != "admin":
        raise HTTPException(status_code=403, detail="You are not authorized to view these stats")

    anchor = day or local_day(datetime.now(timezone.utc))
    try:
        return await summarize_period(store, user_id, time_range, anchor)
    except StoreError as e:
        raise get_store_exception(e)
