import logging
from datetime import datetime, timedelta, timezone
from typing import List, Optional, Tuple
from pydantic import BaseModel

from config import settings
from models.clock_records import ClockRecord, ClockType
from models.work_logs import OVERTIME_PROJECT_CODE, WorkLog
from utils.edit_utils import EditProvenance, provenance_patch
from utils.store import WorkLogStore
from utils.time_utils import day_range, ensure_utc, local_day, to_local

logger = logging.getLogger(__name__)

UTC = timezone.utc


class ClockStatus(BaseModel):
    clocked_in: bool
    last_clock_in: Optional[ClockRecord] = None
    last_clock_out: Optional[ClockRecord] = None
    ongoing_overtime: Optional[WorkLog] = None


def latest_in_and_out(events: List[ClockRecord]) -> Tuple[Optional[ClockRecord], Optional[ClockRecord]]:
    ordered = sorted(events, key=lambda event: ensure_utc(event.timestamp), reverse=True)
    last_in = next((event for event in ordered if event.type == ClockType.IN), None)
    last_out = next((event for event in ordered if event.type == ClockType.OUT), None)
    return last_in, last_out


def derive_clock_state(
    today_events: List[ClockRecord],
    yesterday_events: List[ClockRecord],
    now: datetime,
    cutoff_hour: Optional[int] = None,
) -> ClockStatus:
    """
    Decide whether the user is clocked in right now.

    Before the early-morning cutoff (08:00 local by default) a day with no
    punches falls back to yesterday's, so a shift that started before
    midnight still reads as clocked in.
    """
    if cutoff_hour is None:
        cutoff_hour = settings.EARLY_MORNING_CUTOFF_HOUR

    last_in, last_out = latest_in_and_out(today_events)
    if last_in and last_out:
        return ClockStatus(
            clocked_in=ensure_utc(last_in.timestamp) > ensure_utc(last_out.timestamp),
            last_clock_in=last_in,
            last_clock_out=last_out,
        )
    if last_in:
        return ClockStatus(clocked_in=True, last_clock_in=last_in)
    if last_out:
        return ClockStatus(clocked_in=False, last_clock_out=last_out)

    if to_local(now).hour >= cutoff_hour:
        return ClockStatus(clocked_in=False)

    last_in, last_out = latest_in_and_out(yesterday_events)
    if last_in and last_out:
        clocked_in = ensure_utc(last_in.timestamp) > ensure_utc(last_out.timestamp)
    else:
        clocked_in = last_in is not None
    return ClockStatus(clocked_in=clocked_in, last_clock_in=last_in, last_clock_out=last_out)


async def derive_clock_status(store: WorkLogStore, user_id: str, now: Optional[datetime] = None) -> ClockStatus:
    now = now or datetime.now(UTC)
    today = local_day(now)
    today_events = await store.find_punch_events(user_id, day_range(today))
    yesterday_events = await store.find_punch_events(user_id, day_range(today - timedelta(days=1)))
    status = derive_clock_state(today_events, yesterday_events, now)
    status.ongoing_overtime = await store.find_open_interval(user_id, project_code=OVERTIME_PROJECT_CODE)
    return status


async def edit_punch_event(store: WorkLogStore, record: ClockRecord, timestamp: datetime, provenance: EditProvenance) -> ClockRecord:
    patch = provenance_patch(record, provenance, {"original_timestamp": "timestamp"})
    patch["timestamp"] = ensure_utc(timestamp)
    return await store.update_punch_event(record.id, patch)


async def retime_latest_clock_in(
    tx: WorkLogStore,
    user_id: str,
    timestamp: datetime,
    provenance: EditProvenance,
) -> Optional[ClockRecord]:
    """Move the most recent clock-in of the timestamp's day to `timestamp`."""
    events = await tx.find_punch_events(user_id, day_range(local_day(timestamp)))
    last_in, _ = latest_in_and_out(events)
    if last_in is None:
        return None
    updated = await edit_punch_event(tx, last_in, timestamp, provenance)
    logger.info("Clock-in %s of user %s moved to %s", last_in.id, user_id, updated.timestamp.isoformat())
    return updated
