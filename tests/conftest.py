import copy
import os
from datetime import date, datetime, timezone
from typing import Dict, List, Optional

# settings are read at import time and have no signing-key default
os.environ.setdefault("SECRET_KEY", "test-signing-key")

import pytest
from bson import ObjectId

from exceptions import StoreError
from models.clock_records import ClockRecord, ClockType
from models.work_logs import WorkLog
from models.work_time_settings import WorkTimeSettings
from utils.time_utils import local_timezone

UTC = timezone.utc
DAY = date(2024, 5, 20)
USER_ID = "user-1"


def at(hhmm: str, day: date = DAY) -> datetime:
    """Local wall-clock time on `day`, as an aware UTC instant."""
    hour, minute = (int(part) for part in hhmm.split(":"))
    local = datetime(day.year, day.month, day.day, hour, minute, tzinfo=local_timezone())
    return local.astimezone(UTC)


def make_log(start: str, end: Optional[str], project_code: str = "P1", category: str = "dev",
             content: str = "coding", user_id: str = USER_ID, day: date = DAY) -> WorkLog:
    return WorkLog(
        user_id=user_id,
        project_code=project_code,
        project_name=f"Project {project_code}",
        category=category,
        content=content,
        start_time=at(start, day),
        end_time=at(end, day) if end else None,
    )


def make_punch(kind: str, hhmm: str, day: date = DAY, user_id: str = USER_ID) -> ClockRecord:
    return ClockRecord(user_id=user_id, type=ClockType(kind), timestamp=at(hhmm, day))


class InMemoryWorkLogStore:
    """Dict-backed stand-in for WorkLogStore; run_atomic restores a snapshot on failure."""

    def __init__(self):
        self.work_logs: Dict[str, WorkLog] = {}
        self.clock_records: Dict[str, ClockRecord] = {}
        self.schedule: Optional[WorkTimeSettings] = None
        self.fail_on: Optional[str] = None
        self.atomic_calls = 0

    def _maybe_fail(self, operation: str):
        if self.fail_on == operation:
            raise StoreError(f"{operation} failed")

    async def run_atomic(self, fn):
        self.atomic_calls += 1
        snapshot = (copy.deepcopy(self.work_logs), copy.deepcopy(self.clock_records))
        try:
            return await fn(self)
        except Exception:
            self.work_logs, self.clock_records = snapshot
            raise

    async def find_intervals(self, user_id, day, exclude_id=None) -> List[WorkLog]:
        self._maybe_fail("find_intervals")
        logs = [
            log for log in self.work_logs.values()
            if log.user_id == user_id and day[0] <= log.start_time < day[1] and log.id != exclude_id
        ]
        return sorted(logs, key=lambda log: log.start_time)

    async def get_interval(self, interval_id, user_id) -> Optional[WorkLog]:
        log = self.work_logs.get(interval_id)
        if log is None or log.user_id != user_id:
            return None
        return log

    async def find_open_interval(self, user_id, project_code=None) -> Optional[WorkLog]:
        open_logs = [
            log for log in self.work_logs.values()
            if log.user_id == user_id and log.end_time is None
            and (project_code is None or log.project_code == project_code)
        ]
        return max(open_logs, key=lambda log: log.start_time, default=None)

    async def create_interval(self, data: WorkLog) -> WorkLog:
        self._maybe_fail("create_interval")
        log = data.model_copy(update={"id": str(ObjectId())})
        self.work_logs[log.id] = log
        return log

    async def update_interval(self, interval_id, patch) -> WorkLog:
        self._maybe_fail("update_interval")
        if interval_id not in self.work_logs:
            raise StoreError(f"Work log {interval_id} disappeared during update")
        log = self.work_logs[interval_id].model_copy(update=patch)
        self.work_logs[interval_id] = log
        return log

    async def delete_interval(self, interval_id) -> None:
        self._maybe_fail("delete_interval")
        self.work_logs.pop(interval_id, None)

    async def find_punch_events(self, user_id, day) -> List[ClockRecord]:
        records = [
            record for record in self.clock_records.values()
            if record.user_id == user_id and day[0] <= record.timestamp < day[1]
        ]
        return sorted(records, key=lambda record: record.timestamp, reverse=True)

    async def get_punch_event(self, record_id, user_id) -> Optional[ClockRecord]:
        record = self.clock_records.get(record_id)
        if record is None or record.user_id != user_id:
            return None
        return record

    async def create_punch_event(self, record: ClockRecord) -> ClockRecord:
        record = record.model_copy(update={"id": str(ObjectId())})
        self.clock_records[record.id] = record
        return record

    async def update_punch_event(self, record_id, patch) -> ClockRecord:
        self._maybe_fail("update_punch_event")
        record = self.clock_records[record_id].model_copy(update=patch)
        self.clock_records[record_id] = record
        return record

    async def delete_punch_event(self, record_id) -> None:
        self.clock_records.pop(record_id, None)

    async def load_daily_schedule_config(self) -> WorkTimeSettings:
        return self.schedule or WorkTimeSettings()

    async def save_daily_schedule_config(self, schedule: WorkTimeSettings) -> WorkTimeSettings:
        self.schedule = schedule
        return schedule

    # helpers for tests

    async def add(self, log: WorkLog) -> WorkLog:
        return await self.create_interval(log)

    async def add_punch(self, record: ClockRecord) -> ClockRecord:
        return await self.create_punch_event(record)

    def spans(self, user_id: str = USER_ID):
        logs = sorted(
            (log for log in self.work_logs.values() if log.user_id == user_id),
            key=lambda log: log.start_time,
        )
        return [(log.start_time, log.end_time) for log in logs]


@pytest.fixture
def store():
    return InMemoryWorkLogStore()


@pytest.fixture
def schedule():
    return WorkTimeSettings(
        normal_work_start="09:00",
        normal_work_end="18:00",
        lunch_break_start="12:30",
        lunch_break_end="13:30",
        overtime_start="18:00",
        minimum_overtime_unit=30,
    )
