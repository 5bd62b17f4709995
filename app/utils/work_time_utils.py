from datetime import tzinfo
from typing import Iterable, Optional
from pydantic import BaseModel

from models.work_logs import WorkLog
from models.work_time_settings import WorkTimeSettings
from utils.time_utils import normalize_cross_midnight, to_local_hhmm, to_minutes


class WorkTimeResult(BaseModel):
    normal_minutes: int = 0
    overtime_minutes: int = 0


class WorkTimeSummary(BaseModel):
    normal_minutes: int = 0
    overtime_minutes: int = 0
    counted_logs: int = 0
    ongoing_logs: int = 0


def round_to_unit(minutes: int, unit: int) -> int:
    """Round to the nearest multiple of `unit`, halves going up."""
    if minutes <= 0:
        return 0
    return (2 * minutes + unit) // (2 * unit) * unit


def compute_work_time(start: str, end: str, settings: WorkTimeSettings) -> WorkTimeResult:
    """
    Split a start/end pair into normal and overtime minutes.

    Normal time is the part inside [normal_work_start, normal_work_end) minus
    whatever falls inside the lunch break. Overtime runs from
    max(overtime_start, start) to the end and is rounded to the nearest
    minimum_overtime_unit. Time between normal_work_end and overtime_start,
    when they differ, counts as neither.

    Args:
        start (str): "HH:mm" start time.
        end (str): "HH:mm" end time, earlier than start when crossing midnight.
        settings (WorkTimeSettings): the daily schedule.
    Returns:
        WorkTimeResult: normal_minutes and overtime_minutes, both >= 0.
    Raises:
        FormatError: if any time string is not HH:mm.
    """
    start_minutes = to_minutes(start)
    end_minutes = normalize_cross_midnight(start_minutes, to_minutes(end))
    normal_start = to_minutes(settings.normal_work_start)
    normal_end = to_minutes(settings.normal_work_end)
    lunch_start = to_minutes(settings.lunch_break_start)
    lunch_end = to_minutes(settings.lunch_break_end)
    overtime_start = to_minutes(settings.overtime_start)

    normal_minutes = 0
    work_start = max(start_minutes, normal_start)
    work_end = min(end_minutes, normal_end)
    if work_end > work_start:
        normal_minutes = work_end - work_start
        lunch_overlap = min(work_end, lunch_end) - max(work_start, lunch_start)
        if lunch_overlap > 0:
            normal_minutes -= lunch_overlap

    overtime_minutes = 0
    if end_minutes > overtime_start:
        raw_overtime = end_minutes - max(overtime_start, start_minutes)
        overtime_minutes = round_to_unit(raw_overtime, settings.minimum_overtime_unit)

    return WorkTimeResult(
        normal_minutes=max(0, normal_minutes),
        overtime_minutes=max(0, overtime_minutes),
    )


def compute_log_work_time(log: WorkLog, settings: WorkTimeSettings, tz: Optional[tzinfo] = None) -> WorkTimeResult:
    if log.end_time is None:
        return WorkTimeResult()
    return compute_work_time(to_local_hhmm(log.start_time, tz), to_local_hhmm(log.end_time, tz), settings)


def summarize_work_logs(logs: Iterable[WorkLog], settings: WorkTimeSettings, tz: Optional[tzinfo] = None) -> WorkTimeSummary:
    summary = WorkTimeSummary()
    for log in logs:
        if log.end_time is None:
            summary.ongoing_logs += 1
            continue
        result = compute_log_work_time(log, settings, tz)
        summary.normal_minutes += result.normal_minutes
        summary.overtime_minutes += result.overtime_minutes
        summary.counted_logs += 1
    return summary
