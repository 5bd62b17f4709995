import math
from calendar import monthrange
from datetime import date, timedelta, tzinfo
from enum import Enum
from typing import List, Optional, Tuple
from pydantic import BaseModel

from models.clock_records import ClockRecord, ClockType
from models.work_time_settings import WorkTimeSettings
from utils.store import WorkLogStore
from utils.time_utils import day_range, ensure_utc, local_timezone, to_local, to_minutes

REGULAR_HOURS_PER_DAY = 8
FIRST_OVERTIME_TIER_HOURS = 2
WEEKDAY_SECOND_TIER_HOURS = 2
WEEKEND_SECOND_TIER_HOURS = 10
MAX_DAILY_HOURS = 12
MAX_WEEKDAY_HOURS_PER_WEEK = 40
MAX_OVERTIME_HOURS_PER_PERIOD = 46


class StatsRange(str, Enum):
    WEEK = "week"
    MONTH = "month"


class HourTotals(BaseModel):
    regular_hours: float = 0
    overtime1_hours: float = 0
    overtime1_actual_hours: float = 0
    overtime2_hours: float = 0
    overtime2_actual_hours: float = 0
    total_overtime_hours: float = 0
    exceed_hours: float = 0
    exceed_actual_hours: float = 0
    total_work_hours: float = 0

    def add(self, other: "HourTotals") -> None:
        for field in HourTotals.model_fields:
            setattr(self, field, getattr(self, field) + getattr(other, field))


class DayWorkStats(HourTotals):
    date: date
    is_weekend: bool


class WorkTimeStats(BaseModel):
    time_range: StatsRange
    period_start: date
    period_end: date
    weekday: HourTotals
    weekend: HourTotals
    total: HourTotals
    violations: List[str] = []
    daily_stats: List[DayWorkStats] = []


def legal_hours(actual_hours: float) -> float:
    """Floor to the half hour, the unit overtime is paid in."""
    if not actual_hours or actual_hours <= 0:
        return 0
    return math.floor(actual_hours * 2) / 2


def period_bounds(time_range: StatsRange, anchor: date) -> Tuple[date, date]:
    if time_range == StatsRange.MONTH:
        last_day = monthrange(anchor.year, anchor.month)[1]
        return anchor.replace(day=1), anchor.replace(day=last_day)
    monday = anchor - timedelta(days=anchor.weekday())
    return monday, monday + timedelta(days=6)


def worked_minutes(events: List[ClockRecord], schedule: WorkTimeSettings, tz: Optional[tzinfo] = None) -> float:
    """
    Sum the IN/OUT pairs of one day, less the part of each pair inside the lunch break.

    A second IN before an OUT restarts the pair; an OUT without an IN is ignored.
    """
    tz = tz or local_timezone()
    lunch_start_minutes = to_minutes(schedule.lunch_break_start)
    lunch_end_minutes = to_minutes(schedule.lunch_break_end)

    total = 0.0
    clock_in = None
    for event in sorted(events, key=lambda event: ensure_utc(event.timestamp)):
        if event.type == ClockType.IN:
            clock_in = ensure_utc(event.timestamp)
            continue
        if clock_in is None:
            continue

        clock_out = ensure_utc(event.timestamp)
        minutes = max(0.0, (clock_out - clock_in).total_seconds() / 60)
        midnight = to_local(clock_in, tz).replace(hour=0, minute=0, second=0, microsecond=0)
        lunch_start = midnight + timedelta(minutes=lunch_start_minutes)
        lunch_end = midnight + timedelta(minutes=lunch_end_minutes)
        lunch_overlap = (min(clock_out, lunch_end) - max(clock_in, lunch_start)).total_seconds() / 60
        if lunch_overlap > 0:
            minutes -= lunch_overlap
        total += max(0.0, minutes)
        clock_in = None
    return total


def analyze_day(day: date, events: List[ClockRecord], schedule: WorkTimeSettings, tz: Optional[tzinfo] = None) -> DayWorkStats:
    """
    Split one day's worked hours into regular time and overtime tiers.

    On weekdays the first 8 hours are regular, the next 2 are the first
    overtime tier and the 2 after that the second tier. On weekends every
    hour is overtime: 2 hours in the first tier, up to 10 in the second.
    Anything past 12 hours is reported as exceeding the daily limit. Tier
    hours are floored to the half hour; the *_actual_hours fields keep the
    unrounded values.
    """
    total_hours = worked_minutes(events, schedule, tz) / 60
    is_weekend = day.weekday() >= 5

    if is_weekend:
        regular = 0
        overtime = total_hours
        second_tier_cap = WEEKEND_SECOND_TIER_HOURS
    else:
        regular = min(total_hours, REGULAR_HOURS_PER_DAY)
        overtime = max(0, total_hours - REGULAR_HOURS_PER_DAY)
        second_tier_cap = WEEKDAY_SECOND_TIER_HOURS

    overtime1_actual = min(overtime, FIRST_OVERTIME_TIER_HOURS)
    overtime2_actual = min(max(0, overtime - FIRST_OVERTIME_TIER_HOURS), second_tier_cap)
    exceed_actual = max(0, total_hours - MAX_DAILY_HOURS)
    overtime1 = legal_hours(overtime1_actual)
    overtime2 = legal_hours(overtime2_actual)

    return DayWorkStats(
        date=day,
        is_weekend=is_weekend,
        regular_hours=regular,
        overtime1_hours=overtime1,
        overtime1_actual_hours=overtime1_actual,
        overtime2_hours=overtime2,
        overtime2_actual_hours=overtime2_actual,
        total_overtime_hours=overtime1 + overtime2,
        exceed_hours=legal_hours(exceed_actual),
        exceed_actual_hours=exceed_actual,
        total_work_hours=total_hours,
    )


def find_violations(daily_stats: List[DayWorkStats], weekday: HourTotals, total: HourTotals) -> List[str]:
    violations = []
    for day in daily_stats:
        if day.total_work_hours > MAX_DAILY_HOURS:
            violations.append(
                f"{day.date.isoformat()}: worked {day.total_work_hours:.1f} h, "
                f"above the daily limit of {MAX_DAILY_HOURS} h"
            )
    if weekday.total_work_hours > MAX_WEEKDAY_HOURS_PER_WEEK:
        violations.append(
            f"Weekday work of {weekday.total_work_hours:.1f} h is above the weekly limit "
            f"of {MAX_WEEKDAY_HOURS_PER_WEEK} h"
        )
    if total.total_overtime_hours > MAX_OVERTIME_HOURS_PER_PERIOD:
        violations.append(
            f"Overtime of {total.total_overtime_hours:.1f} h is above the monthly limit "
            f"of {MAX_OVERTIME_HOURS_PER_PERIOD} h"
        )
    return violations


async def summarize_period(
    store: WorkLogStore,
    user_id: str,
    time_range: StatsRange,
    anchor: date,
    tz: Optional[tzinfo] = None,
) -> WorkTimeStats:
    """Weekly (Monday to Sunday) or calendar-month payroll hours from a user's punches."""
    period_start, period_end = period_bounds(time_range, anchor)
    schedule = await store.load_daily_schedule_config()

    daily_stats = []
    day = period_start
    while day <= period_end:
        events = await store.find_punch_events(user_id, day_range(day, tz))
        if events:
            daily_stats.append(analyze_day(day, events, schedule, tz))
        day += timedelta(days=1)

    weekday, weekend, total = HourTotals(), HourTotals(), HourTotals()
    for stats in daily_stats:
        (weekend if stats.is_weekend else weekday).add(stats)
    total.add(weekday)
    total.add(weekend)

    return WorkTimeStats(
        time_range=time_range,
        period_start=period_start,
        period_end=period_end,
        weekday=weekday,
        weekend=weekend,
        total=total,
        violations=find_violations(daily_stats, weekday, total),
        daily_stats=daily_stats,
    )
