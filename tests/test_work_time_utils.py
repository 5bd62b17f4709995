import pytest

from exceptions import FormatError
from models.work_time_settings import WorkTimeSettings
from utils.work_time_utils import compute_log_work_time, compute_work_time, round_to_unit, summarize_work_logs

from conftest import make_log


def test_full_day_with_overtime(schedule):
    result = compute_work_time("09:00", "19:00", schedule)
    assert result.normal_minutes == 480
    assert result.overtime_minutes == 60


def test_overtime_rounds_to_nearest_unit(schedule):
    assert compute_work_time("18:00", "18:40", schedule).overtime_minutes == 30
    assert compute_work_time("18:00", "18:45", schedule).overtime_minutes == 60
    assert compute_work_time("18:00", "18:14", schedule).overtime_minutes == 0


def test_round_to_unit_half_up():
    assert round_to_unit(40, 30) == 30
    assert round_to_unit(45, 30) == 60
    assert round_to_unit(7, 15) == 0
    assert round_to_unit(8, 15) == 15
    assert round_to_unit(0, 30) == 0


def test_interval_inside_lunch_has_no_normal_time(schedule):
    result = compute_work_time("12:40", "13:20", schedule)
    assert result.normal_minutes == 0
    assert result.overtime_minutes == 0


def test_partial_lunch_overlap_is_subtracted(schedule):
    assert compute_work_time("12:00", "13:00", schedule).normal_minutes == 30


def test_time_before_normal_start_is_not_counted(schedule):
    result = compute_work_time("07:00", "10:00", schedule)
    assert result.normal_minutes == 60
    assert result.overtime_minutes == 0


def test_gap_between_normal_end_and_overtime_start_is_unpaid():
    schedule = WorkTimeSettings(normal_work_end="18:00", overtime_start="18:30", minimum_overtime_unit=1)
    result = compute_work_time("17:00", "19:00", schedule)
    assert result.normal_minutes == 60
    assert result.overtime_minutes == 30


def test_cross_midnight_interval_counts_overtime(schedule):
    result = compute_work_time("22:00", "01:00", schedule)
    assert result.normal_minutes == 0
    assert result.overtime_minutes == 180


def test_malformed_time_raises(schedule):
    with pytest.raises(FormatError):
        compute_work_time("9am", "18:00", schedule)


def test_schedule_validates_time_format():
    with pytest.raises(ValueError):
        WorkTimeSettings(normal_work_start="9:00")
    with pytest.raises(ValueError):
        WorkTimeSettings(minimum_overtime_unit=0)


def test_compute_log_work_time_uses_local_clock(schedule):
    log = make_log("09:00", "19:00")
    assert compute_log_work_time(log, schedule).normal_minutes == 480


def test_summary_skips_open_logs(schedule):
    logs = [make_log("09:00", "12:00"), make_log("13:30", "18:40"), make_log("19:00", None)]
    summary = summarize_work_logs(logs, schedule)
    assert summary.normal_minutes == 180 + 270
    assert summary.overtime_minutes == 30
    assert summary.counted_logs == 2
    assert summary.ongoing_logs == 1
