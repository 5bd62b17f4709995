from datetime import timedelta

from exceptions import StoreError
from utils.merge_utils import find_merge_clusters, format_duration, merge_day, preview_merge

import pytest

from conftest import DAY, USER_ID, at, make_log


async def test_one_minute_gap_is_merged(store):
    await store.add(make_log("09:00", "09:30"))
    await store.add(make_log("09:31", "10:00"))

    reports = await merge_day(store, USER_ID, DAY)

    assert len(reports) == 1
    assert reports[0].original_count == 2
    assert store.spans() == [(at("09:00"), at("10:00"))]
    merged = reports[0].merged_interval
    assert merged.project_code == "P1"
    assert merged.content == "coding"


async def test_two_minute_gap_is_not_merged(store):
    await store.add(make_log("09:00", "09:30"))
    await store.add(make_log("09:32", "10:00"))

    assert await merge_day(store, USER_ID, DAY) == []
    assert len(store.work_logs) == 2


async def test_content_is_compared_after_trimming(store):
    await store.add(make_log("09:00", "09:30", content="coding "))
    await store.add(make_log("09:30", "10:00", content="coding"))

    reports = await merge_day(store, USER_ID, DAY)
    assert len(reports) == 1


async def test_different_kinds_are_not_merged(store):
    await store.add(make_log("09:00", "09:30"))
    await store.add(make_log("09:30", "10:00", category="meeting"))

    assert await merge_day(store, USER_ID, DAY) == []


async def test_merge_never_swallows_a_foreign_log(store):
    await store.add(make_log("09:00", "10:00"))
    await store.add(make_log("09:20", "09:40", project_code="P2"))
    await store.add(make_log("09:50", "11:00"))

    assert await merge_day(store, USER_ID, DAY) == []
    assert len(store.work_logs) == 3


async def test_enclosed_member_keeps_the_widest_end(store):
    await store.add(make_log("09:00", "12:00"))
    await store.add(make_log("10:00", "11:00"))
    await store.add(make_log("11:30", "12:30"))

    reports = await merge_day(store, USER_ID, DAY)

    assert [report.original_count for report in reports] == [3]
    assert store.spans() == [(at("09:00"), at("12:30"))]


async def test_merge_is_idempotent(store):
    await store.add(make_log("09:00", "09:30"))
    await store.add(make_log("09:30", "10:00"))
    await store.add(make_log("13:00", "14:00"))

    await merge_day(store, USER_ID, DAY)
    after_first = store.spans()
    assert await merge_day(store, USER_ID, DAY) == []
    assert store.spans() == after_first


async def test_open_logs_are_left_alone(store):
    await store.add(make_log("09:00", "09:30"))
    await store.add(make_log("09:30", None))

    assert await merge_day(store, USER_ID, DAY) == []
    assert store.spans() == [(at("09:00"), at("09:30")), (at("09:30"), None)]


async def test_other_days_are_not_touched(store):
    await store.add(make_log("09:00", "09:30", day=DAY + timedelta(days=1)))
    await store.add(make_log("09:30", "10:00", day=DAY + timedelta(days=1)))

    assert await merge_day(store, USER_ID, DAY) == []
    assert len(store.work_logs) == 2


async def test_failed_merge_rolls_back(store):
    await store.add(make_log("09:00", "09:30"))
    await store.add(make_log("09:30", "10:00"))
    before = store.spans()
    store.fail_on = "delete_interval"

    with pytest.raises(StoreError):
        await merge_day(store, USER_ID, DAY)
    assert store.spans() == before


async def test_preview_reports_clusters_without_mutating(store):
    await store.add(make_log("09:00", "09:30"))
    await store.add(make_log("09:30", "11:00"))
    await store.add(make_log("13:00", "13:20", project_code="P2"))
    await store.add(make_log("13:20", "13:40", project_code="P2"))

    previews = await preview_merge(store, USER_ID, DAY)

    assert [(p.project_code, p.count, p.total_minutes, p.total_duration) for p in previews] == [
        ("P1", 2, 120, "2.0 h"),
        ("P2", 2, 40, "40 min"),
    ]
    assert len(store.work_logs) == 4


def test_clusters_are_separated_by_gaps():
    logs = [
        make_log("09:00", "09:30").model_copy(update={"id": "a"}),
        make_log("09:30", "10:00").model_copy(update={"id": "b"}),
        make_log("11:00", "11:30").model_copy(update={"id": "c"}),
        make_log("11:31", "12:00").model_copy(update={"id": "d"}),
        make_log("15:00", "16:00").model_copy(update={"id": "e"}),
    ]
    clusters = find_merge_clusters(logs)
    assert [[log.id for log in cluster] for cluster in clusters] == [["a", "b"], ["c", "d"]]


def test_format_duration():
    assert format_duration(45) == "45 min"
    assert format_duration(90) == "1.5 h"
