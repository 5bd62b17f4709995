import logging
from collections import OrderedDict
from datetime import date, datetime, timedelta, timezone
from typing import Dict, List, Tuple
from pydantic import BaseModel

from models.work_logs import WorkLog
from utils.store import WorkLogStore
from utils.time_utils import day_range, ensure_utc

logger = logging.getLogger(__name__)

UTC = timezone.utc
MERGE_GAP = timedelta(minutes=1)

Signature = Tuple[str, str, str]


class MergeReport(BaseModel):
    original_count: int
    merged_interval: WorkLog


class MergePreview(BaseModel):
    project_code: str
    project_name: str
    category: str
    content: str
    count: int
    total_minutes: int
    total_duration: str


def format_duration(minutes: float) -> str:
    if minutes < 60:
        return f"{round(minutes)} min"
    return f"{minutes / 60:.1f} h"


def group_by_signature(logs: List[WorkLog]) -> Dict[Signature, List[WorkLog]]:
    groups: Dict[Signature, List[WorkLog]] = OrderedDict()
    for log in logs:
        groups.setdefault(log.signature, []).append(log)
    return groups


def encloses_foreign(last: WorkLog, nxt: WorkLog, signature: Signature, logs: List[WorkLog]) -> bool:
    """True when a log of another group lies strictly between `last` and `nxt`."""
    last_start = ensure_utc(last.start_time)
    next_end = ensure_utc(nxt.end_time)
    return any(
        log.signature != signature
        and ensure_utc(log.start_time) > last_start
        and ensure_utc(log.end_time) < next_end
        for log in logs
    )


def find_merge_clusters(logs: List[WorkLog]) -> List[List[WorkLog]]:
    """
    Find runs of same-signature logs that can be folded into one record.

    Only closed logs take part. Within a signature group, sorted by start, a
    log joins the running cluster when it starts no later than one minute
    after the cluster's end and no log of another group would end up inside
    the merged span. Only clusters of two or more are returned.
    """
    closed = [log for log in logs if log.end_time is not None]
    clusters: List[List[WorkLog]] = []

    for signature, members in group_by_signature(closed).items():
        if len(members) < 2:
            continue
        members = sorted(members, key=lambda log: ensure_utc(log.start_time))

        cluster = [members[0]]
        cluster_end = ensure_utc(members[0].end_time)
        for nxt in members[1:]:
            adjacent = ensure_utc(nxt.start_time) <= cluster_end + MERGE_GAP
            if adjacent and not encloses_foreign(cluster[-1], nxt, signature, closed):
                cluster.append(nxt)
                cluster_end = max(cluster_end, ensure_utc(nxt.end_time))
                continue
            if len(cluster) > 1:
                clusters.append(cluster)
            cluster = [nxt]
            cluster_end = ensure_utc(nxt.end_time)

        if len(cluster) > 1:
            clusters.append(cluster)

    return clusters


def merged_from(cluster: List[WorkLog]) -> WorkLog:
    first = cluster[0]
    return WorkLog(
        **first.descriptive_fields(),
        start_time=ensure_utc(first.start_time),
        end_time=max(ensure_utc(log.end_time) for log in cluster),
        created_at=datetime.now(UTC),
    )


async def merge_day(store: WorkLogStore, user_id: str, day: date) -> List[MergeReport]:
    """
    Merge fragmented duplicate work logs of one user on one local day.

    Each cluster found by find_merge_clusters is replaced by a single new
    record spanning it; the originals are deleted. All merges of the day
    commit or roll back together.
    """
    bounds = day_range(day)

    async def merge(tx: WorkLogStore) -> List[MergeReport]:
        logs = await tx.find_intervals(user_id, bounds)
        reports = []
        for cluster in find_merge_clusters(logs):
            merged = await tx.create_interval(merged_from(cluster))
            for log in cluster:
                await tx.delete_interval(log.id)
            logger.info("Merged %d work logs into %s for user %s", len(cluster), merged.id, user_id)
            reports.append(MergeReport(original_count=len(cluster), merged_interval=merged))
        return reports

    return await store.run_atomic(merge)


async def preview_merge(store: WorkLogStore, user_id: str, day: date) -> List[MergePreview]:
    logs = await store.find_intervals(user_id, day_range(day))
    previews = []
    for cluster in find_merge_clusters(logs):
        first = cluster[0]
        total = sum(log.duration_minutes for log in cluster)
        previews.append(MergePreview(
            project_code=first.project_code,
            project_name=first.project_name,
            category=first.category,
            content=first.content,
            count=len(cluster),
            total_minutes=round(total),
            total_duration=format_duration(total),
        ))
    return previews
