import logging
from typing import Any, Awaitable, Callable, List, Optional, TypeVar

from bson import ObjectId
from bson.errors import InvalidId
from pymongo import ASCENDING, DESCENDING, ReturnDocument
from pymongo.errors import PyMongoError

from config import settings
from db import (client, work_logs_collection, clock_records_collection,
                work_time_settings_collection)
from exceptions import StoreError
from models.clock_records import ClockRecord
from models.work_logs import WorkLog
from models.work_time_settings import WorkTimeSettings
from utils.time_utils import DayRange

logger = logging.getLogger(__name__)

T = TypeVar("T")

SETTINGS_KEY = "daily_schedule"


def _object_id(value: str) -> Optional[ObjectId]:
    try:
        return ObjectId(value)
    except (InvalidId, TypeError):
        return None


def _to_work_log(document: dict) -> WorkLog:
    document = dict(document)
    document["id"] = str(document.pop("_id"))
    return WorkLog(**document)


def _to_clock_record(document: dict) -> ClockRecord:
    document = dict(document)
    document["id"] = str(document.pop("_id"))
    return ClockRecord(**document)


class WorkLogStore:
    """
    Access to work logs, clock records and the daily schedule.

    Every method raises StoreError when MongoDB fails. A store bound to a
    client session (see run_atomic) sends all its calls through that session
    so they commit or abort together.
    """

    def __init__(self, session=None):
        self.session = session

    async def run_atomic(self, fn: Callable[["WorkLogStore"], Awaitable[T]]) -> T:
        if self.session is not None:
            return await fn(self)
        if not settings.MONGODB_TRANSACTIONS:
            if settings.PRODUCTION_MODE:
                raise StoreError("MONGODB_TRANSACTIONS must be enabled in production")
            logger.warning("Transactions disabled, writes are not atomic")
            return await fn(self)
        try:
            async with await client.start_session() as session:
                async with session.start_transaction():
                    return await fn(WorkLogStore(session=session))
        except PyMongoError as e:
            logger.error("Transaction aborted: %s", e)
            raise StoreError(str(e)) from e

    async def _call(self, operation: Awaitable[Any]) -> Any:
        try:
            return await operation
        except PyMongoError as e:
            raise StoreError(str(e)) from e

    # work logs

    async def find_intervals(self, user_id: str, day: DayRange, exclude_id: Optional[str] = None) -> List[WorkLog]:
        query = {"user_id": user_id, "start_time": {"$gte": day[0], "$lt": day[1]}}
        if exclude_id:
            excluded = _object_id(exclude_id)
            if excluded is not None:
                query["_id"] = {"$ne": excluded}
        cursor = work_logs_collection.find(query, session=self.session).sort("start_time", ASCENDING)
        documents = await self._call(cursor.to_list(length=None))
        return [_to_work_log(document) for document in documents]

    async def get_interval(self, interval_id: str, user_id: str) -> Optional[WorkLog]:
        object_id = _object_id(interval_id)
        if object_id is None:
            return None
        document = await self._call(
            work_logs_collection.find_one({"_id": object_id, "user_id": user_id}, session=self.session)
        )
        return _to_work_log(document) if document else None

    async def find_open_interval(self, user_id: str, project_code: Optional[str] = None) -> Optional[WorkLog]:
        query = {"user_id": user_id, "end_time": None}
        if project_code:
            query["project_code"] = project_code
        cursor = work_logs_collection.find(query, session=self.session).sort("start_time", DESCENDING).limit(1)
        documents = await self._call(cursor.to_list(length=1))
        return _to_work_log(documents[0]) if documents else None

    async def create_interval(self, data: WorkLog) -> WorkLog:
        document = data.model_dump(exclude={"id"})
        result = await self._call(work_logs_collection.insert_one(document, session=self.session))
        return data.model_copy(update={"id": str(result.inserted_id)})

    async def update_interval(self, interval_id: str, patch: dict) -> WorkLog:
        document = await self._call(
            work_logs_collection.find_one_and_update(
                {"_id": ObjectId(interval_id)},
                {"$set": patch},
                return_document=ReturnDocument.AFTER,
                session=self.session,
            )
        )
        if document is None:
            raise StoreError(f"Work log {interval_id} disappeared during update")
        return _to_work_log(document)

    async def delete_interval(self, interval_id: str) -> None:
        await self._call(work_logs_collection.delete_one({"_id": ObjectId(interval_id)}, session=self.session))

    # clock records

    async def find_punch_events(self, user_id: str, day: DayRange) -> List[ClockRecord]:
        cursor = clock_records_collection.find(
            {"user_id": user_id, "timestamp": {"$gte": day[0], "$lt": day[1]}},
            session=self.session,
        ).sort("timestamp", DESCENDING)
        documents = await self._call(cursor.to_list(length=None))
        return [_to_clock_record(document) for document in documents]

    async def get_punch_event(self, record_id: str, user_id: str) -> Optional[ClockRecord]:
        object_id = _object_id(record_id)
        if object_id is None:
            return None
        document = await self._call(
            clock_records_collection.find_one({"_id": object_id, "user_id": user_id}, session=self.session)
        )
        return _to_clock_record(document) if document else None

    async def create_punch_event(self, record: ClockRecord) -> ClockRecord:
        document = record.model_dump(exclude={"id"})
        result = await self._call(clock_records_collection.insert_one(document, session=self.session))
        return record.model_copy(update={"id": str(result.inserted_id)})

    async def update_punch_event(self, record_id: str, patch: dict) -> ClockRecord:
        document = await self._call(
            clock_records_collection.find_one_and_update(
                {"_id": ObjectId(record_id)},
                {"$set": patch},
                return_document=ReturnDocument.AFTER,
                session=self.session,
            )
        )
        if document is None:
            raise StoreError(f"Clock record {record_id} disappeared during update")
        return _to_clock_record(document)

    async def delete_punch_event(self, record_id: str) -> None:
        await self._call(clock_records_collection.delete_one({"_id": ObjectId(record_id)}, session=self.session))

    # schedule

    async def load_daily_schedule_config(self) -> WorkTimeSettings:
        document = await self._call(
            work_time_settings_collection.find_one({"key": SETTINGS_KEY}, session=self.session)
        )
        if not document:
            return WorkTimeSettings()
        document.pop("_id", None)
        document.pop("key", None)
        return WorkTimeSettings(**document)

    async def save_daily_schedule_config(self, schedule: WorkTimeSettings) -> WorkTimeSettings:
        await self._call(
            work_time_settings_collection.update_one(
                {"key": SETTINGS_KEY},
                {"$set": schedule.model_dump()},
                upsert=True,
                session=self.session,
            )
        )
        return schedule


def get_work_log_store() -> WorkLogStore:
    return WorkLogStore()
