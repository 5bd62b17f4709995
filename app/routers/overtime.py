from datetime import datetime, timezone
from fastapi import APIRouter, Depends, HTTPException

from exceptions import (NotFoundError, StoreError, ValidationError, get_store_exception,
                        get_unknown_entity_exception, get_validation_exception)
from models.work_logs import OVERTIME_PROJECT_CODE, WorkLog
from utils.app_utils import get_current_user
from utils.conflict_utils import resolve_and_apply
from utils.store import WorkLogStore, get_work_log_store

UTC = timezone.utc

router = APIRouter()


@router.post("/start", response_model=WorkLog)
async def start_overtime(
    user_and_type: tuple = Depends(get_current_user),
    store: WorkLogStore = Depends(get_work_log_store),
):
    """
    Opens an ongoing overtime log starting now.
    Any log still running is closed at this instant.
    """
    user, _ = user_and_type
    now = datetime.now(UTC)
    candidate = WorkLog(
        user_id=user["id"],
        project_code=OVERTIME_PROJECT_CODE,
        project_name="Overtime",
        category="overtime",
        content="Overtime",
        start_time=now,
        is_overtime=True,
    )
    try:
        return await resolve_and_apply(store, user["id"], candidate, now=now)
    except ValidationError as e:
        raise get_validation_exception(e)
    except StoreError as e:
        raise get_store_exception(e)


@router.post("/end", response_model=WorkLog)
async def end_overtime(
    user_and_type: tuple = Depends(get_current_user),
    store: WorkLogStore = Depends(get_work_log_store),
):
    user, _ = user_and_type
    try:
        ongoing = await store.find_open_interval(user["id"], project_code=OVERTIME_PROJECT_CODE)
        if not ongoing:
            raise HTTPException(status_code=400, detail="No ongoing overtime")

        closed = ongoing.model_copy(update={"end_time": datetime.now(UTC)})
        return await resolve_and_apply(store, user["id"], closed, exclude_id=ongoing.id)
    except ValidationError as e:
        raise get_validation_exception(e)
    except NotFoundError:
        raise get_unknown_entity_exception()
    except StoreError as e:
        raise get_store_exception(e)
