from datetime import datetime
from pydantic import BaseModel, Field

from models.clock_records import ClockType


class CreateClockRecord(BaseModel):
    type: ClockType


class EditClockRecord(BaseModel):
    timestamp: datetime
    edit_reason: str = Field(..., min_length=1)
