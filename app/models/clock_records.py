from pydantic import BaseModel
from datetime import datetime
from enum import Enum
from typing import Optional


class ClockType(str, Enum):
    IN = "IN"
    OUT = "OUT"


class ClockRecord(BaseModel):
    id: Optional[str] = None
    user_id: str
    type: ClockType
    timestamp: datetime
    is_edited: bool = False
    edit_reason: Optional[str] = None
    edited_by: Optional[str] = None
    edited_at: Optional[datetime] = None
    edit_ip_address: Optional[str] = None
    original_timestamp: Optional[datetime] = None
