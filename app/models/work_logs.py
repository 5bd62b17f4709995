from pydantic import BaseModel
from datetime import datetime, timezone
from typing import Optional, Tuple, Union

UTC = timezone.utc

OVERTIME_PROJECT_CODE = "OT"


class Open(BaseModel):
    """End bound of an interval that is still running."""


class Closed(BaseModel):
    at: datetime


IntervalEnd = Union[Closed, Open]


class WorkLog(BaseModel):
    id: Optional[str] = None
    user_id: str
    project_code: str
    project_name: str
    category: str
    content: str
    start_time: datetime
    end_time: Optional[datetime] = None  # None while the work is ongoing
    is_overtime: bool = False
    is_edited: bool = False
    edit_reason: Optional[str] = None
    edited_by: Optional[str] = None
    edited_at: Optional[datetime] = None
    edit_ip_address: Optional[str] = None
    original_start_time: Optional[datetime] = None
    original_end_time: Optional[datetime] = None
    created_at: Optional[datetime] = None

    @property
    def bound(self) -> IntervalEnd:
        if self.end_time is None:
            return Open()
        return Closed(at=self.end_time)

    @property
    def signature(self) -> Tuple[str, str, str]:
        return (self.project_code, self.category, self.content.strip())

    @property
    def duration_minutes(self) -> float:
        if self.end_time is None:
            return 0.0
        return (self.end_time - self.start_time).total_seconds() / 60

    def descriptive_fields(self) -> dict:
        return {
            "user_id": self.user_id,
            "project_code": self.project_code,
            "project_name": self.project_name,
            "category": self.category,
            "content": self.content,
            "is_overtime": self.is_overtime,
        }
