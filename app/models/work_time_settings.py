import re
from pydantic import BaseModel, Field, field_validator

HHMM_PATTERN = re.compile(r"^([01]\d|2[0-3]):([0-5]\d)$")


class WorkTimeSettings(BaseModel):
    normal_work_start: str = "09:00"
    normal_work_end: str = "18:00"
    lunch_break_start: str = "12:30"
    lunch_break_end: str = "13:30"
    overtime_start: str = "18:00"
    minimum_overtime_unit: int = Field(30, ge=1, le=60) # minutes

    @field_validator(
        "normal_work_start", "normal_work_end", "lunch_break_start",
        "lunch_break_end", "overtime_start"
    )
    @classmethod
    def check_hhmm(cls, value: str) -> str:
        if not HHMM_PATTERN.match(value):
            raise ValueError(f"Invalid time format '{value}', expected HH:mm")
        return value
