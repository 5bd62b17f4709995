from datetime import date, datetime
from pydantic import BaseModel, Field
from typing import Optional, List


class CreateWorkLog(BaseModel):
    start_time: datetime
    end_time: Optional[datetime] = None
    project_code: str = Field(..., min_length=1)
    project_name: str = Field(..., min_length=1)
    category: str = Field(..., min_length=1)
    content: str = Field(..., min_length=1)
    is_overtime: bool = False
    is_clock_mode: bool = False
    clock_edit_reason: Optional[str] = None


class EditWorkLog(BaseModel):
    start_time: datetime
    end_time: Optional[datetime] = None
    project_code: str = Field(..., min_length=1)
    project_name: str = Field(..., min_length=1)
    category: str = Field(..., min_length=1)
    content: str = Field(..., min_length=1)
    is_overtime: bool = False
    edit_reason: Optional[str] = None


class QuickWorkLog(BaseModel):
    project_code: str = Field(..., min_length=1)
    project_name: str = Field(..., min_length=1)
    category: str = Field(..., min_length=1)
    content: str = Field(..., min_length=1)


class MergeRequest(BaseModel):
    date: date


class ConflictPreview(BaseModel):
    mutations: List[dict] = Field(
        ...,
        description="list of planned adjustments"
    )
    class Config:
        json_schema_extra = {
            "example": {
                "mutations": [
                    {
                        "kind": "split",
                        "interval_id": "6650f1c2a1b2c3d4e5f60718",
                        "end_time": "2024-05-20T02:00:00Z",
                        "tail_start": "2024-05-20T03:00:00Z",
                        "tail_end": "2024-05-20T04:00:00Z"
                    }
                ]
            }
        }
