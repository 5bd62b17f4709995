from pydantic import BaseModel


class ComputeWorkTime(BaseModel):
    start: str
    end: str
