from pydantic import BaseModel, EmailStr, Field
from datetime import datetime, timezone
from typing import Optional

UTC = timezone.utc


class User(BaseModel):
    email: EmailStr
    password: str
    name: Optional[str] = None
    role: str = "employee" # or admin
    date_created: datetime = Field(default_factory=lambda: datetime.now(UTC))
