from pydantic import Field
from datetime import datetime
from typing import Optional

from .base import CamelModel


class ExamSessionBase(CamelModel):
    title: str = Field(min_length=1, max_length=300)
    description: Optional[str] = None
    duration: int = Field(gt=0, description="Duration in minutes")


class ExamSessionCreate(ExamSessionBase):
    is_active: bool = True


class ExamSessionUpdate(CamelModel):
    title: Optional[str] = Field(default=None, min_length=1, max_length=300)
    description: Optional[str] = None
    duration: Optional[int] = Field(default=None, gt=0)
    is_active: Optional[bool] = None
    ended_at: Optional[datetime] = None


class ExamSession(ExamSessionBase):
    id: str
    is_active: bool
    started_at: datetime
    ended_at: Optional[datetime] = None
