from pydantic import Field
from datetime import datetime
from typing import Optional, Dict

from .base import CamelModel


class ViolationCreate(CamelModel):
    student_session_id: str = Field(min_length=1)
    type: str = Field(min_length=1, max_length=100)
    details: Optional[str] = Field(default=None, max_length=2000)


class Violation(CamelModel):
    id: str
    student_session_id: str
    type: str
    details: Optional[str] = None
    timestamp: datetime


class ViolationIngested(Violation):
    """Violation record plus the outcome of the ingestion."""

    warning_count: int
    terminated: bool


class ViolationStatistics(CamelModel):
    student_session_id: str
    total_violations: int
    by_type: Dict[str, int]
    warning_count: int
    is_active: bool
