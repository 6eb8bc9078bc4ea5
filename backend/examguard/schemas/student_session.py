from pydantic import Field
from datetime import datetime
from typing import Optional, List

from .base import CamelModel
from .student import Student
from .exam_session import ExamSession
from .violation import Violation


class StudentSessionCreate(CamelModel):
    student_id: str = Field(min_length=1)
    # exam session id; the wire name is kept as ``sessionId``
    exam_session_id: str = Field(min_length=1, alias="sessionId")


class StudentSessionUpdate(CamelModel):
    is_active: Optional[bool] = None
    left_at: Optional[datetime] = None


class StudentSession(CamelModel):
    id: str
    student_id: str
    exam_session_id: str = Field(alias="sessionId")
    warning_count: int
    is_active: bool
    joined_at: datetime
    left_at: Optional[datetime] = None


class StudentSessionWithDetails(StudentSession):
    student: Student
    exam_session: ExamSession = Field(alias="session")
    violations: List[Violation] = []


class StudentSessionWithContext(StudentSession):
    student: Student
    exam_session: ExamSession = Field(alias="session")


class ViolationWithContext(Violation):
    student_session: StudentSessionWithContext
