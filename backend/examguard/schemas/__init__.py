from .student import Student, StudentCreate
from .exam_session import ExamSession, ExamSessionCreate, ExamSessionUpdate
from .student_session import (
    StudentSession,
    StudentSessionCreate,
    StudentSessionUpdate,
    StudentSessionWithDetails,
    ViolationWithContext,
)
from .violation import Violation, ViolationCreate, ViolationIngested, ViolationStatistics

__all__ = [
    "Student",
    "StudentCreate",
    "ExamSession",
    "ExamSessionCreate",
    "ExamSessionUpdate",
    "StudentSession",
    "StudentSessionCreate",
    "StudentSessionUpdate",
    "StudentSessionWithDetails",
    "ViolationWithContext",
    "Violation",
    "ViolationCreate",
    "ViolationIngested",
    "ViolationStatistics",
]
