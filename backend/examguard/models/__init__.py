from .student import Student
from .exam_session import ExamSession
from .student_session import StudentSession
from .violation import Violation

__all__ = [
    "Student",
    "ExamSession",
    "StudentSession",
    "Violation",
]
