from fastapi import APIRouter

from .endpoints import students, exam_sessions, student_sessions, violations, health

api_router = APIRouter()

api_router.include_router(students.router, prefix="/students", tags=["students"])
api_router.include_router(exam_sessions.router, prefix="/exam-sessions", tags=["exam-sessions"])
api_router.include_router(student_sessions.router, prefix="/student-sessions", tags=["student-sessions"])
api_router.include_router(violations.router, prefix="/violations", tags=["violations"])
api_router.include_router(health.router, tags=["health"])
