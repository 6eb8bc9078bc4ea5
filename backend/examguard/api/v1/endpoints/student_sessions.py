from fastapi import APIRouter, Depends, Query, status
from typing import List, Optional

from ....api.deps import get_lifecycle, get_store, get_violation_service
from ....core.exceptions import NotFoundError, ValidationError
from ....schemas.student_session import (
    StudentSession,
    StudentSessionCreate,
    StudentSessionUpdate,
    StudentSessionWithDetails,
)
from ....services.session_lifecycle import SessionLifecycleManager
from ....services.session_store import SessionStore
from ....services.violation_service import ViolationService

router = APIRouter()


@router.get("", response_model=List[StudentSessionWithDetails])
async def list_student_sessions(
    session_id: Optional[str] = Query(default=None, alias="sessionId"),
    store: SessionStore = Depends(get_store),
):
    """List student sessions, optionally for one exam session"""
    return await store.list_student_sessions(exam_session_id=session_id)


@router.get("/active", response_model=List[StudentSessionWithDetails])
async def list_active_student_sessions(store: SessionStore = Depends(get_store)):
    return await store.list_active_student_sessions()


@router.get("/by-student-exam", response_model=List[StudentSessionWithDetails])
async def list_by_student_and_exam(
    student_id: str = Query(alias="studentId", min_length=1),
    session_id: str = Query(alias="sessionId", min_length=1),
    store: SessionStore = Depends(get_store),
):
    return await store.list_student_sessions_by_student_and_exam(student_id, session_id)


@router.get("/{student_session_id}", response_model=StudentSessionWithDetails)
async def get_student_session(
    student_session_id: str,
    store: SessionStore = Depends(get_store),
):
    session = await store.get_student_session_details(student_session_id)
    if not session:
        raise NotFoundError("Student session not found")
    return session


@router.post("", response_model=StudentSession, status_code=status.HTTP_201_CREATED)
async def join_exam(
    join_request: StudentSessionCreate,
    lifecycle: SessionLifecycleManager = Depends(get_lifecycle),
):
    """Join an exam, or resume the active session. Locked out students get 403."""
    return await lifecycle.join_or_resume(join_request.student_id, join_request.exam_session_id)


@router.patch("/{student_session_id}", response_model=StudentSession)
async def update_student_session(
    student_session_id: str,
    session_update: StudentSessionUpdate,
    lifecycle: SessionLifecycleManager = Depends(get_lifecycle),
):
    """Only closing is accepted; ``leftAt`` is always set by the server."""
    session = await lifecycle.get(student_session_id)
    if session_update.is_active is True and not session.is_active:
        raise ValidationError("A closed student session cannot be reopened")
    if session_update.is_active is False:
        await lifecycle.submit(student_session_id)
    return await lifecycle.get(student_session_id)


@router.post("/{student_session_id}/warning", response_model=StudentSession)
async def add_warning(
    student_session_id: str,
    violation_service: ViolationService = Depends(get_violation_service),
):
    return await violation_service.apply_warning(student_session_id)


@router.post("/{student_session_id}/submit", response_model=StudentSession)
async def submit_exam(
    student_session_id: str,
    lifecycle: SessionLifecycleManager = Depends(get_lifecycle),
):
    await lifecycle.submit(student_session_id)
    return await lifecycle.get(student_session_id)


@router.post("/{student_session_id}/force-logout", response_model=StudentSession)
async def force_logout(
    student_session_id: str,
    violation_service: ViolationService = Depends(get_violation_service),
    lifecycle: SessionLifecycleManager = Depends(get_lifecycle),
):
    await violation_service.force_logout(student_session_id)
    return await lifecycle.get(student_session_id)
