from fastapi import APIRouter, Depends, status
from typing import List

from ....api.deps import get_store, get_violation_service
from ....core.exceptions import NotFoundError
from ....schemas.student_session import ViolationWithContext
from ....schemas.violation import Violation, ViolationCreate, ViolationIngested, ViolationStatistics
from ....services.session_store import SessionStore
from ....services.violation_service import ViolationService

router = APIRouter()


@router.get("", response_model=List[ViolationWithContext])
async def list_violations(store: SessionStore = Depends(get_store)):
    return await store.list_violations()


@router.get("/student-session/{student_session_id}", response_model=List[Violation])
async def list_student_session_violations(
    student_session_id: str,
    store: SessionStore = Depends(get_store),
):
    return await store.list_violations_by_student_session(student_session_id)


@router.get("/stats/{student_session_id}", response_model=ViolationStatistics)
async def get_violation_statistics(
    student_session_id: str,
    violation_service: ViolationService = Depends(get_violation_service),
):
    """Violation counts by type for one student session"""
    return await violation_service.statistics(student_session_id)


@router.get("/{violation_id}", response_model=Violation)
async def get_violation(
    violation_id: str,
    store: SessionStore = Depends(get_store),
):
    violation = await store.get_violation(violation_id)
    if not violation:
        raise NotFoundError("Violation not found")
    return violation


@router.post("", response_model=ViolationIngested, status_code=status.HTTP_201_CREATED)
async def report_violation(
    violation: ViolationCreate,
    violation_service: ViolationService = Depends(get_violation_service),
):
    """Record a violation, count the warning and terminate at the threshold"""
    result = await violation_service.ingest(
        violation.student_session_id,
        violation.type,
        violation.details,
    )
    return ViolationIngested(
        **Violation.model_validate(result.violation).model_dump(),
        warning_count=result.warning_count,
        terminated=result.terminated,
    )
