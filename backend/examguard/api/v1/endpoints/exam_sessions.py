from fastapi import APIRouter, Depends, status
from typing import List
import logging

from ....api.deps import get_hub, get_lifecycle, get_store
from ....core.exceptions import NotFoundError, ValidationError
from ....schemas.exam_session import ExamSession, ExamSessionCreate, ExamSessionUpdate
from ....schemas.realtime import ForceLogoutEvent
from ....services.broadcast_hub import BroadcastHub
from ....services.session_lifecycle import SessionLifecycleManager
from ....services.session_store import SessionStore
from ....utils.timezone import utc_now

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("", response_model=List[ExamSession])
async def list_exam_sessions(store: SessionStore = Depends(get_store)):
    return await store.list_exam_sessions()


@router.get("/active", response_model=List[ExamSession])
async def list_active_exam_sessions(store: SessionStore = Depends(get_store)):
    return await store.list_active_exam_sessions()


@router.get("/{exam_session_id}", response_model=ExamSession)
async def get_exam_session(
    exam_session_id: str,
    store: SessionStore = Depends(get_store),
):
    exam = await store.get_exam_session(exam_session_id)
    if not exam:
        raise NotFoundError("Exam session not found")
    return exam


@router.post("", response_model=ExamSession, status_code=status.HTTP_201_CREATED)
async def create_exam_session(
    exam: ExamSessionCreate,
    store: SessionStore = Depends(get_store),
):
    return await store.create_exam_session(**exam.model_dump())


@router.patch("/{exam_session_id}", response_model=ExamSession)
async def update_exam_session(
    exam_session_id: str,
    exam_update: ExamSessionUpdate,
    store: SessionStore = Depends(get_store),
    lifecycle: SessionLifecycleManager = Depends(get_lifecycle),
    hub: BroadcastHub = Depends(get_hub),
):
    """
    Partial update. Setting ``isActive`` to false closes the exam: every
    active student session is closed and its students are logged out.
    """
    exam = await store.get_exam_session(exam_session_id)
    if not exam:
        raise NotFoundError("Exam session not found")

    update_data = exam_update.model_dump(exclude_unset=True)
    if update_data.get("is_active") is None:
        update_data.pop("is_active", None)

    closing = exam.is_active and update_data.get("is_active") is False
    if not exam.is_active and update_data.get("is_active"):
        raise ValidationError("A closed exam session cannot be reopened")
    if closing and not update_data.get("ended_at"):
        update_data["ended_at"] = utc_now()

    exam = await store.update_exam_session(exam_session_id, update_data)

    if closing:
        closed_ids = await lifecycle.close_exam(exam_session_id)
        await hub.send_to_session(exam_session_id, ForceLogoutEvent(reason="exam_closed"))
        logger.info(f"Exam {exam_session_id} closed, {len(closed_ids)} students logged out")

    return exam
