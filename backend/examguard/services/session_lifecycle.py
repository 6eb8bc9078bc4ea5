"""
State machine for one student's participation in one exam.

    ACTIVE --[warning count reaches threshold]--> TERMINATED
    ACTIVE --[force logout]---------------------> TERMINATED
    ACTIVE --[submit]---------------------------> SUBMITTED

TERMINATED and SUBMITTED both persist as ``is_active = False``. A closed
session with ``warning_count >= WARNING_THRESHOLD`` is a lockout record and
bars the student from the exam for good. Nothing leaves a closed state.
"""
import logging
from typing import List

from ..models.student_session import StudentSession
from ..core.exceptions import LockoutError, NotFoundError, SessionClosedError
from .session_store import SessionStore

logger = logging.getLogger(__name__)

WARNING_THRESHOLD = 3


def is_lockout(session: StudentSession) -> bool:
    return not session.is_active and session.warning_count >= WARNING_THRESHOLD


class SessionLifecycleManager:
    def __init__(self, store: SessionStore):
        self.store = store

    async def join_or_resume(self, student_id: str, exam_session_id: str) -> StudentSession:
        """
        Resolve the student's session for an exam.

        Raises LockoutError if a previous session for the pair was terminated
        for violations, returns the active session if one exists, and creates
        a fresh one otherwise.
        """
        existing = await self.store.list_student_sessions_by_student_and_exam(student_id, exam_session_id)

        locked = next((s for s in existing if is_lockout(s)), None)
        if locked is not None:
            logger.info(f"Rejected rejoin of student {student_id} to exam {exam_session_id}: locked out by session {locked.id}")
            raise LockoutError(locked)

        active = next((s for s in existing if s.is_active), None)
        if active is not None:
            if self.evaluate_termination(active):
                # a previous termination write never landed
                await self.terminate(active.id, reason="violations")
                raise LockoutError(await self.store.get_student_session(active.id))
            return active

        if await self.store.get_student(student_id) is None:
            raise NotFoundError("Student not found")
        exam = await self.store.get_exam_session(exam_session_id)
        if exam is None:
            raise NotFoundError("Exam session not found")
        if not exam.is_active:
            raise SessionClosedError("Exam session is closed")

        session = await self.store.create_student_session(student_id, exam_session_id)
        logger.info(f"Student {student_id} joined exam {exam_session_id} as session {session.id}")
        return session

    async def get(self, student_session_id: str) -> StudentSession:
        session = await self.store.get_student_session(student_session_id)
        if session is None:
            raise NotFoundError("Student session not found")
        return session

    async def record_warning(self, student_session_id: str) -> StudentSession:
        session = await self.store.increment_warning_count(student_session_id)
        if session is None:
            # no row counted: missing, or closed before the increment landed
            await self.get(student_session_id)
            raise SessionClosedError("Student session is no longer active")
        return session

    def evaluate_termination(self, session: StudentSession) -> bool:
        return session.is_active and session.warning_count >= WARNING_THRESHOLD

    async def close(self, student_session_id: str) -> bool:
        """Shared ACTIVE -> closed transition. False when already closed."""
        closed = await self.store.close_student_session(student_session_id)
        if not closed:
            # distinguish "already closed" from "no such session"
            await self.get(student_session_id)
        return closed

    async def terminate(self, student_session_id: str, reason: str) -> bool:
        closed = await self.close(student_session_id)
        if closed:
            logger.warning(f"Student session {student_session_id} terminated ({reason})")
        return closed

    async def submit(self, student_session_id: str) -> bool:
        closed = await self.close(student_session_id)
        if closed:
            logger.info(f"Student session {student_session_id} submitted")
        return closed

    async def close_exam(self, exam_session_id: str) -> List[str]:
        """Close every active student session of an exam; returns the ids closed by this call."""
        closed_ids = []
        for student_session_id in await self.store.list_active_student_session_ids_for_exam(exam_session_id):
            if await self.store.close_student_session(student_session_id):
                closed_ids.append(student_session_id)
        if closed_ids:
            logger.info(f"Closed {len(closed_ids)} student sessions of exam {exam_session_id}")
        return closed_ids

