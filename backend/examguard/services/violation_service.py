import logging
from dataclasses import dataclass
from typing import Dict, Optional

from ..models.violation import Violation
from ..core.exceptions import NotFoundError, SessionClosedError
from ..schemas.realtime import ForceLogoutEvent, ViolationCreatedEvent
from ..schemas.violation import Violation as ViolationSchema
from .session_store import SessionStore
from .session_lifecycle import SessionLifecycleManager, WARNING_THRESHOLD, is_lockout
from .broadcast_hub import BroadcastHub

logger = logging.getLogger(__name__)


@dataclass
class IngestResult:
    violation: Violation
    warning_count: int
    terminated: bool


class ViolationService:
    def __init__(self, store: SessionStore, lifecycle: SessionLifecycleManager, hub: BroadcastHub):
        self.store = store
        self.lifecycle = lifecycle
        self.hub = hub

    async def ingest(self, student_session_id: str, type: str, details: Optional[str] = None) -> IngestResult:
        """
        Record one violation for a live session.

        Steps run strictly in order: persist, count, decide, terminate, notify.
        Sessions that are already closed are rejected before anything is
        written. A close that lands between the check and the increment keeps
        the violation row but counts nothing and raises SessionClosedError.
        """
        session = await self.store.get_student_session(student_session_id)
        if session is None:
            raise NotFoundError("Student session not found")
        if not session.is_active:
            raise SessionClosedError("Student session is no longer active")

        violation = await self.store.create_violation(student_session_id, type, details)
        session = await self.lifecycle.record_warning(student_session_id)
        logger.info(f"Violation '{type}' recorded for student session {student_session_id} (warnings: {session.warning_count}/{WARNING_THRESHOLD})")

        if self.lifecycle.evaluate_termination(session):
            await self.lifecycle.terminate(student_session_id, reason="violations")
            session = await self.lifecycle.get(student_session_id)
        # also true when a concurrent ingestion closed it first
        terminated = is_lockout(session)

        await self.hub.broadcast_to_admins(ViolationCreatedEvent(
            violation=ViolationSchema.model_validate(violation),
            warning_count=session.warning_count,
            terminated=terminated,
        ))
        if terminated:
            await self.hub.send_to_student_session(student_session_id, ForceLogoutEvent(reason="violations"))

        return IngestResult(violation=violation, warning_count=session.warning_count, terminated=terminated)

    async def apply_warning(self, student_session_id: str):
        """Increment without a violation row, then apply the termination rule."""
        session = await self.lifecycle.record_warning(student_session_id)
        if self.lifecycle.evaluate_termination(session):
            if await self.lifecycle.terminate(student_session_id, reason="violations"):
                await self.hub.send_to_student_session(student_session_id, ForceLogoutEvent(reason="violations"))
            session = await self.lifecycle.get(student_session_id)
        return session

    async def force_logout(self, student_session_id: str) -> bool:
        closed = await self.lifecycle.terminate(student_session_id, reason="admin")
        if closed:
            await self.hub.send_to_student_session(student_session_id, ForceLogoutEvent(reason="admin"))
        return closed

    async def statistics(self, student_session_id: str) -> Dict:
        session = await self.lifecycle.get(student_session_id)
        violations = await self.store.list_violations_by_student_session(student_session_id)

        by_type: Dict[str, int] = {}
        for violation in violations:
            by_type[violation.type] = by_type.get(violation.type, 0) + 1

        return {
            "student_session_id": student_session_id,
            "total_violations": len(violations),
            "by_type": by_type,
            "warning_count": session.warning_count,
            "is_active": session.is_active,
        }
