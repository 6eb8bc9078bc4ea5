import asyncio

import pytest

from examguard.core.database import AsyncSessionLocal
from examguard.core.exceptions import LockoutError, NotFoundError, SessionClosedError
from examguard.services.session_lifecycle import SessionLifecycleManager, WARNING_THRESHOLD, is_lockout
from examguard.services.session_store import SessionStore


class TestJoinOrResume:
    async def test_creates_fresh_active_session(self, lifecycle, student, exam):
        session = await lifecycle.join_or_resume(student.id, exam.id)
        assert session.is_active is True
        assert session.warning_count == 0
        assert session.left_at is None

    async def test_resume_returns_same_session(self, lifecycle, store, student, exam):
        first = await lifecycle.join_or_resume(student.id, exam.id)
        second = await lifecycle.join_or_resume(student.id, exam.id)
        assert first.id == second.id
        sessions = await store.list_student_sessions_by_student_and_exam(student.id, exam.id)
        assert len(sessions) == 1

    async def test_unknown_student_or_exam(self, lifecycle, student, exam):
        with pytest.raises(NotFoundError):
            await lifecycle.join_or_resume("missing", exam.id)
        with pytest.raises(NotFoundError):
            await lifecycle.join_or_resume(student.id, "missing")

    async def test_closed_exam_rejects_new_sessions(self, lifecycle, store, student, exam):
        await store.update_exam_session(exam.id, {"is_active": False})
        with pytest.raises(SessionClosedError):
            await lifecycle.join_or_resume(student.id, exam.id)

    async def test_lockout_is_permanent(self, lifecycle, student, exam):
        session = await lifecycle.join_or_resume(student.id, exam.id)
        for _ in range(WARNING_THRESHOLD):
            await lifecycle.record_warning(session.id)
        await lifecycle.terminate(session.id, reason="violations")

        for _ in range(3):
            with pytest.raises(LockoutError) as exc_info:
                await lifecycle.join_or_resume(student.id, exam.id)
            assert exc_info.value.session.id == session.id

    async def test_submission_is_not_a_lockout(self, lifecycle, student, exam):
        session = await lifecycle.join_or_resume(student.id, exam.id)
        await lifecycle.record_warning(session.id)
        await lifecycle.submit(session.id)

        submitted = await lifecycle.get(session.id)
        assert submitted.is_active is False
        assert submitted.warning_count == 1
        assert not is_lockout(submitted)

        fresh = await lifecycle.join_or_resume(student.id, exam.id)
        assert fresh.id != session.id
        assert fresh.is_active is True
        assert fresh.warning_count == 0

    async def test_active_session_over_threshold_is_terminated_on_rejoin(self, lifecycle, store, student, exam):
        session = await lifecycle.join_or_resume(student.id, exam.id)
        for _ in range(WARNING_THRESHOLD):
            await store.increment_warning_count(session.id)

        with pytest.raises(LockoutError):
            await lifecycle.join_or_resume(student.id, exam.id)
        assert (await lifecycle.get(session.id)).is_active is False


class TestWarnings:
    async def test_record_warning_increments_by_one(self, lifecycle, student, exam):
        session = await lifecycle.join_or_resume(student.id, exam.id)
        updated = await lifecycle.record_warning(session.id)
        assert updated.warning_count == 1
        updated = await lifecycle.record_warning(session.id)
        assert updated.warning_count == 2

    async def test_record_warning_unknown_session(self, lifecycle):
        with pytest.raises(NotFoundError):
            await lifecycle.record_warning("missing")

    async def test_closed_session_is_not_counted(self, lifecycle, student, exam):
        session = await lifecycle.join_or_resume(student.id, exam.id)
        for _ in range(WARNING_THRESHOLD - 1):
            await lifecycle.record_warning(session.id)
        await lifecycle.submit(session.id)

        with pytest.raises(SessionClosedError):
            await lifecycle.record_warning(session.id)

        submitted = await lifecycle.get(session.id)
        assert submitted.warning_count == WARNING_THRESHOLD - 1
        assert not is_lockout(submitted)

    async def test_concurrent_warnings_are_not_lost(self, lifecycle, student, exam):
        session = await lifecycle.join_or_resume(student.id, exam.id)

        async def bump():
            async with AsyncSessionLocal() as db:
                await SessionLifecycleManager(SessionStore(db)).record_warning(session.id)

        await asyncio.gather(*(bump() for _ in range(10)))

        assert (await lifecycle.get(session.id)).warning_count == 10


class TestTermination:
    async def test_evaluate_termination(self, lifecycle, student, exam):
        session = await lifecycle.join_or_resume(student.id, exam.id)
        assert lifecycle.evaluate_termination(session) is False

        for _ in range(WARNING_THRESHOLD):
            session = await lifecycle.record_warning(session.id)
        assert lifecycle.evaluate_termination(session) is True

        await lifecycle.terminate(session.id, reason="violations")
        session = await lifecycle.get(session.id)
        assert lifecycle.evaluate_termination(session) is False

    async def test_terminate_is_idempotent(self, lifecycle, student, exam):
        session = await lifecycle.join_or_resume(student.id, exam.id)
        assert await lifecycle.terminate(session.id, reason="admin") is True
        first = await lifecycle.get(session.id)

        assert await lifecycle.terminate(session.id, reason="admin") is False
        second = await lifecycle.get(session.id)
        assert second.is_active is False
        assert second.left_at == first.left_at

    async def test_submit_is_idempotent(self, lifecycle, student, exam):
        session = await lifecycle.join_or_resume(student.id, exam.id)
        assert await lifecycle.submit(session.id) is True
        assert await lifecycle.submit(session.id) is False
        assert (await lifecycle.get(session.id)).is_active is False

    async def test_first_close_wins(self, lifecycle, student, exam):
        session = await lifecycle.join_or_resume(student.id, exam.id)
        assert await lifecycle.submit(session.id) is True
        assert await lifecycle.terminate(session.id, reason="admin") is False

    async def test_terminate_unknown_session(self, lifecycle):
        with pytest.raises(NotFoundError):
            await lifecycle.terminate("missing", reason="admin")

    async def test_close_exam_closes_only_active_sessions(self, lifecycle, store, student, exam):
        other = await store.create_student(name="Grace Hopper", email="grace@example.com")
        first = await lifecycle.join_or_resume(student.id, exam.id)
        second = await lifecycle.join_or_resume(other.id, exam.id)
        await lifecycle.submit(second.id)

        closed = await lifecycle.close_exam(exam.id)
        assert closed == [first.id]
        assert (await lifecycle.get(first.id)).is_active is False
