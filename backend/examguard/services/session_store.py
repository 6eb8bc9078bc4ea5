from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import selectinload
from functools import wraps
from typing import Optional, List, Dict, Any

from ..models.student import Student
from ..models.exam_session import ExamSession
from ..models.student_session import StudentSession
from ..models.violation import Violation
from ..core.exceptions import StoreError, ValidationError
from ..utils.timezone import utc_now


def store_operation(func):
    """Roll back and re-raise any SQLAlchemy failure as StoreError."""

    @wraps(func)
    async def wrapper(self, *args, **kwargs):
        try:
            return await func(self, *args, **kwargs)
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise StoreError(f"{func.__name__} failed: {e.__class__.__name__}") from e

    return wrapper


class SessionStore:
    """Durable records for students, exams, student sessions and violations."""

    def __init__(self, db: AsyncSession):
        self.db = db

    # students

    @store_operation
    async def get_student(self, student_id: str) -> Optional[Student]:
        result = await self.db.execute(select(Student).filter(Student.id == student_id))
        return result.scalars().first()

    @store_operation
    async def get_student_by_email(self, email: str) -> Optional[Student]:
        result = await self.db.execute(select(Student).filter(Student.email == email))
        return result.scalars().first()

    async def create_student(self, name: str, email: str) -> Student:
        db_student = Student(name=name, email=email)
        self.db.add(db_student)
        try:
            await self.db.commit()
            await self.db.refresh(db_student)
        except IntegrityError as e:
            await self.db.rollback()
            raise ValidationError("Email already registered") from e
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise StoreError(f"create_student failed: {e.__class__.__name__}") from e
        return db_student

    # exam sessions

    @store_operation
    async def get_exam_session(self, exam_session_id: str) -> Optional[ExamSession]:
        result = await self.db.execute(
            select(ExamSession)
            .filter(ExamSession.id == exam_session_id)
            .execution_options(populate_existing=True)
        )
        return result.scalars().first()

    @store_operation
    async def list_exam_sessions(self) -> List[ExamSession]:
        result = await self.db.execute(select(ExamSession).order_by(ExamSession.started_at.desc()))
        return list(result.scalars().all())

    @store_operation
    async def list_active_exam_sessions(self) -> List[ExamSession]:
        result = await self.db.execute(
            select(ExamSession)
            .filter(ExamSession.is_active.is_(True))
            .order_by(ExamSession.started_at.desc())
        )
        return list(result.scalars().all())

    @store_operation
    async def create_exam_session(self, **fields) -> ExamSession:
        db_exam = ExamSession(**fields)
        self.db.add(db_exam)
        await self.db.commit()
        await self.db.refresh(db_exam)
        return db_exam

    @store_operation
    async def update_exam_session(self, exam_session_id: str, update_data: Dict[str, Any]) -> Optional[ExamSession]:
        db_exam = await self.get_exam_session(exam_session_id)
        if not db_exam:
            return None

        for field, value in update_data.items():
            setattr(db_exam, field, value)

        await self.db.commit()
        await self.db.refresh(db_exam)
        return db_exam

    # student sessions

    @store_operation
    async def get_student_session(self, student_session_id: str) -> Optional[StudentSession]:
        # populate_existing: the counter is mutated with bulk UPDATEs that bypass the identity map
        result = await self.db.execute(
            select(StudentSession)
            .filter(StudentSession.id == student_session_id)
            .execution_options(populate_existing=True)
        )
        return result.scalars().first()

    def _with_details(self, stmt):
        return stmt.options(
            selectinload(StudentSession.student),
            selectinload(StudentSession.exam_session),
            selectinload(StudentSession.violations),
        ).execution_options(populate_existing=True)

    @store_operation
    async def get_student_session_details(self, student_session_id: str) -> Optional[StudentSession]:
        result = await self.db.execute(
            self._with_details(select(StudentSession).filter(StudentSession.id == student_session_id))
        )
        return result.scalars().first()

    @store_operation
    async def list_active_student_sessions(self) -> List[StudentSession]:
        result = await self.db.execute(
            self._with_details(
                select(StudentSession)
                .filter(StudentSession.is_active.is_(True))
                .order_by(StudentSession.joined_at.desc())
            )
        )
        return list(result.scalars().all())

    @store_operation
    async def list_student_sessions(self, exam_session_id: Optional[str] = None) -> List[StudentSession]:
        stmt = select(StudentSession)
        if exam_session_id:
            stmt = stmt.filter(StudentSession.exam_session_id == exam_session_id)
        result = await self.db.execute(self._with_details(stmt.order_by(StudentSession.joined_at.desc())))
        return list(result.scalars().all())

    @store_operation
    async def list_student_sessions_by_student_and_exam(self, student_id: str, exam_session_id: str) -> List[StudentSession]:
        result = await self.db.execute(
            self._with_details(
                select(StudentSession)
                .filter(
                    StudentSession.student_id == student_id,
                    StudentSession.exam_session_id == exam_session_id,
                )
                .order_by(StudentSession.joined_at.desc())
            )
        )
        return list(result.scalars().all())

    @store_operation
    async def create_student_session(self, student_id: str, exam_session_id: str) -> StudentSession:
        db_session = StudentSession(
            student_id=student_id,
            exam_session_id=exam_session_id,
            warning_count=0,
            is_active=True,
        )
        self.db.add(db_session)
        await self.db.commit()
        await self.db.refresh(db_session)
        return db_session

    @store_operation
    async def increment_warning_count(self, student_session_id: str, amount: int = 1) -> Optional[StudentSession]:
        """
        Atomic ``warning_count = warning_count + amount`` evaluated by the database.
        Only active sessions are counted; None when the session is missing or closed.
        """
        result = await self.db.execute(
            update(StudentSession)
            .where(
                StudentSession.id == student_session_id,
                StudentSession.is_active.is_(True),
            )
            .values(warning_count=StudentSession.warning_count + amount)
            .execution_options(synchronize_session=False)
        )
        await self.db.commit()
        if result.rowcount == 0:
            return None
        return await self.get_student_session(student_session_id)

    @store_operation
    async def close_student_session(self, student_session_id: str) -> bool:
        """
        Conditional ``ACTIVE -> closed`` transition.

        Returns True only for the caller that actually flipped ``is_active``.
        """
        result = await self.db.execute(
            update(StudentSession)
            .where(
                StudentSession.id == student_session_id,
                StudentSession.is_active.is_(True),
            )
            .values(is_active=False, left_at=utc_now())
            .execution_options(synchronize_session=False)
        )
        await self.db.commit()
        return result.rowcount == 1

    @store_operation
    async def list_active_student_session_ids_for_exam(self, exam_session_id: str) -> List[str]:
        result = await self.db.execute(
            select(StudentSession.id).filter(
                StudentSession.exam_session_id == exam_session_id,
                StudentSession.is_active.is_(True),
            )
        )
        return list(result.scalars().all())

    # violations

    @store_operation
    async def get_violation(self, violation_id: str) -> Optional[Violation]:
        result = await self.db.execute(select(Violation).filter(Violation.id == violation_id))
        return result.scalars().first()

    @store_operation
    async def list_violations(self) -> List[Violation]:
        result = await self.db.execute(
            select(Violation)
            .options(
                selectinload(Violation.student_session).selectinload(StudentSession.student),
                selectinload(Violation.student_session).selectinload(StudentSession.exam_session),
            )
            .order_by(Violation.timestamp.desc())
        )
        return list(result.scalars().all())

    @store_operation
    async def list_violations_by_student_session(self, student_session_id: str) -> List[Violation]:
        result = await self.db.execute(
            select(Violation)
            .filter(Violation.student_session_id == student_session_id)
            .order_by(Violation.timestamp.desc())
        )
        return list(result.scalars().all())

    @store_operation
    async def create_violation(self, student_session_id: str, type: str, details: Optional[str] = None) -> Violation:
        db_violation = Violation(
            student_session_id=student_session_id,
            type=type,
            details=details,
        )
        self.db.add(db_violation)
        await self.db.commit()
        await self.db.refresh(db_violation)
        return db_violation
