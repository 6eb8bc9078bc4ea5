import uuid
from sqlalchemy import Column, String, DateTime, ForeignKey, Boolean, Integer
from sqlalchemy.orm import relationship
from ..core.database import Base
from ..utils.timezone import utc_now


class StudentSession(Base):
    __tablename__ = "student_sessions"

    id = Column(String, primary_key=True, index=True, default=lambda: str(uuid.uuid4()))
    student_id = Column(String, ForeignKey("students.id", ondelete="CASCADE"), nullable=False, index=True)
    exam_session_id = Column(String, ForeignKey("exam_sessions.id", ondelete="CASCADE"), nullable=False, index=True)
    warning_count = Column(Integer, default=0, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    joined_at = Column(DateTime(timezone=True), default=utc_now, nullable=False)
    left_at = Column(DateTime(timezone=True), nullable=True)

    student = relationship("Student", back_populates="student_sessions")
    exam_session = relationship("ExamSession", back_populates="student_sessions")
    violations = relationship(
        "Violation",
        back_populates="student_session",
        cascade="all, delete-orphan",
        order_by="Violation.timestamp.desc()",
    )

    def __repr__(self):
        return f"<StudentSession {self.id} warnings={self.warning_count} active={self.is_active}>"
