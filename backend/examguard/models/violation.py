import uuid
from sqlalchemy import Column, String, Text, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from ..core.database import Base
from ..utils.timezone import utc_now


class Violation(Base):
    __tablename__ = "violations"

    id = Column(String, primary_key=True, index=True, default=lambda: str(uuid.uuid4()))
    student_session_id = Column(String, ForeignKey("student_sessions.id", ondelete="CASCADE"), nullable=False, index=True)
    type = Column(String, nullable=False)  # tab switch, copy attempt, paste attempt, ...
    details = Column(Text)
    timestamp = Column(DateTime(timezone=True), default=utc_now, nullable=False)

    student_session = relationship("StudentSession", back_populates="violations")

    def __repr__(self):
        return f"<Violation {self.type} for student session {self.student_session_id}>"
