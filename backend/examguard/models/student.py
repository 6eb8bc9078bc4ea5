import uuid
from sqlalchemy import Column, String, DateTime
from sqlalchemy.orm import relationship
from ..core.database import Base
from ..utils.timezone import utc_now


class Student(Base):
    __tablename__ = "students"

    id = Column(String, primary_key=True, index=True, default=lambda: str(uuid.uuid4()))
    name = Column(String, nullable=False)
    email = Column(String, unique=True, index=True, nullable=False)
    created_at = Column(DateTime(timezone=True), default=utc_now, nullable=False)

    student_sessions = relationship("StudentSession", back_populates="student", cascade="all, delete-orphan")

    def __repr__(self):
        return f"<Student {self.email}>"
