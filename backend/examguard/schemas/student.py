from pydantic import EmailStr, Field
from datetime import datetime

from .base import CamelModel


class StudentBase(CamelModel):
    name: str = Field(min_length=1, max_length=200)
    email: EmailStr


class StudentCreate(StudentBase):
    pass


class Student(StudentBase):
    id: str
    created_at: datetime
