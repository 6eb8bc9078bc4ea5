from fastapi import APIRouter, Depends, Query, status
from typing import List, Optional

from ....api.deps import get_store
from ....core.exceptions import NotFoundError
from ....schemas.student import Student, StudentCreate
from ....services.session_store import SessionStore

router = APIRouter()


@router.get("", response_model=List[Student])
async def find_students(
    email: Optional[str] = Query(default=None),
    store: SessionStore = Depends(get_store),
):
    """Lookup by email; returns zero or one student"""
    if not email:
        return []
    student = await store.get_student_by_email(email)
    return [student] if student else []


@router.post("", response_model=Student, status_code=status.HTTP_201_CREATED)
async def create_student(
    student: StudentCreate,
    store: SessionStore = Depends(get_store),
):
    return await store.create_student(name=student.name, email=student.email)


@router.get("/{student_id}", response_model=Student)
async def get_student(
    student_id: str,
    store: SessionStore = Depends(get_store),
):
    student = await store.get_student(student_id)
    if not student:
        raise NotFoundError("Student not found")
    return student
