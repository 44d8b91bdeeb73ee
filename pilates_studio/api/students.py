from __future__ import annotations

from fastapi import APIRouter, Depends, Query, status

from ..auth_models import User
from ..errors import NotFoundError
from ..mapping import student_to_read
from ..schemas import StudentCreate, StudentRead, StudentUpdate
from ..services import StudentService
from .deps import admin_only, any_member, ensure_self_or_staff, instructor_or_admin, service

router = APIRouter(prefix="/students", tags=["students"])


@router.get("", response_model=list[StudentRead], dependencies=[Depends(instructor_or_admin)])
def list_students(
    q: str | None = Query(None, description="Search by first or last name"),
    students: StudentService = Depends(service("StudentService")),
) -> list[StudentRead]:
    return [student_to_read(s) for s in students.list(search=q)]


@router.get("/me", response_model=StudentRead)
def my_profile(
    user: User = Depends(any_member),
    students: StudentService = Depends(service("StudentService")),
) -> StudentRead:
    student = students.get_by_user(user.id)
    if student is None:
        raise NotFoundError("Student profile for user", user.id)
    return student_to_read(student)


@router.get("/{student_id}", response_model=StudentRead)
def get_student(
    student_id: int,
    user: User = Depends(any_member),
    students: StudentService = Depends(service("StudentService")),
) -> StudentRead:
    ensure_self_or_staff(user, student_id)
    return student_to_read(students.get(student_id))


@router.post("", response_model=StudentRead, status_code=status.HTTP_201_CREATED, dependencies=[Depends(admin_only)])
def create_student(
    payload: StudentCreate,
    students: StudentService = Depends(service("StudentService")),
) -> StudentRead:
    return student_to_read(students.create(payload))


@router.put("/{student_id}", response_model=StudentRead)
def update_student(
    student_id: int,
    payload: StudentUpdate,
    user: User = Depends(any_member),
    students: StudentService = Depends(service("StudentService")),
) -> StudentRead:
    ensure_self_or_staff(user, student_id)
    return student_to_read(students.update(student_id, payload))


@router.delete("/{student_id}", status_code=status.HTTP_204_NO_CONTENT, dependencies=[Depends(admin_only)])
def delete_student(
    student_id: int,
    students: StudentService = Depends(service("StudentService")),
) -> None:
    students.delete(student_id)
