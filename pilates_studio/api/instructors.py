from __future__ import annotations

from datetime import date

from fastapi import APIRouter, Depends, Query, status

from ..mapping import class_to_read, instructor_to_read
from ..schemas import ClassRead, InstructorCreate, InstructorRead, InstructorUpdate
from ..services import InstructorService
from .deps import admin_only, any_member, service

router = APIRouter(prefix="/instructors", tags=["instructors"])


@router.get("", response_model=list[InstructorRead], dependencies=[Depends(any_member)])
def list_instructors(
    active_only: bool = Query(False),
    instructors: InstructorService = Depends(service("InstructorService")),
) -> list[InstructorRead]:
    return [instructor_to_read(i) for i in instructors.list(active_only=active_only)]


@router.get("/{instructor_id}", response_model=InstructorRead, dependencies=[Depends(any_member)])
def get_instructor(
    instructor_id: int,
    instructors: InstructorService = Depends(service("InstructorService")),
) -> InstructorRead:
    return instructor_to_read(instructors.get(instructor_id))


@router.get("/{instructor_id}/classes", response_model=list[ClassRead], dependencies=[Depends(any_member)])
def instructor_classes(
    instructor_id: int,
    from_date: date | None = Query(None),
    instructors: InstructorService = Depends(service("InstructorService")),
) -> list[ClassRead]:
    return [class_to_read(c) for c in instructors.classes(instructor_id, from_date)]


@router.post(
    "",
    response_model=InstructorRead,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(admin_only)],
)
def create_instructor(
    payload: InstructorCreate,
    instructors: InstructorService = Depends(service("InstructorService")),
) -> InstructorRead:
    return instructor_to_read(instructors.create(payload))


@router.put("/{instructor_id}", response_model=InstructorRead, dependencies=[Depends(admin_only)])
def update_instructor(
    instructor_id: int,
    payload: InstructorUpdate,
    instructors: InstructorService = Depends(service("InstructorService")),
) -> InstructorRead:
    return instructor_to_read(instructors.update(instructor_id, payload))


@router.delete("/{instructor_id}", status_code=status.HTTP_204_NO_CONTENT, dependencies=[Depends(admin_only)])
def deactivate_instructor(
    instructor_id: int,
    instructors: InstructorService = Depends(service("InstructorService")),
) -> None:
    instructors.deactivate(instructor_id)
