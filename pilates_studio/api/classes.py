from __future__ import annotations

from datetime import date

from fastapi import APIRouter, Depends, Query, status

from ..mapping import attendance_to_read, class_to_read, enrollment_to_read
from ..schemas import AttendanceRead, ClassCreate, ClassFilter, ClassRead, ClassUpdate, EnrollmentRead
from ..services import AttendanceService, ClassService, ReservationService
from .deps import any_member, instructor_or_admin, service

router = APIRouter(prefix="/classes", tags=["classes"])


@router.get("", response_model=list[ClassRead], dependencies=[Depends(any_member)])
def list_classes(
    start_date: date | None = Query(None),
    end_date: date | None = Query(None),
    instructor_id: int | None = Query(None),
    zone_id: int | None = Query(None),
    difficulty_level: str | None = Query(None),
    status_: str | None = Query(None, alias="status"),
    only_available: bool = Query(False),
    classes: ClassService = Depends(service("ClassService")),
) -> list[ClassRead]:
    flt = ClassFilter(
        start_date=start_date,
        end_date=end_date,
        instructor_id=instructor_id,
        zone_id=zone_id,
        difficulty_level=difficulty_level,
        status=status_,
        only_available=only_available,
    )
    return [class_to_read(c) for c in classes.list(flt)]


@router.get("/{class_id}", response_model=ClassRead, dependencies=[Depends(any_member)])
def get_class(class_id: int, classes: ClassService = Depends(service("ClassService"))) -> ClassRead:
    return class_to_read(classes.get(class_id))


@router.post(
    "",
    response_model=ClassRead,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(instructor_or_admin)],
)
def create_class(payload: ClassCreate, classes: ClassService = Depends(service("ClassService"))) -> ClassRead:
    return class_to_read(classes.create(payload))


@router.put("/{class_id}", response_model=ClassRead, dependencies=[Depends(instructor_or_admin)])
def update_class(
    class_id: int,
    payload: ClassUpdate,
    classes: ClassService = Depends(service("ClassService")),
) -> ClassRead:
    return class_to_read(classes.update(class_id, payload))


@router.post("/{class_id}/cancel", response_model=ClassRead, dependencies=[Depends(instructor_or_admin)])
def cancel_class(
    class_id: int,
    reason: str | None = Query(None, max_length=500),
    classes: ClassService = Depends(service("ClassService")),
) -> ClassRead:
    return class_to_read(classes.cancel(class_id, reason))


@router.get(
    "/{class_id}/enrollments",
    response_model=list[EnrollmentRead],
    dependencies=[Depends(instructor_or_admin)],
)
def class_enrollments(
    class_id: int,
    classes: ClassService = Depends(service("ClassService")),
    reservations: ReservationService = Depends(service("ReservationService")),
) -> list[EnrollmentRead]:
    classes.get(class_id)
    return [enrollment_to_read(e) for e in reservations.list_by_class(class_id)]


@router.get(
    "/{class_id}/attendance",
    response_model=list[AttendanceRead],
    dependencies=[Depends(instructor_or_admin)],
)
def class_attendance(
    class_id: int,
    attendance: AttendanceService = Depends(service("AttendanceService")),
) -> list[AttendanceRead]:
    return [attendance_to_read(a) for a in attendance.list_by_class(class_id)]
