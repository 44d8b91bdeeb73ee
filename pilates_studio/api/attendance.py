from __future__ import annotations

from fastapi import APIRouter, Depends, status

from ..auth_models import User
from ..mapping import attendance_to_read
from ..schemas import AttendanceCreate, AttendanceRead, AttendanceUpdate
from ..services import AttendanceService
from .deps import any_member, ensure_self_or_staff, instructor_or_admin, service

router = APIRouter(prefix="/attendance", tags=["attendance"])


@router.post(
    "",
    response_model=AttendanceRead,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(instructor_or_admin)],
)
def record_attendance(
    payload: AttendanceCreate,
    attendance: AttendanceService = Depends(service("AttendanceService")),
) -> AttendanceRead:
    return attendance_to_read(attendance.record(payload))


@router.put("/{attendance_id}", response_model=AttendanceRead, dependencies=[Depends(instructor_or_admin)])
def update_attendance(
    attendance_id: int,
    payload: AttendanceUpdate,
    attendance: AttendanceService = Depends(service("AttendanceService")),
) -> AttendanceRead:
    return attendance_to_read(attendance.update(attendance_id, payload))


@router.get("/student/{student_id}", response_model=list[AttendanceRead])
def student_attendance(
    student_id: int,
    user: User = Depends(any_member),
    attendance: AttendanceService = Depends(service("AttendanceService")),
) -> list[AttendanceRead]:
    ensure_self_or_staff(user, student_id)
    return [attendance_to_read(a) for a in attendance.list_by_student(student_id)]
