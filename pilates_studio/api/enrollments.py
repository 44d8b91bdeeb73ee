from __future__ import annotations

from fastapi import APIRouter, Depends, status

from ..auth_models import User
from ..mapping import enrollment_to_read
from ..schemas import Eligibility, EnrollmentCancel, EnrollmentCreate, EnrollmentRead, EnrollmentUpdate
from ..services import ReservationService
from .deps import any_member, ensure_self_or_staff, instructor_or_admin, service

router = APIRouter(prefix="/enrollments", tags=["enrollments"])


@router.post("", response_model=EnrollmentRead, status_code=status.HTTP_201_CREATED)
def enroll(
    payload: EnrollmentCreate,
    user: User = Depends(any_member),
    reservations: ReservationService = Depends(service("ReservationService")),
) -> EnrollmentRead:
    ensure_self_or_staff(user, payload.student_id)
    return enrollment_to_read(reservations.enroll(payload))


@router.get("/student/{student_id}", response_model=list[EnrollmentRead])
def student_enrollments(
    student_id: int,
    user: User = Depends(any_member),
    reservations: ReservationService = Depends(service("ReservationService")),
) -> list[EnrollmentRead]:
    ensure_self_or_staff(user, student_id)
    return [enrollment_to_read(e) for e in reservations.list_by_student(student_id)]


@router.get("/student/{student_id}/upcoming", response_model=list[EnrollmentRead])
def upcoming_enrollments(
    student_id: int,
    user: User = Depends(any_member),
    reservations: ReservationService = Depends(service("ReservationService")),
) -> list[EnrollmentRead]:
    ensure_self_or_staff(user, student_id)
    return [enrollment_to_read(e) for e in reservations.upcoming(student_id)]


@router.get("/student/{student_id}/can-enroll/{class_id}", response_model=Eligibility)
def can_enroll(
    student_id: int,
    class_id: int,
    user: User = Depends(any_member),
    reservations: ReservationService = Depends(service("ReservationService")),
) -> Eligibility:
    ensure_self_or_staff(user, student_id)
    allowed, reason = reservations.can_enroll(student_id, class_id)
    return Eligibility(allowed=allowed, reason=reason)


@router.get("/{enrollment_id}", response_model=EnrollmentRead)
def get_enrollment(
    enrollment_id: int,
    user: User = Depends(any_member),
    reservations: ReservationService = Depends(service("ReservationService")),
) -> EnrollmentRead:
    enrollment = reservations.get(enrollment_id)
    ensure_self_or_staff(user, enrollment.student_id)
    return enrollment_to_read(enrollment)


@router.put("/{enrollment_id}", response_model=EnrollmentRead, dependencies=[Depends(instructor_or_admin)])
def update_enrollment(
    enrollment_id: int,
    payload: EnrollmentUpdate,
    reservations: ReservationService = Depends(service("ReservationService")),
) -> EnrollmentRead:
    return enrollment_to_read(reservations.update(enrollment_id, payload))


@router.post("/{enrollment_id}/cancel", response_model=EnrollmentRead)
def cancel_enrollment(
    enrollment_id: int,
    payload: EnrollmentCancel,
    user: User = Depends(any_member),
    reservations: ReservationService = Depends(service("ReservationService")),
) -> EnrollmentRead:
    ensure_self_or_staff(user, reservations.get(enrollment_id).student_id)
    return enrollment_to_read(reservations.cancel(enrollment_id, payload.reason))


@router.post("/{enrollment_id}/complete", response_model=EnrollmentRead, dependencies=[Depends(instructor_or_admin)])
def complete_enrollment(
    enrollment_id: int,
    reservations: ReservationService = Depends(service("ReservationService")),
) -> EnrollmentRead:
    return enrollment_to_read(reservations.complete(enrollment_id))


@router.get("/{enrollment_id}/can-cancel", response_model=Eligibility)
def can_cancel(
    enrollment_id: int,
    user: User = Depends(any_member),
    reservations: ReservationService = Depends(service("ReservationService")),
) -> Eligibility:
    ensure_self_or_staff(user, reservations.get(enrollment_id).student_id)
    allowed, reason = reservations.can_cancel(enrollment_id)
    return Eligibility(allowed=allowed, reason=reason)
