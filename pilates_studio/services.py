from __future__ import annotations

import logging
from datetime import date, datetime, time, timedelta

from sqlalchemy import and_, func, select
from sqlalchemy.orm import Session, selectinload

from .auth_models import Role, User
from .auth_security import hash_password
from .config import Settings, get_settings
from .db import utcnow
from .errors import InvalidOperationError, NotFoundError
from .mapping import (
    apply_update,
    attendance_from_create,
    available_spots,
    class_from_create,
    confirmed_count,
    enrollment_from_create,
    instructor_from_create,
    student_from_create,
    zone_from_create,
)
from .models import (
    Attendance,
    Class,
    ClassStatus,
    Enrollment,
    EnrollmentStatus,
    Instructor,
    Purchase,
    PurchaseStatus,
    Student,
    Zone,
)
from .schemas import (
    AttendanceCreate,
    AttendanceUpdate,
    ClassCreate,
    ClassFilter,
    ClassUpdate,
    EnrollmentCreate,
    EnrollmentUpdate,
    InstructorCreate,
    InstructorUpdate,
    StudentCreate,
    StudentUpdate,
    ZoneCreate,
    ZoneUpdate,
)

log = logging.getLogger(__name__)

# Latest a confirmed enrollment can be cancelled, relative to class start
CANCELLATION_NOTICE = timedelta(hours=2)


def _create_account(session: Session, email: str, password: str, role: Role, settings: Settings) -> User:
    email = email.strip().lower()
    exists = session.execute(select(User).where(User.email == email)).scalar_one_or_none()
    if exists:
        raise InvalidOperationError("El email ya está registrado")
    now = utcnow()
    user = User(
        email=email,
        password_hash=hash_password(password, settings),
        role=role.value,
        is_active=True,
        created_at=now,
        updated_at=now,
    )
    session.add(user)
    return user


# =========================
# Zones
# =========================
class ZoneService:
    def __init__(self, session: Session):
        self.session = session

    def list(self, active_only: bool = True) -> list[Zone]:
        q = select(Zone).order_by(Zone.name)
        if active_only:
            q = q.where(Zone.is_active.is_(True))
        return list(self.session.scalars(q))

    def get(self, zone_id: int) -> Zone:
        zone = self.session.get(Zone, zone_id)
        if zone is None:
            raise NotFoundError("Zone", zone_id)
        return zone

    def _ensure_unique_name(self, name: str, exclude_id: int | None = None) -> None:
        q = select(Zone.id).where(Zone.name == name)
        if exclude_id is not None:
            q = q.where(Zone.id != exclude_id)
        if self.session.execute(q.limit(1)).first() is not None:
            raise InvalidOperationError(f"Ya existe una zona con el nombre '{name}'")

    def create(self, dto: ZoneCreate) -> Zone:
        self._ensure_unique_name(dto.name)
        zone = zone_from_create(dto)
        self.session.add(zone)
        self.session.commit()
        return zone

    def update(self, zone_id: int, dto: ZoneUpdate) -> Zone:
        zone = self.get(zone_id)
        if dto.name is not None and dto.name != zone.name:
            self._ensure_unique_name(dto.name, exclude_id=zone_id)
        apply_update(zone, dto)
        self.session.commit()
        return zone

    def delete(self, zone_id: int) -> None:
        """Soft delete: the zone keeps its class history."""
        zone = self.get(zone_id)
        zone.is_active = False
        zone.updated_at = utcnow()
        self.session.commit()


# =========================
# Instructors
# =========================
class InstructorService:
    def __init__(self, session: Session, settings: Settings | None = None):
        self.session = session
        self.settings = settings or get_settings()

    def list(self, active_only: bool = False) -> list[Instructor]:
        q = select(Instructor).options(selectinload(Instructor.user)).order_by(
            Instructor.last_name, Instructor.first_name
        )
        if active_only:
            q = q.where(Instructor.is_active.is_(True))
        return list(self.session.scalars(q))

    def get(self, instructor_id: int) -> Instructor:
        instructor = self.session.get(Instructor, instructor_id)
        if instructor is None:
            raise NotFoundError("Instructor", instructor_id)
        return instructor

    def create(self, dto: InstructorCreate) -> Instructor:
        user = _create_account(self.session, str(dto.email), dto.password, Role.INSTRUCTOR, self.settings)
        instructor = instructor_from_create(dto, user)
        self.session.add(instructor)
        self.session.commit()
        log.info("Created instructor %s", instructor)
        return instructor

    def update(self, instructor_id: int, dto: InstructorUpdate) -> Instructor:
        instructor = apply_update(self.get(instructor_id), dto)
        self.session.commit()
        return instructor

    def deactivate(self, instructor_id: int) -> None:
        instructor = self.get(instructor_id)
        instructor.is_active = False
        instructor.updated_at = utcnow()
        self.session.commit()

    def classes(self, instructor_id: int, from_date: date | None = None) -> list[Class]:
        self.get(instructor_id)
        q = (
            select(Class)
            .options(selectinload(Class.enrollments), selectinload(Class.zone), selectinload(Class.instructor))
            .where(Class.instructor_id == instructor_id)
            .order_by(Class.class_date, Class.start_time)
        )
        if from_date is not None:
            q = q.where(Class.class_date >= from_date)
        return list(self.session.scalars(q))


# =========================
# Students
# =========================
class StudentService:
    def __init__(self, session: Session, settings: Settings | None = None):
        self.session = session
        self.settings = settings or get_settings()

    def list(self, search: str | None = None) -> list[Student]:
        q = select(Student).options(selectinload(Student.user)).order_by(Student.last_name, Student.first_name)
        if search:
            pattern = f"%{search.strip()}%"
            q = q.where(Student.first_name.ilike(pattern) | Student.last_name.ilike(pattern))
        return list(self.session.scalars(q))

    def get(self, student_id: int) -> Student:
        student = self.session.get(Student, student_id)
        if student is None:
            raise NotFoundError("Student", student_id)
        return student

    def get_by_user(self, user_id: int) -> Student | None:
        return self.session.execute(select(Student).where(Student.user_id == user_id)).scalar_one_or_none()

    def create(self, dto: StudentCreate) -> Student:
        user = _create_account(self.session, str(dto.email), dto.password, Role.STUDENT, self.settings)
        student = student_from_create(dto, user)
        self.session.add(student)
        self.session.commit()
        log.info("Created student %s", student)
        return student

    def update(self, student_id: int, dto: StudentUpdate) -> Student:
        student = apply_update(self.get(student_id), dto)
        self.session.commit()
        return student

    def delete(self, student_id: int) -> None:
        """Removes the student, its history and its login account."""
        student = self.get(student_id)
        user = student.user
        self.session.delete(student)
        if user is not None:
            self.session.delete(user)
        self.session.commit()
        log.info("Deleted student %s", student_id)


# =========================
# Classes
# =========================
class ClassService:
    def __init__(self, session: Session):
        self.session = session

    def _query(self):
        return select(Class).options(
            selectinload(Class.enrollments),
            selectinload(Class.instructor),
            selectinload(Class.zone),
        )

    def list(self, flt: ClassFilter | None = None) -> list[Class]:
        flt = flt or ClassFilter()
        q = self._query().order_by(Class.class_date, Class.start_time)
        if flt.start_date is not None:
            q = q.where(Class.class_date >= flt.start_date)
        if flt.end_date is not None:
            q = q.where(Class.class_date <= flt.end_date)
        if flt.instructor_id is not None:
            q = q.where(Class.instructor_id == flt.instructor_id)
        if flt.zone_id is not None:
            q = q.where(Class.zone_id == flt.zone_id)
        if flt.difficulty_level:
            q = q.where(Class.difficulty_level == flt.difficulty_level)
        if flt.status:
            q = q.where(Class.status == flt.status)

        classes = list(self.session.scalars(q))
        if flt.only_available:
            now = utcnow()
            classes = [
                c
                for c in classes
                if c.status == ClassStatus.SCHEDULED.value and c.starts_at > now and available_spots(c) > 0
            ]
        return classes

    def get(self, class_id: int) -> Class:
        cls = self.session.execute(self._query().where(Class.id == class_id)).scalar_one_or_none()
        if cls is None:
            raise NotFoundError("Class", class_id)
        return cls

    def _has_overlap(
        self,
        instructor_id: int,
        zone_id: int,
        class_date: date,
        start: time,
        end: time,
        exclude_id: int | None = None,
    ) -> bool:
        """Same instructor or same zone, overlapping [start, end), not cancelled."""
        q = select(Class.id).where(
            and_(
                Class.class_date == class_date,
                Class.status != ClassStatus.CANCELLED.value,
                Class.start_time < end,
                Class.end_time > start,
                (Class.instructor_id == instructor_id) | (Class.zone_id == zone_id),
            )
        )
        if exclude_id is not None:
            q = q.where(Class.id != exclude_id)
        return self.session.execute(q.limit(1)).first() is not None

    def _validate(self, cls: Class, exclude_id: int | None = None) -> None:
        if cls.end_time <= cls.start_time:
            raise InvalidOperationError("La hora de fin debe ser posterior a la hora de inicio")

        instructor = self.session.get(Instructor, cls.instructor_id)
        if instructor is None:
            raise NotFoundError("Instructor", cls.instructor_id)
        if not instructor.is_active:
            raise InvalidOperationError("El instructor no está activo")

        zone = self.session.get(Zone, cls.zone_id)
        if zone is None:
            raise NotFoundError("Zone", cls.zone_id)
        if not zone.is_active:
            raise InvalidOperationError("La zona no está activa")
        if cls.capacity_limit > zone.capacity:
            raise InvalidOperationError(
                f"La capacidad de la clase ({cls.capacity_limit}) excede la capacidad de la zona ({zone.capacity})"
            )

        if self._has_overlap(
            cls.instructor_id, cls.zone_id, cls.class_date, cls.start_time, cls.end_time, exclude_id
        ):
            raise InvalidOperationError("El instructor o la zona ya tienen una clase en ese horario")

    def create(self, dto: ClassCreate) -> Class:
        cls = class_from_create(dto)
        self._validate(cls)
        self.session.add(cls)
        self.session.commit()
        log.info("Scheduled class %s", cls)
        return self.get(cls.id)

    def update(self, class_id: int, dto: ClassUpdate) -> Class:
        cls = self.get(class_id)
        if dto.capacity_limit is not None:
            if dto.capacity_limit < confirmed_count(cls):
                raise InvalidOperationError("La capacidad no puede ser menor que las reservas confirmadas")

        # Cancelling releases enrollments, so it always goes through cancel()
        cancelling = dto.status == ClassStatus.CANCELLED.value and cls.status != ClassStatus.CANCELLED.value
        if cancelling:
            dto = dto.model_copy(update={"status": None})

        # Validate on the patched values before anything is flushed
        with self.session.no_autoflush:
            apply_update(cls, dto)
            try:
                self._validate(cls, exclude_id=class_id)
            except (InvalidOperationError, NotFoundError):
                self.session.rollback()
                raise
        self.session.commit()
        if cancelling:
            return self.cancel(class_id)
        return cls

    def cancel(self, class_id: int, reason: str | None = None) -> Class:
        """Cancels the class and every confirmed enrollment, returning their package classes."""
        cls = self.get(class_id)
        if cls.status == ClassStatus.CANCELLED.value:
            raise InvalidOperationError("La clase ya está cancelada")
        if cls.status == ClassStatus.COMPLETED.value:
            raise InvalidOperationError("No se puede cancelar una clase completada")

        now = utcnow()
        for enrollment in cls.enrollments:
            if enrollment.status == EnrollmentStatus.CONFIRMED.value:
                _release(enrollment, reason or "Clase cancelada", now)
        cls.status = ClassStatus.CANCELLED.value
        cls.updated_at = now
        self.session.commit()
        log.info("Cancelled class %s", class_id)
        return cls


def _release(enrollment: Enrollment, reason: str | None, now: datetime) -> None:
    enrollment.status = EnrollmentStatus.CANCELLED.value
    enrollment.cancellation_reason = reason
    enrollment.cancelled_at = now
    enrollment.updated_at = now
    if enrollment.purchase is not None:
        enrollment.purchase.remaining_classes += 1
        enrollment.purchase.updated_at = now


# =========================
# Enrollments (reservations)
# =========================
class ReservationService:
    def __init__(self, session: Session):
        self.session = session

    def get(self, enrollment_id: int) -> Enrollment:
        enrollment = self.session.get(Enrollment, enrollment_id)
        if enrollment is None:
            raise NotFoundError("Enrollment", enrollment_id)
        return enrollment

    def list_by_class(self, class_id: int) -> list[Enrollment]:
        q = (
            select(Enrollment)
            .options(selectinload(Enrollment.student), selectinload(Enrollment.class_))
            .where(Enrollment.class_id == class_id)
            .order_by(Enrollment.created_at)
        )
        return list(self.session.scalars(q))

    def list_by_student(self, student_id: int) -> list[Enrollment]:
        q = (
            select(Enrollment)
            .join(Class, Class.id == Enrollment.class_id)
            .options(selectinload(Enrollment.student), selectinload(Enrollment.class_))
            .where(Enrollment.student_id == student_id)
            .order_by(Class.class_date.desc(), Class.start_time.desc())
        )
        return list(self.session.scalars(q))

    def _active_purchase(self, student_id: int, now: datetime) -> Purchase | None:
        """The usable purchase expiring first."""
        q = (
            select(Purchase)
            .where(
                and_(
                    Purchase.student_id == student_id,
                    Purchase.status == PurchaseStatus.ACTIVE.value,
                    Purchase.remaining_classes > 0,
                    Purchase.expiration_date > now,
                )
            )
            .order_by(Purchase.expiration_date.asc())
            .limit(1)
        )
        return self.session.execute(q).scalar_one_or_none()

    def enroll(self, dto: EnrollmentCreate) -> Enrollment:
        """
        Reserves a spot:
        - student and class must exist
        - class scheduled and not yet started
        - no confirmed or completed enrollment for the same student
        - at least one spot left
        One class is taken from the student's active purchase, when there is one.
        """
        student = self.session.get(Student, dto.student_id)
        if student is None:
            raise NotFoundError("Student", dto.student_id)
        cls = self.session.get(Class, dto.class_id)
        if cls is None:
            raise NotFoundError("Class", dto.class_id)

        now = utcnow()
        existing = self._existing(cls.id, student.id)
        self._check_enrollable(cls, existing, now)

        if existing is not None:
            # One row per (class, student): a cancelled enrollment is reopened
            enrollment = existing
            enrollment.status = EnrollmentStatus.CONFIRMED.value
            enrollment.notes = dto.notes
            enrollment.cancellation_reason = None
            enrollment.cancelled_at = None
            enrollment.updated_at = now
        else:
            enrollment = enrollment_from_create(dto, now)
            enrollment.class_ = cls
            enrollment.student = student
            self.session.add(enrollment)

        purchase = self._active_purchase(student.id, now)
        if purchase is not None:
            purchase.remaining_classes -= 1
            purchase.updated_at = now
            enrollment.purchase = purchase
        else:
            enrollment.purchase = None

        self.session.commit()
        log.info("Student %s enrolled in class %s", student.id, cls.id)
        return enrollment

    def can_enroll(self, student_id: int, class_id: int) -> tuple[bool, str | None]:
        """Same checks as enroll(), without touching anything. Returns (allowed, reason)."""
        if self.session.get(Student, student_id) is None:
            raise NotFoundError("Student", student_id)
        cls = self.session.get(Class, class_id)
        if cls is None:
            raise NotFoundError("Class", class_id)
        try:
            self._check_enrollable(cls, self._existing(class_id, student_id), utcnow())
        except InvalidOperationError as exc:
            return False, str(exc)
        return True, None

    def can_cancel(self, enrollment_id: int) -> tuple[bool, str | None]:
        try:
            self._check_cancellable(self.get(enrollment_id), utcnow())
        except InvalidOperationError as exc:
            return False, str(exc)
        return True, None

    def upcoming(self, student_id: int) -> list[Enrollment]:
        """Confirmed enrollments in classes that have not started yet, soonest first."""
        now = utcnow()
        q = (
            select(Enrollment)
            .join(Class, Class.id == Enrollment.class_id)
            .options(selectinload(Enrollment.student), selectinload(Enrollment.class_))
            .where(
                and_(
                    Enrollment.student_id == student_id,
                    Enrollment.status == EnrollmentStatus.CONFIRMED.value,
                    Class.status == ClassStatus.SCHEDULED.value,
                    Class.class_date >= now.date(),
                )
            )
            .order_by(Class.class_date, Class.start_time)
        )
        return [e for e in self.session.scalars(q) if e.class_.starts_at > now]

    def _existing(self, class_id: int, student_id: int) -> Enrollment | None:
        return self.session.execute(
            select(Enrollment).where(and_(Enrollment.class_id == class_id, Enrollment.student_id == student_id))
        ).scalar_one_or_none()

    def _check_enrollable(self, cls: Class, existing: Enrollment | None, now: datetime) -> None:
        if cls.status != ClassStatus.SCHEDULED.value:
            raise InvalidOperationError("La clase no está disponible para reservas")
        if cls.starts_at <= now:
            raise InvalidOperationError("No se puede reservar una clase que ya comenzó")
        if existing is not None:
            if existing.status == EnrollmentStatus.CONFIRMED.value:
                raise InvalidOperationError("El estudiante ya está inscrito en esta clase")
            # only cancelled rows can be reopened
            if existing.status == EnrollmentStatus.COMPLETED.value:
                raise InvalidOperationError("El estudiante ya completó esta clase")
        if available_spots(cls) <= 0:
            raise InvalidOperationError("No hay cupos disponibles en esta clase")

    def _check_cancellable(self, enrollment: Enrollment, now: datetime) -> None:
        if enrollment.status != EnrollmentStatus.CONFIRMED.value:
            raise InvalidOperationError("Solo se pueden cancelar inscripciones confirmadas")
        if enrollment.class_ is not None and enrollment.class_.starts_at - now < CANCELLATION_NOTICE:
            raise InvalidOperationError(
                "Las cancelaciones deben hacerse al menos 2 horas antes del inicio de la clase"
            )

    def cancel(self, enrollment_id: int, reason: str | None = None) -> Enrollment:
        enrollment = self.get(enrollment_id)
        now = utcnow()
        self._check_cancellable(enrollment, now)

        _release(enrollment, reason, now)
        self.session.commit()
        log.info("Enrollment %s cancelled", enrollment_id)
        return enrollment

    def complete(self, enrollment_id: int) -> Enrollment:
        enrollment = self.get(enrollment_id)
        if enrollment.status != EnrollmentStatus.CONFIRMED.value:
            raise InvalidOperationError("Solo se pueden completar inscripciones confirmadas")
        enrollment.status = EnrollmentStatus.COMPLETED.value
        enrollment.updated_at = utcnow()
        self.session.commit()
        return enrollment

    def update(self, enrollment_id: int, dto: EnrollmentUpdate) -> Enrollment:
        """Status changes go through cancel/complete so their rules always apply."""
        enrollment = self.get(enrollment_id)
        if dto.status != enrollment.status:
            if dto.status == EnrollmentStatus.CANCELLED.value:
                self.cancel(enrollment_id)
            elif dto.status == EnrollmentStatus.COMPLETED.value:
                self.complete(enrollment_id)
            else:
                raise InvalidOperationError("Una inscripción cancelada o completada no puede volver a confirmarse")
        if dto.notes is not None:
            enrollment.notes = dto.notes
        enrollment.updated_at = utcnow()
        self.session.commit()
        return enrollment


# =========================
# Attendance
# =========================
class AttendanceService:
    def __init__(self, session: Session):
        self.session = session

    def get(self, attendance_id: int) -> Attendance:
        attendance = self.session.get(Attendance, attendance_id)
        if attendance is None:
            raise NotFoundError("Attendance", attendance_id)
        return attendance

    def record(self, dto: AttendanceCreate) -> Attendance:
        """Only students holding a non-cancelled enrollment can be marked present."""
        enrollment = self.session.execute(
            select(Enrollment).where(
                and_(Enrollment.class_id == dto.class_id, Enrollment.student_id == dto.student_id)
            )
        ).scalar_one_or_none()
        if enrollment is None or enrollment.status == EnrollmentStatus.CANCELLED.value:
            raise InvalidOperationError("El estudiante no tiene una inscripción activa en esta clase")

        duplicate = self.session.execute(
            select(func.count(Attendance.id)).where(
                and_(Attendance.class_id == dto.class_id, Attendance.student_id == dto.student_id)
            )
        ).scalar_one()
        if duplicate:
            raise InvalidOperationError("La asistencia ya fue registrada")

        attendance = attendance_from_create(dto)
        self.session.add(attendance)
        self.session.commit()
        return attendance

    def update(self, attendance_id: int, dto: AttendanceUpdate) -> Attendance:
        attendance = apply_update(self.get(attendance_id), dto)
        self.session.commit()
        return attendance

    def list_by_class(self, class_id: int) -> list[Attendance]:
        q = (
            select(Attendance)
            .options(selectinload(Attendance.student), selectinload(Attendance.class_))
            .where(Attendance.class_id == class_id)
            .order_by(Attendance.attendance_date)
        )
        return list(self.session.scalars(q))

    def list_by_student(self, student_id: int) -> list[Attendance]:
        q = (
            select(Attendance)
            .options(selectinload(Attendance.student), selectinload(Attendance.class_))
            .where(Attendance.student_id == student_id)
            .order_by(Attendance.attendance_date.desc())
        )
        return list(self.session.scalars(q))
