"""
Entity <-> DTO mapping.

One plain function per pair. Read mappers never raise on a missing
relationship: names fall back to "". Create mappers stamp both timestamps
with the same instant. `apply_update` only touches the fields the client
actually sent.
"""
from __future__ import annotations

from datetime import date, datetime, timedelta
from typing import Optional

from pydantic import BaseModel

from .auth_models import Role, User
from .db import utcnow
from .models import (
    Attendance,
    Class,
    ClassStatus,
    Enrollment,
    EnrollmentStatus,
    Instructor,
    Package,
    Payment,
    PaymentStatus,
    Purchase,
    PurchaseStatus,
    Student,
    Zone,
)
from .schemas import (
    AttendanceCreate,
    AttendanceRead,
    ClassCreate,
    ClassRead,
    EnrollmentCreate,
    EnrollmentRead,
    InstructorCreate,
    InstructorRead,
    PackageCreate,
    PackageRead,
    PaymentCreate,
    PaymentRead,
    PurchaseCreate,
    PurchaseRead,
    RegisterRequest,
    StudentCreate,
    StudentRead,
    UserInfo,
    UserRead,
    ZoneCreate,
    ZoneRead,
)


def full_name(first_name: Optional[str], last_name: Optional[str]) -> str:
    return f"{first_name or ''} {last_name or ''}"


def age_on(birth_date: Optional[date], today: Optional[date] = None) -> Optional[int]:
    if birth_date is None:
        return None
    today = today or date.today()
    years = today.year - birth_date.year
    if (today.month, today.day) < (birth_date.month, birth_date.day):
        years -= 1
    return years


def _person_name(person) -> str:
    if person is None:
        return ""
    return full_name(person.first_name, person.last_name)


def confirmed_count(cls: Class) -> int:
    return sum(1 for e in cls.enrollments if e.status == EnrollmentStatus.CONFIRMED.value)


def available_spots(cls: Class) -> int:
    return cls.capacity_limit - confirmed_count(cls)


# ---------------- Entity -> ReadDTO ----------------

def user_to_info(user: User) -> UserInfo:
    # Names come from whichever profile the account has
    profile = user.instructor or user.student
    first = profile.first_name if profile is not None else ""
    last = profile.last_name if profile is not None else ""
    return UserInfo(
        id=user.id,
        email=user.email,
        first_name=first,
        last_name=last,
        full_name=full_name(first, last),
        role=user.role,
        is_active=user.is_active,
        email_verified=user.email_verified_at is not None,
        created_at=user.created_at,
    )


def instructor_to_read(instructor: Instructor) -> InstructorRead:
    return InstructorRead(
        id=instructor.id,
        user_id=instructor.user_id,
        first_name=instructor.first_name,
        last_name=instructor.last_name,
        full_name=full_name(instructor.first_name, instructor.last_name),
        phone=instructor.phone,
        specializations=instructor.specializations,
        bio=instructor.bio,
        is_active=instructor.is_active,
        email=instructor.user.email if instructor.user is not None else "",
        created_at=instructor.created_at,
        updated_at=instructor.updated_at,
    )


def student_to_read(student: Student) -> StudentRead:
    return StudentRead(
        id=student.id,
        user_id=student.user_id,
        first_name=student.first_name,
        last_name=student.last_name,
        full_name=full_name(student.first_name, student.last_name),
        phone=student.phone,
        birth_date=student.birth_date,
        age=age_on(student.birth_date),
        nit=student.nit,
        emergency_contact=student.emergency_contact,
        medical_notes=student.medical_notes,
        email=student.user.email if student.user is not None else "",
        created_at=student.created_at,
        updated_at=student.updated_at,
    )


def user_to_read(user: User) -> UserRead:
    return UserRead(
        id=user.id,
        email=user.email,
        role=user.role,
        is_active=user.is_active,
        email_verified=user.email_verified_at is not None,
        created_at=user.created_at,
        updated_at=user.updated_at,
        instructor=instructor_to_read(user.instructor) if user.instructor is not None else None,
        student=student_to_read(user.student) if user.student is not None else None,
    )


def zone_to_read(zone: Zone) -> ZoneRead:
    return ZoneRead(
        id=zone.id,
        name=zone.name,
        description=zone.description,
        capacity=zone.capacity,
        equipment_available=zone.equipment_available,
        is_active=zone.is_active,
        created_at=zone.created_at,
        updated_at=zone.updated_at,
    )


def class_to_read(cls: Class) -> ClassRead:
    reserved = confirmed_count(cls)
    return ClassRead(
        id=cls.id,
        instructor_id=cls.instructor_id,
        instructor_name=_person_name(cls.instructor),
        zone_id=cls.zone_id,
        zone_name=cls.zone.name if cls.zone is not None else "",
        class_date=cls.class_date,
        start_time=cls.start_time,
        end_time=cls.end_time,
        capacity_limit=cls.capacity_limit,
        reserved_spots=reserved,
        available_spots=cls.capacity_limit - reserved,
        class_type=cls.class_type,
        difficulty_level=cls.difficulty_level,
        description=cls.description,
        status=cls.status,
        created_at=cls.created_at,
        updated_at=cls.updated_at,
    )


def enrollment_to_read(enrollment: Enrollment) -> EnrollmentRead:
    cls = enrollment.class_
    return EnrollmentRead(
        id=enrollment.id,
        class_id=enrollment.class_id,
        class_name=(cls.class_type or "") if cls is not None else "",
        class_date_time=cls.starts_at if cls is not None else None,
        student_id=enrollment.student_id,
        student_name=_person_name(enrollment.student),
        purchase_id=enrollment.purchase_id,
        status=enrollment.status,
        notes=enrollment.notes,
        cancellation_reason=enrollment.cancellation_reason,
        cancelled_at=enrollment.cancelled_at,
        created_at=enrollment.created_at,
        updated_at=enrollment.updated_at,
    )


def package_to_read(package: Package) -> PackageRead:
    return PackageRead(
        id=package.id,
        name=package.name,
        description=package.description,
        price=package.price,
        class_count=package.class_count,
        validity_days=package.validity_days,
        is_active=package.is_active,
        created_at=package.created_at,
        updated_at=package.updated_at,
    )


def purchase_to_read(purchase: Purchase) -> PurchaseRead:
    return PurchaseRead(
        id=purchase.id,
        student_id=purchase.student_id,
        student_name=_person_name(purchase.student),
        package_id=purchase.package_id,
        package_name=purchase.package.name if purchase.package is not None else "",
        amount=purchase.amount,
        status=purchase.status,
        purchase_date=purchase.purchase_date,
        expiration_date=purchase.expiration_date,
        remaining_classes=purchase.remaining_classes,
        created_at=purchase.created_at,
        updated_at=purchase.updated_at,
    )


def payment_to_read(payment: Payment) -> PaymentRead:
    purchase = payment.purchase
    return PaymentRead(
        id=payment.id,
        purchase_id=payment.purchase_id,
        student_name=_person_name(purchase.student) if purchase is not None else "",
        amount=payment.amount,
        payment_method=payment.payment_method,
        status=payment.status,
        payment_date=payment.payment_date,
        transaction_id=payment.transaction_id,
        notes=payment.notes,
        created_at=payment.created_at,
        updated_at=payment.updated_at,
    )


def attendance_to_read(attendance: Attendance) -> AttendanceRead:
    cls = attendance.class_
    return AttendanceRead(
        id=attendance.id,
        class_id=attendance.class_id,
        class_name=(cls.class_type or "") if cls is not None else "",
        student_id=attendance.student_id,
        student_name=_person_name(attendance.student),
        attendance_date=attendance.attendance_date,
        notes=attendance.notes,
        created_at=attendance.created_at,
        updated_at=attendance.updated_at,
    )


# ---------------- CreateDTO -> Entity ----------------

def register_to_user(dto: RegisterRequest, password_hash: str, now: Optional[datetime] = None) -> User:
    now = now or utcnow()
    return User(
        email=str(dto.email).lower(),
        password_hash=password_hash,
        role=Role(dto.role).value,
        is_active=True,
        failed_login_count=0,
        created_at=now,
        updated_at=now,
    )


def register_to_instructor(dto: RegisterRequest, user: User, now: Optional[datetime] = None) -> Instructor:
    now = now or utcnow()
    return Instructor(
        user=user,
        first_name=dto.first_name,
        last_name=dto.last_name,
        phone=dto.phone,
        is_active=True,
        created_at=now,
        updated_at=now,
    )


def register_to_student(dto: RegisterRequest, user: User, now: Optional[datetime] = None) -> Student:
    now = now or utcnow()
    return Student(
        user=user,
        first_name=dto.first_name,
        last_name=dto.last_name,
        phone=dto.phone,
        birth_date=dto.birth_date,
        emergency_contact=dto.emergency_contact,
        created_at=now,
        updated_at=now,
    )


def instructor_from_create(dto: InstructorCreate, user: User, now: Optional[datetime] = None) -> Instructor:
    now = now or utcnow()
    return Instructor(
        user=user,
        first_name=dto.first_name,
        last_name=dto.last_name,
        phone=dto.phone,
        specializations=dto.specializations,
        bio=dto.bio,
        is_active=dto.is_active,
        created_at=now,
        updated_at=now,
    )


def student_from_create(dto: StudentCreate, user: User, now: Optional[datetime] = None) -> Student:
    now = now or utcnow()
    return Student(
        user=user,
        first_name=dto.first_name,
        last_name=dto.last_name,
        phone=dto.phone,
        birth_date=dto.birth_date,
        nit=dto.nit,
        emergency_contact=dto.emergency_contact,
        medical_notes=dto.medical_notes,
        created_at=now,
        updated_at=now,
    )


def zone_from_create(dto: ZoneCreate, now: Optional[datetime] = None) -> Zone:
    now = now or utcnow()
    return Zone(
        name=dto.name,
        description=dto.description,
        capacity=dto.capacity,
        equipment_available=dto.equipment_available,
        is_active=True,
        created_at=now,
        updated_at=now,
    )


def class_from_create(dto: ClassCreate, now: Optional[datetime] = None) -> Class:
    now = now or utcnow()
    return Class(
        instructor_id=dto.instructor_id,
        zone_id=dto.zone_id,
        class_date=dto.class_date,
        start_time=dto.start_time,
        end_time=dto.end_time,
        capacity_limit=dto.capacity_limit,
        class_type=dto.class_type,
        difficulty_level=dto.difficulty_level,
        description=dto.description,
        status=ClassStatus.SCHEDULED.value,
        created_at=now,
        updated_at=now,
    )


def enrollment_from_create(dto: EnrollmentCreate, now: Optional[datetime] = None) -> Enrollment:
    now = now or utcnow()
    return Enrollment(
        class_id=dto.class_id,
        student_id=dto.student_id,
        notes=dto.notes,
        status=EnrollmentStatus.CONFIRMED.value,
        created_at=now,
        updated_at=now,
    )


def package_from_create(dto: PackageCreate, now: Optional[datetime] = None) -> Package:
    now = now or utcnow()
    return Package(
        name=dto.name,
        description=dto.description,
        price=dto.price,
        class_count=dto.class_count,
        validity_days=dto.validity_days,
        is_active=dto.is_active,
        created_at=now,
        updated_at=now,
    )


def purchase_from_create(dto: PurchaseCreate, package: Package, now: Optional[datetime] = None) -> Purchase:
    """Remaining classes and expiration come from the package, never from the client."""
    now = now or utcnow()
    return Purchase(
        student_id=dto.student_id,
        package_id=dto.package_id,
        amount=dto.amount,
        status=PurchaseStatus.ACTIVE.value,
        purchase_date=now,
        expiration_date=now + timedelta(days=package.validity_days),
        remaining_classes=package.class_count,
        created_at=now,
        updated_at=now,
    )


def payment_from_create(dto: PaymentCreate, now: Optional[datetime] = None) -> Payment:
    now = now or utcnow()
    return Payment(
        purchase_id=dto.purchase_id,
        amount=dto.amount,
        payment_method=dto.payment_method,
        status=PaymentStatus.PENDING.value,
        payment_date=dto.payment_date,
        transaction_id=dto.transaction_id,
        notes=dto.notes,
        created_at=now,
        updated_at=now,
    )


def attendance_from_create(dto: AttendanceCreate, now: Optional[datetime] = None) -> Attendance:
    now = now or utcnow()
    return Attendance(
        class_id=dto.class_id,
        student_id=dto.student_id,
        attendance_date=dto.attendance_date,
        notes=dto.notes,
        created_at=now,
        updated_at=now,
    )


# ---------------- UpdateDTO -> Entity ----------------

def apply_update(entity, dto: BaseModel, now: Optional[datetime] = None):
    """
    Patch `entity` with the fields the client sent.
    A field is applied only if it appears in `model_fields_set` and is not
    None; an explicit null is treated like an absent field. `updated_at` is
    re-stamped on every call.
    """
    for name in dto.model_fields_set:
        value = getattr(dto, name)
        if value is None:
            continue
        if name == "email":
            value = str(value).lower()
        setattr(entity, name, value)
    entity.updated_at = now or utcnow()
    return entity
