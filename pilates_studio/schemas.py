from __future__ import annotations

from datetime import date, datetime, time, timedelta
from decimal import Decimal
from typing import Annotated, Any, Optional

from pydantic import (
    AfterValidator,
    BaseModel,
    EmailStr,
    Field,
    PlainSerializer,
    ValidationError,
    model_validator,
)
from pydantic_core import PydanticCustomError

# Decimal in the database, plain number on the wire
Money = Annotated[Decimal, PlainSerializer(float, return_type=float, when_used="json")]

PHONE_PATTERN = r"^\+?[0-9 ()\-]{7,20}$"

# pydantic error type -> message slot declared with field()
_ERROR_SLOTS = {
    "missing": "required",
    "string_too_long": "length",
    "string_too_short": "length",
    "too_long": "length",
    "too_short": "length",
    "greater_than": "bounds",
    "greater_than_equal": "bounds",
    "less_than": "bounds",
    "less_than_equal": "bounds",
    "string_pattern_mismatch": "mismatch",
    "literal_error": "mismatch",
    "enum": "mismatch",
}


def field(
    default: Any = ...,
    *,
    required: str | None = None,
    length: str | None = None,
    bounds: str | None = None,
    mismatch: str | None = None,
    invalid: str | None = None,
    **kwargs: Any,
) -> Any:
    """
    pydantic Field carrying the user-facing message for each kind of failure:
    - required: the field is missing
    - length: min/max length
    - bounds: gt/ge/lt/le
    - mismatch: regex or choice
    - invalid: anything else (format, type, custom validators)
    """
    messages = {
        slot: text
        for slot, text in (
            ("required", required),
            ("length", length),
            ("bounds", bounds),
            ("mismatch", mismatch),
            ("invalid", invalid),
        )
        if text
    }
    return Field(default, json_schema_extra={"messages": messages}, **kwargs)


def _field_messages(model: type[BaseModel], name: str) -> dict[str, str]:
    info = model.model_fields.get(name)
    if info is None or not isinstance(info.json_schema_extra, dict):
        return {}
    return info.json_schema_extra.get("messages", {})


class RequestModel(BaseModel):
    """
    Base for Create/Update DTOs.
    Validation errors are rebuilt with the message declared on the failing
    field, so the 400 body shows the same text the client UI displays.
    """

    @model_validator(mode="wrap")
    @classmethod
    def _localize_errors(cls, data: Any, handler: Any) -> Any:
        try:
            instance = handler(data)
        except ValidationError as exc:
            raise ValidationError.from_exception_data(
                cls.__name__, [cls._localize(err) for err in exc.errors()]
            ) from None

        problems = instance.cross_field_errors()
        if problems:
            raise ValidationError.from_exception_data(
                cls.__name__,
                [
                    {
                        "type": PydanticCustomError("value_error", message),
                        "loc": (name,),
                        "input": getattr(instance, name, None),
                    }
                    for name, message in problems.items()
                ],
            )
        return instance

    @classmethod
    def _localize(cls, err: dict[str, Any]) -> dict[str, Any]:
        loc = tuple(err.get("loc", ()))
        messages = _field_messages(cls, str(loc[0])) if loc else {}
        slot = _ERROR_SLOTS.get(err["type"], "invalid")
        message = messages.get(slot) or messages.get("invalid") or err["msg"]
        return {
            "type": PydanticCustomError(err["type"], message.replace("{", "(").replace("}", ")")),
            "loc": loc,
            "input": err.get("input"),
        }

    def cross_field_errors(self) -> dict[str, str]:
        """Rules spanning several fields: {field: message}. Empty when valid."""
        return {}


def _strong_password(value: str) -> str:
    checks = (
        any(c.islower() for c in value),
        any(c.isupper() for c in value),
        any(c.isdigit() for c in value),
        any(c in "@$!%*?&" for c in value),
    )
    if not all(checks):
        raise ValueError("weak password")
    return value


StrongPassword = Annotated[str, AfterValidator(_strong_password)]

_PASSWORD_RULES = "La contraseña debe tener al menos una mayúscula, una minúscula, un número y un carácter especial"


# ---------------- Auth ----------------

class RegisterRequest(RequestModel):
    email: EmailStr = field(required="El email es obligatorio", invalid="El formato del email no es válido")
    password: StrongPassword = field(
        min_length=8,
        required="La contraseña es obligatoria",
        length="La contraseña debe tener al menos 8 caracteres",
        invalid=_PASSWORD_RULES,
    )
    confirm_password: str = field(required="La confirmación de contraseña es obligatoria")
    first_name: str = field(
        max_length=100,
        required="El nombre es obligatorio",
        length="El nombre no puede exceder 100 caracteres",
    )
    last_name: str = field(
        max_length=100,
        required="El apellido es obligatorio",
        length="El apellido no puede exceder 100 caracteres",
    )
    phone: Optional[str] = field(None, pattern=PHONE_PATTERN, mismatch="El formato del teléfono no es válido")
    role: str = field(
        "student",
        pattern=r"^(admin|instructor|student)$",
        required="El rol es obligatorio",
        mismatch="El rol debe ser admin, instructor o student",
    )
    birth_date: Optional[date] = None
    emergency_contact: Optional[str] = field(
        None, max_length=255, length="El contacto de emergencia no puede exceder 255 caracteres"
    )

    def cross_field_errors(self) -> dict[str, str]:
        if self.confirm_password != self.password:
            return {"confirm_password": "Las contraseñas no coinciden"}
        return {}


class LoginRequest(RequestModel):
    email: EmailStr = field(required="El email es obligatorio", invalid="El formato del email no es válido")
    password: str = field(min_length=1, required="La contraseña es obligatoria", length="La contraseña es obligatoria")


class RefreshTokenRequest(RequestModel):
    refresh_token: str = field(
        min_length=1, required="El refresh token es obligatorio", length="El refresh token es obligatorio"
    )


class ChangePasswordRequest(RequestModel):
    current_password: str = field(required="La contraseña actual es obligatoria")
    new_password: StrongPassword = field(
        min_length=8,
        required="La nueva contraseña es obligatoria",
        length="La contraseña debe tener al menos 8 caracteres",
        invalid=_PASSWORD_RULES,
    )
    confirm_new_password: str = field(required="La confirmación de contraseña es obligatoria")

    def cross_field_errors(self) -> dict[str, str]:
        if self.confirm_new_password != self.new_password:
            return {"confirm_new_password": "Las contraseñas no coinciden"}
        return {}


class ForgotPasswordRequest(RequestModel):
    email: EmailStr = field(required="El email es obligatorio", invalid="El formato del email no es válido")


class ResetPasswordRequest(RequestModel):
    token: str = field(min_length=1, required="El token es obligatorio", length="El token es obligatorio")
    password: StrongPassword = field(
        min_length=8,
        required="La contraseña es obligatoria",
        length="La contraseña debe tener al menos 8 caracteres",
        invalid=_PASSWORD_RULES,
    )
    confirm_password: str = field(required="La confirmación de contraseña es obligatoria")

    def cross_field_errors(self) -> dict[str, str]:
        if self.confirm_password != self.password:
            return {"confirm_password": "Las contraseñas no coinciden"}
        return {}


class UserInfo(BaseModel):
    id: int
    email: str
    first_name: str
    last_name: str
    full_name: str
    role: str
    is_active: bool
    email_verified: bool = False
    created_at: datetime


class AuthResponse(BaseModel):
    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    expires_at: datetime
    user: UserInfo


# ---------------- Instructors ----------------

class InstructorCreate(RequestModel):
    first_name: str = field(
        max_length=100, required="El nombre es obligatorio", length="El nombre no puede exceder 100 caracteres"
    )
    last_name: str = field(
        max_length=100, required="El apellido es obligatorio", length="El apellido no puede exceder 100 caracteres"
    )
    email: EmailStr = field(required="El email es obligatorio", invalid="El formato del email no es válido")
    password: str = field(
        min_length=8,
        required="La contraseña es obligatoria",
        length="La contraseña debe tener al menos 8 caracteres",
    )
    phone: Optional[str] = field(
        None,
        max_length=20,
        pattern=PHONE_PATTERN,
        length="El teléfono no puede exceder 20 caracteres",
        mismatch="El formato del teléfono no es válido",
    )
    specializations: Optional[str] = field(
        None, max_length=500, length="Las especializaciones no pueden exceder 500 caracteres"
    )
    bio: Optional[str] = field(None, max_length=1000, length="La biografía no puede exceder 1000 caracteres")
    is_active: bool = True


class InstructorUpdate(RequestModel):
    first_name: Optional[str] = field(None, max_length=100, length="El nombre no puede exceder 100 caracteres")
    last_name: Optional[str] = field(None, max_length=100, length="El apellido no puede exceder 100 caracteres")
    phone: Optional[str] = field(
        None,
        max_length=20,
        pattern=PHONE_PATTERN,
        length="El teléfono no puede exceder 20 caracteres",
        mismatch="El formato del teléfono no es válido",
    )
    specializations: Optional[str] = field(
        None, max_length=500, length="Las especializaciones no pueden exceder 500 caracteres"
    )
    bio: Optional[str] = field(None, max_length=1000, length="La biografía no puede exceder 1000 caracteres")
    is_active: Optional[bool] = None


class InstructorRead(BaseModel):
    id: int
    user_id: int
    first_name: str
    last_name: str
    full_name: str
    phone: Optional[str] = None
    specializations: Optional[str] = None
    bio: Optional[str] = None
    is_active: bool
    email: str
    created_at: datetime
    updated_at: datetime


# ---------------- Students ----------------

class StudentCreate(RequestModel):
    first_name: str = field(
        max_length=100, required="El nombre es obligatorio", length="El nombre no puede exceder 100 caracteres"
    )
    last_name: str = field(
        max_length=100, required="El apellido es obligatorio", length="El apellido no puede exceder 100 caracteres"
    )
    email: EmailStr = field(required="El email es obligatorio", invalid="El formato del email no es válido")
    password: str = field(
        min_length=8,
        required="La contraseña es obligatoria",
        length="La contraseña debe tener al menos 8 caracteres",
    )
    phone: Optional[str] = field(
        None,
        max_length=20,
        pattern=PHONE_PATTERN,
        length="El teléfono no puede exceder 20 caracteres",
        mismatch="El formato del teléfono no es válido",
    )
    birth_date: Optional[date] = None
    nit: Optional[str] = field(None, max_length=50, length="El NIT no puede exceder 50 caracteres")
    emergency_contact: Optional[str] = field(
        None, max_length=255, length="El contacto de emergencia no puede exceder 255 caracteres"
    )
    medical_notes: Optional[str] = field(
        None, max_length=1000, length="Las notas médicas no pueden exceder 1000 caracteres"
    )


class StudentUpdate(RequestModel):
    first_name: Optional[str] = field(None, max_length=100, length="El nombre no puede exceder 100 caracteres")
    last_name: Optional[str] = field(None, max_length=100, length="El apellido no puede exceder 100 caracteres")
    phone: Optional[str] = field(
        None,
        max_length=20,
        pattern=PHONE_PATTERN,
        length="El teléfono no puede exceder 20 caracteres",
        mismatch="El formato del teléfono no es válido",
    )
    birth_date: Optional[date] = None
    nit: Optional[str] = field(None, max_length=50, length="El NIT no puede exceder 50 caracteres")
    emergency_contact: Optional[str] = field(
        None, max_length=255, length="El contacto de emergencia no puede exceder 255 caracteres"
    )
    medical_notes: Optional[str] = field(
        None, max_length=1000, length="Las notas médicas no pueden exceder 1000 caracteres"
    )


class StudentRead(BaseModel):
    id: int
    user_id: int
    first_name: str
    last_name: str
    full_name: str
    phone: Optional[str] = None
    birth_date: Optional[date] = None
    age: Optional[int] = None
    nit: Optional[str] = None
    emergency_contact: Optional[str] = None
    medical_notes: Optional[str] = None
    email: str
    created_at: datetime
    updated_at: datetime


# ---------------- Users (admin) ----------------

class UserUpdate(RequestModel):
    email: Optional[EmailStr] = field(None, invalid="El formato del email no es válido")
    role: Optional[str] = field(
        None, pattern=r"^(admin|instructor|student)$", mismatch="El rol debe ser admin, instructor o student"
    )
    is_active: Optional[bool] = None


class UserRead(BaseModel):
    id: int
    email: str
    role: str
    is_active: bool
    email_verified: bool
    created_at: datetime
    updated_at: datetime
    instructor: Optional[InstructorRead] = None
    student: Optional[StudentRead] = None


# ---------------- Zones ----------------

class ZoneCreate(RequestModel):
    name: str = field(
        min_length=1,
        max_length=100,
        required="El nombre de la zona es obligatorio",
        length="El nombre no puede exceder 100 caracteres",
    )
    description: Optional[str] = field(
        None, max_length=500, length="La descripción no puede exceder 500 caracteres"
    )
    capacity: int = field(
        gt=0,
        le=100,
        required="La capacidad es obligatoria",
        bounds="La capacidad debe estar entre 1 y 100 personas",
        invalid="La capacidad debe ser un número entero",
    )
    equipment_available: Optional[str] = field(
        None, max_length=1000, length="El equipamiento no puede exceder 1000 caracteres"
    )


class ZoneUpdate(RequestModel):
    name: Optional[str] = field(None, min_length=1, max_length=100, length="El nombre no puede exceder 100 caracteres")
    description: Optional[str] = field(
        None, max_length=500, length="La descripción no puede exceder 500 caracteres"
    )
    capacity: Optional[int] = field(
        None, gt=0, le=100, bounds="La capacidad debe estar entre 1 y 100 personas"
    )
    equipment_available: Optional[str] = field(
        None, max_length=1000, length="El equipamiento no puede exceder 1000 caracteres"
    )
    is_active: Optional[bool] = None


class ZoneRead(BaseModel):
    id: int
    name: str
    description: Optional[str] = None
    capacity: int
    equipment_available: Optional[str] = None
    is_active: bool
    created_at: datetime
    updated_at: datetime


# ---------------- Classes ----------------

_DIFFICULTY_PATTERN = r"^(beginner|intermediate|advanced)$"
_CLASS_STATUS_PATTERN = r"^(scheduled|ongoing|completed|cancelled)$"

MIN_CLASS_DURATION = timedelta(minutes=30)
MAX_CLASS_DURATION = timedelta(hours=3)


def _duration(start: time, end: time) -> timedelta:
    return datetime.combine(date.min, end) - datetime.combine(date.min, start)


def _schedule_errors(class_date: date | None, start: time | None, end: time | None) -> dict[str, str]:
    errors: dict[str, str] = {}
    if class_date is not None and class_date < date.today():
        errors["class_date"] = "La fecha de la clase debe ser hoy o en el futuro"
    if start is not None and end is not None:
        span = _duration(start, end)
        if span <= timedelta(0):
            errors["end_time"] = "La hora de fin debe ser posterior a la hora de inicio"
        elif span < MIN_CLASS_DURATION:
            errors["end_time"] = "La clase debe durar al menos 30 minutos"
        elif span > MAX_CLASS_DURATION:
            errors["end_time"] = "La clase no puede durar más de 3 horas"
    return errors


class ClassCreate(RequestModel):
    instructor_id: int = field(
        gt=0, required="El instructor es obligatorio", bounds="El instructor no es válido"
    )
    zone_id: int = field(gt=0, required="La zona es obligatoria", bounds="La zona no es válida")
    class_date: date = field(required="La fecha de la clase es obligatoria", invalid="La fecha no es válida")
    start_time: time = field(required="La hora de inicio es obligatoria", invalid="La hora no es válida")
    end_time: time = field(required="La hora de fin es obligatoria", invalid="La hora no es válida")
    capacity_limit: int = field(
        gt=0,
        le=100,
        required="La capacidad es obligatoria",
        bounds="La capacidad debe estar entre 1 y 100 personas",
    )
    class_type: Optional[str] = field(
        None, max_length=100, length="El tipo de clase no puede exceder 100 caracteres"
    )
    difficulty_level: str = field(
        "beginner",
        pattern=_DIFFICULTY_PATTERN,
        mismatch="El nivel debe ser: beginner, intermediate o advanced",
    )
    description: Optional[str] = field(
        None, max_length=1000, length="La descripción no puede exceder 1000 caracteres"
    )

    def cross_field_errors(self) -> dict[str, str]:
        return _schedule_errors(self.class_date, self.start_time, self.end_time)


class ClassUpdate(RequestModel):
    instructor_id: Optional[int] = field(None, gt=0, bounds="El instructor no es válido")
    zone_id: Optional[int] = field(None, gt=0, bounds="La zona no es válida")
    class_date: Optional[date] = None
    start_time: Optional[time] = None
    end_time: Optional[time] = None
    capacity_limit: Optional[int] = field(
        None, gt=0, le=100, bounds="La capacidad debe estar entre 1 y 100 personas"
    )
    class_type: Optional[str] = field(
        None, max_length=100, length="El tipo de clase no puede exceder 100 caracteres"
    )
    difficulty_level: Optional[str] = field(
        None, pattern=_DIFFICULTY_PATTERN, mismatch="El nivel debe ser: beginner, intermediate o advanced"
    )
    description: Optional[str] = field(
        None, max_length=1000, length="La descripción no puede exceder 1000 caracteres"
    )
    status: Optional[str] = field(
        None,
        pattern=_CLASS_STATUS_PATTERN,
        mismatch="El estado debe ser: scheduled, ongoing, completed o cancelled",
    )

    def cross_field_errors(self) -> dict[str, str]:
        return _schedule_errors(self.class_date, self.start_time, self.end_time)


class ClassRead(BaseModel):
    id: int
    instructor_id: int
    instructor_name: str
    zone_id: int
    zone_name: str
    class_date: date
    start_time: time
    end_time: time
    capacity_limit: int
    reserved_spots: int
    available_spots: int
    class_type: Optional[str] = None
    difficulty_level: str
    description: Optional[str] = None
    status: str
    created_at: datetime
    updated_at: datetime


class ClassFilter(BaseModel):
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    instructor_id: Optional[int] = None
    zone_id: Optional[int] = None
    difficulty_level: Optional[str] = None
    status: Optional[str] = None
    only_available: bool = False


# ---------------- Enrollments ----------------

class EnrollmentCreate(RequestModel):
    class_id: int = field(gt=0, required="La clase es obligatoria", bounds="La clase no es válida")
    student_id: int = field(gt=0, required="El estudiante es obligatorio", bounds="El estudiante no es válido")
    notes: Optional[str] = field(None, max_length=500, length="Las notas no pueden exceder 500 caracteres")


class EnrollmentUpdate(RequestModel):
    status: str = field(
        pattern=r"^(confirmed|cancelled|completed)$",
        required="El estado es obligatorio",
        mismatch="El estado debe ser: confirmed, cancelled o completed",
    )
    notes: Optional[str] = field(None, max_length=500, length="Las notas no pueden exceder 500 caracteres")


class EnrollmentCancel(RequestModel):
    reason: Optional[str] = field(
        None, max_length=500, length="El motivo de cancelación no puede exceder 500 caracteres"
    )


class Eligibility(BaseModel):
    allowed: bool
    reason: Optional[str] = None


class EnrollmentRead(BaseModel):
    id: int
    class_id: int
    class_name: str
    class_date_time: Optional[datetime] = None
    student_id: int
    student_name: str
    purchase_id: Optional[int] = None
    status: str
    notes: Optional[str] = None
    cancellation_reason: Optional[str] = None
    cancelled_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime


# ---------------- Packages ----------------

class PackageCreate(RequestModel):
    name: str = field(
        min_length=1,
        max_length=200,
        required="El nombre del paquete es obligatorio",
        length="El nombre no puede exceder 200 caracteres",
    )
    description: Optional[str] = field(
        None, max_length=1000, length="La descripción no puede exceder 1000 caracteres"
    )
    price: Money = field(
        gt=0,
        le=Decimal("999999.99"),
        required="El precio es obligatorio",
        bounds="El precio debe ser mayor a 0",
    )
    class_count: int = field(
        ge=1,
        le=999,
        required="El número de clases es obligatorio",
        bounds="El número de clases debe estar entre 1 y 999",
    )
    validity_days: int = field(
        ge=1,
        le=365,
        required="Los días de validez son obligatorios",
        bounds="Los días de validez deben estar entre 1 y 365",
    )
    is_active: bool = True


class PackageUpdate(RequestModel):
    name: Optional[str] = field(None, min_length=1, max_length=200, length="El nombre no puede exceder 200 caracteres")
    description: Optional[str] = field(
        None, max_length=1000, length="La descripción no puede exceder 1000 caracteres"
    )
    price: Optional[Money] = field(None, gt=0, le=Decimal("999999.99"), bounds="El precio debe ser mayor a 0")
    class_count: Optional[int] = field(
        None, ge=1, le=999, bounds="El número de clases debe estar entre 1 y 999"
    )
    validity_days: Optional[int] = field(
        None, ge=1, le=365, bounds="Los días de validez deben estar entre 1 y 365"
    )
    is_active: Optional[bool] = None


class PackageRead(BaseModel):
    id: int
    name: str
    description: Optional[str] = None
    price: Money
    class_count: int
    validity_days: int
    is_active: bool
    created_at: datetime
    updated_at: datetime


# ---------------- Purchases ----------------

class PurchaseCreate(RequestModel):
    student_id: int = field(gt=0, required="El estudiante es obligatorio", bounds="El estudiante no es válido")
    package_id: int = field(gt=0, required="El paquete es obligatorio", bounds="El paquete no es válido")
    amount: Money = field(
        gt=0,
        le=Decimal("999999.99"),
        required="El monto es obligatorio",
        bounds="El monto debe ser mayor a 0",
    )


class PurchaseUpdate(RequestModel):
    status: Optional[str] = field(
        None,
        pattern=r"^(active|expired|cancelled)$",
        mismatch="El estado debe ser: active, expired o cancelled",
    )
    expiration_date: Optional[datetime] = None
    remaining_classes: Optional[int] = field(
        None, ge=0, le=999, bounds="Las clases restantes deben ser entre 0 y 999"
    )


class PurchaseRenew(RequestModel):
    package_id: Optional[int] = field(None, gt=0, bounds="El paquete no es válido")
    amount: Optional[Money] = field(
        None, gt=0, le=Decimal("999999.99"), bounds="El monto debe ser mayor a 0"
    )


class PurchaseRead(BaseModel):
    id: int
    student_id: int
    student_name: str
    package_id: int
    package_name: str
    amount: Money
    status: str
    purchase_date: datetime
    expiration_date: datetime
    remaining_classes: int
    created_at: datetime
    updated_at: datetime


# ---------------- Payments ----------------

class PaymentCreate(RequestModel):
    purchase_id: int = field(gt=0, required="La compra es obligatoria", bounds="La compra no es válida")
    amount: Money = field(
        gt=0,
        le=Decimal("999999.99"),
        required="El monto es obligatorio",
        bounds="El monto debe ser mayor a 0",
    )
    payment_method: str = field(
        pattern=r"^(cash|card|transfer|other)$",
        required="El método de pago es obligatorio",
        mismatch="El método de pago debe ser: cash, card, transfer u other",
    )
    payment_date: datetime = field(required="La fecha de pago es obligatoria", invalid="La fecha no es válida")
    transaction_id: Optional[str] = field(
        None, max_length=100, length="El ID de transacción no puede exceder 100 caracteres"
    )
    notes: Optional[str] = field(None, max_length=500, length="Las notas no pueden exceder 500 caracteres")


class PaymentUpdate(RequestModel):
    status: Optional[str] = field(
        None,
        pattern=r"^(pending|completed|failed|refunded)$",
        mismatch="El estado debe ser: pending, completed, failed o refunded",
    )
    transaction_id: Optional[str] = field(
        None, max_length=100, length="El ID de transacción no puede exceder 100 caracteres"
    )
    notes: Optional[str] = field(None, max_length=500, length="Las notas no pueden exceder 500 caracteres")


class RefundRequest(RequestModel):
    reason: Optional[str] = field(None, max_length=500, length="El motivo no puede exceder 500 caracteres")


class PaymentRead(BaseModel):
    id: int
    purchase_id: int
    student_name: str
    amount: Money
    payment_method: str
    status: str
    payment_date: datetime
    transaction_id: Optional[str] = None
    notes: Optional[str] = None
    created_at: datetime
    updated_at: datetime


# ---------------- Attendance ----------------

class AttendanceCreate(RequestModel):
    class_id: int = field(gt=0, required="La clase es obligatoria", bounds="La clase no es válida")
    student_id: int = field(gt=0, required="El estudiante es obligatorio", bounds="El estudiante no es válido")
    attendance_date: datetime = field(
        required="La fecha de asistencia es obligatoria", invalid="La fecha no es válida"
    )
    notes: Optional[str] = field(None, max_length=500, length="Las notas no pueden exceder 500 caracteres")


class AttendanceUpdate(RequestModel):
    attendance_date: Optional[datetime] = None
    notes: Optional[str] = field(None, max_length=500, length="Las notas no pueden exceder 500 caracteres")


class AttendanceRead(BaseModel):
    id: int
    class_id: int
    class_name: str
    student_id: int
    student_name: str
    attendance_date: datetime
    notes: Optional[str] = None
    created_at: datetime
    updated_at: datetime


# ---------------- Analytics ----------------

class DashboardStats(BaseModel):
    total_students: int
    active_students: int
    total_instructors: int
    active_instructors: int
    total_classes: int
    total_enrollments: int
    active_purchases: int
    total_revenue: Money
    monthly_revenue: Money
    average_class_capacity: float
    classes_this_week: int
    enrollments_this_week: int
    last_updated: datetime
