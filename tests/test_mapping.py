from datetime import date, datetime, time
from decimal import Decimal

from pilates_studio.mapping import (
    age_on,
    apply_update,
    available_spots,
    class_to_read,
    enrollment_to_read,
    full_name,
    purchase_from_create,
    zone_from_create,
)
from pilates_studio.models import Class, Enrollment, Package, Zone
from pilates_studio.schemas import PurchaseCreate, ZoneCreate, ZoneUpdate


def test_full_name_and_age():
    assert full_name("Ana", "Diaz") == "Ana Diaz"
    assert age_on(date(1990, 6, 15), today=date(2025, 6, 14)) == 34
    assert age_on(date(1990, 6, 15), today=date(2025, 6, 15)) == 35
    assert age_on(None) is None


def test_apply_update_only_touches_sent_fields():
    created = datetime(2025, 1, 1, 8, 0)
    zone = Zone(name="Sala Mat", description="Colchonetas", capacity=15, created_at=created, updated_at=created)

    dto = ZoneUpdate.model_validate({"capacity": 12, "description": None})
    stamp = datetime(2025, 2, 1, 9, 30)
    apply_update(zone, dto, now=stamp)

    assert zone.capacity == 12
    # explicit null is ignored
    assert zone.description == "Colchonetas"
    assert zone.name == "Sala Mat"
    assert zone.created_at == created
    assert zone.updated_at == stamp


def test_available_spots_counts_confirmed_only():
    stamp = datetime(2025, 1, 1, 8, 0)
    cls = Class(
        id=1,
        instructor_id=1,
        zone_id=1,
        created_at=stamp,
        updated_at=stamp,
        class_date=date(2030, 1, 10),
        start_time=time(9, 0),
        end_time=time(10, 0),
        capacity_limit=10,
        status="scheduled",
        difficulty_level="beginner",
    )
    cls.enrollments = [
        Enrollment(status="confirmed"),
        Enrollment(status="confirmed"),
        Enrollment(status="confirmed"),
        Enrollment(status="cancelled"),
        Enrollment(status="completed"),
    ]

    assert available_spots(cls) == 7
    read = class_to_read(cls)
    assert read.reserved_spots == 3
    assert read.available_spots == 7
    # missing relationships map to empty names
    assert read.instructor_name == ""
    assert read.zone_name == ""


def test_enrollment_without_class_has_no_date():
    now = datetime(2025, 3, 1, 12, 0)
    enrollment = Enrollment(id=1, class_id=5, student_id=7, status="confirmed", created_at=now, updated_at=now)
    read = enrollment_to_read(enrollment)
    assert read.class_date_time is None
    assert read.class_name == ""
    assert read.student_name == ""


def test_purchase_takes_classes_and_expiry_from_package():
    package = Package(name="Paquete 8 clases", price=Decimal("400.00"), class_count=8, validity_days=30)
    dto = PurchaseCreate(student_id=1, package_id=2, amount=Decimal("400.00"))
    now = datetime(2025, 5, 1, 10, 0)

    purchase = purchase_from_create(dto, package, now)

    assert purchase.remaining_classes == 8
    assert purchase.expiration_date == datetime(2025, 5, 31, 10, 0)
    assert purchase.status == "active"
    assert purchase.created_at == purchase.updated_at == now


def test_create_mapping_stamps_both_timestamps_together():
    zone = zone_from_create(ZoneCreate(name="Sala Mat", capacity=15))
    assert zone.created_at is not None
    assert zone.created_at == zone.updated_at
    assert zone.is_active is True
