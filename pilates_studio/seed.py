from __future__ import annotations

import logging
from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.orm import Session

from .auth_models import Role, User
from .auth_security import hash_password
from .config import Settings, get_settings
from .db import utcnow
from .models import Package, Zone

log = logging.getLogger(__name__)


def seed_base(s: Session, settings: Settings | None = None) -> None:
    """
    Minimal reference data (idempotent):
    - studio zones
    - class packages
    - the admin account, when ADMIN_EMAIL and ADMIN_PASSWORD are set
    """
    settings = settings or get_settings()
    now = utcnow()

    zones = [
        ("Sala Reformer", "Sala principal con máquinas reformer", 10, "Reformer, Cadillac"),
        ("Sala Mat", "Sala para pilates en colchoneta", 15, "Colchonetas, aros, pelotas"),
    ]
    for name, description, capacity, equipment in zones:
        if s.execute(select(Zone).where(Zone.name == name)).scalar_one_or_none() is None:
            s.add(
                Zone(
                    name=name,
                    description=description,
                    capacity=capacity,
                    equipment_available=equipment,
                    is_active=True,
                    created_at=now,
                    updated_at=now,
                )
            )

    packages = [
        ("Clase suelta", Decimal("60.00"), 1, 30),
        ("Paquete 8 clases", Decimal("400.00"), 8, 30),
        ("Paquete 12 clases", Decimal("540.00"), 12, 45),
    ]
    for name, price, class_count, validity_days in packages:
        if s.execute(select(Package).where(Package.name == name)).scalar_one_or_none() is None:
            s.add(
                Package(
                    name=name,
                    price=price,
                    class_count=class_count,
                    validity_days=validity_days,
                    is_active=True,
                    created_at=now,
                    updated_at=now,
                )
            )

    if settings.admin_email and settings.admin_password:
        ensure_admin(s, settings.admin_email, settings.admin_password, settings)

    s.flush()


def ensure_admin(s: Session, email: str, password: str, settings: Settings | None = None) -> User:
    """Creates the admin account, or promotes an existing one."""
    email = email.strip().lower()
    user = s.execute(select(User).where(User.email == email)).scalar_one_or_none()
    now = utcnow()
    if user is None:
        user = User(
            email=email,
            password_hash=hash_password(password, settings),
            role=Role.ADMIN.value,
            is_active=True,
            email_verified_at=now,
            created_at=now,
            updated_at=now,
        )
        s.add(user)
        log.info("Created admin account %s", email)
    elif user.role != Role.ADMIN.value:
        user.role = Role.ADMIN.value
        user.updated_at = now
        log.info("Promoted %s to admin", email)
    return user
