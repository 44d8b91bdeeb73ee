from __future__ import annotations

import logging
from datetime import datetime, timedelta

from sqlalchemy import and_, select
from sqlalchemy.orm import Session, selectinload

from .db import utcnow
from .errors import InvalidOperationError, NotFoundError
from .mapping import apply_update, package_from_create, payment_from_create, purchase_from_create
from .models import Package, Payment, PaymentStatus, Purchase, PurchaseStatus, Student
from .schemas import (
    PackageCreate,
    PackageUpdate,
    PaymentCreate,
    PaymentUpdate,
    PurchaseCreate,
    PurchaseRenew,
    PurchaseUpdate,
)

log = logging.getLogger(__name__)

# Allowed payment status changes
PAYMENT_TRANSITIONS: dict[str, set[str]] = {
    PaymentStatus.PENDING.value: {PaymentStatus.COMPLETED.value, PaymentStatus.FAILED.value},
    PaymentStatus.COMPLETED.value: {PaymentStatus.REFUNDED.value},
    PaymentStatus.FAILED.value: set(),
    PaymentStatus.REFUNDED.value: set(),
}


# =========================
# Packages
# =========================
class PackageService:
    def __init__(self, session: Session):
        self.session = session

    def list(self, active_only: bool = False) -> list[Package]:
        q = select(Package).order_by(Package.price)
        if active_only:
            q = q.where(Package.is_active.is_(True))
        return list(self.session.scalars(q))

    def get(self, package_id: int) -> Package:
        package = self.session.get(Package, package_id)
        if package is None:
            raise NotFoundError("Package", package_id)
        return package

    def create(self, dto: PackageCreate) -> Package:
        package = package_from_create(dto)
        self.session.add(package)
        self.session.commit()
        log.info("Created package %s", package.name)
        return package

    def update(self, package_id: int, dto: PackageUpdate) -> Package:
        package = apply_update(self.get(package_id), dto)
        self.session.commit()
        return package

    def delete(self, package_id: int) -> None:
        """Packages with purchases are only deactivated."""
        package = self.get(package_id)
        if package.purchases:
            package.is_active = False
            package.updated_at = utcnow()
        else:
            self.session.delete(package)
        self.session.commit()


# =========================
# Purchases
# =========================
class PurchaseService:
    def __init__(self, session: Session):
        self.session = session

    def _query(self):
        return select(Purchase).options(selectinload(Purchase.student), selectinload(Purchase.package))

    def list(self, status: str | None = None) -> list[Purchase]:
        q = self._query().order_by(Purchase.purchase_date.desc())
        if status:
            q = q.where(Purchase.status == status)
        return list(self.session.scalars(q))

    def list_by_student(self, student_id: int) -> list[Purchase]:
        q = self._query().where(Purchase.student_id == student_id).order_by(Purchase.purchase_date.desc())
        return list(self.session.scalars(q))

    def get(self, purchase_id: int) -> Purchase:
        purchase = self.session.get(Purchase, purchase_id)
        if purchase is None:
            raise NotFoundError("Purchase", purchase_id)
        return purchase

    def create(self, dto: PurchaseCreate) -> Purchase:
        if self.session.get(Student, dto.student_id) is None:
            raise NotFoundError("Student", dto.student_id)
        package = self.session.get(Package, dto.package_id)
        if package is None:
            raise NotFoundError("Package", dto.package_id)
        if not package.is_active:
            raise InvalidOperationError("El paquete no está disponible")

        purchase = purchase_from_create(dto, package)
        self.session.add(purchase)
        self.session.commit()
        log.info("Student %s bought package %s", dto.student_id, package.name)
        return purchase

    def update(self, purchase_id: int, dto: PurchaseUpdate) -> Purchase:
        purchase = apply_update(self.get(purchase_id), dto)
        self.session.commit()
        return purchase

    def renew(self, purchase_id: int, dto: PurchaseRenew) -> Purchase:
        """
        Closes the current purchase (cancelled when still active) and opens a new one
        for the same student. Package defaults to the current one, amount to its price.
        """
        current = self.get(purchase_id)
        package_id = dto.package_id or current.package_id
        package = self.session.get(Package, package_id)
        if package is None:
            raise NotFoundError("Package", package_id)
        if not package.is_active:
            raise InvalidOperationError("El paquete no está disponible")

        now = utcnow()
        if current.status == PurchaseStatus.ACTIVE.value:
            current.status = PurchaseStatus.CANCELLED.value
            current.updated_at = now

        create = PurchaseCreate(
            student_id=current.student_id,
            package_id=package.id,
            amount=dto.amount if dto.amount is not None else package.price,
        )
        renewed = purchase_from_create(create, package, now)
        self.session.add(renewed)
        self.session.commit()
        log.info("Purchase %s renewed as %s", purchase_id, renewed.id)
        return renewed

    def expiring_soon(self, days: int = 7, now: datetime | None = None) -> list[Purchase]:
        """Active purchases that expire within the next `days` days."""
        now = now or utcnow()
        q = (
            self._query()
            .where(
                and_(
                    Purchase.status == PurchaseStatus.ACTIVE.value,
                    Purchase.expiration_date > now,
                    Purchase.expiration_date <= now + timedelta(days=days),
                )
            )
            .order_by(Purchase.expiration_date)
        )
        return list(self.session.scalars(q))

    def expire_overdue(self, now: datetime | None = None) -> int:
        """Marks active purchases past their expiration date as expired. Returns how many."""
        now = now or utcnow()
        overdue = list(
            self.session.scalars(
                select(Purchase).where(
                    and_(
                        Purchase.status == PurchaseStatus.ACTIVE.value,
                        Purchase.expiration_date <= now,
                    )
                )
            )
        )
        for purchase in overdue:
            purchase.status = PurchaseStatus.EXPIRED.value
            purchase.updated_at = now
        self.session.commit()
        if overdue:
            log.info("Expired %d purchases", len(overdue))
        return len(overdue)


# =========================
# Payments
# =========================
class PaymentService:
    def __init__(self, session: Session):
        self.session = session

    def _query(self):
        return select(Payment).options(selectinload(Payment.purchase).selectinload(Purchase.student))

    def get(self, payment_id: int) -> Payment:
        payment = self.session.get(Payment, payment_id)
        if payment is None:
            raise NotFoundError("Payment", payment_id)
        return payment

    def list(self, status: str | None = None) -> list[Payment]:
        q = self._query().order_by(Payment.payment_date.desc())
        if status:
            q = q.where(Payment.status == status)
        return list(self.session.scalars(q))

    def list_by_purchase(self, purchase_id: int) -> list[Payment]:
        q = self._query().where(Payment.purchase_id == purchase_id).order_by(Payment.payment_date)
        return list(self.session.scalars(q))

    def create(self, dto: PaymentCreate) -> Payment:
        if self.session.get(Purchase, dto.purchase_id) is None:
            raise NotFoundError("Purchase", dto.purchase_id)
        payment = payment_from_create(dto)
        self.session.add(payment)
        self.session.commit()
        return payment

    def _transition(self, payment: Payment, target: str) -> None:
        if target == payment.status:
            return
        if target not in PAYMENT_TRANSITIONS.get(payment.status, set()):
            raise InvalidOperationError(
                f"No se puede cambiar el estado del pago de '{payment.status}' a '{target}'"
            )
        payment.status = target

    def update(self, payment_id: int, dto: PaymentUpdate) -> Payment:
        payment = self.get(payment_id)
        if dto.status is not None:
            self._transition(payment, dto.status)
        if dto.transaction_id is not None:
            payment.transaction_id = dto.transaction_id
        if dto.notes is not None:
            payment.notes = dto.notes
        payment.updated_at = utcnow()
        self.session.commit()
        return payment

    def process(self, payment_id: int, transaction_id: str | None = None) -> Payment:
        payment = self.get(payment_id)
        self._transition(payment, PaymentStatus.COMPLETED.value)
        if transaction_id:
            payment.transaction_id = transaction_id
        payment.updated_at = utcnow()
        self.session.commit()
        log.info("Payment %s completed", payment_id)
        return payment

    def fail(self, payment_id: int) -> Payment:
        payment = self.get(payment_id)
        self._transition(payment, PaymentStatus.FAILED.value)
        payment.updated_at = utcnow()
        self.session.commit()
        return payment

    def refund(self, payment_id: int, reason: str | None = None) -> Payment:
        payment = self.get(payment_id)
        if payment.status != PaymentStatus.COMPLETED.value:
            raise InvalidOperationError("Solo se pueden reembolsar pagos completados")
        self._transition(payment, PaymentStatus.REFUNDED.value)
        if reason:
            payment.notes = f"{payment.notes}\nReembolso: {reason}" if payment.notes else f"Reembolso: {reason}"
        payment.updated_at = utcnow()
        self.session.commit()
        log.info("Payment %s refunded", payment_id)
        return payment
