from __future__ import annotations

from fastapi import APIRouter, Depends, Query, status

from ..billing import PaymentService
from ..mapping import payment_to_read
from ..schemas import PaymentCreate, PaymentRead, PaymentUpdate, RefundRequest
from .deps import admin_only, instructor_or_admin, service

router = APIRouter(prefix="/payments", tags=["payments"])


@router.post(
    "",
    response_model=PaymentRead,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(instructor_or_admin)],
)
def create_payment(payload: PaymentCreate, payments: PaymentService = Depends(service("PaymentService"))) -> PaymentRead:
    return payment_to_read(payments.create(payload))


@router.get("", response_model=list[PaymentRead], dependencies=[Depends(admin_only)])
def list_payments(
    status_: str | None = Query(None, alias="status"),
    payments: PaymentService = Depends(service("PaymentService")),
) -> list[PaymentRead]:
    return [payment_to_read(p) for p in payments.list(status_)]


@router.get("/purchase/{purchase_id}", response_model=list[PaymentRead], dependencies=[Depends(instructor_or_admin)])
def purchase_payments(
    purchase_id: int,
    payments: PaymentService = Depends(service("PaymentService")),
) -> list[PaymentRead]:
    return [payment_to_read(p) for p in payments.list_by_purchase(purchase_id)]


@router.get("/{payment_id}", response_model=PaymentRead, dependencies=[Depends(instructor_or_admin)])
def get_payment(payment_id: int, payments: PaymentService = Depends(service("PaymentService"))) -> PaymentRead:
    return payment_to_read(payments.get(payment_id))


@router.put("/{payment_id}", response_model=PaymentRead, dependencies=[Depends(admin_only)])
def update_payment(
    payment_id: int,
    payload: PaymentUpdate,
    payments: PaymentService = Depends(service("PaymentService")),
) -> PaymentRead:
    return payment_to_read(payments.update(payment_id, payload))


@router.post("/{payment_id}/process", response_model=PaymentRead, dependencies=[Depends(admin_only)])
def process_payment(
    payment_id: int,
    transaction_id: str | None = Query(None, max_length=100),
    payments: PaymentService = Depends(service("PaymentService")),
) -> PaymentRead:
    return payment_to_read(payments.process(payment_id, transaction_id))


@router.post("/{payment_id}/fail", response_model=PaymentRead, dependencies=[Depends(admin_only)])
def fail_payment(payment_id: int, payments: PaymentService = Depends(service("PaymentService"))) -> PaymentRead:
    return payment_to_read(payments.fail(payment_id))


@router.post("/{payment_id}/refund", response_model=PaymentRead, dependencies=[Depends(admin_only)])
def refund_payment(
    payment_id: int,
    payload: RefundRequest,
    payments: PaymentService = Depends(service("PaymentService")),
) -> PaymentRead:
    return payment_to_read(payments.refund(payment_id, payload.reason))
