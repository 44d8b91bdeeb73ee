from __future__ import annotations

from fastapi import APIRouter, Depends, Query, status

from ..auth_models import User
from ..billing import PurchaseService
from ..mapping import purchase_to_read
from ..schemas import PurchaseCreate, PurchaseRead, PurchaseRenew, PurchaseUpdate
from .deps import admin_only, any_member, ensure_self_or_staff, service

router = APIRouter(prefix="/purchases", tags=["purchases"])


@router.post("", response_model=PurchaseRead, status_code=status.HTTP_201_CREATED)
def create_purchase(
    payload: PurchaseCreate,
    user: User = Depends(any_member),
    purchases: PurchaseService = Depends(service("PurchaseService")),
) -> PurchaseRead:
    ensure_self_or_staff(user, payload.student_id)
    return purchase_to_read(purchases.create(payload))


@router.get("", response_model=list[PurchaseRead], dependencies=[Depends(admin_only)])
def list_purchases(
    status_: str | None = Query(None, alias="status"),
    purchases: PurchaseService = Depends(service("PurchaseService")),
) -> list[PurchaseRead]:
    return [purchase_to_read(p) for p in purchases.list(status_)]


@router.post("/expire", dependencies=[Depends(admin_only)])
def expire_purchases(purchases: PurchaseService = Depends(service("PurchaseService"))) -> dict[str, int]:
    return {"expired": purchases.expire_overdue()}


@router.get("/expiring-soon", response_model=list[PurchaseRead], dependencies=[Depends(admin_only)])
def expiring_purchases(
    days: int = Query(7, ge=1, le=365),
    purchases: PurchaseService = Depends(service("PurchaseService")),
) -> list[PurchaseRead]:
    return [purchase_to_read(p) for p in purchases.expiring_soon(days)]


@router.get("/student/{student_id}", response_model=list[PurchaseRead])
def student_purchases(
    student_id: int,
    user: User = Depends(any_member),
    purchases: PurchaseService = Depends(service("PurchaseService")),
) -> list[PurchaseRead]:
    ensure_self_or_staff(user, student_id)
    return [purchase_to_read(p) for p in purchases.list_by_student(student_id)]


@router.get("/{purchase_id}", response_model=PurchaseRead)
def get_purchase(
    purchase_id: int,
    user: User = Depends(any_member),
    purchases: PurchaseService = Depends(service("PurchaseService")),
) -> PurchaseRead:
    purchase = purchases.get(purchase_id)
    ensure_self_or_staff(user, purchase.student_id)
    return purchase_to_read(purchase)


@router.put("/{purchase_id}", response_model=PurchaseRead, dependencies=[Depends(admin_only)])
def update_purchase(
    purchase_id: int,
    payload: PurchaseUpdate,
    purchases: PurchaseService = Depends(service("PurchaseService")),
) -> PurchaseRead:
    return purchase_to_read(purchases.update(purchase_id, payload))


@router.post("/{purchase_id}/renew", response_model=PurchaseRead, status_code=status.HTTP_201_CREATED)
def renew_purchase(
    purchase_id: int,
    payload: PurchaseRenew,
    user: User = Depends(any_member),
    purchases: PurchaseService = Depends(service("PurchaseService")),
) -> PurchaseRead:
    ensure_self_or_staff(user, purchases.get(purchase_id).student_id)
    return purchase_to_read(purchases.renew(purchase_id, payload))
