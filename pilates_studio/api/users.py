from __future__ import annotations

from fastapi import APIRouter, Depends, Query, status

from ..auth_service import AuthService
from ..mapping import user_to_read
from ..schemas import UserRead, UserUpdate
from .deps import admin_only, service

router = APIRouter(prefix="/users", tags=["users"], dependencies=[Depends(admin_only)])


@router.get("", response_model=list[UserRead])
def list_users(
    role: str | None = Query(None),
    auth: AuthService = Depends(service("AuthService")),
) -> list[UserRead]:
    return [user_to_read(u) for u in auth.list_users(role)]


@router.get("/{user_id}", response_model=UserRead)
def get_user(user_id: int, auth: AuthService = Depends(service("AuthService"))) -> UserRead:
    return user_to_read(auth.get_user(user_id))


@router.put("/{user_id}", response_model=UserRead)
def update_user(
    user_id: int,
    payload: UserUpdate,
    auth: AuthService = Depends(service("AuthService")),
) -> UserRead:
    return user_to_read(auth.update_user(user_id, payload))


@router.delete("/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
def deactivate_user(user_id: int, auth: AuthService = Depends(service("AuthService"))) -> None:
    auth.deactivate_user(user_id)
