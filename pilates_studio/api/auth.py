from __future__ import annotations

from fastapi import APIRouter, Depends, Query, status
from fastapi.security import OAuth2PasswordRequestForm
from pydantic import BaseModel

from ..auth_models import User
from ..auth_service import AuthService
from ..schemas import (
    AuthResponse,
    ChangePasswordRequest,
    ForgotPasswordRequest,
    LoginRequest,
    RefreshTokenRequest,
    RegisterRequest,
    ResetPasswordRequest,
    UserInfo,
)
from .deps import any_member, get_optional_user, service

router = APIRouter(prefix="/auth", tags=["auth"])


class TokenOut(BaseModel):
    access_token: str
    token_type: str = "bearer"


@router.post("/register", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
def register(
    payload: RegisterRequest,
    actor: User | None = Depends(get_optional_user),
    auth: AuthService = Depends(service("AuthService")),
) -> AuthResponse:
    return auth.register(payload, actor=actor)


@router.post("/login", response_model=AuthResponse)
def login(payload: LoginRequest, auth: AuthService = Depends(service("AuthService"))) -> AuthResponse:
    return auth.login(str(payload.email), payload.password)


@router.post("/token", response_model=TokenOut)
def token(
    form: OAuth2PasswordRequestForm = Depends(),
    auth: AuthService = Depends(service("AuthService")),
) -> TokenOut:
    """OAuth2 password flow for the interactive docs."""
    result = auth.login(form.username, form.password)
    return TokenOut(access_token=result.access_token)


@router.post("/refresh", response_model=AuthResponse)
def refresh(payload: RefreshTokenRequest, auth: AuthService = Depends(service("AuthService"))) -> AuthResponse:
    return auth.refresh(payload.refresh_token)


@router.post("/logout", status_code=status.HTTP_204_NO_CONTENT)
def logout(user: User = Depends(any_member), auth: AuthService = Depends(service("AuthService"))) -> None:
    auth.logout(user)


@router.post("/change-password", status_code=status.HTTP_204_NO_CONTENT)
def change_password(
    payload: ChangePasswordRequest,
    user: User = Depends(any_member),
    auth: AuthService = Depends(service("AuthService")),
) -> None:
    auth.change_password(user, payload)


@router.get("/me", response_model=UserInfo)
def me(user: User = Depends(any_member), auth: AuthService = Depends(service("AuthService"))) -> UserInfo:
    return auth.me(user)


@router.post("/verify-email")
def verify_email(
    token: str = Query(..., min_length=1),
    auth: AuthService = Depends(service("AuthService")),
) -> dict[str, str]:
    auth.verify_email(token)
    return {"message": "Email verificado exitosamente"}


@router.post("/resend-verification", status_code=status.HTTP_202_ACCEPTED)
def resend_verification(user: User = Depends(any_member), auth: AuthService = Depends(service("AuthService"))) -> dict[str, str]:
    auth.resend_verification(user)
    return {"message": "Si la cuenta no está verificada, se envió un nuevo enlace de verificación"}


@router.post("/forgot-password", status_code=status.HTTP_202_ACCEPTED)
def forgot_password(
    payload: ForgotPasswordRequest,
    auth: AuthService = Depends(service("AuthService")),
) -> dict[str, str]:
    # Same answer for unknown emails
    auth.forgot_password(str(payload.email))
    return {"message": "Si el email está registrado, se enviarán instrucciones para restablecer la contraseña"}


@router.post("/reset-password")
def reset_password(
    payload: ResetPasswordRequest,
    auth: AuthService = Depends(service("AuthService")),
) -> dict[str, str]:
    auth.reset_password(payload)
    return {"message": "Contraseña restablecida exitosamente"}
