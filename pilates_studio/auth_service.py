from __future__ import annotations

import logging
from datetime import timedelta

from sqlalchemy import select
from sqlalchemy.orm import Session

from .auth_models import Role, User
from .auth_security import (
    create_access_token,
    hash_password,
    new_one_time_token,
    new_refresh_token,
    token_digest,
    verify_password,
)
from .config import Settings, get_settings
from .db import utcnow
from .errors import AuthenticationError, AuthorizationError, InvalidOperationError, NotFoundError
from .mapping import apply_update, register_to_instructor, register_to_student, register_to_user, user_to_info
from .schemas import (
    AuthResponse,
    ChangePasswordRequest,
    RegisterRequest,
    ResetPasswordRequest,
    UserInfo,
    UserUpdate,
)

log = logging.getLogger(__name__)

INVALID_CREDENTIALS = "Credenciales inválidas"


class AuthService:
    """Accounts, passwords and token issuance."""

    def __init__(self, session: Session, settings: Settings | None = None):
        self.session = session
        self.settings = settings or get_settings()

    def get_user_by_email(self, email: str) -> User | None:
        email = email.strip().lower()
        return self.session.execute(select(User).where(User.email == email)).scalar_one_or_none()

    def get_user(self, user_id: int) -> User:
        user = self.session.get(User, user_id)
        if user is None:
            raise NotFoundError("User", user_id)
        return user

    def register(self, dto: RegisterRequest, actor: User | None = None) -> AuthResponse:
        """
        Creates the account and the profile matching its role.
        Anonymous callers can only register students; staff accounts need an admin.
        """
        role = Role(dto.role)
        if role is not Role.STUDENT and (actor is None or actor.role_enum is not Role.ADMIN):
            raise AuthorizationError("Solo un administrador puede registrar personal")

        if self.get_user_by_email(str(dto.email)) is not None:
            raise InvalidOperationError("El email ya está registrado")

        now = utcnow()
        user = register_to_user(dto, hash_password(dto.password, self.settings), now)
        self.session.add(user)
        if role is Role.INSTRUCTOR:
            self.session.add(register_to_instructor(dto, user, now))
        elif role is Role.STUDENT:
            self.session.add(register_to_student(dto, user, now))
        self.issue_email_verification(user)
        self.session.flush()

        log.info("Registered user %s with role %s", user.email, user.role)
        return self._issue_tokens(user)

    # ---- one-time tokens ----
    # The raw token is returned to the caller for delivery; only its digest is stored.

    def issue_email_verification(self, user: User) -> str:
        token, digest = new_one_time_token()
        user.email_verification_token = digest
        self.session.flush()
        return token

    def resend_verification(self, user: User) -> str | None:
        """New token for unverified accounts; None when already verified."""
        if user.email_verified_at is not None:
            return None
        token = self.issue_email_verification(user)
        self.session.commit()
        return token

    def verify_email(self, token: str) -> User:
        user = self.session.execute(
            select(User).where(User.email_verification_token == token_digest(token))
        ).scalar_one_or_none()
        if user is None:
            raise InvalidOperationError("Token de verificación inválido")
        now = utcnow()
        user.email_verified_at = now
        user.email_verification_token = None
        user.updated_at = now
        self.session.commit()
        log.info("Email verified for %s", user.email)
        return user

    def forgot_password(self, email: str) -> str | None:
        """None for unknown or inactive accounts; callers answer the same either way."""
        user = self.get_user_by_email(email)
        if user is None or not user.is_active:
            log.info("Password reset requested for unknown account %s", email)
            return None
        token, digest = new_one_time_token()
        user.password_reset_token = digest
        user.password_reset_expires_at = utcnow() + timedelta(minutes=self.settings.password_reset_minutes)
        self.session.commit()
        log.info("Password reset token issued for %s", user.email)
        return token

    def reset_password(self, dto: ResetPasswordRequest) -> None:
        user = self.session.execute(
            select(User).where(User.password_reset_token == token_digest(dto.token))
        ).scalar_one_or_none()
        now = utcnow()
        if (
            user is None
            or not user.is_active
            or user.password_reset_expires_at is None
            or user.password_reset_expires_at <= now
        ):
            raise InvalidOperationError("Token inválido o expirado")

        user.password_hash = hash_password(dto.password, self.settings)
        user.password_reset_token = None
        user.password_reset_expires_at = None
        user.refresh_token = None
        user.refresh_token_expires_at = None
        user.failed_login_count = 0
        user.locked_until = None
        user.updated_at = now
        self.session.commit()
        log.info("Password reset for %s", user.email)

    def login(self, email: str, password: str) -> AuthResponse:
        user = self.get_user_by_email(email)
        if user is None or not user.is_active:
            log.warning("Login rejected for %s", email)
            raise AuthenticationError(INVALID_CREDENTIALS)

        now = utcnow()
        if user.locked_until is not None and user.locked_until > now:
            log.warning("Login attempt on locked account %s", user.email)
            raise AuthenticationError("Cuenta bloqueada temporalmente. Inténtelo más tarde")

        if not verify_password(password, user.password_hash, self.settings):
            user.failed_login_count += 1
            if user.failed_login_count >= self.settings.max_failed_logins:
                user.locked_until = now + timedelta(minutes=self.settings.lockout_minutes)
                user.failed_login_count = 0
                log.warning("Account %s locked until %s", user.email, user.locked_until)
            self.session.commit()
            raise AuthenticationError(INVALID_CREDENTIALS)

        user.failed_login_count = 0
        user.locked_until = None
        return self._issue_tokens(user)

    def refresh(self, refresh_token: str) -> AuthResponse:
        """Exchanges a valid refresh token for a new pair; the old one stops working."""
        user = self.session.execute(
            select(User).where(User.refresh_token == refresh_token)
        ).scalar_one_or_none()
        if (
            user is None
            or not user.is_active
            or user.refresh_token_expires_at is None
            or user.refresh_token_expires_at <= utcnow()
        ):
            raise AuthenticationError("Refresh token inválido o expirado")
        return self._issue_tokens(user)

    def logout(self, user: User) -> None:
        user.refresh_token = None
        user.refresh_token_expires_at = None
        self.session.commit()

    def change_password(self, user: User, dto: ChangePasswordRequest) -> None:
        if not verify_password(dto.current_password, user.password_hash, self.settings):
            raise InvalidOperationError("La contraseña actual es incorrecta")
        user.password_hash = hash_password(dto.new_password, self.settings)
        # Existing sessions must log in again
        user.refresh_token = None
        user.refresh_token_expires_at = None
        user.updated_at = utcnow()
        self.session.commit()
        log.info("Password changed for %s", user.email)

    def me(self, user: User) -> UserInfo:
        return user_to_info(user)

    # ---- admin ----

    def list_users(self, role: str | None = None) -> list[User]:
        q = select(User).order_by(User.email)
        if role:
            q = q.where(User.role == role)
        return list(self.session.scalars(q))

    def update_user(self, user_id: int, dto: UserUpdate) -> User:
        user = self.get_user(user_id)
        if dto.email is not None:
            other = self.get_user_by_email(str(dto.email))
            if other is not None and other.id != user.id:
                raise InvalidOperationError("El email ya está registrado")
        apply_update(user, dto)
        self.session.commit()
        return user

    def deactivate_user(self, user_id: int) -> None:
        user = self.get_user(user_id)
        user.is_active = False
        user.refresh_token = None
        user.refresh_token_expires_at = None
        user.updated_at = utcnow()
        self.session.commit()
        log.info("Deactivated user %s", user.email)

    def _issue_tokens(self, user: User) -> AuthResponse:
        access_token, expires_at = create_access_token(
            str(user.id), {"email": user.email, "role": user.role}, self.settings
        )
        user.refresh_token = new_refresh_token()
        user.refresh_token_expires_at = utcnow() + timedelta(days=self.settings.refresh_token_expire_days)
        self.session.commit()
        return AuthResponse(
            access_token=access_token,
            refresh_token=user.refresh_token,
            expires_at=expires_at,
            user=user_to_info(user),
        )
