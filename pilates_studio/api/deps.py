from __future__ import annotations

from typing import Any, Callable

from fastapi import Depends, Request
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.orm import Session

from ..auth_models import Role, User
from ..auth_security import get_subject
from ..config import Settings
from ..db import get_db
from ..errors import AuthenticationError, AuthorizationError
from ..registry import ServiceScope

# OAuth2 Bearer (Authorization: Bearer <token>)
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/token", auto_error=False)


def get_settings_dep(request: Request) -> Settings:
    return request.app.state.settings


def get_scope(request: Request, db: Session = Depends(get_db)) -> ServiceScope:
    state = request.app.state
    return state.registry.scope(db, state.cache, state.settings)


def service(name: str) -> Callable[..., Any]:
    """Dependency resolving a named service from the request scope."""

    def _resolve(scope: ServiceScope = Depends(get_scope)) -> Any:
        return scope.resolve(name)

    _resolve.__name__ = f"resolve_{name}"
    return _resolve


def _user_from_token(token: str | None, db: Session, settings: Settings) -> User | None:
    if not token:
        return None
    # tolerate stray spaces or quotes pasted with the token
    token = token.strip().strip('"').strip("'")
    user_id = get_subject(token, settings)
    if not user_id or not str(user_id).isdigit():
        raise AuthenticationError("Token inválido o expirado")
    user = db.get(User, int(user_id))
    if user is None or not user.is_active:
        raise AuthenticationError("Usuario no válido")
    return user


def get_current_user(
    token: str | None = Depends(oauth2_scheme),
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings_dep),
) -> User:
    user = _user_from_token(token, db, settings)
    if user is None:
        raise AuthenticationError("Se requiere autenticación")
    return user


def get_optional_user(
    token: str | None = Depends(oauth2_scheme),
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings_dep),
) -> User | None:
    return _user_from_token(token, db, settings)


def require_role(minimum: Role) -> Callable[..., User]:
    """Admits any user whose role ranks at least `minimum`."""

    def _check(user: User = Depends(get_current_user)) -> User:
        if not user.role_enum.allows(minimum):
            raise AuthorizationError(f"Se requiere el rol {minimum.value} o superior")
        return user

    return _check


admin_only = require_role(Role.ADMIN)
instructor_or_admin = require_role(Role.INSTRUCTOR)
any_member = require_role(Role.STUDENT)


def ensure_self_or_staff(user: User, student_id: int) -> None:
    """Students may only act on their own records; staff on anyone's."""
    if user.role_enum.allows(Role.INSTRUCTOR):
        return
    if user.student is None or user.student.id != student_id:
        raise AuthorizationError("Solo puede acceder a sus propios datos")
