from __future__ import annotations


class NotFoundError(LookupError):
    """A requested entity does not exist (404)."""

    def __init__(self, entity: str, key: object = None):
        self.entity = entity
        self.key = key
        detail = f"{entity} {key} not found" if key is not None else f"{entity} not found"
        super().__init__(detail)


class InvalidOperationError(ValueError):
    """A business rule rejected the request (400)."""


class AuthenticationError(PermissionError):
    """Missing, invalid or expired credentials (401)."""


class AuthorizationError(PermissionError):
    """Authenticated, but the role is not allowed (403)."""
