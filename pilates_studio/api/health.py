from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from ..db import get_db
from ..health import default_checks, run_health_checks
from ..registry import ServiceScope
from .deps import get_scope

router = APIRouter(tags=["health"])


@router.get("/health")
def health(
    request: Request,
    db: Session = Depends(get_db),
    scope: ServiceScope = Depends(get_scope),
) -> dict[str, Any]:
    """Always 200; the body carries the aggregate and per-probe status."""
    state = request.app.state
    return run_health_checks(default_checks(db, state.cache, scope, state.settings))
