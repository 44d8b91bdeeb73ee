"""
API router aggregation.

`api_router` is mounted under `/api`; `health_router` sits at the root.
"""
from __future__ import annotations

from fastapi import APIRouter

from . import analytics, attendance, auth, classes, enrollments, instructors, packages, payments, purchases
from . import students, users, zones
from .health import router as health_router

api_router = APIRouter()
api_router.include_router(auth.router)
api_router.include_router(users.router)
api_router.include_router(instructors.router)
api_router.include_router(students.router)
api_router.include_router(zones.router)
api_router.include_router(classes.router)
api_router.include_router(enrollments.router)
api_router.include_router(attendance.router)
api_router.include_router(packages.router)
api_router.include_router(purchases.router)
api_router.include_router(payments.router)
api_router.include_router(analytics.router)

__all__ = ["api_router", "health_router"]
