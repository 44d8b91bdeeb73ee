from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from ..analytics import AnalyticsService
from ..schemas import DashboardStats
from .deps import admin_only, service

router = APIRouter(prefix="/analytics", tags=["analytics"], dependencies=[Depends(admin_only)])


@router.get("/dashboard", response_model=DashboardStats)
def dashboard(
    refresh: bool = Query(False, description="Bypass the cached figures"),
    analytics: AnalyticsService = Depends(service("AnalyticsService")),
) -> DashboardStats:
    return analytics.dashboard(refresh=refresh)
