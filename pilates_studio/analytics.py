from __future__ import annotations

import logging
from datetime import datetime, timedelta
from decimal import Decimal

from sqlalchemy import func, select
from sqlalchemy.orm import Session, selectinload

from .cache import MemoryCache
from .config import Settings, get_settings
from .db import utcnow
from .mapping import confirmed_count
from .models import (
    Class,
    ClassStatus,
    Enrollment,
    Instructor,
    Payment,
    PaymentStatus,
    Purchase,
    PurchaseStatus,
    Student,
)
from .schemas import DashboardStats

log = logging.getLogger(__name__)

DASHBOARD_CACHE_KEY = "analytics:dashboard"


class AnalyticsService:
    def __init__(self, session: Session, cache: MemoryCache, settings: Settings | None = None):
        self.session = session
        self.cache = cache
        self.settings = settings or get_settings()

    def _count(self, stmt) -> int:
        return int(self.session.execute(stmt).scalar_one() or 0)

    def _revenue(self, since: datetime | None = None) -> Decimal:
        stmt = select(func.coalesce(func.sum(Payment.amount), 0)).where(
            Payment.status == PaymentStatus.COMPLETED.value
        )
        if since is not None:
            stmt = stmt.where(Payment.payment_date >= since)
        return Decimal(str(self.session.execute(stmt).scalar_one()))

    def average_capacity_utilization(self) -> float:
        """Mean of confirmed/capacity across non-cancelled classes, as a percentage."""
        classes = list(
            self.session.scalars(
                select(Class)
                .options(selectinload(Class.enrollments))
                .where(Class.status != ClassStatus.CANCELLED.value)
            )
        )
        ratios = [confirmed_count(c) / c.capacity_limit for c in classes if c.capacity_limit > 0]
        if not ratios:
            return 0.0
        return round(sum(ratios) / len(ratios) * 100, 2)

    def dashboard(self, refresh: bool = False) -> DashboardStats:
        if not refresh:
            cached = self.cache.get(DASHBOARD_CACHE_KEY)
            if cached is not None:
                return cached

        now = utcnow()
        month_start = now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)
        week_start = (now - timedelta(days=now.weekday())).date()

        active_students = self._count(
            select(func.count(func.distinct(Purchase.student_id))).where(
                Purchase.status == PurchaseStatus.ACTIVE.value
            )
        )
        stats = DashboardStats(
            total_students=self._count(select(func.count(Student.id))),
            active_students=active_students,
            total_instructors=self._count(select(func.count(Instructor.id))),
            active_instructors=self._count(select(func.count(Instructor.id)).where(Instructor.is_active.is_(True))),
            total_classes=self._count(select(func.count(Class.id))),
            total_enrollments=self._count(select(func.count(Enrollment.id))),
            active_purchases=self._count(
                select(func.count(Purchase.id)).where(Purchase.status == PurchaseStatus.ACTIVE.value)
            ),
            total_revenue=self._revenue(),
            monthly_revenue=self._revenue(since=month_start),
            average_class_capacity=self.average_capacity_utilization(),
            classes_this_week=self._count(select(func.count(Class.id)).where(Class.class_date >= week_start)),
            enrollments_this_week=self._count(
                select(func.count(Enrollment.id))
                .join(Class, Class.id == Enrollment.class_id)
                .where(Class.class_date >= week_start)
            ),
            last_updated=now,
        )
        self.cache.set(DASHBOARD_CACHE_KEY, stats, ttl=timedelta(seconds=self.settings.analytics_cache_seconds))
        log.debug("Dashboard statistics recomputed")
        return stats
