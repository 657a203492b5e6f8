"""Dashboard analytics routes: one overview per role plus super admin reports."""

from typing import Annotated, Literal

from fastapi import APIRouter, Depends, Query, Request

from cafe_pos.api.deps import Analytics
from cafe_pos.core.rate_limit import limiter
from cafe_pos.core.rbac import Permission, TokenData, require_permission
from cafe_pos.schemas.analytics import (
    CashierOverviewResponse,
    ChefOverviewResponse,
    CustomerInsightsResponse,
    MenuPerformanceResponse,
    OverviewResponse,
    ReceptionOverviewResponse,
    RevenueResponse,
)

router = APIRouter()


def _gated(permission: Permission):
    return Annotated[TokenData, Depends(require_permission(permission))]


AdminUser = _gated(Permission.ANALYTICS_OVERVIEW)
ReceptionDashboardUser = _gated(Permission.ANALYTICS_RECEPTION)
CashierDashboardUser = _gated(Permission.ANALYTICS_CASHIER)
ChefDashboardUser = _gated(Permission.ANALYTICS_CHEF)


@router.get("/overview", response_model=OverviewResponse)
@limiter.limit("30/minute")
def overview(request: Request, analytics: Analytics, current_user: AdminUser):
    """Shop-wide totals. Revenue counts completed payments only."""
    return analytics.overview()


@router.get("/reception-overview", response_model=ReceptionOverviewResponse)
@limiter.limit("30/minute")
def reception_overview(request: Request, analytics: Analytics, current_user: ReceptionDashboardUser):
    return analytics.reception_overview()


@router.get("/cashier-overview", response_model=CashierOverviewResponse)
@limiter.limit("30/minute")
def cashier_overview(request: Request, analytics: Analytics, current_user: CashierDashboardUser):
    return analytics.cashier_overview()


@router.get("/chef-overview", response_model=ChefOverviewResponse)
@limiter.limit("30/minute")
def chef_overview(request: Request, analytics: Analytics, current_user: ChefDashboardUser):
    return analytics.chef_overview()


@router.get("/revenue", response_model=RevenueResponse)
@limiter.limit("30/minute")
def revenue(
    request: Request,
    analytics: Analytics,
    current_user: AdminUser,
    period: Literal["24h", "7d", "30d", "90d"] = Query("7d"),
):
    return analytics.revenue(period)


@router.get("/menu-performance", response_model=MenuPerformanceResponse)
@limiter.limit("30/minute")
def menu_performance(request: Request, analytics: Analytics, current_user: AdminUser):
    """Top ten items by revenue and per-category totals, paid orders only."""
    return analytics.menu_performance()


@router.get("/customer-insights", response_model=CustomerInsightsResponse)
@limiter.limit("30/minute")
def customer_insights(request: Request, analytics: Analytics, current_user: AdminUser):
    return analytics.customer_insights()
