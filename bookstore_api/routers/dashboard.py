"""
Dashboard analytics router.

Every endpoint requires authentication. Admins see figures for the whole
store; vendors (and anyone else) see figures for their own books only.
"""

import structlog
from fastapi import APIRouter, Depends

from bookstore_api.dependencies import (
    PaginationParams,
    get_current_user,
    get_dashboard_service,
    get_pagination_params,
)
from bookstore_api.models.auth import CurrentUser, ErrorResponse
from bookstore_api.models.dashboard import (
    AllOrdersResponse, MetricsResponse, MonthlySalesResponse,
    MonthlyTargetResponse, PurchaseLocationsResponse, RecentOrdersResponse,
    StatisticsResponse,
)
from bookstore_api.services.analytics import DashboardService

logger = structlog.get_logger(__name__)

router = APIRouter(
    prefix="/dashboard",
    tags=["Dashboard"],
    responses={401: {"model": ErrorResponse, "description": "Unauthorized"}}
)


@router.get(
    "/metrics",
    response_model=MetricsResponse,
    summary="Headline Metrics",
    description="""
    Book, user, revenue and average-order cards.

    Growth is the percentage change against the previous period (books and
    users: totals one month ago; revenue and average order: the previous
    calendar month). Amounts and growth are strings with two decimals.
    """
)
async def get_metrics(
    current_user: CurrentUser = Depends(get_current_user),
    dashboard: DashboardService = Depends(get_dashboard_service)
) -> MetricsResponse:
    return MetricsResponse(metrics=await dashboard.metrics(current_user))


@router.get(
    "/monthly-sales",
    response_model=MonthlySalesResponse,
    summary="Monthly Sales",
    description="Revenue per month of the current year (0-based ``current_month``)."
)
async def get_monthly_sales(
    current_user: CurrentUser = Depends(get_current_user),
    dashboard: DashboardService = Depends(get_dashboard_service)
) -> MonthlySalesResponse:
    return MonthlySalesResponse(data=await dashboard.monthly_sales(current_user))


@router.get(
    "/monthly-target",
    response_model=MonthlyTargetResponse,
    summary="Monthly Target",
    description="""
    Revenue target for the current month with progress and growth.

    The target is 15% above last month's revenue, or half of the unsold
    catalog value when last month had none, and never below the configured
    minimum.
    """
)
async def get_monthly_target(
    current_user: CurrentUser = Depends(get_current_user),
    dashboard: DashboardService = Depends(get_dashboard_service)
) -> MonthlyTargetResponse:
    return MonthlyTargetResponse(data=await dashboard.monthly_target(current_user))


@router.get("/statistics", response_model=StatisticsResponse, summary="Sales Statistics")
async def get_statistics(
    current_user: CurrentUser = Depends(get_current_user),
    dashboard: DashboardService = Depends(get_dashboard_service)
) -> StatisticsResponse:
    return StatisticsResponse(data=await dashboard.statistics(current_user))


@router.get(
    "/purchase-locations",
    response_model=PurchaseLocationsResponse,
    summary="Purchase Locations"
)
async def get_purchase_locations(
    current_user: CurrentUser = Depends(get_current_user),
    dashboard: DashboardService = Depends(get_dashboard_service)
) -> PurchaseLocationsResponse:
    return PurchaseLocationsResponse(data=await dashboard.purchase_locations(current_user))


@router.get("/recent-orders", response_model=RecentOrdersResponse, summary="Recent Purchases")
async def get_recent_orders(
    current_user: CurrentUser = Depends(get_current_user),
    dashboard: DashboardService = Depends(get_dashboard_service)
) -> RecentOrdersResponse:
    return RecentOrdersResponse(data=await dashboard.recent_orders(current_user))


@router.get("/all-orders", response_model=AllOrdersResponse, summary="All Purchases")
async def get_all_orders(
    pagination: PaginationParams = Depends(get_pagination_params),
    current_user: CurrentUser = Depends(get_current_user),
    dashboard: DashboardService = Depends(get_dashboard_service)
) -> AllOrdersResponse:
    data = await dashboard.all_orders(current_user, pagination.page, pagination.limit)
    logger.debug("all_orders_page", page=pagination.page, total=data.pagination.total_orders)
    return AllOrdersResponse(data=data)
