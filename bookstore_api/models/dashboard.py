"""
Dashboard analytics response models.

Metric totals and growth percentages are rendered as strings with two
decimals so the cards show them exactly as computed. Chart payloads are
wrapped as ``{"success": true, "data": ...}``.
"""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field


# ============================================================================
# Metrics cards
# ============================================================================


class CountMetric(BaseModel):
    total: int
    growth: str


class AmountMetric(BaseModel):
    total: str
    growth: str


class AverageMetric(BaseModel):
    value: str
    growth: str


class Metrics(BaseModel):
    books: CountMetric
    users: CountMetric
    revenue: AmountMetric
    avg_order: AverageMetric


class MetricsResponse(BaseModel):
    metrics: Metrics


# ============================================================================
# Charts
# ============================================================================


class MonthlySales(BaseModel):
    monthly_sales: List[float] = Field(..., min_length=12, max_length=12)
    total_sales: float
    current_month: int = Field(..., ge=0, le=11, description="0-based month index")


class MonthlySalesResponse(BaseModel):
    success: bool = True
    data: MonthlySales


class MonthlyTarget(BaseModel):
    target: int
    current_revenue: float
    previous_revenue: float
    today_revenue: float
    progress_percentage: int = Field(..., ge=0, le=100)
    revenue_growth: int


class MonthlyTargetResponse(BaseModel):
    success: bool = True
    data: MonthlyTarget


class Series(BaseModel):
    actual: List[float]
    target: List[float]


class Statistics(BaseModel):
    sales: Series
    revenue: Series
    current_month: int
    has_sales: bool


class StatisticsResponse(BaseModel):
    success: bool = True
    data: Statistics


class LocationStat(BaseModel):
    country: str
    lat_lng: Optional[List[float]] = None
    purchase_count: int
    total_revenue: float


class PurchaseLocations(BaseModel):
    locations: List[LocationStat]
    has_purchases: bool


class PurchaseLocationsResponse(BaseModel):
    success: bool = True
    data: PurchaseLocations


# ============================================================================
# Orders tables
# ============================================================================


class PurchaseItem(BaseModel):
    """A purchased book shown as a row in the orders tables."""
    id: str
    name: str
    category: str
    price: float
    image: str
    purchased_at: datetime
    status: str


class RecentOrdersResponse(BaseModel):
    success: bool = True
    data: List[PurchaseItem]


class OrdersPage(BaseModel):
    current_page: int
    total_pages: int
    total_orders: int
    limit: int


class AllOrders(BaseModel):
    orders: List[PurchaseItem]
    pagination: OrdersPage


class AllOrdersResponse(BaseModel):
    success: bool = True
    data: AllOrders
