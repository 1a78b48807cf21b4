"""
Sales analytics for the dashboard.

Revenue is the sum of ``price`` over purchased books. All calendar math is
UTC. The pure functions take an explicit ``now`` so they can be tested
without a clock; ``DashboardService`` fetches the data and assembles the
response models.
"""

import calendar
import math
from collections import OrderedDict
from datetime import datetime, timedelta, timezone
from typing import Iterable, List, Optional, Sequence, Tuple

import structlog

from bookstore_api.config import get_settings
from bookstore_api.models.auth import CurrentUser, Role
from bookstore_api.models.book import Book, BookStatus
from bookstore_api.models.dashboard import (
    AllOrders, AmountMetric, AverageMetric, CountMetric, LocationStat, Metrics,
    MonthlySales, MonthlyTarget, OrdersPage, PurchaseItem, PurchaseLocations,
    Series, Statistics,
)
from bookstore_api.models.order import Order, OrderStatus
from bookstore_api.repositories.book_repo import BookRepository
from bookstore_api.repositories.user_repo import UserRepository

logger = structlog.get_logger(__name__)

DELIVERY_HOURS = 48


# ============================================================================
# Arithmetic
# ============================================================================


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves away from negative infinity."""
    return math.floor(value + 0.5)


def growth_percent(current: float, previous: float) -> float:
    """
    Percentage change from ``previous`` to ``current``.

    With no baseline, any positive current value counts as 100% growth.
    """
    if previous > 0:
        return (current - previous) / previous * 100
    return 100.0 if current > 0 else 0.0


def two_decimals(value: float) -> str:
    return f"{value:.2f}"


def revenue(books: Iterable[Book]) -> float:
    return sum(book.price or 0 for book in books)


def average(total: float, count: int) -> float:
    return total / count if count else 0.0


# ============================================================================
# Calendar windows (UTC, end exclusive)
# ============================================================================


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def month_start(year: int, month: int) -> datetime:
    """First instant of a month; ``month`` may run past 12 or below 1."""
    year += (month - 1) // 12
    month = (month - 1) % 12 + 1
    return datetime(year, month, 1, tzinfo=timezone.utc)


def current_month_window(now: datetime) -> Tuple[datetime, datetime]:
    return month_start(now.year, now.month), month_start(now.year, now.month + 1)


def previous_month_window(now: datetime) -> Tuple[datetime, datetime]:
    return month_start(now.year, now.month - 1), month_start(now.year, now.month)


def day_window(now: datetime) -> Tuple[datetime, datetime]:
    start = datetime(now.year, now.month, now.day, tzinfo=timezone.utc)
    return start, start + timedelta(days=1)


def year_window(now: datetime) -> Tuple[datetime, datetime]:
    return month_start(now.year, 1), month_start(now.year + 1, 1)


def one_month_ago(now: datetime) -> datetime:
    """Same day and time last month, clamped to that month's last day."""
    year, month = (now.year - 1, 12) if now.month == 1 else (now.year, now.month - 1)
    day = min(now.day, calendar.monthrange(year, month)[1])
    return now.replace(year=year, month=month, day=day)


# ============================================================================
# Targets
# ============================================================================


def monthly_target(
    previous_month_revenue: float,
    catalog_value: float,
    minimum: int = 10000,
    growth: float = 1.15,
    catalog_share: float = 0.5
) -> int:
    """
    Revenue target for the current month.

    15% above last month's revenue, or half the unsold catalog value when
    last month had no sales; never below ``minimum``.
    """
    previous_month_revenue = max(0.0, previous_month_revenue)
    catalog_value = max(0.0, catalog_value)

    if previous_month_revenue == 0:
        return max(minimum, round_half_up(catalog_value * catalog_share))
    return max(minimum, round_half_up(previous_month_revenue * growth))


def progress_percent(current: float, target: int) -> int:
    if target <= 0:
        return 0
    return min(round_half_up(current / target * 100), 100)


def revenue_growth_percent(current: float, previous: float) -> int:
    if previous == 0:
        return 100 if current > 0 else 0
    return round_half_up((current - previous) / previous * 100)


# ============================================================================
# Aggregations
# ============================================================================


def monthly_sales(books: Iterable[Book], now: datetime) -> List[float]:
    """Revenue per month of ``now``'s year; months after ``now`` stay 0."""
    sales = [0.0] * 12
    for book in books:
        purchased = book.purchased_at
        if purchased is None or purchased.year != now.year:
            continue
        index = purchased.month - 1
        if index <= now.month - 1:
            sales[index] += book.price or 0
    return sales


def statistics(books: Sequence[Book], now: datetime, multiplier: float = 1.2) -> Statistics:
    """Per-month sales counts and revenue with targets ``multiplier`` above actuals."""
    current_month = now.month - 1
    counts = [0] * 12
    amounts = [0.0] * 12

    for book in books:
        purchased = book.purchased_at
        if purchased is None or purchased.year != now.year:
            continue
        index = purchased.month - 1
        if index <= current_month:
            counts[index] += 1
            amounts[index] += book.price or 0

    if not any(counts):
        return Statistics(
            sales=Series(actual=counts, target=list(counts)),
            revenue=Series(actual=amounts, target=list(amounts)),
            current_month=current_month,
            has_sales=False,
        )

    return Statistics(
        sales=Series(actual=counts, target=[math.ceil(c * multiplier) for c in counts]),
        revenue=Series(actual=amounts, target=[math.ceil(a * multiplier) for a in amounts]),
        current_month=current_month,
        has_sales=True,
    )


def purchase_locations(books: Iterable[Book]) -> List[LocationStat]:
    """Group purchases by country, keeping the first coordinates seen."""
    grouped: "OrderedDict[str, LocationStat]" = OrderedDict()
    for book in books:
        location = book.purchase_location
        if location is None or not location.country:
            continue
        stat = grouped.get(location.country)
        if stat is None:
            grouped[location.country] = LocationStat(
                country=location.country,
                lat_lng=location.lat_lng,
                purchase_count=1,
                total_revenue=book.price or 0,
            )
        else:
            stat.purchase_count += 1
            stat.total_revenue += book.price or 0
    return list(grouped.values())


def purchase_status(book: Book, now: datetime) -> str:
    """
    Display status of a purchased book.

    A final status (Delivered or Canceled) wins; otherwise the purchase is
    Delivered once it is older than 48 hours and Pending before that.
    """
    if book.status in (BookStatus.DELIVERED, BookStatus.CANCELED):
        return book.status.value
    if book.purchased_at is None:
        return BookStatus.PENDING.value
    hours = (now - book.purchased_at).total_seconds() / 3600
    if hours > DELIVERY_HOURS:
        return BookStatus.DELIVERED.value
    return BookStatus.PENDING.value


def purchase_item(book: Book, now: datetime, default_cover: str) -> PurchaseItem:
    return PurchaseItem(
        id=book.id,
        name=book.title,
        category=book.category,
        price=book.price,
        image=book.cover_image or default_cover,
        purchased_at=book.purchased_at,
        status=purchase_status(book, now),
    )


def derived_order_status(order: Order, now: datetime) -> OrderStatus:
    """
    Status of an order as it progresses with age.

    Cancelled and delivered orders keep their status; otherwise an order is
    shipped after one whole day and delivered after three.
    """
    if order.status == OrderStatus.CANCELLED:
        return OrderStatus.CANCELLED
    if order.status == OrderStatus.DELIVERED or order.delivered_at is not None:
        return OrderStatus.DELIVERED

    days = math.floor((now - order.created_at).total_seconds() / 86400)
    if days >= 3:
        return OrderStatus.DELIVERED
    if days >= 1:
        return OrderStatus.SHIPPED
    return OrderStatus.PENDING


# ============================================================================
# Service
# ============================================================================


class DashboardService:
    """Builds dashboard payloads scoped to the calling user."""

    def __init__(self, book_repo: BookRepository, user_repo: UserRepository):
        self.book_repo = book_repo
        self.user_repo = user_repo
        self.settings = get_settings()

    async def metrics(self, user: CurrentUser, now: Optional[datetime] = None) -> Metrics:
        """
        Headline cards: books, users, revenue and average order value.

        Args:
            user: Caller; admins see everything, others their own books
            now: Reference time (defaults to the current UTC time)

        Returns:
            Metrics with totals and growth against the previous period
        """
        now = now or utc_now()
        scope = user.vendor_scope()
        month_ago = one_month_ago(now)

        total_books = await self.book_repo.count_books(scope)
        books_before = await self.book_repo.count_books(scope, created_before=month_ago)

        if user.is_admin():
            total_users = await self.user_repo.count_users(Role.USER.value)
            users_before = await self.user_repo.count_users(Role.USER.value, created_before=month_ago)
            users_growth = growth_percent(total_users, users_before)
        else:
            total_users = len(await self.book_repo.distinct_purchasers(scope))
            users_growth = 0.0

        purchased = await self.book_repo.purchased_books(scope)
        total_revenue = revenue(purchased)

        prev_start, prev_end = previous_month_window(now)
        previous = await self.book_repo.purchased_books(scope, prev_start, prev_end)
        previous_revenue = revenue(previous)

        avg_order = average(total_revenue, len(purchased))
        previous_avg = average(previous_revenue, len(previous))

        logger.debug(
            "dashboard_metrics_computed",
            user_id=user.id,
            books=total_books,
            purchases=len(purchased)
        )

        return Metrics(
            books=CountMetric(
                total=total_books,
                growth=two_decimals(growth_percent(total_books, books_before))
            ),
            users=CountMetric(total=total_users, growth=two_decimals(users_growth)),
            revenue=AmountMetric(
                total=two_decimals(total_revenue),
                growth=two_decimals(growth_percent(total_revenue, previous_revenue))
            ),
            avg_order=AverageMetric(
                value=two_decimals(avg_order),
                growth=two_decimals(growth_percent(avg_order, previous_avg))
            ),
        )

    async def monthly_sales(self, user: CurrentUser, now: Optional[datetime] = None) -> MonthlySales:
        now = now or utc_now()
        start, end = year_window(now)
        books = await self.book_repo.purchased_books(user.vendor_scope(), start, end)

        sales = monthly_sales(books, now)
        current_month = now.month - 1
        return MonthlySales(
            monthly_sales=sales,
            total_sales=sum(sales[:current_month + 1]),
            current_month=current_month,
        )

    async def monthly_target(self, user: CurrentUser, now: Optional[datetime] = None) -> MonthlyTarget:
        """
        Target, progress and growth for the current month.

        Args:
            user: Caller
            now: Reference time

        Returns:
            MonthlyTarget
        """
        now = now or utc_now()
        scope = user.vendor_scope()

        prev_start, prev_end = previous_month_window(now)
        previous_revenue = revenue(await self.book_repo.purchased_books(scope, prev_start, prev_end))

        catalog_value = revenue(await self.book_repo.unpurchased_books(scope))

        target = monthly_target(
            previous_revenue,
            catalog_value,
            minimum=self.settings.analytics_min_monthly_target,
            growth=self.settings.analytics_target_growth,
            catalog_share=self.settings.analytics_catalog_target_share,
        )

        cur_start, cur_end = current_month_window(now)
        current_revenue = revenue(await self.book_repo.purchased_books(scope, cur_start, cur_end))

        day_start, day_end = day_window(now)
        today_revenue = revenue(await self.book_repo.purchased_books(scope, day_start, day_end))

        return MonthlyTarget(
            target=target,
            current_revenue=current_revenue,
            previous_revenue=previous_revenue,
            today_revenue=today_revenue,
            progress_percentage=progress_percent(current_revenue, target),
            revenue_growth=revenue_growth_percent(current_revenue, previous_revenue),
        )

    async def statistics(self, user: CurrentUser, now: Optional[datetime] = None) -> Statistics:
        now = now or utc_now()
        start, end = year_window(now)
        books = await self.book_repo.purchased_books(user.vendor_scope(), start, end)
        return statistics(books, now, self.settings.analytics_statistics_target_multiplier)

    async def purchase_locations(self, user: CurrentUser) -> PurchaseLocations:
        books = await self.book_repo.purchased_with_location(user.vendor_scope())
        locations = purchase_locations(books)
        return PurchaseLocations(locations=locations, has_purchases=bool(locations))

    async def recent_orders(self, user: CurrentUser, now: Optional[datetime] = None) -> List[PurchaseItem]:
        now = now or utc_now()
        books, _ = await self.book_repo.purchases_page(
            user.vendor_scope(),
            skip=0,
            limit=self.settings.analytics_recent_orders_limit,
        )
        return [purchase_item(book, now, self.settings.default_cover_image) for book in books]

    async def all_orders(
        self,
        user: CurrentUser,
        page: int,
        limit: int,
        now: Optional[datetime] = None
    ) -> AllOrders:
        """
        One page of purchases, newest first.

        Args:
            user: Caller
            page: 1-based page number
            limit: Page size
            now: Reference time

        Returns:
            AllOrders with the page and its pagination block
        """
        now = now or utc_now()
        books, total = await self.book_repo.purchases_page(
            user.vendor_scope(),
            skip=(page - 1) * limit,
            limit=limit,
        )
        return AllOrders(
            orders=[purchase_item(book, now, self.settings.default_cover_image) for book in books],
            pagination=OrdersPage(
                current_page=page,
                total_pages=math.ceil(total / limit) if limit else 0,
                total_orders=total,
                limit=limit,
            ),
        )
