# store/dashboard.py — agregações do painel administrativo
from __future__ import annotations

from datetime import date, datetime, time
from decimal import Decimal
from typing import Any, Dict, List, Optional, Sequence, Tuple

from django.db.models import Count, DecimalField, F, Sum
from django.db.models.functions import ExtractWeekDay, TruncMonth
from django.utils import timezone

from .models import Order, OrderItem, Product

ZERO = Decimal("0.00")

DEFAULT_STATUSES = (
    Order.Status.CONFIRMED,
    Order.Status.PREPARING,
    Order.Status.SHIPPED,
    Order.Status.DELIVERED,
)

# ExtractWeekDay: 1 = domingo ... 7 = sábado
WEEKDAYS = ["Domingo", "Segunda", "Terça", "Quarta", "Quinta", "Sexta", "Sábado"]

MONTHLY_WINDOW = 6


def parse_period(
    start: Optional[str], end: Optional[str], today: Optional[date] = None
) -> Tuple[datetime, datetime]:
    """
    Datas 'YYYY-MM-DD' no fuso da loja, cobrindo o dia inteiro.
    Sem início: primeiro dia do mês corrente. Sem fim: hoje.
    Levanta ValueError para datas inválidas ou período invertido.
    """
    today = today or timezone.localdate()
    start_day = date.fromisoformat(start) if start else today.replace(day=1)
    end_day = date.fromisoformat(end) if end else today
    if end_day < start_day:
        raise ValueError("endDate anterior a startDate")
    tz = timezone.get_current_timezone()
    return (
        timezone.make_aware(datetime.combine(start_day, time.min), tz),
        timezone.make_aware(datetime.combine(end_day, time.max), tz),
    )


def parse_statuses(raw: Optional[str]) -> List[str]:
    if not raw:
        return list(DEFAULT_STATUSES)
    statuses = [s.strip().upper() for s in raw.split(",") if s.strip()]
    invalid = [s for s in statuses if s not in Order.Status.values]
    if invalid:
        raise ValueError(f"status inválido: {', '.join(invalid)}")
    return statuses


def _months_back(moment: datetime, months: int) -> datetime:
    local = timezone.localtime(moment)
    year, month = local.year, local.month - months
    while month < 1:
        month += 12
        year -= 1
    first = datetime(year, month, 1)
    return timezone.make_aware(first, timezone.get_current_timezone())


def dashboard_stats(start: datetime, end: datetime, statuses: Sequence[str]) -> Dict[str, Any]:
    orders = Order.objects.filter(created_at__gte=start, created_at__lte=end, status__in=statuses)

    total_orders = orders.count()
    total_revenue = orders.aggregate(total=Sum("grand_total"))["total"] or ZERO
    average_ticket = (total_revenue / total_orders).quantize(ZERO) if total_orders else ZERO

    # janela de 6 meses (incluindo o mês corrente) até o fim do período
    window_start = _months_back(end, MONTHLY_WINDOW - 1)
    monthly = (
        Order.objects.filter(created_at__gte=window_start, created_at__lte=end, status__in=statuses)
        .annotate(month=TruncMonth("created_at"))
        .values("month")
        .annotate(amount=Sum("grand_total"))
        .order_by("month")
    )

    top_products = (
        OrderItem.objects.filter(order__in=orders)
        .values("product_id", "product__name", "product__brand")
        .annotate(
            quantity=Sum("quantity"),
            revenue=Sum(
                F("price") * F("quantity"),
                output_field=DecimalField(max_digits=14, decimal_places=2),
            ),
        )
        .order_by("-quantity", "product_id")[:5]
    )

    by_weekday = (
        orders.annotate(weekday=ExtractWeekDay("created_at"))
        .values("weekday")
        .annotate(amount=Sum("grand_total"))
        .order_by("weekday")
    )

    low_stock = (
        Product.objects.filter(critical_stock__isnull=False, stock__lte=F("critical_stock"))
        .values("id", "name", "brand", "stock", "critical_stock")
        .order_by("stock", "id")
    )

    return {
        "period": {"start_date": start.isoformat(), "end_date": end.isoformat()},
        "total_products": Product.objects.count(),
        "total_orders": total_orders,
        "total_customers": orders.order_by().values("email").distinct().count(),
        "total_revenue": total_revenue,
        "average_ticket": average_ticket,
        "monthly_sales": [
            {"month": row["month"].date().isoformat(), "amount": row["amount"]} for row in monthly
        ],
        "top_products": [
            {
                "product_id": row["product_id"],
                "name": row["product__name"],
                "brand": row["product__brand"],
                "quantity": row["quantity"],
                "total_revenue": row["revenue"],
            }
            for row in top_products
        ],
        "order_status": list(orders.values("status").annotate(count=Count("id")).order_by("status")),
        "payment_methods": list(
            orders.values("payment_method").annotate(count=Count("id")).order_by("payment_method")
        ),
        "low_stock_products": list(low_stock),
        "sales_by_day": [
            {"day": WEEKDAYS[row["weekday"] - 1], "amount": row["amount"]} for row in by_weekday
        ],
    }
