# store/orders.py — motor de pedidos: criação com baixa de estoque e atualização de status
"""
Regras de consistência de estoque:

- Criação: produtos travados (SELECT ... FOR UPDATE, em ordem de PK) antes da
  validação; a baixa é um UPDATE condicional (stock >= qtd). Se alguma baixa
  não encontrar a linha, o bloco atômico inteiro é desfeito.
- Cancelamento: só a partir de PENDING; a devolução de estoque roda no mesmo
  bloco atômico da troca de status.
"""
from __future__ import annotations

import logging
from decimal import Decimal
from typing import Any, Dict, Iterable, List, NamedTuple, Optional, Type

from django.db import OperationalError, transaction
from django.db.models import F
from django.utils import timezone
from rest_framework.exceptions import APIException, NotFound

from . import integrations
from .exceptions import (
    CancellationNotAllowed,
    InsufficientStock,
    ProductUnavailable,
    StoreUnavailable,
    TrackingCodeRequired,
)
from .models import Order, OrderItem, Product

logger = logging.getLogger(__name__)

ZERO = Decimal("0.00")


class TransitionRule(NamedTuple):
    allowed_from: Optional[frozenset]  # None = qualquer status atual
    requires_tracking_code: bool
    error: Type[APIException]


# Destinos com regra. Os demais status podem ser definidos livremente pelo admin.
TRANSITION_RULES: Dict[str, TransitionRule] = {
    Order.Status.CANCELLED.value: TransitionRule(
        allowed_from=frozenset({Order.Status.PENDING.value}),
        requires_tracking_code=False,
        error=CancellationNotAllowed,
    ),
    Order.Status.SHIPPED.value: TransitionRule(
        allowed_from=None,
        requires_tracking_code=True,
        error=TrackingCodeRequired,
    ),
}


def orders_with_items():
    return Order.objects.prefetch_related("items__product__features").order_by("-created_at")


def get_order(order_id) -> Order:
    order = orders_with_items().filter(pk=order_id).first()
    if order is None:
        raise NotFound("Pedido não encontrado.")
    return order


def check_transition(current_status: str, new_status: str, tracking_code: Optional[str]) -> None:
    rule = TRANSITION_RULES.get(new_status)
    if rule is None:
        return
    if rule.allowed_from is not None and current_status not in rule.allowed_from:
        raise rule.error()
    if rule.requires_tracking_code and not (tracking_code or "").strip():
        raise rule.error()


# ======================================================================
# Criação
# ======================================================================
def quantities_by_product(items: Iterable[Dict[str, Any]]) -> Dict[int, int]:
    # mesmo produto em mais de uma linha conta uma vez só no estoque
    wanted: Dict[int, int] = {}
    for item in items:
        pid = item["product_id"]
        wanted[pid] = wanted.get(pid, 0) + int(item["quantity"])
    return wanted


def _lock_published_products(product_ids: Iterable[int]) -> Dict[int, Product]:
    qs = (
        Product.objects.select_for_update()
        .filter(pk__in=list(product_ids), is_published=True)
        .order_by("pk")
    )
    return {p.pk: p for p in qs}


def _product_label(product: Product) -> str:
    return product.name or str(product.pk)


def _check_stock(products: Dict[int, Product], wanted: Dict[int, int]) -> None:
    for pid, qty in wanted.items():
        product = products[pid]
        if product.stock < qty:
            raise InsufficientStock(_product_label(product))


def _reserve_stock(product: Product, quantity: int) -> None:
    updated = Product.objects.filter(pk=product.pk, stock__gte=quantity).update(
        stock=F("stock") - quantity, updated_at=timezone.now()
    )
    if updated != 1:
        raise InsufficientStock(_product_label(product))


def place_order(data: Dict[str, Any]) -> Order:
    """
    Cria o pedido a partir dos dados já validados pelo serializer.

    O preço de cada item vem do produto (não do cliente); total_amount e
    price enviados pelo cliente só servem de eco para log.
    """
    items: List[Dict[str, Any]] = list(data["items"])
    wanted = quantities_by_product(items)
    shipping_cost = Decimal(data["shipping_cost"])

    try:
        with transaction.atomic():
            products = _lock_published_products(wanted.keys())
            if len(products) != len(wanted):
                missing = sorted(set(wanted) - set(products))
                logger.warning("Pedido recusado: produtos indisponíveis %s", missing)
                raise ProductUnavailable()

            _check_stock(products, wanted)

            lines = [(products[item["product_id"]], int(item["quantity"])) for item in items]
            total_amount = sum((p.price * qty for p, qty in lines), ZERO)
            grand_total = total_amount + shipping_cost

            for pid, qty in wanted.items():
                _reserve_stock(products[pid], qty)

            order = Order.objects.create(
                customer_name=data["customer_name"],
                email=data["email"],
                phone=data["phone"],
                address=data["address"],
                payment_method=data["payment_method"],
                notes=data.get("notes") or None,
                status=Order.Status.PENDING,
                payment_status=Order.PaymentStatus.PENDING,
                total_amount=total_amount,
                shipping_cost=shipping_cost,
                grand_total=grand_total,
            )
            OrderItem.objects.bulk_create(
                [OrderItem(order=order, product=p, quantity=qty, price=p.price) for p, qty in lines]
            )
            transaction.on_commit(lambda: integrations.order_created(order))
    except OperationalError as exc:
        logger.warning("Falha no banco ao criar pedido: %s", exc)
        raise StoreUnavailable() from exc

    client_total = data.get("total_amount")
    if client_total is not None and Decimal(client_total) != total_amount:
        logger.info(
            "Pedido %s: total do cliente %s difere do calculado %s",
            order.pk, client_total, total_amount,
        )
    logger.info("Pedido %s criado (%d itens, total %s)", order.pk, len(lines), grand_total)
    return get_order(order.pk)


# ======================================================================
# Atualização (admin)
# ======================================================================
def _restore_stock(order: Order) -> None:
    wanted = quantities_by_product(
        {"product_id": it.product_id, "quantity": it.quantity} for it in order.items.all()
    )
    now = timezone.now()
    for pid, qty in sorted(wanted.items()):
        Product.objects.filter(pk=pid).update(stock=F("stock") + qty, updated_at=now)
    logger.info("Pedido %s cancelado: estoque devolvido %s", order.pk, wanted)


def update_order(order_id, data: Dict[str, Any]) -> Order:
    """
    Atualiza status, payment_status, tracking_code e notes.
    Campos ausentes mantêm o valor atual.
    """
    try:
        with transaction.atomic():
            order = Order.objects.select_for_update().filter(pk=order_id).first()
            if order is None:
                raise NotFound("Pedido não encontrado.")

            previous_status = order.status
            new_status = data.get("status", previous_status)
            # PATCH sem status mantém o atual sem passar pelas regras de transição
            if "status" in data:
                check_transition(previous_status, new_status, data.get("tracking_code"))

            order.status = new_status
            order.payment_status = data.get("payment_status", order.payment_status)
            fields = ["status", "payment_status", "updated_at"]
            if "tracking_code" in data:
                order.tracking_code = data["tracking_code"] or None
                fields.append("tracking_code")
            if "notes" in data:
                order.notes = data["notes"] or None
                fields.append("notes")
            order.save(update_fields=fields)

            if new_status == Order.Status.CANCELLED and previous_status != Order.Status.CANCELLED:
                _restore_stock(order)
    except OperationalError as exc:
        logger.warning("Falha no banco ao atualizar pedido %s: %s", order_id, exc)
        raise StoreUnavailable() from exc

    if new_status != previous_status:
        logger.info("Pedido %s: %s -> %s", order_id, previous_status, new_status)
    return get_order(order_id)
