"""Tests for the order engine (placement, stock, status updates)."""

import threading
from decimal import Decimal

import pytest
from django.db import OperationalError, connection
from rest_framework.exceptions import NotFound

from store import orders
from store.exceptions import (
    CancellationNotAllowed,
    InsufficientStock,
    ProductUnavailable,
    StoreUnavailable,
    TrackingCodeRequired,
)
from store.models import Order, OrderItem, Product
from store.orders import check_transition, place_order, update_order

pytestmark = pytest.mark.django_db


def _stock(product):
    product.refresh_from_db()
    return product.stock


class TestPlaceOrder:
    def test_totals_and_stock_decrement(self, make_product, order_data):
        watch = make_product(price="100.00", stock=5)

        order = place_order(order_data([(watch, 3)], shipping_cost="20.00"))

        assert order.total_amount == Decimal("300.00")
        assert order.shipping_cost == Decimal("20.00")
        assert order.grand_total == Decimal("320.00")
        assert order.status == Order.Status.PENDING
        assert order.payment_status == Order.PaymentStatus.PENDING
        assert _stock(watch) == 2

        [item] = order.items.all()
        assert item.product_id == watch.pk
        assert item.quantity == 3
        assert item.price == Decimal("100.00")

    def test_server_price_wins_over_client_price(self, make_product, order_data):
        a = make_product(name="A", price="199.90", stock=10)
        b = make_product(name="B", price="50.00", stock=10)

        data = order_data([(a, 2, "1.00"), (b, 1, "1.00")], shipping_cost="0", total_amount="3.00")
        order = place_order(data)

        assert order.total_amount == Decimal("449.80")
        assert order.grand_total == Decimal("449.80")
        assert sorted(i.price for i in order.items.all()) == [Decimal("50.00"), Decimal("199.90")]

    def test_item_price_is_a_snapshot(self, make_product, order_data):
        watch = make_product(price="100.00", stock=5)
        order = place_order(order_data([(watch, 1)]))

        Product.objects.filter(pk=watch.pk).update(price=Decimal("150.00"))

        item = OrderItem.objects.get(order=order)
        assert item.price == Decimal("100.00")

    def test_unpublished_product_rejects_whole_order(self, make_product, order_data):
        ok = make_product(name="Published", stock=5)
        hidden = make_product(name="Hidden", stock=5, published=False)

        with pytest.raises(ProductUnavailable):
            place_order(order_data([(ok, 1), (hidden, 1)]))

        assert _stock(ok) == 5
        assert _stock(hidden) == 5
        assert Order.objects.count() == 0

    def test_unknown_product_rejects_order(self, make_product, order_data):
        ok = make_product(stock=5)
        data = order_data([(ok, 1)])
        data["items"].append({"product_id": 999999, "quantity": 1, "price": Decimal("10")})

        with pytest.raises(ProductUnavailable):
            place_order(data)

        assert _stock(ok) == 5
        assert Order.objects.count() == 0

    def test_insufficient_stock_is_all_or_nothing(self, make_product, order_data):
        plenty = make_product(name="Forerunner 955", stock=10)
        scarce = make_product(name="Apple Watch Series 8", stock=1)

        with pytest.raises(InsufficientStock) as excinfo:
            place_order(order_data([(plenty, 2), (scarce, 2)]))

        assert "Apple Watch Series 8" in str(excinfo.value.detail)
        assert excinfo.value.get_codes() == "insufficient_stock"
        assert _stock(plenty) == 10
        assert _stock(scarce) == 1
        assert Order.objects.count() == 0

    def test_repeated_product_lines_share_the_stock(self, make_product, order_data):
        watch = make_product(stock=3)

        with pytest.raises(InsufficientStock):
            place_order(order_data([(watch, 2), (watch, 2)]))

        assert _stock(watch) == 3

    def test_exact_stock_can_be_sold_out(self, make_product, order_data):
        watch = make_product(stock=2)

        place_order(order_data([(watch, 2)]))

        assert _stock(watch) == 0

    def test_guarded_decrement_rolls_back_earlier_lines(self, make_product, order_data, monkeypatch):
        # simula estoque lido desatualizado: só o UPDATE condicional barra a venda
        monkeypatch.setattr(orders, "_check_stock", lambda products, wanted: None)
        first = make_product(name="First", stock=5)
        second = make_product(name="Second", stock=1)

        with pytest.raises(InsufficientStock):
            place_order(order_data([(first, 2), (second, 3)]))

        assert _stock(first) == 5
        assert _stock(second) == 1
        assert Order.objects.count() == 0

    def test_database_failure_is_retryable(self, make_product, order_data, monkeypatch):
        watch = make_product(stock=5)

        def boom(product_ids):
            raise OperationalError("could not obtain lock")

        monkeypatch.setattr(orders, "_lock_published_products", boom)

        with pytest.raises(StoreUnavailable):
            place_order(order_data([(watch, 1)]))

        assert _stock(watch) == 5


class TestUpdateOrder:
    @pytest.fixture
    def pending_order(self, make_product, order_data):
        self.a = make_product(name="A", stock=5)
        self.b = make_product(name="B", stock=4)
        return place_order(order_data([(self.a, 2), (self.b, 1)]))

    def test_cancel_pending_restores_stock(self, pending_order):
        assert (_stock(self.a), _stock(self.b)) == (3, 3)

        order = update_order(pending_order.pk, {"status": "CANCELLED", "payment_status": "PENDING"})

        assert order.status == Order.Status.CANCELLED
        assert (_stock(self.a), _stock(self.b)) == (5, 4)

    def test_second_cancel_is_rejected_without_double_restock(self, pending_order):
        update_order(pending_order.pk, {"status": "CANCELLED", "payment_status": "PENDING"})

        with pytest.raises(CancellationNotAllowed):
            update_order(pending_order.pk, {"status": "CANCELLED", "payment_status": "REFUNDED"})

        assert (_stock(self.a), _stock(self.b)) == (5, 4)
        pending_order.refresh_from_db()
        assert pending_order.payment_status == Order.PaymentStatus.PENDING

    def test_cancel_after_confirmation_is_rejected(self, pending_order):
        update_order(pending_order.pk, {"status": "CONFIRMED", "payment_status": "PAID"})

        with pytest.raises(CancellationNotAllowed):
            update_order(pending_order.pk, {"status": "CANCELLED", "payment_status": "PAID"})

        pending_order.refresh_from_db()
        assert pending_order.status == Order.Status.CONFIRMED
        assert (_stock(self.a), _stock(self.b)) == (3, 3)

    def test_shipping_requires_tracking_code(self, pending_order):
        with pytest.raises(TrackingCodeRequired):
            update_order(pending_order.pk, {"status": "SHIPPED", "payment_status": "PAID"})
        with pytest.raises(TrackingCodeRequired):
            update_order(
                pending_order.pk, {"status": "SHIPPED", "payment_status": "PAID", "tracking_code": "  "}
            )

        pending_order.refresh_from_db()
        assert pending_order.status == Order.Status.PENDING
        assert pending_order.payment_status == Order.PaymentStatus.PENDING

        order = update_order(
            pending_order.pk,
            {"status": "SHIPPED", "payment_status": "PAID", "tracking_code": "BR123456789"},
        )
        assert order.status == Order.Status.SHIPPED
        assert order.tracking_code == "BR123456789"

    def test_other_transitions_are_unconstrained(self, pending_order):
        order = update_order(pending_order.pk, {"status": "DELIVERED", "payment_status": "PAID"})
        assert order.status == Order.Status.DELIVERED

        order = update_order(pending_order.pk, {"status": "PREPARING", "payment_status": "REFUNDED"})
        assert order.status == Order.Status.PREPARING
        assert order.payment_status == Order.PaymentStatus.REFUNDED

    def test_notes_and_missing_fields(self, pending_order):
        order = update_order(pending_order.pk, {"notes": "Entregar após 18h"})

        assert order.notes == "Entregar após 18h"
        assert order.status == Order.Status.PENDING
        assert order.payment_status == Order.PaymentStatus.PENDING

    def test_missing_status_skips_transition_rules(self, pending_order):
        update_order(pending_order.pk, {"status": "CANCELLED", "payment_status": "PENDING"})

        order = update_order(pending_order.pk, {"payment_status": "REFUNDED"})

        assert order.status == Order.Status.CANCELLED
        assert order.payment_status == Order.PaymentStatus.REFUNDED
        assert (_stock(self.a), _stock(self.b)) == (5, 4)

    def test_unknown_order(self):
        with pytest.raises(NotFound):
            update_order(424242, {"status": "CONFIRMED", "payment_status": "PAID"})


@pytest.mark.parametrize(
    "current,new,tracking,error",
    [
        ("PENDING", "CANCELLED", None, None),
        ("CONFIRMED", "CANCELLED", None, CancellationNotAllowed),
        ("CANCELLED", "CANCELLED", None, CancellationNotAllowed),
        ("PREPARING", "SHIPPED", None, TrackingCodeRequired),
        ("PREPARING", "SHIPPED", "BR1", None),
        ("DELIVERED", "PENDING", None, None),
    ],
)
def test_check_transition(current, new, tracking, error):
    if error is None:
        check_transition(current, new, tracking)
    else:
        with pytest.raises(error):
            check_transition(current, new, tracking)


@pytest.mark.django_db(transaction=True)
def test_concurrent_orders_never_oversell(make_product, order_data):
    """Two buyers race for the same watch; together they want more than the stock."""
    watch = make_product(stock=5)
    payloads = [order_data([(watch, 3)]), order_data([(watch, 4)], email="joao@example.com")]
    barrier = threading.Barrier(len(payloads))
    outcomes = []

    def buy(data):
        try:
            barrier.wait(timeout=10)
            place_order(data)
            outcomes.append("placed")
        except InsufficientStock:
            outcomes.append("insufficient_stock")
        except Exception as exc:  # qualquer outro erro falha o teste abaixo
            outcomes.append(repr(exc))
        finally:
            connection.close()

    threads = [threading.Thread(target=buy, args=(data,)) for data in payloads]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=30)

    assert sorted(outcomes) == ["insufficient_stock", "placed"]
    assert Order.objects.count() == 1
    assert _stock(watch) in (1, 2)
    sold = Order.objects.get().items.get().quantity
    assert _stock(watch) == 5 - sold
