"""Pytest fixtures for the store tests."""

from decimal import Decimal

import pytest
from django.contrib.auth import get_user_model
from rest_framework.test import APIClient

from store.models import Feature, Product

ADMIN_EMAIL = "admin@example.com"
ADMIN_PASSWORD = "relogio-forte-2024"


@pytest.fixture
def api_client():
    """Anonymous API client."""
    return APIClient()


@pytest.fixture
def admin_user(db):
    """Staff user able to use the admin endpoints."""
    return get_user_model().objects.create_user(
        username=ADMIN_EMAIL, email=ADMIN_EMAIL, password=ADMIN_PASSWORD, is_staff=True
    )


@pytest.fixture
def admin_client(admin_user):
    """API client authenticated as the staff user."""
    client = APIClient()
    client.force_authenticate(user=admin_user)
    return client


@pytest.fixture
def make_product(db):
    """Factory for catalog products (published by default)."""

    def _make(name="Galaxy Watch 5 Pro", price="100.00", stock=5, published=True, features=(), **extra):
        product = Product.objects.create(
            name=name,
            brand=extra.pop("brand", "Samsung"),
            price=Decimal(price),
            stock=stock,
            is_published=published,
            **extra,
        )
        for feature in features:
            Feature.objects.create(product=product, name=feature)
        return product

    return _make


@pytest.fixture
def order_data():
    """Factory for a place-order payload as validated by OrderCreateSerializer."""

    def _build(lines, shipping_cost="20.00", total_amount=None, **overrides):
        # lines: (product, quantity) or (product, quantity, client_price)
        items = []
        for line in lines:
            product, qty = line[0], line[1]
            price = line[2] if len(line) > 2 else product.price
            items.append({"product_id": product.pk, "quantity": qty, "price": Decimal(price)})
        data = {
            "customer_name": "Maria Souza",
            "email": "maria@example.com",
            "phone": "+55 11 99999-0000",
            "address": "Rua das Flores, 100 - São Paulo",
            "payment_method": "PIX",
            "items": items,
            "total_amount": Decimal(total_amount) if total_amount else sum(
                (i["price"] * i["quantity"] for i in items), Decimal("0")
            ),
            "shipping_cost": Decimal(shipping_cost),
        }
        data.update(overrides)
        return data

    return _build


@pytest.fixture
def order_payload(order_data):
    """Same as order_data, but JSON-friendly (numbers as floats) for the HTTP API."""

    def _build(lines, **kwargs):
        data = order_data(lines, **kwargs)
        data["items"] = [
            {"product_id": i["product_id"], "quantity": i["quantity"], "price": float(i["price"])}
            for i in data["items"]
        ]
        data["total_amount"] = float(data["total_amount"])
        data["shipping_cost"] = float(data["shipping_cost"])
        return data

    return _build
