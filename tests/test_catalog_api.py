"""Storefront catalog and cart stock check."""

from datetime import timedelta

import pytest
from django.utils import timezone

from store.models import Product

pytestmark = pytest.mark.django_db


def test_lists_only_published_newest_first(api_client, make_product):
    old = make_product(name="Old", features=["GPS", "ECG"])
    new = make_product(name="New")
    make_product(name="Draft", published=False)
    Product.objects.filter(pk=old.pk).update(created_at=timezone.now() - timedelta(days=2))

    resp = api_client.get("/api/smartwatches/")

    assert resp.status_code == 200
    body = resp.json()
    assert [p["name"] for p in body] == ["New", "Old"]
    assert [f["name"] for f in body[1]["features"]] == ["GPS", "ECG"]
    assert body[0]["id"] == new.pk
    assert "stock" in body[0]


def test_detail_hides_unpublished(api_client, make_product):
    visible = make_product(name="Visible", price="1234.50")
    draft = make_product(name="Draft", published=False)

    resp = api_client.get(f"/api/smartwatches/{visible.pk}/")
    assert resp.status_code == 200
    assert resp.json()["price"] == "1234.50"
    assert resp.json()["price_formatted"] == "R$ 1.234,50"

    assert api_client.get(f"/api/smartwatches/{draft.pk}/").status_code == 404


class TestCartCheck:
    URL = "/api/cart/check/"

    def test_all_available(self, api_client, make_product):
        watch = make_product(stock=3, price="10.00")

        resp = api_client.post(self.URL, {"items": [{"product_id": watch.pk, "quantity": 3}]}, format="json")

        assert resp.status_code == 200
        body = resp.json()
        assert body["ok"] is True
        assert body["items"][0] == {
            "product_id": watch.pk,
            "quantity": 3,
            "name": watch.name,
            "price": "10.00",
            "stock": 3,
            "available": True,
        }

    def test_exceeding_stock_and_unpublished(self, api_client, make_product):
        watch = make_product(stock=2)
        draft = make_product(name="Draft", published=False, stock=10)

        resp = api_client.post(
            self.URL,
            {"items": [{"product_id": watch.pk, "quantity": 3}, {"product_id": draft.pk, "quantity": 1}]},
            format="json",
        )

        body = resp.json()
        assert body["ok"] is False
        assert [line["available"] for line in body["items"]] == [False, False]
        assert body["items"][1]["stock"] == 0

    def test_rejects_empty_cart(self, api_client):
        resp = api_client.post(self.URL, {"items": []}, format="json")

        assert resp.status_code == 400
        assert "items" in resp.json()["errors"]

    def test_does_not_touch_stock(self, api_client, make_product):
        watch = make_product(stock=4)

        api_client.post(self.URL, {"items": [{"product_id": watch.pk, "quantity": 2}]}, format="json")

        watch.refresh_from_db()
        assert watch.stock == 4
