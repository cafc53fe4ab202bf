"""Integration tests for the order endpoints via TestClient."""

from unittest.mock import patch

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from protean import current_domain
from storefront.api import order_router
from storefront.ordering.order import Order


@pytest.fixture()
def client():
    app = FastAPI()
    app.include_router(order_router)
    return TestClient(app)


@pytest.fixture(autouse=True)
def today():
    with patch("storefront.ordering.sequence.today", return_value="2026-06-19"):
        yield


def _order_body(product_id, quantity=1, **customer):
    body = {
        "name": "王小明",
        "phone": "0912345678",
        "address": "台南市中西區民族路二段 1 號",
        "pickupDate": "2026-06-20",
        "note": "",
        "items": [{"productId": product_id, "quantity": quantity}],
    }
    body.update(customer)
    return body


class TestPlaceOrderEndpoint:
    def test_places_order(self, client, make_product, stock_of):
        product_id = make_product(stock=3)

        response = client.post("/order", json=_order_body(product_id, 2))

        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        assert data["message"] == "✅ 訂單完成，總金額：100 元"
        assert data["orderNumber"] == 1
        assert data["orderDate"] == "2026-06-19"
        assert stock_of(product_id) == 1

        order = current_domain.repository_for(Order).get(data["orderId"])
        assert order.customer.pickup_date == "2026-06-20"

    def test_rejected_cart_is_still_200(self, client, make_product, stock_of):
        product_id = make_product(name="古早味肉粽三層肉", stock=3)

        response = client.post("/order", json=_order_body(product_id, 5))

        assert response.status_code == 200
        assert response.json() == {"success": False, "message": "古早味肉粽三層肉 庫存不足（剩 3 件）"}
        assert stock_of(product_id) == 3

    def test_empty_cart(self, client):
        response = client.post("/order", json={"name": "王小明", "items": []})
        assert response.json() == {"success": False, "message": "購物車是空的，請至少選擇一項商品"}

    def test_string_quantity_is_validated_not_refused(self, client, make_product):
        product_id = make_product(name="紅龜粿", stock=3)
        response = client.post("/order", json=_order_body(product_id, "abc"))
        assert response.status_code == 200
        assert response.json()["message"] == "紅龜粿 購買數量必須為正整數"

    def test_system_fault_is_503(self, client, make_product, stock_of):
        product_id = make_product(stock=3)

        with patch.object(Order, "place", side_effect=RuntimeError("ledger unavailable")):
            response = client.post("/order", json=_order_body(product_id, 1))

        assert response.status_code == 503
        assert response.json() == {"success": False, "message": "❌ 系統忙碌中，請稍後再試"}
        assert stock_of(product_id) == 3


class TestListOrdersEndpoint:
    def test_lists_enriched_orders(self, client, make_product):
        product_id = make_product(name="台式蘿蔔糕", price=40, stock=5)
        client.post("/order", json=_order_body(product_id, 1))
        client.post("/order", json=_order_body(product_id, 2, name="陳大文"))

        response = client.get("/orders")

        assert response.status_code == 200
        orders = response.json()
        assert [o["orderNumber"] for o in orders] == [1, 2]
        assert orders[1]["name"] == "陳大文"
        assert orders[1]["total"] == 80.0
        assert orders[1]["items"][0]["name"] == "台式蘿蔔糕"

    def test_plain_listing(self, client, make_product):
        product_id = make_product(stock=5)
        client.post("/order", json=_order_body(product_id, 1))

        items = client.get("/orders", params={"detail": "false"}).json()[0]["items"]
        assert items == [{"productId": product_id, "quantity": 1}]

    def test_empty(self, client):
        assert client.get("/orders").json() == []


class TestQueryOrdersEndpoint:
    @pytest.fixture
    def placed(self, client, make_product):
        product_id = make_product(price=50, stock=20)
        client.post("/order", json=_order_body(product_id, 1, name="王小明", pickupDate="2026-06-20"))
        client.post("/order", json=_order_body(product_id, 4, name="陳大文", phone="0922000111", pickupDate="2026-06-22"))
        client.post("/order", json=_order_body(product_id, 2, name="王美麗", pickupDate="2026-06-21"))

    def test_filter_by_name(self, client, placed):
        orders = client.get("/query-orders", params={"name": "王"}).json()
        assert [o["name"] for o in orders] == ["王小明", "王美麗"]

    def test_filter_by_phone(self, client, placed):
        orders = client.get("/query-orders", params={"phone": "0922"}).json()
        assert [o["name"] for o in orders] == ["陳大文"]

    def test_pickup_range_sorted_by_amount(self, client, placed):
        orders = client.get(
            "/query-orders", params={"start": "2026-06-21", "end": "2026-06-22", "sort": "amount"}
        ).json()
        assert [o["total"] for o in orders] == [200.0, 100.0]

    def test_sort_by_date(self, client, placed):
        orders = client.get("/query-orders", params={"sort": "date"}).json()
        assert [o["pickupDate"] for o in orders] == ["2026-06-22", "2026-06-21", "2026-06-20"]


class TestCompleteOrderEndpoint:
    def test_marks_completed(self, client, make_product):
        product_id = make_product(stock=3)
        order_id = client.post("/order", json=_order_body(product_id, 1)).json()["orderId"]

        response = client.post("/complete-order", json={"orderId": order_id})

        assert response.status_code == 200
        assert response.json() == {"success": True, "message": "✅ 訂單 #1 已標記為已完成"}
        assert current_domain.repository_for(Order).get(order_id).completed is True

    def test_clears_the_mark(self, client, make_product):
        product_id = make_product(stock=3)
        order_id = client.post("/order", json=_order_body(product_id, 1)).json()["orderId"]
        client.post("/complete-order", json={"orderId": order_id})

        response = client.post("/complete-order", json={"orderId": order_id, "completed": False})

        assert response.json() == {"success": True, "message": "✅ 訂單 #1 已標記為未完成"}

    def test_unknown_order(self, client):
        response = client.post("/complete-order", json={"orderId": "no-such-order"})
        assert response.status_code == 404
        assert response.json() == {"success": False, "message": "❌ 訂單不存在"}
