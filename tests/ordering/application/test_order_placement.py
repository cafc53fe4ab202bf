"""Tests for placing orders end to end through `place_order`."""

import threading
from unittest.mock import patch

import pytest
from protean import current_domain
from storefront.catalogue.inventory import InventoryStore
from storefront.domain import storefront
from storefront.live.projection import project_order
from storefront.ordering.order import Order
from storefront.ordering.placement import EMPTY_CART_MESSAGE, SYSTEM_ERROR_MESSAGE, place_order
from storefront.ordering.sequence import DailyCounter

CUSTOMER = {
    "name": "王小明",
    "phone": "0912345678",
    "address": "台南市中西區民族路二段 1 號",
    "pickup_date": "2026-06-20",
    "note": "",
}


def _orders():
    return current_domain.repository_for(Order).all_orders()


@pytest.fixture
def today():
    with patch("storefront.ordering.sequence.today", return_value="2026-06-19") as fake:
        yield fake


class TestSuccessfulPlacement:
    def test_order_is_recorded_and_stock_taken(self, make_product, stock_of, today):
        product_id = make_product(name="古早味肉粽三層肉", price=50, stock=3)

        result = place_order([{"product_id": product_id, "quantity": 2}], CUSTOMER)

        assert result.success is True
        assert result.message == "✅ 訂單完成，總金額：100 元"
        assert result.order_number == 1
        assert result.order_date == "2026-06-19"
        assert result.total == 100
        assert stock_of(product_id) == 1

        orders = _orders()
        assert len(orders) == 1
        order = orders[0]
        assert str(order.id) == result.order_id
        assert order.customer.name == "王小明"
        assert order.completed is False
        assert [(str(line.product_id), line.quantity) for line in order.lines] == [(product_id, 2)]

    def test_buying_the_last_units(self, make_product, stock_of, today):
        product_id = make_product(stock=3)
        result = place_order([{"product_id": product_id, "quantity": 3}], CUSTOMER)
        assert result.success is True
        assert stock_of(product_id) == 0

    def test_several_lines(self, make_product, stock_of, today):
        zongzi = make_product(name="古早味肉粽瘦肉", price=50, stock=5)
        radish = make_product(name="台式蘿蔔糕", price=35.5, stock=5)

        result = place_order(
            [{"product_id": zongzi, "quantity": 1}, {"product_id": radish, "quantity": 2}],
            CUSTOMER,
        )

        assert result.total == 121.0
        assert result.message == "✅ 訂單完成，總金額：121 元"
        assert stock_of(zongzi) == 4
        assert stock_of(radish) == 3

    def test_numbers_follow_on_within_a_day(self, make_product, today):
        product_id = make_product(stock=5)
        first = place_order([{"product_id": product_id, "quantity": 1}], CUSTOMER)
        second = place_order([{"product_id": product_id, "quantity": 1}], CUSTOMER)
        assert (first.order_number, second.order_number) == (1, 2)

    def test_numbers_start_over_on_a_new_day(self, make_product):
        product_id = make_product(stock=5)
        with patch("storefront.ordering.sequence.today", return_value="2026-06-19"):
            place_order([{"product_id": product_id, "quantity": 1}], CUSTOMER)
            place_order([{"product_id": product_id, "quantity": 1}], CUSTOMER)
        with patch("storefront.ordering.sequence.today", return_value="2026-06-20"):
            result = place_order([{"product_id": product_id, "quantity": 1}], CUSTOMER)

        assert (result.order_date, result.order_number) == ("2026-06-20", 1)

    def test_customer_details_are_optional(self, make_product, today):
        product_id = make_product(stock=1)
        result = place_order([{"product_id": product_id, "quantity": 1}])
        assert result.success is True
        projected = project_order(_orders()[0])
        assert projected["name"] is None
        assert projected["phone"] is None
        assert projected["pickupDate"] is None
        assert current_domain.repository_for(Order).find(name="王", start="2026-06-01") == []


class TestRejectedPlacement:
    def test_empty_cart(self, today):
        result = place_order([], CUSTOMER)
        assert result.success is False
        assert result.message == EMPTY_CART_MESSAGE
        assert _orders() == []

    def test_over_stock_leaves_everything_untouched(self, make_product, stock_of, today):
        product_id = make_product(name="古早味肉粽三層肉", stock=3)

        result = place_order([{"product_id": product_id, "quantity": 5}], CUSTOMER)

        assert result.success is False
        assert result.system_error is False
        assert "庫存不足（剩 3 件）" in result.message
        assert stock_of(product_id) == 3
        assert _orders() == []
        assert current_domain.repository_for(DailyCounter).current() is None

    def test_one_bad_line_rejects_the_whole_cart(self, make_product, stock_of, today):
        good = make_product(name="古早味肉粽三層肉", stock=3)
        sold_out = make_product(name="紅龜粿", stock=0)

        result = place_order(
            [{"product_id": good, "quantity": 1}, {"product_id": sold_out, "quantity": 1}],
            CUSTOMER,
        )

        assert result.success is False
        assert result.message == "紅龜粿 已售完"
        assert stock_of(good) == 3
        assert _orders() == []

    def test_unknown_product(self, today):
        result = place_order([{"product_id": "nope", "quantity": 1}], CUSTOMER)
        assert result.success is False
        assert result.message == "商品 nope 不存在"


class TestFailedPlacement:
    def test_fault_after_stock_was_taken_gives_everything_back(self, make_product, stock_of, today):
        product_id = make_product(stock=3)

        with patch.object(Order, "place", side_effect=RuntimeError("ledger unavailable")):
            result = place_order([{"product_id": product_id, "quantity": 2}], CUSTOMER)

        assert result.success is False
        assert result.system_error is True
        assert result.message == SYSTEM_ERROR_MESSAGE
        assert stock_of(product_id) == 3
        assert _orders() == []

        retry = place_order([{"product_id": product_id, "quantity": 2}], CUSTOMER)
        assert retry.order_number == 1

    def test_lost_decrement_is_retried(self, make_product, stock_of, today):
        product_id = make_product(stock=3)
        original = InventoryStore.try_decrement
        calls = []

        def lose_first_race(self, pid, quantity):
            calls.append(pid)
            if len(calls) == 1:
                return False
            return original(self, pid, quantity)

        with patch.object(InventoryStore, "try_decrement", lose_first_race):
            result = place_order([{"product_id": product_id, "quantity": 1}], CUSTOMER)

        assert result.success is True
        assert result.order_number == 1
        assert stock_of(product_id) == 2

    def test_decrement_that_keeps_losing_fails(self, make_product, stock_of, today):
        product_id = make_product(stock=3)

        with patch.object(InventoryStore, "try_decrement", return_value=False):
            result = place_order([{"product_id": product_id, "quantity": 1}], CUSTOMER)

        assert result.success is False
        assert result.system_error is True
        assert stock_of(product_id) == 3
        assert _orders() == []


class TestConcurrentPlacement:
    def test_stock_is_never_oversold(self, make_product, stock_of, today):
        product_id = make_product(stock=5)
        results = []
        results_lock = threading.Lock()

        def buy_one():
            with storefront.domain_context():
                result = place_order([{"product_id": product_id, "quantity": 1}], CUSTOMER)
            with results_lock:
                results.append(result)

        threads = [threading.Thread(target=buy_one) for _ in range(12)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        placed = [r for r in results if r.success]
        assert len(results) == 12
        assert len(placed) == 5
        assert stock_of(product_id) == 0
        assert sorted(r.order_number for r in placed) == [1, 2, 3, 4, 5]
        assert all("已售完" in r.message for r in results if not r.success)
