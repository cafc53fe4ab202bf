"""Storefront load testing - Locust entry point.

Shoppers race each other for the same few products while admins list,
search, restock and complete orders. The run is healthy when no request
errors out, every accepted order carries a distinct number for its day,
and stock never goes negative.

Usage:
    # Web UI:
    locust -f loadtests/locustfile.py --host http://localhost:3000

    # Headless (CI mode):
    locust -f loadtests/locustfile.py --headless -u 50 -r 5 -t 120s --csv=results/loadtest
"""

import logging
import random
import threading
import time
from collections import defaultdict

from locust import HttpUser, between, events, task

from loadtests.helpers.response import extract_error_detail

logger = logging.getLogger("loadtest")

CUSTOMER_NAMES = ["王小明", "陳大文", "林美麗", "張志豪", "李淑芬"]

_issued = defaultdict(set)
_duplicates = []
_issued_lock = threading.Lock()


def _record_number(order_date, order_number):
    with _issued_lock:
        if order_number in _issued[order_date]:
            _duplicates.append((order_date, order_number))
        _issued[order_date].add(order_number)


@events.request.add_listener
def on_request(request_type, name, response, exception, **_kw):
    """Log error details for every failed request."""
    if exception:
        logger.error("[EXCEPTION] %s %s: %s", request_type, name, exception)
    elif response is not None and response.status_code >= 400:
        detail = extract_error_detail(response)
        logger.error("[%s] %s %s: %s", response.status_code, request_type, name, detail)


@events.test_start.add_listener
def on_test_start(environment, **_kwargs):
    print(f"\n[LOADTEST] Started at {time.strftime('%H:%M:%S')}")
    print(f"[LOADTEST] Target host: {environment.host}")
    print()


@events.test_stop.add_listener
def on_test_stop(**_kwargs):
    """Report order numbers issued during the run and any duplicates."""
    print(f"\n[LOADTEST] Stopped at {time.strftime('%H:%M:%S')}")
    with _issued_lock:
        for order_date, numbers in sorted(_issued.items()):
            print(f"[LOADTEST] {order_date}: {len(numbers)} orders, highest #{max(numbers)}")
        if _duplicates:
            print(f"[LOADTEST] DUPLICATE order numbers: {_duplicates}")
    print()


class ShopperUser(HttpUser):
    """Browses the shop and orders whatever is still in stock."""

    weight = 5
    wait_time = between(0.5, 2)

    def on_start(self):
        self.products = []

    @task(2)
    def browse(self):
        with self.client.get("/products", catch_response=True, name="GET /products") as resp:
            if resp.status_code == 200:
                self.products = resp.json()
            else:
                resp.failure(f"List products failed: {resp.status_code} - {extract_error_detail(resp)}")

    @task(5)
    def place_order(self):
        if not self.products:
            self.browse()
        if not self.products:
            return

        picks = random.sample(self.products, k=min(len(self.products), random.randint(1, 3)))
        payload = {
            "name": random.choice(CUSTOMER_NAMES),
            "phone": f"09{random.randint(10000000, 99999999)}",
            "address": "台南市中西區",
            "pickupDate": time.strftime("%Y-%m-%d"),
            "note": "",
            "items": [{"productId": p["id"], "quantity": random.randint(1, 3)} for p in picks],
        }
        with self.client.post("/order", json=payload, catch_response=True, name="POST /order") as resp:
            if resp.status_code != 200:
                resp.failure(f"Place order failed: {resp.status_code} - {extract_error_detail(resp)}")
                return

            body = resp.json()
            if body["success"]:
                _record_number(body["orderDate"], body["orderNumber"])
            else:
                # Sold out or short on stock: an expected outcome under contention.
                self.products = []


class AdminUser(HttpUser):
    """Watches the order list, restocks and marks orders as handed over."""

    weight = 1
    wait_time = between(1, 3)

    @task(3)
    def list_orders(self):
        with self.client.get("/orders", catch_response=True, name="GET /orders") as resp:
            if resp.status_code != 200:
                resp.failure(f"List orders failed: {resp.status_code} - {extract_error_detail(resp)}")
                return
            self.orders = resp.json()

    @task(1)
    def search_orders(self):
        self.client.get(
            "/query-orders",
            params={"name": random.choice(CUSTOMER_NAMES)[:1], "sort": "amount"},
            name="GET /query-orders",
        )

    @task(2)
    def restock(self):
        resp = self.client.get("/products", name="GET /products")
        products = resp.json() if resp.status_code == 200 else []
        if not products:
            return
        product = random.choice(products)
        with self.client.post(
            "/restock",
            json={"productId": product["id"], "quantity": random.randint(1, 5)},
            catch_response=True,
            name="POST /restock",
        ) as resp:
            if resp.status_code != 200:
                resp.failure(f"Restock failed: {resp.status_code} - {extract_error_detail(resp)}")

    @task(1)
    def complete_order(self):
        pending = [o for o in getattr(self, "orders", []) if not o["completed"]]
        if not pending:
            return
        order = random.choice(pending)
        with self.client.post(
            "/complete-order",
            json={"orderId": order["id"]},
            catch_response=True,
            name="POST /complete-order",
        ) as resp:
            if resp.status_code != 200:
                resp.failure(f"Complete order failed: {resp.status_code} - {extract_error_detail(resp)}")
