"""Shared BDD fixtures and step definitions for order placement."""

from unittest.mock import patch

import pytest
from protean import current_domain
from pytest_bdd import given, parsers, then
from storefront.catalogue.restock import Restock
from storefront.ordering.order import Order


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------
@pytest.fixture()
def shelf():
    """Product ids by name."""
    return {}


@pytest.fixture()
def calendar():
    """Pins the server date for order numbering."""
    patcher = patch("storefront.ordering.sequence.today", return_value="2026-06-19")
    fake_today = patcher.start()
    yield fake_today
    patcher.stop()


# ---------------------------------------------------------------------------
# Given steps
# ---------------------------------------------------------------------------
@given(parsers.cfparse('the shop sells "{name}" at {price:d} with {stock:d} in stock'))
def _(shelf, make_product, name, price, stock):
    shelf[name] = make_product(name=name, price=price, stock=stock)


@given(parsers.cfparse('today is "{day}"'))
def _(calendar, day):
    calendar.return_value = day


@given(parsers.cfparse('the admin restocks {quantity:d} of "{name}"'))
def _(shelf, name, quantity):
    current_domain.process(Restock(product_id=shelf[name], quantity=quantity), asynchronous=False)


# ---------------------------------------------------------------------------
# Then steps
# ---------------------------------------------------------------------------
@then(parsers.cfparse('the order is accepted with message "{message}"'))
def _(result, message):
    assert result.success is True
    assert result.message == message


@then(parsers.cfparse('the order is turned away with message "{message}"'))
def _(result, message):
    assert result.success is False
    assert result.message == message


@then(parsers.cfparse("the order number is {number:d}"))
def _(result, number):
    assert result.order_number == number


@then(parsers.cfparse('"{name}" has {stock:d} left'))
def _(shelf, stock_of, name, stock):
    assert stock_of(shelf[name]) == stock


@then("no order was recorded")
def _():
    assert current_domain.repository_for(Order).all_orders() == []
