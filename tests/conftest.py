"""Pytest fixtures for shopsync tests."""

import pytest

from shopsync import orders as O
from shopsync.cart import CartManager
from shopsync.config import CheckoutPolicy
from shopsync.mock import (
    InMemoryCatalog,
    InMemoryOrderStore,
    InMemoryPaymentDirectory,
    ScriptedGateway,
)


@pytest.fixture
def catalog():
    """Demo catalog: headphones (24999, 50), watch (19999, 75), speaker, cable (0 stock)."""
    return InMemoryCatalog.seeded()


@pytest.fixture
def directory():
    return InMemoryPaymentDirectory()


@pytest.fixture
def gateway():
    return ScriptedGateway()


@pytest.fixture
def store():
    return InMemoryOrderStore()


@pytest.fixture
def policy():
    return CheckoutPolicy().with_capture_timeout(seconds=1)


@pytest.fixture
def submitter(catalog, directory, gateway, store, policy):
    return O.OrderSubmitter(catalog, directory, gateway, store, policy=policy)


@pytest.fixture
def cart():
    """Two headphones, priced and stocked as in the demo catalog."""
    cart = CartManager()
    cart.add_item(product_id=1, quantity=2, unit_price=24999, available_stock=50)
    return cart


@pytest.fixture
def address():
    return O.Address(
        first_name="Ada",
        last_name="Lovelace",
        email="ada@example.com",
        phone="555-0100",
        line1="1 Analytical Way",
        city="London",
        state="LDN",
        postal_code="N1 9GU",
        country="GB",
    )
