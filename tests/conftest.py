"""Shared fixtures for the post fulfillment tests."""

from unittest.mock import MagicMock

import pytest

from post_fulfillment.base_store import OrderStore
from post_fulfillment.config import Dimension, SenderSettings
from post_fulfillment.models import HistoryEntry, Order, OrderItem
from post_fulfillment.send_client import SendClient


class InMemoryOrderStore(OrderStore):
    """Order store double that records every write."""

    def __init__(self, orders=None):
        self.orders = list(orders or [])
        self.added: list[HistoryEntry] = []
        self.saved: list[str] = []

    def get_orders(self):
        return list(self.orders)

    def add_history(self, order, entry):
        order.history.append(entry)
        self.added.append(entry)

    def save_order(self, order):
        self.saved.append(order.id)


@pytest.fixture
def store():
    return InMemoryOrderStore()


@pytest.fixture
def settings():
    return SenderSettings(
        default_item_weight=0.1,
        default_weight=1,
        weight_ratio=1,
        length=Dimension(default_item=10, default=20, ratio=10),
        width=Dimension(default_item=10, default=20, ratio=10),
        height=Dimension(default_item=10, default=20, ratio=10),
    )


@pytest.fixture
def send_client():
    return MagicMock(spec=SendClient)


@pytest.fixture
def make_order():
    def _make(order_id="1", **kwargs):
        fields = {
            "post_code": "101000",
            "region": "Moscow",
            "city": "Moscow",
            "street": "Tverskaya",
            "house": "1",
            "apartment": "",
            "last_name": "Ivanov",
            "first_name": "Ivan",
            "second_name": "Ivanovich",
            "phone": "",
        }
        fields.update(kwargs.pop("fields", {}))
        items = kwargs.pop("items", [OrderItem(material_id="10", amount=1)])
        return Order(id=order_id, fields=fields, items=items, **kwargs)

    return _make


@pytest.fixture
def cleaned_address():
    return {
        "address-type": "DEFAULT",
        "index": "101000",
        "region": "г Москва",
        "place": "г Москва",
        "street": "ул Тверская",
        "house": "1",
        "quality-code": "GOOD",
        "validation-code": "VALIDATED",
        "original-address": "101000, Moscow, Moscow, Tverskaya, 1",
    }
