"""Tests for the shared data models."""

import dataclasses

import pytest

from post_fulfillment.models import HistoryEntry, NormalizedAddress, Order


class TestImmutableRecords:
    """Committed history and carrier answers cannot be edited in place."""

    def test_history_entry_is_frozen(self):
        entry = HistoryEntry("1", 2, 100)
        with pytest.raises(dataclasses.FrozenInstanceError):
            entry.status_id = 9
        assert entry.status_id == 2

    def test_normalized_address_is_frozen(self):
        address = NormalizedAddress({"index": " 101000 "}, "101000, Moscow", True)
        with pytest.raises(dataclasses.FrozenInstanceError):
            address.is_correct = False
        assert address.is_correct is True
        assert address.index == "101000"

    def test_history_entries_compare_by_value(self):
        assert HistoryEntry("1", 2, 100, "Delivery") == HistoryEntry("1", 2, 100, "Delivery")
        assert HistoryEntry("1", 2, 100) != HistoryEntry("1", 3, 100)


def test_order_stays_mutable():
    order = Order(id="1", status_id=1)
    order.status_id = 3
    order.history.append(HistoryEntry("1", 3, 100))
    assert order.status_id == 3
    assert len(order.history) == 1
