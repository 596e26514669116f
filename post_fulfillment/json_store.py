"""Order store backed by a JSON file."""

import json
import logging
from dataclasses import asdict
from pathlib import Path

from post_fulfillment.base_store import OrderStore
from post_fulfillment.errors import ConfigurationError
from post_fulfillment.models import Cart, HistoryEntry, Order, OrderItem

logger = logging.getLogger(__name__)


def _item_from_dict(raw: dict) -> OrderItem:
    return OrderItem(
        material_id=str(raw.get("material_id", "")),
        amount=int(raw.get("amount", 1)),
        fields=dict(raw.get("fields") or {}),
    )


def order_from_dict(raw: dict) -> Order:
    order_id = str(raw["id"])
    return Order(
        id=order_id,
        paid=bool(raw.get("paid", False)),
        status_id=int(raw.get("status_id", 0)),
        sum=float(raw.get("sum", 0)),
        fields=dict(raw.get("fields") or {}),
        items=[_item_from_dict(i) for i in raw.get("items") or []],
        history=[
            HistoryEntry(
                order_id=order_id,
                status_id=int(h["status_id"]),
                time=int(h["time"]),
                description=h.get("description", ""),
                paid=bool(h.get("paid", False)),
                actor_id=int(h.get("actor_id", 0)),
            )
            for h in raw.get("history") or []
        ],
        shipment_errors=raw.get("shipment_errors", ""),
        shipment_id=raw.get("shipment_id"),
    )


def order_to_dict(order: Order) -> dict:
    return {
        "id": order.id,
        "paid": order.paid,
        "status_id": order.status_id,
        "sum": order.sum,
        "fields": order.fields,
        "items": [asdict(i) for i in order.items],
        "history": [
            {
                "status_id": h.status_id,
                "time": h.time,
                "description": h.description,
                "paid": h.paid,
                "actor_id": h.actor_id,
            }
            for h in order.history
        ],
        "shipment_errors": order.shipment_errors,
        "shipment_id": order.shipment_id,
    }


def load_cart(path: str | Path) -> Cart:
    """Read a cart (``sum``, ``fields``, ``items``) from a JSON file."""
    try:
        with open(path, encoding="utf-8") as f:
            raw = json.load(f)
    except (OSError, json.JSONDecodeError) as exc:
        raise ConfigurationError(f"Cannot read cart from {path}: {exc}") from exc
    return Cart(
        sum=float(raw.get("sum", 0)),
        fields=dict(raw.get("fields") or {}),
        items=[_item_from_dict(i) for i in raw.get("items") or []],
    )


class JsonOrderStore(OrderStore):
    """Keeps orders in a ``{"orders": [...]}`` JSON document.

    Every mutation rewrites the file so a crash mid-run loses at most the
    change in flight.
    """

    def __init__(self, path: str | Path):
        self.path = Path(path)
        try:
            with open(self.path, encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as exc:
            raise ConfigurationError(f"Cannot read orders from {self.path}: {exc}") from exc
        self._orders = [order_from_dict(o) for o in data.get("orders", [])]

    def get_orders(self) -> list[Order]:
        return list(self._orders)

    def add_history(self, order: Order, entry: HistoryEntry) -> None:
        order.history.append(entry)
        self._flush()

    def save_order(self, order: Order) -> None:
        self._flush()

    def _flush(self) -> None:
        payload = {"orders": [order_to_dict(o) for o in self._orders]}
        tmp = self.path.with_suffix(self.path.suffix + ".tmp")
        with open(tmp, "w", encoding="utf-8") as f:
            json.dump(payload, f, ensure_ascii=False, indent=2)
        tmp.replace(self.path)
        logger.debug("Saved %d orders to %s", len(self._orders), self.path)
