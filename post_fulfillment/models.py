"""Shared data models for shipment mapping and tracking reconciliation."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any


@dataclass(frozen=True)
class HistoryEntry:
    """One committed (or about to be committed) order history record."""

    order_id: str
    status_id: int
    time: int
    description: str = ""
    paid: bool = False
    actor_id: int = 0

    @property
    def post_date(self) -> str:
        return datetime.fromtimestamp(self.time).strftime("%Y-%m-%d %H:%M:%S")


@dataclass
class OrderItem:
    """A line item; ``fields`` holds the catalog entry's attributes."""

    material_id: str
    amount: int = 1
    fields: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class NormalizedAddress:
    """A carrier-cleansed address plus the locally computed confidence flag."""

    data: dict[str, Any]
    stringified_input: str
    is_correct: bool

    def get(self, key: str, default: Any = None) -> Any:
        return self.data.get(key, default)

    @property
    def index(self) -> str:
        return str(self.data.get("index") or "").strip()


@dataclass
class Order:
    """An order as read from the order store.

    Recipient name, address components, phone, tracking number and any
    explicit weight or dimensions live in ``fields`` under configurable
    names (see :class:`post_fulfillment.config.FieldMap`).
    """

    id: str
    paid: bool = False
    status_id: int = 0
    sum: float = 0.0
    fields: dict[str, Any] = field(default_factory=dict)
    items: list[OrderItem] = field(default_factory=list)
    history: list[HistoryEntry] = field(default_factory=list)
    normalized_address: NormalizedAddress | None = None
    shipment_errors: str = ""
    shipment_id: str | None = None


@dataclass
class Cart:
    """Request-scoped equivalent of an order used for estimation."""

    sum: float = 0.0
    fields: dict[str, Any] = field(default_factory=dict)
    items: list[OrderItem] = field(default_factory=list)


@dataclass
class TrackingRule:
    """Maps carrier operation codes to a local order status."""

    codes: list[str]
    status_id: int
    ignore_codes: list[str] = field(default_factory=list)
    include_address: bool = False


@dataclass
class TrackingOperation:
    """One carrier-reported event already resolved to a local status."""

    datetime_original: str
    time: int
    code: str
    status_id: int
    description: str


@dataclass
class HistoryChange:
    """Entries to append for one order and the status to switch to, if any."""

    history: list[HistoryEntry] = field(default_factory=list)
    status_id: int | None = None


@dataclass
class ShippingEstimate:
    """Delivery price in major units and optional lead time in days."""

    price: float
    min_days: int | None = None
    max_days: int | None = None


@dataclass
class SubmissionReport:
    """Outcome of one batch submission."""

    errors: dict[str, str] = field(default_factory=dict)
    shipments: dict[str, tuple[str, str]] = field(default_factory=dict)


def field_value(record: Order | Cart | OrderItem, name: str) -> Any:
    """Return a configured field of an order, cart or item (None if absent)."""
    if not name:
        return None
    return record.fields.get(name)
