"""Shipment payloads for the carrier's backlog API."""

import logging
import math
import re
from typing import Any

from post_fulfillment.config import SenderSettings
from post_fulfillment.dimensions import WeightDimensionResolver
from post_fulfillment.models import NormalizedAddress, Order, field_value

logger = logging.getLogger(__name__)

# Predefined flags that belong in a shipment (the tariff query takes more).
SHIPMENT_FLAGS = (
    "completeness-checking",
    "courier",
    "fragile",
    "mail-direct",
    "mail-type",
    "manual-address-input",
    "payment-method",
    "transport-type",
    "with-order-of-notice",
    "with-simple-notice",
)

# Normalized address components copied as "<key>-to".
ADDRESS_KEYS = (
    "address-type",
    "area",
    "building",
    "corpus",
    "hotel",
    "house",
    "index",
    "letter",
    "location",
    "num-address-type",
    "place",
    "region",
    "room",
    "slash",
    "street",
)

PREPAID_CATEGORY = "ORDERED"
CASH_ON_DELIVERY_CATEGORY = "WITH_DECLARED_VALUE_AND_CASH_ON_DELIVERY"


def to_minor_units(amount: float) -> int:
    """Money in kopecks, rounded up."""
    return math.ceil(round(float(amount) * 100, 6))


def to_grams(weight: float) -> int:
    return max(1, math.ceil(round(float(weight) * 1000, 6)))


def phone_digits(phone: Any) -> str | None:
    """Ten national digits, or None when the number has any other length."""
    digits = re.sub(r"\D", "", str(phone or ""))
    if len(digits) == 10:
        return digits
    return None


def _text(record: Order, name: str) -> str:
    return str(field_value(record, name) or "").strip()


class PayloadBuilder:
    """Maps an order and its normalized address onto carrier fields."""

    def __init__(
        self,
        settings: SenderSettings,
        resolver: WeightDimensionResolver | None = None,
    ):
        self.settings = settings
        self.fields = settings.fields
        self.resolver = resolver or WeightDimensionResolver(settings)

    def recipient_name(self, order: Order) -> str:
        parts = [_text(order, name) for name in self.fields.full_name_components]
        return " ".join(p for p in parts if p)

    def build(
        self, order: Order, normalized: NormalizedAddress | None
    ) -> dict[str, Any] | None:
        """Return the backlog payload for one order, or None to skip it."""
        if not normalized:
            return None

        order_id = str(order.id).strip()
        payload: dict[str, Any] = {
            key: self.settings.predefined_data[key]
            for key in SHIPMENT_FLAGS
            if key in self.settings.predefined_data
        }
        payload.update(
            {
                "comment": order_id,
                "given-name": _text(order, self.fields.first_name),
                "mass": to_grams(self.resolver.weight(order)),
                "order-num": order_id,
                "recipient-name": self.recipient_name(order),
                "surname": _text(order, self.fields.last_name),
            }
        )
        middle_name = _text(order, self.fields.second_name)
        if middle_name:
            payload["middle-name"] = middle_name

        for key in ADDRESS_KEYS:
            value = normalized.get(key)
            if value is not None:
                payload[f"{key}-to"] = value
        if "index-to" in payload:
            index = str(payload["index-to"]).strip()
            payload["str-index-to"] = index
            if index.isdigit():
                payload["index-to"] = int(index)
            else:
                del payload["index-to"]

        if order.paid:
            payload["mail-category"] = PREPAID_CATEGORY
        else:
            payload["mail-category"] = CASH_ON_DELIVERY_CATEGORY
            payload["insr-value"] = payload["payment"] = to_minor_units(order.sum)

        digits = phone_digits(field_value(order, self.fields.phone))
        if digits:
            payload["tel-address"] = int("7" + digits)

        payload.update(self.settings.override_data)
        return payload

    def build_many(
        self, orders: list[Order], normalized: dict[str, NormalizedAddress]
    ) -> dict[str, dict[str, Any] | None]:
        result = {}
        for order in orders:
            order_id = str(order.id).strip()
            result[order_id] = self.build(order, normalized.get(order_id))
            if result[order_id] is None:
                logger.info("Order #%s has no normalized address, skipped", order_id)
        return result
