"""Address normalization through the carrier's cleansing service."""

import logging
from typing import Any

from post_fulfillment.config import FieldMap
from post_fulfillment.errors import TransportError
from post_fulfillment.models import Cart, NormalizedAddress, Order, field_value
from post_fulfillment.send_client import SendClient

logger = logging.getLogger(__name__)

GOOD_QUALITY_CODES = frozenset({"GOOD", "POSTAL_BOX", "ON_DEMAND", "UNDEF_05"})
GOOD_VALIDATION_CODES = frozenset({"VALIDATED", "OVERRIDDEN", "CONFIRMED_MANUALLY"})


def is_correct(data: dict[str, Any], postal_code: Any) -> bool:
    """Whether a cleansed address can be trusted for shipping.

    Quality and validation codes must both be in their accepted sets, and
    the returned index must equal the postal code the customer entered.
    """
    if data.get("quality-code") not in GOOD_QUALITY_CODES:
        return False
    if data.get("validation-code") not in GOOD_VALIDATION_CODES:
        return False
    index = data.get("index")
    if index is None or postal_code is None:
        return False
    return str(index).strip() == str(postal_code).strip()


class AddressNormalizer:
    """Turns order and cart address fields into carrier-normalized addresses."""

    def __init__(self, client: SendClient, fields: FieldMap | None = None):
        self.client = client
        self.fields = fields or FieldMap()

    def stringify(self, record: Order | Cart) -> str:
        parts = []
        for name in self.fields.address_components:
            value = str(field_value(record, name) or "").strip()
            if value:
                parts.append(value)
        return ", ".join(parts)

    def _request(self, addresses: list[str]) -> list[dict]:
        if not addresses:
            return []
        try:
            return self.client.normalize_addresses(addresses)
        except TransportError as exc:
            logger.warning("Address normalization unavailable: %s", exc)
            return []

    def normalize_orders(self, orders: list[Order]) -> dict[str, NormalizedAddress]:
        """Normalize the addresses of several orders in one request.

        Returns:
            Mapping of order ID to normalized address, only for orders the
            service returned a result for.
        """
        stringified = [self.stringify(order) for order in orders]
        positions = [i for i, address in enumerate(stringified) if address]
        results = self._request([stringified[i] for i in positions])

        normalized: dict[str, NormalizedAddress] = {}
        for i, data in enumerate(results[: len(positions)]):
            if not isinstance(data, dict):
                continue
            j = positions[i]
            order = orders[j]
            postal_code = field_value(order, self.fields.post_code)
            normalized[str(order.id).strip()] = NormalizedAddress(
                data=data,
                stringified_input=stringified[j],
                is_correct=is_correct(data, postal_code),
            )
        if len(results) < len(positions):
            logger.info(
                "Normalized %d of %d order addresses", len(normalized), len(positions)
            )
        return normalized

    def normalize_cart(self, cart: Cart) -> NormalizedAddress | None:
        stringified = self.stringify(cart)
        results = self._request([stringified] if stringified else [])
        if not results or not isinstance(results[0], dict):
            return None
        data = results[0]
        return NormalizedAddress(
            data=data,
            stringified_input=stringified,
            is_correct=is_correct(data, field_value(cart, self.fields.post_code)),
        )
