"""Delivery cost and lead time estimates for a cart."""

import logging
import math
from typing import Any

from post_fulfillment.address import AddressNormalizer
from post_fulfillment.config import SenderSettings
from post_fulfillment.dimensions import WeightDimensionResolver, classify_dimensions
from post_fulfillment.errors import TransportError
from post_fulfillment.models import Cart, ShippingEstimate
from post_fulfillment.payload import to_grams
from post_fulfillment.send_client import SendClient

logger = logging.getLogger(__name__)

TARIFF_FLAGS = (
    "completeness-checking",
    "contents-checking",
    "courier",
    "entries-type",
    "fragile",
    "index-from",
    "inventory",
    "mail-category",
    "mail-direct",
    "mail-type",
    "notice-payment-method",
    "payment-method",
    "sms-notice-recipient",
    "transport-type",
    "vsd",
    "with-electronic-notice",
    "with-order-of-notice",
    "with-simple-notice",
)


class CostEstimator:
    """Queries the carrier tariff for a cart, falling back to a flat price."""

    def __init__(
        self,
        client: SendClient,
        settings: SenderSettings,
        normalizer: AddressNormalizer | None = None,
        resolver: WeightDimensionResolver | None = None,
    ):
        self.client = client
        self.settings = settings
        self.normalizer = normalizer or AddressNormalizer(client, settings.fields)
        self.resolver = resolver or WeightDimensionResolver(settings)

    @property
    def default_estimate(self) -> ShippingEstimate:
        return ShippingEstimate(price=float(self.settings.default_delivery_price))

    def tariff_query(self, cart: Cart) -> dict[str, Any]:
        """Tariff request body without the destination index."""
        data = {
            key: self.settings.predefined_data[key]
            for key in TARIFF_FLAGS
            if key in self.settings.predefined_data
        }
        if not data.get("index-from"):
            data.pop("index-from", None)
        data["mass"] = to_grams(self.resolver.weight(cart))
        dimension = {
            name: int(math.ceil(value))
            for name, value in self.resolver.dimensions(cart).items()
        }
        data["dimension"] = dimension
        data["dimension-type"] = classify_dimensions(
            dimension["length"], dimension["width"], dimension["height"]
        )
        data["declared-value"] = cart.sum
        return data

    def estimate_cart(self, cart: Cart) -> ShippingEstimate:
        """Delivery price (major units, rounded up) and lead time for a cart."""
        normalized = self.normalizer.normalize_cart(cart)
        if normalized is None or not normalized.index:
            logger.warning("Cart address could not be normalized, using default price")
            return self.default_estimate

        data = self.tariff_query(cart)
        index = normalized.index
        data["index-to"] = int(index) if index.isdigit() else index

        try:
            raw = self.client.tariff(data)
        except TransportError as exc:
            logger.warning("Tariff request failed, using default price: %s", exc)
            return self.default_estimate
        if not isinstance(raw, dict):
            logger.warning("Unexpected tariff response, using default price")
            return self.default_estimate

        estimate = self.default_estimate
        if raw.get("total-rate"):
            estimate.price = float(math.ceil(raw["total-rate"] / 100))
        delivery_time = raw.get("delivery-time") or {}
        if delivery_time.get("min-days"):
            estimate.min_days = delivery_time["min-days"]
        if delivery_time.get("max-days"):
            estimate.max_days = delivery_time["max-days"]
        return estimate

    def quote_cart(self, cart: Cart) -> float:
        """Delivery price with the storefront price ratio applied."""
        price = self.estimate_cart(cart).price
        cart_sum = float(cart.sum)
        return price + (cart_sum + price) * (self.settings.price_ratio - 1)
