"""Package weight, dimensions and size class."""

from typing import Any

from post_fulfillment.config import SenderSettings
from post_fulfillment.models import Cart, Order, field_value

DIMENSIONS = ("length", "width", "height")

# Sorted (smallest, middle, largest) upper bounds in millimetres.
_SIZE_CLASSES = [
    ("S", (260, 170, 80)),
    ("M", (300, 200, 150)),
    ("L", (400, 270, 180)),
    ("XL", (530, 260, 220)),
]


def _number(value: Any) -> float:
    if value is None or value == "":
        return 0.0
    try:
        return float(str(value).replace(",", ".").strip())
    except ValueError:
        return 0.0


def classify_dimensions(x: float, y: float, z: float) -> str:
    """Return the carrier size class for a package in millimetres.

    The measurements are sorted, so their order does not matter.
    """
    sizes = sorted((int(x), int(y), int(z)))
    for name, limits in _SIZE_CLASSES:
        if all(size <= limit for size, limit in zip(sizes, limits)):
            return name
    return "OVERSIZED"


class WeightDimensionResolver:
    """Derives shippable weight and size for an order or a cart."""

    def __init__(self, settings: SenderSettings):
        self.settings = settings
        self.fields = settings.fields

    def weight(self, record: Order | Cart) -> float:
        """Total weight in kg (after the weight ratio)."""
        result = _number(field_value(record, self.fields.weight))
        if not result:
            default_item = float(self.settings.default_item_weight)
            for item in record.items:
                item_weight = _number(field_value(item, self.fields.item_weight))
                result += max(item_weight, default_item) * item.amount
            if not result:
                result = float(self.settings.default_weight)
        return result * self.settings.weight_ratio

    def dimension(self, record: Order | Cart, name: str) -> float:
        """One package dimension (after its ratio).

        Without an explicit value on the record, only a single-item record
        takes the item's size; anything else gets the configured default.
        """
        dimension = self.settings.dimension(name)
        result = _number(field_value(record, getattr(self.fields, name)))
        if not result:
            if len(record.items) == 1:
                item = record.items[0]
                item_field = getattr(self.fields, f"item_{name}")
                result = _number(field_value(item, item_field)) or float(
                    dimension.default_item
                )
            if not result:
                result = float(dimension.default)
        return result * dimension.ratio

    def dimensions(self, record: Order | Cart) -> dict[str, float]:
        return {name: self.dimension(record, name) for name in DIMENSIONS}
