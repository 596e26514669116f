"""Settings for shipment mapping, estimation and tracking."""

import json
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from post_fulfillment.errors import ConfigurationError
from post_fulfillment.models import TrackingRule

logger = logging.getLogger(__name__)

# Flags sent with every tariff query and, partly, with every shipment.
DEFAULT_PREDEFINED_DATA: dict[str, Any] = {
    "completeness-checking": False,
    "contents-checking": True,
    "courier": False,
    "entries-type": "GIFT",
    "fragile": False,
    "index-from": None,
    "inventory": True,
    "mail-category": "WITH_DECLARED_VALUE",
    "mail-direct": 643,  # Russia
    "mail-type": "POSTAL_PARCEL",
    "manual-address-input": False,
    "notice-payment-method": "CASHLESS",
    "payment-method": "CASHLESS",
    "sms-notice-recipient": 0,
    "transport-type": "COMBINED",
    "vsd": True,
    "with-electronic-notice": True,
    "with-order-of-notice": False,
    "with-simple-notice": False,
}


@dataclass
class FieldMap:
    """Names of the order, cart and item fields the mapping reads."""

    address_components: list[str] = field(
        default_factory=lambda: [
            "post_code", "region", "city", "street", "house", "apartment",
        ]
    )
    full_name_components: list[str] = field(
        default_factory=lambda: ["last_name", "first_name", "second_name"]
    )
    post_code: str = "post_code"
    last_name: str = "last_name"
    first_name: str = "first_name"
    second_name: str = "second_name"
    phone: str = "phone"
    weight: str = "weight"
    item_weight: str = "weight"
    length: str = "length"
    item_length: str = "length"
    width: str = "width"
    item_width: str = "width"
    height: str = "height"
    item_height: str = "height"
    barcode: str = "barcode"


@dataclass
class Dimension:
    """Default and unit ratio for one package dimension."""

    default_item: float = 10
    default: float = 20
    ratio: float = 10  # centimetres to millimetres


@dataclass
class SenderSettings:
    """Everything the payload builder, estimator and submitter need."""

    fields: FieldMap = field(default_factory=FieldMap)
    weight_ratio: float = 1
    default_item_weight: float = 0.1  # kg
    default_weight: float = 1  # kg
    length: Dimension = field(default_factory=Dimension)
    width: Dimension = field(default_factory=Dimension)
    height: Dimension = field(default_factory=Dimension)
    predefined_data: dict[str, Any] = field(
        default_factory=lambda: dict(DEFAULT_PREDEFINED_DATA)
    )
    override_data: dict[str, Any] = field(default_factory=dict)
    sent_status_id: int = 0
    default_delivery_price: float = 200
    price_ratio: float = 1
    actor_id: int = 0

    def dimension(self, name: str) -> Dimension:
        if name not in ("length", "width", "height"):
            raise ValueError(f"Unknown dimension: {name}")
        return getattr(self, name)


def _default_rules() -> list[TrackingRule]:
    return [
        TrackingRule(codes=["2.2"], status_id=3),
        TrackingRule(codes=["2"], ignore_codes=["2.2"], status_id=2),
    ]


@dataclass
class TrackingSettings:
    """Operation code rules and the order selection for a tracking run.

    The tracking number is read from ``fields.barcode``; pass the same
    :class:`FieldMap` as :class:`SenderSettings` so tracking finds what
    submission wrote.
    """

    rules: list[TrackingRule] = field(default_factory=_default_rules)
    final_statuses: list[int] = field(default_factory=lambda: [2, 3])
    fields: FieldMap = field(default_factory=FieldMap)
    actor_id: int = 0
    language: str = "RUS"

    @property
    def barcode_field(self) -> str:
        return self.fields.barcode

    @barcode_field.setter
    def barcode_field(self, name: str) -> None:
        self.fields.barcode = name

    @classmethod
    def from_dict(cls, data: dict, fields: FieldMap | None = None) -> "TrackingSettings":
        """Build settings from the ``trackOperations`` style mapping.

        Code patterns may be given as a single string/int or a list.
        """
        settings = cls(fields=fields or FieldMap())
        if "trackOperations" in data:
            settings.rules = [
                _parse_rule(raw, i) for i, raw in enumerate(data["trackOperations"])
            ]
        if "finalStatuses" in data:
            settings.final_statuses = [int(s) for s in data["finalStatuses"] or []]
        if data.get("barcodeVar"):
            settings.barcode_field = str(data["barcodeVar"])
        if "actorId" in data:
            settings.actor_id = int(data["actorId"])
        if data.get("language"):
            settings.language = str(data["language"])
        return settings


def _as_list(value: Any) -> list[str]:
    if value is None:
        return []
    if isinstance(value, (list, tuple)):
        return [str(v).strip() for v in value]
    return [str(value).strip()]


def _parse_rule(raw: Any, position: int) -> TrackingRule:
    if not isinstance(raw, dict):
        raise ConfigurationError(f"trackOperations[{position}] must be an object")
    codes = _as_list(raw.get("opCodes"))
    if not codes:
        raise ConfigurationError(f"trackOperations[{position}] has no opCodes")
    if raw.get("statusId") is None:
        raise ConfigurationError(f"trackOperations[{position}] has no statusId")
    try:
        status_id = int(raw["statusId"])
    except (TypeError, ValueError) as exc:
        raise ConfigurationError(
            f"trackOperations[{position}].statusId is not an integer"
        ) from exc
    return TrackingRule(
        codes=codes,
        ignore_codes=_as_list(raw.get("ignoreOpCodes")),
        status_id=status_id,
        include_address=bool(raw.get("includeAddress", False)),
    )


def load_tracking_settings(
    path: str | Path | None = None, fields: FieldMap | None = None
) -> TrackingSettings:
    """Load tracking settings from a JSON file, or return the defaults."""
    if not path:
        return TrackingSettings(fields=fields or FieldMap())
    try:
        with open(path, encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, json.JSONDecodeError) as exc:
        raise ConfigurationError(f"Cannot read tracking rules from {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigurationError(f"Tracking rules in {path} must be a JSON object")
    settings = TrackingSettings.from_dict(data, fields)
    logger.debug("Loaded %d tracking rules from %s", len(settings.rules), path)
    return settings


def env_timeout(default: float) -> float:
    """Request timeout in seconds from ``POST_TIMEOUT``, or ``default``."""
    raw = os.getenv("POST_TIMEOUT")
    if raw is None:
        return float(default)
    try:
        return float(raw)
    except ValueError as exc:
        raise ConfigurationError(f"POST_TIMEOUT must be a number, got {raw!r}") from exc
