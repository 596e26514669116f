"""Tracking operation matching and order history reconciliation.

Carrier operations are identified by a dotted code ``<type>[.<attribute>]``,
e.g. ``2.1`` (handed to the addressee). Rules map code patterns, where a
``*`` segment matches anything, to local order statuses. Each tracking pass
merges the operations into the order history without ever recording the
same ``(status, time)`` pair twice, so repeated polls converge.
"""

import logging
import re
from datetime import datetime

from post_fulfillment.base_store import OrderStore
from post_fulfillment.config import TrackingSettings
from post_fulfillment.models import (
    HistoryChange,
    HistoryEntry,
    Order,
    TrackingOperation,
    TrackingRule,
    field_value,
)
from post_fulfillment.tracking_client import TrackingClient

logger = logging.getLogger(__name__)


def code_matches(pattern: str | int, code: str | int) -> bool:
    """Check an operation code against a pattern.

    Codes are compared as strings, so "8.10" never equals "8.1". Only the
    pattern's own segments are checked: "2" matches "2.2", "2.2" does not
    match "2".
    """
    pattern = str(pattern).strip()
    code = str(code).strip()
    if pattern == code:
        return True
    actual = code.split(".")
    for i, segment in enumerate(pattern.split(".")):
        if segment == "*":
            continue
        if i >= len(actual) or actual[i] != segment:
            return False
    return True


class TrackingRuleSet:
    """Ordered tracking rules; the first rule whose codes match wins."""

    def __init__(self, rules: list[TrackingRule]):
        self.rules = list(rules)

    def resolve(self, code: str | int) -> TrackingRule | None:
        """Return the rule for a code, or None when the code is not tracked.

        A code excluded by any rule reached during the scan is not tracked
        at all, even if a later rule would include it.
        """
        for rule in self.rules:
            if any(code_matches(p, code) for p in rule.ignore_codes):
                return None
            if any(code_matches(p, code) for p in rule.codes):
                return rule
        return None


def _timestamp(value) -> int:
    if isinstance(value, datetime):
        return int(value.timestamp())
    return int(datetime.fromisoformat(str(value).strip()).timestamp())


def parse_operations(
    records: list[dict], rule_set: TrackingRuleSet
) -> list[TrackingOperation]:
    """Turn raw history records into operations with a local status.

    Records whose code no rule tracks are dropped.
    """
    operations = []
    for record in records:
        params = record.get("OperationParameters") or {}
        oper_type = params.get("OperType") or {}
        oper_attr = params.get("OperAttr") or {}

        code = str(oper_type.get("Id", "")).strip()
        if oper_attr.get("Id"):
            code += f".{oper_attr['Id']}"
        rule = rule_set.resolve(code)
        if rule is None:
            logger.debug("Operation %s is not tracked", code)
            continue

        description = str(oper_type.get("Name") or "").strip()
        if oper_attr.get("Name"):
            description += f" / {oper_attr['Name']}"
        if rule.include_address:
            address = (record.get("AddressParameters") or {}).get("OperationAddress") or {}
            description += f" / {address.get('Index') or ''} {address.get('Description') or ''}"
            description = description.rstrip()

        date = params.get("OperDate")
        operations.append(
            TrackingOperation(
                datetime_original=date.isoformat() if isinstance(date, datetime) else str(date),
                time=_timestamp(date),
                code=code,
                status_id=rule.status_id,
                description=description,
            )
        )
    return operations


def _find_history_entry(
    time: int, status_id: int, history: list[HistoryEntry]
) -> tuple[HistoryEntry, bool] | None:
    """Find the entry recording this event, or the last one before it.

    ``history`` must be sorted by time, newest first. The flag is True for
    an exact ``(status, time)`` match.
    """
    for entry in history:
        if entry.status_id == status_id and entry.time == time:
            return entry, True
        if entry.time < time:
            return entry, False
    return None


def reconcile_history(
    order: Order, operations: list[TrackingOperation], actor_id: int = 0
) -> HistoryChange:
    """Compute the history entries and status change a tracking pass implies.

    Operations are considered in feed order; the status follows the latest
    operation newer than anything already in the history. New entries are
    returned oldest first so stores assign identifiers in time order.
    """
    change = HistoryChange()
    history = sorted(order.history, key=lambda e: e.time, reverse=True)
    last_time = history[0].time if history else 0
    last_status_id = order.status_id
    queued: set[tuple[int, int]] = set()

    for operation in operations:
        found = _find_history_entry(operation.time, operation.status_id, history)
        if found and found[1]:
            continue
        key = (operation.status_id, operation.time)
        if key in queued:
            continue
        queued.add(key)
        change.history.append(
            HistoryEntry(
                order_id=str(order.id),
                status_id=operation.status_id,
                time=operation.time,
                description=operation.description,
                paid=found[0].paid if found else False,
                actor_id=actor_id,
            )
        )
        if operation.time > last_time:
            last_time = operation.time
            last_status_id = operation.status_id

    if last_status_id != order.status_id:
        change.status_id = last_status_id
    change.history.sort(key=lambda e: e.time)
    return change


class OrderTracker:
    """Polls tracking for every open order and applies the changes."""

    def __init__(
        self,
        client: TrackingClient,
        store: OrderStore,
        settings: TrackingSettings,
    ):
        self.client = client
        self.store = store
        self.settings = settings
        self.rule_set = TrackingRuleSet(settings.rules)

    def barcode(self, order: Order) -> str:
        raw = field_value(order, self.settings.barcode_field)
        return re.sub(r"\s+", "", str(raw or ""))

    def orders_to_track(self, orders: list[Order]) -> list[Order]:
        """Orders with a tracking number that never reached a final status.

        History is checked too because an administrator may move an order
        out of a final status by hand.
        """
        final = set(self.settings.final_statuses)
        result = []
        for order in orders:
            if not self.barcode(order):
                continue
            if order.status_id in final:
                continue
            if any(entry.status_id in final for entry in order.history):
                continue
            result.append(order)
        return result

    def run(self) -> None:
        orders = self.orders_to_track(self.store.get_orders())
        logger.info("Found %d orders to track", len(orders))
        self.track_orders(orders)

    def track_orders(self, orders: list[Order]) -> None:
        total = len(orders)
        for i, order in enumerate(orders, 1):
            try:
                self.track_order(order)
            except Exception as exc:
                logger.error(
                    "%s: %s in order #%s", type(exc).__name__, exc, order.id
                )
                continue
            logger.info("Processed order #%s (%d/%d)", order.id, i, total)

    def track_order(self, order: Order) -> HistoryChange | None:
        barcode = self.barcode(order)
        if not barcode:
            logger.warning("Order #%s has no tracking number", order.id)
            return None
        records = self.client.get_operation_history(barcode)
        operations = parse_operations(records, self.rule_set)
        change = reconcile_history(order, operations, self.settings.actor_id)
        for entry in change.history:
            self.store.add_history(order, entry)
        if change.status_id is not None:
            order.status_id = change.status_id
            self.store.save_order(order)
        return change
