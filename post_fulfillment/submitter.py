"""Batch submission of orders to the carrier's shipment backlog."""

import logging
import time

from post_fulfillment.address import AddressNormalizer
from post_fulfillment.base_store import OrderStore
from post_fulfillment.config import SenderSettings
from post_fulfillment.errors import TransportError
from post_fulfillment.models import HistoryEntry, Order, SubmissionReport
from post_fulfillment.payload import PayloadBuilder
from post_fulfillment.send_client import SendClient

logger = logging.getLogger(__name__)


def _error_text(error: dict) -> str:
    codes = error.get("error-codes") or []
    return "\n".join(str(code.get("description", "")) for code in codes)


class ShipmentSubmitter:
    """Registers orders with the carrier and records their tracking numbers."""

    def __init__(
        self,
        client: SendClient,
        store: OrderStore,
        settings: SenderSettings,
        normalizer: AddressNormalizer | None = None,
        builder: PayloadBuilder | None = None,
    ):
        self.client = client
        self.store = store
        self.settings = settings
        self.normalizer = normalizer or AddressNormalizer(client, settings.fields)
        self.builder = builder or PayloadBuilder(settings)

    def send_orders(self, orders: list[Order]) -> SubmissionReport:
        """Submit orders in one batch.

        Orders without a normalized address are skipped. Item errors are
        recorded on the order they belong to; every other order gets its
        shipment ID, a history entry and its tracking number.
        """
        report = SubmissionReport()
        normalized = self.normalizer.normalize_orders(orders)
        payloads = self.builder.build_many(orders, normalized)

        to_send: list[Order] = []
        data: list[dict] = []
        for order in orders:
            order_id = str(order.id).strip()
            if order_id in normalized:
                order.normalized_address = normalized[order_id]
            payload = payloads.get(order_id)
            if payload:
                order.shipment_errors = ""
                data.append(payload)
                to_send.append(order)

        if not data:
            logger.info("No orders with a deliverable address to submit")
            return report

        try:
            result = self.client.create_backlog(data)
        except TransportError as exc:
            logger.error("Submission of %d orders failed: %s", len(data), exc)
            return report
        if not isinstance(result, dict):
            logger.error("Unexpected backlog response for %d orders", len(data))
            return report

        for error in result.get("errors") or []:
            position = error.get("position")
            if not isinstance(position, int) or not 0 <= position < len(to_send):
                logger.warning("Submission error at unknown position %r", position)
                continue
            order = to_send[position]
            order.shipment_errors = _error_text(error)
            report.errors[str(order.id)] = order.shipment_errors
            logger.warning("Order #%s rejected: %s", order.id, order.shipment_errors)
            self.store.save_order(order)

        succeeded = [order for order in to_send if not order.shipment_errors]
        result_ids = result.get("result-ids") or []
        if len(result_ids) != len(succeeded):
            logger.warning(
                "Carrier accepted %d shipments for %d orders",
                len(result_ids), len(succeeded),
            )
        for order, shipment_id in zip(succeeded, result_ids):
            barcode = self._barcode(shipment_id)
            self._record_shipment(order, str(shipment_id), barcode)
            report.shipments[str(order.id)] = (str(shipment_id), barcode)
        return report

    def _barcode(self, shipment_id) -> str:
        try:
            data = self.client.get_backlog(str(shipment_id))
        except TransportError as exc:
            logger.warning("Cannot fetch shipment %s: %s", shipment_id, exc)
            return ""
        return str(data.get("barcode") or "").strip()

    def _record_shipment(self, order: Order, shipment_id: str, barcode: str) -> None:
        description = f"Sent to Russian Post with ID# {shipment_id}"
        if barcode:
            description += f", tracking number {barcode}"
        entry = HistoryEntry(
            order_id=str(order.id),
            status_id=int(self.settings.sent_status_id or order.status_id),
            time=int(time.time()),
            description=description,
            paid=order.paid,
            actor_id=self.settings.actor_id,
        )
        self.store.add_history(order, entry)
        if self.settings.sent_status_id:
            order.status_id = int(self.settings.sent_status_id)
        order.shipment_id = shipment_id
        if barcode:
            order.fields[self.settings.fields.barcode] = barcode
        self.store.save_order(order)
        logger.info("Order #%s sent as %s %s", order.id, shipment_id, barcode)
