#!/usr/bin/env python3
"""CLI entry point for Russian Post shipment submission and tracking."""

import argparse
import logging
import sys

from post_fulfillment.address import AddressNormalizer
from post_fulfillment.config import SenderSettings, load_tracking_settings
from post_fulfillment.errors import ConfigurationError
from post_fulfillment.estimator import CostEstimator
from post_fulfillment.json_store import JsonOrderStore, load_cart
from post_fulfillment.send_client import SendClient
from post_fulfillment.submitter import ShipmentSubmitter
from post_fulfillment.tracking import OrderTracker
from post_fulfillment.tracking_client import TrackingClient

logger = logging.getLogger("post_fulfillment")


def _print_addresses(orders, normalized):
    """Print normalized order addresses to stdout."""
    print(f"\n{'=' * 70}")
    print("  NORMALIZED ADDRESSES")
    print(f"  {len(normalized)} of {len(orders)} order(s) normalized")
    print(f"{'=' * 70}\n")

    for order in orders:
        address = normalized.get(str(order.id).strip())
        print(f"  Order #{order.id}")
        if address is None:
            print("    (not normalized)\n")
            continue
        print(f"    Input:   {address.stringified_input}")
        print(f"    Index:   {address.index}")
        print(f"    Quality: {address.get('quality-code')} / {address.get('validation-code')}")
        print(f"    Correct: {'yes' if address.is_correct else 'NO'}")
        print()


def _print_report(report):
    """Print a submission report to stdout."""
    print(f"\nSubmitted {len(report.shipments)} order(s), {len(report.errors)} rejected.")
    for order_id, (shipment_id, barcode) in report.shipments.items():
        print(f"  Order #{order_id}: shipment {shipment_id}, tracking {barcode or '-'}")
    for order_id, text in report.errors.items():
        print(f"  Order #{order_id} rejected: {text}")


def _sender_settings(args) -> SenderSettings:
    settings = SenderSettings()
    if args.barcode_field:
        settings.fields.barcode = args.barcode_field
    if getattr(args, "sent_status", None) is not None:
        settings.sent_status_id = args.sent_status
    if getattr(args, "default_price", None) is not None:
        settings.default_delivery_price = args.default_price
    if getattr(args, "price_ratio", None) is not None:
        settings.price_ratio = args.price_ratio
    return settings


def _send_client(args) -> SendClient:
    return SendClient(
        login=args.login,
        password=args.password,
        token=args.token,
        timeout=args.timeout,
    )


def cmd_normalize(args):
    store = JsonOrderStore(args.orders)
    settings = _sender_settings(args)
    normalizer = AddressNormalizer(_send_client(args), settings.fields)
    orders = store.get_orders()
    _print_addresses(orders, normalizer.normalize_orders(orders))


def cmd_estimate(args):
    cart = load_cart(args.cart)
    estimator = CostEstimator(_send_client(args), _sender_settings(args))
    estimate = estimator.estimate_cart(cart)
    print(f"Delivery price: {estimate.price:.2f}")
    if estimate.min_days or estimate.max_days:
        print(f"Delivery time:  {estimate.min_days or '?'}-{estimate.max_days or '?'} day(s)")
    if estimator.settings.price_ratio != 1:
        print(f"Quoted price:   {estimator.quote_cart(cart):.2f}")


def cmd_send(args):
    store = JsonOrderStore(args.orders)
    orders = store.get_orders()
    if args.order_id:
        wanted = set(args.order_id)
        orders = [o for o in orders if o.id in wanted]
    if not orders:
        print("No orders to send.")
        return
    submitter = ShipmentSubmitter(_send_client(args), store, _sender_settings(args))
    _print_report(submitter.send_orders(orders))


def cmd_track(args):
    settings = load_tracking_settings(args.rules, _sender_settings(args).fields)
    store = JsonOrderStore(args.orders)
    client = TrackingClient(
        login=args.login,
        password=args.password,
        timeout=args.timeout,
        language=settings.language,
    )
    OrderTracker(client, store, settings).run()


def main():
    parser = argparse.ArgumentParser(
        description="Submit orders to Russian Post and reconcile their tracking history.",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Log debug output.",
    )

    # Shared credential arguments.
    parser.add_argument(
        "--login",
        help="API login (overrides POST_LOGIN / TRACKING_LOGIN env vars).",
    )
    parser.add_argument(
        "--password",
        help="API password (overrides POST_PASSWORD / TRACKING_PASSWORD env vars).",
    )
    parser.add_argument(
        "--token",
        help="Application token for the shipment API (overrides POST_TOKEN env var).",
    )
    parser.add_argument(
        "--timeout",
        type=float,
        help="Request timeout in seconds (overrides POST_TIMEOUT env var).",
    )
    parser.add_argument(
        "--barcode-field",
        help='Order field holding the tracking number (default: "barcode").',
    )

    commands = parser.add_subparsers(dest="command", required=True)

    normalize = commands.add_parser("normalize", help="Normalize order addresses.")
    normalize.add_argument("--orders", required=True, metavar="FILE", help="Orders JSON file.")
    normalize.set_defaults(func=cmd_normalize)

    estimate = commands.add_parser("estimate", help="Estimate delivery for a cart.")
    estimate.add_argument("--cart", required=True, metavar="FILE", help="Cart JSON file.")
    estimate.add_argument("--default-price", type=float, help="Price used when the tariff is unavailable.")
    estimate.add_argument("--price-ratio", type=float, help="Storefront price ratio.")
    estimate.set_defaults(func=cmd_estimate)

    send = commands.add_parser("send", help="Submit orders to the shipment backlog.")
    send.add_argument("--orders", required=True, metavar="FILE", help="Orders JSON file.")
    send.add_argument("--order-id", action="append", help="Only send this order (repeatable).")
    send.add_argument("--sent-status", type=int, help="Status to set on submitted orders.")
    send.set_defaults(func=cmd_send)

    track = commands.add_parser("track", help="Reconcile tracking history of open orders.")
    track.add_argument("--orders", required=True, metavar="FILE", help="Orders JSON file.")
    track.add_argument("--rules", metavar="FILE", help="Tracking rules JSON file.")
    track.set_defaults(func=cmd_track)

    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        args.func(args)
    except ConfigurationError as exc:
        logger.error("Run aborted: %s", exc)
        print(f"Error: {exc}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
