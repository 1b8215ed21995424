"""Command line entry point: build a QRIS payload, save it, wait for payment."""
from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from datetime import timedelta

from .config import Settings, get_settings
from .gateway.adapters import adapter_from_settings
from .gateway.client import PaymentChecker
from .gateway.poller import poll_until_paid
from .gateway.records import PaymentStatus
from .logging_conf import configure_logging
from .qris_encoder import PayloadBuilder
from .renderer import save_qr_png
from .services.errors import QrisError
from .validator import validate_payload

logger = logging.getLogger("qrispay.cli")


def _print_status(status: PaymentStatus, expected_amount: int) -> None:
    print(f"Payment status: {status.status.value}")
    print(f"Expected amount: {expected_amount}")
    print(f"Received amount: {status.amount}")
    print(f"Reference: {status.reference}")
    if status.paid:
        print(f"Date: {status.date}")
        print(f"Brand: {status.brand_name}")
        print(f"Buyer ref: {status.buyer_reference}")


def _checker(settings: Settings) -> PaymentChecker:
    return PaymentChecker(
        adapter_from_settings(settings),
        timeout=settings.request_timeout,
        recency_window=timedelta(minutes=settings.recency_window_minutes),
    )


def cmd_generate(args: argparse.Namespace, settings: Settings) -> int:
    builder = PayloadBuilder(settings.qris_config())
    encoded = builder.build(args.amount, args.transaction_id)
    print(encoded.payload)
    if args.out:
        path = save_qr_png(encoded.payload, args.out, size=args.size or settings.qr_size)
        print(f"QR code saved to {path}", file=sys.stderr)
    return 0


def cmd_validate(args: argparse.Namespace, settings: Settings) -> int:
    merchant_id = args.merchant_id if args.merchant_id is not None else settings.merchant_id
    validate_payload(args.payload, merchant_id)
    print("valid")
    return 0


async def _check(args: argparse.Namespace, settings: Settings) -> int:
    async with _checker(settings) as checker:
        if args.wait:
            status = await poll_until_paid(
                checker,
                args.transaction_id,
                args.amount,
                interval=args.interval or settings.poll_interval,
                max_attempts=args.max_attempts,
                timeout=args.timeout,
            )
        else:
            status = await checker.check_status(args.transaction_id, args.amount)
    _print_status(status, args.amount)
    return 0 if status.paid else 2


def cmd_check(args: argparse.Namespace, settings: Settings) -> int:
    return asyncio.run(_check(args, settings))


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="qrispay", description="Dynamic QRIS payloads and payment checks")
    parser.add_argument("--log-level", default=None, help="Override the configured log level")
    sub = parser.add_subparsers(dest="command", required=True)

    gen = sub.add_parser("generate", help="Build a dynamic payload for an amount")
    gen.add_argument("--amount", type=int, required=True)
    gen.add_argument("--transaction-id", required=True)
    gen.add_argument("--out", help="Write the QR code PNG to this path")
    gen.add_argument("--size", type=int, help="PNG width and height in pixels")
    gen.set_defaults(handler=cmd_generate)

    val = sub.add_parser("validate", help="Check structure and CRC of a payload")
    val.add_argument("payload")
    val.add_argument("--merchant-id", default=None)
    val.set_defaults(handler=cmd_validate)

    chk = sub.add_parser("check", help="Ask the gateway whether an amount was paid")
    chk.add_argument("--amount", type=int, required=True)
    chk.add_argument("--transaction-id", required=True)
    chk.add_argument("--wait", action="store_true", help="Keep polling until paid")
    chk.add_argument("--interval", type=float, help="Seconds between checks")
    chk.add_argument("--max-attempts", type=int)
    chk.add_argument("--timeout", type=float, help="Give up after this many seconds")
    chk.set_defaults(handler=cmd_check)
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    settings = get_settings()
    configure_logging(level=args.log_level, json_logs=False)
    try:
        return args.handler(args, settings)
    except QrisError as exc:
        logger.error("%s", exc.message, extra={"code": exc.code})
        print(f"error: {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
