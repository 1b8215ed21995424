"""Structural and checksum verification of complete QRIS payloads."""
from __future__ import annotations

from .config import COUNTRY_ANCHOR
from .crc import crc16_ccitt
from .services.errors import (
    err_amount_tag_missing,
    err_checksum_mismatch,
    err_country_tag_missing,
    err_merchant_mismatch,
    err_payload_too_short,
)

MIN_PAYLOAD_LENGTH = 20
AMOUNT_MARKER = "54"


def validate_payload(payload: str, expected_merchant_id: str) -> None:
    """Run the QRIS checks in order and raise on the first failure.

    Order: minimum length, country anchor, merchant id, amount marker, CRC16.
    Each failure raises a distinct
    :class:`~qrispay.services.errors.PayloadValidationError` subclass.
    """

    if len(payload) < MIN_PAYLOAD_LENGTH:
        raise err_payload_too_short()
    if COUNTRY_ANCHOR not in payload:
        raise err_country_tag_missing()
    if expected_merchant_id not in payload:
        raise err_merchant_mismatch()
    if AMOUNT_MARKER not in payload:
        raise err_amount_tag_missing()

    expected = crc16_ccitt(payload[:-4])
    actual = payload[-4:]
    if expected != actual:
        raise err_checksum_mismatch(f"Invalid checksum: expected {expected}, got {actual}")
