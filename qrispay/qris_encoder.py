"""QRIS payload builder: turns a static merchant payload into a dynamic one."""
from __future__ import annotations

import logging
from dataclasses import dataclass

from .config import COUNTRY_ANCHOR, QRISConfig
from .crc import crc16_ccitt
from .services.errors import err_invalid_amount, err_missing_transaction_id
from .tlv import TLVItem, insert_before
from .validator import validate_payload

STATIC_INITIATION = "010211"
DYNAMIC_INITIATION = "010212"
AMOUNT_TAG = "54"
CRC_HEADER = "6304"

logger = logging.getLogger("qrispay.encoder")


@dataclass(frozen=True)
class EncodedPayload:
    payload: str
    crc: str
    amount: int
    transaction_id: str


def strip_crc(base_payload: str) -> str:
    """Drop the trailing CRC digits, keeping the ``6304`` header.

    A payload already ending in a bare ``6304`` is returned unchanged; any
    other payload without a ``6304XXXX`` trailer gets the header appended.
    """

    if len(base_payload) >= 8 and base_payload[-8:-4] == CRC_HEADER:
        return base_payload[:-4]
    if base_payload.endswith(CRC_HEADER):
        return base_payload
    return base_payload + CRC_HEADER


def to_dynamic(payload: str) -> str:
    return payload.replace(STATIC_INITIATION, DYNAMIC_INITIATION, 1)


def amount_field(amount: int) -> str:
    return TLVItem(tag=AMOUNT_TAG, value=str(amount)).serialize()


def build_payload(base_string: str, merchant_id: str, amount: int, transaction_id: str) -> EncodedPayload:
    """Inject ``amount`` into ``base_string`` and append a fresh CRC16.

    ``merchant_id`` is not written into the payload; the static base already
    carries it. It is logged alongside the transaction for traceability.
    """

    if isinstance(amount, bool) or not isinstance(amount, int) or amount <= 0:
        raise err_invalid_amount()
    if not transaction_id:
        raise err_missing_transaction_id()

    body = insert_before(to_dynamic(strip_crc(base_string)), COUNTRY_ANCHOR, amount_field(amount))

    crc = crc16_ccitt(body)
    logger.debug(
        "payload built",
        extra={"merchant_id": merchant_id, "transaction_id": transaction_id, "amount": amount, "crc": crc},
    )
    return EncodedPayload(payload=f"{body}{crc}", crc=crc, amount=amount, transaction_id=transaction_id)


class PayloadBuilder:
    """Reusable builder bound to one merchant configuration."""

    def __init__(self, config: QRISConfig):
        self.config = config

    def build(self, amount: int, transaction_id: str) -> EncodedPayload:
        return build_payload(self.config.base_qr_string, self.config.merchant_id, amount, transaction_id)

    def validate(self, payload: str) -> None:
        validate_payload(payload, self.config.merchant_id)
