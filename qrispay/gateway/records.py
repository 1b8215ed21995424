"""Normalized payment records and the matching rule shared by every gateway."""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from decimal import Decimal
from enum import Enum
from typing import Collection, Iterable

STATIC_QRIS = "static"
CREDIT = "CR"


class PaymentState(str, Enum):
    PAID = "PAID"
    UNPAID = "UNPAID"


@dataclass(frozen=True, slots=True)
class PaymentRecord:
    amount: Decimal
    timestamp: datetime
    qris: str
    type: str
    reference: str = ""
    brand_name: str = ""
    buyer_reference: str = ""
    raw_date: str = ""


@dataclass(frozen=True, slots=True)
class PaymentStatus:
    status: PaymentState
    amount: int
    reference: str
    date: str = ""
    brand_name: str = ""
    buyer_reference: str = ""

    @property
    def paid(self) -> bool:
        return self.status is PaymentState.PAID

    @classmethod
    def unpaid(cls, reference: str, amount: int) -> "PaymentStatus":
        return cls(status=PaymentState.UNPAID, amount=amount, reference=reference)

    @classmethod
    def from_record(cls, record: PaymentRecord) -> "PaymentStatus":
        return cls(
            status=PaymentState.PAID,
            amount=int(record.amount),
            reference=record.reference,
            date=record.raw_date or record.timestamp.isoformat(),
            brand_name=record.brand_name,
            buyer_reference=record.buyer_reference,
        )


def is_match(record: PaymentRecord, amount: int, now: datetime, window: timedelta) -> bool:
    """Incoming static QRIS credit of exactly ``amount`` seen within ``window`` of ``now``."""

    return (
        record.amount == Decimal(amount)
        and record.qris == STATIC_QRIS
        and record.type == CREDIT
        and abs(now - record.timestamp) <= window
    )


def latest_match(
    records: Iterable[PaymentRecord],
    amount: int,
    now: datetime,
    window: timedelta,
    exclude: Collection[str] = (),
) -> PaymentRecord | None:
    """Newest matching record whose issuer reference is not in ``exclude``."""

    matches = [
        record
        for record in records
        if is_match(record, amount, now, window) and not (record.reference and record.reference in exclude)
    ]
    if not matches:
        return None
    return max(matches, key=lambda record: record.timestamp)
