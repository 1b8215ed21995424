"""Polling loop that waits for a QRIS payment to show up at the gateway."""
from __future__ import annotations

import asyncio
import logging
import time

from ..services.errors import NetworkError, err_payment_timeout
from .client import PaymentChecker
from .records import PaymentStatus

DEFAULT_INTERVAL = 5.0

logger = logging.getLogger("qrispay.poller")


async def poll_until_paid(
    checker: PaymentChecker,
    reference: str,
    amount: int,
    *,
    interval: float = DEFAULT_INTERVAL,
    max_attempts: int | None = None,
    timeout: float | None = None,
) -> PaymentStatus:
    """Check every ``interval`` seconds until the payment is PAID.

    ``NetworkError`` is logged and the next cycle retries. Other errors
    propagate. Raises ``PaymentTimeout`` once ``max_attempts`` checks or
    ``timeout`` seconds are used up; with neither set the loop only ends on
    payment or task cancellation.
    """

    deadline = time.monotonic() + timeout if timeout is not None else None
    attempt = 0
    while True:
        attempt += 1
        try:
            status = await checker.check_status(reference, amount)
        except NetworkError as exc:
            logger.warning("payment check failed", extra={"reference": reference, "attempt": attempt, "error": exc.message})
        else:
            if status.paid:
                return status
            logger.info("waiting for payment", extra={"reference": reference, "attempt": attempt})

        if max_attempts is not None and attempt >= max_attempts:
            raise err_payment_timeout(f"Payment {reference} not confirmed after {attempt} checks")
        if deadline is not None and time.monotonic() + interval > deadline:
            raise err_payment_timeout(f"Payment {reference} not confirmed within {timeout} seconds")
        await asyncio.sleep(interval)
