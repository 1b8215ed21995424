"""Async payment status client built on httpx."""
from __future__ import annotations

import logging
import time
from datetime import datetime, timedelta, timezone
from types import TracebackType
from typing import Collection, Optional, Type

import httpx

from ..monitoring import record_gateway_check
from ..services.errors import err_gateway_parse, err_invalid_input, err_network
from .adapters import GatewayAdapter
from .records import PaymentStatus, latest_match

logger = logging.getLogger("qrispay.gateway")

DEFAULT_TIMEOUT = 10.0
DEFAULT_WINDOW = timedelta(minutes=5)


class PaymentChecker:
    """Ask a payment gateway whether a QRIS amount has been paid.

    - One POST per check, authenticated through the adapter's request body.
    - Transport errors and non-2xx responses raise ``NetworkError``.
    - Bodies that are not the expected JSON shape raise ``GatewayParseError``.
    """

    def __init__(
        self,
        adapter: GatewayAdapter,
        *,
        timeout: float = DEFAULT_TIMEOUT,
        recency_window: timedelta = DEFAULT_WINDOW,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.adapter = adapter
        self.recency_window = recency_window
        self._client = httpx.AsyncClient(timeout=timeout, transport=transport)

    async def _fetch(self) -> object:
        start = time.perf_counter()
        try:
            resp = await self._client.post(self.adapter.url, json=self.adapter.request_body())
            resp.raise_for_status()
        except httpx.HTTPError as exc:
            record_gateway_check("network_error", (time.perf_counter() - start) * 1000)
            raise err_network(f"Failed to reach payment gateway: {exc}") from exc
        try:
            body = resp.json()
        except ValueError as exc:
            record_gateway_check("parse_error", (time.perf_counter() - start) * 1000)
            raise err_gateway_parse("Gateway returned invalid JSON") from exc
        record_gateway_check("fetched", (time.perf_counter() - start) * 1000)
        return body

    async def check_status(
        self,
        reference: str,
        amount: int,
        now: datetime | None = None,
        *,
        exclude_references: Collection[str] = (),
    ) -> PaymentStatus:
        """Match ``amount`` against the gateway list, skipping issuer references already used."""

        if not reference or amount <= 0:
            raise err_invalid_input("reference and amount must be filled correctly")

        logger.info("checking payment status", extra={"reference": reference, "amount": amount})
        body = await self._fetch()
        success, records = self.adapter.parse(body)
        if not success or not records:
            record_gateway_check("unpaid")
            return PaymentStatus.unpaid(reference, amount)

        now = now or datetime.now(timezone.utc)
        match = latest_match(records, amount, now, self.recency_window, exclude=exclude_references)
        if match is None:
            logger.info("no matching payment found", extra={"reference": reference, "amount": amount})
            record_gateway_check("unpaid")
            return PaymentStatus.unpaid(reference, amount)

        logger.info(
            "payment found",
            extra={"reference": reference, "amount": amount, "date": match.raw_date, "brand": match.brand_name},
        )
        record_gateway_check("paid")
        return PaymentStatus.from_record(match)

    async def aclose(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> "PaymentChecker":
        return self

    async def __aexit__(
        self,
        exc_type: Optional[Type[BaseException]],
        exc_value: Optional[BaseException],
        traceback: Optional[TracebackType],
    ) -> None:
        await self.aclose()
