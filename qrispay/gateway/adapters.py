"""Wire-shape adapters for the supported payment status gateways.

Each adapter knows how to authenticate one gateway variant and how to turn its
transaction list into :class:`PaymentRecord` values. The checker only talks to
the :class:`GatewayAdapter` protocol.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Any, Protocol
from zoneinfo import ZoneInfo

from ..config import Settings
from ..services.errors import err_config, err_gateway_parse
from .records import PaymentRecord

MUTASI_TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"
DEFAULT_GATEWAY_TZ = ZoneInfo("Asia/Jakarta")

logger = logging.getLogger("qrispay.gateway")


class GatewayAdapter(Protocol):
    url: str

    def request_body(self) -> dict[str, Any]:
        ...

    def parse(self, body: Any) -> tuple[bool, list[PaymentRecord]]:
        """Return ``(success, records)`` for a decoded JSON body."""
        ...


def _parse_rfc3339(value: str) -> datetime:
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        raise ValueError(f"timestamp {value!r} has no offset")
    return parsed.astimezone(timezone.utc)


def _parse_local(value: str, fmt: str, tz: ZoneInfo) -> datetime:
    return datetime.strptime(value, fmt).replace(tzinfo=tz).astimezone(timezone.utc)


def _records(body: Any, parse_timestamp) -> tuple[bool, list[PaymentRecord]]:
    if not isinstance(body, dict) or "status" not in body:
        raise err_gateway_parse("Gateway response is not an object with a status field")
    if body["status"] != "success":
        return False, []
    data = body.get("data") or []
    if not isinstance(data, list):
        raise err_gateway_parse("Gateway response data is not a list")

    records: list[PaymentRecord] = []
    for entry in data:
        if not isinstance(entry, dict):
            raise err_gateway_parse("Gateway transaction entry is not an object")
        raw_date = str(entry.get("date", ""))
        try:
            amount = Decimal(str(entry.get("amount", "")))
            if not amount.is_finite():
                raise ValueError(f"amount {amount} is not a finite number")
            timestamp = parse_timestamp(raw_date)
        except (InvalidOperation, ValueError) as exc:
            logger.warning("skipping unparsable transaction", extra={"date": raw_date, "error": str(exc)})
            continue
        records.append(
            PaymentRecord(
                amount=amount,
                timestamp=timestamp,
                qris=str(entry.get("qris", "")),
                type=str(entry.get("type", "")),
                reference=str(entry.get("issuer_reff", "")),
                brand_name=str(entry.get("brand_name", "")),
                buyer_reference=str(entry.get("buyer_reff", "")),
                raw_date=raw_date,
            )
        )
    return True, records


@dataclass(frozen=True)
class MerchantKeyAdapter:
    """Gateway authenticated with merchant id and API key; RFC3339 timestamps."""

    url: str
    merchant_id: str
    api_key: str
    timestamp_format: str | None = None
    tz: ZoneInfo = DEFAULT_GATEWAY_TZ

    def request_body(self) -> dict[str, Any]:
        return {"merchant_id": self.merchant_id, "api_key": self.api_key}

    def parse(self, body: Any) -> tuple[bool, list[PaymentRecord]]:
        if self.timestamp_format:
            fmt = self.timestamp_format
            return _records(body, lambda value: _parse_local(value, fmt, self.tz))
        return _records(body, _parse_rfc3339)


@dataclass(frozen=True)
class MutasiTokenAdapter:
    """Mutation-list gateway authenticated with auth token and username."""

    url: str
    auth_token: str
    auth_username: str
    timestamp_format: str = MUTASI_TIMESTAMP_FORMAT
    tz: ZoneInfo = DEFAULT_GATEWAY_TZ

    def request_body(self) -> dict[str, Any]:
        return {"auth_token": self.auth_token, "auth_username": self.auth_username}

    def parse(self, body: Any) -> tuple[bool, list[PaymentRecord]]:
        return _records(body, lambda value: _parse_local(value, self.timestamp_format, self.tz))


def adapter_from_settings(settings: Settings) -> GatewayAdapter:
    if settings.gateway_variant == "merchant_key":
        if not (settings.merchant_id and settings.api_key):
            raise err_config("merchant_key gateway needs merchant_id and api_key")
        return MerchantKeyAdapter(
            url=settings.gateway_url,
            merchant_id=settings.merchant_id,
            api_key=settings.api_key,
            timestamp_format=settings.timestamp_format,
            tz=ZoneInfo(settings.gateway_timezone),
        )
    if not (settings.auth_token and settings.auth_username):
        raise err_config("mutasi_token gateway needs auth_token and auth_username")
    return MutasiTokenAdapter(
        url=settings.gateway_url,
        auth_token=settings.auth_token,
        auth_username=settings.auth_username,
        timestamp_format=settings.timestamp_format or MUTASI_TIMESTAMP_FORMAT,
        tz=ZoneInfo(settings.gateway_timezone),
    )
