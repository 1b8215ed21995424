"""Gateway adapter, matching and client tests."""

from __future__ import annotations

import json
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from zoneinfo import ZoneInfo

import httpx
import pytest

from qrispay.config import Settings
from qrispay.gateway.adapters import MerchantKeyAdapter, MutasiTokenAdapter, adapter_from_settings
from qrispay.gateway.client import PaymentChecker
from qrispay.gateway.records import PaymentRecord, PaymentState, latest_match
from qrispay.services.errors import ConfigurationError, GatewayParseError, InvalidInput, NetworkError

NOW = datetime(2026, 10, 18, 5, 0, 0, tzinfo=timezone.utc)  # 12:00 in Jakarta
GATEWAY_URL = "https://gateway.test/api/mutasi"


def mutasi_tx(amount: str, date: str, qris: str = "static", type_: str = "CR", ref: str = "REF1") -> dict:
    return {
        "amount": amount,
        "date": date,
        "qris": qris,
        "type": type_,
        "issuer_reff": ref,
        "brand_name": "DANA",
        "buyer_reff": "BUYER1",
    }


def make_checker(handler, adapter=None) -> PaymentChecker:
    adapter = adapter or MutasiTokenAdapter(url=GATEWAY_URL, auth_token="tok", auth_username="user")
    return PaymentChecker(adapter, transport=httpx.MockTransport(handler))


def record(amount: int, minutes_ago: float, qris: str = "static", type_: str = "CR", ref: str = "R") -> PaymentRecord:
    return PaymentRecord(
        amount=Decimal(amount),
        timestamp=NOW - timedelta(minutes=minutes_ago),
        qris=qris,
        type=type_,
        reference=ref,
    )


class TestMatching:
    def test_latest_match_wins(self) -> None:
        records = [record(1000, 4, ref="older"), record(1000, 1, ref="newer"), record(1000, 3, ref="mid")]
        match = latest_match(records, 1000, NOW, timedelta(minutes=5))
        assert match is not None and match.reference == "newer"

    @pytest.mark.parametrize(
        "candidate",
        [
            record(999, 1),
            record(1000, 1, qris="dynamic"),
            record(1000, 1, type_="DB"),
            record(1000, 6),
        ],
    )
    def test_rejects_non_matching(self, candidate: PaymentRecord) -> None:
        assert latest_match([candidate], 1000, NOW, timedelta(minutes=5)) is None

    def test_wider_window(self) -> None:
        assert latest_match([record(1000, 20)], 1000, NOW, timedelta(minutes=30)) is not None

    def test_used_references_are_excluded(self) -> None:
        records = [record(1000, 3, ref="A"), record(1000, 1, ref="B")]
        match = latest_match(records, 1000, NOW, timedelta(minutes=5), exclude={"B"})
        assert match is not None and match.reference == "A"
        assert latest_match(records, 1000, NOW, timedelta(minutes=5), exclude={"A", "B"}) is None


class TestAdapters:
    def test_mutasi_parses_local_timestamps(self) -> None:
        adapter = MutasiTokenAdapter(url=GATEWAY_URL, auth_token="tok", auth_username="user")
        ok, records = adapter.parse({"status": "success", "data": [mutasi_tx("1000", "2026-10-18 11:58:00")]})
        assert ok
        assert records[0].timestamp == NOW - timedelta(minutes=2)
        assert records[0].amount == Decimal(1000)
        assert records[0].reference == "REF1"
        assert adapter.request_body() == {"auth_token": "tok", "auth_username": "user"}

    def test_merchant_key_parses_rfc3339(self) -> None:
        adapter = MerchantKeyAdapter(url=GATEWAY_URL, merchant_id="OK2169948", api_key="key")
        ok, records = adapter.parse({"status": "success", "data": [mutasi_tx("1000", "2026-10-18T04:58:00Z")]})
        assert ok
        assert records[0].timestamp == NOW - timedelta(minutes=2)
        assert adapter.request_body() == {"merchant_id": "OK2169948", "api_key": "key"}

    def test_merchant_key_with_custom_format(self) -> None:
        adapter = MerchantKeyAdapter(
            url=GATEWAY_URL,
            merchant_id="OK2169948",
            api_key="key",
            timestamp_format="%d/%m/%Y %H:%M",
            tz=ZoneInfo("UTC"),
        )
        _, records = adapter.parse({"status": "success", "data": [mutasi_tx("5", "18/10/2026 04:58")]})
        assert records[0].timestamp == NOW - timedelta(minutes=2)

    def test_unparsable_entries_are_skipped(self) -> None:
        adapter = MutasiTokenAdapter(url=GATEWAY_URL, auth_token="tok", auth_username="user")
        body = {
            "status": "success",
            "data": [
                mutasi_tx("1000", "yesterday"),
                mutasi_tx("abc", "2026-10-18 11:58:00"),
                mutasi_tx("1000", "2026-10-18 11:59:00"),
            ],
        }
        _, records = adapter.parse(body)
        assert len(records) == 1

    @pytest.mark.parametrize("amount", ["sNaN", "NaN", "Infinity", "-inf"])
    def test_non_finite_amounts_are_skipped(self, amount: str) -> None:
        adapter = MutasiTokenAdapter(url=GATEWAY_URL, auth_token="tok", auth_username="user")
        body = {"status": "success", "data": [mutasi_tx(amount, "2026-10-18 11:59:00")]}
        assert adapter.parse(body) == (True, [])

    @pytest.mark.parametrize("data", [None, [], "token expired", {"reason": "expired"}])
    def test_failed_status_is_not_success(self, data) -> None:
        adapter = MutasiTokenAdapter(url=GATEWAY_URL, auth_token="tok", auth_username="user")
        assert adapter.parse({"status": "error", "data": data}) == (False, [])

    @pytest.mark.parametrize("body", [[], "oops", {"data": []}, {"status": "success", "data": "x"}])
    def test_unexpected_shapes_raise(self, body) -> None:
        adapter = MutasiTokenAdapter(url=GATEWAY_URL, auth_token="tok", auth_username="user")
        with pytest.raises(GatewayParseError):
            adapter.parse(body)

    def test_adapter_from_settings(self) -> None:
        token = adapter_from_settings(Settings(auth_token="tok", auth_username="user"))
        assert isinstance(token, MutasiTokenAdapter)
        merchant = adapter_from_settings(Settings(gateway_variant="merchant_key", merchant_id="OK1", api_key="key"))
        assert isinstance(merchant, MerchantKeyAdapter)

    def test_adapter_from_settings_requires_credentials(self) -> None:
        with pytest.raises(ConfigurationError):
            adapter_from_settings(Settings(gateway_variant="merchant_key", merchant_id="", api_key=""))


class TestPaymentChecker:
    async def test_paid(self) -> None:
        seen: list[dict] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(json.loads(request.content))
            return httpx.Response(
                200,
                json={
                    "status": "success",
                    "data": [
                        mutasi_tx("1000", "2026-10-18 11:56:00", ref="OLD"),
                        mutasi_tx("1000", "2026-10-18 11:59:00", ref="NEW"),
                    ],
                },
            )

        async with make_checker(handler) as checker:
            status = await checker.check_status("TRX123", 1000, now=NOW)

        assert status.status is PaymentState.PAID
        assert status.reference == "NEW"
        assert status.amount == 1000
        assert status.date == "2026-10-18 11:59:00"
        assert status.brand_name == "DANA"
        assert status.buyer_reference == "BUYER1"
        assert seen == [{"auth_token": "tok", "auth_username": "user"}]

    async def test_unpaid_when_nothing_matches(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"status": "success", "data": [mutasi_tx("2000", "2026-10-18 11:59:00")]})

        async with make_checker(handler) as checker:
            status = await checker.check_status("TRX123", 1000, now=NOW)

        assert not status.paid
        assert status.reference == "TRX123"
        assert status.amount == 1000

    async def test_unpaid_when_gateway_reports_failure(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"status": "failed"})

        async with make_checker(handler) as checker:
            status = await checker.check_status("TRX123", 1000, now=NOW)
        assert status.status is PaymentState.UNPAID

    async def test_non_finite_amount_does_not_break_matching(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            data = [mutasi_tx("sNaN", "2026-10-18 11:59:30", ref="BAD"), mutasi_tx("1000", "2026-10-18 11:59:00")]
            return httpx.Response(200, json={"status": "success", "data": data})

        async with make_checker(handler) as checker:
            status = await checker.check_status("TRX123", 1000, now=NOW)
        assert status.paid
        assert status.reference == "REF1"

    async def test_excluded_reference_is_unpaid(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"status": "success", "data": [mutasi_tx("1000", "2026-10-18 11:59:00")]})

        async with make_checker(handler) as checker:
            status = await checker.check_status("TRX123", 1000, now=NOW, exclude_references={"REF1"})
        assert not status.paid

    async def test_transport_error_raises_network_error(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        async with make_checker(handler) as checker:
            with pytest.raises(NetworkError):
                await checker.check_status("TRX123", 1000)

    async def test_server_error_raises_network_error(self) -> None:
        async with make_checker(lambda request: httpx.Response(503)) as checker:
            with pytest.raises(NetworkError):
                await checker.check_status("TRX123", 1000)

    async def test_invalid_json_raises_parse_error(self) -> None:
        async with make_checker(lambda request: httpx.Response(200, content=b"<html>")) as checker:
            with pytest.raises(GatewayParseError):
                await checker.check_status("TRX123", 1000)

    @pytest.mark.parametrize(("reference", "amount"), [("", 1000), ("TRX123", 0)])
    async def test_rejects_bad_arguments(self, reference: str, amount: int) -> None:
        async with make_checker(lambda request: httpx.Response(200, json={})) as checker:
            with pytest.raises(InvalidInput):
                await checker.check_status(reference, amount)
