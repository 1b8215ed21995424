"""Payload validator tests."""

import pytest

from qrispay.qris_encoder import PayloadBuilder
from qrispay.services.errors import (
    AmountTagMissing,
    ChecksumMismatch,
    CountryTagMissing,
    MerchantMismatch,
    PayloadTooShort,
    PayloadValidationError,
)
from qrispay.validator import validate_payload


@pytest.fixture
def valid_payload(builder: PayloadBuilder) -> str:
    return builder.build(1000, "T1").payload


def test_valid_payload_passes(valid_payload: str, merchant_id: str) -> None:
    assert validate_payload(valid_payload, merchant_id) is None


def test_revalidation_is_idempotent(valid_payload: str, merchant_id: str) -> None:
    validate_payload(valid_payload, merchant_id)
    validate_payload(valid_payload, merchant_id)


def test_too_short() -> None:
    with pytest.raises(PayloadTooShort):
        validate_payload("5802ID6304ABCD", "OK1")


def test_country_tag_missing(merchant_id: str) -> None:
    with pytest.raises(CountryTagMissing):
        validate_payload("000201010212" + merchant_id + "54011", merchant_id)


def test_merchant_mismatch(valid_payload: str) -> None:
    with pytest.raises(MerchantMismatch):
        validate_payload(valid_payload, "OK0000001")


def test_amount_marker_missing() -> None:
    with pytest.raises(AmountTagMissing):
        validate_payload("5802IDOK2169948XXXXX", "OK2169948")


def test_checks_run_in_order() -> None:
    # Short and anchorless: the length check fires first.
    with pytest.raises(PayloadTooShort):
        validate_payload("0002", "missing")


def test_checksum_mismatch_on_wrong_trailer(valid_payload: str, merchant_id: str) -> None:
    bad_crc = "0000" if not valid_payload.endswith("0000") else "FFFF"
    with pytest.raises(ChecksumMismatch) as exc:
        validate_payload(valid_payload[:-4] + bad_crc, merchant_id)
    assert exc.value.code == "ERR_CHECKSUM_MISMATCH"


def test_single_character_tamper_detected(valid_payload: str, merchant_id: str) -> None:
    start = valid_payload.index("TOKO KITA")
    for offset in range(len("TOKO KITA")):
        idx = start + offset
        flipped = "Z" if valid_payload[idx] != "Z" else "Y"
        tampered = valid_payload[:idx] + flipped + valid_payload[idx + 1 :]
        with pytest.raises(ChecksumMismatch):
            validate_payload(tampered, merchant_id)


def test_amount_tamper_detected(valid_payload: str, merchant_id: str) -> None:
    tampered = valid_payload.replace("54041000", "54049000", 1)
    with pytest.raises(ChecksumMismatch):
        validate_payload(tampered, merchant_id)


def test_errors_share_base_class(valid_payload: str) -> None:
    with pytest.raises(PayloadValidationError):
        validate_payload(valid_payload, "nobody")
