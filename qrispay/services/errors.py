"""Shared error definitions for the codec, gateway and API layers."""
from __future__ import annotations

from dataclasses import dataclass


@dataclass(slots=True, eq=False)
class QrisError(Exception):
    code: str
    message: str
    status_code: int = 400

    def __str__(self) -> str:  # noqa: D401 override
        return f"{self.code}: {self.message}"


class ConfigurationError(QrisError):
    """Missing or malformed configuration. Fatal, never retried."""


class MalformedPayload(QrisError):
    """The base payload lacks a structural anchor such as ``5802ID``."""


class FieldNotFound(QrisError):
    pass


class InvalidInput(QrisError):
    """Caller supplied a non-positive amount, empty id or oversized value."""


class PayloadValidationError(QrisError):
    """Base class for the checks run by :func:`qrispay.validator.validate_payload`."""


class PayloadTooShort(PayloadValidationError):
    pass


class CountryTagMissing(PayloadValidationError):
    pass


class MerchantMismatch(PayloadValidationError):
    pass


class AmountTagMissing(PayloadValidationError):
    pass


class ChecksumMismatch(PayloadValidationError):
    pass


class NetworkError(QrisError):
    """Transient gateway failure; the caller may retry with backoff."""


class GatewayParseError(QrisError):
    pass


class PaymentTimeout(QrisError):
    pass


class InvoiceNotFound(QrisError):
    pass


class DuplicateTransaction(QrisError):
    pass


def err_config(message: str | None = None) -> ConfigurationError:
    return ConfigurationError(code="ERR_CONFIG", message=message or "Invalid configuration", status_code=500)


def err_malformed_payload(message: str | None = None) -> MalformedPayload:
    return MalformedPayload(
        code="ERR_MALFORMED_PAYLOAD",
        message=message or "Invalid QRIS format: country ID not found",
        status_code=422,
    )


def err_field_not_found(tag: str) -> FieldNotFound:
    return FieldNotFound(code="ERR_FIELD_NOT_FOUND", message=f"Tag {tag} not found in payload", status_code=422)


def err_invalid_amount(message: str | None = None) -> InvalidInput:
    return InvalidInput(code="ERR_INVALID_AMOUNT", message=message or "Amount must be greater than 0")


def err_missing_transaction_id(message: str | None = None) -> InvalidInput:
    return InvalidInput(code="ERR_MISSING_TRANSACTION_ID", message=message or "Transaction ID must be filled")


def err_invalid_input(message: str | None = None) -> InvalidInput:
    return InvalidInput(code="ERR_INVALID_INPUT", message=message or "Invalid input")


def err_payload_too_short(message: str | None = None) -> PayloadTooShort:
    return PayloadTooShort(code="ERR_PAYLOAD_TOO_SHORT", message=message or "QRIS string too short", status_code=422)


def err_country_tag_missing(message: str | None = None) -> CountryTagMissing:
    return CountryTagMissing(
        code="ERR_COUNTRY_TAG_MISSING",
        message=message or "Invalid QRIS format: country ID not found",
        status_code=422,
    )


def err_merchant_mismatch(message: str | None = None) -> MerchantMismatch:
    return MerchantMismatch(code="ERR_MERCHANT_MISMATCH", message=message or "Merchant ID mismatch", status_code=422)


def err_amount_tag_missing(message: str | None = None) -> AmountTagMissing:
    return AmountTagMissing(code="ERR_AMOUNT_TAG_MISSING", message=message or "Invalid amount format", status_code=422)


def err_checksum_mismatch(message: str | None = None) -> ChecksumMismatch:
    return ChecksumMismatch(code="ERR_CHECKSUM_MISMATCH", message=message or "Invalid checksum", status_code=422)


def err_network(message: str | None = None) -> NetworkError:
    return NetworkError(code="ERR_NETWORK", message=message or "Payment gateway unreachable", status_code=502)


def err_gateway_parse(message: str | None = None) -> GatewayParseError:
    return GatewayParseError(code="ERR_GATEWAY_PARSE", message=message or "Unexpected gateway response", status_code=502)


def err_payment_timeout(message: str | None = None) -> PaymentTimeout:
    return PaymentTimeout(code="ERR_PAYMENT_TIMEOUT", message=message or "Payment not confirmed in time", status_code=408)


def err_invoice_not_found(transaction_id: str) -> InvoiceNotFound:
    return InvoiceNotFound(
        code="ERR_INVOICE_NOT_FOUND",
        message=f"Invoice {transaction_id} not found",
        status_code=404,
    )


def err_duplicate_transaction(transaction_id: str) -> DuplicateTransaction:
    return DuplicateTransaction(
        code="ERR_DUPLICATE_TRANSACTION",
        message=f"Transaction {transaction_id} already has an invoice",
        status_code=409,
    )
