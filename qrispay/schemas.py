"""Pydantic schemas for API contracts."""
from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field


class GenerateQRRequest(BaseModel):
    amount: int = Field(ge=1)
    transaction_id: str = Field(min_length=1, max_length=64)


class GenerateQRResponse(BaseModel):
    invoice_id: UUID
    transaction_id: str
    status: str
    amount: int
    payload: str
    crc: str
    qr_png_base64: str


class ValidateRequest(BaseModel):
    payload: str
    merchant_id: str | None = Field(default=None, description="Defaults to the configured merchant id")


class ValidateResponse(BaseModel):
    valid: bool
    code: str | None = None
    message: str | None = None


class PaymentInfo(BaseModel):
    status: str
    amount: int
    reference: str
    date: str = ""
    brand_name: str = ""
    buyer_reference: str = ""


class InvoiceResponse(BaseModel):
    invoice_id: UUID
    transaction_id: str
    merchant_id: str
    amount: int
    status: str
    payload: str
    crc: str
    paid_reference: str | None = None
    paid_brand: str | None = None
    paid_buyer_reference: str | None = None
    paid_at: str | None = None
    created_at: datetime | None = None


class CheckResponse(BaseModel):
    invoice: InvoiceResponse
    payment: PaymentInfo | None = None
    status_changed: bool
