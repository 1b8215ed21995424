"""Invoice generation and QR building services."""
from __future__ import annotations

import logging
from dataclasses import dataclass

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from ..models import Invoice
from ..monitoring import record_payload_built
from ..qris_encoder import EncodedPayload, PayloadBuilder
from ..renderer import render_qr_payload
from .errors import err_duplicate_transaction

logger = logging.getLogger("qrispay.generator")


@dataclass(slots=True)
class GenerateResult:
    invoice: Invoice
    encoded: EncodedPayload
    qr_png_base64: str


class InvoiceGenerator:
    def __init__(self, session: AsyncSession, builder: PayloadBuilder, qr_size: int = 256):
        self.session = session
        self.builder = builder
        self.qr_size = qr_size

    async def create_invoice(self, *, amount: int, transaction_id: str) -> GenerateResult:
        encoded = self.builder.build(amount, transaction_id)

        existing = await self.session.execute(select(Invoice.id).where(Invoice.transaction_id == transaction_id).limit(1))
        if existing.scalars().first() is not None:
            raise err_duplicate_transaction(transaction_id)

        render = render_qr_payload(encoded.payload, size=self.qr_size)

        invoice = Invoice(
            transaction_id=transaction_id,
            merchant_id=self.builder.config.merchant_id,
            amount=amount,
            payload=encoded.payload,
            crc=encoded.crc,
        )
        self.session.add(invoice)
        try:
            await self.session.commit()
        except IntegrityError as exc:
            # a concurrent request stored the same transaction id after our lookup
            await self.session.rollback()
            raise err_duplicate_transaction(transaction_id) from exc
        await self.session.refresh(invoice)

        record_payload_built()
        logger.info("invoice created", extra={"transaction_id": transaction_id, "amount": amount, "crc": encoded.crc})
        return GenerateResult(invoice=invoice, encoded=encoded, qr_png_base64=render["png_base64"])
