"""Payment confirmation services for stored invoices."""
from __future__ import annotations

import logging
from dataclasses import dataclass

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from ..gateway.client import PaymentChecker
from ..gateway.records import PaymentStatus
from ..models import Invoice, InvoiceStatus
from .errors import err_invoice_not_found

logger = logging.getLogger("qrispay.payments")


@dataclass(slots=True)
class CheckResult:
    invoice: Invoice
    payment: PaymentStatus | None
    status_changed: bool


class PaymentService:
    def __init__(self, session: AsyncSession, checker: PaymentChecker | None = None):
        self.session = session
        self.checker = checker

    async def get_invoice(self, transaction_id: str) -> Invoice:
        stmt = select(Invoice).where(Invoice.transaction_id == transaction_id).limit(1)
        result = await self.session.execute(stmt)
        invoice = result.scalars().first()
        if not invoice:
            raise err_invoice_not_found(transaction_id)
        return invoice

    async def used_references(self) -> set[str]:
        """Issuer references that already settled an invoice."""

        result = await self.session.execute(select(Invoice.paid_reference).where(Invoice.paid_reference.is_not(None)))
        return set(result.scalars().all())

    async def check_invoice(self, transaction_id: str) -> CheckResult:
        invoice = await self.get_invoice(transaction_id)
        if invoice.status == InvoiceStatus.PAID:
            return CheckResult(invoice=invoice, payment=None, status_changed=False)

        if self.checker is None:
            raise RuntimeError("PaymentService was created without a gateway checker")
        payment = await self.checker.check_status(
            invoice.transaction_id, invoice.amount, exclude_references=await self.used_references()
        )
        if not payment.paid:
            return CheckResult(invoice=invoice, payment=payment, status_changed=False)

        invoice.status = InvoiceStatus.PAID
        invoice.paid_reference = payment.reference or None
        invoice.paid_brand = payment.brand_name
        invoice.paid_buyer_reference = payment.buyer_reference
        invoice.paid_at = payment.date
        try:
            await self.session.commit()
        except IntegrityError:
            # another invoice claimed the same issuer reference first
            await self.session.rollback()
            invoice = await self.get_invoice(transaction_id)
            logger.warning(
                "issuer reference already used",
                extra={"transaction_id": transaction_id, "issuer_reference": payment.reference},
            )
            return CheckResult(
                invoice=invoice, payment=PaymentStatus.unpaid(transaction_id, invoice.amount), status_changed=False
            )
        await self.session.refresh(invoice)

        logger.info(
            "invoice paid",
            extra={"transaction_id": transaction_id, "amount": invoice.amount, "issuer_reference": payment.reference},
        )
        return CheckResult(invoice=invoice, payment=payment, status_changed=True)
