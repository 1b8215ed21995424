"""FastAPI application for qrispay."""
from __future__ import annotations

import logging
from datetime import timedelta
from functools import lru_cache
from typing import AsyncIterator
from uuid import UUID

from fastapi import Depends, FastAPI, Header, HTTPException, Request, status
from fastapi.responses import JSONResponse, Response
from sqlalchemy.ext.asyncio import AsyncSession

from .config import settings
from .gateway.adapters import adapter_from_settings
from .gateway.client import PaymentChecker
from .gateway.records import PaymentStatus
from .logging_conf import configure_logging
from .middleware import RequestLoggingMiddleware
from .models import Invoice, get_session, init_db
from .monitoring import metrics_payload, record_service_error, record_validation_failure
from .qris_encoder import PayloadBuilder
from .schemas import (
    CheckResponse,
    GenerateQRRequest,
    GenerateQRResponse,
    InvoiceResponse,
    PaymentInfo,
    ValidateRequest,
    ValidateResponse,
)
from .services.errors import PayloadValidationError, QrisError
from .services.generator import InvoiceGenerator
from .services.payments import PaymentService
from .validator import validate_payload

app = FastAPI(title="qrispay", version="0.1.0")
app.add_middleware(RequestLoggingMiddleware)

logger = logging.getLogger("qrispay.api")


def _warn_insecure_defaults() -> None:
    if settings.service_api_key == "dev-secret-key":
        logger.warning(
            "service api key is using the default value",
            extra={"config_key": "service_api_key"},
        )


@app.on_event("startup")
async def on_startup() -> None:
    configure_logging()
    _warn_insecure_defaults()
    get_builder()
    await init_db()


async def require_api_key(x_api_key: str = Header(...)) -> None:
    if x_api_key != settings.service_api_key:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid API key")


@lru_cache(maxsize=1)
def get_builder() -> PayloadBuilder:
    """Builder bound to the configured merchant; fails fast on bad configuration."""

    return PayloadBuilder(settings.qris_config())


async def get_checker() -> AsyncIterator[PaymentChecker]:
    checker = PaymentChecker(
        adapter_from_settings(settings),
        timeout=settings.request_timeout,
        recency_window=timedelta(minutes=settings.recency_window_minutes),
    )
    async with checker:
        yield checker


async def get_invoice_generator(
    session: AsyncSession = Depends(get_session),
    builder: PayloadBuilder = Depends(get_builder),
) -> InvoiceGenerator:
    return InvoiceGenerator(session, builder, qr_size=settings.qr_size)


async def get_invoice_service(session: AsyncSession = Depends(get_session)) -> PaymentService:
    return PaymentService(session)


async def get_payment_service(
    session: AsyncSession = Depends(get_session),
    checker: PaymentChecker = Depends(get_checker),
) -> PaymentService:
    return PaymentService(session, checker)


def _invoice_response(invoice: Invoice) -> InvoiceResponse:
    return InvoiceResponse(
        invoice_id=UUID(invoice.id),
        transaction_id=invoice.transaction_id,
        merchant_id=invoice.merchant_id,
        amount=invoice.amount,
        status=invoice.status.value,
        payload=invoice.payload,
        crc=invoice.crc,
        paid_reference=invoice.paid_reference,
        paid_brand=invoice.paid_brand,
        paid_buyer_reference=invoice.paid_buyer_reference,
        paid_at=invoice.paid_at,
        created_at=invoice.created_at,
    )


def _payment_info(payment: PaymentStatus) -> PaymentInfo:
    return PaymentInfo(
        status=payment.status.value,
        amount=payment.amount,
        reference=payment.reference,
        date=payment.date,
        brand_name=payment.brand_name,
        buyer_reference=payment.buyer_reference,
    )


@app.exception_handler(QrisError)
async def service_error_handler(request: Request, exc: QrisError) -> JSONResponse:
    route = request.scope.get("route")
    route_path = route.path if route else request.url.path
    logger.warning(
        "service error",
        extra={"code": exc.code, "path": route_path, "method": request.method},
    )
    record_service_error(exc.code, route_path)
    return JSONResponse(status_code=exc.status_code, content={"code": exc.code, "message": exc.message})


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    route = request.scope.get("route")
    route_path = route.path if route else request.url.path
    logger.exception(
        "unhandled exception",
        extra={"path": route_path, "method": request.method},
    )
    return JSONResponse(status_code=500, content={"code": "ERR_INTERNAL", "message": "Internal server error"})


@app.get("/health", tags=["system"])
async def health() -> dict[str, str]:
    return {"status": "ok"}


@app.get("/metrics", tags=["system"])
async def metrics() -> Response:
    payload, content_type = metrics_payload()
    return Response(content=payload, media_type=content_type)


@app.post("/v1/qr", response_model=GenerateQRResponse, tags=["qr"], dependencies=[Depends(require_api_key)])
async def generate_qr(
    payload: GenerateQRRequest,
    generator: InvoiceGenerator = Depends(get_invoice_generator),
) -> GenerateQRResponse:
    result = await generator.create_invoice(amount=payload.amount, transaction_id=payload.transaction_id)
    invoice = result.invoice

    return GenerateQRResponse(
        invoice_id=UUID(invoice.id),
        transaction_id=invoice.transaction_id,
        status=invoice.status.value,
        amount=invoice.amount,
        payload=result.encoded.payload,
        crc=result.encoded.crc,
        qr_png_base64=result.qr_png_base64,
    )


@app.post("/v1/qr/validate", response_model=ValidateResponse, tags=["qr"], dependencies=[Depends(require_api_key)])
async def validate_qr(payload: ValidateRequest, builder: PayloadBuilder = Depends(get_builder)) -> ValidateResponse:
    merchant_id = payload.merchant_id if payload.merchant_id is not None else builder.config.merchant_id
    try:
        validate_payload(payload.payload, merchant_id)
    except PayloadValidationError as exc:
        record_validation_failure(exc.code)
        return ValidateResponse(valid=False, code=exc.code, message=exc.message)
    return ValidateResponse(valid=True)


@app.get(
    "/v1/invoices/{transaction_id}",
    response_model=InvoiceResponse,
    tags=["invoices"],
    dependencies=[Depends(require_api_key)],
)
async def get_invoice(transaction_id: str, service: PaymentService = Depends(get_invoice_service)) -> InvoiceResponse:
    invoice = await service.get_invoice(transaction_id)
    return _invoice_response(invoice)


@app.post(
    "/v1/invoices/{transaction_id}/check",
    response_model=CheckResponse,
    tags=["invoices"],
    dependencies=[Depends(require_api_key)],
)
async def check_invoice(transaction_id: str, service: PaymentService = Depends(get_payment_service)) -> CheckResponse:
    result = await service.check_invoice(transaction_id)
    return CheckResponse(
        invoice=_invoice_response(result.invoice),
        payment=_payment_info(result.payment) if result.payment else None,
        status_changed=result.status_changed,
    )
