"""FastAPI application for khqrgen."""
from __future__ import annotations

import logging

from fastapi import Depends, FastAPI, Header, HTTPException, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from sqlalchemy.ext.asyncio import AsyncSession

from .config import settings
from .khqr_encoder import decode_khqr
from .logging_conf import configure_logging
from .middleware import RequestLoggingMiddleware, route_path
from .models import get_session, init_db
from .monitoring import metrics_payload, record_service_error
from .schemas import (
    DecodeKHQRRequest,
    DecodeKHQRResponse,
    GatewayConfigRequest,
    GatewayConfigResponse,
    GatewayTestResponse,
    GenerateKHQRRequest,
    GenerateKHQRResponse,
    PaymentStatusResponse,
)
from .services.errors import ServiceError, ValidationError
from .services.generator import PaymentQRGenerator
from .services.merchant import MerchantDirectory
from .services.payments import PaymentLookup

app = FastAPI(title="khqrgen", version="0.1.0")
app.add_middleware(RequestLoggingMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins,
    allow_methods=["*"],
    allow_headers=["authorization", "x-client-info", "x-api-key", "apikey", "content-type"],
)

logger = logging.getLogger("khqrgen.api")


def _warn_insecure_defaults() -> None:
    if settings.api_key == "dev-secret-key":
        logger.warning("api key is using the default value", extra={"config_key": "api_key"})


@app.on_event("startup")
async def on_startup() -> None:
    configure_logging()
    _warn_insecure_defaults()
    await init_db()


async def require_api_key(x_api_key: str = Header(...)) -> None:
    if x_api_key != settings.api_key:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid API key")


@app.exception_handler(ServiceError)
async def service_error_handler(request: Request, exc: ServiceError) -> JSONResponse:
    path = route_path(request)
    logger.warning(
        "service error",
        extra={"code": exc.code, "path": path, "method": request.method},
    )
    record_service_error(exc.code, path)
    content = {"code": exc.code, "message": exc.message}
    if isinstance(exc, ValidationError):
        content["field"] = exc.field
    return JSONResponse(status_code=exc.status_code, content=content)


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception(
        "unhandled exception",
        extra={"path": route_path(request), "method": request.method},
    )
    return JSONResponse(status_code=500, content={"code": "ERR_INTERNAL", "message": "Internal server error"})


@app.get("/health", tags=["system"])
async def health() -> dict[str, str]:
    return {"status": "ok"}


@app.get("/metrics", tags=["system"])
async def metrics() -> Response:
    payload, content_type = metrics_payload()
    return Response(content=payload, media_type=content_type)


@app.post("/v1/khqr", response_model=GenerateKHQRResponse, tags=["khqr"], dependencies=[Depends(require_api_key)])
async def generate_khqr(
    payload: GenerateKHQRRequest,
    session: AsyncSession = Depends(get_session),
) -> GenerateKHQRResponse:
    generator = PaymentQRGenerator(session)
    result = await generator.generate(
        amount=payload.amount,
        order_id=payload.order_id,
        currency=payload.currency.value if payload.currency else None,
        invoice_id=payload.invoice_id,
        description=payload.description,
        user_id=payload.user_id,
    )

    return GenerateKHQRResponse(
        qr_code=result.qr_png_base64,
        qr_string=result.encoded.payload,
        crc=result.encoded.crc,
        transaction_id=payload.order_id,
        currency=result.currency,
        amount=result.amount,
        exchange_rate=result.exchange_rate,
        original_amount=result.original_amount,
        original_currency=result.original_currency,
    )


@app.post("/v1/khqr/decode", response_model=DecodeKHQRResponse, tags=["khqr"], dependencies=[Depends(require_api_key)])
async def decode(payload: DecodeKHQRRequest) -> DecodeKHQRResponse:
    decoded = decode_khqr(payload.payload)
    return DecodeKHQRResponse(
        crc_valid=decoded.crc_valid,
        fields=decoded.fields,
        merchant_account=decoded.merchant_account,
        additional_data=decoded.additional_data,
        currency=decoded.currency,
        amount=decoded.amount,
        bill_number=decoded.bill_number,
    )


@app.get(
    "/v1/payments/{transaction_id}",
    response_model=PaymentStatusResponse,
    tags=["payments"],
    dependencies=[Depends(require_api_key)],
)
async def get_payment(transaction_id: str, session: AsyncSession = Depends(get_session)) -> PaymentStatusResponse:
    payment = await PaymentLookup(session).get_by_transaction(transaction_id)
    return PaymentStatusResponse(
        payment_id=payment.id,
        transaction_id=payment.transaction_id,
        status=payment.status.value,
        amount=payment.amount,
        currency=payment.currency,
        invoice_id=payment.invoice_id,
        qr_string=payment.qr_string,
        crc=payment.crc,
    )


@app.put(
    "/v1/gateways/{slug}",
    response_model=GatewayConfigResponse,
    tags=["gateways"],
    dependencies=[Depends(require_api_key)],
)
async def put_gateway(slug: str, payload: GatewayConfigRequest, session: AsyncSession = Depends(get_session)) -> GatewayConfigResponse:
    merchant = await MerchantDirectory(session).upsert(slug, payload.to_stored())
    return GatewayConfigResponse(slug=slug, **merchant.to_dict())


@app.get(
    "/v1/gateways/{slug}/test",
    response_model=GatewayTestResponse,
    tags=["gateways"],
    dependencies=[Depends(require_api_key)],
)
async def test_gateway(slug: str, session: AsyncSession = Depends(get_session)) -> GatewayTestResponse:
    result = await PaymentQRGenerator(session).test_gateway(slug)
    return GatewayTestResponse(
        success=result.connected,
        merchant_id=result.merchant_id,
        test_qr_generated=result.test_qr_generated,
    )
