"""KHQR payment generation services."""
from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from decimal import Decimal

from sqlalchemy.ext.asyncio import AsyncSession

from ..config import settings
from ..khqr_encoder import (
    Currency,
    EncodedPayload,
    PaymentDescriptor,
    encode_khqr,
    format_amount,
    resolve_currency,
)
from ..models import Payment, PaymentStatus
from ..monitoring import record_payload_generated
from ..renderer import render_qr_payload
from .errors import ValidationError
from .merchant import MerchantConfig, MerchantDirectory, convert_amount

logger = logging.getLogger("khqrgen.generator")

TEST_AMOUNT = Decimal("0.01")


@dataclass(slots=True)
class GenerateResult:
    descriptor: PaymentDescriptor
    encoded: EncodedPayload
    qr_png_base64: str
    original_amount: Decimal
    original_currency: Currency
    exchange_rate: Decimal | None
    payment: Payment | None = None

    @property
    def currency(self) -> Currency:
        return Currency(self.descriptor.currency)

    @property
    def amount(self) -> Decimal:
        return Decimal(str(self.descriptor.amount))


@dataclass(slots=True)
class GatewayTestResult:
    connected: bool
    merchant_id: str
    test_qr_generated: bool


def default_description(order_id: str) -> str:
    return f"Order {order_id[:20]}"


class PaymentQRGenerator:
    def __init__(self, session: AsyncSession):
        self.session = session
        self.directory = MerchantDirectory(session)

    async def generate(
        self,
        *,
        amount: Decimal,
        order_id: str,
        currency: str | None = None,
        invoice_id: str | None = None,
        description: str | None = None,
        user_id: str | None = None,
    ) -> GenerateResult:
        merchant = await self.directory.lookup(settings.gateway_slug)
        requested = resolve_currency(currency) if currency else None
        final_currency = merchant.currency or requested or Currency.USD
        source_currency = requested or final_currency

        converted = convert_amount(amount, source_currency, final_currency, settings.usd_to_khr_rate)
        # the amount carried in Tag 54, reused for the response and the stored row
        final_amount = Decimal(format_amount(converted, final_currency))
        exchange_rate = settings.usd_to_khr_rate if source_currency != final_currency else None

        logger.info(
            "generating khqr",
            extra={"order_id": order_id, "currency": final_currency.value, "converted": exchange_rate is not None},
        )

        descriptor = self._descriptor(
            merchant,
            amount=final_amount,
            currency=final_currency,
            transaction_id=order_id,
            description=description or default_description(order_id),
        )
        encoded = encode_khqr(descriptor, strict=settings.strict_truncation)
        render = render_qr_payload(encoded.payload, title=merchant.merchant_name)
        record_payload_generated(final_currency.value)

        payment = None
        if user_id:
            payment = Payment(
                transaction_id=order_id,
                amount=final_amount,
                currency=final_currency.value,
                status=PaymentStatus.PENDING,
                invoice_id=invoice_id,
                user_id=user_id,
                qr_string=encoded.payload,
                crc=encoded.crc,
                gateway_response={"khqr_payload": self._descriptor_json(descriptor)},
            )
            self.session.add(payment)
            await self.session.commit()
            await self.session.refresh(payment)

        logger.info("khqr generated", extra={"order_id": order_id, "crc": encoded.crc, "stored": payment is not None})

        return GenerateResult(
            descriptor=descriptor,
            encoded=encoded,
            qr_png_base64=render["png_base64"],
            original_amount=amount,
            original_currency=source_currency,
            exchange_rate=exchange_rate,
            payment=payment,
        )

    async def test_gateway(self, slug: str) -> GatewayTestResult:
        """Encode a throwaway code for the configured merchant."""

        merchant = await self.directory.lookup(slug)
        descriptor = self._descriptor(
            merchant,
            amount=TEST_AMOUNT,
            currency=merchant.currency or Currency.USD,
            transaction_id="TEST",
            description="Gateway test",
        )
        try:
            encode_khqr(descriptor, strict=settings.strict_truncation)
        except ValidationError as exc:
            logger.warning("gateway test failed", extra={"slug": slug, "field": exc.field, "reason": exc.message})
            return GatewayTestResult(connected=False, merchant_id=merchant.merchant_id, test_qr_generated=False)
        return GatewayTestResult(connected=True, merchant_id=merchant.merchant_id, test_qr_generated=True)

    @staticmethod
    def _descriptor(
        merchant: MerchantConfig,
        *,
        amount: Decimal,
        currency: Currency,
        transaction_id: str,
        description: str,
    ) -> PaymentDescriptor:
        return PaymentDescriptor(
            merchant_id=merchant.merchant_id,
            merchant_name=merchant.merchant_name,
            merchant_city=merchant.merchant_city,
            currency=currency,
            amount=amount,
            transaction_id=transaction_id,
            additional_description=description,
            account_layout=merchant.account_layout,
        )

    @staticmethod
    def _descriptor_json(descriptor: PaymentDescriptor) -> dict[str, str | None]:
        data = asdict(descriptor)
        data["currency"] = Currency(descriptor.currency).value
        data["amount"] = str(descriptor.amount)
        data["account_layout"] = descriptor.account_layout.value
        return data
