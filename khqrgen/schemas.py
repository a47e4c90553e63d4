"""Pydantic schemas for API contracts."""
from __future__ import annotations

from decimal import Decimal
from typing import Any

from pydantic import BaseModel, Field

from .khqr_encoder import AccountLayout, Currency


class GenerateKHQRRequest(BaseModel):
    amount: Decimal = Field(gt=0)
    currency: Currency | None = None
    order_id: str = Field(min_length=1, max_length=64)
    invoice_id: str | None = None
    description: str | None = None
    user_id: str | None = None


class GenerateKHQRResponse(BaseModel):
    success: bool = True
    qr_code: str
    qr_string: str
    crc: str
    transaction_id: str
    currency: Currency
    amount: Decimal
    exchange_rate: Decimal | None = None
    original_amount: Decimal
    original_currency: Currency


class DecodeKHQRRequest(BaseModel):
    payload: str = Field(min_length=8)


class DecodeKHQRResponse(BaseModel):
    crc_valid: bool
    fields: dict[str, str]
    merchant_account: dict[str, str]
    additional_data: dict[str, str]
    currency: Currency | None = None
    amount: str | None = None
    bill_number: str | None = None


class PaymentStatusResponse(BaseModel):
    payment_id: str
    transaction_id: str
    status: str
    amount: Decimal
    currency: str
    invoice_id: str | None = None
    qr_string: str
    crc: str


class GatewayConfigRequest(BaseModel):
    merchant_id: str | None = None
    merchant_name: str | None = None
    merchant_city: str | None = None
    account_number: str | None = None
    currency: Currency | None = None
    account_layout: AccountLayout | None = None

    def to_stored(self) -> dict[str, Any]:
        stored = {
            "merchantId": self.merchant_id,
            "merchantName": self.merchant_name,
            "merchantCity": self.merchant_city,
            "accountNumber": self.account_number,
            "currency": self.currency.value if self.currency else None,
            "accountLayout": self.account_layout.value if self.account_layout else None,
        }
        return {key: value for key, value in stored.items() if value is not None}


class GatewayConfigResponse(BaseModel):
    slug: str
    merchant_id: str
    merchant_name: str
    merchant_city: str
    account_number: str
    currency: Currency | None = None
    account_layout: AccountLayout


class GatewayTestResponse(BaseModel):
    success: bool
    merchant_id: str
    test_qr_generated: bool
