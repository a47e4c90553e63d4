"""KHQR payload encoder and decoder.

Builds the EMVCo merchant-presented payload used by Bakong KHQR scanners.
Fields are emitted in a fixed order and the payload is closed by Tag 63,
a CRC16-CCITT checksum over everything up to and including ``6304``.
"""
from __future__ import annotations

import enum
from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Iterable

from .crc import CRC_TAG_HEADER, crc16_ccitt, verify_crc
from .services.errors import ValidationError
from .tlv import TLVItem, build_tlv, parse_tlv

PAYLOAD_FORMAT_INDICATOR = "01"
POINT_OF_INITIATION_DYNAMIC = "12"
ACQUIRER_ID = "bakong"
MERCHANT_CATEGORY_CODE = "5411"
COUNTRY_CODE = "KH"

MERCHANT_NAME_LIMIT = 25
MERCHANT_CITY_LIMIT = 15
BILL_NUMBER_LIMIT = 25
ACCOUNT_NAME_LIMIT = 15


class Currency(str, enum.Enum):
    USD = "USD"
    KHR = "KHR"

    @property
    def numeric_code(self) -> str:
        return _ISO_NUMERIC[self]

    @property
    def fraction_digits(self) -> int:
        return 2 if self is Currency.USD else 0


_ISO_NUMERIC = {Currency.USD: "840", Currency.KHR: "116"}


class AccountLayout(str, enum.Enum):
    """What Tag 29 sub-tag 01 carries after the acquirer id."""

    MERCHANT_ID = "MERCHANT_ID"
    MERCHANT_NAME = "MERCHANT_NAME"


@dataclass(frozen=True)
class PaymentDescriptor:
    merchant_id: str
    merchant_name: str
    merchant_city: str
    currency: Currency | str
    amount: Decimal | float | int | str
    transaction_id: str
    additional_description: str | None = None
    account_layout: AccountLayout = AccountLayout.MERCHANT_ID


@dataclass(frozen=True)
class EncodedPayload:
    payload: str
    crc: str


@dataclass(frozen=True)
class DecodedKHQR:
    payload: str
    fields: dict[str, str]
    merchant_account: dict[str, str] = field(default_factory=dict)
    additional_data: dict[str, str] = field(default_factory=dict)
    crc_valid: bool = False

    @property
    def currency(self) -> Currency | None:
        code = self.fields.get("53")
        for currency, numeric in _ISO_NUMERIC.items():
            if numeric == code:
                return currency
        return None

    @property
    def amount(self) -> str | None:
        return self.fields.get("54")

    @property
    def bill_number(self) -> str | None:
        return self.additional_data.get("01")


class KHQRBuilder:
    """Accumulates TLV fields in insertion order and seals them with Tag 63."""

    def __init__(self) -> None:
        self._parts: list[str] = []

    def append(self, tag: str, value: str) -> "KHQRBuilder":
        self._parts.append(TLVItem(tag=tag, value=value).serialize())
        return self

    def append_nested(self, tag: str, items: Iterable[TLVItem]) -> "KHQRBuilder":
        return self.append(tag, build_tlv(items))

    def finish(self) -> EncodedPayload:
        body = "".join(self._parts) + CRC_TAG_HEADER
        crc = crc16_ccitt(body)
        return EncodedPayload(payload=f"{body}{crc}", crc=crc)


def _require_text(value: str | None, name: str) -> str:
    if value is None or not str(value).strip():
        raise ValidationError(f"{name} is required", field=name)
    if not str(value).isascii():
        raise ValidationError(f"{name} must be ASCII text", field=name)
    return str(value)


def _fit(value: str, limit: int, name: str, strict: bool) -> str:
    if len(value) > limit and strict:
        raise ValidationError(f"{name} exceeds {limit} characters", field=name)
    return value[:limit]


def resolve_currency(value: Currency | str | None) -> Currency:
    if value is None or value == "":
        raise ValidationError("currency is required", field="currency")
    try:
        return Currency(value)
    except ValueError:
        raise ValidationError(f"Unsupported currency {value!r}", field="currency") from None


def format_amount(amount: Decimal | float | int | str | None, currency: Currency) -> str:
    """Render amount with the currency's fraction digits, no separators."""

    if amount is None or amount == "":
        raise ValidationError("amount is required", field="amount")
    if isinstance(amount, bool):
        raise ValidationError("amount must be a number", field="amount")
    try:
        value = Decimal(str(amount))
    except InvalidOperation:
        raise ValidationError(f"amount {amount!r} is not a number", field="amount") from None
    if not value.is_finite():
        raise ValidationError("amount must be finite", field="amount")
    if value < 0:
        raise ValidationError("amount must not be negative", field="amount")
    quantum = Decimal(1).scaleb(-currency.fraction_digits)
    try:
        rendered = value.copy_abs().quantize(quantum, rounding=ROUND_HALF_UP)
    except InvalidOperation:
        raise ValidationError(f"amount {amount!r} is out of range", field="amount") from None
    return f"{rendered:f}"


def _merchant_account(descriptor: PaymentDescriptor, merchant_id: str, strict: bool) -> list[TLVItem]:
    if descriptor.account_layout == AccountLayout.MERCHANT_NAME:
        account = _fit(descriptor.merchant_name, ACCOUNT_NAME_LIMIT, "merchant_name", strict)
    else:
        account = merchant_id
    return [TLVItem(tag="00", value=ACQUIRER_ID), TLVItem(tag="01", value=account)]


def encode_khqr(descriptor: PaymentDescriptor, *, strict: bool = False) -> EncodedPayload:
    """Encode a payment descriptor into a dynamic KHQR payload.

    Oversized name, city and transaction id are truncated unless ``strict``
    is set, in which case a ValidationError is raised instead.
    """

    merchant_id = _require_text(descriptor.merchant_id, "merchant_id")
    merchant_name = _require_text(descriptor.merchant_name, "merchant_name")
    merchant_city = _require_text(descriptor.merchant_city, "merchant_city")
    transaction_id = _require_text(descriptor.transaction_id, "transaction_id")
    currency = resolve_currency(descriptor.currency)
    amount = format_amount(descriptor.amount, currency)

    builder = KHQRBuilder()
    builder.append("00", PAYLOAD_FORMAT_INDICATOR)
    builder.append("01", POINT_OF_INITIATION_DYNAMIC)
    builder.append_nested("29", _merchant_account(descriptor, merchant_id, strict))
    builder.append("52", MERCHANT_CATEGORY_CODE)
    builder.append("53", currency.numeric_code)
    builder.append("54", amount)
    builder.append("58", COUNTRY_CODE)
    builder.append("59", _fit(merchant_name, MERCHANT_NAME_LIMIT, "merchant_name", strict))
    builder.append("60", _fit(merchant_city, MERCHANT_CITY_LIMIT, "merchant_city", strict))
    bill_number = _fit(transaction_id, BILL_NUMBER_LIMIT, "transaction_id", strict)
    builder.append_nested("62", [TLVItem(tag="01", value=bill_number)])
    return builder.finish()


def _nested(value: str | None) -> dict[str, str]:
    if not value:
        return {}
    return {item.tag: item.value for item in parse_tlv(value)}


def decode_khqr(payload: str) -> DecodedKHQR:
    """Parse a KHQR payload into its fields and check the trailing CRC."""

    fields = {item.tag: item.value for item in parse_tlv(payload)}
    return DecodedKHQR(
        payload=payload,
        fields=fields,
        merchant_account=_nested(fields.get("29")),
        additional_data=_nested(fields.get("62")),
        crc_valid="63" in fields and verify_crc(payload),
    )
