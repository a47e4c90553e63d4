"""Merchant configuration lookup and currency conversion."""
from __future__ import annotations

from dataclasses import asdict, dataclass
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..config import settings
from ..khqr_encoder import AccountLayout, Currency, resolve_currency
from ..models import PaymentGateway
from .errors import ValidationError


@dataclass(slots=True)
class MerchantConfig:
    merchant_id: str
    merchant_name: str
    merchant_city: str
    account_number: str = ""
    currency: Currency | None = None
    account_layout: AccountLayout = AccountLayout.MERCHANT_ID

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["currency"] = self.currency.value if self.currency else None
        data["account_layout"] = self.account_layout.value
        return data


def merchant_config_from_mapping(raw: dict[str, Any] | None) -> MerchantConfig:
    """Apply defaults to a stored gateway config.

    Keys follow the stored camelCase shape (``merchantId``, ``merchantName``,
    ``merchantCity``, ``accountNumber``, ``currency``, ``accountLayout``).
    """

    raw = raw or {}
    currency = raw.get("currency")
    layout = raw.get("accountLayout")
    if layout and layout not in AccountLayout.__members__:
        raise ValidationError(f"Unsupported account layout {layout!r}", field="accountLayout")
    return MerchantConfig(
        merchant_id=raw.get("merchantId") or settings.default_merchant_id,
        merchant_name=raw.get("merchantName") or settings.default_merchant_name,
        merchant_city=raw.get("merchantCity") or settings.default_merchant_city,
        account_number=raw.get("accountNumber") or "",
        currency=resolve_currency(currency) if currency else None,
        account_layout=AccountLayout(layout) if layout else AccountLayout.MERCHANT_ID,
    )


def convert_amount(amount: Decimal, source: Currency, target: Currency, rate: Decimal) -> Decimal:
    """Convert between USD and KHR at ``rate`` riel per dollar."""

    if source == target:
        return amount
    try:
        if source == Currency.USD:
            return (amount * rate).quantize(Decimal("1"), rounding=ROUND_HALF_UP)
        return (amount / rate).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
    except InvalidOperation:
        raise ValidationError(f"amount {amount} is out of range", field="amount") from None


class MerchantDirectory:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def lookup(self, slug: str) -> MerchantConfig:
        gateway = await self._fetch(slug)
        return merchant_config_from_mapping(gateway.config if gateway else None)

    async def upsert(self, slug: str, config: dict[str, Any]) -> MerchantConfig:
        merchant = merchant_config_from_mapping(config)
        gateway = await self._fetch(slug)
        if gateway is None:
            gateway = PaymentGateway(slug=slug, config=config)
            self.session.add(gateway)
        else:
            gateway.config = config
        await self.session.commit()
        return merchant

    async def _fetch(self, slug: str) -> PaymentGateway | None:
        stmt = select(PaymentGateway).where(PaymentGateway.slug == slug).limit(1)
        result = await self.session.execute(stmt)
        return result.scalars().first()
