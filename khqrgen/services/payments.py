"""Payment record lookup."""
from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..models import Payment
from .errors import err_not_found


class PaymentLookup:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_by_transaction(self, transaction_id: str) -> Payment:
        stmt = (
            select(Payment)
            .where(Payment.transaction_id == transaction_id)
            .order_by(Payment.created_at.desc())
            .limit(1)
        )
        result = await self.session.execute(stmt)
        payment = result.scalars().first()
        if payment is None:
            raise err_not_found(f"No payment for transaction {transaction_id}")
        return payment
