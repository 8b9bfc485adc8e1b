"""Denomination catalog: read-only access to active denomination types."""

from decimal import Decimal
from typing import Protocol, Sequence

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from tilldesk.models.denomination_type import DenominationType


class DenominationCatalog(Protocol):
    async def list_active(self) -> Sequence[DenominationType]: ...

    async def get_values(self) -> dict[int, Decimal]: ...


class SqlAlchemyDenominationCatalog:
    """Denomination types stored in ``denomination_types``."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def list_active(self) -> Sequence[DenominationType]:
        """Active denominations in display order."""
        stmt = (
            select(DenominationType)
            .where(DenominationType.is_active.is_(True))
            .order_by(DenominationType.sort_order, DenominationType.id)
        )
        result = await self.db.execute(stmt)
        return result.scalars().all()

    async def get_values(self) -> dict[int, Decimal]:
        """Map of active denomination id -> face value."""
        return {denomination.id: denomination.value for denomination in await self.list_active()}
