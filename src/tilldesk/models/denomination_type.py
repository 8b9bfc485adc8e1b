"""DenominationType model: reference data for countable cash."""

from decimal import Decimal

from sqlalchemy import CheckConstraint, Integer, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column

from tilldesk.core.db import Base
from tilldesk.models.enums import DenominationKind


class DenominationType(Base):
    """A bill or coin recognized by the registers of this installation."""

    __tablename__ = "denomination_types"
    __table_args__ = (CheckConstraint("value > 0", name="ck_denomination_types_value_positive"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    name: Mapped[str] = mapped_column(String(50), nullable=False)
    value: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)

    kind: Mapped[str] = mapped_column(
        String(10),
        nullable=False,
        default=DenominationKind.NOTE.value,
    )

    is_active: Mapped[bool] = mapped_column(
        default=True,
        nullable=False,
        index=True,
    )

    sort_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    def __repr__(self) -> str:
        return f"<DenominationType(id={self.id}, name={self.name}, value={self.value})>"
