"""Denomination breakdown rows for a session's opening and closing counts."""

import uuid
from decimal import Decimal
from typing import TYPE_CHECKING

from sqlalchemy import CheckConstraint, ForeignKey, Integer, Numeric, String, UniqueConstraint, Uuid, event
from sqlalchemy.orm import Mapped, mapped_column, relationship

from tilldesk.core.db import Base
from tilldesk.core.errors import AuditLogImmutableError

if TYPE_CHECKING:
    from tilldesk.models.denomination_type import DenominationType
    from tilldesk.models.register_session import RegisterSession


class RegisterSessionDenomination(Base):
    """Counted quantity of one denomination in one phase of a session."""

    __tablename__ = "register_session_denominations"
    __table_args__ = (
        UniqueConstraint(
            "session_id",
            "denomination_id",
            "phase",
            name="uq_register_session_denominations_entry",
        ),
        CheckConstraint("quantity >= 0", name="ck_register_session_denominations_quantity"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    session_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("register_sessions.id"),
        nullable=False,
        index=True,
    )

    session: Mapped["RegisterSession"] = relationship(
        "RegisterSession",
        back_populates="denominations",
    )

    denomination_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("denomination_types.id"),
        nullable=False,
    )

    denomination: Mapped["DenominationType"] = relationship(
        "DenominationType",
        lazy="selectin",
    )

    phase: Mapped[str] = mapped_column(String(10), nullable=False)  # "opening", "closing"
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)

    def __repr__(self) -> str:
        return (
            f"<RegisterSessionDenomination(session_id={self.session_id}, "
            f"denomination_id={self.denomination_id}, phase={self.phase}, quantity={self.quantity})>"
        )


@event.listens_for(RegisterSessionDenomination, "before_update")
@event.listens_for(RegisterSessionDenomination, "before_delete")
def _reject_breakdown_mutation(mapper, connection, target) -> None:
    raise AuditLogImmutableError(
        f"Denomination breakdown for session {target.session_id} is immutable once recorded"
    )
