# File: src/tilldesk/models/register_session.py
"""RegisterSession model: one open-to-close lifecycle of a register."""

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from tilldesk.models.register import Register
    from tilldesk.models.register_session_denomination import RegisterSessionDenomination
    from tilldesk.models.user import User

import uuid
from datetime import datetime
from decimal import Decimal

from sqlalchemy import ForeignKey, Index, Integer, Numeric, String, Text, Uuid, text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from tilldesk.core.db import Base
from tilldesk.models.enums import SessionStatus
from tilldesk.utils.datetime import now_utc_naive


class RegisterSession(Base):
    """Register session with opening/closing counts and reconciliation result."""

    __tablename__ = "register_sessions"
    __table_args__ = (
        # At most one OPEN session per register; a concurrent duplicate insert fails here.
        Index(
            "uq_register_sessions_one_open_per_register",
            "register_id",
            unique=True,
            postgresql_where=text("status = 'OPEN'"),
            sqlite_where=text("status = 'OPEN'"),
        ),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )

    session_number: Mapped[str] = mapped_column(
        String(64),
        nullable=False,
        unique=True,
        index=True,
    )

    register_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("registers.id"),
        nullable=False,
        index=True,
    )

    register: Mapped["Register"] = relationship(
        "Register",
        lazy="selectin",
    )

    branch_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("branches.id"),
        nullable=False,
        index=True,
    )

    # WHO
    opened_by: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("users.id"),
        nullable=False,
        index=True,
    )

    opened_by_user: Mapped["User"] = relationship(
        "User",
        foreign_keys=[opened_by],
        lazy="selectin",
    )

    closed_by: Mapped[uuid.UUID | None] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("users.id"),
        nullable=True,
    )

    closed_by_user: Mapped["User | None"] = relationship(
        "User",
        foreign_keys=[closed_by],
        lazy="selectin",
    )

    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=SessionStatus.OPEN.value,
        index=True,
    )

    # Opening count
    declared_opening_balance: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    calculated_opening_balance: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)

    # Closing count
    declared_closing_balance: Mapped[Decimal | None] = mapped_column(
        Numeric(12, 2), nullable=True
    )
    calculated_closing_balance: Mapped[Decimal | None] = mapped_column(
        Numeric(12, 2), nullable=True
    )

    # Reconciliation
    system_expected_balance: Mapped[Decimal | None] = mapped_column(
        Numeric(12, 2), nullable=True
    )
    discrepancy_amount: Mapped[Decimal | None] = mapped_column(Numeric(12, 2), nullable=True)

    opening_notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    closing_notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    # WHEN
    opened_at: Mapped[datetime] = mapped_column(
        nullable=False,
        default=now_utc_naive,
        index=True,
    )
    closed_at: Mapped[datetime | None] = mapped_column(nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        nullable=False,
        default=now_utc_naive,
    )
    updated_at: Mapped[datetime] = mapped_column(
        nullable=False,
        default=now_utc_naive,
        onupdate=now_utc_naive,
    )

    denominations: Mapped[list["RegisterSessionDenomination"]] = relationship(
        "RegisterSessionDenomination",
        back_populates="session",
        lazy="raise",
    )

    # CALCULATED PROPERTIES
    @property
    def is_open(self) -> bool:
        return self.status == SessionStatus.OPEN.value

    @property
    def has_discrepancy(self) -> bool:
        """True once closed with a non-zero discrepancy."""
        return self.discrepancy_amount is not None and self.discrepancy_amount != 0

    @property
    def is_shortage(self) -> bool:
        """Drawer holds less cash than the system expects."""
        return self.discrepancy_amount is not None and self.discrepancy_amount > 0

    @property
    def is_surplus(self) -> bool:
        """Drawer holds more cash than the system expects."""
        return self.discrepancy_amount is not None and self.discrepancy_amount < 0

    def __repr__(self) -> str:
        return (
            f"<RegisterSession(id={self.id}, session_number={self.session_number}, "
            f"register_id={self.register_id}, status={self.status})>"
        )
