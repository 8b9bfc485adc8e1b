# File: src/tilldesk/models/branch.py
"""Branch model for store locations."""

from typing import TYPE_CHECKING

from tilldesk.utils.datetime import now_utc_naive

if TYPE_CHECKING:
    from tilldesk.models.register import Register

from datetime import datetime

from sqlalchemy import Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from tilldesk.core.db import Base


class Branch(Base):
    """
    Represents a store location.

    Branches are owned by the back-office catalog; this service only reads
    them so that sessions and discrepancy reports can be scoped per branch.
    """

    __tablename__ = "branches"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    name: Mapped[str] = mapped_column(
        String(200),
        nullable=False,
        index=True,
    )

    is_active: Mapped[bool] = mapped_column(
        default=True,
        nullable=False,
        index=True,
    )

    created_at: Mapped[datetime] = mapped_column(
        nullable=False,
        default=now_utc_naive,
    )

    # Relationships
    registers: Mapped[list["Register"]] = relationship(
        "Register",
        back_populates="branch",
    )

    def __repr__(self) -> str:
        return self.name
