# File: src/tilldesk/models/register.py
"""Register model for physical/logical cash drawers."""

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from tilldesk.models.branch import Branch

from sqlalchemy import ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from tilldesk.core.db import Base


class Register(Base):
    """
    Cash drawer/till belonging to a branch.

    Registers are never deleted; inactive registers cannot open new sessions.
    """

    __tablename__ = "registers"
    __table_args__ = (UniqueConstraint("branch_id", "code", name="uq_registers_branch_code"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    branch_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("branches.id"),
        nullable=False,
        index=True,
    )

    branch: Mapped["Branch"] = relationship(
        "Branch",
        back_populates="registers",
        lazy="selectin",
    )

    name: Mapped[str] = mapped_column(String(150), nullable=False)
    code: Mapped[str | None] = mapped_column(String(50), nullable=True)

    is_active: Mapped[bool] = mapped_column(
        default=True,
        nullable=False,
        index=True,
    )

    def __repr__(self) -> str:
        return f"<Register(id={self.id}, branch_id={self.branch_id}, name={self.name})>"
