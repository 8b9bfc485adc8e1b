"""Audit logging model for register session lifecycle events."""

import uuid
from datetime import datetime
from decimal import Decimal

from sqlalchemy import JSON, ForeignKey, Integer, Numeric, String, Text, Uuid, event
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from tilldesk.core.db import Base
from tilldesk.core.errors import AuditLogImmutableError
from tilldesk.utils.datetime import now_utc_naive

JSONPayload = JSON().with_variant(JSONB(), "postgresql")


class RegisterAuditLog(Base):
    """Immutable audit trail for all register session transitions."""

    __tablename__ = "register_audit_logs"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )

    # Null for register-level events
    session_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("register_sessions.id"),
        nullable=True,
        index=True,
    )

    register_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("registers.id"),
        nullable=False,
        index=True,
    )

    branch_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("branches.id"),
        nullable=False,
        index=True,
    )

    # WHO
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("users.id"),
        nullable=False,
    )

    # WHEN
    created_at: Mapped[datetime] = mapped_column(
        nullable=False,
        default=now_utc_naive,
        index=True,
    )

    # WHAT
    action: Mapped[str] = mapped_column(String(50), nullable=False)  # "session_opened", "session_closed"
    description: Mapped[str] = mapped_column(Text, nullable=False)
    amount: Mapped[Decimal | None] = mapped_column(Numeric(12, 2), nullable=True)

    # OLD/NEW VALUES
    old_value: Mapped[dict | None] = mapped_column(JSONPayload, nullable=True)
    new_value: Mapped[dict | None] = mapped_column(JSONPayload, nullable=True)
    extra: Mapped[dict] = mapped_column(JSONPayload, nullable=False, default=dict)

    # Request metadata
    ip_address: Mapped[str | None] = mapped_column(String(64), nullable=True)
    user_agent: Mapped[str | None] = mapped_column(String(500), nullable=True)

    def __repr__(self) -> str:
        return (
            f"<RegisterAuditLog(session_id={self.session_id}, "
            f"action={self.action}, user_id={self.user_id})>"
        )


@event.listens_for(RegisterAuditLog, "before_update")
@event.listens_for(RegisterAuditLog, "before_delete")
def _reject_audit_mutation(mapper, connection, target) -> None:
    raise AuditLogImmutableError("Audit log entries are append-only")
