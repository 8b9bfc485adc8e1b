"""Append-only audit logging for register session transitions."""

import uuid
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Protocol, Sequence

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from tilldesk.models.register_audit_log import RegisterAuditLog
from tilldesk.utils.datetime import now_utc


@dataclass
class AuditEntry:
    """One lifecycle transition to be recorded."""

    register_id: int
    branch_id: int
    user_id: uuid.UUID
    action: str
    description: str
    session_id: uuid.UUID | None = None
    old_value: dict[str, Any] | None = None
    new_value: dict[str, Any] | None = None
    amount: Decimal | None = None
    metadata: dict[str, Any] = field(default_factory=dict)
    ip_address: str | None = None
    user_agent: str | None = None


class AuditLog(Protocol):
    """Write side of the audit trail. Only appending is possible."""

    async def append(self, entry: AuditEntry) -> RegisterAuditLog: ...


def serialize_value(v: Any) -> Any:
    """Convert Decimal/UUID/datetime values (recursively) for JSON storage."""
    if isinstance(v, Decimal):
        return str(v)
    if isinstance(v, uuid.UUID):
        return str(v)
    if isinstance(v, (datetime, date)):
        return v.isoformat()
    if isinstance(v, dict):
        return {str(k): serialize_value(val) for k, val in v.items()}
    if isinstance(v, (list, tuple)):
        return [serialize_value(item) for item in v]
    return v


class SqlAlchemyAuditLog:
    """Stages audit rows in the caller's transaction.

    The row is flushed immediately so that a failing audit write raises inside
    the lifecycle operation and takes the state change down with it.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    async def append(self, entry: AuditEntry) -> RegisterAuditLog:
        """Record an audit entry.

        Args:
            entry: The transition to record

        Returns:
            Created RegisterAuditLog record (flushed, not committed)
        """
        audit_log = RegisterAuditLog(
            session_id=entry.session_id,
            register_id=entry.register_id,
            branch_id=entry.branch_id,
            user_id=entry.user_id,
            action=entry.action,
            description=entry.description,
            old_value=serialize_value(entry.old_value) if entry.old_value is not None else None,
            new_value=serialize_value(entry.new_value) if entry.new_value is not None else None,
            amount=entry.amount,
            extra=serialize_value(entry.metadata),
            ip_address=entry.ip_address,
            user_agent=entry.user_agent,
            created_at=now_utc(),
        )

        self.db.add(audit_log)
        await self.db.flush()
        return audit_log

    async def list_for_session(
        self, session_id: uuid.UUID, skip: int = 0, limit: int = 50
    ) -> Sequence[RegisterAuditLog]:
        """Audit history of one session, newest first."""
        stmt = (
            select(RegisterAuditLog)
            .where(RegisterAuditLog.session_id == session_id)
            .order_by(RegisterAuditLog.created_at.desc())
            .offset(skip)
            .limit(limit)
        )
        result = await self.db.execute(stmt)
        return result.scalars().all()
