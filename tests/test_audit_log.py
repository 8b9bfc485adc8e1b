"""Tests for the append-only audit trail and immutable cash counts."""

from datetime import datetime
from decimal import Decimal
import uuid

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from tilldesk.core.audit import AuditEntry, SqlAlchemyAuditLog, serialize_value
from tilldesk.core.errors import AuditLogImmutableError
from tilldesk.models import DenominationPhase, RegisterSessionDenomination
from tests.factories import DenominationTypeFactory, RegisterFactory, RegisterSessionFactory, UserFactory


@pytest.fixture
async def session_context(db_session: AsyncSession):
    operator = await UserFactory.create(db_session)
    register = await RegisterFactory.create(db_session)
    register_session = await RegisterSessionFactory.create(db_session, register, operator.id)
    return operator, register, register_session


def make_entry(operator, register, register_session, **overrides) -> AuditEntry:
    values = dict(
        session_id=register_session.id,
        register_id=register.id,
        branch_id=register.branch_id,
        user_id=operator.id,
        action="session_opened",
        description="Register session opened with opening balance of 500.00",
        amount=Decimal("500.00"),
        new_value={"declared_balance": Decimal("500.00"), "session_id": register_session.id},
        metadata={"denomination_count": 1},
    )
    values.update(overrides)
    return AuditEntry(**values)


class TestSqlAlchemyAuditLog:
    async def test_append_serializes_values(self, db_session, session_context):
        audit_log = SqlAlchemyAuditLog(db_session)

        log = await audit_log.append(make_entry(*session_context))
        await db_session.commit()

        _, _, register_session = session_context
        assert log.id is not None
        assert log.created_at is not None
        assert log.new_value == {
            "declared_balance": "500.00",
            "session_id": str(register_session.id),
        }
        assert log.extra == {"denomination_count": 1}

    async def test_list_for_session_newest_first(self, db_session, session_context):
        operator, register, register_session = session_context
        audit_log = SqlAlchemyAuditLog(db_session)

        opened = await audit_log.append(make_entry(*session_context))
        closed = await audit_log.append(
            make_entry(*session_context, action="session_closed", description="closed")
        )
        await db_session.commit()

        logs = await audit_log.list_for_session(register_session.id)

        assert [log.id for log in logs] == [closed.id, opened.id]
        assert await audit_log.list_for_session(register_session.id, skip=1) == [opened]
        assert await audit_log.list_for_session(uuid.uuid4()) == []

    async def test_entries_cannot_be_updated(self, db_session, session_context):
        log = await SqlAlchemyAuditLog(db_session).append(make_entry(*session_context))
        await db_session.commit()

        log.description = "rewritten history"
        with pytest.raises(AuditLogImmutableError):
            await db_session.flush()
        await db_session.rollback()

    async def test_entries_cannot_be_deleted(self, db_session, session_context):
        log = await SqlAlchemyAuditLog(db_session).append(make_entry(*session_context))
        await db_session.commit()

        await db_session.delete(log)
        with pytest.raises(AuditLogImmutableError):
            await db_session.flush()
        await db_session.rollback()


class TestBreakdownImmutability:
    @pytest.fixture
    async def entry(self, db_session, session_context):
        _, _, register_session = session_context
        denomination = await DenominationTypeFactory.create(db_session)
        entry = RegisterSessionDenomination(
            session_id=register_session.id,
            denomination_id=denomination.id,
            phase=DenominationPhase.OPENING.value,
            quantity=5,
            amount=Decimal("500.00"),
        )
        db_session.add(entry)
        await db_session.commit()
        return entry

    async def test_recorded_count_cannot_be_changed(self, db_session, entry):
        entry.quantity = 6
        with pytest.raises(AuditLogImmutableError):
            await db_session.flush()
        await db_session.rollback()

    async def test_recorded_count_cannot_be_deleted(self, db_session, entry):
        await db_session.delete(entry)
        with pytest.raises(AuditLogImmutableError):
            await db_session.flush()
        await db_session.rollback()


def test_serialize_value_handles_nested_structures():
    session_id = uuid.uuid4()
    stamp = datetime(2026, 1, 2, 3, 4, 5)

    assert serialize_value(
        {"ids": [session_id], "when": stamp, "amount": Decimal("1.50"), "count": 3, "note": None}
    ) == {
        "ids": [str(session_id)],
        "when": "2026-01-02T03:04:05",
        "amount": "1.50",
        "count": 3,
        "note": None,
    }
