"""SessionStore: persistence for register sessions and their cash counts.

Methods stage work in the caller's ``AsyncSession`` (add + flush). Commit and
rollback belong to the unit of work that drives them, so a session row, its
breakdown rows and the matching audit entry always land in one transaction.
"""

import uuid
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Iterable, Protocol, Sequence

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import aliased, selectinload

from tilldesk.core.errors import InvalidStateError, NotFoundError
from tilldesk.core.reconciliation import PricedLine
from tilldesk.models.denomination_type import DenominationType
from tilldesk.models.enums import DenominationPhase, SessionStatus
from tilldesk.models.register import Register
from tilldesk.models.register_session import RegisterSession
from tilldesk.models.register_session_denomination import RegisterSessionDenomination
from tilldesk.models.user import User
from tilldesk.utils.datetime import now_utc


@dataclass(frozen=True)
class SessionHistoryQuery:
    register_id: int
    limit: int = 50


@dataclass(frozen=True)
class DiscrepancyReportQuery:
    branch_id: int
    limit: int = 20


@dataclass(frozen=True)
class ClosingFields:
    """Values written onto a session when it is closed."""

    closed_by: uuid.UUID
    declared_closing_balance: Decimal
    calculated_closing_balance: Decimal
    system_expected_balance: Decimal
    discrepancy_amount: Decimal
    closing_notes: str | None = None


@dataclass(frozen=True)
class DiscrepancyReport:
    """A closed session whose count did not match the expected balance."""

    session_id: uuid.UUID
    session_number: str
    register_id: int
    register_name: str | None
    discrepancy_amount: Decimal
    system_expected_balance: Decimal | None
    calculated_closing_balance: Decimal | None
    opened_at: datetime
    closed_at: datetime | None
    opened_by_name: str | None
    closed_by_name: str | None


class SessionStore(Protocol):
    async def create_session(
        self, session: RegisterSession, opening_breakdown: Iterable[PricedLine]
    ) -> RegisterSession: ...

    async def get_active_session(
        self, register_id: int, for_update: bool = False
    ) -> RegisterSession | None: ...

    async def get_session(
        self, session_id: uuid.UUID, for_update: bool = False
    ) -> RegisterSession | None: ...

    async def close_session(
        self,
        session_id: uuid.UUID,
        closing_fields: ClosingFields,
        closing_breakdown: Iterable[PricedLine],
    ) -> RegisterSession: ...

    async def get_denomination_breakdown(
        self, session_id: uuid.UUID, phase: DenominationPhase
    ) -> Sequence[RegisterSessionDenomination]: ...

    async def get_session_history(self, query: SessionHistoryQuery) -> Sequence[RegisterSession]: ...

    async def get_discrepancy_reports(
        self, query: DiscrepancyReportQuery
    ) -> list[DiscrepancyReport]: ...

    async def lock_register(self, register_id: int) -> Register | None: ...


class SqlAlchemySessionStore:
    """SessionStore backed by the ``register_sessions`` tables."""

    def __init__(self, db: AsyncSession):
        self.db = db

    def _stage_breakdown(
        self, session_id: uuid.UUID, phase: DenominationPhase, lines: Iterable[PricedLine]
    ) -> None:
        self.db.add_all(
            [
                RegisterSessionDenomination(
                    session_id=session_id,
                    denomination_id=line.denomination_id,
                    phase=phase.value,
                    quantity=line.quantity,
                    amount=line.amount,
                )
                for line in lines
            ]
        )

    async def create_session(
        self, session: RegisterSession, opening_breakdown: Iterable[PricedLine]
    ) -> RegisterSession:
        """Stage a new session and its opening breakdown, then flush both.

        A duplicate OPEN session for the register surfaces here as an
        IntegrityError from the partial unique index.
        """
        if session.id is None:
            session.id = uuid.uuid4()
        self.db.add(session)
        # Session row must reach the database before rows that reference it.
        await self.db.flush()
        self._stage_breakdown(session.id, DenominationPhase.OPENING, opening_breakdown)
        await self.db.flush()
        return session

    async def get_active_session(
        self, register_id: int, for_update: bool = False
    ) -> RegisterSession | None:
        """Latest committed OPEN session for the register, bypassing the identity map."""
        stmt = (
            select(RegisterSession)
            .where(
                RegisterSession.register_id == register_id,
                RegisterSession.status == SessionStatus.OPEN.value,
            )
            .execution_options(populate_existing=True)
        )
        if for_update:
            stmt = stmt.with_for_update()
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def get_session(
        self, session_id: uuid.UUID, for_update: bool = False
    ) -> RegisterSession | None:
        stmt = (
            select(RegisterSession)
            .where(RegisterSession.id == session_id)
            .execution_options(populate_existing=True)
        )
        if for_update:
            stmt = stmt.with_for_update()
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def close_session(
        self,
        session_id: uuid.UUID,
        closing_fields: ClosingFields,
        closing_breakdown: Iterable[PricedLine],
    ) -> RegisterSession:
        """Transition an OPEN session to CLOSED and stage the closing breakdown.

        The UPDATE is conditional on ``status = 'OPEN'`` so a session can only
        ever be closed once, even when two closes race.
        """
        stmt = (
            update(RegisterSession)
            .where(
                RegisterSession.id == session_id,
                RegisterSession.status == SessionStatus.OPEN.value,
            )
            .values(
                status=SessionStatus.CLOSED.value,
                closed_by=closing_fields.closed_by,
                declared_closing_balance=closing_fields.declared_closing_balance,
                calculated_closing_balance=closing_fields.calculated_closing_balance,
                system_expected_balance=closing_fields.system_expected_balance,
                discrepancy_amount=closing_fields.discrepancy_amount,
                closing_notes=closing_fields.closing_notes,
                closed_at=now_utc(),
            )
            .execution_options(synchronize_session=False)
        )
        result = await self.db.execute(stmt)

        if result.rowcount != 1:
            session = await self.get_session(session_id)
            if session is None:
                raise NotFoundError("RegisterSession", str(session_id))
            raise InvalidStateError(
                "Register session is not open",
                details={"session_id": str(session_id), "status": session.status},
            )

        self._stage_breakdown(session_id, DenominationPhase.CLOSING, closing_breakdown)
        await self.db.flush()

        session = await self.get_session(session_id)
        return session

    async def get_denomination_breakdown(
        self, session_id: uuid.UUID, phase: DenominationPhase
    ) -> Sequence[RegisterSessionDenomination]:
        """Breakdown rows for one phase, in denomination sort order."""
        stmt = (
            select(RegisterSessionDenomination)
            .options(selectinload(RegisterSessionDenomination.denomination))
            .join(
                DenominationType,
                RegisterSessionDenomination.denomination_id == DenominationType.id,
            )
            .where(
                RegisterSessionDenomination.session_id == session_id,
                RegisterSessionDenomination.phase == phase.value,
            )
            .order_by(DenominationType.sort_order, DenominationType.id)
            .execution_options(populate_existing=True)
        )
        result = await self.db.execute(stmt)
        return result.scalars().all()

    async def get_session_history(self, query: SessionHistoryQuery) -> Sequence[RegisterSession]:
        """Sessions of a register, most recently created first."""
        stmt = (
            select(RegisterSession)
            .where(RegisterSession.register_id == query.register_id)
            .order_by(RegisterSession.created_at.desc(), RegisterSession.opened_at.desc())
            .limit(query.limit)
            .execution_options(populate_existing=True)
        )
        result = await self.db.execute(stmt)
        return result.scalars().all()

    async def get_discrepancy_reports(self, query: DiscrepancyReportQuery) -> list[DiscrepancyReport]:
        """Closed sessions of a branch with a non-zero discrepancy, newest first."""
        opener = aliased(User)
        closer = aliased(User)
        stmt = (
            select(RegisterSession, Register.name, opener, closer)
            .outerjoin(Register, RegisterSession.register_id == Register.id)
            .outerjoin(opener, RegisterSession.opened_by == opener.id)
            .outerjoin(closer, RegisterSession.closed_by == closer.id)
            .where(
                RegisterSession.branch_id == query.branch_id,
                RegisterSession.discrepancy_amount.is_not(None),
                RegisterSession.discrepancy_amount != 0,
            )
            .order_by(RegisterSession.created_at.desc())
            .limit(query.limit)
        )
        result = await self.db.execute(stmt)

        return [
            DiscrepancyReport(
                session_id=session.id,
                session_number=session.session_number,
                register_id=session.register_id,
                register_name=register_name,
                discrepancy_amount=session.discrepancy_amount,
                system_expected_balance=session.system_expected_balance,
                calculated_closing_balance=session.calculated_closing_balance,
                opened_at=session.opened_at,
                closed_at=session.closed_at,
                opened_by_name=opened_by.display_name if opened_by else None,
                closed_by_name=closed_by.display_name if closed_by else None,
            )
            for session, register_name, opened_by, closed_by in result.all()
        ]

    async def lock_register(self, register_id: int) -> Register | None:
        """Load the register row with a row-level lock held until commit/rollback.

        PostgreSQL honors FOR UPDATE; SQLite ignores it and relies on the
        unique index alone.
        """
        stmt = select(Register).where(Register.id == register_id).with_for_update()
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()
