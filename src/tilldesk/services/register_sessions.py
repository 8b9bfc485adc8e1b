# File: src/tilldesk/services/register_sessions.py
"""Register session lifecycle: open and close a drawer atomically.

Each operation is one unit of work on the injected ``AsyncSession``: the
session row, its breakdown rows and the audit entry are flushed together and
committed once. Any failure rolls the whole unit back. Nothing is retried;
a rejected count has to be re-entered by the operator.
"""

import time
import uuid
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Protocol, Sequence

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from tilldesk.core.audit import AuditEntry, AuditLog
from tilldesk.core.errors import (
    ConflictError,
    DatabaseError,
    InvalidStateError,
    NotFoundError,
    ValidationError,
)
from tilldesk.core.logging import get_logger, get_request_id
from tilldesk.core.reconciliation import (
    BalanceCheck,
    CountLine,
    compute_discrepancy,
    price_breakdown,
    verify_balance,
)
from tilldesk.models.enums import AuditAction, DenominationPhase, SessionStatus
from tilldesk.models.register_session import RegisterSession
from tilldesk.repositories.denominations import DenominationCatalog
from tilldesk.repositories.register_sessions import ClosingFields, SessionStore

logger = get_logger(__name__)


@dataclass(frozen=True)
class RequestMetadata:
    ip_address: str | None = None
    user_agent: str | None = None


@dataclass(frozen=True)
class OpenSessionCommand:
    register_id: int
    branch_id: int
    user_id: uuid.UUID
    declared_opening_balance: Decimal
    denomination_breakdown: Sequence[CountLine]
    notes: str | None = None
    request: RequestMetadata = field(default_factory=RequestMetadata)


@dataclass(frozen=True)
class CloseSessionCommand:
    session_id: uuid.UUID
    user_id: uuid.UUID
    declared_closing_balance: Decimal
    denomination_breakdown: Sequence[CountLine]
    # Supplied by the sales ledger when it already knows the figure.
    system_expected_balance: Decimal | None = None
    notes: str | None = None
    request: RequestMetadata = field(default_factory=RequestMetadata)


class ExpectedBalanceSource(Protocol):
    """Ledger collaborator answering "how much cash should be in this drawer?"."""

    async def expected_balance(self, session: RegisterSession) -> Decimal: ...


class OpeningFloatExpectedBalance:
    """Expects the drawer to still hold its opening float.

    Used when no sales ledger is wired in: with no recorded cash movements the
    system expects exactly what was counted in at open.
    """

    async def expected_balance(self, session: RegisterSession) -> Decimal:
        # Cash sales during the shift will show up as a surplus until a ledger is wired in
        logger.warning(
            "register_session.expected_balance_defaulted",
            session_id=str(session.id),
            register_id=session.register_id,
            expected_balance=str(session.calculated_opening_balance),
        )
        return session.calculated_opening_balance


def generate_session_number(register_id: int) -> str:
    """REG-<register>-<microseconds since epoch>."""
    return f"REG-{register_id}-{time.time_ns() // 1000}"


def _breakdown_snapshot(breakdown: Sequence[CountLine]) -> list[dict]:
    return [
        {"denomination_id": line.denomination_id, "quantity": line.quantity}
        for line in breakdown
    ]


class SessionLifecycleManager:
    """Enforces the per-register state machine NoSession -> OPEN -> CLOSED."""

    def __init__(
        self,
        db: AsyncSession,
        store: SessionStore,
        catalog: DenominationCatalog,
        audit_log: AuditLog,
        expected_balance_source: ExpectedBalanceSource | None = None,
    ):
        self.db = db
        self.store = store
        self.catalog = catalog
        self.audit_log = audit_log
        self.expected_balance_source = expected_balance_source or OpeningFloatExpectedBalance()

    async def _check_count(
        self,
        declared: Decimal,
        breakdown: Sequence[CountLine],
        phase: DenominationPhase,
    ) -> tuple[BalanceCheck, dict[int, Decimal]]:
        """Validate breakdown ids and reconcile the declared balance against it."""
        catalog_values = await self.catalog.get_values()

        seen: set[int] = set()
        duplicates: list[int] = []
        unknown: list[int] = []
        for line in breakdown:
            if line.denomination_id in seen:
                duplicates.append(line.denomination_id)
            seen.add(line.denomination_id)
            if line.denomination_id not in catalog_values:
                unknown.append(line.denomination_id)

        if unknown:
            raise ValidationError(
                "Denomination breakdown references unknown or inactive denominations",
                details={"phase": phase.value, "denomination_ids": unknown},
            )
        if duplicates:
            raise ValidationError(
                "Each denomination may appear only once in a breakdown",
                details={"phase": phase.value, "denomination_ids": duplicates},
            )

        check = verify_balance(declared, breakdown, catalog_values)
        if not check.ok:
            raise ValidationError(
                f"Declared {phase.value} balance ({check.declared:.2f}) does not match "
                f"calculated total ({check.calculated_total:.2f}). "
                "Please verify denomination quantities.",
                details={
                    "phase": phase.value,
                    "declared": str(check.declared),
                    "calculated": str(check.calculated_total),
                    "difference": str(check.difference),
                },
            )
        return check, catalog_values

    async def _conflict_for(self, register_id: int) -> ConflictError | None:
        active = await self.store.get_active_session(register_id)
        if active is None:
            return None
        return ConflictError(
            "Register already has an active session. Please close the current session first.",
            details={
                "register_id": register_id,
                "session_id": str(active.id),
                "session_number": active.session_number,
            },
        )

    async def open_session(self, command: OpenSessionCommand) -> RegisterSession:
        """Open a register with a counted float.

        Raises:
            NotFoundError: register does not exist
            InvalidStateError: register is inactive
            ConflictError: register already has an OPEN session
            ValidationError: branch mismatch or count does not reconcile
            DatabaseError: storage failure (nothing persisted)
        """
        try:
            session = await self._open(command)
            await self.db.commit()
        except IntegrityError as exc:
            await self.db.rollback()
            # Lost a race against a concurrent open on the same register.
            conflict = await self._conflict_for(command.register_id)
            if conflict is not None:
                logger.info(
                    "register_session.open_conflict",
                    register_id=command.register_id,
                    session_id=conflict.details["session_id"],
                )
                raise conflict from exc
            logger.error(
                "register_session.open_failed",
                register_id=command.register_id,
                error=type(exc).__name__,
            )
            raise DatabaseError(
                "Failed to open register session",
                details={"register_id": command.register_id},
            ) from exc
        except SQLAlchemyError as exc:
            await self.db.rollback()
            logger.error(
                "register_session.open_failed",
                register_id=command.register_id,
                error=type(exc).__name__,
            )
            raise DatabaseError(
                "Failed to open register session",
                details={"register_id": command.register_id},
            ) from exc
        except Exception:
            # AppErrors and anything unexpected: nothing flushed so far may survive
            await self.db.rollback()
            raise

        logger.info(
            "register_session.opened",
            session_id=str(session.id),
            session_number=session.session_number,
            register_id=session.register_id,
            branch_id=session.branch_id,
            opened_by=str(session.opened_by),
            calculated_opening_balance=str(session.calculated_opening_balance),
        )
        return session

    async def _open(self, command: OpenSessionCommand) -> RegisterSession:
        register = await self.store.lock_register(command.register_id)
        if register is None:
            raise NotFoundError("Register", str(command.register_id))
        if not register.is_active:
            raise InvalidStateError(
                "Cannot open a session on an inactive register",
                details={"register_id": command.register_id},
            )
        if register.branch_id != command.branch_id:
            raise ValidationError(
                "Register does not belong to the given branch",
                details={
                    "register_id": command.register_id,
                    "branch_id": command.branch_id,
                    "register_branch_id": register.branch_id,
                },
            )

        conflict = await self._conflict_for(command.register_id)
        if conflict is not None:
            raise conflict

        check, catalog_values = await self._check_count(
            command.declared_opening_balance,
            command.denomination_breakdown,
            DenominationPhase.OPENING,
        )

        session = RegisterSession(
            id=uuid.uuid4(),
            session_number=generate_session_number(command.register_id),
            register_id=command.register_id,
            branch_id=command.branch_id,
            opened_by=command.user_id,
            status=SessionStatus.OPEN.value,
            declared_opening_balance=command.declared_opening_balance,
            calculated_opening_balance=check.calculated_total,
            opening_notes=command.notes,
        )
        await self.store.create_session(
            session, price_breakdown(command.denomination_breakdown, catalog_values)
        )

        await self.audit_log.append(
            AuditEntry(
                session_id=session.id,
                register_id=command.register_id,
                branch_id=command.branch_id,
                user_id=command.user_id,
                action=AuditAction.SESSION_OPENED.value,
                description=(
                    "Register session opened with opening balance of "
                    f"{command.declared_opening_balance:.2f}"
                ),
                new_value={
                    "session_id": session.id,
                    "session_number": session.session_number,
                    "declared_balance": command.declared_opening_balance,
                    "calculated_balance": check.calculated_total,
                    "denomination_breakdown": _breakdown_snapshot(command.denomination_breakdown),
                },
                amount=command.declared_opening_balance,
                metadata={
                    "denomination_count": len(command.denomination_breakdown),
                    "request_id": get_request_id(),
                },
                ip_address=command.request.ip_address,
                user_agent=command.request.user_agent,
            )
        )
        return session

    async def close_session(self, command: CloseSessionCommand) -> RegisterSession:
        """Close an OPEN session with a counted drawer and record the discrepancy.

        Raises:
            NotFoundError: session does not exist
            InvalidStateError: session is already closed
            ValidationError: count does not reconcile
            DatabaseError: storage failure (nothing persisted)
        """
        try:
            session = await self._close(command)
            await self.db.commit()
        except SQLAlchemyError as exc:
            await self.db.rollback()
            logger.error(
                "register_session.close_failed",
                session_id=str(command.session_id),
                error=type(exc).__name__,
            )
            raise DatabaseError(
                "Failed to close register session",
                details={"session_id": str(command.session_id)},
            ) from exc
        except Exception:
            await self.db.rollback()
            raise

        logger.info(
            "register_session.closed",
            session_id=str(session.id),
            register_id=session.register_id,
            closed_by=str(session.closed_by),
            calculated_closing_balance=str(session.calculated_closing_balance),
            discrepancy_amount=str(session.discrepancy_amount),
        )
        if session.has_discrepancy:
            # Notification only; the close is already committed.
            logger.warning(
                "register_session.discrepancy_detected",
                session_id=str(session.id),
                session_number=session.session_number,
                register_id=session.register_id,
                branch_id=session.branch_id,
                discrepancy_amount=str(session.discrepancy_amount),
                shortage=session.is_shortage,
            )
        return session

    async def _close(self, command: CloseSessionCommand) -> RegisterSession:
        session = await self.store.get_session(command.session_id, for_update=True)
        if session is None:
            raise NotFoundError("RegisterSession", str(command.session_id))
        if session.status != SessionStatus.OPEN.value:
            raise InvalidStateError(
                "Register session is not open",
                details={"session_id": str(session.id), "status": session.status},
            )

        check, catalog_values = await self._check_count(
            command.declared_closing_balance,
            command.denomination_breakdown,
            DenominationPhase.CLOSING,
        )

        if command.system_expected_balance is not None:
            system_expected = command.system_expected_balance
        else:
            system_expected = await self.expected_balance_source.expected_balance(session)
        discrepancy = compute_discrepancy(system_expected, check.calculated_total)

        closed = await self.store.close_session(
            session.id,
            ClosingFields(
                closed_by=command.user_id,
                declared_closing_balance=command.declared_closing_balance,
                calculated_closing_balance=check.calculated_total,
                system_expected_balance=system_expected,
                discrepancy_amount=discrepancy,
                closing_notes=command.notes,
            ),
            price_breakdown(command.denomination_breakdown, catalog_values),
        )

        await self.audit_log.append(
            AuditEntry(
                session_id=closed.id,
                register_id=closed.register_id,
                branch_id=closed.branch_id,
                user_id=command.user_id,
                action=AuditAction.SESSION_CLOSED.value,
                description=(
                    "Register session closed with closing balance of "
                    f"{command.declared_closing_balance:.2f}"
                ),
                old_value={"status": SessionStatus.OPEN.value},
                new_value={
                    "session_id": closed.id,
                    "status": SessionStatus.CLOSED.value,
                    "declared_balance": command.declared_closing_balance,
                    "calculated_balance": check.calculated_total,
                    "system_expected_balance": system_expected,
                    "discrepancy": discrepancy,
                    "denomination_breakdown": _breakdown_snapshot(command.denomination_breakdown),
                },
                amount=command.declared_closing_balance,
                metadata={
                    "denomination_count": len(command.denomination_breakdown),
                    "has_discrepancy": discrepancy != 0,
                    "request_id": get_request_id(),
                },
                ip_address=command.request.ip_address,
                user_agent=command.request.user_agent,
            )
        )
        return closed
