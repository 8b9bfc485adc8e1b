"""Register session endpoints (open, close, status, history, reports)."""

from uuid import UUID

from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from tilldesk.api.auth import get_current_user
from tilldesk.core.audit import SqlAlchemyAuditLog
from tilldesk.core.db import get_db
from tilldesk.core.errors import NotFoundError
from tilldesk.core.logging import get_logger
from tilldesk.models import (
    AuditLogRead,
    DenominationEntryRead,
    DenominationPhase,
    DenominationTypeRead,
    DiscrepancyReportRead,
    ReconciliationReportRead,
    RegisterSessionClose,
    RegisterSessionOpen,
    RegisterSessionRead,
    User,
)
from tilldesk.repositories.denominations import SqlAlchemyDenominationCatalog
from tilldesk.repositories.register_sessions import (
    DiscrepancyReportQuery,
    SessionHistoryQuery,
    SqlAlchemySessionStore,
)
from tilldesk.services.register_sessions import (
    CloseSessionCommand,
    ExpectedBalanceSource,
    OpenSessionCommand,
    OpeningFloatExpectedBalance,
    RequestMetadata,
    SessionLifecycleManager,
)

logger = get_logger(__name__)

router = APIRouter(prefix="/register-sessions", tags=["register-sessions"])


def get_expected_balance_source() -> ExpectedBalanceSource:
    """Ledger collaborator; override this dependency to plug in the sales ledger."""
    return OpeningFloatExpectedBalance()


def get_session_store(db: AsyncSession = Depends(get_db)) -> SqlAlchemySessionStore:
    return SqlAlchemySessionStore(db)


def get_lifecycle_manager(
    db: AsyncSession = Depends(get_db),
    expected_balance_source: ExpectedBalanceSource = Depends(get_expected_balance_source),
) -> SessionLifecycleManager:
    return SessionLifecycleManager(
        db=db,
        store=SqlAlchemySessionStore(db),
        catalog=SqlAlchemyDenominationCatalog(db),
        audit_log=SqlAlchemyAuditLog(db),
        expected_balance_source=expected_balance_source,
    )


def _request_metadata(request: Request) -> RequestMetadata:
    return RequestMetadata(
        ip_address=request.client.host if request.client else None,
        user_agent=request.headers.get("user-agent"),
    )


def _parse_session_uuid(session_id: str) -> UUID:
    try:
        return UUID(session_id)
    except ValueError:
        raise NotFoundError("RegisterSession", session_id) from None


async def _load_session(store: SqlAlchemySessionStore, session_id: str):
    session = await store.get_session(_parse_session_uuid(session_id))
    if session is None:
        raise NotFoundError("RegisterSession", session_id)
    return session


@router.get("/denomination-types", response_model=list[DenominationTypeRead])
async def list_denomination_types(db: AsyncSession = Depends(get_db)):
    """Active denominations in display order."""
    return await SqlAlchemyDenominationCatalog(db).list_active()


@router.post("/open", response_model=RegisterSessionRead, status_code=status.HTTP_201_CREATED)
async def open_register_session(
    payload: RegisterSessionOpen,
    request: Request,
    current_user: User = Depends(get_current_user),
    manager: SessionLifecycleManager = Depends(get_lifecycle_manager),
):
    """Open a register with a counted starting float."""
    return await manager.open_session(
        OpenSessionCommand(
            register_id=payload.register_id,
            branch_id=payload.branch_id,
            user_id=current_user.id,
            declared_opening_balance=payload.declared_opening_balance,
            denomination_breakdown=payload.denomination_breakdown,
            notes=payload.notes,
            request=_request_metadata(request),
        )
    )


@router.post("/{session_id}/close", response_model=RegisterSessionRead)
async def close_register_session(
    session_id: str,
    payload: RegisterSessionClose,
    request: Request,
    current_user: User = Depends(get_current_user),
    manager: SessionLifecycleManager = Depends(get_lifecycle_manager),
):
    """Close a register session with the end-of-shift count."""
    return await manager.close_session(
        CloseSessionCommand(
            session_id=_parse_session_uuid(session_id),
            user_id=current_user.id,
            declared_closing_balance=payload.declared_closing_balance,
            denomination_breakdown=payload.denomination_breakdown,
            system_expected_balance=payload.system_expected_balance,
            notes=payload.notes,
            request=_request_metadata(request),
        )
    )


@router.get("/active/{register_id}", response_model=RegisterSessionRead | None)
async def get_active_session(
    register_id: int,
    store: SqlAlchemySessionStore = Depends(get_session_store),
):
    """Currently open session of a register, or null."""
    return await store.get_active_session(register_id)


@router.get("/history/{register_id}", response_model=list[RegisterSessionRead])
async def get_session_history(
    register_id: int,
    limit: int = Query(50, ge=1, le=500),
    store: SqlAlchemySessionStore = Depends(get_session_store),
):
    """Sessions of a register, most recent first."""
    return await store.get_session_history(SessionHistoryQuery(register_id=register_id, limit=limit))


@router.get("/discrepancies/{branch_id}", response_model=list[DiscrepancyReportRead])
async def get_discrepancy_reports(
    branch_id: int,
    limit: int = Query(20, ge=1, le=500),
    store: SqlAlchemySessionStore = Depends(get_session_store),
):
    """Closed sessions of a branch whose count missed the expected balance."""
    return await store.get_discrepancy_reports(
        DiscrepancyReportQuery(branch_id=branch_id, limit=limit)
    )


@router.get("/{session_id}", response_model=RegisterSessionRead)
async def get_register_session(
    session_id: str,
    store: SqlAlchemySessionStore = Depends(get_session_store),
):
    """Get register session details."""
    return await _load_session(store, session_id)


@router.get("/{session_id}/denominations", response_model=list[DenominationEntryRead])
async def get_denomination_breakdown(
    session_id: str,
    phase: DenominationPhase = Query(...),
    store: SqlAlchemySessionStore = Depends(get_session_store),
):
    """Opening or closing count of a session, in denomination order."""
    session = await _load_session(store, session_id)
    entries = await store.get_denomination_breakdown(session.id, phase)
    return [DenominationEntryRead.from_entry(entry) for entry in entries]


@router.get("/{session_id}/reconciliation", response_model=ReconciliationReportRead)
async def get_reconciliation_report(
    session_id: str,
    store: SqlAlchemySessionStore = Depends(get_session_store),
):
    """Both counts of a session with its discrepancy."""
    session = await _load_session(store, session_id)
    opening = await store.get_denomination_breakdown(session.id, DenominationPhase.OPENING)
    closing = await store.get_denomination_breakdown(session.id, DenominationPhase.CLOSING)

    return ReconciliationReportRead(
        session=RegisterSessionRead.model_validate(session),
        opening_breakdown=[DenominationEntryRead.from_entry(entry) for entry in opening],
        closing_breakdown=[DenominationEntryRead.from_entry(entry) for entry in closing],
        discrepancy_amount=session.discrepancy_amount,
        has_discrepancy=session.has_discrepancy,
        is_shortage=session.is_shortage,
        is_surplus=session.is_surplus,
    )


@router.get("/{session_id}/audit-logs", response_model=list[AuditLogRead])
async def get_session_audit_logs(
    session_id: str,
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=250),
    db: AsyncSession = Depends(get_db),
):
    """Get audit log history for a register session."""
    session = await _load_session(SqlAlchemySessionStore(db), session_id)
    return await SqlAlchemyAuditLog(db).list_for_session(session.id, skip=skip, limit=limit)
