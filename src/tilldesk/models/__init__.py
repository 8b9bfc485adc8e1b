"""Domain models package."""

from tilldesk.models.branch import Branch
from tilldesk.models.denomination_type import DenominationType
from tilldesk.models.enums import AuditAction, DenominationKind, DenominationPhase, SessionStatus
from tilldesk.models.register import Register
from tilldesk.models.register_audit_log import RegisterAuditLog
from tilldesk.models.register_session import RegisterSession
from tilldesk.models.register_session_denomination import RegisterSessionDenomination
from tilldesk.models.register_session_schemas import (
    AuditLogRead,
    DenominationCount,
    DenominationEntryRead,
    DenominationTypeRead,
    DiscrepancyReportRead,
    ReconciliationReportRead,
    RegisterSessionClose,
    RegisterSessionOpen,
    RegisterSessionRead,
)
from tilldesk.models.user import User

__all__ = [
    "AuditAction",
    "AuditLogRead",
    "Branch",
    "DenominationCount",
    "DenominationEntryRead",
    "DenominationKind",
    "DenominationPhase",
    "DenominationType",
    "DenominationTypeRead",
    "DiscrepancyReportRead",
    "ReconciliationReportRead",
    "Register",
    "RegisterAuditLog",
    "RegisterSession",
    "RegisterSessionClose",
    "RegisterSessionDenomination",
    "RegisterSessionOpen",
    "RegisterSessionRead",
    "SessionStatus",
    "User",
]
