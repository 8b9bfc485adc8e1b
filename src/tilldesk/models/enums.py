"""
Enums for domain models.
Enums provide type safety and clarity. Validation for categorical fields.
"""

import enum


class SessionStatus(str, enum.Enum):
    """Register session lifecycle states."""

    OPEN = "OPEN"
    CLOSED = "CLOSED"


class DenominationPhase(str, enum.Enum):
    """Which cash count a breakdown entry belongs to."""

    OPENING = "opening"
    CLOSING = "closing"


class DenominationKind(str, enum.Enum):
    """Physical form of a denomination."""

    NOTE = "note"
    COIN = "coin"


class AuditAction(str, enum.Enum):
    """Audited register actions."""

    SESSION_OPENED = "session_opened"
    SESSION_CLOSED = "session_closed"
