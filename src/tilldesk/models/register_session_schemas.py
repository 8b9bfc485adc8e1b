# File: src/tilldesk/models/register_session_schemas.py
"""Pydantic schemas for the register session API."""

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator

from tilldesk.core.validators import sanitize_html, validate_currency


class DenominationCount(BaseModel):
    """One counted line of a denomination breakdown."""

    denomination_id: int = Field(..., ge=1)
    quantity: int = Field(..., ge=0)


class RegisterSessionOpen(BaseModel):
    """Schema for opening a register session."""

    register_id: int = Field(..., ge=1)
    branch_id: int = Field(..., ge=1)
    declared_opening_balance: Decimal = Field(..., ge=0, decimal_places=2)
    denomination_breakdown: list[DenominationCount]
    notes: str | None = Field(None, max_length=1000)

    @field_validator("declared_opening_balance")
    @classmethod
    def validate_currency_fields(cls, v: Decimal) -> Decimal:
        """Validate currency values."""
        return validate_currency(v)

    @field_validator("notes")
    @classmethod
    def validate_notes(cls, v: str | None) -> str | None:
        """Sanitize notes field."""
        return sanitize_html(v)


class RegisterSessionClose(BaseModel):
    """Schema for closing a register session."""

    declared_closing_balance: Decimal = Field(..., ge=0, decimal_places=2)
    denomination_breakdown: list[DenominationCount]
    system_expected_balance: Decimal | None = Field(
        None,
        ge=0,
        decimal_places=2,
        description="Expected drawer cash from the sales ledger; defaults to the opening float",
    )
    notes: str | None = Field(None, max_length=1000)

    @field_validator("declared_closing_balance", "system_expected_balance")
    @classmethod
    def validate_currency_fields(cls, v: Decimal | None) -> Decimal | None:
        """Validate currency values."""
        if v is None:
            return None
        return validate_currency(v)

    @field_validator("notes")
    @classmethod
    def validate_notes(cls, v: str | None) -> str | None:
        """Sanitize notes field."""
        return sanitize_html(v)


class DenominationTypeRead(BaseModel):
    id: int
    name: str
    value: Decimal
    kind: str
    is_active: bool
    sort_order: int

    model_config = ConfigDict(from_attributes=True)


class DenominationEntryRead(BaseModel):
    """A persisted breakdown line with its denomination details."""

    id: int
    session_id: UUID
    denomination_id: int
    phase: str
    quantity: int
    amount: Decimal
    denomination_name: str | None = None
    denomination_value: Decimal | None = None
    denomination_kind: str | None = None

    @classmethod
    def from_entry(cls, entry) -> "DenominationEntryRead":
        denomination = entry.denomination
        return cls(
            id=entry.id,
            session_id=entry.session_id,
            denomination_id=entry.denomination_id,
            phase=entry.phase,
            quantity=entry.quantity,
            amount=entry.amount,
            denomination_name=denomination.name if denomination else None,
            denomination_value=denomination.value if denomination else None,
            denomination_kind=denomination.kind if denomination else None,
        )


class RegisterSessionRead(BaseModel):
    """Schema for reading a register session from the database."""

    id: UUID
    session_number: str
    register_id: int
    branch_id: int
    opened_by: UUID
    closed_by: UUID | None
    status: str

    declared_opening_balance: Decimal
    calculated_opening_balance: Decimal
    declared_closing_balance: Decimal | None
    calculated_closing_balance: Decimal | None
    system_expected_balance: Decimal | None
    discrepancy_amount: Decimal | None

    opening_notes: str | None
    closing_notes: str | None
    opened_at: datetime
    closed_at: datetime | None

    # Calculated properties
    has_discrepancy: bool = Field(...)

    model_config = ConfigDict(from_attributes=True)


class DiscrepancyReportRead(BaseModel):
    session_id: UUID
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

    model_config = ConfigDict(from_attributes=True)


class ReconciliationReportRead(BaseModel):
    """Both cash counts of a session side by side with the discrepancy."""

    session: RegisterSessionRead
    opening_breakdown: list[DenominationEntryRead]
    closing_breakdown: list[DenominationEntryRead]
    discrepancy_amount: Decimal | None
    has_discrepancy: bool
    is_shortage: bool
    is_surplus: bool


class AuditLogRead(BaseModel):
    id: UUID
    session_id: UUID | None
    register_id: int
    branch_id: int
    user_id: UUID
    action: str
    description: str
    amount: Decimal | None
    old_value: dict | None
    new_value: dict | None
    extra: dict
    ip_address: str | None
    user_agent: str | None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)
