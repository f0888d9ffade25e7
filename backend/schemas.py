from typing import Any

from pydantic import BaseModel


class Coordinates(BaseModel):
    lat: float
    lng: float


class TimeEntrySchema(BaseModel):
    id: str
    clock_in: str  # ISO-8601 with offset: "2024-01-15T09:00:00+01:00"
    clock_out: str | None = None
    break_minutes: int = 0
    clock_in_location: Coordinates | None = None
    clock_out_location: Coordinates | None = None
    user_id: str | None = None


class BreakSchema(BaseModel):
    id: str
    time_entry_id: str
    break_start: str
    break_end: str | None = None
    break_type: str = "unpaid"


# ============================================================================
# Compliance
# ============================================================================

class ComplianceValidateRequest(BaseModel):
    current_entry: TimeEntrySchema
    all_entries: list[TimeEntrySchema] = []
    breaks: list[BreakSchema] = []
    user_age: int | None = None
    is_pregnant: bool = False
    location_coords: Coordinates | None = None
    user_coords: Coordinates | None = None


class ValidationResultSchema(BaseModel):
    rule: str
    passed: bool | None
    message: str
    rule_reference: str
    severity: str | None = None
    recommended_action: str | None = None
    details: dict = {}
    error: str | None = None


class ComplianceReportResponse(BaseModel):
    entry_id: str
    is_compliant: bool
    has_errors: bool
    highest_severity: str | None
    severity_counts: dict[str, int]
    weekly_hours: float | None
    overtime_hours: float | None
    results: list[ValidationResultSchema]


# ============================================================================
# Roster
# ============================================================================

class ShiftSchema(BaseModel):
    id: str
    start: str
    end: str
    break_minutes: int = 0
    location_id: str | None = None


class ValidateShiftRequest(BaseModel):
    proposed: ShiftSchema
    existing: list[ShiftSchema] = []
    exclude_id: str | None = None


class ValidationIssueSchema(BaseModel):
    rule: str
    message: str
    severity: str
    rule_reference: str | None = None


class ValidateShiftResponse(BaseModel):
    valid: bool
    violations: list[ValidationIssueSchema] = []
    warnings: list[ValidationIssueSchema] = []


# ============================================================================
# Audit chain
# ============================================================================

class AuditAppendRequest(BaseModel):
    action: str
    record_data: Any
    record_id: str | None = None
    previous_hash: str | None = None  # Expected current head; stale values are rejected


class AuditEntrySchema(BaseModel):
    id: str
    chain_id: str | None = None
    action: str
    record_id: str | None = None
    record_hash: str
    previous_hash: str
    timestamp: str
    record_data: Any


class ChainHeadResponse(BaseModel):
    chain_id: str
    head_hash: str
    appended: int


class VerifyChainRequest(BaseModel):
    entries: list[AuditEntrySchema]
    recompute: bool = False
    anchor: str | None = None
    until_entry_id: str | None = None


class ChainVerificationResponse(BaseModel):
    valid: bool
    chain_length: int
    last_hash: str
    tampered_at: int | None = None
    expected_hash: str | None = None
    actual_hash: str | None = None
    reason: str | None = None
