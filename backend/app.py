import logging
from contextlib import asynccontextmanager

from dateutil import parser
from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware

from audit import (
    AuditChainRegistry,
    AuditChainVerifier,
    AuditEntry,
    AuditEntryNotFoundError,
    ChainConflictError,
)
from compliance import (
    ComplianceValidator,
    InvalidInputError,
    RosterValidator,
    ShiftData,
)
from compliance.config import validate_compliance_config
from compliance.engine import parse_instant
from schemas import (
    AuditAppendRequest,
    AuditEntrySchema,
    ChainHeadResponse,
    ChainVerificationResponse,
    ComplianceReportResponse,
    ComplianceValidateRequest,
    ShiftSchema,
    ValidateShiftRequest,
    ValidateShiftResponse,
    ValidationIssueSchema,
    ValidationResultSchema,
    VerifyChainRequest,
)
from utils.log import setup_logging

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging()
    validate_compliance_config()
    yield


app = FastAPI(title="timeCompliance", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

compliance_validator = ComplianceValidator()
roster_validator = RosterValidator()
audit_registry = AuditChainRegistry()
audit_verifier = AuditChainVerifier()


@app.get("/health")
async def health():
    return {"status": "ok"}


@app.post("/compliance/validate", response_model=ComplianceReportResponse)
async def validate_compliance(request: ComplianceValidateRequest) -> ComplianceReportResponse:
    data = request.model_dump()
    try:
        context = ComplianceValidator.build_context(
            current_entry=data["current_entry"],
            all_entries=data["all_entries"],
            breaks=data["breaks"],
            user_age=data["user_age"],
            is_pregnant=data["is_pregnant"],
            location_coords=data["location_coords"],
            user_coords=data["user_coords"],
        )
    except InvalidInputError as e:
        raise HTTPException(status_code=422, detail=str(e))

    report = compliance_validator.report(context)
    if report.blocking:
        logger.info(f"Entry {context.current_entry.id} has {len(report.blocking)} critical violations")

    return ComplianceReportResponse(
        entry_id=context.current_entry.id,
        is_compliant=report.is_compliant,
        has_errors=report.has_errors,
        highest_severity=report.highest_severity.value if report.highest_severity else None,
        severity_counts=report.severity_counts,
        weekly_hours=report.weekly_hours,
        overtime_hours=report.overtime_hours,
        results=[
            ValidationResultSchema(
                rule=r.rule.value,
                passed=r.passed,
                message=r.message,
                rule_reference=r.rule_reference,
                severity=r.severity.value if r.severity else None,
                recommended_action=r.recommended_action,
                details=r.details,
                error=r.error,
            )
            for r in report.results
        ],
    )


def _to_shift(schema: ShiftSchema) -> ShiftData:
    return ShiftData(
        id=schema.id,
        start=parse_instant(schema.start),
        end=parse_instant(schema.end),
        break_minutes=schema.break_minutes,
        location_id=schema.location_id,
    )


@app.post("/roster/validate-shift", response_model=ValidateShiftResponse)
async def validate_shift(request: ValidateShiftRequest) -> ValidateShiftResponse:
    try:
        proposed = _to_shift(request.proposed)
        existing = [_to_shift(s) for s in request.existing]
        result = roster_validator.validate_shift_assignment(existing, proposed, exclude_id=request.exclude_id)
    except InvalidInputError as e:
        raise HTTPException(status_code=422, detail=str(e))

    return ValidateShiftResponse(
        valid=result.valid,
        violations=[ValidationIssueSchema(**v.to_dict()) for v in result.violations],
        warnings=[ValidationIssueSchema(**w.to_dict()) for w in result.warnings],
    )


@app.post("/audit/{chain_id}/entries", response_model=AuditEntrySchema, status_code=201)
async def append_audit_entry(chain_id: str, request: AuditAppendRequest) -> AuditEntrySchema:
    writer = audit_registry.writer(chain_id)
    try:
        entry = writer.append(
            request.action,
            request.record_data,
            record_id=request.record_id,
            previous_hash=request.previous_hash,
        )
    except ChainConflictError as e:
        raise HTTPException(status_code=409, detail=str(e))
    except TypeError as e:
        raise HTTPException(status_code=422, detail=str(e))

    return AuditEntrySchema(**entry.to_dict())


@app.get("/audit/{chain_id}/head", response_model=ChainHeadResponse)
async def get_chain_head(chain_id: str) -> ChainHeadResponse:
    writer = audit_registry.writer(chain_id)
    return ChainHeadResponse(chain_id=chain_id, head_hash=writer.head, appended=writer.length)


@app.post("/audit/verify", response_model=ChainVerificationResponse)
async def verify_chain(request: VerifyChainRequest) -> ChainVerificationResponse:
    try:
        entries = [
            AuditEntry(
                id=e.id,
                chain_id=e.chain_id,
                action=e.action,
                record_id=e.record_id,
                record_hash=e.record_hash,
                previous_hash=e.previous_hash,
                timestamp=parser.isoparse(e.timestamp),
                record_data=e.record_data,
            )
            for e in request.entries
        ]
    except ValueError:
        raise HTTPException(status_code=422, detail="Invalid entry timestamp")

    try:
        verification = audit_verifier.verify(
            entries,
            recompute=request.recompute,
            anchor=request.anchor,
            until_entry_id=request.until_entry_id,
        )
    except AuditEntryNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))

    return ChainVerificationResponse(**verification.to_dict())
