"""Tamper-evident audit chain for compliance records."""

from .errors import AuditChainError, ChainConflictError, ChainIntegrityError, AuditEntryNotFoundError
from .types import AuditEntry, ChainVerification
from .chain import (
    GENESIS_HASH,
    serialize_record,
    serialize_time_entry,
    compute_record_hash,
    create_audit_entry,
    AuditChainWriter,
    AuditChainRegistry,
    AuditChainVerifier,
)

__all__ = [
    "AuditChainError",
    "ChainConflictError",
    "ChainIntegrityError",
    "AuditEntryNotFoundError",
    "AuditEntry",
    "ChainVerification",
    "GENESIS_HASH",
    "serialize_record",
    "serialize_time_entry",
    "compute_record_hash",
    "create_audit_entry",
    "AuditChainWriter",
    "AuditChainRegistry",
    "AuditChainVerifier",
]
