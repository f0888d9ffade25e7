"""Type definitions for the audit chain."""

import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Optional

from utils.time import utc_now


@dataclass(frozen=True)
class AuditEntry:
    """One link of an audit chain.

    record_hash covers record_data and previous_hash only. id and timestamp are
    metadata and are not part of the hash input.
    """
    action: str
    record_hash: str
    previous_hash: str
    record_data: Any
    record_id: Optional[str] = None
    chain_id: Optional[str] = None
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    timestamp: datetime = field(default_factory=utc_now)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "chain_id": self.chain_id,
            "action": self.action,
            "record_id": self.record_id,
            "record_hash": self.record_hash,
            "previous_hash": self.previous_hash,
            "timestamp": self.timestamp.isoformat(),
            "record_data": self.record_data,
        }


@dataclass(frozen=True)
class ChainVerification:
    """Evidence produced by walking a chain."""
    valid: bool
    chain_length: int
    last_hash: str
    tampered_at: Optional[int] = None
    expected_hash: Optional[str] = None
    actual_hash: Optional[str] = None
    reason: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "valid": self.valid,
            "chain_length": self.chain_length,
            "last_hash": self.last_hash,
            "tampered_at": self.tampered_at,
            "expected_hash": self.expected_hash,
            "actual_hash": self.actual_hash,
            "reason": self.reason,
        }
