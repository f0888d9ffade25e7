"""Tamper-evident audit chain.

Each entry stores sha256(serialized record + ":" + previous hash), so altering
or removing a stored entry breaks the link to the entry that follows it.
"""

import copy
import hashlib
import json
import logging
import threading
from datetime import date, datetime
from enum import Enum
from typing import Any, Iterable, Optional

from utils.time import to_js_iso

from .config import AUDIT_GENESIS_HASH
from .errors import AuditChainError, AuditEntryNotFoundError, ChainConflictError, ChainIntegrityError
from .types import AuditEntry, ChainVerification

logger = logging.getLogger(__name__)

GENESIS_HASH = AUDIT_GENESIS_HASH


def _json_default(value: Any):
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, Enum):
        return value.value
    raise TypeError(f"Object of type {type(value).__name__} is not serializable for the audit chain")


def serialize_record(data: Any) -> str:
    """Deterministic text form of a record. Strings are used as they are."""
    if isinstance(data, str):
        return data
    return json.dumps(data, sort_keys=True, separators=(",", ":"), default=_json_default)


def serialize_time_entry(user_id: str, clock_in: datetime, clock_out: Optional[datetime], break_minutes: int) -> str:
    """e.g. "u1:2024-01-15T08:00:00.000Z:2024-01-15T16:00:00.000Z:30"."""
    clock_out_text = to_js_iso(clock_out) if clock_out is not None else "null"
    return f"{user_id}:{to_js_iso(clock_in)}:{clock_out_text}:{break_minutes}"


def compute_record_hash(serialized: str, previous_hash: str) -> str:
    return hashlib.sha256(f"{serialized}:{previous_hash}".encode("utf-8")).hexdigest()


def create_audit_entry(
    action: str,
    record_data: Any,
    previous_hash: str,
    record_id: Optional[str] = None,
    chain_id: Optional[str] = None,
) -> AuditEntry:
    """Build the next entry of a chain whose head is previous_hash.

    record_data is copied so later changes by the caller do not alter the entry.
    """
    record_data = copy.deepcopy(record_data)
    return AuditEntry(
        action=action,
        record_hash=compute_record_hash(serialize_record(record_data), previous_hash),
        previous_hash=previous_hash,
        record_data=record_data,
        record_id=record_id,
        chain_id=chain_id,
    )


class AuditChainWriter:
    """
    Appends entries to one chain.

    Appends are serialized by a lock. A caller that passes previous_hash gets
    compare-and-swap semantics: if another append moved the head first, the
    call fails with ChainConflictError and the caller must re-read the head.
    """

    def __init__(self, chain_id: str, head_hash: str = GENESIS_HASH):
        self.chain_id = chain_id
        self._head = head_hash
        self._length = 0
        self._lock = threading.Lock()

    @property
    def head(self) -> str:
        with self._lock:
            return self._head

    @property
    def length(self) -> int:
        """Entries appended through this writer since it was created or seeded."""
        with self._lock:
            return self._length

    def append(
        self,
        action: str,
        record_data: Any,
        record_id: Optional[str] = None,
        previous_hash: Optional[str] = None,
    ) -> AuditEntry:
        with self._lock:
            if previous_hash is not None and previous_hash != self._head:
                logger.warning(f"Rejected append to chain {self.chain_id}: stale head {previous_hash}")
                raise ChainConflictError(self.chain_id, self._head, previous_hash)

            entry = create_audit_entry(action, record_data, self._head, record_id=record_id, chain_id=self.chain_id)
            self._head = entry.record_hash
            self._length += 1

        logger.info(f"Appended {action} to chain {self.chain_id}: {entry.record_hash}")
        return entry

    def append_time_entry(self, entry, action: str, user_id: Optional[str] = None) -> AuditEntry:
        """Record a time entry using the colon-joined time entry format."""
        user_id = user_id or entry.user_id
        if not user_id:
            raise ValueError(f"Time entry {entry.id} has no user_id to record")
        serialized = serialize_time_entry(user_id, entry.clock_in, entry.clock_out, entry.break_minutes)
        return self.append(action, serialized, record_id=entry.id)


class AuditChainRegistry:
    """One writer per chain id, e.g. per organization."""

    def __init__(self, genesis_hash: str = GENESIS_HASH):
        self.genesis_hash = genesis_hash
        self._writers: dict[str, AuditChainWriter] = {}
        self._lock = threading.Lock()

    def writer(self, chain_id: str) -> AuditChainWriter:
        with self._lock:
            if chain_id not in self._writers:
                self._writers[chain_id] = AuditChainWriter(chain_id, self.genesis_hash)
            return self._writers[chain_id]

    def seed(self, chain_id: str, head_hash: str) -> AuditChainWriter:
        """Resume a chain from a head hash loaded from storage."""
        with self._lock:
            existing = self._writers.get(chain_id)
            if existing is not None and existing.head != head_hash:
                raise AuditChainError(f"Chain {chain_id} is already active with head {existing.head}")
            if existing is None:
                self._writers[chain_id] = AuditChainWriter(chain_id, head_hash)
            return self._writers[chain_id]


class AuditChainVerifier:
    """
    Walks a stored chain and reports the first broken link.

    By default only linkage is checked: chain[i].previous_hash must equal
    chain[i - 1].record_hash. Tampering with the final entry cannot show up
    as a broken link, so recompute=True also re-derives each record_hash from
    its record_data.
    """

    def __init__(self, genesis_hash: str = GENESIS_HASH):
        self.genesis_hash = genesis_hash

    def verify(
        self,
        chain: Iterable[AuditEntry],
        recompute: bool = False,
        anchor: Optional[str] = None,
        until_entry_id: Optional[str] = None,
    ) -> ChainVerification:
        """
        Verify a chain in stored order.

        Args:
            chain: Entries, oldest first
            recompute: Also recompute every record_hash
            anchor: Expected previous_hash of the first entry
            until_entry_id: Stop after this entry

        Returns:
            ChainVerification; on failure tampered_at is the index of the
            first entry whose link or hash does not hold

        Raises:
            AuditEntryNotFoundError: until_entry_id is not in the chain
        """
        entries = list(chain)
        if until_entry_id is not None:
            position = next((i for i, e in enumerate(entries) if e.id == until_entry_id), None)
            if position is None:
                raise AuditEntryNotFoundError(until_entry_id)
            entries = entries[:position + 1]

        start_hash = anchor if anchor is not None else self.genesis_hash
        if not entries:
            return ChainVerification(valid=True, chain_length=0, last_hash=start_hash)

        last_good = start_hash
        for i, entry in enumerate(entries):
            if i == 0:
                if anchor is not None and entry.previous_hash != anchor:
                    return self._diverged(entries, i, last_good, anchor, entry.previous_hash,
                                          "first entry does not link to the anchor")
            else:
                expected = entries[i - 1].record_hash
                if entry.previous_hash != expected:
                    return self._diverged(entries, i, last_good, expected, entry.previous_hash,
                                          "previous_hash does not match the preceding record_hash")

            if recompute:
                expected = compute_record_hash(serialize_record(entry.record_data), entry.previous_hash)
                if entry.record_hash != expected:
                    return self._diverged(entries, i, last_good, expected, entry.record_hash,
                                          "record_hash does not match the recorded data")

            last_good = entry.record_hash

        return ChainVerification(valid=True, chain_length=len(entries), last_hash=last_good)

    @staticmethod
    def _diverged(entries, index, last_good, expected, actual, reason) -> ChainVerification:
        logger.warning(f"Audit chain diverges at index {index} (entry {entries[index].id}): {reason}")
        return ChainVerification(
            valid=False,
            chain_length=len(entries),
            last_hash=last_good,
            tampered_at=index,
            expected_hash=expected,
            actual_hash=actual,
            reason=reason,
        )

    def ensure_intact(self, chain: Iterable[AuditEntry], **kwargs) -> ChainVerification:
        """Like verify, but raise ChainIntegrityError instead of returning a failed result."""
        verification = self.verify(chain, **kwargs)
        if not verification.valid:
            raise ChainIntegrityError(verification)
        return verification
