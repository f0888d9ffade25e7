"""Errors raised by the audit chain."""


class AuditChainError(Exception):
    """Base class for audit chain failures."""


class ChainConflictError(AuditChainError):
    """An append was based on a head hash that is no longer the chain head."""

    def __init__(self, chain_id, expected_head: str, given_head: str):
        self.chain_id = chain_id
        self.expected_head = expected_head
        self.given_head = given_head
        super().__init__(
            f"Chain {chain_id}: previous_hash {given_head} is stale, current head is {expected_head}"
        )


class ChainIntegrityError(AuditChainError):
    """Verification found a broken link or a recomputed hash mismatch."""

    def __init__(self, verification):
        self.verification = verification
        super().__init__(
            f"Audit chain diverges at index {verification.tampered_at}: {verification.reason}"
        )


class AuditEntryNotFoundError(AuditChainError, LookupError):
    def __init__(self, entry_id):
        self.entry_id = entry_id
        super().__init__(f"Audit entry {entry_id} not found in chain")
