"""
Typed errors for the ledger service.

Every error carries a machine-readable ``code`` and the HTTP status the API
layer answers with, so callers catch by type and clients branch on ``code``:

    PortalLedgerError
    |
    +-- ValidationFailed          400  row-level file errors, bad filters
    +-- InvalidAuditAction        400  action outside the entity's vocabulary
    +-- NotFoundError             404
    |   +-- BatchNotFound
    |   +-- RecordNotFound
    +-- AlreadyRevoked            409  batch already reversed (terminal)
    +-- ImmutabilityViolation     409  attempt to change append-only data
    +-- RedactionPolicyViolation  422  sensitive field reached the ledger unredacted
    +-- StorageFailure            503  transient, nothing committed, retry
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any, Optional


@dataclass(frozen=True)
class RowError:
    row: Optional[int]
    column: Optional[str]
    reason: str

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


class PortalLedgerError(Exception):
    code: str = "PORTAL_LEDGER_ERROR"
    retryable: bool = False
    status_code: int = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def extra(self) -> dict[str, Any]:
        return {}

    def to_dict(self) -> dict[str, Any]:
        return {"error": self.code, "message": self.message, **self.extra()}


class ValidationFailed(PortalLedgerError):
    code = "ValidationFailed"
    status_code = 400

    def __init__(self, errors: list[RowError], message: str = "Validation failed"):
        super().__init__(f"{message}: {len(errors)} error(s)")
        self.errors = list(errors)

    def extra(self) -> dict[str, Any]:
        return {"errors": [e.to_dict() for e in self.errors]}


class InvalidAuditAction(PortalLedgerError):
    code = "InvalidAuditAction"
    status_code = 400

    def __init__(self, entity_type: str, action: str):
        super().__init__(f"Action {action} is not valid for entity type {entity_type}")
        self.entity_type = entity_type
        self.action = action


class NotFoundError(PortalLedgerError):
    code = "NotFound"
    status_code = 404


class BatchNotFound(NotFoundError):
    code = "BatchNotFound"

    def __init__(self, batch_key: str):
        super().__init__(f"Batch not found or already removed: {batch_key}")
        self.batch_key = batch_key

    def extra(self) -> dict[str, Any]:
        return {"batchKey": self.batch_key}


class RecordNotFound(NotFoundError):
    code = "RecordNotFound"

    def __init__(self, entity_type: str, entity_id: Any):
        super().__init__(f"{entity_type} {entity_id} not found")
        self.entity_type = entity_type
        self.entity_id = entity_id


class AlreadyRevoked(PortalLedgerError):
    code = "AlreadyRevoked"
    status_code = 409

    def __init__(self, batch_key: str):
        super().__init__(f"Batch {batch_key} has already been revoked")
        self.batch_key = batch_key

    def extra(self) -> dict[str, Any]:
        return {"batchKey": self.batch_key}


class ImmutabilityViolation(PortalLedgerError):
    code = "ImmutabilityViolation"
    status_code = 409


class RedactionPolicyViolation(PortalLedgerError):
    code = "RedactionPolicyViolation"
    status_code = 422

    def __init__(self, fields: list[str]):
        super().__init__(f"Sensitive field(s) must be redacted before auditing: {', '.join(fields)}")
        self.fields = fields

    def extra(self) -> dict[str, Any]:
        return {"fields": self.fields}


class StorageFailure(PortalLedgerError):
    code = "StorageFailure"
    status_code = 503
    retryable = True
