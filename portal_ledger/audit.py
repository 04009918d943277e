# portal_ledger/audit.py
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional

from fastapi import Request
from sqlalchemy import select
from sqlalchemy.orm import Session

from .config import SENSITIVE_FIELDS
from .exceptions import InvalidAuditAction, RedactionPolicyViolation
from .models_audit import AuditLog
from .redaction import encode_snapshot, find_unredacted

SYSTEM_OPERATOR = "SISTEMA"


class EntityType(str, Enum):
    RECEITA = "RECEITA"
    CONFIGURACAO = "CONFIGURACAO"
    USUARIO = "USUARIO"
    FAQ = "FAQ"


class AuditAction(str, Enum):
    CREATE = "CREATE"
    UPDATE = "UPDATE"
    STATUS_CHANGE = "STATUS_CHANGE"
    IMPORT_BATCH = "IMPORT_BATCH"
    REVOKE_BATCH = "REVOKE_BATCH"
    DELETE = "DELETE"


ENTITY_ACTIONS: dict[EntityType, frozenset[AuditAction]] = {
    EntityType.RECEITA: frozenset(
        {AuditAction.UPDATE, AuditAction.DELETE, AuditAction.IMPORT_BATCH, AuditAction.REVOKE_BATCH}
    ),
    EntityType.CONFIGURACAO: frozenset({AuditAction.UPDATE}),
    EntityType.USUARIO: frozenset({AuditAction.CREATE, AuditAction.UPDATE, AuditAction.STATUS_CHANGE}),
    EntityType.FAQ: frozenset({AuditAction.CREATE, AuditAction.UPDATE, AuditAction.DELETE}),
}

BATCH_ENTITY_TYPES = frozenset(
    et for et, actions in ENTITY_ACTIONS.items() if AuditAction.REVOKE_BATCH in actions
)


def allowed_actions(entity_type: EntityType) -> list[str]:
    return sorted(a.value for a in ENTITY_ACTIONS[entity_type])


@dataclass(frozen=True)
class AuditContext:
    """Who is acting and from where."""

    user_id: Optional[str] = None
    user_name: str = SYSTEM_OPERATOR
    ip: Optional[str] = None
    user_agent: Optional[str] = None

    @classmethod
    def from_request(cls, request: Request) -> "AuditContext":
        name = (request.headers.get("x-operator-name") or "").strip()
        ua = request.headers.get("user-agent")
        return cls(
            user_id=(request.headers.get("x-operator-id") or "").strip() or None,
            user_name=name[:150] or SYSTEM_OPERATOR,
            ip=request.client.host if request.client else None,
            user_agent=ua[:255] if ua else None,
        )


def log_audit(
    db: Session,
    ctx: AuditContext,
    action: AuditAction,
    entity_type: EntityType,
    entity_id: Any,
    before: Any = None,
    after: Any = None,
) -> AuditLog:
    """
    Append one entry to the ledger inside the caller's transaction.

    Nothing is committed here: the entry lands or disappears together with the
    data change it describes. Snapshots holding a sensitive field with a real
    value are refused before anything is written.
    """
    if action not in ENTITY_ACTIONS[entity_type]:
        raise InvalidAuditAction(entity_type.value, action.value)

    leaked = find_unredacted(before, SENSITIVE_FIELDS) + find_unredacted(after, SENSITIVE_FIELDS)
    if leaked:
        raise RedactionPolicyViolation(sorted(set(leaked)))

    entry = AuditLog(
        user_id=ctx.user_id,
        user_name=ctx.user_name,
        action=action.value,
        entity_type=entity_type.value,
        entity_id=str(entity_id),
        snapshot_before=encode_snapshot(before),
        snapshot_after=encode_snapshot(after),
        ip=ctx.ip,
        user_agent=ctx.user_agent,
    )
    db.add(entry)
    db.flush()
    return entry


def is_batch_revoked(db: Session, entity_type: EntityType, batch_key: str) -> bool:
    # served by uq_audit_logs_revoke_batch
    stmt = (
        select(AuditLog.id)
        .where(
            AuditLog.entity_type == entity_type.value,
            AuditLog.action == AuditAction.REVOKE_BATCH.value,
            AuditLog.entity_id == batch_key,
        )
        .limit(1)
    )
    return db.execute(stmt).first() is not None
