"""Read side of the audit ledger: filtered pages, revoked batch keys, single entries."""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import date, datetime, time, timezone
from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from .audit import ENTITY_ACTIONS, AuditAction, EntityType
from .config import AUDIT_MAX_PAGE_SIZE, AUDIT_PAGE_SIZE
from .exceptions import RecordNotFound, RowError, ValidationFailed
from .models_audit import AuditLog
from .redaction import render_snapshot


@dataclass
class AuditQuery:
    page: int = 0
    size: int = AUDIT_PAGE_SIZE
    entity_type: Optional[str] = None
    action: Optional[str] = None
    operator: Optional[str] = None
    entity_id: Optional[str] = None
    date_from: Optional[date] = None
    date_to: Optional[date] = None


def parse_entity_type(value: str) -> EntityType:
    try:
        return EntityType(value.upper())
    except ValueError:
        raise ValidationFailed([RowError(None, "entityType", f"unknown entity type: {value}")])


def _parse_action(value: str, entity_type: Optional[EntityType]) -> AuditAction:
    try:
        action = AuditAction(value.upper())
    except ValueError:
        raise ValidationFailed([RowError(None, "action", f"unknown action: {value}")])
    if entity_type is not None and action not in ENTITY_ACTIONS[entity_type]:
        raise ValidationFailed(
            [RowError(None, "action", f"action {action.value} is not valid for {entity_type.value}")]
        )
    return action


def audit_log_to_dict(e: AuditLog, rendered: bool = False) -> dict:
    out = {
        "id": e.id,
        "actor": e.user_name,
        "actorId": e.user_id,
        "action": e.action,
        "entityType": e.entity_type,
        "entityId": e.entity_id,
        "snapshotBefore": e.snapshot_before,
        "snapshotAfter": e.snapshot_after,
        "timestamp": e.created_at.isoformat() if e.created_at else None,
        "originAddress": e.ip,
        "userAgent": e.user_agent,
    }
    if rendered:
        out["renderedBefore"] = render_snapshot(e.snapshot_before)
        out["renderedAfter"] = render_snapshot(e.snapshot_after)
    return out


def list_audit_logs(db: Session, q: AuditQuery) -> dict:
    entity_type = parse_entity_type(q.entity_type) if q.entity_type else None
    action = _parse_action(q.action, entity_type) if q.action else None
    page = max(q.page, 0)
    size = min(max(q.size, 1), AUDIT_MAX_PAGE_SIZE)

    filters = []
    if entity_type is not None:
        filters.append(AuditLog.entity_type == entity_type.value)
    if action is not None:
        filters.append(AuditLog.action == action.value)
    if q.operator and q.operator.strip():
        filters.append(AuditLog.user_name.ilike(f"%{q.operator.strip()}%"))
    if q.entity_id:
        filters.append(AuditLog.entity_id == q.entity_id)
    if q.date_from:
        filters.append(AuditLog.created_at >= datetime.combine(q.date_from, time.min, tzinfo=timezone.utc))
    if q.date_to:
        filters.append(AuditLog.created_at <= datetime.combine(q.date_to, time.max, tzinfo=timezone.utc))

    total = db.execute(select(func.count(AuditLog.id)).where(*filters)).scalar_one()
    rows = db.execute(
        select(AuditLog)
        .where(*filters)
        .order_by(AuditLog.created_at.desc(), AuditLog.id.desc())
        .offset(page * size)
        .limit(size)
    ).scalars()

    total_pages = math.ceil(total / size) if total else 0
    return {
        "content": [audit_log_to_dict(r) for r in rows],
        "totalPages": total_pages,
        "totalElements": total,
        "pageNumber": page,
        "isFirst": page == 0,
        "isLast": page >= total_pages - 1,
    }


def revoked_batch_keys(db: Session, entity_type: EntityType) -> list[str]:
    """Every batch key with a REVOKE_BATCH entry, across the whole ledger."""
    stmt = (
        select(AuditLog.entity_id)
        .where(
            AuditLog.entity_type == entity_type.value,
            AuditLog.action == AuditAction.REVOKE_BATCH.value,
        )
        .order_by(AuditLog.entity_id)
    )
    return list(db.execute(stmt).scalars())


def get_audit_log(db: Session, entry_id: int) -> dict:
    entry = db.get(AuditLog, entry_id)
    if entry is None:
        raise RecordNotFound("AUDIT_LOG", entry_id)
    return audit_log_to_dict(entry, rendered=True)
