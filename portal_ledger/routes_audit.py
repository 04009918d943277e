# portal_ledger/routes_audit.py
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from .audit import ENTITY_ACTIONS, allowed_actions
from .audit_query import AuditQuery, get_audit_log, list_audit_logs, parse_entity_type, revoked_batch_keys
from .config import AUDIT_PAGE_SIZE
from .database import get_db

router = APIRouter(prefix="/auditoria", tags=["Auditoria"])


@router.get("")
def audit_log(
    page: int = 0,
    size: int = AUDIT_PAGE_SIZE,
    entityType: Optional[str] = None,
    action: Optional[str] = None,
    operator: Optional[str] = None,
    entityId: Optional[str] = None,
    dateFrom: Optional[date] = None,
    dateTo: Optional[date] = None,
    db: Session = Depends(get_db),
):
    """Newest first; ``action`` must belong to the vocabulary of ``entityType``."""
    q = AuditQuery(
        page=page,
        size=size,
        entity_type=entityType,
        action=action,
        operator=operator,
        entity_id=entityId,
        date_from=dateFrom,
        date_to=dateTo,
    )
    return list_audit_logs(db, q)


@router.get("/acoes")
def action_vocabulary():
    return {et.value: allowed_actions(et) for et in ENTITY_ACTIONS}


@router.get("/lotes-revogados")
def revoked_batches(entityType: str = "RECEITA", db: Session = Depends(get_db)):
    et = parse_entity_type(entityType)
    return {"entityType": et.value, "batchKeys": revoked_batch_keys(db, et)}


@router.get("/{entry_id}")
def audit_entry(entry_id: int, db: Session = Depends(get_db)):
    return get_audit_log(db, entry_id)
