# portal_ledger/routes_receitas.py
import math
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, File, Response, UploadFile
from sqlalchemy import func, select
from sqlalchemy.orm import Session

from .audit import AuditAction, AuditContext, EntityType, log_audit
from .auth import get_audit_context
from .config import AUDIT_MAX_PAGE_SIZE, IMPORT_MAX_BYTES
from .database import get_db
from .exceptions import BatchNotFound, RecordNotFound, RowError, ValidationFailed
from .ingestion import import_receitas
from .models import RECEITA_FIELDS, Receita, receita_to_dict
from .redaction import encode_value
from .revocation import batch_rows, revoke_batch
from .schemas import ImportOut, ReceitaUpdateIn

router = APIRouter(prefix="/receitas", tags=["Receitas"])


def _receita_out(r: Receita) -> dict:
    return encode_value(receita_to_dict(r))


def _get_receita(db: Session, receita_id: int) -> Receita:
    r = db.get(Receita, receita_id)
    if r is None:
        raise RecordNotFound(EntityType.RECEITA.value, receita_id)
    return r


# =========================
# Batch import / revocation
# =========================
@router.post("/import", status_code=201, response_model=ImportOut)
async def import_file(
    file: UploadFile = File(...),
    db: Session = Depends(get_db),
    ctx: AuditContext = Depends(get_audit_context),
):
    content = await file.read()
    if not content:
        raise ValidationFailed([RowError(None, None, "empty file")])
    if len(content) > IMPORT_MAX_BYTES:
        raise ValidationFailed([RowError(None, None, f"file larger than {IMPORT_MAX_BYTES} bytes")])

    result = import_receitas(db, content, file.filename or "upload.csv", ctx)
    return {"batchKey": result.batch_key, "rowCount": result.row_count}


@router.get("/lotes/{batch_key}")
def get_batch(batch_key: str, db: Session = Depends(get_db)):
    rows = batch_rows(db, batch_key)
    if not rows:
        raise BatchNotFound(batch_key)
    return {"batchKey": batch_key, "rowCount": len(rows), "rows": [_receita_out(r) for r in rows]}


@router.delete("/lotes/{batch_key}", status_code=204)
def revoke(
    batch_key: str,
    db: Session = Depends(get_db),
    ctx: AuditContext = Depends(get_audit_context),
):
    revoke_batch(db, batch_key, ctx)
    return Response(status_code=204)


# =========================
# Single records
# =========================
@router.get("")
def list_receitas(
    exercicio: Optional[int] = None,
    origem: Optional[str] = None,
    categoria: Optional[str] = None,
    fonte: Optional[str] = None,
    dataInicio: Optional[date] = None,
    dataFim: Optional[date] = None,
    batchKey: Optional[str] = None,
    page: int = 0,
    size: int = 20,
    db: Session = Depends(get_db),
):
    filters = []
    if exercicio is not None:
        filters.append(Receita.exercicio == exercicio)
    if origem:
        filters.append(Receita.origem.ilike(f"%{origem}%"))
    if categoria:
        filters.append(Receita.categoria_economica.ilike(f"%{categoria}%"))
    if fonte:
        filters.append(Receita.fonte_recursos.ilike(f"%{fonte}%"))
    if dataInicio:
        filters.append(Receita.data_lancamento >= dataInicio)
    if dataFim:
        filters.append(Receita.data_lancamento <= dataFim)
    if batchKey:
        filters.append(Receita.batch_key == batchKey)

    page = max(page, 0)
    size = min(max(size, 1), AUDIT_MAX_PAGE_SIZE)
    total = db.execute(select(func.count(Receita.id)).where(*filters)).scalar_one()
    rows = db.execute(
        select(Receita)
        .where(*filters)
        .order_by(Receita.data_lancamento, Receita.id)
        .offset(page * size)
        .limit(size)
    ).scalars()

    total_pages = math.ceil(total / size) if total else 0
    return {
        "content": [_receita_out(r) for r in rows],
        "totalPages": total_pages,
        "totalElements": total,
        "pageNumber": page,
        "isFirst": page == 0,
        "isLast": page >= total_pages - 1,
    }


@router.get("/{receita_id}")
def get_receita(receita_id: int, db: Session = Depends(get_db)):
    return _receita_out(_get_receita(db, receita_id))


@router.put("/{receita_id}")
def update_receita(
    receita_id: int,
    payload: ReceitaUpdateIn,
    db: Session = Depends(get_db),
    ctx: AuditContext = Depends(get_audit_context),
):
    r = _get_receita(db, receita_id)
    before = receita_to_dict(r)

    data = payload.model_dump()
    for name in RECEITA_FIELDS:
        setattr(r, name, data[name])
    db.flush()
    db.refresh(r)
    after = receita_to_dict(r)

    log_audit(db, ctx, AuditAction.UPDATE, EntityType.RECEITA, r.id, before=before, after=after)
    db.commit()
    return encode_value(after)


@router.delete("/{receita_id}", status_code=204)
def delete_receita(
    receita_id: int,
    db: Session = Depends(get_db),
    ctx: AuditContext = Depends(get_audit_context),
):
    r = _get_receita(db, receita_id)
    before = receita_to_dict(r)

    db.delete(r)
    log_audit(db, ctx, AuditAction.DELETE, EntityType.RECEITA, receita_id, before=before)
    db.commit()
    return Response(status_code=204)
