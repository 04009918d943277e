# portal_ledger/routes_admin.py
from typing import Optional

from fastapi import APIRouter, Depends, Response
from sqlalchemy import or_
from sqlalchemy.orm import Session

from .audit import AuditAction, AuditContext, EntityType, log_audit
from .auth import get_audit_context
from .database import get_db
from .exceptions import RecordNotFound
from .models import Configuracao, Faq
from .schemas import ConfiguracaoIn, FaqIn

router = APIRouter(tags=["Admin"])

CONFIG_ID = 1
CONFIG_FIELDS = tuple(ConfiguracaoIn.model_fields)


# =====================================
# Helpers
# =====================================
def _config_to_dict(c: Configuracao) -> dict:
    return {"id": c.id, **{f: getattr(c, f) for f in CONFIG_FIELDS}}


def _faq_to_dict(f: Faq) -> dict:
    return {"id": f.id, "pergunta": f.pergunta, "resposta": f.resposta, "ativo": f.ativo, "ordem": f.ordem}


def _get_or_create_config(db: Session) -> Configuracao:
    c = db.get(Configuracao, CONFIG_ID)
    if c is None:
        c = Configuracao(id=CONFIG_ID, nome_entidade="")
        db.add(c)
        db.flush()
    return c


def _get_faq(db: Session, faq_id: int) -> Faq:
    f = db.get(Faq, faq_id)
    if f is None:
        raise RecordNotFound(EntityType.FAQ.value, faq_id)
    return f


# =====================================
# Configuracao (single row)
# =====================================
@router.get("/configuracoes")
def get_config(db: Session = Depends(get_db)):
    c = _get_or_create_config(db)
    db.commit()
    return _config_to_dict(c)


@router.put("/configuracoes")
def update_config(
    payload: ConfiguracaoIn,
    db: Session = Depends(get_db),
    ctx: AuditContext = Depends(get_audit_context),
):
    c = _get_or_create_config(db)
    before = _config_to_dict(c)

    for name, value in payload.model_dump().items():
        setattr(c, name, value)
    db.flush()

    after = _config_to_dict(c)
    log_audit(db, ctx, AuditAction.UPDATE, EntityType.CONFIGURACAO, CONFIG_ID, before=before, after=after)
    db.commit()
    return after


# =====================================
# FAQ
# =====================================
@router.get("/faq")
def list_faq(busca: Optional[str] = None, db: Session = Depends(get_db)):
    q = db.query(Faq)
    if busca and busca.strip():
        term = f"%{busca.strip()}%"
        q = q.filter(or_(Faq.pergunta.ilike(term), Faq.resposta.ilike(term)))
    return [_faq_to_dict(f) for f in q.order_by(Faq.ordem, Faq.id).all()]


@router.post("/faq", status_code=201)
def create_faq(
    payload: FaqIn,
    db: Session = Depends(get_db),
    ctx: AuditContext = Depends(get_audit_context),
):
    f = Faq(
        pergunta=payload.pergunta,
        resposta=payload.resposta,
        ativo=payload.ativo if payload.ativo is not None else True,
        ordem=payload.ordem if payload.ordem is not None else 0,
    )
    db.add(f)
    db.flush()

    after = _faq_to_dict(f)
    log_audit(db, ctx, AuditAction.CREATE, EntityType.FAQ, f.id, after=after)
    db.commit()
    return after


@router.put("/faq/{faq_id}")
def update_faq(
    faq_id: int,
    payload: FaqIn,
    db: Session = Depends(get_db),
    ctx: AuditContext = Depends(get_audit_context),
):
    f = _get_faq(db, faq_id)
    before = _faq_to_dict(f)

    f.pergunta = payload.pergunta
    f.resposta = payload.resposta
    if payload.ativo is not None:
        f.ativo = payload.ativo
    if payload.ordem is not None:
        f.ordem = payload.ordem
    db.flush()

    after = _faq_to_dict(f)
    log_audit(db, ctx, AuditAction.UPDATE, EntityType.FAQ, f.id, before=before, after=after)
    db.commit()
    return after


@router.delete("/faq/{faq_id}", status_code=204)
def delete_faq(
    faq_id: int,
    db: Session = Depends(get_db),
    ctx: AuditContext = Depends(get_audit_context),
):
    f = _get_faq(db, faq_id)
    before = _faq_to_dict(f)

    db.delete(f)
    log_audit(db, ctx, AuditAction.DELETE, EntityType.FAQ, faq_id, before=before)
    db.commit()
    return Response(status_code=204)
