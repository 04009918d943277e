# portal_ledger/routes_usuarios.py
from fastapi import APIRouter, Depends, Response
from sqlalchemy.orm import Session

from .audit import AuditAction, AuditContext, EntityType, log_audit
from .auth import get_audit_context, hash_password
from .database import get_db
from .exceptions import RecordNotFound, RowError, ValidationFailed
from .models import Usuario
from .redaction import REDACTED
from .schemas import SenhaIn, UsuarioCreateIn, UsuarioUpdateIn

router = APIRouter(prefix="/usuarios", tags=["Usuarios"])


# -----------------------------
# Helpers
# -----------------------------
def _usuario_to_dict(u: Usuario) -> dict:
    # never carries senha_hash
    return {
        "id": u.id,
        "nome": u.nome,
        "email": u.email,
        "role": u.role,
        "ativo": u.ativo,
    }


def _get_usuario(db: Session, usuario_id: int) -> Usuario:
    u = db.get(Usuario, usuario_id)
    if u is None:
        raise RecordNotFound(EntityType.USUARIO.value, usuario_id)
    return u


def _ensure_email_free(db: Session, email: str, own_id: int | None = None) -> None:
    other = db.query(Usuario).filter(Usuario.email == email).first()
    if other and other.id != own_id:
        raise ValidationFailed([RowError(None, "email", "e-mail already in use by another user")])


# -----------------------------
# Users
# -----------------------------
@router.get("")
def list_usuarios(db: Session = Depends(get_db)):
    return [_usuario_to_dict(u) for u in db.query(Usuario).order_by(Usuario.id).all()]


@router.post("", status_code=201)
def create_usuario(
    payload: UsuarioCreateIn,
    db: Session = Depends(get_db),
    ctx: AuditContext = Depends(get_audit_context),
):
    email = payload.email.strip().lower()
    _ensure_email_free(db, email)

    u = Usuario(
        nome=payload.nome.strip(),
        email=email,
        senha_hash=hash_password(payload.senha),
        role=(payload.role or "USER").upper(),
        ativo=True,
    )
    db.add(u)
    db.flush()

    after = _usuario_to_dict(u)
    log_audit(db, ctx, AuditAction.CREATE, EntityType.USUARIO, u.id, after=after)
    db.commit()
    return after


@router.put("/{usuario_id}")
def update_usuario(
    usuario_id: int,
    payload: UsuarioUpdateIn,
    db: Session = Depends(get_db),
    ctx: AuditContext = Depends(get_audit_context),
):
    u = _get_usuario(db, usuario_id)
    email = payload.email.strip().lower()
    _ensure_email_free(db, email, own_id=u.id)

    before = _usuario_to_dict(u)
    u.nome = payload.nome.strip()
    u.email = email
    u.role = payload.role.upper()
    db.flush()

    after = _usuario_to_dict(u)
    log_audit(db, ctx, AuditAction.UPDATE, EntityType.USUARIO, u.id, before=before, after=after)
    db.commit()
    return after


@router.patch("/{usuario_id}/status")
def toggle_status(
    usuario_id: int,
    db: Session = Depends(get_db),
    ctx: AuditContext = Depends(get_audit_context),
):
    u = _get_usuario(db, usuario_id)
    before = _usuario_to_dict(u)
    u.ativo = not u.ativo
    db.flush()

    after = _usuario_to_dict(u)
    log_audit(db, ctx, AuditAction.STATUS_CHANGE, EntityType.USUARIO, u.id, before=before, after=after)
    db.commit()
    return after


@router.put("/{usuario_id}/senha", status_code=204)
def change_password(
    usuario_id: int,
    payload: SenhaIn,
    db: Session = Depends(get_db),
    ctx: AuditContext = Depends(get_audit_context),
):
    u = _get_usuario(db, usuario_id)
    u.senha_hash = hash_password(payload.senha)
    db.flush()

    log_audit(
        db,
        ctx,
        AuditAction.UPDATE,
        EntityType.USUARIO,
        u.id,
        before={"senha": REDACTED},
        after={"senha": REDACTED},
    )
    db.commit()
    return Response(status_code=204)
