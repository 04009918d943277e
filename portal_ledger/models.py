from datetime import datetime, timezone

from sqlalchemy import (
    Boolean,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
    event,
    inspect,
)

from .database import Base
from .exceptions import ImmutabilityViolation


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ImportBatch(Base):
    """One row per ingestion call. Never deleted, so a batch key is never reused."""

    __tablename__ = "import_batches"

    batch_key = Column(String(64), primary_key=True)
    entity_type = Column(String(32), nullable=False)
    filename = Column(String(255), nullable=True)
    row_count = Column(Integer, nullable=False)
    created_by = Column(String(150), nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)


class Receita(Base):
    __tablename__ = "receitas"

    id = Column(Integer, primary_key=True, index=True)
    batch_key = Column(String(64), ForeignKey("import_batches.batch_key"), index=True, nullable=False)

    exercicio = Column(Integer, nullable=False)
    mes = Column(Integer, nullable=False)
    data_lancamento = Column(Date, nullable=False)

    # budget classification
    categoria_economica = Column(String(255), nullable=False)
    origem = Column(String(255), nullable=False)
    especie = Column(String(255), nullable=True)
    rubrica = Column(String(255), nullable=True)
    alinea = Column(String(255), nullable=True)
    fonte_recursos = Column(String(255), nullable=False)

    valor_previsto_inicial = Column(Numeric(18, 2), nullable=False, default=0)
    valor_previsto_atualizado = Column(Numeric(18, 2), nullable=False, default=0)
    valor_arrecadado = Column(Numeric(18, 2), nullable=False)

    historico = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)


# editable business fields, in file column order
RECEITA_FIELDS = (
    "exercicio",
    "mes",
    "data_lancamento",
    "categoria_economica",
    "origem",
    "especie",
    "rubrica",
    "alinea",
    "fonte_recursos",
    "valor_previsto_inicial",
    "valor_previsto_atualizado",
    "valor_arrecadado",
    "historico",
)


def receita_to_dict(r: Receita) -> dict:
    """Field-complete capture of a row, used for API output and audit snapshots."""
    out = {"id": r.id, "batch_key": r.batch_key}
    for name in RECEITA_FIELDS:
        out[name] = getattr(r, name)
    out["created_at"] = r.created_at
    return out


@event.listens_for(Receita, "before_update")
def _block_batch_key_change(mapper, connection, target):
    if inspect(target).attrs.batch_key.history.has_changes():
        raise ImmutabilityViolation(f"batch_key of receita {target.id} cannot be changed")


class Usuario(Base):
    __tablename__ = "usuarios"

    id = Column(Integer, primary_key=True, index=True)
    nome = Column(String(150), nullable=False)
    email = Column(String(255), unique=True, index=True, nullable=False)
    senha_hash = Column(String(255), nullable=False)
    role = Column(String(32), nullable=False, default="USER")
    ativo = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)


class Faq(Base):
    __tablename__ = "faqs"

    id = Column(Integer, primary_key=True, index=True)
    pergunta = Column(String(500), nullable=False)
    resposta = Column(Text, nullable=False)
    ativo = Column(Boolean, nullable=False, default=True)
    ordem = Column(Integer, nullable=False, default=0)


class Configuracao(Base):
    __tablename__ = "configuracoes"

    id = Column(Integer, primary_key=True)
    nome_entidade = Column(String(255), nullable=False, default="")
    cnpj = Column(String(32), nullable=True)
    cor_principal = Column(String(16), nullable=True)
    endereco = Column(String(255), nullable=True)
    telefone = Column(String(64), nullable=True)
    email_entidade = Column(String(255), nullable=True)
    site_oficial = Column(String(255), nullable=True)
    politica_privacidade = Column(Text, nullable=True)
    termos_uso = Column(Text, nullable=True)
