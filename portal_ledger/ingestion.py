"""
Batch ingestion: parse a revenue file, persist every row under a fresh batch
key and append one IMPORT_BATCH ledger entry, all in a single transaction.
"""

from __future__ import annotations

import time
import uuid
from dataclasses import dataclass
from decimal import Decimal

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from .audit import AuditAction, AuditContext, EntityType, log_audit
from .database import begin_write
from .exceptions import StorageFailure, ValidationFailed
from .logging_setup import get_logger
from .models import ImportBatch, Receita
from .parser import parse_rows

logger = get_logger("ingestion")

_TOTAL_FIELDS = ("valor_previsto_inicial", "valor_previsto_atualizado", "valor_arrecadado")


@dataclass(frozen=True)
class ImportResult:
    batch_key: str
    row_count: int


def new_batch_key() -> str:
    return f"LOTE-{uuid.uuid4().hex.upper()}"


def _summary(filename: str, receitas: list[Receita]) -> dict:
    totals = {f: sum((getattr(r, f) for r in receitas), Decimal("0.00")) for f in _TOTAL_FIELDS}
    return {
        "filename": filename,
        "rowCount": len(receitas),
        "totals": totals,
        "firstRowId": receitas[0].id,
        "lastRowId": receitas[-1].id,
    }


def import_receitas(db: Session, content: bytes, filename: str, ctx: AuditContext) -> ImportResult:
    started = time.monotonic()
    try:
        rows = parse_rows(content)
    except ValidationFailed as e:
        logger.warning(f"Import rejected: {filename}", extra={"error_count": len(e.errors)})
        raise

    batch_key = new_batch_key()
    logger.info(f"Importing {len(rows)} rows from {filename}", extra={"batch_key": batch_key})

    try:
        begin_write(db)
        db.add(
            ImportBatch(
                batch_key=batch_key,
                entity_type=EntityType.RECEITA.value,
                filename=filename,
                row_count=len(rows),
                created_by=ctx.user_name,
            )
        )
        receitas = [Receita(batch_key=batch_key, **row) for row in rows]
        db.add_all(receitas)
        db.flush()

        log_audit(
            db,
            ctx,
            action=AuditAction.IMPORT_BATCH,
            entity_type=EntityType.RECEITA,
            entity_id=batch_key,
            after=_summary(filename, receitas),
        )
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Import failed, nothing committed: {e}", extra={"batch_key": batch_key})
        raise StorageFailure("Could not store the import; nothing was committed, retry later")
    except Exception:
        db.rollback()
        raise

    logger.info(
        "Import committed",
        extra={
            "batch_key": batch_key,
            "row_count": len(rows),
            "duration_ms": round((time.monotonic() - started) * 1000, 1),
        },
    )
    return ImportResult(batch_key=batch_key, row_count=len(rows))
