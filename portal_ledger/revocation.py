"""
Batch revocation.

Deletes every record of a batch and appends a single REVOKE_BATCH entry whose
``snapshot_before`` is the itemized list of the deleted rows. The not-yet-revoked
check, the read, the delete and the append run as one transaction, serialized
per batch key by a row lock on the ``import_batches`` sentinel (``BEGIN
IMMEDIATE`` on SQLite). The partial unique index on the ledger rejects a second
reversal entry should two attempts ever interleave.
"""

from __future__ import annotations

from dataclasses import dataclass

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from .audit import BATCH_ENTITY_TYPES, AuditAction, AuditContext, EntityType, is_batch_revoked, log_audit
from .database import begin_write
from .exceptions import AlreadyRevoked, BatchNotFound, InvalidAuditAction, StorageFailure
from .logging_setup import get_logger
from .models import ImportBatch, Receita, receita_to_dict

logger = get_logger("revocation")


@dataclass(frozen=True)
class RevokeResult:
    batch_key: str
    row_count: int


def batch_rows(db: Session, batch_key: str) -> list[Receita]:
    stmt = select(Receita).where(Receita.batch_key == batch_key).order_by(Receita.id)
    return list(db.execute(stmt).scalars())


def revoke_batch(
    db: Session,
    batch_key: str,
    ctx: AuditContext,
    entity_type: EntityType = EntityType.RECEITA,
) -> RevokeResult:
    if entity_type not in BATCH_ENTITY_TYPES:
        raise InvalidAuditAction(entity_type.value, AuditAction.REVOKE_BATCH.value)

    try:
        begin_write(db)
        db.execute(select(ImportBatch.batch_key).where(ImportBatch.batch_key == batch_key).with_for_update())

        if is_batch_revoked(db, entity_type, batch_key):
            raise AlreadyRevoked(batch_key)

        rows = batch_rows(db, batch_key)
        if not rows:
            raise BatchNotFound(batch_key)

        itemized = [receita_to_dict(r) for r in rows]

        result = db.execute(
            delete(Receita).where(Receita.batch_key == batch_key).execution_options(synchronize_session=False)
        )
        if result.rowcount != len(itemized):
            # rows changed since they were read
            raise BatchNotFound(batch_key)

        log_audit(
            db,
            ctx,
            action=AuditAction.REVOKE_BATCH,
            entity_type=entity_type,
            entity_id=batch_key,
            before=itemized,
            after={"rowCount": len(itemized)},
        )
        db.commit()
    except IntegrityError:
        db.rollback()
        logger.warning("Concurrent revocation lost the race", extra={"batch_key": batch_key})
        raise AlreadyRevoked(batch_key)
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Revocation failed, nothing committed: {e}", extra={"batch_key": batch_key})
        raise StorageFailure("Could not revoke the batch; nothing was changed, retry later")
    except Exception:
        db.rollback()
        raise

    for r in rows:
        db.expunge(r)

    logger.info("Batch revoked", extra={"batch_key": batch_key, "row_count": len(itemized)})
    return RevokeResult(batch_key=batch_key, row_count=len(itemized))
