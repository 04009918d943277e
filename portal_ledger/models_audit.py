# portal_ledger/models_audit.py
from sqlalchemy import DDL, JSON, Column, DateTime, Index, Integer, String, event, text

from .database import Base
from .exceptions import ImmutabilityViolation
from .models import utcnow


class AuditLog(Base):
    """Append-only ledger entry. Rows are inserted once and never changed."""

    __tablename__ = "audit_logs"
    __table_args__ = (
        Index("ix_audit_logs_lookup", "entity_type", "action", "entity_id"),
        Index("ix_audit_logs_created", "created_at", "id"),
        # at most one reversal per batch key
        Index(
            "uq_audit_logs_revoke_batch",
            "entity_type",
            "entity_id",
            unique=True,
            sqlite_where=text("action = 'REVOKE_BATCH'"),
            postgresql_where=text("action = 'REVOKE_BATCH'"),
        ),
    )

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String(64), nullable=True)
    user_name = Column(String(150), nullable=False, default="SISTEMA")

    action = Column(String(32), nullable=False)       # e.g. "IMPORT_BATCH", "REVOKE_BATCH"
    entity_type = Column(String(32), nullable=False)  # e.g. "RECEITA", "USUARIO"
    entity_id = Column(String(100), nullable=False)   # row id, or batch key for batch actions

    snapshot_before = Column(JSON, nullable=True)
    snapshot_after = Column(JSON, nullable=True)

    ip = Column(String(64), nullable=True)
    user_agent = Column(String(255), nullable=True)

    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)


@event.listens_for(AuditLog, "before_update")
def _block_update(mapper, connection, target):
    raise ImmutabilityViolation(f"audit entry {target.id} is append-only and cannot be updated")


@event.listens_for(AuditLog, "before_delete")
def _block_delete(mapper, connection, target):
    raise ImmutabilityViolation(f"audit entry {target.id} is append-only and cannot be deleted")


# Database-level guard for bulk and raw SQL that bypasses the ORM events above.
for _op in ("UPDATE", "DELETE"):
    event.listen(
        AuditLog.__table__,
        "after_create",
        DDL(
            f"CREATE TRIGGER audit_logs_no_{_op.lower()} BEFORE {_op} ON audit_logs "
            "BEGIN SELECT RAISE(ABORT, 'audit_logs is append-only'); END"
        ).execute_if(dialect="sqlite"),
    )

event.listen(
    AuditLog.__table__,
    "after_create",
    DDL(
        "CREATE OR REPLACE FUNCTION audit_logs_append_only() RETURNS trigger AS $$ "
        "BEGIN RAISE EXCEPTION 'audit_logs is append-only'; END; $$ LANGUAGE plpgsql"
    ).execute_if(dialect="postgresql"),
)
event.listen(
    AuditLog.__table__,
    "after_create",
    DDL(
        "CREATE TRIGGER audit_logs_append_only BEFORE UPDATE OR DELETE ON audit_logs "
        "FOR EACH ROW EXECUTE FUNCTION audit_logs_append_only()"
    ).execute_if(dialect="postgresql"),
)
