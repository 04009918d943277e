"""
Shared fixtures.

Every test gets its own in-memory SQLite database (``StaticPool``) with the
full schema, including the append-only triggers. The API client runs against
it through ``app.dependency_overrides``.

The in-memory database is one shared connection, so test-side sessions are
opened and closed around each check (``with session_factory() as s``) and
never held open across an API call.
"""

import os

os.environ.setdefault("DATABASE_URL", "sqlite://")

from typing import Optional

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import func, select
from sqlalchemy.orm import sessionmaker

from portal_ledger.database import build_engine, get_db, init_db
from portal_ledger.main import app
from portal_ledger.models import Receita
from portal_ledger.models_audit import AuditLog

from helpers import OPERATOR_HEADERS, make_csv


@pytest.fixture
def engine():
    eng = build_engine("sqlite://")
    init_db(eng)
    yield eng
    eng.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


@pytest.fixture
def client(session_factory):
    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def count_receitas(session_factory):
    def _count(batch_key: Optional[str] = None) -> int:
        with session_factory() as s:
            stmt = select(func.count(Receita.id))
            if batch_key is not None:
                stmt = stmt.where(Receita.batch_key == batch_key)
            return s.execute(stmt).scalar_one()

    return _count


@pytest.fixture
def audit_entries(session_factory):
    def _entries(**filters) -> list[AuditLog]:
        with session_factory() as s:
            stmt = select(AuditLog).filter_by(**filters).order_by(AuditLog.id)
            return list(s.execute(stmt).scalars())

    return _entries


@pytest.fixture
def import_file(client):
    def _import(*rows: str, filename: str = "receitas.csv", headers: Optional[dict] = None):
        return client.post(
            "/receitas/import",
            files={"file": (filename, make_csv(*rows), "text/csv")},
            headers=headers or OPERATOR_HEADERS,
        )

    return _import
