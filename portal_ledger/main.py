# portal_ledger/main.py
from __future__ import annotations

from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from .config import CORS_ORIGINS
from .database import init_db
from .exceptions import PortalLedgerError, StorageFailure
from .logging_setup import get_logger

from .routes_receitas import router as receitas_router
from .routes_audit import router as audit_router
from .routes_usuarios import router as usuarios_router
from .routes_admin import router as admin_router

logger = get_logger("main")


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    logger.info("Portal ledger started")
    yield


# =========================
# App
# =========================
app = FastAPI(title="Portal Transparencia - Revenue Ledger", version="1.0.0", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(receitas_router)
app.include_router(audit_router)
app.include_router(usuarios_router)
app.include_router(admin_router)


# =========================
# Error mapping
# =========================
@app.exception_handler(PortalLedgerError)
async def ledger_error_handler(request: Request, exc: PortalLedgerError):
    if exc.status_code >= 500:
        logger.error(f"{exc.code} on {request.method} {request.url.path}: {exc.message}")
    headers = {"Retry-After": "5"} if exc.retryable else None
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict(), headers=headers)


@app.exception_handler(SQLAlchemyError)
async def storage_error_handler(request: Request, exc: SQLAlchemyError):
    logger.error(f"Storage error on {request.method} {request.url.path}: {exc}")
    failure = StorageFailure("Storage unavailable; nothing was committed, retry later")
    return JSONResponse(status_code=failure.status_code, content=failure.to_dict(), headers={"Retry-After": "5"})


@app.get("/")
def root():
    return {"status": "ok", "message": "Backend running"}
