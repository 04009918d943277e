from pathlib import Path
import os
from dotenv import load_dotenv

# Load .env from project root (one level above /portal_ledger)
BASE_DIR = Path(__file__).resolve().parent.parent
load_dotenv(BASE_DIR / ".env")

DATABASE_URL = os.getenv("DATABASE_URL", "")
if not DATABASE_URL:
    raise RuntimeError("DATABASE_URL not set. Put it in project_root/.env")

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

CORS_ORIGINS = [
    o.strip()
    for o in os.getenv("CORS_ORIGINS", "http://localhost:3000,http://127.0.0.1:3000").split(",")
    if o.strip()
]

AUDIT_PAGE_SIZE = int(os.getenv("AUDIT_PAGE_SIZE", "20"))
AUDIT_MAX_PAGE_SIZE = int(os.getenv("AUDIT_MAX_PAGE_SIZE", "100"))

IMPORT_MAX_BYTES = int(os.getenv("IMPORT_MAX_BYTES", str(10 * 1024 * 1024)))

# seconds a SQLite writer waits for the database lock
SQLITE_BUSY_TIMEOUT = float(os.getenv("SQLITE_BUSY_TIMEOUT", "30"))

SENSITIVE_FIELDS = frozenset(
    f.strip().lower()
    for f in os.getenv("SENSITIVE_FIELDS", "senha,senha_hash,password,password_hash,token").split(",")
    if f.strip()
)
