from fastapi import Request
from passlib.context import CryptContext

from .audit import AuditContext


# PBKDF2 has no 72-char password limit
pwd_context = CryptContext(
    schemes=["pbkdf2_sha256"],
    deprecated="auto",
)


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(password: str, hashed: str) -> bool:
    return pwd_context.verify(password, hashed)


def get_audit_context(request: Request) -> AuditContext:
    """
    Operator identity as forwarded by the presentation layer
    (``X-Operator-Id`` / ``X-Operator-Name``), plus the client address.
    """
    return AuditContext.from_request(request)
