"""Credential hashing and JWT helpers."""
import hashlib
import hmac
import re
from datetime import datetime, timedelta, timezone

import bcrypt
from jose import JWTError, jwt

from onboarding.config import settings
from onboarding.errors import CredentialError

# Unsalted SHA-256 hex digests written by the legacy game client.
_LEGACY_HASH_RE = re.compile(r"^[0-9a-f]{64}$")


def get_password_hash(password: str) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def verify_password(plain: str, hashed: str) -> bool:
    """Check ``plain`` against a bcrypt hash or a legacy SHA-256 hex digest."""
    if _LEGACY_HASH_RE.match(hashed):
        digest = hashlib.sha256(plain.encode("utf-8")).hexdigest()
        return hmac.compare_digest(digest, hashed)
    try:
        return bcrypt.checkpw(plain.encode("utf-8"), hashed.encode("utf-8"))
    except ValueError:
        # Not a hash either scheme understands.
        return False


def _encode(claims: dict, expires_in: timedelta) -> str:
    to_encode = {**claims, "exp": datetime.now(timezone.utc) + expires_in}
    return jwt.encode(to_encode, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def create_access_token(subject: str, role: str) -> str:
    return _encode(
        {"sub": subject, "role": role, "type": "access"},
        timedelta(minutes=settings.jwt_access_token_expire_minutes),
    )


def create_refresh_token(subject: str) -> str:
    return _encode({"sub": subject, "type": "refresh"}, timedelta(days=settings.jwt_refresh_token_expire_days))


def create_activation_token(class_id: str, email: str, class_code: str = "") -> str:
    """Short-lived proof that ``email`` passed temporary-credential verification."""
    return _encode(
        {"sub": email, "cls": class_id, "code": class_code, "type": "activation"},
        timedelta(minutes=settings.activation_token_expire_minutes),
    )


def decode_token(token: str, expected_type: str) -> dict:
    try:
        payload = jwt.decode(token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm])
    except JWTError as e:
        raise CredentialError("Expired or invalid token") from e
    if payload.get("type") != expected_type or not payload.get("sub"):
        raise CredentialError("Invalid token type")
    return payload
