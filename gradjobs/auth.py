"""
Password hashing, JWT issuance and the route guards built on them.

Tokens carry a `passport` claim describing who the caller is and which
roles they hold. Guards read the signing key from the Flask app config.
"""

from dataclasses import asdict, dataclass
from datetime import datetime, timedelta, timezone
from functools import wraps
from typing import Optional

import jwt
from flask import current_app, g, request
from werkzeug.security import check_password_hash, generate_password_hash

from .errors import AuthError, ForbiddenError

ALGORITHM = "HS256"


@dataclass(frozen=True)
class Passport:
    id: int
    admin: bool = False
    graduate: bool = False
    employer: bool = False

    @classmethod
    def from_user(cls, user) -> "Passport":
        return cls(id=user.id, admin=user.admin, graduate=user.graduate, employer=user.employer)


def hash_password(password: str) -> str:
    return generate_password_hash(password)


def verify_password(password: str, password_hash: str) -> bool:
    return check_password_hash(password_hash, password)


def issue_token(passport: Passport, secret_key: str, ttl_minutes: int = 0) -> str:
    """Sign a token for the passport. ttl_minutes <= 0 means no expiry."""
    claims = {"passport": asdict(passport)}
    if ttl_minutes > 0:
        claims["exp"] = datetime.now(timezone.utc) + timedelta(minutes=ttl_minutes)
    return jwt.encode(claims, secret_key, algorithm=ALGORITHM)


def decode_token(token: str, secret_key: str) -> Passport:
    if not token:
        raise AuthError("Missing or malformed Authorization header")
    try:
        payload = jwt.decode(token, secret_key, algorithms=[ALGORITHM])
    except jwt.ExpiredSignatureError:
        raise AuthError("Token expired")
    except jwt.InvalidTokenError:
        raise AuthError("Invalid token")

    claim = payload.get("passport")
    if not isinstance(claim, dict) or not isinstance(claim.get("id"), int):
        raise AuthError("Invalid token")
    return Passport(
        id=claim["id"],
        admin=bool(claim.get("admin")),
        graduate=bool(claim.get("graduate")),
        employer=bool(claim.get("employer")),
    )


def extract_bearer_token(header: Optional[str]) -> str:
    """Return the token part of 'Bearer <token>' (scheme is case-insensitive)."""
    if not header:
        return ""
    parts = header.strip().split(None, 1)
    if len(parts) != 2 or parts[0].lower() != "bearer":
        return ""
    return parts[1].strip()


def current_passport() -> Passport:
    return g.passport


def require_auth(f):
    @wraps(f)
    def decorated(*args, **kwargs):
        token = extract_bearer_token(request.headers.get("Authorization"))
        g.passport = decode_token(token, current_app.config["SECRET_KEY"])
        return f(*args, **kwargs)
    return decorated


def _require_role(role: str, label: str):
    def decorator(f):
        @wraps(f)
        @require_auth
        def decorated(*args, **kwargs):
            passport = current_passport()
            if not passport.admin and not getattr(passport, role):
                raise ForbiddenError(f"Unauthorized, only {label} can access")
            return f(*args, **kwargs)
        return decorated
    return decorator


graduate_only = _require_role("graduate", "Graduate")
employer_only = _require_role("employer", "Employer")
admin_only = _require_role("admin", "Admin")
