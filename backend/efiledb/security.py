# backend/efiledb/security.py

"""
Security helpers for efiledb.

Responsibilities:
- Password hashing and verification
- JWT access token creation and decoding
- Short-lived identity-verification tokens that gate signature commits
- FastAPI dependencies for current user / role checks
"""

from __future__ import annotations

import os
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional, Set, Tuple, Union

from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError, jwt
from sqlalchemy.orm import Session

from argon2 import PasswordHasher
from argon2.exceptions import VerifyMismatchError, VerificationError, InvalidHash
import bcrypt

from .database import get_db
from efiledb.apps.accounts import models as account_models
from efiledb.apps.workflow.roles import is_admin_role, normalise_role_code
from efiledb.utils.identifiers import generate_uuid7

# ---------------------------------------------------------------------------
# CONFIG
# ---------------------------------------------------------------------------

# In production, ALWAYS override these via environment variables.
SECRET_KEY = os.getenv("SECRET_KEY", "CHANGE_ME_IN_PRODUCTION")
JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")

try:
    ACCESS_TOKEN_EXPIRE_MINUTES: int = int(
        os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", "60")
    )
except ValueError:
    ACCESS_TOKEN_EXPIRE_MINUTES = 60

try:
    SIGNATURE_VERIFICATION_TTL_SECONDS: int = int(
        os.getenv("SIGNATURE_VERIFICATION_TTL_SECONDS", "300")
    )
except ValueError:
    SIGNATURE_VERIFICATION_TTL_SECONDS = 300

SIGNATURE_TOKEN_PURPOSE = "signature"

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/login")


# ---------------------------------------------------------------------------
# PASSWORD HASHING
# ---------------------------------------------------------------------------

_pwd_hasher = PasswordHasher(
    time_cost=int(os.getenv("ARGON2_TIME_COST", "3")),
    memory_cost=int(os.getenv("ARGON2_MEMORY_COST", "65536")),  # KiB (64MB)
    parallelism=int(os.getenv("ARGON2_PARALLELISM", "2")),
    hash_len=int(os.getenv("ARGON2_HASH_LEN", "32")),
    salt_len=int(os.getenv("ARGON2_SALT_LEN", "16")),
)


def _is_argon2_hash(hashed_password: str) -> bool:
    return isinstance(hashed_password, str) and hashed_password.startswith("$argon2")


def _is_bcrypt_hash(hashed_password: str) -> bool:
    return isinstance(hashed_password, str) and hashed_password.startswith(("$2a$", "$2b$", "$2y$"))


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Return True if the plain password matches the hash."""
    if not plain_password or not hashed_password:
        return False

    if _is_argon2_hash(hashed_password):
        try:
            return _pwd_hasher.verify(hashed_password, plain_password)
        except (VerifyMismatchError, VerificationError, InvalidHash):
            return False

    # Accounts migrated from the legacy portal still carry bcrypt hashes.
    if _is_bcrypt_hash(hashed_password):
        try:
            return bcrypt.checkpw(
                plain_password.encode("utf-8"),
                hashed_password.encode("utf-8"),
            )
        except ValueError:
            return False

    return False


def get_password_hash(password: str) -> str:
    """Hash a password for storing in the database (Argon2id)."""
    return _pwd_hasher.hash(password)


# ---------------------------------------------------------------------------
# JWT TOKENS
# ---------------------------------------------------------------------------


def create_access_token(
    *,
    data: dict,
    expires_delta: Optional[timedelta] = None,
) -> str:
    """
    Create a signed JWT.

    The `data` dict should already include the subject, e.g.:
        {"sub": user.id, "role": user.role_code}
    """
    to_encode = data.copy()

    expire = datetime.now(timezone.utc) + (
        expires_delta
        if expires_delta is not None
        else timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES)
    )
    to_encode.update({"exp": expire})

    return jwt.encode(to_encode, SECRET_KEY, algorithm=JWT_ALGORITHM)


def create_verification_token(
    *,
    user_id: str,
    method: str,
    ttl_seconds: Optional[int] = None,
) -> Tuple[str, str, int]:
    """
    Issue a token proving the user re-verified their identity just now.

    Returns (token, jti, expires_in_seconds). The jti lets a signature
    commit consume the token exactly once.
    """
    expires_in = ttl_seconds if ttl_seconds is not None else SIGNATURE_VERIFICATION_TTL_SECONDS
    jti = generate_uuid7()
    token = create_access_token(
        data={
            "sub": str(user_id),
            "purpose": SIGNATURE_TOKEN_PURPOSE,
            "method": method,
            "jti": jti,
        },
        expires_delta=timedelta(seconds=expires_in),
    )
    return token, jti, expires_in


def decode_verification_token(token: str, *, user_id: str) -> dict:
    """
    Validate a verification token for `user_id`.

    Raises 403 when the token is expired, malformed, issued for another
    purpose or another user.
    """
    invalid = HTTPException(
        status_code=status.HTTP_403_FORBIDDEN,
        detail="Identity verification is required or has expired",
    )
    if not token:
        raise invalid
    try:
        payload = jwt.decode(token, SECRET_KEY, algorithms=[JWT_ALGORITHM])
    except JWTError:
        raise invalid
    if payload.get("purpose") != SIGNATURE_TOKEN_PURPOSE:
        raise invalid
    if str(payload.get("sub")) != str(user_id) or not payload.get("jti"):
        raise invalid
    return payload


# ---------------------------------------------------------------------------
# USER LOOKUP HELPERS
# ---------------------------------------------------------------------------


def get_user_by_id(
    db: Session,
    user_id: Union[str, int],
) -> Optional[account_models.User]:
    """
    Minimal helper to load a user by ID; kept here to avoid circular imports
    with the accounts services.
    """
    if user_id is None:
        return None

    normalised_id = str(user_id).strip()

    return (
        db.query(account_models.User)
        .filter(account_models.User.id == normalised_id)
        .first()
    )


def is_admin_user(user: account_models.User) -> bool:
    return bool(getattr(user, "is_superuser", False)) or is_admin_role(
        getattr(user, "role_code", "")
    )


# ---------------------------------------------------------------------------
# FASTAPI DEPENDENCIES
# ---------------------------------------------------------------------------


def _credentials_exception() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )


def get_current_user(
    token: str = Depends(oauth2_scheme),
    db: Session = Depends(get_db),
) -> account_models.User:
    """
    Decode the JWT access token and return the corresponding User.

    Verification tokens are rejected here; they only authorise a signature
    commit and never stand in for a session.
    """
    try:
        payload = jwt.decode(token, SECRET_KEY, algorithms=[JWT_ALGORITHM])
        user_id: Optional[Union[str, int]] = payload.get("sub")
        if user_id is None or payload.get("purpose"):
            raise _credentials_exception()
    except JWTError:
        raise _credentials_exception()

    user = get_user_by_id(db, user_id)
    if user is None:
        raise _credentials_exception()

    return user


def get_current_active_user(
    current_user: account_models.User = Depends(get_current_user),
) -> account_models.User:
    """
    Ensure the current user is active.
    """
    if not getattr(current_user, "is_active", False):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Inactive user account",
        )
    return current_user


def require_admin(
    current_user: account_models.User = Depends(get_current_active_user),
) -> account_models.User:
    """Dependency that enforces a system-admin role or the superuser flag."""
    if is_admin_user(current_user):
        return current_user

    raise HTTPException(
        status_code=status.HTTP_403_FORBIDDEN,
        detail="Insufficient privileges",
    )


# ---------------------------------------------------------------------------
# ROLE-BASED ACCESS HELPER
# ---------------------------------------------------------------------------


def require_roles(
    *allowed_roles: str,
) -> Callable[[account_models.User], account_models.User]:
    """
    Dependency factory to enforce that the current user has one of the given
    role codes.

    Usage:
        @router.post(...)
        def endpoint(
            current_user: User = Depends(require_roles("CEO", "COO"))
        ):
            ...

    Behaviour:
    - Superusers and SYS_ADMIN-class roles always pass.
    - Otherwise, the user's role code must be in the allowed set.
    """
    normalised_roles: Set[str] = set()
    for r in allowed_roles:
        code = normalise_role_code(r)
        if not code:
            raise ValueError(f"Unknown role {r!r} passed to require_roles()")
        normalised_roles.add(code)

    def dependency(
        current_user: account_models.User = Depends(get_current_active_user),
    ) -> account_models.User:
        if is_admin_user(current_user):
            return current_user

        if current_user.role_code not in normalised_roles:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Insufficient permissions for this operation",
            )
        return current_user

    return dependency
