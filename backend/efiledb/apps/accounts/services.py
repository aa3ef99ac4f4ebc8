# backend/efiledb/apps/accounts/services.py

"""
Account and team services.

Team helpers answer the questions the file workflow keeps asking:
"is this user part of the creator's team?" and "whose assistant is this?".
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import List, Optional, Set, Tuple

from fastapi import HTTPException, status
from sqlalchemy import func
from sqlalchemy.orm import Session

from efiledb import security
from efiledb.apps.workflow import roles

from . import models, schemas

logger = logging.getLogger(__name__)


def _normalise_email(value: str) -> str:
    return (value or "").strip().lower()


# ---------------------------------------------------------------------------
# Roles / departments
# ---------------------------------------------------------------------------


def get_role_by_code(db: Session, code: str) -> Optional[models.Role]:
    normalised = roles.normalise_role_code(code)
    if not normalised:
        return None
    return (
        db.query(models.Role)
        .filter(func.upper(models.Role.code) == normalised)
        .first()
    )


def ensure_role(db: Session, code: str, name: Optional[str] = None) -> models.Role:
    role = get_role_by_code(db, code)
    if role:
        return role
    role = models.Role(code=roles.normalise_role_code(code), name=name or code)
    db.add(role)
    db.flush()
    return role


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------


def get_user_by_email(db: Session, email: str) -> Optional[models.User]:
    return (
        db.query(models.User)
        .filter(models.User.email == _normalise_email(email))
        .first()
    )


def create_user(db: Session, data: schemas.UserCreate) -> models.User:
    email = _normalise_email(data.email)
    if get_user_by_email(db, email):
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="A user with this email already exists",
        )

    role_id = None
    if data.role_code:
        role = get_role_by_code(db, data.role_code)
        if not role:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Unknown role code {data.role_code!r}",
            )
        role_id = role.id

    if data.department_id and not db.get(models.Department, data.department_id):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Department not found",
        )

    user = models.User(
        email=email,
        full_name=data.full_name.strip(),
        phone=data.phone,
        designation=data.designation,
        role_id=role_id,
        department_id=data.department_id,
        town_id=data.town_id,
        division_id=data.division_id,
        is_superuser=data.is_superuser,
        is_active=True,
        hashed_password=security.get_password_hash(data.password),
    )
    db.add(user)
    db.flush()
    return user


def list_users(
    db: Session,
    *,
    role_code: Optional[str] = None,
    department_id: Optional[str] = None,
    search: Optional[str] = None,
    active_only: bool = True,
    skip: int = 0,
    limit: int = 100,
) -> List[models.User]:
    query = db.query(models.User)
    if active_only:
        query = query.filter(models.User.is_active.is_(True))
    if role_code:
        query = query.join(models.Role, models.User.role_id == models.Role.id).filter(
            func.upper(models.Role.code) == roles.normalise_role_code(role_code)
        )
    if department_id:
        query = query.filter(models.User.department_id == department_id)
    if search:
        like = f"%{search.strip()}%"
        query = query.filter(
            models.User.full_name.ilike(like) | models.User.email.ilike(like)
        )
    return query.order_by(models.User.full_name.asc()).offset(skip).limit(limit).all()


def authenticate_user(db: Session, *, email: str, password: str) -> Optional[models.User]:
    """
    Password login. Returns None for unknown, inactive or mismatched users.
    """
    user = get_user_by_email(db, email)
    if not user or not user.is_active:
        logger.info("Login rejected", extra={"email": _normalise_email(email)})
        return None
    if not security.verify_password(password, user.hashed_password):
        logger.info("Login rejected", extra={"user_id": user.id})
        return None
    user.last_login_at = datetime.now(timezone.utc)
    db.add(user)
    return user


def issue_access_token_for_user(user: models.User) -> Tuple[str, int]:
    """
    Create a JWT access token for the user.

    Returns (token_string, expires_in_seconds).
    """
    expires_delta = timedelta(minutes=security.ACCESS_TOKEN_EXPIRE_MINUTES)
    payload = {
        "sub": str(user.id),
        "role": user.role_code,
        "department_id": user.department_id,
        "is_superuser": bool(user.is_superuser),
    }
    token = security.create_access_token(data=payload, expires_delta=expires_delta)
    return token, int(expires_delta.total_seconds())


# ---------------------------------------------------------------------------
# Teams
# ---------------------------------------------------------------------------


def add_team_member(
    db: Session,
    *,
    manager_id: str,
    team_member_id: str,
    team_role: str = "ASSISTANT",
) -> models.TeamMembership:
    if manager_id == team_member_id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="A user cannot be a member of their own team",
        )
    for user_id in (manager_id, team_member_id):
        if not db.get(models.User, user_id):
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail=f"User {user_id} not found",
            )
    membership = (
        db.query(models.TeamMembership)
        .filter(
            models.TeamMembership.manager_id == manager_id,
            models.TeamMembership.team_member_id == team_member_id,
        )
        .first()
    )
    if membership:
        membership.team_role = roles.normalise_role_code(team_role)
        membership.is_active = True
    else:
        membership = models.TeamMembership(
            manager_id=manager_id,
            team_member_id=team_member_id,
            team_role=roles.normalise_role_code(team_role),
            is_active=True,
        )
    db.add(membership)
    db.flush()
    return membership


def list_team(db: Session, manager_id: str) -> List[models.TeamMembership]:
    return (
        db.query(models.TeamMembership)
        .filter(
            models.TeamMembership.manager_id == manager_id,
            models.TeamMembership.is_active.is_(True),
        )
        .order_by(models.TeamMembership.created_at.asc())
        .all()
    )


def get_team_member_ids(db: Session, manager_id: Optional[str]) -> Set[str]:
    if not manager_id:
        return set()
    rows = (
        db.query(models.TeamMembership.team_member_id)
        .filter(
            models.TeamMembership.manager_id == manager_id,
            models.TeamMembership.is_active.is_(True),
        )
        .all()
    )
    return {row[0] for row in rows}


def is_team_member(db: Session, manager_id: str, user_id: str) -> bool:
    return user_id in get_team_member_ids(db, manager_id)


def get_assisted_manager(
    db: Session, user_id: str
) -> Optional[Tuple[models.User, str]]:
    """
    The SE/CE this user assists, with the user's team role, if any.
    """
    memberships = (
        db.query(models.TeamMembership)
        .filter(
            models.TeamMembership.team_member_id == user_id,
            models.TeamMembership.is_active.is_(True),
        )
        .all()
    )
    for membership in memberships:
        if not roles.is_assistant_team_role(membership.team_role):
            continue
        manager = membership.manager
        if manager and manager.is_active and roles.is_assisted_manager_role(manager.role_code):
            return manager, membership.team_role
    return None
