# backend/efiledb/apps/accounts/router.py
"""
E-filing users and teams.

- Any authenticated user can list active users (recipient pickers for
  mark-to) and read their own team.
- User creation and team maintenance are admin-only.
"""

from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from efiledb.database import get_db, get_read_db
from efiledb.security import get_current_active_user, require_admin

from . import models, schemas, services

router = APIRouter(
    prefix="/api/efiling",
    tags=["efiling_users"],
    dependencies=[Depends(get_current_active_user)],
)


@router.get("/users", response_model=List[schemas.UserRead])
def list_users(
    role_code: Optional[str] = None,
    department_id: Optional[str] = None,
    search: Optional[str] = None,
    skip: int = 0,
    limit: int = 100,
    db: Session = Depends(get_read_db),
):
    return services.list_users(
        db,
        role_code=role_code,
        department_id=department_id,
        search=search,
        skip=skip,
        limit=min(max(limit, 1), 500),
    )


@router.get("/users/me", response_model=schemas.UserRead)
def read_me(current_user: models.User = Depends(get_current_active_user)):
    return current_user


@router.post(
    "/users",
    response_model=schemas.UserRead,
    status_code=status.HTTP_201_CREATED,
)
def create_user(
    payload: schemas.UserCreate,
    db: Session = Depends(get_db),
    _admin: models.User = Depends(require_admin),
):
    user = services.create_user(db, payload)
    db.commit()
    db.refresh(user)
    return user


@router.get("/roles", response_model=List[schemas.RoleRead])
def list_roles(db: Session = Depends(get_read_db)):
    return (
        db.query(models.Role)
        .filter(models.Role.is_active.is_(True))
        .order_by(models.Role.code.asc())
        .all()
    )


@router.get("/departments", response_model=List[schemas.DepartmentRead])
def list_departments(db: Session = Depends(get_read_db)):
    return (
        db.query(models.Department)
        .filter(models.Department.is_active.is_(True))
        .order_by(models.Department.sort_order.asc(), models.Department.name.asc())
        .all()
    )


@router.get("/teams/me", response_model=schemas.TeamRead)
def read_my_team(
    db: Session = Depends(get_read_db),
    current_user: models.User = Depends(get_current_active_user),
):
    return schemas.TeamRead(
        manager=schemas.UserRead.model_validate(current_user),
        members=[
            schemas.TeamMemberRead.model_validate(m)
            for m in services.list_team(db, current_user.id)
        ],
    )


@router.post(
    "/teams",
    response_model=schemas.TeamMemberRead,
    status_code=status.HTTP_201_CREATED,
)
def add_team_member(
    payload: schemas.TeamMembershipCreate,
    db: Session = Depends(get_db),
    _admin: models.User = Depends(require_admin),
):
    membership = services.add_team_member(
        db,
        manager_id=payload.manager_id,
        team_member_id=payload.team_member_id,
        team_role=payload.team_role,
    )
    db.commit()
    db.refresh(membership)
    return membership
