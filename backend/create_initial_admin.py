# backend/create_initial_admin.py
"""
Bootstrap the first administrator and the department it belongs to.

  ADMIN_EMAIL / ADMIN_PASSWORD / ADMIN_NAME
  ADMIN_DEPARTMENT_CODE / ADMIN_DEPARTMENT_NAME  (default IT / Information Technology)
"""

import os

from efiledb.apps.accounts import models, schemas, services
from efiledb.database import session_scope

SYS_ADMIN_ROLE = "SYS_ADMIN"


def _ensure_department(db, code: str, name: str) -> models.Department:
    department = db.query(models.Department).filter(models.Department.code == code).first()
    if department is None:
        department = models.Department(code=code, name=name)
        db.add(department)
        db.flush()
    return department


def main() -> None:
    email = os.getenv("ADMIN_EMAIL", "admin@efiling.org")
    password = os.getenv("ADMIN_PASSWORD", "ChangeMe123!")

    with session_scope() as db:
        existing = services.get_user_by_email(db, email)
        if existing:
            print(f"[INFO] User already exists: id={existing.id}, email={existing.email}")
            return

        department = _ensure_department(
            db,
            os.getenv("ADMIN_DEPARTMENT_CODE", "IT").strip().upper(),
            os.getenv("ADMIN_DEPARTMENT_NAME", "Information Technology"),
        )
        services.ensure_role(db, SYS_ADMIN_ROLE, "System Administrator")
        user = services.create_user(
            db,
            schemas.UserCreate(
                email=email,
                full_name=os.getenv("ADMIN_NAME", "E-Filing Admin"),
                password=password,
                department_id=department.id,
                role_code=SYS_ADMIN_ROLE,
                is_superuser=True,
            ),
        )
        print("[OK] Created admin user:")
        print(f"  id:         {user.id}")
        print(f"  email:      {user.email}")
        print(f"  department: {department.code}")
        print(f"  role:       {user.role_code}")


if __name__ == "__main__":
    main()
