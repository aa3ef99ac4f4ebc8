# backend/efiledb/apps/accounts/__init__.py
"""
Accounts app

Responsible for:
- E-filing roles and departments
- User accounts and login
- Teams (a manager and the staff who work files on their behalf)

Other apps (efiling, signatures, templates) depend on these models for
anything related to "who is allowed to do what". Import the submodules
directly; the package itself loads nothing so test collection can import
it under another name without defining the tables twice.
"""
