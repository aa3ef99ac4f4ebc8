# backend/efiledb/__init__.py
"""
Import ORM models from each app so that:

- Alembic and Base.metadata.create_all() see all tables.
- Relationship strings between apps resolve on first use.

The actual model classes are kept in efiledb/apps/*/models.py.
"""

from .apps.accounts import models as accounts_models          # users / roles / teams
from .apps.audit import models as audit_models                # audit trail
from .apps.notifications import models as notifications_models  # in-app + delivery log
from .apps.reference import models as reference_models        # towns / divisions / agents
from .apps.work_requests import models as work_requests_models  # complaints / work requests
from .apps.templates import models as templates_models        # document templates
from .apps.efiling import models as efiling_models            # files / pages / movements / SLA
from .apps.signatures import models as signatures_models      # e-signatures + verification

__all__ = [
    "accounts_models",
    "audit_models",
    "notifications_models",
    "reference_models",
    "work_requests_models",
    "templates_models",
    "efiling_models",
    "signatures_models",
]
