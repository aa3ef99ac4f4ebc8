"""
State changes for registered workflows.

A workflow is a map ``from_state -> to_state -> [guards]``. A transition
missing from the map is invalid; a listed transition runs every guard and
collects their failures before anything is written. Successful transitions
are audited as ``transition`` with the states folded into before/after.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from efiledb.apps.audit import services as audit_services

from .registry import WORKFLOWS

logger = logging.getLogger(__name__)

Failure = Dict[str, str]


@dataclass
class TransitionError(Exception):
    code: str
    detail: List[Failure]

    def as_detail(self) -> Dict[str, Any]:
        """Body of the 409 the API returns."""
        return {"code": self.code, "errors": list(self.detail)}


def allowed_targets(entity_type: str, from_state: str) -> List[str]:
    transitions = WORKFLOWS.get(entity_type, {}).get("transitions", {})
    return sorted(transitions.get(from_state, {}))


def check_transition(
    db: Session,
    *,
    entity_type: str,
    from_state: str,
    to_state: str,
    before_obj: Any,
    after_obj: Any,
) -> List[Failure]:
    """
    Guard failures for a transition without applying it. Raises
    TransitionError only when the workflow or the transition is unknown.
    """
    workflow = WORKFLOWS.get(entity_type)
    if workflow is None:
        raise TransitionError(
            code="invalid_transition",
            detail=[{"field": "entity_type", "reason": f"No workflow registered for {entity_type}"}],
        )
    guards = workflow["transitions"].get(from_state, {}).get(to_state)
    if guards is None:
        raise TransitionError(
            code="invalid_transition",
            detail=[{"field": "state", "reason": f"Cannot transition from {from_state} to {to_state}"}],
        )

    failures: List[Failure] = []
    for guard in guards:
        failures.extend(
            guard(db, before_obj=before_obj, after_obj=after_obj, from_state=from_state, to_state=to_state)
        )
    return failures


def _snapshot(state: str, obj: Any) -> Dict[str, Any]:
    snapshot: Dict[str, Any] = {"state": state}
    if isinstance(obj, dict):
        snapshot.update(obj)
    return snapshot


def apply_transition(
    db: Session,
    *,
    actor_user_id: Optional[str],
    entity_type: str,
    entity_id: str,
    from_state: str,
    to_state: str,
    before_obj: Any,
    after_obj: Any,
    correlation_id: Optional[str] = None,
    critical: bool = True,
) -> str:
    """Validate, then audit. Returns the new state for the caller to store."""
    failures = check_transition(
        db,
        entity_type=entity_type,
        from_state=from_state,
        to_state=to_state,
        before_obj=before_obj,
        after_obj=after_obj,
    )
    if failures:
        logger.info(
            "Transition refused",
            extra={
                "entity_type": entity_type,
                "entity_id": entity_id,
                "from_state": from_state,
                "to_state": to_state,
                "fields": [item.get("field") for item in failures],
            },
        )
        raise TransitionError(code="missing_requirements", detail=failures)

    audit_services.log_event(
        db,
        actor_user_id=actor_user_id,
        entity_type=entity_type,
        entity_id=entity_id,
        action="transition",
        before=_snapshot(from_state, before_obj),
        after=_snapshot(to_state, after_obj),
        correlation_id=correlation_id,
        metadata={"workflow": entity_type},
        critical=critical,
    )
    return to_state
