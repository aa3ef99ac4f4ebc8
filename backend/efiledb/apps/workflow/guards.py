from __future__ import annotations

from typing import Any, Dict, List

from sqlalchemy.orm import Session

from . import roles

GuardResult = List[Dict[str, str]]


def _get_value(obj: Any, key: str) -> Any:
    if obj is None:
        return None
    if isinstance(obj, dict):
        return obj.get(key)
    return getattr(obj, key, None)


def guard_sender_may_mark(
    db: Session,
    *,
    before_obj: Any,
    after_obj: Any,
    from_state: str,
    to_state: str,
) -> GuardResult:
    if _get_value(after_obj, "sender_may_mark"):
        return []
    return [{"field": "from_user_id", "reason": "Not assigned to file"}]


def guard_signature_before_marking(
    db: Session,
    *,
    before_obj: Any,
    after_obj: Any,
    from_state: str,
    to_state: str,
) -> GuardResult:
    if not _get_value(after_obj, "requires_signature"):
        return []
    if _get_value(after_obj, "sender_has_signed"):
        return []
    return [{"field": "signature", "reason": "E-signature required before marking forward"}]


def guard_return_target_is_creator(
    db: Session,
    *,
    before_obj: Any,
    after_obj: Any,
    from_state: str,
    to_state: str,
) -> GuardResult:
    to_user_id = _get_value(after_obj, "to_user_id")
    created_by = _get_value(after_obj, "created_by") or _get_value(before_obj, "created_by")
    if to_user_id and to_user_id == created_by:
        return []
    return [{"field": "to_user_id", "reason": "only the creator can receive a returned file"}]


def guard_ceo_completion(
    db: Session,
    *,
    before_obj: Any,
    after_obj: Any,
    from_state: str,
    to_state: str,
) -> GuardResult:
    missing = []
    if not roles.is_ceo_role(_get_value(after_obj, "completed_by_role")):
        missing.append({"field": "completed_by_role", "reason": "Only CEO can complete files"})
    if not _get_value(after_obj, "in_review"):
        missing.append({"field": "assigned_to", "reason": "File must be assigned to or in your review to complete"})
    return missing
