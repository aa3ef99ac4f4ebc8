"""
Per-(file, user) permission resolution for e-filing.

`resolve_permissions` is the single source of truth for who may edit, sign,
add pages, attach documents or mark a file forward. It is pure: callers load
a `FileContext` and `UserContext` (see efiling.services.build_file_context)
and nothing here touches the database, so the API client can reuse the same
types for its fail-closed defaults.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field, fields
from typing import Any, Callable, Dict, FrozenSet, Optional

from . import roles

TEAM_INTERNAL = "TEAM_INTERNAL"
EXTERNAL = "EXTERNAL"
RETURNED_TO_CREATOR = "RETURNED_TO_CREATOR"
WORKFLOW_STATES = (TEAM_INTERNAL, EXTERNAL, RETURNED_TO_CREATOR)


@dataclass(frozen=True)
class RoleHierarchy:
    is_admin: Callable[[Optional[str]], bool] = roles.is_admin_role
    is_higher_authority: Callable[..., bool] = roles.is_higher_authority
    is_mark_back_authority: Callable[[Optional[str]], bool] = roles.is_mark_back_authority
    is_page_adding_role: Callable[..., bool] = roles.is_page_adding_role
    is_assisted_manager_role: Callable[[Optional[str]], bool] = roles.is_assisted_manager_role
    is_assistant_team_role: Callable[[Optional[str]], bool] = roles.is_assistant_team_role


DEFAULT_HIERARCHY = RoleHierarchy()


@dataclass(frozen=True)
class MovementContext:
    from_user_id: Optional[str]
    to_user_id: Optional[str]
    from_role_code: str = ""
    is_return_to_creator: bool = False


@dataclass(frozen=True)
class FileContext:
    file_id: str
    created_by: str
    assigned_to: Optional[str] = None
    workflow_state: Optional[str] = None
    is_within_team: bool = False
    creator_team_member_ids: FrozenSet[str] = frozenset()
    latest_movement: Optional[MovementContext] = None
    signer_ids: FrozenSet[str] = frozenset()
    # Signers the file was marked back to after their latest signature.
    resign_ids: FrozenSet[str] = frozenset()


@dataclass(frozen=True)
class UserContext:
    user_id: str
    role_code: str = ""
    department_name: str = ""
    is_superuser: bool = False
    # Set when the user assists a manager (team_role AO / ASSISTANT / ...).
    team_role: Optional[str] = None
    manager_id: Optional[str] = None
    manager_role_code: Optional[str] = None


_CAMEL_KEYS = {
    "is_within_team": "is_within_team",
    "workflow_state": "workflow_state",
}


def _camel(name: str) -> str:
    if name in _CAMEL_KEYS:
        return _CAMEL_KEYS[name]
    head, *rest = name.split("_")
    return head + "".join(part.capitalize() for part in rest)


@dataclass(frozen=True)
class PermissionSet:
    can_view: bool = False
    can_edit: bool = False
    can_edit_document: bool = False
    can_add_page: bool = False
    can_add_attachment: bool = False
    can_add_signature: bool = False
    can_add_comment: bool = False
    can_mark_to: bool = False
    can_approve: bool = False
    can_reject: bool = False
    can_forward: bool = False
    is_creator: bool = False
    is_assigned: bool = False
    is_admin: bool = False
    is_higher_authority: bool = False
    is_team_member_of_creator: bool = False
    was_marked_back_by_higher_authority: bool = False
    is_file_at_higher_level: bool = False
    has_signed: bool = False
    can_sign_again: bool = False
    requires_signature_for_marking: bool = False
    requires_creator_signature: bool = False
    is_within_team: bool = False
    workflow_state: Optional[str] = None

    @classmethod
    def restrictive(cls) -> "PermissionSet":
        """Fail-closed default used when permissions cannot be loaded."""
        return cls(is_file_at_higher_level=True)

    def as_dict(self) -> Dict[str, Any]:
        """Wire format: camelCase flags plus `is_within_team` / `workflow_state`."""
        return {_camel(key): value for key, value in asdict(self).items()}

    @classmethod
    def from_dict(cls, payload: Dict[str, Any]) -> "PermissionSet":
        values: Dict[str, Any] = {}
        for item in fields(cls):
            for key in (_camel(item.name), item.name):
                if key in payload:
                    values[item.name] = payload[key]
                    break
        return cls(**values)


@dataclass(frozen=True)
class DocumentAffordances:
    can_save: bool = False
    can_edit: bool = False
    can_comment: bool = False
    can_sign: bool = False
    can_append_page: bool = False
    pages_read_only: bool = True
    reasons: Dict[str, str] = field(default_factory=dict)


# ---------------------------------------------------------------------------
# Building blocks
# ---------------------------------------------------------------------------


def is_team_member_of_creator(file: FileContext, user_id: Optional[str]) -> bool:
    return bool(user_id) and user_id in file.creator_team_member_ids


def _in_creator_team(file: FileContext, user_id: Optional[str]) -> bool:
    return bool(user_id) and (user_id == file.created_by or user_id in file.creator_team_member_ids)


def can_edit_file(file: FileContext, user_id: str) -> bool:
    """Only the creator edits; once the file leaves them, only after a return."""
    if file.created_by != user_id:
        return False
    state = file.workflow_state
    if state is None:
        return True
    if file.assigned_to and file.assigned_to != file.created_by:
        return state == RETURNED_TO_CREATOR
    return state in (TEAM_INTERNAL, RETURNED_TO_CREATOR)


def can_add_pages(
    file: FileContext,
    user: UserContext,
    hierarchy: RoleHierarchy = DEFAULT_HIERARCHY,
) -> bool:
    """
    SE/CE-tier (and budget/billing) users may append pages to a file they
    hold; their assistants may do so while the file sits with the manager.
    """
    if not file.assigned_to:
        return False
    if file.assigned_to == user.user_id and hierarchy.is_page_adding_role(
        user.role_code, user.department_name
    ):
        return True
    return bool(
        user.manager_id
        and file.assigned_to == user.manager_id
        and hierarchy.is_assistant_team_role(user.team_role)
        and hierarchy.is_assisted_manager_role(user.manager_role_code)
    )


def can_mark_file(file: FileContext, user_id: str) -> bool:
    state = file.workflow_state
    if state == EXTERNAL and not file.is_within_team:
        return file.assigned_to == user_id
    if state == RETURNED_TO_CREATOR:
        return file.created_by == user_id
    if file.is_within_team or state == TEAM_INTERNAL:
        return _in_creator_team(file, user_id)
    return user_id in (file.created_by, file.assigned_to)


def is_within_team_workflow(file: FileContext, from_user_id: str, to_user_id: str) -> bool:
    if file.workflow_state == EXTERNAL:
        return False
    return _in_creator_team(file, from_user_id) and _in_creator_team(file, to_user_id)


def next_workflow_state(file: FileContext, from_user_id: str, to_user_id: str) -> str:
    """State a file enters when `from_user_id` marks it to `to_user_id`."""
    if to_user_id == file.created_by and from_user_id != file.created_by:
        return RETURNED_TO_CREATOR
    if is_within_team_workflow(file, from_user_id, to_user_id):
        return TEAM_INTERNAL
    return EXTERNAL


# ---------------------------------------------------------------------------
# Resolver
# ---------------------------------------------------------------------------


def resolve_permissions(
    file: FileContext,
    user: UserContext,
    hierarchy: RoleHierarchy = DEFAULT_HIERARCHY,
) -> PermissionSet:
    state = file.workflow_state
    is_creator = file.created_by == user.user_id
    is_assigned = bool(file.assigned_to) and file.assigned_to == user.user_id
    is_admin = bool(user.is_superuser) or hierarchy.is_admin(user.role_code)
    has_signed = user.user_id in file.signer_ids
    can_sign_again = not has_signed or user.user_id in file.resign_ids
    creator_has_signed = file.created_by in file.signer_ids
    is_higher = hierarchy.is_higher_authority(user.role_code, user.department_name)
    team_member = is_team_member_of_creator(file, user.user_id)

    movement = file.latest_movement
    was_marked_back = bool(
        is_creator
        and state == RETURNED_TO_CREATOR
        and movement is not None
        and movement.is_return_to_creator
        and hierarchy.is_mark_back_authority(movement.from_role_code)
    )

    can_edit = is_admin or (
        can_edit_file(file, user.user_id) and not was_marked_back and not is_higher
    )

    at_higher_level = bool(
        is_creator
        and file.assigned_to
        and file.assigned_to != user.user_id
        and not file.is_within_team
        and state != RETURNED_TO_CREATOR
        and (state == EXTERNAL or not can_edit)
    )

    requires_signature_for_marking = not file.is_within_team and not team_member
    requires_creator_signature = not creator_has_signed and state != TEAM_INTERNAL

    if is_admin:
        return PermissionSet(
            can_view=True,
            can_edit=True,
            can_edit_document=True,
            can_add_page=True,
            can_add_attachment=True,
            can_add_signature=True,
            can_add_comment=True,
            can_mark_to=True,
            can_approve=True,
            can_reject=True,
            can_forward=True,
            is_creator=is_creator,
            is_assigned=is_assigned,
            is_admin=True,
            is_higher_authority=is_higher,
            is_team_member_of_creator=team_member,
            was_marked_back_by_higher_authority=was_marked_back,
            is_file_at_higher_level=False,
            has_signed=has_signed,
            can_sign_again=can_sign_again,
            requires_signature_for_marking=requires_signature_for_marking,
            requires_creator_signature=requires_creator_signature,
            is_within_team=file.is_within_team,
            workflow_state=state,
        )

    can_add_page = (
        can_add_pages(file, user, hierarchy)
        or (is_creator and not at_higher_level)
        or (is_higher and is_assigned)
    )
    can_add_attachment = (
        is_assigned
        or (is_creator and not at_higher_level)
        or (file.is_within_team and team_member)
    )
    can_mark_to = can_mark_file(file, user.user_id) and (
        not requires_signature_for_marking or has_signed
    )
    can_approve = is_assigned and has_signed

    return PermissionSet(
        can_view=True,
        can_edit=can_edit,
        can_edit_document=can_edit,
        can_add_page=can_add_page,
        can_add_attachment=can_add_attachment,
        can_add_signature=not at_higher_level,
        can_add_comment=not at_higher_level,
        can_mark_to=can_mark_to,
        can_approve=can_approve,
        can_reject=can_approve,
        can_forward=can_approve,
        is_creator=is_creator,
        is_assigned=is_assigned,
        is_admin=False,
        is_higher_authority=is_higher,
        is_team_member_of_creator=team_member,
        was_marked_back_by_higher_authority=was_marked_back,
        is_file_at_higher_level=at_higher_level,
        has_signed=has_signed,
        can_sign_again=can_sign_again,
        requires_signature_for_marking=requires_signature_for_marking,
        requires_creator_signature=requires_creator_signature,
        is_within_team=file.is_within_team,
        workflow_state=state,
    )


def derive_affordances(permissions: PermissionSet) -> DocumentAffordances:
    """
    Document editor controls for a permission set.

    A file at a higher level disables every control. Signing again is only
    offered after the file was marked back to the signer.
    """
    if permissions.is_file_at_higher_level:
        reason = "File is with a higher authority"
        return DocumentAffordances(
            reasons={key: reason for key in ("save", "edit", "comment", "sign")},
        )

    reasons: Dict[str, str] = {}
    can_sign = permissions.can_add_signature
    if can_sign and not permissions.can_sign_again:
        can_sign = False
        reasons["sign"] = "Already signed"

    can_edit = permissions.can_edit
    if not can_edit:
        reasons["edit"] = (
            "Existing pages are read-only after a return"
            if permissions.was_marked_back_by_higher_authority
            else "Not permitted to edit"
        )

    return DocumentAffordances(
        can_save=can_edit or permissions.can_add_page,
        can_edit=can_edit,
        can_comment=permissions.can_add_comment,
        can_sign=can_sign,
        can_append_page=permissions.can_add_page,
        pages_read_only=not can_edit,
        reasons=reasons,
    )
