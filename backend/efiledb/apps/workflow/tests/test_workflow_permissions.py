from __future__ import annotations

from dataclasses import replace

from efiledb.apps.workflow import permissions
from efiledb.apps.workflow.permissions import (
    EXTERNAL,
    RETURNED_TO_CREATOR,
    TEAM_INTERNAL,
    FileContext,
    MovementContext,
    PermissionSet,
    UserContext,
)

CREATOR = "creator-1"
ASSISTANT = "assistant-1"
SE = "se-1"
OUTSIDER = "outsider-1"


def _file(**overrides) -> FileContext:
    values = dict(
        file_id="file-1",
        created_by=CREATOR,
        assigned_to=None,
        workflow_state=TEAM_INTERNAL,
        is_within_team=True,
        creator_team_member_ids=frozenset({ASSISTANT}),
    )
    values.update(overrides)
    return FileContext(**values)


def _user(user_id: str, role_code: str = "XEN", **overrides) -> UserContext:
    return UserContext(user_id=user_id, role_code=role_code, **overrides)


def test_creator_edits_draft_inside_team():
    perms = permissions.resolve_permissions(_file(), _user(CREATOR))

    assert perms.can_edit is True
    assert perms.can_add_page is True
    assert perms.is_file_at_higher_level is False
    assert perms.requires_signature_for_marking is False
    assert perms.can_mark_to is True


def test_file_with_external_officer_is_at_higher_level_for_creator():
    file = _file(workflow_state=EXTERNAL, is_within_team=False, assigned_to=SE)

    perms = permissions.resolve_permissions(file, _user(CREATOR))

    assert perms.is_file_at_higher_level is True
    assert perms.can_edit is False
    assert perms.can_add_comment is False
    assert perms.can_add_signature is False
    assert perms.can_mark_to is False

    affordances = permissions.derive_affordances(perms)
    assert not any(
        [affordances.can_save, affordances.can_edit, affordances.can_comment, affordances.can_sign]
    )


def test_holder_must_sign_before_marking_outside_team():
    file = _file(workflow_state=EXTERNAL, is_within_team=False, assigned_to=SE)

    unsigned = permissions.resolve_permissions(file, _user(SE, "SE"))
    signed = permissions.resolve_permissions(
        replace(file, signer_ids=frozenset({SE})),
        _user(SE, "SE"),
    )

    assert unsigned.requires_signature_for_marking is True
    assert unsigned.can_mark_to is False
    assert signed.can_mark_to is True
    assert signed.can_approve is True


def test_marked_back_by_higher_authority_keeps_pages_read_only():
    file = _file(
        workflow_state=RETURNED_TO_CREATOR,
        is_within_team=False,
        assigned_to=CREATOR,
        signer_ids=frozenset({CREATOR}),
        resign_ids=frozenset({CREATOR}),
        latest_movement=MovementContext(
            from_user_id=SE,
            to_user_id=CREATOR,
            from_role_code="SE",
            is_return_to_creator=True,
        ),
    )

    perms = permissions.resolve_permissions(file, _user(CREATOR))
    affordances = permissions.derive_affordances(perms)

    assert perms.was_marked_back_by_higher_authority is True
    assert perms.can_edit is False
    assert perms.can_add_page is True
    assert affordances.pages_read_only is True
    assert affordances.can_append_page is True
    # Signing again is allowed after a mark-back.
    assert affordances.can_sign is True


def test_already_signed_blocks_sign_without_mark_back():
    perms = permissions.resolve_permissions(_file(signer_ids=frozenset({CREATOR})), _user(CREATOR))
    affordances = permissions.derive_affordances(perms)

    assert perms.has_signed is True
    assert affordances.can_sign is False
    assert affordances.reasons["sign"] == "Already signed"


def test_sign_again_follows_mark_back_to_any_signer():
    file = _file(
        workflow_state=EXTERNAL,
        is_within_team=False,
        assigned_to=SE,
        signer_ids=frozenset({CREATOR, SE}),
    )

    held = permissions.resolve_permissions(file, _user(SE, "SE"))
    returned = permissions.resolve_permissions(replace(file, resign_ids=frozenset({SE})), _user(SE, "SE"))

    assert held.can_sign_again is False
    assert permissions.derive_affordances(held).can_sign is False
    assert returned.can_sign_again is True
    assert returned.was_marked_back_by_higher_authority is False
    assert permissions.derive_affordances(returned).can_sign is True


def test_assistant_adds_pages_while_manager_holds_file():
    file = _file(workflow_state=EXTERNAL, is_within_team=False, assigned_to=SE)
    assistant = _user(
        ASSISTANT,
        "AEE",
        team_role="SE_ASSISTANT",
        manager_id=SE,
        manager_role_code="SE_WATER",
    )

    assert permissions.can_add_pages(file, assistant) is True
    assert permissions.can_add_pages(file, _user(OUTSIDER, "AEE")) is False


def test_admin_gets_everything_and_never_higher_level():
    file = _file(workflow_state=EXTERNAL, is_within_team=False, assigned_to=SE)

    perms = permissions.resolve_permissions(file, _user(OUTSIDER, "SYS_ADMIN"))

    assert perms.is_admin is True
    assert perms.can_edit and perms.can_mark_to and perms.can_add_signature
    assert perms.is_file_at_higher_level is False


def test_next_workflow_state_transitions():
    file = _file()

    assert permissions.next_workflow_state(file, CREATOR, ASSISTANT) == TEAM_INTERNAL
    assert permissions.next_workflow_state(file, CREATOR, SE) == EXTERNAL
    assert permissions.next_workflow_state(file, SE, CREATOR) == RETURNED_TO_CREATOR

    external = _file(workflow_state=EXTERNAL, is_within_team=False, assigned_to=SE)
    assert permissions.is_within_team_workflow(external, CREATOR, ASSISTANT) is False
    assert permissions.next_workflow_state(external, SE, ASSISTANT) == EXTERNAL


def test_can_mark_file_by_state():
    assert permissions.can_mark_file(_file(), ASSISTANT) is True
    assert permissions.can_mark_file(_file(), OUTSIDER) is False

    external = _file(workflow_state=EXTERNAL, is_within_team=False, assigned_to=SE)
    assert permissions.can_mark_file(external, SE) is True
    assert permissions.can_mark_file(external, CREATOR) is False

    returned = _file(workflow_state=RETURNED_TO_CREATOR, is_within_team=False, assigned_to=CREATOR)
    assert permissions.can_mark_file(returned, CREATOR) is True
    assert permissions.can_mark_file(returned, SE) is False


def test_can_edit_file_only_for_creator_and_after_return():
    assert permissions.can_edit_file(_file(), CREATOR) is True
    assert permissions.can_edit_file(_file(), ASSISTANT) is False
    assert permissions.can_edit_file(_file(assigned_to=SE, workflow_state=EXTERNAL), CREATOR) is False
    assert (
        permissions.can_edit_file(_file(assigned_to=CREATOR, workflow_state=RETURNED_TO_CREATOR), CREATOR)
        is True
    )


def test_permission_set_wire_format_round_trip():
    perms = permissions.resolve_permissions(_file(), _user(CREATOR))

    payload = perms.as_dict()

    assert payload["canEdit"] is True
    assert payload["isFileAtHigherLevel"] is False
    assert payload["is_within_team"] is True
    assert payload["workflow_state"] == TEAM_INTERNAL
    assert PermissionSet.from_dict(payload) == perms


def test_restrictive_set_disables_everything():
    perms = PermissionSet.restrictive()
    affordances = permissions.derive_affordances(perms)

    assert perms.can_edit is False and perms.can_mark_to is False
    assert affordances.pages_read_only is True
    assert affordances.can_sign is False
