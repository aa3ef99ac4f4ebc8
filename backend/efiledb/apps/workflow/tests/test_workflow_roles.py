from __future__ import annotations

import pytest

from efiledb.apps.workflow import roles


@pytest.mark.parametrize(
    "code,department,expected",
    [
        ("SE", None, True),
        ("se_water", None, True),
        ("CEO", None, True),
        ("IAO-II", None, True),
        ("XEN", None, False),
        ("AEE", None, False),
        ("CLERK", "Budget Section", True),
    ],
)
def test_is_higher_authority(code, department, expected):
    assert roles.is_higher_authority(code, department) is expected


def test_signature_not_required_inside_team():
    assert (
        roles.requires_signature_before_marking(
            "XEN", "AEE", workflow_state="TEAM_INTERNAL", team_movement=True
        )
        is False
    )


def test_signature_required_from_xen_to_se():
    assert roles.requires_signature_before_marking("XEN", "SE_WATER", workflow_state="EXTERNAL") is True


def test_signature_required_towards_external_roles_and_external_state():
    assert roles.requires_signature_before_marking("DAO", "CEO", workflow_state="EXTERNAL") is True
    assert roles.requires_signature_before_marking("CLERK", "CLERK", workflow_state="EXTERNAL") is True
    assert roles.requires_signature_before_marking("AEE", "DAO", workflow_state="EXTERNAL") is False


def test_role_pattern_matches_wildcards():
    assert roles.role_pattern_matches("SE_WATER", "SE*")
    assert roles.role_pattern_matches("ACCOUNTS_BUDGET", "*_BUDGET")
    assert roles.role_pattern_matches("ANYTHING", "*")
    assert roles.role_pattern_matches("XEN", None)
    assert not roles.role_pattern_matches("XEN", "SE*")
    assert not roles.role_pattern_matches("SE_WATER", "SE")


def test_page_addition_type_labels():
    assert roles.page_addition_type("CE_SEWERAGE") == "CE_PAGE"
    assert roles.page_addition_type("SE") == "SE_PAGE"
    assert roles.page_addition_type("AEE", assisted_manager_role_code="SE_WATER") == "SE_ASSISTANT_PAGE"
    assert roles.page_addition_type("XEN", is_creator=True) == "CREATOR_PAGE"
    assert roles.page_addition_type("XEN") == "OTHER_PAGE"


def test_routing_and_moderation_roles():
    assert roles.bypasses_routing_checks("coo")
    assert not roles.bypasses_routing_checks("SE")
    assert roles.can_moderate_comments("CHIEF_IT_OFFICER")
    assert not roles.can_moderate_comments("XEN")
    assert roles.is_ceo_role("CEO")
