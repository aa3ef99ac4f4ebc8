"""
Role-code classification used by the file workflow.

Role codes are free-form strings maintained by administrators, so most rules
match a family of codes (``SE``, ``SE_WATER``, ``ZONE_SE_NORTH``) rather than a
single value. Everything here is pure and safe to call from the API client.
"""

from __future__ import annotations

import re
from typing import Iterable, Optional

ADMIN_ROLE_CODES = frozenset({"SYS_ADMIN", "ADMIN", "SUPERADMIN"})

HIGHER_AUTHORITY_CODES = frozenset({"SE", "CE", "DCE", "CEO", "COO", "ADLFA", "IAO-II"})
HIGHER_AUTHORITY_PREFIXES = ("SE_", "CE_", "DCE_", "CEO_", "COO_")

# Senders whose return-to-creator makes existing pages read-only.
MARK_BACK_AUTHORITY_CODES = ("SE", "CE", "CEO", "COO")

PAGE_ADDING_CODES = ("SE", "CE", "DCE", "IAO-II", "ADLFA")

ASSISTANT_TEAM_ROLES = frozenset({"AO", "ASSISTANT", "SE_ASSISTANT", "CE_ASSISTANT"})
ASSISTED_MANAGER_CODES = ("SE", "CE")

EXTERNAL_ROLE_CODES = frozenset({"SE", "CE", "CFO", "COO", "CEO"})
CEO_ROLE_CODES = frozenset({"CEO", "CEO_GROUP"})
ROUTING_BYPASS_CODES = frozenset({"CEO", "COO"})

COMMENT_MODERATOR_CODES = frozenset({"SYS_ADMIN", "SUPERADMIN", "CEO", "CHIEF_IT_OFFICER"})

_TEAM_LEVEL_MARKERS = ("AEE", "DAO", "AO", "ACCOUNT", "SUB-ENGINEER", "SUB_ENGINEER", "SUBENGINEER")
_BUDGET_MARKERS = ("BUDGET", "BILLING")


def normalise_role_code(code: Optional[str]) -> str:
    return (code or "").strip().upper()


def matches_role_family(code: Optional[str], base: str) -> bool:
    """True for ``BASE``, ``BASE_x``, ``x_BASE_y`` and ``x_BASE``."""
    candidate = normalise_role_code(code)
    if not candidate:
        return False
    return (
        candidate == base
        or candidate.startswith(f"{base}_")
        or f"_{base}_" in candidate
        or candidate.endswith(f"_{base}")
    )


def _matches_exact_or_prefix(code: str, bases: Iterable[str]) -> bool:
    return any(code == base or code.startswith(f"{base}_") for base in bases)


def is_admin_role(code: Optional[str]) -> bool:
    return normalise_role_code(code) in ADMIN_ROLE_CODES


def is_budget_or_billing(code: Optional[str], department_name: Optional[str] = None) -> bool:
    haystacks = (normalise_role_code(code), normalise_role_code(department_name))
    return any(marker in value for value in haystacks for marker in _BUDGET_MARKERS)


def is_higher_authority(code: Optional[str], department_name: Optional[str] = None) -> bool:
    candidate = normalise_role_code(code)
    if candidate in HIGHER_AUTHORITY_CODES:
        return True
    if "IAO-II" in candidate:
        return True
    if candidate.startswith(HIGHER_AUTHORITY_PREFIXES):
        return True
    return is_budget_or_billing(candidate, department_name)


def is_mark_back_authority(code: Optional[str]) -> bool:
    return _matches_exact_or_prefix(normalise_role_code(code), MARK_BACK_AUTHORITY_CODES)


def is_page_adding_role(code: Optional[str], department_name: Optional[str] = None) -> bool:
    if any(matches_role_family(code, base) for base in PAGE_ADDING_CODES):
        return True
    return is_budget_or_billing(code, department_name)


def is_assisted_manager_role(code: Optional[str]) -> bool:
    return _matches_exact_or_prefix(normalise_role_code(code), ASSISTED_MANAGER_CODES)


def is_assistant_team_role(team_role: Optional[str]) -> bool:
    return normalise_role_code(team_role) in ASSISTANT_TEAM_ROLES


def is_ceo_role(code: Optional[str]) -> bool:
    return normalise_role_code(code) in CEO_ROLE_CODES


def bypasses_routing_checks(code: Optional[str]) -> bool:
    return normalise_role_code(code) in ROUTING_BYPASS_CODES


def can_moderate_comments(code: Optional[str]) -> bool:
    return normalise_role_code(code) in COMMENT_MODERATOR_CODES


def is_team_level_role(code: Optional[str]) -> bool:
    candidate = normalise_role_code(code)
    return any(marker in candidate for marker in _TEAM_LEVEL_MARKERS)


def _is_re_or_xen(code: str) -> bool:
    return (
        _matches_exact_or_prefix(code, ("RE", "XEN"))
        or "RESIDENT_ENGINEER" in code
        or "EXECUTIVE_ENGINEER" in code
    )


def _is_superintending_engineer(code: str) -> bool:
    return (
        _matches_exact_or_prefix(code, ("SE",))
        or "SUPERINTENDENT_ENGINEER" in code
        or "SUPERINTENDENT ENGINEER" in code
    )


def _is_admin_officer(code: str) -> bool:
    return (
        "ADMINISTRATIVE_OFFICER" in code
        or "ADMINISTRATIVE OFFICER" in code
        or _matches_exact_or_prefix(code, ("ADMIN_OFFICER",))
    )


def requires_signature_before_marking(
    from_role_code: Optional[str],
    to_role_code: Optional[str],
    *,
    workflow_state: Optional[str],
    team_movement: bool = False,
) -> bool:
    """
    Whether the sender must hold an active e-signature before a move.

    team_movement is True when both ends of the move belong to the
    creator's team (the creator counts as part of their own team).
    """
    if workflow_state == "TEAM_INTERNAL" and team_movement:
        return False

    from_code = normalise_role_code(from_role_code)
    to_code = normalise_role_code(to_role_code)

    to_team_level = is_team_level_role(to_code)
    if is_team_level_role(from_code) and to_team_level:
        return False

    if _is_re_or_xen(from_code) and _is_superintending_engineer(to_code):
        return True

    if _is_admin_officer(from_code) and "DIRECTOR_MEDICAL_SERVICES" in to_code:
        return True

    if to_code in EXTERNAL_ROLE_CODES and not to_team_level:
        return True

    if from_code in EXTERNAL_ROLE_CODES:
        return True

    return workflow_state == "EXTERNAL"


def role_pattern_matches(code: Optional[str], pattern: Optional[str]) -> bool:
    """
    Match a role code against an SLA matrix pattern.

    An empty pattern or ``*`` matches everything; ``*`` inside a pattern
    matches any run of characters; anything else must match exactly.
    """
    candidate = normalise_role_code(code)
    raw = normalise_role_code(pattern)
    if not raw or raw == "*":
        return True
    if "*" not in raw:
        return candidate == raw
    regex = "^" + ".*".join(re.escape(part) for part in raw.split("*")) + "$"
    return re.match(regex, candidate) is not None


def page_addition_type(
    role_code: Optional[str],
    *,
    assisted_manager_role_code: Optional[str] = None,
    is_creator: bool = False,
) -> str:
    """Label recorded in the page-addition history."""
    if assisted_manager_role_code:
        manager_code = normalise_role_code(assisted_manager_role_code)
        if _matches_exact_or_prefix(manager_code, ("CE",)):
            return "CE_ASSISTANT_PAGE"
        if _matches_exact_or_prefix(manager_code, ("SE",)):
            return "SE_ASSISTANT_PAGE"
    if matches_role_family(role_code, "CE"):
        return "CE_PAGE"
    if matches_role_family(role_code, "SE"):
        return "SE_PAGE"
    if is_creator:
        return "CREATOR_PAGE"
    return "OTHER_PAGE"
