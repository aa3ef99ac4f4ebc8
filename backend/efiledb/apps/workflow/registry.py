from __future__ import annotations

from .guards import (
    guard_ceo_completion,
    guard_return_target_is_creator,
    guard_sender_may_mark,
    guard_signature_before_marking,
)

_MARKING = [guard_sender_may_mark, guard_signature_before_marking]
_RETURNING = _MARKING + [guard_return_target_is_creator]

WORKFLOWS = {
    # Where a file sits relative to its creator's team.
    "efiling_file": {
        "transitions": {
            "TEAM_INTERNAL": {
                "TEAM_INTERNAL": _MARKING,
                "EXTERNAL": _MARKING,
                "RETURNED_TO_CREATOR": _RETURNING,
            },
            "EXTERNAL": {
                "EXTERNAL": _MARKING,
                "RETURNED_TO_CREATOR": _RETURNING,
            },
            "RETURNED_TO_CREATOR": {
                "TEAM_INTERNAL": _MARKING,
                "EXTERNAL": _MARKING,
            },
        }
    },
    # Lifecycle status shown in listings.
    "efiling_file_status": {
        "transitions": {
            "DRAFT": {
                "DRAFT": [],
                "IN_PROGRESS": [],
                "COMPLETED": [guard_ceo_completion],
            },
            "IN_PROGRESS": {
                "IN_PROGRESS": [],
                "COMPLETED": [guard_ceo_completion],
            },
            "COMPLETED": {},
        }
    },
}
