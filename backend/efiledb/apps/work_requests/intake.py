# backend/efiledb/apps/work_requests/intake.py
"""
Work-request intake form rules.

The selected department (a complaint type) decides the form's shape:
a department carrying a ``division_id`` is handled per division, every
other department per town. This module holds the field layout for each
shape, the per-field validation and the submission normalisation. It has
no database access so the API client can apply the same rules before
posting.
"""

from __future__ import annotations

import enum
import re
from dataclasses import asdict, dataclass
from typing import Any, Dict, List, Mapping, Optional, Tuple

FK_FIELDS: Tuple[str, ...] = (
    "complaint_type_id",
    "complaint_subtype_id",
    "town_id",
    "subtown_id",
    "division_id",
    "executive_engineer_id",
    "contractor_id",
)
LIST_FIELDS: Tuple[str, ...] = ("subtown_ids", "assigned_sm_agents")
FILE_TYPES: Tuple[str, ...] = ("SPI", "R&M", "ADP", "")

PHONE_RE = re.compile(r"^[0-9]{10,15}$")

DEPARTMENT_REQUIRED = "Department is required"
TOWN_REQUIRED = "Town is required"
DIVISION_REQUIRED = "Division is required"
PHONE_INVALID = "Must be a valid phone number"
ADDRESS_REQUIRED = "Address is required"
DESCRIPTION_REQUIRED = "Description is required"
NATURE_OF_WORK_REQUIRED = "Nature of work is required"
FILE_TYPE_INVALID = "File type must be one of SPI, R&M, ADP"


class IntakeMode(str, enum.Enum):
    TOWN = "town"
    DIVISION = "division"


@dataclass(frozen=True)
class FieldSpec:
    name: str
    label: str
    kind: str
    required: bool = False
    depends_on: Optional[str] = None
    source: Optional[str] = None

    def as_dict(self) -> Dict[str, Any]:
        return asdict(self)


def _get(obj: Any, key: str) -> Any:
    if obj is None:
        return None
    if isinstance(obj, Mapping):
        return obj.get(key)
    return getattr(obj, key, None)


def intake_mode(department: Any) -> IntakeMode:
    """Division-based when the department carries a truthy division_id."""
    return IntakeMode.DIVISION if _get(department, "division_id") else IntakeMode.TOWN


def build_layout(mode: IntakeMode) -> List[FieldSpec]:
    """
    Ordered field list for the form. The cascade reads top to bottom:
    department, then division or town, subtown, nature of work and finally
    the executive engineers eligible for that selection.
    """
    fields = [
        FieldSpec("complaint_type_id", "Department", "select", True, source="/api/complaints/getalltypes"),
        FieldSpec(
            "complaint_subtype_id",
            "Nature of Work",
            "select",
            False,
            depends_on="complaint_type_id",
            source="/api/complaints/subtypes",
        ),
    ]
    if mode == IntakeMode.DIVISION:
        fields.append(
            FieldSpec("division_id", "Division", "select", True, depends_on="complaint_type_id", source="/api/efiling/divisions")
        )
        area_field = "division_id"
    else:
        fields.extend(
            [
                FieldSpec("town_id", "Town", "select", True, source="/api/towns"),
                FieldSpec("subtown_id", "Subtown", "select", False, depends_on="town_id", source="/api/towns/subtowns"),
                FieldSpec("subtown_ids", "Additional Subtowns", "multiselect", False, depends_on="town_id", source="/api/towns/subtowns"),
            ]
        )
        area_field = "town_id"
    fields.extend(
        [
            FieldSpec("nature_of_work", "Nature of Work (details)", "text", True),
            FieldSpec(
                "executive_engineer_id",
                "Executive Engineer",
                "select",
                False,
                depends_on=area_field,
                source="/api/agents?role=1",
            ),
            FieldSpec("contractor_id", "Contractor", "select", False, source="/api/agents?role=2"),
            FieldSpec("contact_number", "Contact Number", "tel", True),
            FieldSpec("address", "Address", "textarea", True),
            FieldSpec("description", "Description", "textarea", True),
            FieldSpec("file_type", "File Type", "select", False),
            FieldSpec("budget_code", "Budget Code", "text", False),
            FieldSpec("latitude", "Latitude", "number", False),
            FieldSpec("longitude", "Longitude", "number", False),
            FieldSpec("additional_locations", "Additional Locations", "locations", False),
            FieldSpec("assigned_sm_agents", "Social Media Agents", "multiselect", False, source="/api/socialmediaperson"),
        ]
    )
    return fields


def _blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    return False


def validate(values: Mapping[str, Any], mode: IntakeMode) -> Dict[str, str]:
    """Per-field error messages; an empty dict means the form is valid."""
    errors: Dict[str, str] = {}
    if _blank(values.get("complaint_type_id")):
        errors["complaint_type_id"] = DEPARTMENT_REQUIRED
    if mode == IntakeMode.DIVISION:
        if _blank(values.get("division_id")):
            errors["division_id"] = DIVISION_REQUIRED
    elif _blank(values.get("town_id")):
        errors["town_id"] = TOWN_REQUIRED

    contact = values.get("contact_number")
    if _blank(contact) or not PHONE_RE.match(str(contact).strip()):
        errors["contact_number"] = PHONE_INVALID
    if _blank(values.get("address")):
        errors["address"] = ADDRESS_REQUIRED
    if _blank(values.get("description")):
        errors["description"] = DESCRIPTION_REQUIRED
    if _blank(values.get("nature_of_work")):
        errors["nature_of_work"] = NATURE_OF_WORK_REQUIRED

    file_type = values.get("file_type")
    if file_type is not None and file_type not in FILE_TYPES:
        errors["file_type"] = FILE_TYPE_INVALID
    return errors


def normalize_int(value: Any) -> Optional[int]:
    """Integer or None; blanks and unparsable values become None."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if value.is_integer() else None
    text = str(value).strip()
    if not text:
        return None
    try:
        return int(text)
    except ValueError:
        return None


def _normalize_list(value: Any) -> List[int]:
    if value is None:
        return []
    if not isinstance(value, (list, tuple, set)):
        value = [value]
    result = []
    for item in value:
        number = normalize_int(item)
        if number is not None:
            result.append(number)
    return result


def normalize_submission(
    values: Mapping[str, Any],
    mode: IntakeMode,
    department: Any = None,
) -> Dict[str, Any]:
    """
    Payload as it is posted and stored.

    Division-based: town fields are cleared and a blank division falls back
    to the department's own division. Town-based: division is cleared.
    """
    payload = dict(values)
    for field in FK_FIELDS:
        payload[field] = normalize_int(values.get(field))
    for field in LIST_FIELDS:
        payload[field] = _normalize_list(values.get(field))

    if mode == IntakeMode.DIVISION:
        payload["town_id"] = None
        payload["subtown_id"] = None
        payload["subtown_ids"] = []
        if payload["division_id"] is None:
            payload["division_id"] = normalize_int(_get(department, "division_id"))
    else:
        payload["division_id"] = None

    for field in ("contact_number", "address", "description", "nature_of_work", "budget_code"):
        if isinstance(payload.get(field), str):
            payload[field] = payload[field].strip()
    if payload.get("file_type") is None:
        payload["file_type"] = ""
    return payload
