# backend/efiledb/client/api.py
"""
Async HTTP client for the e-filing and work-request API.

Every non-2xx response is raised as ApiError carrying the server's own
message. Transport failures become ApiError with status_code 0. Nothing is
retried; callers decide whether to try again.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Mapping, Optional

import httpx

from efiledb.apps.efiling.attachments import ALLOWED_MIME_TYPES
from efiledb.apps.efiling.pages import LAST_PAGE_DETAIL
from efiledb.apps.work_requests import intake
from efiledb.apps.workflow.permissions import PermissionSet
from efiledb.utils.uploads import MAX_UPLOAD_BYTES

logger = logging.getLogger(__name__)

GENERIC_ERROR = "Something went wrong. Please try again."
DEFAULT_TIMEOUT = 30.0


class ApiError(Exception):
    def __init__(self, status_code: int, message: str, payload: Any = None):
        super().__init__(message)
        self.status_code = status_code
        self.message = message
        self.payload = payload

    def __str__(self) -> str:
        return f"{self.status_code}: {self.message}"


def _as_text(value: Any) -> Optional[str]:
    if value is None or value == "" or value == [] or value == {}:
        return None
    if isinstance(value, str):
        return value
    if isinstance(value, dict):
        return "; ".join(f"{key}: {_as_text(item)}" for key, item in value.items())
    if isinstance(value, list):
        parts = []
        for item in value:
            if isinstance(item, dict):
                parts.append(str(item.get("msg") or item.get("reason") or item.get("message") or item))
            else:
                parts.append(str(item))
        return "; ".join(parts)
    return str(value)


def error_message(payload: Any, *, fallback: str = GENERIC_ERROR) -> str:
    """
    Human-readable message from an error body.

    Looks at ``error``, ``details`` and ``detail`` in that order. A dict
    ``detail`` (409 transitions, 422 intake errors) is searched for
    ``message``, ``error`` and ``errors``.
    """
    if isinstance(payload, str):
        return payload.strip() or fallback
    if not isinstance(payload, dict):
        return fallback
    for key in ("error", "details"):
        text = _as_text(payload.get(key))
        if text:
            return text
    detail = payload.get("detail")
    if isinstance(detail, dict):
        for key in ("message", "error", "errors"):
            text = _as_text(detail.get(key))
            if text:
                return text
        return fallback
    return _as_text(detail) or fallback


class EfilingClient:
    def __init__(
        self,
        base_url: str,
        *,
        token: Optional[str] = None,
        timeout: float = DEFAULT_TIMEOUT,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        headers = {"Accept": "application/json"}
        if token:
            headers["Authorization"] = f"Bearer {token}"
        self._client = httpx.AsyncClient(
            base_url=base_url.rstrip("/"),
            headers=headers,
            timeout=timeout,
            transport=transport,
        )

    async def __aenter__(self) -> "EfilingClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    def set_token(self, token: Optional[str]) -> None:
        if token:
            self._client.headers["Authorization"] = f"Bearer {token}"
        else:
            self._client.headers.pop("Authorization", None)

    async def request(self, method: str, path: str, **kwargs) -> Any:
        try:
            response = await self._client.request(method, path, **kwargs)
        except httpx.HTTPError as exc:
            logger.warning("API transport failure", extra={"method": method, "path": path, "error": str(exc)})
            raise ApiError(0, f"Network error: {exc}") from exc

        if response.is_success:
            if response.status_code == 204 or not response.content:
                return None
            return response.json()

        try:
            payload = response.json()
        except ValueError:
            payload = response.text
        raise ApiError(response.status_code, error_message(payload), payload)

    # ------------------------------------------------------------------
    # Auth
    # ------------------------------------------------------------------

    async def login(self, email: str, password: str) -> Dict[str, Any]:
        data = await self.request("POST", "/auth/login", json={"email": email, "password": password})
        self.set_token(data.get("access_token"))
        return data

    # ------------------------------------------------------------------
    # Files
    # ------------------------------------------------------------------

    async def list_files(self, **params) -> List[Dict[str, Any]]:
        return await self.request("GET", "/api/efiling/files", params=params)

    async def create_file(self, payload: Mapping[str, Any]) -> Dict[str, Any]:
        return await self.request("POST", "/api/efiling/files", json=dict(payload))

    async def get_file(self, file_id: str) -> Dict[str, Any]:
        return await self.request("GET", f"/api/efiling/files/{file_id}")

    async def get_permissions(self, file_id: str) -> PermissionSet:
        data = await self.request("GET", f"/api/efiling/files/{file_id}/permissions")
        return PermissionSet.from_dict(data)

    async def get_permissions_or_restrictive(self, file_id: str) -> PermissionSet:
        """Permissions, or the fail-closed set when they cannot be loaded."""
        try:
            return await self.get_permissions(file_id)
        except ApiError as exc:
            logger.warning(
                "Falling back to restrictive permissions",
                extra={"file_id": file_id, "status_code": exc.status_code},
            )
            return PermissionSet.restrictive()

    async def get_timeline(self, file_id: str) -> List[Dict[str, Any]]:
        return await self.request("GET", f"/api/efiling/files/{file_id}/timeline")

    async def mark_to(self, file_id: str, user_ids: List[str], remarks: Optional[str] = None) -> Dict[str, Any]:
        return await self.request(
            "POST",
            f"/api/efiling/files/{file_id}/mark-to",
            json={"user_ids": list(user_ids), "remarks": remarks},
        )

    async def complete_file(self, file_id: str, remarks: Optional[str] = None) -> Dict[str, Any]:
        return await self.request("POST", f"/api/efiling/files/{file_id}/complete", json={"remarks": remarks})

    # ------------------------------------------------------------------
    # Document and pages
    # ------------------------------------------------------------------

    async def get_document(self, file_id: str) -> Dict[str, Any]:
        return await self.request("GET", f"/api/efiling/files/{file_id}/document")

    async def save_document(self, file_id: str, content: Dict[str, Any], template_id: Optional[str] = None):
        return await self.request(
            "POST",
            f"/api/efiling/files/{file_id}/document",
            json={"content": content, "template_id": template_id},
        )

    async def list_pages(self, file_id: str) -> Dict[str, Any]:
        return await self.request("GET", f"/api/efiling/files/{file_id}/pages")

    async def add_page(self, file_id: str, payload: Mapping[str, Any]) -> Dict[str, Any]:
        return await self.request("POST", f"/api/efiling/files/{file_id}/pages", json=dict(payload))

    async def update_page(self, file_id: str, page_id: str, payload: Mapping[str, Any]) -> Dict[str, Any]:
        return await self.request("PUT", f"/api/efiling/files/{file_id}/pages/{page_id}", json=dict(payload))

    async def delete_page(self, file_id: str, page_id: str, *, page_count: Optional[int] = None) -> None:
        """Refuses locally when the page is the last one left."""
        if page_count is None:
            listing = await self.list_pages(file_id)
            page_count = len(listing.get("pages") or [])
        if page_count <= 1:
            raise ApiError(400, LAST_PAGE_DETAIL)
        await self.request("DELETE", f"/api/efiling/files/{file_id}/pages/{page_id}")

    async def apply_template(self, file_id: str, page_id: str, template_id: str) -> Dict[str, Any]:
        return await self.request(
            "POST",
            f"/api/efiling/files/{file_id}/pages/{page_id}/apply-template",
            json={"template_id": template_id},
        )

    # ------------------------------------------------------------------
    # Comments and attachments
    # ------------------------------------------------------------------

    async def list_comments(self, file_id: str) -> List[Dict[str, Any]]:
        return await self.request("GET", f"/api/efiling/files/{file_id}/comments")

    async def add_comment(self, file_id: str, text: str) -> Dict[str, Any]:
        return await self.request("POST", f"/api/efiling/files/{file_id}/comments", json={"text": text})

    async def edit_comment(self, file_id: str, comment_id: str, text: str) -> Dict[str, Any]:
        return await self.request(
            "PUT", f"/api/efiling/files/{file_id}/comments/{comment_id}", json={"text": text}
        )

    async def delete_comment(self, file_id: str, comment_id: str) -> None:
        await self.request("DELETE", f"/api/efiling/files/{file_id}/comments/{comment_id}")

    async def list_attachments(self, file_id: str) -> List[Dict[str, Any]]:
        return await self.request("GET", f"/api/efiling/files/{file_id}/attachments")

    async def upload_attachment(
        self,
        file_id: str,
        *,
        filename: str,
        content: bytes,
        content_type: str,
    ) -> Dict[str, Any]:
        if content_type not in ALLOWED_MIME_TYPES:
            raise ApiError(415, f"Invalid file type: {content_type}")
        if len(content) > MAX_UPLOAD_BYTES:
            raise ApiError(413, "File exceeds the 5MB limit")
        return await self.request(
            "POST",
            f"/api/efiling/files/{file_id}/attachments",
            files={"file": (filename, content, content_type)},
        )

    async def delete_attachment(self, file_id: str, attachment_id: str) -> None:
        await self.request("DELETE", f"/api/efiling/files/{file_id}/attachments/{attachment_id}")

    # ------------------------------------------------------------------
    # Signatures
    # ------------------------------------------------------------------

    async def list_signatures(self, file_id: str) -> List[Dict[str, Any]]:
        return await self.request("GET", f"/api/efiling/files/{file_id}/signatures")

    async def stage_signature(self, file_id: str, payload: Mapping[str, Any]) -> Dict[str, Any]:
        return await self.request("POST", f"/api/efiling/files/{file_id}/signatures/stage", json=dict(payload))

    async def commit_signature(self, file_id: str, stage_id: str, verification_token: str) -> Dict[str, Any]:
        return await self.request(
            "POST",
            f"/api/efiling/files/{file_id}/signatures",
            json={"stage_id": stage_id, "verification_token": verification_token},
        )

    async def sign(self, file_id: str, payload: Mapping[str, Any], verification_token: str) -> Dict[str, Any]:
        stage = await self.stage_signature(file_id, payload)
        return await self.commit_signature(file_id, stage["stage_id"], verification_token)

    async def send_otp(self, method: str = "sms") -> Dict[str, Any]:
        return await self.request("POST", "/api/efiling/send-otp", json={"method": method})

    async def verify_auth(self, code: str, method: str = "sms") -> str:
        data = await self.request("POST", "/api/efiling/verify-auth", json={"method": method, "code": code})
        return data["verification_token"]

    async def google_auth(self, id_token: str) -> str:
        data = await self.request("POST", "/api/efiling/google-auth", json={"id_token": id_token})
        return data["verification_token"]

    async def list_user_signatures(self) -> List[Dict[str, Any]]:
        return await self.request("GET", "/api/efiling/signatures")

    async def manage_user_signature(self, signature_id: str, action: str) -> List[Dict[str, Any]]:
        return await self.request(
            "POST",
            "/api/efiling/signatures/manage",
            json={"signature_id": signature_id, "action": action},
        )

    # ------------------------------------------------------------------
    # Templates
    # ------------------------------------------------------------------

    async def list_templates(self, **params) -> List[Dict[str, Any]]:
        return await self.request("GET", "/api/efiling/templates", params=params)

    async def use_template(self, template_id: str) -> Dict[str, Any]:
        return await self.request("POST", f"/api/efiling/templates/{template_id}/use")

    # ------------------------------------------------------------------
    # Reference data
    # ------------------------------------------------------------------

    async def list_towns(self) -> List[Dict[str, Any]]:
        return await self.request("GET", "/api/towns")

    async def list_subtowns(self, town_id: Optional[int] = None) -> List[Dict[str, Any]]:
        params = {"town_id": town_id} if town_id is not None else None
        return await self.request("GET", "/api/towns/subtowns", params=params)

    async def list_complaint_types(self) -> List[Dict[str, Any]]:
        return await self.request("GET", "/api/complaints/getalltypes")

    async def list_complaint_subtypes(self, complaint_type_id: Optional[int] = None) -> List[Dict[str, Any]]:
        params = {"complaint_type_id": complaint_type_id} if complaint_type_id is not None else None
        return await self.request("GET", "/api/complaints/subtypes", params=params)

    async def list_divisions(self, **params) -> List[Dict[str, Any]]:
        data = await self.request("GET", "/api/efiling/divisions", params=params)
        return data.get("divisions", []) if isinstance(data, dict) else data

    async def list_agents(self, **params) -> List[Dict[str, Any]]:
        query = {key: value for key, value in params.items() if value is not None}
        return await self.request("GET", "/api/agents", params=query)

    async def list_executive_engineers(
        self,
        *,
        complaint_type_id: int,
        town_id: Optional[int] = None,
        division_id: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        """Executive engineers for a town or division within a department."""
        if division_id is not None:
            return await self.list_agents(role=1, division_id=division_id, complaint_type_id=complaint_type_id)
        return await self.list_agents(role=1, town_id=town_id, complaint_type_id=complaint_type_id)

    async def list_social_media_people(self) -> List[Dict[str, Any]]:
        return await self.request("GET", "/api/socialmediaperson")

    # ------------------------------------------------------------------
    # Work requests
    # ------------------------------------------------------------------

    async def get_intake_form(self, complaint_type_id: Optional[int] = None) -> Dict[str, Any]:
        params = {"complaint_type_id": complaint_type_id} if complaint_type_id is not None else None
        return await self.request("GET", "/api/requests/intake-form", params=params)

    async def submit_request(self, values: Mapping[str, Any], department: Any = None) -> Dict[str, Any]:
        """
        Validate and normalise the form locally, then post it. Field errors
        are raised as a 422 ApiError without touching the network.
        """
        mode = intake.intake_mode(department)
        payload = intake.normalize_submission(values, mode, department)
        errors = intake.validate(payload, mode)
        if errors:
            raise ApiError(422, error_message({"detail": {"errors": errors}}), {"errors": errors})
        return await self.request("POST", "/api/requests", json=payload)

    async def list_requests(self, **params) -> Dict[str, Any]:
        return await self.request("GET", "/api/requests", params=params)

    async def get_request(self, request_id: int) -> Dict[str, Any]:
        return await self.request("GET", f"/api/requests/{request_id}")
