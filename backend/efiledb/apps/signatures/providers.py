# backend/efiledb/apps/signatures/providers.py

"""
Identity verifiers for `google-auth`.

EFILING_IDENTITY_VERIFIER selects one:
  none / disabled (default) -> google-auth answers 503
  google                    -> Google tokeninfo endpoint, audience GOOGLE_CLIENT_ID
                               (required; google-auth answers 503 without it)
"""

from __future__ import annotations

import os
from typing import Optional

import httpx

GOOGLE_TOKENINFO_URL = "https://oauth2.googleapis.com/tokeninfo"


class IdentityVerifier:
    def verify(self, id_token: str) -> str:
        """Return the verified e-mail address or raise ValueError."""
        raise NotImplementedError


class GoogleTokenInfoVerifier(IdentityVerifier):
    def __init__(
        self,
        client_id: str,
        *,
        timeout: float = 10.0,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        if not client_id:
            raise ValueError("GOOGLE_CLIENT_ID is required for Google verification")
        self.client_id = client_id
        self.timeout = timeout
        self.transport = transport

    def verify(self, id_token: str) -> str:
        try:
            with httpx.Client(transport=self.transport, timeout=self.timeout) as client:
                response = client.get(GOOGLE_TOKENINFO_URL, params={"id_token": id_token})
        except httpx.HTTPError as exc:
            raise ValueError(f"Token verification failed: {exc}") from exc
        if response.status_code != 200:
            raise ValueError("Token rejected by Google")
        claims = response.json()
        if claims.get("aud") != self.client_id:
            raise ValueError("Token was issued for another client")
        if str(claims.get("email_verified", "")).lower() != "true":
            raise ValueError("Google e-mail is not verified")
        email = claims.get("email")
        if not email:
            raise ValueError("Token carries no e-mail")
        return email


def get_identity_verifier() -> Optional[IdentityVerifier]:
    name = (os.getenv("EFILING_IDENTITY_VERIFIER") or "none").strip().lower()
    if name in {"", "none", "disabled"}:
        return None
    if name == "google":
        return GoogleTokenInfoVerifier(os.getenv("GOOGLE_CLIENT_ID", ""))
    raise ValueError(f"Unsupported identity verifier: {name}")
