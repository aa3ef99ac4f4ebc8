from __future__ import annotations

import httpx
import pytest
from fastapi import HTTPException

from efiledb.apps.signatures import providers, verification

CLIENT_ID = "efiling-web.apps.googleusercontent.com"


def _verifier(claims, status_code: int = 200) -> providers.GoogleTokenInfoVerifier:
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.params["id_token"] == "id-token"
        return httpx.Response(status_code, json=claims)

    return providers.GoogleTokenInfoVerifier(CLIENT_ID, transport=httpx.MockTransport(handler))


def test_tokeninfo_returns_verified_email():
    verifier = _verifier({"aud": CLIENT_ID, "email": "xen@kwsc.org", "email_verified": "true"})

    assert verifier.verify("id-token") == "xen@kwsc.org"


@pytest.mark.parametrize(
    "claims, status_code, reason",
    [
        ({"aud": "another-app", "email": "xen@kwsc.org", "email_verified": "true"}, 200, "another client"),
        ({"aud": CLIENT_ID, "email": "xen@kwsc.org", "email_verified": "false"}, 200, "not verified"),
        ({"aud": CLIENT_ID, "email_verified": True}, 200, "no e-mail"),
        ({"error": "invalid_token"}, 400, "rejected"),
    ],
)
def test_tokeninfo_rejections(claims, status_code, reason):
    with pytest.raises(ValueError) as exc:
        _verifier(claims, status_code).verify("id-token")
    assert reason in str(exc.value)


def test_google_verifier_needs_client_id(monkeypatch):
    monkeypatch.setenv("EFILING_IDENTITY_VERIFIER", "google")
    monkeypatch.delenv("GOOGLE_CLIENT_ID", raising=False)

    with pytest.raises(ValueError):
        providers.get_identity_verifier()

    monkeypatch.setenv("GOOGLE_CLIENT_ID", CLIENT_ID)
    assert isinstance(providers.get_identity_verifier(), providers.GoogleTokenInfoVerifier)


def test_google_auth_unavailable_without_client_id(db_session, make_user, monkeypatch):
    monkeypatch.setenv("EFILING_IDENTITY_VERIFIER", "google")
    monkeypatch.delenv("GOOGLE_CLIENT_ID", raising=False)
    user = make_user("XEN")

    with pytest.raises(HTTPException) as exc:
        verification.verify_google(db_session, user=user, id_token="id-token")
    assert exc.value.status_code == 503
