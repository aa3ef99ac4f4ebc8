from __future__ import annotations

import pyotp
import pytest
from fastapi import HTTPException

from efiledb import security
from efiledb.apps.notifications import models as notification_models
from efiledb.apps.signatures import models, verification


def test_send_otp_records_hashed_code_and_redacted_delivery(db_session, make_user):
    user = make_user("XEN")

    record, code, delivery = verification.send_otp(
        db_session, user=user, method=models.VerificationMethod.SMS
    )
    db_session.commit()

    assert len(code) == 6 and code.isdigit()
    assert record.code_hash != code
    assert delivery.channel == notification_models.DeliveryChannel.SMS
    assert delivery.recipient == user.phone
    assert delivery.status == notification_models.DeliveryStatus.SKIPPED_NO_PROVIDER
    assert delivery.context_json["code"] == "***"


def test_resending_replaces_previous_code(db_session, make_user):
    user = make_user("XEN")

    verification.send_otp(db_session, user=user, method=models.VerificationMethod.EMAIL)
    verification.send_otp(db_session, user=user, method=models.VerificationMethod.EMAIL)
    db_session.commit()

    assert db_session.query(models.VerificationCode).filter_by(user_id=user.id).count() == 1


def test_verify_code_issues_single_purpose_token(db_session, make_user):
    user = make_user("XEN")
    _record, code, _delivery = verification.send_otp(
        db_session, user=user, method=models.VerificationMethod.SMS
    )

    with pytest.raises(HTTPException) as exc:
        verification.verify_code(
            db_session, user=user, method=models.VerificationMethod.SMS, code="not-it"
        )
    assert exc.value.detail == "Invalid code"

    token, expires_in = verification.verify_code(
        db_session, user=user, method=models.VerificationMethod.SMS, code=code
    )

    claims = security.decode_verification_token(token, user_id=user.id)
    assert claims["method"] == "sms"
    assert expires_in > 0
    assert db_session.query(models.VerificationCode).count() == 0

    with pytest.raises(HTTPException) as exc:
        verification.verify_code(
            db_session, user=user, method=models.VerificationMethod.SMS, code=code
        )
    assert exc.value.detail == "Invalid or expired code"


def test_authenticator_codes_are_not_sent(db_session, make_user):
    user = make_user("XEN")

    with pytest.raises(HTTPException) as exc:
        verification.send_otp(db_session, user=user, method=models.VerificationMethod.AUTHENTICATOR)
    assert exc.value.status_code == 400


def test_authenticator_code_exchanges_for_token(db_session, make_user):
    user = make_user("XEN")
    secret, uri = verification.enroll_authenticator(db_session, user=user)
    db_session.commit()

    assert user.totp_secret == secret
    assert uri.startswith("otpauth://totp/")

    token, expires_in = verification.verify_code(
        db_session,
        user=user,
        method=models.VerificationMethod.AUTHENTICATOR,
        code=pyotp.TOTP(secret).now(),
    )
    claims = security.decode_verification_token(token, user_id=user.id)
    assert claims["method"] == "authenticator"
    assert expires_in > 0


def test_authenticator_requires_enrolment_and_matching_code(db_session, make_user):
    user = make_user("XEN")

    with pytest.raises(HTTPException) as exc:
        verification.verify_code(
            db_session, user=user, method=models.VerificationMethod.AUTHENTICATOR, code="123456"
        )
    assert exc.value.detail == "Authenticator app is not set up"

    secret, _uri = verification.enroll_authenticator(db_session, user=user)
    current = pyotp.TOTP(secret).now()
    wrong = f"{(int(current) + 500000) % 1000000:06d}"
    with pytest.raises(HTTPException) as exc:
        verification.verify_code(
            db_session, user=user, method=models.VerificationMethod.AUTHENTICATOR, code=wrong
        )
    assert exc.value.detail == "Invalid code"


def test_google_verification_needs_configured_verifier(db_session, make_user):
    user = make_user("XEN")

    with pytest.raises(HTTPException) as exc:
        verification.verify_google(db_session, user=user, id_token="token")
    assert exc.value.status_code == 503
