from datetime import timedelta
from urllib.parse import parse_qs, urlparse

import pytest
from marshmallow import ValidationError

from models.base_model import utcnow
from models.schemas.auth import MIN_RESET_TOKEN_LENGTH, ResetPasswordSchema
from services.errors import InvalidCredentials, InvalidOrExpiredResetToken, InvalidToken
from services.password_reset import RESET_SUCCESS_MESSAGE

from conftest import MEMBER_EMAIL, MEMBER_PASSWORD

NEW_PASSWORD = "a-brand-new-password"


def _token_from(link):
    parsed = urlparse(link)
    assert parsed.path == "/reset-password"
    return parse_qs(parsed.query)["token"][0]


def test_request_reset_mails_a_link(app, services, member, mailer):
    services.password_reset.request_reset(MEMBER_EMAIL)

    assert len(mailer.sent) == 1
    email, link = mailer.sent[0]
    assert email == MEMBER_EMAIL
    assert link.startswith(app.config["FRONTEND_URL"].rstrip("/") + "/reset-password?token=")
    record = services.tokens.find_password_reset_token(_token_from(link))
    assert record.user_id == member.id
    assert record.expires_at > utcnow() + timedelta(minutes=59)


def test_request_reset_for_unknown_email_is_silent(services, mailer):
    services.password_reset.request_reset("ghost@example.com")
    assert mailer.sent == []


def test_reset_password_changes_password_and_revokes_sessions(services, member, mailer):
    session = services.sessions.login(MEMBER_EMAIL, MEMBER_PASSWORD)
    services.password_reset.request_reset(MEMBER_EMAIL)
    token = _token_from(mailer.sent[0][1])

    assert services.password_reset.reset_password(token, NEW_PASSWORD) == RESET_SUCCESS_MESSAGE

    with pytest.raises(InvalidCredentials):
        services.sessions.login(MEMBER_EMAIL, MEMBER_PASSWORD)
    with pytest.raises(InvalidToken):
        services.sessions.refresh(session.refresh_token)
    assert services.users.find_by_id(member.id).revoked_at is not None


def test_reset_token_is_single_use(services, member, mailer):
    services.password_reset.request_reset(MEMBER_EMAIL)
    token = _token_from(mailer.sent[0][1])

    services.password_reset.reset_password(token, NEW_PASSWORD)
    with pytest.raises(InvalidOrExpiredResetToken) as exc:
        services.password_reset.reset_password(token, "yet-another-password")
    assert exc.value.status == 400
    assert exc.value.message == "Invalid or expired token"

    # the first new password stays in force
    services.sessions.login(MEMBER_EMAIL, NEW_PASSWORD)


def test_expired_reset_token_is_rejected_and_deleted(services, member):
    services.tokens.create_password_reset_token("stale-token-1234", member.id, utcnow() - timedelta(seconds=1))

    with pytest.raises(InvalidOrExpiredResetToken):
        services.password_reset.reset_password("stale-token-1234", NEW_PASSWORD)
    assert services.tokens.find_password_reset_token("stale-token-1234") is None
    services.sessions.login(MEMBER_EMAIL, MEMBER_PASSWORD)


def test_unknown_reset_token(services, member):
    with pytest.raises(InvalidOrExpiredResetToken):
        services.password_reset.reset_password("never-issued-token", NEW_PASSWORD)


def test_mail_delivery_failure_is_not_raised(services, member, mailer, caplog):
    mailer.result = False
    with caplog.at_level("WARNING", logger="services.password_reset"):
        services.password_reset.request_reset(MEMBER_EMAIL)
    assert "not delivered" in caplog.text

    # the token was stored before delivery was attempted
    token = _token_from(mailer.sent[0][1])
    assert services.tokens.find_password_reset_token(token) is not None


def test_mailer_exception_is_logged(services, member, mailer, caplog):
    mailer.exc = ConnectionRefusedError("smtp down")
    with caplog.at_level("ERROR", logger="services.password_reset"):
        services.password_reset.request_reset(MEMBER_EMAIL)
    assert "raised" in caplog.text
    assert MEMBER_EMAIL not in caplog.text


def test_reset_link_escapes_token(services):
    link = services.password_reset.reset_link("a b&c")
    assert link.endswith("/reset-password?token=a%20b%26c")


def test_reset_body_token_length_is_independent_of_password_rule():
    schema = ResetPasswordSchema()
    assert MIN_RESET_TOKEN_LENGTH == 8

    data = schema.load({"token": "x" * MIN_RESET_TOKEN_LENGTH, "password": NEW_PASSWORD})
    assert data["token"] == "x" * MIN_RESET_TOKEN_LENGTH
    with pytest.raises(ValidationError) as exc:
        schema.load({"token": "x" * (MIN_RESET_TOKEN_LENGTH - 1), "password": NEW_PASSWORD})
    assert set(exc.value.messages) == {"token"}
