import json
import logging

from fastapi import HTTPException
import pytest

from app.config import load_settings
from app.logging_utils import JsonFormatter
from app.security import create_access_token, decode_token, get_bearer_token, hash_password, verify_password

SETTINGS = load_settings({"ENV": "test", "SECRET_KEY": "test-secret-with-adequate-length-123456"})


def test_token_round_trip():
    token = create_access_token(SETTINGS, 7, "admin")

    auth = decode_token(SETTINGS, token)

    assert auth.user_id == 7
    assert auth.login == "admin"


def test_expired_token_is_rejected():
    expired = load_settings({"ENV": "test", "SECRET_KEY": SETTINGS.secret_key, "JWT_EXP_MINUTES": "-1"})
    token = create_access_token(expired, 7, "admin")

    with pytest.raises(HTTPException) as exc_info:
        decode_token(SETTINGS, token)
    assert exc_info.value.detail == "Token expired"


def test_token_signed_with_other_key_is_rejected():
    other = load_settings({"ENV": "test", "SECRET_KEY": "another-secret-with-adequate-length-987"})
    token = create_access_token(other, 7, "admin")

    with pytest.raises(HTTPException) as exc_info:
        decode_token(SETTINGS, token)
    assert exc_info.value.status_code == 401


@pytest.mark.parametrize("header", [None, "", "Token abc", "Bearer"])
def test_malformed_authorization_header(header):
    with pytest.raises(HTTPException) as exc_info:
        get_bearer_token(header)
    assert exc_info.value.status_code == 401


def test_password_hash_verifies_and_rejects_plain_text():
    hashed = hash_password("changeme")

    assert hashed.startswith("$argon2")
    assert verify_password("changeme", hashed)
    # A legacy row holding the plain credential never matches.
    assert not verify_password("changeme", "changeme")


def test_json_formatter_carries_bootstrap_fields():
    record = logging.LogRecord("challenge.seed", logging.INFO, __file__, 1, "seeded %s", ("admin",), None)
    record.phase = "seed"
    record.login = "admin"

    payload = json.loads(JsonFormatter().format(record))

    assert payload["msg"] == "seeded admin"
    assert payload["phase"] == "seed"
    assert payload["login"] == "admin"
    assert payload["logger"] == "challenge.seed"
