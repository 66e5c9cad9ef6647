"""
Tests for inbound API key and JWT authentication.
"""
from jose import jwt

from superset_mcp.auth import headers_authenticated, verify_api_key, verify_jwt
from superset_mcp.config import settings


def make_token(secret=None, **claims):
    return jwt.encode(
        {"sub": "analyst", **claims},
        secret or settings.jwt_secret_key,
        algorithm=settings.jwt_algorithm,
    )


def test_api_key():
    assert verify_api_key(settings.api_keys_list[0]) is True
    assert verify_api_key("wrong-key") is False
    assert verify_api_key(None) is False


def test_verify_jwt_returns_payload():
    payload = verify_jwt(make_token(team="data"))

    assert payload["sub"] == "analyst"
    assert payload["team"] == "data"


def test_verify_jwt_rejects_other_secret():
    assert verify_jwt(make_token(secret="another-secret")) is None


def test_verify_jwt_rejects_garbage():
    assert verify_jwt("not-a-token") is None


def test_headers_with_api_key():
    assert headers_authenticated({"x-api-key": settings.api_keys_list[0]}) is True


def test_headers_with_bearer_token():
    assert headers_authenticated({"authorization": f"Bearer {make_token()}"}) is True
    assert headers_authenticated({"authorization": f"bearer {make_token()}"}) is True


def test_headers_rejected():
    assert headers_authenticated({}) is False
    assert headers_authenticated({"x-api-key": "wrong-key"}) is False
    assert headers_authenticated({"authorization": "Basic dXNlcjpwYXNz"}) is False
    assert headers_authenticated({"authorization": f"Bearer {make_token(secret='x')}"}) is False
