"""Tests for bearer token issue/verify."""
from datetime import timedelta

import jwt
import pytest

from app.auth.schemas import UserRole
from app.auth.service import TokenService, extract_bearer
from app.errors import AuthRejected


SECRET = "unit-secret"


@pytest.fixture
def tokens() -> TokenService:
    return TokenService(secret_key=SECRET, expire_minutes=5)


class TestTokenService:
    """Tests for TokenService."""

    def test_round_trip_claims(self, tokens, make_principal):
        token = tokens.issue(make_principal("alice", "Alice", UserRole.SUPERVISOR))

        user = tokens.verify(token)

        assert user.id == "alice"
        assert user.name == "Alice"
        assert user.role == UserRole.SUPERVISOR
        assert user.email == "alice@example.com"

    def test_subject_claim_is_user_id(self, tokens, make_principal):
        token = tokens.issue(make_principal("alice"))

        claims = jwt.decode(token, SECRET, algorithms=["HS256"])

        assert claims["sub"] == "alice"
        assert claims["id"] == "alice"

    def test_missing_token(self, tokens):
        with pytest.raises(AuthRejected) as exc_info:
            tokens.verify(None)
        assert exc_info.value.message == "Auth error (No token provided)"

    def test_expired_token(self, tokens, make_principal):
        token = tokens.issue(make_principal("alice"), expires_in=timedelta(seconds=-10))

        with pytest.raises(AuthRejected) as exc_info:
            tokens.verify(token)
        assert exc_info.value.message == "Auth error (Token expired)"

    def test_wrong_secret(self, tokens, make_principal):
        forged = TokenService(secret_key="other-secret").issue(make_principal("alice"))

        with pytest.raises(AuthRejected) as exc_info:
            tokens.verify(forged)
        assert exc_info.value.message == "Auth error (Invalid token)"
        assert exc_info.value.status_code == 401

    def test_garbage_token(self, tokens):
        with pytest.raises(AuthRejected):
            tokens.verify("definitely.not.a-jwt")

    def test_token_without_expiry_rejected(self, tokens):
        token = jwt.encode({"id": "alice", "name": "Alice"}, SECRET, algorithm="HS256")

        with pytest.raises(AuthRejected):
            tokens.verify(token)

    def test_token_without_id_rejected(self, tokens):
        token = jwt.encode({"name": "Alice", "exp": 4102444800}, SECRET, algorithm="HS256")

        with pytest.raises(AuthRejected):
            tokens.verify(token)

    def test_unknown_role_rejected(self, tokens):
        token = jwt.encode(
            {"id": "alice", "role": "owner", "exp": 4102444800},
            SECRET,
            algorithm="HS256",
        )

        with pytest.raises(AuthRejected):
            tokens.verify(token)


class TestExtractBearer:
    """Tests for the Authorization header parser."""

    def test_extracts_token(self):
        assert extract_bearer("Bearer abc.def") == "abc.def"

    def test_other_schemes_ignored(self):
        assert extract_bearer("Basic abc") is None

    def test_missing_or_empty(self):
        assert extract_bearer(None) is None
        assert extract_bearer("Bearer   ") is None
