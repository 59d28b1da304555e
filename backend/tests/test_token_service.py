"""
Session token tests.

Verifies:
- Issued tokens round-trip to the user id and claims
- Expired tokens are reported as expired, everything else as invalid
- The gate answers 401 with the matching reason
"""

from datetime import datetime, timedelta, timezone

import jwt
import pytest
from flask_jwt_extended import create_access_token, create_refresh_token

from stockroom.errors import TokenExpired, TokenInvalid
from stockroom.services import token_service

from conftest import auth_headers


class TestVerifyToken:

    def test_issued_token_verifies(self, owner):
        token = token_service.issue_token(owner)
        claims = token_service.verify_token(token)

        assert claims.user_id == owner.id
        assert claims.email == "owner@example.com"
        assert claims.account_type == "admin"
        assert claims.expires_at is not None

    def test_expired_token(self, owner):
        token = create_access_token(identity=str(owner.id), expires_delta=timedelta(seconds=-5))
        with pytest.raises(TokenExpired):
            token_service.verify_token(token)

    def test_foreign_signature_is_invalid(self, owner):
        token = jwt.encode(
            {
                "sub": str(owner.id),
                "type": "access",
                "exp": datetime.now(timezone.utc) + timedelta(hours=1),
            },
            "some-other-signing-key-that-is-long-enough",
            algorithm="HS256",
        )
        with pytest.raises(TokenInvalid):
            token_service.verify_token(token)

    @pytest.mark.parametrize("token", ["", "garbage", "a.b.c"])
    def test_malformed_token_is_invalid(self, token):
        with pytest.raises(TokenInvalid):
            token_service.verify_token(token)

    def test_refresh_token_rejected(self, owner):
        token = create_refresh_token(identity=str(owner.id))
        with pytest.raises(TokenInvalid):
            token_service.verify_token(token)

    def test_non_numeric_subject_is_invalid(self):
        token = create_access_token(identity="not-a-number")
        with pytest.raises(TokenInvalid):
            token_service.verify_token(token)


class TestExtractBearer:

    @pytest.mark.parametrize(
        "header,expected",
        [
            (None, None),
            ("", None),
            ("Basic abc", None),
            ("Bearer ", None),
            ("Bearer abc.def", "abc.def"),
        ],
    )
    def test_extract(self, header, expected):
        assert token_service.extract_bearer_token(header) == expected


class TestGateTokenDiagnostics:

    def test_expired_reason(self, client, owner, store):
        token = create_access_token(identity=str(owner.id), expires_delta=timedelta(seconds=-5))
        resp = client.get("/api/products", headers=auth_headers(token, store.id))

        assert resp.status_code == 401
        assert resp.get_json()["reason"] == "expired"

    def test_invalid_reason(self, client, store):
        resp = client.get("/api/products", headers=auth_headers("not-a-token", store.id))

        assert resp.status_code == 401
        assert resp.get_json()["reason"] == "invalid"

    def test_deleted_user_token(self, client, make_user, db_session):
        user = make_user(name="Ghost", email="ghost@example.com")
        token = token_service.issue_token(user)
        db_session.delete(user)
        db_session.commit()

        resp = client.get("/api/auth/me", headers=auth_headers(token))
        assert resp.status_code == 401
