# Overview: Service-layer operations for session tokens; issue and verify signed JWTs.

"""
Session Token Service

WHY: Every request must be attributable to an identity without a server-side
session table. Tokens are signed JWTs (Flask-JWT-Extended over PyJWT) carrying
the user id and a couple of non-sensitive claims; expiry comes from
JWT_ACCESS_TOKEN_EXPIRES (7 days by default).

SECURITY NOTES:
- Stateless: no revocation list. Sign-out is a client-side token discard.
- Verification distinguishes expired tokens from otherwise invalid ones so the
  gate can report accurate diagnostics (reason: expired | invalid).
- Claims never include the password hash or store roles; roles are always
  re-read from the membership index on each request.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone

import jwt
from flask_jwt_extended import create_access_token, decode_token
from flask_jwt_extended.exceptions import JWTExtendedException

from ..errors import TokenExpired, TokenInvalid
from ..models import User


@dataclass(frozen=True)
class TokenClaims:
    user_id: int
    email: str | None
    account_type: str | None
    expires_at: datetime | None


def issue_token(user: User) -> str:
    """Issue a signed access token for `user`."""
    return create_access_token(
        identity=str(user.id),
        additional_claims={
            "email": user.email,
            "account_type": user.account_type,
        },
    )


def verify_token(token: str) -> TokenClaims:
    """
    Verify signature and expiry.

    Raises:
        TokenExpired: signature valid but the token is past its expiry
        TokenInvalid: malformed, wrong key, wrong token type, bad subject
    """
    if not token or not isinstance(token, str):
        raise TokenInvalid()

    try:
        claims = decode_token(token)
    except jwt.ExpiredSignatureError:
        raise TokenExpired()
    except (jwt.InvalidTokenError, JWTExtendedException):
        raise TokenInvalid()

    if claims.get("type") != "access":
        raise TokenInvalid()

    try:
        user_id = int(claims["sub"])
    except (KeyError, TypeError, ValueError):
        raise TokenInvalid()

    exp = claims.get("exp")
    expires_at = (
        datetime.fromtimestamp(exp, tz=timezone.utc).replace(tzinfo=None)
        if isinstance(exp, (int, float)) else None
    )

    return TokenClaims(
        user_id=user_id,
        email=claims.get("email"),
        account_type=claims.get("account_type"),
        expires_at=expires_at,
    )


def extract_bearer_token(auth_header: str | None) -> str | None:
    """Return the token from an 'Authorization: Bearer <token>' header, if any."""
    if not auth_header or not auth_header.startswith("Bearer "):
        return None
    token = auth_header.split(" ", 1)[1].strip()
    return token or None
