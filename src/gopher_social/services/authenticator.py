"""Bearer token issuing and validation.

Tokens are HS256 JWTs carrying ``sub`` (the user id as a string), ``iat``,
``nbf``, ``exp``, ``iss`` and ``aud``. Validation is strict: no leeway, every
one of those claims is required and no other registered claim is accepted.
"""

from __future__ import annotations

import time
from collections.abc import Mapping
from typing import Any

from jose import JWTError, jwt

from gopher_social.core.settings import settings

ALGORITHM = "HS256"
REQUIRED_CLAIMS = ("sub", "iat", "nbf", "exp", "iss", "aud")
# Registered claim names outside REQUIRED_CLAIMS
_UNEXPECTED_CLAIMS = ("jti",)


class TokenError(ValueError):
    """The token is malformed, forged, expired or carries unexpected claims."""


class JWTAuthenticator:
    """Sign and verify bearer tokens with a shared secret."""

    def __init__(self, secret: str, audience: str, issuer: str) -> None:
        self.secret = secret
        self.audience = audience
        self.issuer = issuer

    def generate_token(self, claims: Mapping[str, Any]) -> str:
        """Sign ``claims`` as given."""
        encoded: str = jwt.encode(dict(claims), self.secret, algorithm=ALGORITHM)
        return encoded

    def validate_token(self, token: str) -> dict[str, Any]:
        """Return the verified claims of ``token``.

        Raises:
            TokenError: If the signature, algorithm, audience, issuer or any
                time-based claim does not check out.
        """
        try:
            claims: dict[str, Any] = jwt.decode(
                token,
                self.secret,
                algorithms=[ALGORITHM],
                audience=self.audience,
                issuer=self.issuer,
                options={
                    "leeway": 0,
                    **{f"require_{claim}": True for claim in REQUIRED_CLAIMS},
                },
            )
        except JWTError as err:
            raise TokenError(str(err)) from err

        for claim in _UNEXPECTED_CLAIMS:
            if claim in claims:
                raise TokenError(f"unexpected claim {claim!r}")

        # jose only checks that iat is numeric.
        issued_at = claims["iat"]
        if not isinstance(issued_at, (int, float)) or issued_at > time.time():
            raise TokenError("token used before issued")
        return claims

    def issue_user_token(self, user_id: int, expires_in: int | None = None) -> str:
        """Build and sign the standard claim set for ``user_id``."""
        now = int(time.time())
        ttl = settings.jwt_expiry_seconds if expires_in is None else expires_in
        return self.generate_token(
            {
                "sub": str(user_id),
                "exp": now + ttl,
                "iat": now,
                "nbf": now,
                "iss": self.issuer,
                "aud": self.audience,
            }
        )


def subject_user_id(claims: Mapping[str, Any]) -> int:
    """Parse the ``sub`` claim back into a user id.

    Raises:
        TokenError: If the subject is not a base-10 integer.
    """
    try:
        return int(str(claims["sub"]), 10)
    except (KeyError, ValueError) as err:
        raise TokenError("invalid token subject") from err


_authenticator = JWTAuthenticator(settings.jwt_secret, settings.jwt_issuer, settings.jwt_issuer)


def get_authenticator() -> JWTAuthenticator:
    """Return the process-wide authenticator."""
    return _authenticator
