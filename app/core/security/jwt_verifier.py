from __future__ import annotations

from typing import Any

import jwt


class AuthTokenValidationError(Exception):
    """Raised when an access token cannot be trusted."""


class JWTVerifier:
    """
    Verifies access tokens issued by the auth service.
    Tokens are HMAC-signed with a shared secret; audience / issuer checks are
    applied only when configured.
    """

    def __init__(
        self,
        *,
        secret: str,
        algorithms: list[str],
        audience: str | None = None,
        issuer: str | None = None,
        leeway_sec: int = 0,
    ) -> None:
        self.secret = secret
        self.algorithms = algorithms or ["HS256"]
        self.audience = (audience or "").strip() or None
        self.issuer = (issuer or "").strip() or None
        self.leeway_sec = max(0, int(leeway_sec))

    def verify(self, token: str) -> dict[str, Any]:
        if not self.secret:
            raise AuthTokenValidationError("JWT verification is not configured.")
        options = {"require": ["exp"], "verify_aud": self.audience is not None}
        try:
            claims = jwt.decode(
                token,
                key=self.secret,
                algorithms=self.algorithms,
                audience=self.audience,
                issuer=self.issuer,
                leeway=self.leeway_sec,
                options=options,
            )
        except jwt.ExpiredSignatureError as exc:
            raise AuthTokenValidationError("Access token has expired.") from exc
        except jwt.InvalidTokenError as exc:
            raise AuthTokenValidationError(f"Invalid access token: {exc}") from exc
        if not isinstance(claims, dict):
            raise AuthTokenValidationError("Invalid access token payload.")
        return claims
