from __future__ import annotations

from functools import lru_cache
import logging

from fastapi import Depends, HTTPException, Request

from app.core.config import settings
from app.core.security.jwt_verifier import AuthTokenValidationError, JWTVerifier
from app.schemas.request_identity import RequestIdentity

logger = logging.getLogger(__name__)


def _normalized_auth_mode() -> str:
    raw = (settings.AUTH_MODE or "legacy_header").strip().lower()
    if raw in {"legacy_header", "dual", "jwt_only"}:
        return raw
    return "legacy_header"


@lru_cache(maxsize=1)
def _get_verifier() -> JWTVerifier:
    algorithms = [
        token.strip().upper()
        for token in (settings.AUTH_JWT_ALGORITHMS or "HS256").split(",")
        if token.strip()
    ]
    return JWTVerifier(
        secret=settings.AUTH_JWT_SECRET,
        algorithms=algorithms or ["HS256"],
        audience=settings.AUTH_JWT_AUDIENCE,
        issuer=settings.AUTH_JWT_ISSUER,
        leeway_sec=settings.AUTH_JWT_CLOCK_SKEW_SEC,
    )


def _extract_bearer_token(request: Request) -> str | None:
    header = request.headers.get("Authorization") or ""
    prefix = "Bearer "
    if header.startswith(prefix):
        token = header[len(prefix) :].strip()
        return token or None
    # Browser clients of the auth service carry the token in a cookie.
    cookie = (request.cookies.get("accessToken") or "").strip()
    return cookie or None


def _split_roles(value) -> list[str]:
    if value is None:
        return []
    if isinstance(value, (list, tuple, set)):
        items = [str(v) for v in value]
    else:
        items = str(value).split(",")
    return [item.strip().lower() for item in items if item.strip()]


def _identity_from_legacy_header(request: Request) -> RequestIdentity:
    email = (request.headers.get("X-User-Email") or request.headers.get("X-User") or "").strip().lower()
    if not email:
        return RequestIdentity()
    return RequestIdentity(
        subject=None,
        email=email,
        auth_source="legacy_header",
        claims={},
        role_names=_split_roles(request.headers.get("X-User-Role")),
    )


def _extract_email_from_claims(claims: dict) -> str | None:
    for key in ("email", "upn", "preferred_username", "username", "userId"):
        value = claims.get(key)
        if value is None:
            continue
        text = str(value).strip().lower()
        if text:
            return text
    return None


def _identity_from_token(token: str) -> RequestIdentity:
    try:
        claims = _get_verifier().verify(token)
    except AuthTokenValidationError as exc:
        raise HTTPException(status_code=401, detail=str(exc)) from exc

    subject = claims.get("sub") or claims.get("id")
    subject_text = str(subject).strip() if subject is not None else None
    email = _extract_email_from_claims(claims)
    if not email:
        logger.warning(
            "jwt_identity_email_missing subject=%s claim_keys=%s",
            subject_text or "-",
            sorted(str(k) for k in claims.keys()),
        )
    return RequestIdentity(
        subject=subject_text or None,
        email=email,
        auth_source="jwt",
        claims=claims,
        role_names=_split_roles(claims.get("roles") or claims.get("role")),
    )


def resolve_request_identity(request: Request) -> RequestIdentity:
    token = _extract_bearer_token(request)
    mode = _normalized_auth_mode()
    if mode == "legacy_header":
        return _identity_from_legacy_header(request)

    if mode == "jwt_only":
        if not token:
            raise HTTPException(status_code=401, detail="Missing Bearer access token.")
        return _identity_from_token(token)

    # dual mode: prefer JWT when present, otherwise fallback to legacy header.
    if token:
        return _identity_from_token(token)
    return _identity_from_legacy_header(request)


def get_request_identity(request: Request) -> RequestIdentity:
    return resolve_request_identity(request)


def require_authenticated_identity(
    identity: RequestIdentity = Depends(get_request_identity),
) -> RequestIdentity:
    if not identity.is_authenticated:
        raise HTTPException(status_code=401, detail="Authentication required.")
    return identity


def require_admin_identity(
    identity: RequestIdentity = Depends(require_authenticated_identity),
) -> RequestIdentity:
    if not identity.has_role("admin"):
        raise HTTPException(status_code=403, detail="Access denied. Admin role required.")
    return identity
