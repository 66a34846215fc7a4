"""JWT access token validation."""

from dataclasses import dataclass
from typing import Any

import jwt

from insurcheck.exceptions import TokenExpiredError, TokenInvalidError


@dataclass
class TokenPayload:
    """Decoded JWT token payload."""

    user_id: str
    tenant_id: str | None
    email: str | None
    role: str | None
    issued_at: int
    expires_at: int
    raw: dict[str, Any]  # Full payload for custom claims


def decode_token(
    token: str,
    secret: str,
    algorithm: str = "HS256",
    issuer: str | None = None,
    verify_exp: bool = True,
) -> TokenPayload:
    """Decode and validate a signed access token.

    Accepts both ``userId``/``tenantId`` claims and the registered ``sub``
    claim with ``tid``.

    Args:
        token: The encoded JWT token
        secret: Signing secret
        algorithm: Signing algorithm
        issuer: Expected issuer (optional)
        verify_exp: Whether to verify expiration

    Returns:
        Decoded token payload

    Raises:
        TokenExpiredError: If the token has expired
        TokenInvalidError: If the token is invalid
    """
    try:
        payload = jwt.decode(
            token,
            secret,
            algorithms=[algorithm],
            options={"verify_exp": verify_exp},
            issuer=issuer,
        )
    except jwt.ExpiredSignatureError as e:
        raise TokenExpiredError("Token has expired") from e
    except jwt.InvalidTokenError as e:
        raise TokenInvalidError(f"Invalid token: {e}") from e

    user_id = payload.get("userId") or payload.get("sub")
    if not user_id:
        raise TokenInvalidError("Invalid token: missing subject")

    tenant_id = payload.get("tenantId", payload.get("tid"))

    return TokenPayload(
        user_id=str(user_id),
        tenant_id=str(tenant_id) if tenant_id is not None else None,
        email=payload.get("email"),
        role=payload.get("role"),
        issued_at=payload.get("iat", 0),
        expires_at=payload.get("exp", 0),
        raw=payload,
    )
