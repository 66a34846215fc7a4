"""Bearer token validation."""

from insurcheck.auth.tokens import TokenPayload, decode_token

__all__ = ["TokenPayload", "decode_token"]
