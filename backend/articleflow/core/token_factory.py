"""Encode and verify HS256 access tokens.

Access tokens are issued by the identity provider (Supabase Auth) and signed
with the project's JWT secret; this module only needs to verify them.
``create_token`` mints tokens of the same shape for tests and local tooling.
"""

import base64
import hashlib
import hmac
import json
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional


@dataclass(frozen=True)
class TokenPayload:
    """Claims the API relies on."""
    sub: str
    role: str
    exp: datetime
    email: Optional[str] = None


def create_token(
    subject: str,
    secret: str,
    role: str = "authenticated",
    email: Optional[str] = None,
    audience: str = "authenticated",
    expires_hours: int = 1,
) -> str:
    """Create a signed HS256 token carrying the provider's standard claims."""
    now = time.time()
    payload = {
        "sub": subject,
        "role": role,
        "aud": audience,
        "iat": int(now),
        "exp": int(now + expires_hours * 3600),
    }
    if email:
        payload["email"] = email

    header = {"alg": "HS256", "typ": "JWT"}
    segments = [
        _b64encode(json.dumps(header).encode()),
        _b64encode(json.dumps(payload).encode()),
    ]
    signing_input = b".".join(segments)
    signature = hmac.new(secret.encode(), signing_input, hashlib.sha256).digest()
    segments.append(_b64encode(signature))
    return b".".join(segments).decode()


def decode_token(
    token: str,
    secret: str,
    algorithm: str = "HS256",
    audience: Optional[str] = None,
) -> Optional[TokenPayload]:
    """Verify a token and return its payload.

    Returns ``None`` on any failure (bad signature, expired, wrong audience,
    wrong algorithm, malformed) so callers decide how to treat absence.
    """
    if algorithm != "HS256":
        raise ValueError(f"Unsupported algorithm: {algorithm}")

    try:
        parts = token.encode().split(b".")
        if len(parts) != 3:
            return None

        header = json.loads(_b64decode(parts[0]))
        if header.get("alg") != "HS256":
            return None

        signing_input = parts[0] + b"." + parts[1]
        expected_sig = hmac.new(secret.encode(), signing_input, hashlib.sha256).digest()
        if not hmac.compare_digest(expected_sig, _b64decode(parts[2])):
            return None

        payload = json.loads(_b64decode(parts[1]))

        exp = payload.get("exp", 0)
        if time.time() > exp:
            return None

        if audience:
            aud = payload.get("aud")
            audiences = aud if isinstance(aud, list) else [aud]
            if audience not in audiences:
                return None

        sub = payload.get("sub")
        if not sub:
            return None

        return TokenPayload(
            sub=sub,
            role=payload.get("role", ""),
            exp=datetime.fromtimestamp(exp, tz=timezone.utc),
            email=payload.get("email"),
        )
    except (json.JSONDecodeError, KeyError, ValueError, TypeError, AttributeError, IndexError):
        return None


def _b64encode(data: bytes) -> bytes:
    return base64.urlsafe_b64encode(data).rstrip(b"=")


def _b64decode(data: bytes) -> bytes:
    padding = 4 - len(data) % 4
    if padding != 4:
        data += b"=" * padding
    return base64.urlsafe_b64decode(data)
