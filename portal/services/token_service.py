"""Bearer credential verification (ES256 JWT).

Tokens are issued by the external auth provider. This module only needs
its public key to verify them; the HTTP dependencies and the realtime
gateway share the same verifier so both accept exactly the same tokens.

Claims: sub, role, iss, aud, exp, iat, jti.
"""

from __future__ import annotations

import logging
import uuid
from datetime import UTC, datetime, timedelta
from pathlib import Path
from typing import Protocol

import jwt
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ec

from portal.core.config import SETTINGS
from portal.models.principal import Principal
from portal.models.user import Role
from portal.services.errors import AuthenticationError

logger = logging.getLogger(__name__)

ALGORITHM = "ES256"
ACCESS_TOKEN_TTL_MIN = 15

# ---------------------------------------------------------------------------
# Key management
# ---------------------------------------------------------------------------
# Production: the provider's public key is loaded from JWT_PUBLIC_KEY_PATH
# and this process cannot mint tokens.
# Dev/test: an ephemeral key pair is generated on import so local tools and
# the test suite can mint tokens the verifier accepts.

_private_key: ec.EllipticCurvePrivateKey | None
_public_key: ec.EllipticCurvePublicKey

if SETTINGS.jwt_public_key_path:
    _loaded = serialization.load_pem_public_key(
        Path(SETTINGS.jwt_public_key_path).read_bytes()
    )
    if not isinstance(_loaded, ec.EllipticCurvePublicKey):
        raise ValueError("JWT_PUBLIC_KEY_PATH must contain an EC public key")
    _private_key = None
    _public_key = _loaded
else:
    _private_key = ec.generate_private_key(ec.SECP256R1())
    _public_key = _private_key.public_key()


def create_access_token(*, sub: str, role: Role | str) -> str:
    """Sign an access token with the local dev key.

    Only available when no external public key is configured.
    """
    if _private_key is None:
        raise RuntimeError("token minting is disabled when JWT_PUBLIC_KEY_PATH is set")
    now = datetime.now(UTC)
    payload = {
        "sub": sub,
        "role": str(Role(role)),
        "iss": SETTINGS.jwt_issuer,
        "aud": SETTINGS.jwt_audience,
        "exp": now + timedelta(minutes=ACCESS_TOKEN_TTL_MIN),
        "iat": now,
        "jti": str(uuid.uuid4()),
    }
    return jwt.encode(payload, _private_key, algorithm=ALGORITHM)


def decode_access_token(token: str) -> dict:
    """Verify signature and claims, return the payload.

    Pins the algorithm to ES256 to prevent alg:none and alg-switching.

    Raises jwt.ExpiredSignatureError, jwt.InvalidTokenError on failure.
    """
    return jwt.decode(
        token,
        _public_key,
        algorithms=[ALGORITHM],
        issuer=SETTINGS.jwt_issuer,
        audience=SETTINGS.jwt_audience,
        options={"require": ["sub", "role", "exp", "iat", "jti"]},
    )


# ---------------------------------------------------------------------------
# Verifier
# ---------------------------------------------------------------------------


class CredentialVerifier(Protocol):
    def verify(self, token: str) -> Principal: ...


class JwtCredentialVerifier:
    """Turn a raw bearer token into a Principal or raise AuthenticationError."""

    def verify(self, token: str) -> Principal:
        try:
            claims = decode_access_token(token)
        except jwt.ExpiredSignatureError:
            raise AuthenticationError("Token expired") from None
        except jwt.InvalidTokenError as e:
            logger.debug("Token rejected: %s", e)
            raise AuthenticationError("Invalid token") from None

        try:
            role = Role(claims["role"])
        except ValueError:
            raise AuthenticationError("Invalid token") from None

        return Principal(user_id=str(claims["sub"]), role=role)


credential_verifier: CredentialVerifier = JwtCredentialVerifier()
