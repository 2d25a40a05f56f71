"""JWT access token validation (ES256).

Tokens are issued by the platform's auth provider; this service only
needs to verify them and read the ``sub`` claim as the learner id.

With JWT_PUBLIC_KEY_FILE set, tokens are verified against the
provider's PEM public key and nothing can be minted here.  Without it
(dev/test) an ephemeral key pair is generated on import and
create_access_token signs with it.
"""

from __future__ import annotations

import uuid
from datetime import UTC, datetime, timedelta
from pathlib import Path

import jwt
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ec

from learnhub.core.config import SETTINGS

ALGORITHM = "ES256"
ISSUER = SETTINGS.jwt_issuer
AUDIENCE = SETTINGS.jwt_audience
ACCESS_TOKEN_TTL_MIN = 15


def load_public_key(path: str | Path) -> ec.EllipticCurvePublicKey:
    """Read the provider's PEM-encoded P-256 public key."""
    key = serialization.load_pem_public_key(Path(path).read_bytes())
    if not isinstance(key, ec.EllipticCurvePublicKey):
        raise ValueError(f"{path} is not an EC public key")
    return key


_private_key: ec.EllipticCurvePrivateKey | None
if SETTINGS.jwt_public_key_file:
    _private_key = None
    _public_key = load_public_key(SETTINGS.jwt_public_key_file)
else:
    _private_key = ec.generate_private_key(ec.SECP256R1())
    _public_key = _private_key.public_key()


def create_access_token(
    *,
    sub: str,
    roles: list[str] | None = None,
    ttl: timedelta = timedelta(minutes=ACCESS_TOKEN_TTL_MIN),
) -> str:
    if _private_key is None:
        raise RuntimeError("access tokens are issued by the auth provider")
    now = datetime.now(UTC)
    payload = {
        "sub": sub,
        "iss": ISSUER,
        "aud": AUDIENCE,
        "exp": now + ttl,
        "iat": now,
        "jti": str(uuid.uuid4()),
        "roles": roles or ["learner"],
    }
    return jwt.encode(payload, _private_key, algorithm=ALGORITHM)


def decode_access_token(token: str) -> dict:
    """Verify signature and claims, return the payload.

    Pins the algorithm to ES256 and validates exp, iss and aud.
    Raises jwt.ExpiredSignatureError, jwt.InvalidTokenError on failure.
    """
    return jwt.decode(
        token,
        _public_key,
        algorithms=[ALGORITHM],
        issuer=ISSUER,
        audience=AUDIENCE,
        options={"require": ["sub", "exp", "iat", "jti"]},
    )
