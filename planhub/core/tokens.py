"""
Access token verification.

Handles:
- Credential extraction (Authorization bearer header, then access cookie)
- JWT signature/expiry/issuer/audience validation via PyJWT
- Identity extraction from the 'sub' claim (legacy 'userId' accepted)

Testing:
- Use issue_access_token() to mint tokens signed with the configured secret
"""
import time
from dataclasses import dataclass
from typing import Any, Dict, Optional

import jwt
from starlette.requests import Request

from planhub.core.config import Settings, settings
from planhub.core.errors import UnauthenticatedError


@dataclass(frozen=True)
class Identity:
    """The authenticated caller, valid for one invocation."""
    user_id: str


def extract_credentials(request: Request, cookie_name: Optional[str] = None) -> Optional[str]:
    """Return the raw bearer token carried by the request, if any."""
    auth_header = request.headers.get("Authorization", "")
    if auth_header.startswith("Bearer "):
        token = auth_header[7:].strip()
        if token:
            return token
    return request.cookies.get(cookie_name or settings.ACCESS_TOKEN_COOKIE) or None


class TokenVerifier:
    """Stateless verifier turning a credential into an Identity.

    Every failure (missing, malformed, expired, bad signature, wrong
    issuer/audience, no subject) raises UnauthenticatedError.
    """

    def __init__(
        self,
        secret: Optional[str],
        algorithm: str = "HS256",
        issuer: Optional[str] = None,
        audience: Optional[str] = None,
    ):
        self.secret = secret
        self.algorithm = algorithm
        self.issuer = issuer
        self.audience = audience

    @classmethod
    def from_settings(cls, cfg: Optional[Settings] = None) -> "TokenVerifier":
        cfg = cfg or settings
        return cls(
            secret=cfg.JWT_SECRET_KEY,
            algorithm=cfg.JWT_ALGORITHM,
            issuer=cfg.JWT_ISSUER,
            audience=cfg.JWT_AUDIENCE,
        )

    def decode(self, token: str) -> Dict[str, Any]:
        if not self.secret:
            raise UnauthenticatedError("Token verification is not configured")
        try:
            return jwt.decode(
                token,
                self.secret,
                algorithms=[self.algorithm],
                audience=self.audience,
                issuer=self.issuer,
                options={
                    "require": ["exp"],
                    "verify_signature": True,
                    "verify_exp": True,
                    "verify_aud": self.audience is not None,
                    "verify_iss": self.issuer is not None,
                },
            )
        except jwt.ExpiredSignatureError:
            raise UnauthenticatedError("Token expired")
        except jwt.PyJWTError:
            raise UnauthenticatedError("Invalid token")

    def verify(self, credentials: Optional[str]) -> Identity:
        if not credentials:
            raise UnauthenticatedError("Missing credentials")

        claims = self.decode(credentials)
        user_id = claims.get("sub") or claims.get("userId")
        if user_id is None or str(user_id) == "":
            raise UnauthenticatedError("Token has no subject")
        return Identity(user_id=str(user_id))


def issue_access_token(
    user_id: str,
    *,
    exp_minutes: Optional[int] = None,
    secret: Optional[str] = None,
    algorithm: Optional[str] = None,
    issuer: Optional[str] = None,
    audience: Optional[str] = None,
) -> str:
    """
    Sign an access token for user_id using the configured settings.

    Args:
        user_id: Subject of the token
        exp_minutes: Lifetime in minutes (negative values mint expired tokens)
        secret: Signing key override (defaults to JWT_SECRET_KEY)
        algorithm: Algorithm override (defaults to JWT_ALGORITHM)
        issuer: Optional 'iss' claim (defaults to JWT_ISSUER)
        audience: Optional 'aud' claim (defaults to JWT_AUDIENCE)

    Returns:
        Encoded JWT string
    """
    key = secret or settings.JWT_SECRET_KEY
    if not key:
        raise RuntimeError("JWT_SECRET_KEY must be configured to issue tokens")

    ttl = settings.ACCESS_TOKEN_TTL_MINUTES if exp_minutes is None else exp_minutes
    now = int(time.time())
    payload: Dict[str, Any] = {
        "sub": str(user_id),
        "iat": now,
        "exp": now + ttl * 60,
    }
    iss = issuer or settings.JWT_ISSUER
    aud = audience or settings.JWT_AUDIENCE
    if iss:
        payload["iss"] = iss
    if aud:
        payload["aud"] = aud
    return jwt.encode(payload, key, algorithm=algorithm or settings.JWT_ALGORITHM)
