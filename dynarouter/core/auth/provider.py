from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import jwt

from dynarouter.core.settings import load_settings


class AuthError(Exception):
    pass


@dataclass(frozen=True)
class JwtConfig:
    signing_key: str
    algorithms: List[str]
    leeway_seconds: int = 30


def extract_bearer(headers) -> str:
    auth_header = headers.get("authorization") or headers.get("Authorization")
    if not auth_header:
        raise AuthError("Authentication required")
    if not auth_header.startswith("Bearer "):
        raise AuthError("Invalid authorization header")
    return auth_header.replace("Bearer ", "", 1).strip()


class JwtVerifier:
    """
    Verifies HS-signed bearer tokens against one operation's key.

    Expiry and not-before are checked; issuer and audience are not.
    """

    def __init__(self, key: str, algorithms: Optional[List[str]] = None, leeway_seconds: Optional[int] = None):
        settings = load_settings()
        self.cfg = JwtConfig(
            signing_key=key,
            algorithms=list(algorithms or settings.jwt_algorithms),
            leeway_seconds=settings.jwt_leeway_seconds if leeway_seconds is None else leeway_seconds,
        )

    def verify(self, token: str) -> Dict[str, Any]:
        options = {
            "verify_signature": True,
            "verify_exp": True,
            "verify_iat": False,
            "verify_nbf": True,
            "verify_iss": False,
            "verify_aud": False,
        }
        try:
            return jwt.decode(
                token,
                self.cfg.signing_key,
                algorithms=self.cfg.algorithms,
                options=options,
                leeway=self.cfg.leeway_seconds,
            )
        except jwt.PyJWTError as e:
            raise AuthError("Invalid bearer token") from e

    def authenticate(self, headers) -> Dict[str, Any]:
        return self.verify(extract_bearer(headers))
