from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from fastapi import Request

from dynarouter.core.auth.provider import AuthError, JwtVerifier
from dynarouter.core.errors import AuthenticationError
from dynarouter.core.options import AuthDescriptor

log = logging.getLogger("dynarouter.auth")


class BearerGate:
    """
    Authentication boundary for one operation.

    No key: every request passes without claims. Required key: a missing or
    invalid token is rejected with 401. Optional key: such requests pass
    without claims.
    """

    def __init__(self, descriptor: AuthDescriptor, operation: str = ""):
        self.descriptor = descriptor
        self.operation = operation
        self.verifier = JwtVerifier(descriptor.key) if descriptor.enabled else None

    def authenticate(self, request: Request) -> Optional[Dict[str, Any]]:
        if self.verifier is None:
            return None
        try:
            claims = self.verifier.authenticate(request.headers)
        except AuthError as e:
            if self.descriptor.is_optional:
                log.debug("authn passthrough operation=%s path=%s reason=%s", self.operation, request.url.path, str(e))
                return None
            log.info("authn deny operation=%s path=%s reason=%s", self.operation, request.url.path, str(e))
            raise AuthenticationError(str(e)) from e
        request.state.user = claims
        return claims
