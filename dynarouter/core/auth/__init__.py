from .provider import AuthError, JwtVerifier, extract_bearer

__all__ = ["AuthError", "JwtVerifier", "extract_bearer"]
