from typing import Optional, Protocol

from fastapi import HTTPException, Request, status
from jose import jwt

from smartbills.core.config import Settings


class IdentityVerifier(Protocol):
    def verify(self, request: Request) -> str:
        """Return the verified caller email or raise HTTPException(401)."""
        ...


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=detail)


def _bearer_token(request: Request) -> Optional[str]:
    authorization = request.headers.get("authorization")
    if authorization and authorization.startswith("Bearer "):
        return authorization.split(" ", 1)[1].strip()
    return None


class JWTIdentityVerifier:
    """Reads the caller's email from a signed bearer token (``email`` or ``sub``)."""

    def __init__(self, secret_key: str, algorithm: str = "HS256"):
        self.secret_key = secret_key
        self.algorithm = algorithm

    def verify(self, request: Request) -> str:
        token = _bearer_token(request)
        if not token:
            raise _unauthorized("Missing bearer token")
        try:
            payload = jwt.decode(token, self.secret_key, algorithms=[self.algorithm])
        except jwt.JWTError:
            raise _unauthorized("Could not validate credentials")
        email = payload.get("email") or payload.get("sub")
        if not email or "@" not in str(email):
            raise _unauthorized("Token carries no email identity")
        return str(email)


class ApiKeyIdentityVerifier:
    """Trusted service callers: a valid API key vouches for ``X-User-Email``."""

    def __init__(self, valid_keys):
        self.valid_keys = set(valid_keys or [])

    def verify(self, request: Request) -> str:
        api_key = request.headers.get("x-api-key") or _bearer_token(request)
        if not api_key or api_key not in self.valid_keys:
            raise _unauthorized("Invalid or missing API key")
        email = (request.headers.get("x-user-email") or "").strip()
        if not email:
            raise _unauthorized("Missing X-User-Email header")
        return email


def build_identity_verifier(mode: str, settings: Settings) -> IdentityVerifier:
    if mode == "api_key":
        return ApiKeyIdentityVerifier(settings.VALID_API_KEYS)
    return JWTIdentityVerifier(settings.SECRET_KEY, settings.ALGORITHM)


def get_requester_email(request: Request) -> str:
    return request.app.state.identity_verifier.verify(request)
