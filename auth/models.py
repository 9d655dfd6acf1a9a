from __future__ import annotations

import time
from dataclasses import dataclass, field, replace

import httpx

from recipeweb.constants import RETRIED_EXTENSION


@dataclass(frozen=True)
class TokenSet:
    access_token: str
    refresh_token: str | None = None
    token_type: str = "Bearer"
    expires_in: int | None = None

    @classmethod
    def from_payload(cls, payload: dict) -> "TokenSet":
        # The auth service wraps the token set in {"token": {...}}.
        token = payload.get("token", payload) if isinstance(payload, dict) else None
        if not isinstance(token, dict):
            raise RuntimeError("Token response must be a JSON object.")

        access_token = token.get("access_token")
        refresh_token = token.get("refresh_token")
        token_type = token.get("token_type") or "Bearer"
        expires_in = token.get("expires_in")

        if not isinstance(access_token, str) or not access_token:
            raise RuntimeError("Token response missing access_token.")
        if refresh_token is not None and not isinstance(refresh_token, str):
            raise RuntimeError("Token response refresh_token must be a string.")
        if not isinstance(token_type, str):
            raise RuntimeError("Token response token_type must be a string.")
        if expires_in is not None:
            if isinstance(expires_in, bool) or not isinstance(expires_in, (int, float)):
                raise RuntimeError("Token response expires_in must be a number.")
            expires_in = int(expires_in)

        return cls(
            access_token=access_token,
            refresh_token=refresh_token or None,
            token_type=token_type,
            expires_in=expires_in,
        )

    def expires_at(self, *, now: float | None = None) -> float | None:
        if self.expires_in is None:
            return None
        current = time.time() if now is None else now
        return current + self.expires_in

    @property
    def authorization(self) -> str:
        return f"{self.token_type} {self.access_token}"


@dataclass(frozen=True)
class RequestDescriptor:
    """Snapshot of a request that failed with 401.

    ``retried`` is the only field that changes, and only through
    ``mark_retried`` which returns a new descriptor.
    """

    method: str
    url: httpx.URL
    headers: httpx.Headers
    body: bytes = b""
    extensions: dict = field(default_factory=dict)
    retried: bool = False

    @classmethod
    def from_request(cls, request: httpx.Request, body: bytes | None = None) -> "RequestDescriptor":
        return cls(
            method=request.method,
            url=request.url,
            headers=httpx.Headers(request.headers),
            body=request.content if body is None else body,
            extensions=dict(request.extensions),
            retried=bool(request.extensions.get(RETRIED_EXTENSION, False)),
        )

    def mark_retried(self) -> "RequestDescriptor":
        return replace(self, retried=True)
