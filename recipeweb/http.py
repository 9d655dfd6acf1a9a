from __future__ import annotations

import logging

import httpx

from auth.token_store import CredentialStore

from .constants import LOGGER

MAX_LOGGED_BODY = 1000


def make_access_token_hook(credentials: CredentialStore):
    async def stamp_access_token(request: httpx.Request) -> None:
        stored = await credentials.get()
        if stored is None or not stored.access_token:
            return
        request.headers["Authorization"] = f"{stored.token_type} {stored.access_token}"

    return stamp_access_token


def make_logging_hooks(*, enabled: bool, logger: logging.Logger | None = None):
    log = logger or LOGGER

    async def log_request(request: httpx.Request) -> None:
        if not enabled:
            return
        log.info("API request %s %s", request.method, request.url)

    async def log_response(response: httpx.Response) -> None:
        if not enabled:
            return
        log.info(
            "API response %s %s -> %s",
            response.request.method,
            response.request.url,
            response.status_code,
        )
        if response.status_code >= 400:
            body = await response.aread()
            text = body.decode("utf-8", errors="replace")
            if len(text) > MAX_LOGGED_BODY:
                text = text[:MAX_LOGGED_BODY] + "...<truncated>"
            log.warning("API error body: %s", text)

    return log_request, log_response
