from __future__ import annotations

import argparse
import asyncio
import json
import sys
from collections.abc import Callable

import httpx

from auth.coordinator import RefreshCoordinator
from auth.errors import SessionExpiredError, api_error_from_exception, api_error_from_response
from auth.refresh import refresh_access_token
from auth.token_store import CredentialStore, FileCredentialStore, MemoryCredentialStore
from auth.transport import TokenRefreshTransport
from auth.urls import build_login_url
from recipeweb.constants import APP_VERSION, LOGGER
from recipeweb.env import Settings, load_env, load_settings, setup_logging
from recipeweb.http import make_access_token_hook, make_logging_hooks


def redirect_to_login(
    login_url: str,
    *,
    current_path: Callable[[], str | None] | None = None,
    navigate: Callable[[str], None] | None = None,
) -> str:
    return_path = current_path() if current_path is not None else None
    target = build_login_url(login_url, return_path)
    LOGGER.warning("Session expired; sign in again at %s", target)
    if navigate is not None:
        navigate(target)
    return target


def build_credential_store(settings: Settings) -> CredentialStore:
    if settings.token_store_path:
        return FileCredentialStore(settings.token_store_path)
    return MemoryCredentialStore()


def build_coordinator(
    settings: Settings,
    credentials: CredentialStore,
    *,
    current_path: Callable[[], str | None] | None = None,
    navigate: Callable[[str], None] | None = None,
    refresh_client: httpx.AsyncClient | None = None,
    refresh_fn=refresh_access_token,
) -> RefreshCoordinator:
    def on_session_expired() -> None:
        redirect_to_login(settings.login_url, current_path=current_path, navigate=navigate)

    return RefreshCoordinator(
        credentials,
        refresh_url=settings.refresh_url,
        refresh_fn=refresh_fn,
        refresh_client=refresh_client,
        on_session_expired=on_session_expired,
        logger=LOGGER,
    )


def create_client(
    settings: Settings | None = None,
    *,
    credentials: CredentialStore | None = None,
    coordinator: RefreshCoordinator | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
    base_url: str | None = None,
) -> httpx.AsyncClient:
    """Build an ``httpx.AsyncClient`` that stamps and refreshes credentials.

    Pass the same ``coordinator`` to several clients to share one refresh
    cycle between them.
    """
    settings = settings or load_settings()
    if coordinator is None:
        coordinator = build_coordinator(settings, credentials or build_credential_store(settings))
    elif credentials is not None and credentials is not coordinator.credentials:
        raise ValueError("credentials must be the store used by the coordinator.")

    log_request, log_response = make_logging_hooks(enabled=settings.debug, logger=LOGGER)
    refresh_transport = TokenRefreshTransport(
        transport or httpx.AsyncHTTPTransport(),
        coordinator,
        logger=LOGGER,
    )
    return httpx.AsyncClient(
        base_url=base_url or settings.base_url,
        headers={"Content-Type": "application/json"},
        timeout=settings.timeout,
        transport=refresh_transport,
        event_hooks={
            "request": [make_access_token_hook(coordinator.credentials), log_request],
            "response": [log_response],
        },
    )


async def _fetch(path: str, settings: Settings) -> int:
    async with create_client(settings) as client:
        try:
            response = await client.get(path)
        except SessionExpiredError as error:
            print(f"error: {error}", file=sys.stderr)
            return 1
        except httpx.HTTPError as error:
            api_error = api_error_from_exception(error)
            print(f"error: {api_error.message}", file=sys.stderr)
            return 1

    if response.is_error:
        error = api_error_from_response(response)
        print(f"error: {error.status} {error.message}", file=sys.stderr)
        return 1

    try:
        print(json.dumps(response.json(), indent=2, sort_keys=True))
    except ValueError:
        print(response.text)
    return 0


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        prog="recipeweb-request",
        description="GET an API path using the stored session credentials.",
    )
    parser.add_argument("path", help="path relative to RECIPE_API_BASE_URL")
    parser.add_argument("--version", action="version", version=APP_VERSION)
    args = parser.parse_args(argv)

    load_env()
    setup_logging()
    settings = load_settings()
    return asyncio.run(_fetch(args.path, settings))


if __name__ == "__main__":
    sys.exit(main())
