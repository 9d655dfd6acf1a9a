from __future__ import annotations

import logging

import httpx

from recipeweb.constants import LOGGER, RETRIED_EXTENSION

from .coordinator import RefreshCoordinator, Route, classify
from .models import RequestDescriptor, TokenSet


def is_retried(request: httpx.Request) -> bool:
    return bool(request.extensions.get(RETRIED_EXTENSION, False))


def replay_request(descriptor: RequestDescriptor, token_set: TokenSet) -> httpx.Request:
    if not descriptor.retried:
        raise ValueError("Only descriptors marked as retried can be replayed.")

    headers = httpx.Headers(descriptor.headers)
    headers["Authorization"] = token_set.authorization
    # The body is replayed buffered, so it is sent with a Content-Length.
    headers.pop("Transfer-Encoding", None)
    return httpx.Request(
        method=descriptor.method,
        url=descriptor.url,
        headers=headers,
        content=descriptor.body,
        extensions={**descriptor.extensions, RETRIED_EXTENSION: True},
    )


class TokenRefreshTransport(httpx.AsyncBaseTransport):
    """Refreshes credentials on 401 and replays the request once.

    Only 401 responses are intercepted. Everything else, including transport
    errors, reaches the caller unmodified.
    """

    def __init__(
        self,
        transport: httpx.AsyncBaseTransport,
        coordinator: RefreshCoordinator,
        *,
        logger: logging.Logger | None = None,
    ) -> None:
        self._transport = transport
        self._coordinator = coordinator
        self._logger = logger or LOGGER

    async def handle_async_request(self, request: httpx.Request) -> httpx.Response:
        body = await request.aread()
        response = await self._transport.handle_async_request(request)

        route = classify(
            response.status_code,
            is_retried(request),
            request.url,
            refreshing=self._coordinator.refreshing,
            refresh_url=self._coordinator.refresh_url,
        )
        if route is Route.PASS_THROUGH:
            return response

        if route is Route.TERMINAL:
            self._logger.warning(
                "Still unauthorized after token refresh (%s %s)",
                request.method,
                request.url,
            )
            return response

        if route is Route.SESSION_REJECTED:
            self._logger.warning(
                "Refresh endpoint rejected the session (%s %s)",
                request.method,
                request.url,
            )
            await self._coordinator.expire_session()
            return response

        await response.aclose()
        descriptor = RequestDescriptor.from_request(request, body)
        return await self._coordinator.handle_unauthorized(descriptor, self._replay)

    async def _replay(self, descriptor: RequestDescriptor, token_set: TokenSet) -> httpx.Response:
        self._logger.info("Replaying %s %s with refreshed token", descriptor.method, descriptor.url)
        return await self.handle_async_request(replay_request(descriptor, token_set))

    async def aclose(self) -> None:
        await self._transport.aclose()
