"""Single-flight token refresh for requests that failed with 401.

The first 401 moves the coordinator from ``IDLE`` to ``REFRESHING`` and starts
one refresh task. Every 401 that arrives while that task runs is queued behind
it. When the task settles, the queue is taken in one step, the state goes back
to ``IDLE`` and each waiter is resolved with the new token set (and replays its
own request) or rejected with ``SessionExpiredError``.
"""

from __future__ import annotations

import asyncio
import enum
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field

import httpx

from recipeweb.constants import LOGGER

from .errors import MissingRefreshTokenError, RefreshError, SessionExpiredError
from .models import RequestDescriptor, TokenSet
from .refresh import refresh_access_token
from .token_store import CredentialStore
from .urls import is_refresh_endpoint

Replay = Callable[[RequestDescriptor, TokenSet], Awaitable[httpx.Response]]


class Phase(enum.Enum):
    IDLE = "idle"
    REFRESHING = "refreshing"


class Route(enum.Enum):
    PASS_THROUGH = "pass_through"
    TRIGGER_REFRESH = "trigger_refresh"
    ENQUEUE = "enqueue"
    TERMINAL = "terminal"
    SESSION_REJECTED = "session_rejected"


def classify(
    status_code: int,
    retried: bool,
    url: httpx.URL | str,
    *,
    refreshing: bool,
    refresh_url: str | None = None,
) -> Route:
    if status_code != 401:
        return Route.PASS_THROUGH
    if is_refresh_endpoint(url, refresh_url):
        return Route.SESSION_REJECTED
    if retried:
        return Route.TERMINAL
    if refreshing:
        return Route.ENQUEUE
    return Route.TRIGGER_REFRESH


@dataclass
class PendingEntry:
    descriptor: RequestDescriptor
    future: asyncio.Future

    def resolve(self, token_set: TokenSet) -> None:
        # A waiter cancelled by its caller has nothing left to settle.
        if not self.future.done():
            self.future.set_result(token_set)

    def reject(self, error: BaseException) -> None:
        if not self.future.done():
            self.future.set_exception(error)


@dataclass
class RefreshState:
    phase: Phase = Phase.IDLE
    pending: list[PendingEntry] = field(default_factory=list)

    @property
    def in_progress(self) -> bool:
        return self.phase is Phase.REFRESHING

    def begin(self) -> None:
        if self.phase is not Phase.IDLE:
            raise RuntimeError("A token refresh is already in progress.")
        self.phase = Phase.REFRESHING

    def enqueue(self, entry: PendingEntry) -> None:
        if self.phase is not Phase.REFRESHING:
            raise RuntimeError("Cannot queue a request while no refresh is in progress.")
        self.pending.append(entry)

    def drain(self) -> list[PendingEntry]:
        entries = self.pending
        self.pending = []
        self.phase = Phase.IDLE
        return entries


class RefreshCoordinator:
    def __init__(
        self,
        credentials: CredentialStore,
        *,
        refresh_url: str,
        refresh_fn=refresh_access_token,
        refresh_client: httpx.AsyncClient | None = None,
        on_session_expired: Callable[[], None] | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self._credentials = credentials
        self._refresh_url = refresh_url
        self._refresh_fn = refresh_fn
        self._refresh_client = refresh_client
        self._on_session_expired = on_session_expired
        self._logger = logger or LOGGER
        self._state = RefreshState()
        self._cycle: asyncio.Task | None = None

    @property
    def credentials(self) -> CredentialStore:
        return self._credentials

    @property
    def refresh_url(self) -> str:
        return self._refresh_url

    @property
    def refreshing(self) -> bool:
        return self._state.in_progress

    @property
    def pending_count(self) -> int:
        return len(self._state.pending)

    async def handle_unauthorized(
        self, descriptor: RequestDescriptor, replay: Replay
    ) -> httpx.Response:
        """Wait for (or start) a refresh, then replay ``descriptor`` once.

        Raises ``SessionExpiredError`` when the refresh cycle fails.
        """
        route = classify(
            401,
            descriptor.retried,
            descriptor.url,
            refreshing=self._state.in_progress,
            refresh_url=self._refresh_url,
        )
        if route is Route.TERMINAL:
            raise ValueError("Request was already retried once; refusing to refresh again.")
        if route is Route.SESSION_REJECTED:
            raise ValueError("The refresh endpoint cannot trigger a token refresh.")

        # Everything up to the await below runs without yielding to the loop.
        entry = PendingEntry(descriptor, asyncio.get_running_loop().create_future())
        if route is Route.ENQUEUE:
            self._state.enqueue(entry)
            self._logger.debug(
                "Waiting for in-flight token refresh (%s %s, %s queued)",
                descriptor.method,
                descriptor.url,
                len(self._state.pending),
            )
        else:
            self._state.begin()
            self._state.enqueue(entry)
            self._logger.info(
                "Starting token refresh after 401 (%s %s)",
                descriptor.method,
                descriptor.url,
            )
            self._cycle = asyncio.create_task(self._run_cycle(self._state))

        token_set = await entry.future
        return await replay(descriptor.mark_retried(), token_set)

    async def expire_session(self) -> None:
        await self._clear_credentials()
        self._notify_session_expired()

    def reset(self) -> None:
        """Return to ``IDLE``, rejecting anyone still waiting on a refresh."""
        state, self._state = self._state, RefreshState()
        if self._cycle is not None and not self._cycle.done():
            self._cycle.cancel()
        self._cycle = None
        for entry in state.drain():
            entry.reject(RefreshError("Token refresh state was reset."))

    async def _run_cycle(self, state: RefreshState) -> None:
        token_set: TokenSet | None = None
        failure: Exception | None = None
        try:
            token_set = await self._obtain_token_set()
        except Exception as error:
            failure = error
            self._logger.warning("Token refresh failed; clearing session: %s", error)
            await self._clear_credentials()
        finally:
            entries = state.drain()
            self._settle(entries, token_set, failure)
            if failure is not None:
                self._notify_session_expired()

    async def _obtain_token_set(self) -> TokenSet:
        refresh_token = await self._credentials.get_refresh_token()
        if not refresh_token:
            raise MissingRefreshTokenError()

        token_set = await self._refresh_fn(
            self._refresh_url,
            refresh_token,
            client=self._refresh_client,
        )
        await self._credentials.set_token_data(token_set)
        self._logger.info("Token refresh succeeded")
        return token_set

    def _settle(
        self,
        entries: list[PendingEntry],
        token_set: TokenSet | None,
        failure: Exception | None,
    ) -> None:
        if token_set is not None:
            for entry in entries:
                entry.resolve(token_set)
            return

        for entry in entries:
            if failure is None:
                error: BaseException = RefreshError("Token refresh was interrupted.")
            else:
                error = SessionExpiredError()
                error.__cause__ = failure
            entry.reject(error)

    async def _clear_credentials(self) -> None:
        try:
            await self._credentials.clear_auth()
        except Exception:
            self._logger.exception("Failed to clear stored credentials")

    def _notify_session_expired(self) -> None:
        if self._on_session_expired is None:
            return
        try:
            self._on_session_expired()
        except Exception:
            self._logger.exception("Session-expired callback failed")
