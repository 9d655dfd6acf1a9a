import pytest

from auth.coordinator import RefreshCoordinator
from auth.token_store import StoredCredentials
from tests.refresh_helpers import REFRESH_URL, CountingStore, ExpiryRecorder


@pytest.fixture
def store() -> CountingStore:
    return CountingStore(StoredCredentials(access_token="T1", refresh_token="R1"))


@pytest.fixture
def expiry() -> ExpiryRecorder:
    return ExpiryRecorder()


@pytest.fixture
def make_coordinator(store, expiry):
    def _make(refresh_fn) -> RefreshCoordinator:
        return RefreshCoordinator(
            store,
            refresh_url=REFRESH_URL,
            refresh_fn=refresh_fn,
            on_session_expired=expiry,
        )

    return _make
