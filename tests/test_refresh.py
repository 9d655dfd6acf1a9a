import httpx
import pytest

from auth.errors import RefreshError
from auth.models import TokenSet
from auth.refresh import refresh_access_token
from tests.refresh_helpers import REFRESH_URL


@pytest.mark.asyncio
async def test_refresh_success_with_token_envelope(httpx_mock) -> None:
    httpx_mock.add_response(
        url=REFRESH_URL,
        method="POST",
        json={
            "token": {
                "access_token": "access-2",
                "refresh_token": "refresh-2",
                "token_type": "Bearer",
                "expires_in": 3600,
            }
        },
    )

    token = await refresh_access_token(REFRESH_URL, "refresh-1")

    assert token == TokenSet("access-2", "refresh-2", "Bearer", 3600)


@pytest.mark.asyncio
async def test_refresh_success_with_bare_token(httpx_mock) -> None:
    httpx_mock.add_response(
        url=REFRESH_URL,
        method="POST",
        json={"access_token": "access-2", "expires_in": 60},
    )

    token = await refresh_access_token(REFRESH_URL, "refresh-1")

    assert token.access_token == "access-2"
    assert token.refresh_token is None
    assert token.token_type == "Bearer"


@pytest.mark.asyncio
async def test_refresh_sends_refresh_token(httpx_mock) -> None:
    httpx_mock.add_response(url=REFRESH_URL, method="POST", json={"access_token": "a"})

    await refresh_access_token(REFRESH_URL, "refresh-1")

    request = httpx_mock.get_request()
    assert request.method == "POST"
    assert request.headers["content-type"] == "application/json"
    assert request.read() == httpx.Request("POST", REFRESH_URL, json={"refresh_token": "refresh-1"}).read()


@pytest.mark.asyncio
async def test_refresh_rejected(httpx_mock) -> None:
    httpx_mock.add_response(url=REFRESH_URL, method="POST", status_code=401, text="expired")

    with pytest.raises(RefreshError, match="Token refresh failed with status 401") as excinfo:
        await refresh_access_token(REFRESH_URL, "refresh-1")

    assert excinfo.value.status_code == 401


@pytest.mark.asyncio
async def test_refresh_server_error(httpx_mock) -> None:
    httpx_mock.add_response(url=REFRESH_URL, method="POST", status_code=500, json={"error": "down"})

    with pytest.raises(RefreshError) as excinfo:
        await refresh_access_token(REFRESH_URL, "refresh-1")

    assert excinfo.value.status_code == 500


@pytest.mark.asyncio
async def test_refresh_network_error(httpx_mock) -> None:
    httpx_mock.add_exception(httpx.ConnectError("unreachable"), url=REFRESH_URL)

    with pytest.raises(RefreshError, match="Token refresh request failed") as excinfo:
        await refresh_access_token(REFRESH_URL, "refresh-1")

    assert isinstance(excinfo.value.__cause__, httpx.ConnectError)
    assert excinfo.value.status_code is None


@pytest.mark.asyncio
async def test_refresh_missing_access_token(httpx_mock) -> None:
    httpx_mock.add_response(url=REFRESH_URL, method="POST", json={"token": {"refresh_token": "r"}})

    with pytest.raises(RefreshError, match="missing access_token"):
        await refresh_access_token(REFRESH_URL, "refresh-1")


@pytest.mark.asyncio
async def test_refresh_invalid_json(httpx_mock) -> None:
    httpx_mock.add_response(url=REFRESH_URL, method="POST", text="<html>oops</html>")

    with pytest.raises(RefreshError, match="invalid JSON"):
        await refresh_access_token(REFRESH_URL, "refresh-1")


@pytest.mark.asyncio
async def test_refresh_uses_given_client() -> None:
    seen: list[str] = []

    async def handler(request: httpx.Request) -> httpx.Response:
        seen.append(str(request.url))
        return httpx.Response(200, json={"access_token": "a", "refresh_token": "r"})

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
        token = await refresh_access_token(REFRESH_URL, "refresh-1", client=client)
        assert not client.is_closed

    assert seen == [REFRESH_URL]
    assert token.refresh_token == "r"
