from __future__ import annotations

import httpx

from recipeweb.constants import LOGGER

from .errors import RefreshError
from .models import TokenSet


async def refresh_access_token(
    refresh_url: str,
    refresh_token: str,
    *,
    client: httpx.AsyncClient | None = None,
    timeout: float = 10.0,
) -> TokenSet:
    """Exchange ``refresh_token`` for a new token set with one POST.

    ``client`` must not be routed through ``TokenRefreshTransport``; a 401
    here means the refresh token itself was rejected.
    """
    own_client = client is None
    http_client = client or httpx.AsyncClient(timeout=timeout)

    try:
        response = await http_client.post(
            refresh_url,
            json={"refresh_token": refresh_token},
            headers={"Accept": "application/json"},
        )
        response.raise_for_status()
        payload = response.json()
    except httpx.HTTPStatusError as error:
        detail = error.response.text
        raise RefreshError(
            f"Token refresh failed with status {error.response.status_code}: {detail}",
            status_code=error.response.status_code,
        ) from error
    except httpx.HTTPError as error:
        raise RefreshError(f"Token refresh request failed: {error!r}") from error
    except ValueError as error:
        raise RefreshError("Token refresh returned invalid JSON.") from error
    finally:
        if own_client:
            await http_client.aclose()

    try:
        token_set = TokenSet.from_payload(payload)
    except RuntimeError as error:
        raise RefreshError(str(error)) from error

    LOGGER.debug("Token refresh returned %s token (expires_in=%s)", token_set.token_type, token_set.expires_in)
    return token_set
