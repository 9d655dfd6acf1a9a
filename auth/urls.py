from __future__ import annotations

import urllib.parse

import httpx

from recipeweb.constants import REFRESH_PATH_MARKER, RETURN_URL_PARAM


def is_refresh_endpoint(url: httpx.URL | str, refresh_url: httpx.URL | str | None = None) -> bool:
    url = httpx.URL(url)
    if REFRESH_PATH_MARKER in url.path:
        return True
    if refresh_url is None:
        return False
    refresh = httpx.URL(refresh_url)
    return (
        url.scheme == refresh.scheme
        and url.host == refresh.host
        and url.port == refresh.port
        and url.path.rstrip("/") == refresh.path.rstrip("/")
    )


def build_login_url(login_url: str, return_path: str | None = None) -> str:
    if not return_path or return_path == "/":
        return login_url

    login = urllib.parse.urlsplit(login_url)
    if urllib.parse.urlsplit(return_path).path.rstrip("/") == login.path.rstrip("/"):
        return login_url

    query = [
        (key, value)
        for key, value in urllib.parse.parse_qsl(login.query, keep_blank_values=True)
        if key != RETURN_URL_PARAM
    ]
    query.append((RETURN_URL_PARAM, return_path))
    return urllib.parse.urlunsplit(login._replace(query=urllib.parse.urlencode(query)))
