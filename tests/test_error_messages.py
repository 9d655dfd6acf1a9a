import httpx
import pytest

from auth.errors import (
    FALLBACK_ERROR_MESSAGE,
    AuthApiError,
    api_error_from_exception,
    api_error_from_response,
)


def _response(status_code: int, **kwargs) -> httpx.Response:
    return httpx.Response(
        status_code,
        request=httpx.Request("POST", "http://localhost:8080/api/v1/auth/login"),
        **kwargs,
    )


def test_error_description_has_priority() -> None:
    response = _response(
        401,
        json={"error_description": "OAuth error", "message": "Generic message"},
    )

    error = api_error_from_response(response)

    assert error.message == "OAuth error"
    assert error.status == 401
    assert error.response is response


def test_message_field() -> None:
    error = api_error_from_response(_response(500, json={"message": "Server error"}))

    assert str(error) == "Server error"
    assert error.status == 500


def test_falls_back_to_reason_phrase() -> None:
    error = api_error_from_response(_response(404, json={}))

    assert error.message == "Not Found"


@pytest.mark.parametrize(
    "kwargs",
    [
        {"text": "string response data"},
        {"json": None},
        {"json": {"error_description": None, "message": None}},
    ],
)
def test_non_object_or_empty_payloads(kwargs) -> None:
    error = api_error_from_response(_response(500, **kwargs))

    assert error.message == "Internal Server Error"
    assert error.status == 500


def test_fallback_message_without_reason_phrase() -> None:
    error = api_error_from_response(_response(599, json={}))

    assert error.message == FALLBACK_ERROR_MESSAGE


def test_from_status_exception() -> None:
    response = _response(403, json={"error_description": "Forbidden scope"})
    status_error = httpx.HTTPStatusError("forbidden", request=response.request, response=response)

    error = api_error_from_exception(status_error)

    assert error.message == "Forbidden scope"
    assert error.status == 403


def test_from_network_exception() -> None:
    error = api_error_from_exception(httpx.ConnectError("Network Error"))

    assert error.message == "Network Error"
    assert error.status is None
    assert error.response is None


def test_auth_api_error_defaults() -> None:
    error = AuthApiError("Test error")

    assert isinstance(error, RuntimeError)
    assert error.message == "Test error"
    assert error.status is None
