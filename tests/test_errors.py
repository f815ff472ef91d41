"""Test ChatError rendering"""
import httpx
import pytest

from docchat.errors import ChatError, ErrorKind, HTTP_STATUS, not_found, validation_error
from docchat.gemini_client import classify_error


class TestChatError:
    def test_every_kind_has_status(self):
        assert set(HTTP_STATUS) == set(ErrorKind)

    def test_payload_hides_detail(self):
        err = ChatError(ErrorKind.PROVIDER_ERROR, "Gemini API server error.", status=500, detail="trace")

        assert err.to_payload() == {
            "error": True,
            "kind": "provider_error",
            "message": "Gemini API server error.",
        }
        assert err.to_payload(include_detail=True)["detail"] == "trace"

    def test_validation_carries_field(self):
        err = validation_error("message is required", "message")

        assert err.http_status == 400
        assert err.to_payload()["field"] == "message"
        assert not err.retryable

    def test_not_found(self):
        err = not_found("Conversation")

        assert err.kind is ErrorKind.NOT_FOUND
        assert str(err) == "Conversation not found"

    @pytest.mark.parametrize(
        "kind", [ErrorKind.TIMEOUT, ErrorKind.NETWORK, ErrorKind.RATE_LIMITED, ErrorKind.PROVIDER_ERROR]
    )
    def test_transport_kinds_retryable(self, kind):
        assert ChatError(kind, "x").retryable

    @pytest.mark.parametrize(
        "kind", [ErrorKind.CONFIGURATION, ErrorKind.RESPONSE_PROCESSING, ErrorKind.DOCUMENT]
    )
    def test_terminal_kinds(self, kind):
        assert not ChatError(kind, "x").retryable


class TestClassifyError:
    def test_detail_omits_credentials(self):
        request = httpx.Request("POST", "https://gemini.test/generate", headers={"x-goog-api-key": "secret"})
        response = httpx.Response(500, text="boom", request=request)
        exc = httpx.HTTPStatusError("server error", request=request, response=response)

        err = classify_error(exc)

        assert err.kind is ErrorKind.PROVIDER_ERROR
        assert err.status == 500
        assert "secret" not in err.detail
        assert err.detail == "HTTP 500: boom"

    def test_connect_timeout_is_timeout(self):
        request = httpx.Request("POST", "https://gemini.test/generate")

        err = classify_error(httpx.ConnectTimeout("slow", request=request))

        assert err.kind is ErrorKind.TIMEOUT

    @pytest.mark.parametrize(
        "exc",
        [
            httpx.RemoteProtocolError("Server disconnected without sending a response."),
            httpx.ProxyError("proxy refused"),
            httpx.ConnectError("refused"),
        ],
    )
    def test_transport_failures_are_network(self, exc):
        err = classify_error(exc)

        assert err.kind is ErrorKind.NETWORK
        assert err.http_status == 503
        assert err.message == "Network error. Please check your internet connection."

    def test_unexpected(self):
        err = classify_error(httpx.TooManyRedirects("loop"))

        assert err.kind is ErrorKind.INTERNAL
        assert err.message == "An internal server error occurred. Please try again later."
        assert "loop" in err.detail
