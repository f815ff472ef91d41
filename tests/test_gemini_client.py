"""Test GeminiClient retry and error classification"""
import json

import httpx
import pytest

from docchat.errors import ChatError, ErrorKind

HISTORY = [{"role": "user", "content": "Hi", "attachments": []}]


class CallLog:
    def __init__(self):
        self.requests = []

    @property
    def count(self):
        return len(self.requests)


@pytest.fixture
def calls():
    return CallLog()


@pytest.mark.asyncio
class TestGenerateContent:
    async def test_success_first_attempt(self, make_client, calls, sleeper, gemini_reply):
        def handler(request):
            calls.requests.append(request)
            return httpx.Response(200, json=gemini_reply("hello", usage={"totalTokenCount": 5}))

        result = await make_client(handler).generate_content(HISTORY)

        assert result == {"content": "hello", "finish_reason": "STOP", "usage": {"totalTokenCount": 5}}
        assert calls.count == 1
        assert sleeper.delays == []

    async def test_request_shape(self, make_client, calls, gemini_reply):
        def handler(request):
            calls.requests.append(request)
            return httpx.Response(200, json=gemini_reply())

        await make_client(handler).generate_content(HISTORY, [{"filename": "a.txt", "content": "doc"}])

        request = calls.requests[0]
        body = json.loads(request.content)
        assert request.method == "POST"
        assert request.headers["x-goog-api-key"] == "test-api-key"
        assert "key=" not in str(request.url)
        assert body["contents"][0]["parts"][1] == {"text": "[Document: a.txt]\ndoc"}
        assert body["generationConfig"]["maxOutputTokens"] == 8192
        assert request.extensions["timeout"]["read"] == 30.0

    async def test_retries_then_succeeds(self, make_client, calls, sleeper, gemini_reply):
        def handler(request):
            calls.requests.append(request)
            if calls.count < 3:
                return httpx.Response(503, json={"error": {"message": "overloaded"}})
            return httpx.Response(200, json=gemini_reply("third time"))

        result = await make_client(handler).generate_content(HISTORY)

        assert result["content"] == "third time"
        assert calls.count == 3
        assert sleeper.delays == [1.0, 2.0]

    async def test_rate_limit_exhaustion(self, make_client, calls, sleeper):
        def handler(request):
            calls.requests.append(request)
            return httpx.Response(429, json={"error": {"message": "slow down"}})

        with pytest.raises(ChatError) as exc:
            await make_client(handler).generate_content(HISTORY)

        assert exc.value.kind is ErrorKind.RATE_LIMITED
        assert exc.value.message == "Rate limit exceeded. Please try again later."
        assert exc.value.status == 429
        assert calls.count == 3
        assert sleeper.delays == [1.0, 2.0]

    async def test_respects_configured_retries(self, make_client, calls, sleeper):
        def handler(request):
            calls.requests.append(request)
            return httpx.Response(500)

        client = make_client(handler, gemini_max_retries=5, gemini_retry_delay_ms=100)
        with pytest.raises(ChatError) as exc:
            await client.generate_content(HISTORY)

        assert exc.value.kind is ErrorKind.PROVIDER_ERROR
        assert exc.value.message == "Gemini API server error. Please try again later."
        assert calls.count == 5
        assert sleeper.delays == pytest.approx([0.1, 0.2, 0.4, 0.8])

    @pytest.mark.parametrize(
        "status,kind,message",
        [
            (400, ErrorKind.BAD_REQUEST, "Invalid request: field is wrong"),
            (401, ErrorKind.UNAUTHORIZED, "Invalid API key or unauthorized access"),
            (403, ErrorKind.FORBIDDEN, "API access forbidden or quota exceeded"),
            (418, ErrorKind.PROVIDER_ERROR, "Gemini API error (418): field is wrong"),
        ],
    )
    async def test_status_classification(self, make_client, status, kind, message):
        def handler(request):
            return httpx.Response(status, json={"error": {"message": "field is wrong"}})

        with pytest.raises(ChatError) as exc:
            await make_client(handler).generate_content(HISTORY)

        assert exc.value.kind is kind
        assert exc.value.message == message
        assert exc.value.http_status in (400, 401, 403, 502)

    async def test_status_without_provider_message(self, make_client):
        def handler(request):
            return httpx.Response(400, text="<html>nope</html>")

        with pytest.raises(ChatError) as exc:
            await make_client(handler).generate_content(HISTORY)

        assert exc.value.message == "Invalid request: Bad request"

    async def test_timeout(self, make_client, calls):
        def handler(request):
            calls.requests.append(request)
            raise httpx.ReadTimeout("timed out", request=request)

        with pytest.raises(ChatError) as exc:
            await make_client(handler).generate_content(HISTORY)

        assert exc.value.kind is ErrorKind.TIMEOUT
        assert exc.value.message == "Request timeout. Please try again."
        assert calls.count == 3

    async def test_network_error(self, make_client, calls):
        def handler(request):
            calls.requests.append(request)
            raise httpx.ConnectError("Name or service not known", request=request)

        with pytest.raises(ChatError) as exc:
            await make_client(handler).generate_content(HISTORY)

        assert exc.value.kind is ErrorKind.NETWORK
        assert exc.value.message == "Network error. Please check your internet connection."
        assert calls.count == 3

    async def test_server_disconnect_is_network(self, make_client, calls):
        def handler(request):
            calls.requests.append(request)
            raise httpx.RemoteProtocolError("Server disconnected without sending a response.", request=request)

        with pytest.raises(ChatError) as exc:
            await make_client(handler).generate_content(HISTORY)

        assert exc.value.kind is ErrorKind.NETWORK
        assert exc.value.http_status == 503
        assert "Server disconnected" not in exc.value.message
        assert calls.count == 3

    async def test_timeout_then_success(self, make_client, calls, sleeper, gemini_reply):
        def handler(request):
            calls.requests.append(request)
            if calls.count == 1:
                raise httpx.ReadTimeout("timed out", request=request)
            return httpx.Response(200, json=gemini_reply("recovered"))

        result = await make_client(handler).generate_content(HISTORY)

        assert result["content"] == "recovered"
        assert sleeper.delays == [1.0]

    async def test_missing_api_key_fails_fast(self, make_client, calls, sleeper):
        def handler(request):
            calls.requests.append(request)
            return httpx.Response(200)

        with pytest.raises(ChatError) as exc:
            await make_client(handler, gemini_api_key="").generate_content(HISTORY)

        assert exc.value.kind is ErrorKind.CONFIGURATION
        assert exc.value.message == "Gemini API key not configured"
        assert calls.count == 0
        assert sleeper.delays == []

    async def test_malformed_reply_not_retried(self, make_client, calls):
        def handler(request):
            calls.requests.append(request)
            return httpx.Response(200, json={"candidates": []})

        with pytest.raises(ChatError) as exc:
            await make_client(handler).generate_content(HISTORY)

        assert exc.value.kind is ErrorKind.RESPONSE_PROCESSING
        assert calls.count == 1

    async def test_non_json_reply(self, make_client, calls):
        def handler(request):
            calls.requests.append(request)
            return httpx.Response(200, text="not json")

        with pytest.raises(ChatError) as exc:
            await make_client(handler).generate_content(HISTORY)

        assert exc.value.kind is ErrorKind.RESPONSE_PROCESSING
        assert calls.count == 1


class TestBackoff:
    def test_schedule(self, make_client):
        client = make_client(lambda request: httpx.Response(200))

        assert client.backoff_delays() == [1.0, 2.0]
        assert client.retry_delay(3) == 4.0


@pytest.mark.asyncio
class TestValidateApiKey:
    async def test_valid(self, make_client, calls):
        def handler(request):
            calls.requests.append(request)
            return httpx.Response(200, json={"candidates": []})

        assert await make_client(handler).validate_api_key() is True
        body = json.loads(calls.requests[0].content)
        assert body == {"contents": [{"role": "user", "parts": [{"text": "Hello"}]}]}
        assert calls.requests[0].extensions["timeout"]["read"] == 10.0

    async def test_rejected_key_not_retried(self, make_client, calls):
        def handler(request):
            calls.requests.append(request)
            return httpx.Response(401, json={"error": {"message": "bad key"}})

        assert await make_client(handler).validate_api_key() is False
        assert calls.count == 1

    async def test_network_failure_swallowed(self, make_client):
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        assert await make_client(handler).validate_api_key() is False

    async def test_no_key(self, make_client, calls):
        def handler(request):
            calls.requests.append(request)
            return httpx.Response(200)

        assert await make_client(handler, gemini_api_key="").validate_api_key() is False
        assert calls.count == 0
