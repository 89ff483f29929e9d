"""
Tests for the cleanup providers.

HTTP-based providers are driven through ``httpx.MockTransport`` so the real
SDK request code runs without touching the network.
"""

import json
from typing import Any, Dict, List
from unittest.mock import MagicMock

import httpx
import pytest
from botocore.exceptions import ClientError, EndpointConnectionError, NoCredentialsError, ReadTimeoutError

from voxclean.cleanup.providers import (
    ANTHROPIC_VERSION,
    MAX_TOKENS,
    TEMPERATURE,
    AnthropicProvider,
    BedrockProvider,
    CustomProvider,
    FoundryProvider,
    NoopProvider,
    OpenAICompatibleProvider,
)
from voxclean.errors import LlmConnectionError, LlmEmptyResponseError, LlmRequestError, LlmTimeoutError

SYSTEM_PROMPT = "You are a test prompt."


def chat_completion(content: Any) -> Dict[str, Any]:
    return {
        "id": "chatcmpl-test",
        "object": "chat.completion",
        "created": 0,
        "model": "test-model",
        "choices": [{"index": 0, "message": {"role": "assistant", "content": content}, "finish_reason": "stop"}],
    }


def anthropic_message(blocks: List[Dict[str, Any]]) -> Dict[str, Any]:
    return {
        "id": "msg_test",
        "type": "message",
        "role": "assistant",
        "model": "test-model",
        "content": blocks,
        "stop_reason": "end_turn",
        "stop_sequence": None,
        "usage": {"input_tokens": 1, "output_tokens": 1},
    }


def mock_client(requests: List[httpx.Request], status: int = 200, payload: Any = None, text: str = None):
    """An AsyncClient that records requests and answers with a fixed response."""
    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        if text is not None:
            return httpx.Response(status, text=text)
        return httpx.Response(status, json=payload)

    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


def unreachable_client(error_type=httpx.ConnectError, message="All connection attempts failed"):
    """An AsyncClient whose every request fails before any response arrives."""
    def handler(request: httpx.Request) -> httpx.Response:
        raise error_type(message, request=request)

    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


class TestNoopProvider:

    @pytest.mark.asyncio
    async def test_returns_input_unchanged(self):
        provider = NoopProvider()
        assert await provider.correct("  um hello  ") == "  um hello  "
        assert provider.get_provider_name() == "Noop"


class TestOpenAICompatibleProvider:

    def make(self, requests, **kwargs):
        return OpenAICompatibleProvider(
            endpoint="https://llm.example.com/",
            api_key="sk-test",
            model="gpt-4o-mini",
            system_prompt=SYSTEM_PROMPT,
            http_client=mock_client(requests, **kwargs),
        )

    @pytest.mark.asyncio
    async def test_literal_example(self):
        requests = []
        provider = self.make(requests, payload=chat_completion("I wanted to talk about the new feature."))

        result = await provider.correct("so um I wanted to talk about the uh new feature")

        assert result == "I wanted to talk about the new feature."

    @pytest.mark.asyncio
    async def test_request_shape(self):
        requests = []
        provider = self.make(requests, payload=chat_completion("ok"))

        await provider.correct("raw words")

        assert len(requests) == 1
        request = requests[0]
        assert str(request.url) == "https://llm.example.com/v1/chat/completions"
        assert request.headers["authorization"] == "Bearer sk-test"
        body = json.loads(request.content)
        assert body["model"] == "gpt-4o-mini"
        assert body["messages"] == [
            {"role": "system", "content": SYSTEM_PROMPT},
            {"role": "user", "content": "raw words"},
        ]
        assert body["temperature"] == TEMPERATURE
        assert body["max_tokens"] == MAX_TOKENS

    @pytest.mark.asyncio
    async def test_trims_whitespace(self):
        provider = self.make([], payload=chat_completion("  X  "))
        assert await provider.correct("x") == "X"

    @pytest.mark.asyncio
    async def test_http_error(self):
        requests = []
        provider = self.make(requests, status=401, payload={"error": {"message": "bad key"}})

        with pytest.raises(LlmRequestError) as exc_info:
            await provider.correct("hello")

        assert exc_info.value.status_code == 401
        assert str(exc_info.value).startswith("LLM request failed: 401 Unauthorized - ")
        assert "bad key" in str(exc_info.value)
        assert len(requests) == 1  # no retries

    @pytest.mark.asyncio
    async def test_empty_content(self):
        provider = self.make([], payload=chat_completion("   "))
        with pytest.raises(LlmEmptyResponseError, match="LLM returned no text content"):
            await provider.correct("hello")

    @pytest.mark.asyncio
    async def test_no_choices(self):
        payload = chat_completion("x")
        payload["choices"] = []
        provider = self.make([], payload=payload)
        with pytest.raises(LlmEmptyResponseError):
            await provider.correct("hello")

    @pytest.mark.asyncio
    async def test_connection_failure(self):
        provider = OpenAICompatibleProvider(
            endpoint="https://llm.example.com",
            api_key="sk-test",
            model="gpt-4o-mini",
            system_prompt=SYSTEM_PROMPT,
            http_client=unreachable_client(),
        )
        with pytest.raises(LlmConnectionError, match="LLM connection failed"):
            await provider.correct("hello")

    @pytest.mark.asyncio
    async def test_timeout(self):
        provider = OpenAICompatibleProvider(
            endpoint="https://llm.example.com",
            api_key="sk-test",
            model="gpt-4o-mini",
            system_prompt=SYSTEM_PROMPT,
            timeout=5.0,
            http_client=unreachable_client(httpx.ReadTimeout, "read timed out"),
        )
        with pytest.raises(LlmTimeoutError, match="LLM request timed out after 5s"):
            await provider.correct("hello")


class TestAnthropicProvider:

    def make(self, requests, **kwargs):
        return AnthropicProvider(
            api_key="sk-ant-test",
            model="claude-test",
            system_prompt=SYSTEM_PROMPT,
            http_client=mock_client(requests, **kwargs),
        )

    @pytest.mark.asyncio
    async def test_request_shape(self):
        requests = []
        provider = self.make(requests, payload=anthropic_message([{"type": "text", "text": "Hello."}]))

        assert await provider.correct("um hello") == "Hello."

        request = requests[0]
        assert str(request.url) == "https://api.anthropic.com/v1/messages"
        assert request.headers["x-api-key"] == "sk-ant-test"
        assert request.headers["anthropic-version"] == ANTHROPIC_VERSION
        body = json.loads(request.content)
        assert body["system"] == SYSTEM_PROMPT
        assert body["messages"] == [{"role": "user", "content": "um hello"}]
        assert body["max_tokens"] == MAX_TOKENS

    @pytest.mark.asyncio
    async def test_trims_whitespace(self):
        provider = self.make([], payload=anthropic_message([{"type": "text", "text": "  X  "}]))
        assert await provider.correct("x") == "X"

    @pytest.mark.asyncio
    async def test_connection_failure(self):
        provider = AnthropicProvider(
            api_key="sk-ant-test",
            model="claude-test",
            system_prompt=SYSTEM_PROMPT,
            http_client=unreachable_client(),
        )
        with pytest.raises(LlmConnectionError, match="LLM connection failed"):
            await provider.correct("x")

    @pytest.mark.asyncio
    async def test_no_text_block(self):
        provider = self.make([], payload=anthropic_message([]))
        with pytest.raises(LlmEmptyResponseError):
            await provider.correct("hello")

    @pytest.mark.asyncio
    async def test_http_error(self):
        provider = self.make([], status=529, text="overloaded")
        with pytest.raises(LlmRequestError) as exc_info:
            await provider.correct("hello")
        assert exc_info.value.status_code == 529
        assert exc_info.value.body == "overloaded"


class TestFoundryProvider:

    @pytest.mark.asyncio
    async def test_bearer_auth_against_endpoint(self, monkeypatch):
        monkeypatch.delenv("ANTHROPIC_API_KEY", raising=False)
        requests = []
        provider = FoundryProvider(
            endpoint="https://foundry.example.com/anthropic//",
            api_key="foundry-key",
            model="claude-test",
            system_prompt=SYSTEM_PROMPT,
            http_client=mock_client(requests, payload=anthropic_message([{"type": "text", "text": " Done. "}])),
        )

        assert await provider.correct("done") == "Done."

        request = requests[0]
        assert str(request.url) == "https://foundry.example.com/anthropic/v1/messages"
        assert request.headers["authorization"] == "Bearer foundry-key"
        assert request.headers["anthropic-version"] == ANTHROPIC_VERSION
        assert json.loads(request.content)["system"] == SYSTEM_PROMPT
        assert provider.get_provider_name() == "Foundry"


class TestBedrockProvider:

    def make(self, client):
        return BedrockProvider(
            region="us-east-1",
            model_id="anthropic.claude-test",
            system_prompt=SYSTEM_PROMPT,
            client=client,
        )

    @pytest.mark.asyncio
    async def test_converse_request(self):
        client = MagicMock()
        client.converse.return_value = {"output": {"message": {"content": [{"text": "  X  "}]}}}

        assert await self.make(client).correct("raw") == "X"

        kwargs = client.converse.call_args.kwargs
        assert kwargs["modelId"] == "anthropic.claude-test"
        assert kwargs["system"] == [{"text": SYSTEM_PROMPT}]
        assert kwargs["messages"] == [{"role": "user", "content": [{"text": "raw"}]}]
        assert kwargs["inferenceConfig"] == {"temperature": TEMPERATURE, "maxTokens": MAX_TOKENS}

    @pytest.mark.asyncio
    async def test_empty_output(self):
        client = MagicMock()
        client.converse.return_value = {"output": {"message": {"content": []}}}
        with pytest.raises(LlmEmptyResponseError):
            await self.make(client).correct("raw")

    @pytest.mark.asyncio
    async def test_client_error(self):
        client = MagicMock()
        client.converse.side_effect = ClientError(
            {
                "Error": {"Code": "AccessDeniedException", "Message": "denied"},
                "ResponseMetadata": {"HTTPStatusCode": 403},
            },
            "Converse",
        )
        with pytest.raises(LlmRequestError) as exc_info:
            await self.make(client).correct("raw")
        assert str(exc_info.value) == "LLM request failed: 403 AccessDeniedException - denied"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("error", [
        NoCredentialsError(),
        EndpointConnectionError(endpoint_url="https://bedrock-runtime.us-east-1.amazonaws.com"),
    ])
    async def test_transport_errors(self, error):
        client = MagicMock()
        client.converse.side_effect = error
        with pytest.raises(LlmConnectionError, match="LLM connection failed"):
            await self.make(client).correct("raw")

    @pytest.mark.asyncio
    async def test_timeout(self):
        client = MagicMock()
        client.converse.side_effect = ReadTimeoutError(endpoint_url="https://bedrock-runtime.us-east-1.amazonaws.com")
        with pytest.raises(LlmTimeoutError, match="timed out after 30s"):
            await self.make(client).correct("raw")


class TestCustomProvider:

    def make(self, http_client=None, **overrides):
        settings = dict(
            endpoint="https://custom.example.com/api",
            token="secret",
            token_attr="X-Api-Key",
            token_send_as="header",
            model="local-model",
            system_prompt=SYSTEM_PROMPT,
            http_client=http_client,
        )
        settings.update(overrides)
        return CustomProvider(**settings)

    def test_header_token(self):
        url, headers, body = self.make().build_request("hi")
        assert url == "https://custom.example.com/api"
        assert headers["X-Api-Key"] == "secret"
        assert "X-Api-Key" not in body

    def test_body_token(self):
        url, headers, body = self.make(token="body-token", token_attr="api_key", token_send_as="body").build_request("hi")
        assert body["api_key"] == "body-token"
        assert '"api_key": "body-token"' in json.dumps(body)
        assert "api_key" not in headers

    def test_query_token_is_encoded(self):
        provider = self.make(token="tok&en=val", token_attr="api key", token_send_as="query")
        url, _, _ = provider.build_request("hi")
        assert url == "https://custom.example.com/api?api%20key=tok%26en%3Dval"

    def test_query_token_appends_to_existing_query(self):
        provider = self.make(endpoint="https://custom.example.com/api?v=2", token_send_as="query", token_attr="key")
        url, _, _ = provider.build_request("hi")
        assert url == "https://custom.example.com/api?v=2&key=secret"

    def test_trailing_slashes_stripped(self):
        provider = self.make(endpoint="https://custom.example.com/api///")
        assert provider.endpoint == "https://custom.example.com/api"
        assert provider.build_request("hi")[0] == "https://custom.example.com/api"

    def test_model_omitted_when_empty(self):
        _, _, body = self.make(model="").build_request("hi")
        assert "model" not in body

    def test_no_credential_without_token_or_attr(self):
        for overrides in ({"token": ""}, {"token_attr": ""}):
            for send_as in ("header", "body", "query"):
                url, headers, body = self.make(token_send_as=send_as, **overrides).build_request("hi")
                assert url == "https://custom.example.com/api"
                assert set(headers) == {"Content-Type"}
                assert set(body) == {"messages", "temperature", "max_tokens", "model"}

    @pytest.mark.asyncio
    async def test_round_trip(self):
        requests = []
        provider = self.make(http_client=mock_client(requests, payload=chat_completion("  X  ")))

        assert await provider.correct("raw") == "X"

        request = requests[0]
        assert request.method == "POST"
        assert request.headers["x-api-key"] == "secret"
        body = json.loads(request.content)
        assert body["model"] == "local-model"
        assert body["messages"][1] == {"role": "user", "content": "raw"}

    @pytest.mark.asyncio
    async def test_http_error(self):
        provider = self.make(http_client=mock_client([], status=500, text="boom"))
        with pytest.raises(LlmRequestError, match="LLM request failed: 500 Internal Server Error - boom"):
            await provider.correct("raw")

    @pytest.mark.asyncio
    async def test_missing_content(self):
        provider = self.make(http_client=mock_client([], payload={"choices": [{"message": {}}]}))
        with pytest.raises(LlmEmptyResponseError):
            await provider.correct("raw")

    @pytest.mark.asyncio
    async def test_non_json_success_body(self):
        provider = self.make(http_client=mock_client([], status=200, text="<html>ok</html>"))
        with pytest.raises(LlmEmptyResponseError, match="response is not JSON"):
            await provider.correct("raw")

    @pytest.mark.asyncio
    async def test_connection_failure(self):
        provider = self.make(http_client=unreachable_client())
        with pytest.raises(LlmConnectionError, match="All connection attempts failed"):
            await provider.correct("raw")

    @pytest.mark.asyncio
    async def test_timeout(self):
        provider = self.make(http_client=unreachable_client(httpx.ConnectTimeout, ""), timeout=2.5)
        with pytest.raises(LlmTimeoutError, match=r"timed out after 2\.5s"):
            await provider.correct("raw")
