"""
Tests for provider selection and the connection test.
"""

from unittest.mock import AsyncMock, patch

import httpx
import pytest

from voxclean.cleanup.factory import CONNECTION_TEST_TEXT, create_provider, test_connection
from voxclean.cleanup.prompts import LLM_SYSTEM_PROMPT
from voxclean.cleanup.providers import (
    AnthropicProvider,
    BedrockProvider,
    CustomProvider,
    FoundryProvider,
    NoopProvider,
    OpenAICompatibleProvider,
)
from voxclean.config import (
    AnthropicConfig,
    AppConfig,
    BedrockConfig,
    CustomConfig,
    FoundryConfig,
    OpenAICompatibleConfig,
    compute_llm_config_hash,
)
from voxclean.errors import ProviderNotConfiguredError, UnsupportedProviderError

OPENAI = OpenAICompatibleConfig(openai_api_key="sk-test", openai_model="gpt-4o-mini")


def ready(llm, **kwargs) -> AppConfig:
    """An enabled, tested config whose stored hash matches its provider settings."""
    config = AppConfig(llm=llm, enable_llm_enhancement=True, llm_connection_tested=True, **kwargs)
    config.llm_config_hash = compute_llm_config_hash(config)
    return config


class TestGuards:

    def test_disabled_gives_noop(self):
        config = ready(OPENAI)
        config.enable_llm_enhancement = False
        assert isinstance(create_provider(config), NoopProvider)

    def test_untested_gives_noop(self):
        config = ready(OPENAI)
        config.llm_connection_tested = False
        assert isinstance(create_provider(config), NoopProvider)

    def test_stale_hash_gives_noop(self):
        config = ready(OPENAI)
        config.llm = OpenAICompatibleConfig(openai_api_key="sk-other", openai_model="gpt-4o-mini")
        assert isinstance(create_provider(config), NoopProvider)

    def test_for_test_bypasses_guards(self):
        config = AppConfig(llm=OPENAI)
        assert isinstance(create_provider(config, for_test=True), OpenAICompatibleProvider)


class TestDispatch:

    @pytest.mark.parametrize("llm,expected", [
        (FoundryConfig(endpoint="https://f", api_key="k"), FoundryProvider),
        (OPENAI, OpenAICompatibleProvider),
        (OpenAICompatibleConfig(provider="litellm", openai_api_key="k", openai_model="m"), OpenAICompatibleProvider),
        (AnthropicConfig(anthropic_api_key="k", anthropic_model="claude"), AnthropicProvider),
        (CustomConfig(custom_endpoint="https://c", custom_token="t", custom_token_attr="X-Key"), CustomProvider),
    ])
    def test_selects_matching_provider(self, llm, expected):
        assert type(create_provider(ready(llm))) is expected

    def test_bedrock(self):
        llm = BedrockConfig(region="us-east-1", profile="", access_key_id="A", secret_access_key="S", model_id="m")
        with patch.object(BedrockProvider, "_create_client", return_value=object()) as create_client:
            provider = create_provider(ready(llm))
        assert isinstance(provider, BedrockProvider)
        create_client.assert_called_once_with("us-east-1", "", "A", "S", 30.0)

    def test_unknown_tag_fails_closed(self):
        config = ready(OPENAI)
        config.llm = OpenAICompatibleConfig(provider="mystery", openai_api_key="k", openai_model="m")
        with pytest.raises(UnsupportedProviderError):
            create_provider(config, for_test=True)

    def test_mismatched_variant_fails_closed(self):
        config = AppConfig(llm=AnthropicConfig(provider="openai", anthropic_api_key="k"))
        with pytest.raises(UnsupportedProviderError):
            create_provider(config, for_test=True)

    def test_prompt_inputs_reach_provider(self):
        config = ready(OPENAI, custom_prompt="  Be brief.  ", dictionary=["Vox"], speech_languages=["en"])
        provider = create_provider(config)

        assert provider.has_custom_prompt is True
        assert provider.system_prompt.startswith("SPEAKER LANGUAGE CONTEXT:")
        assert '"Vox"' in provider.system_prompt
        assert provider.system_prompt.endswith("Be brief.")

    def test_plain_prompt_without_extras(self):
        provider = create_provider(ready(OPENAI))
        assert provider.system_prompt == LLM_SYSTEM_PROMPT
        assert provider.has_custom_prompt is False


class TestConnection:

    @pytest.mark.asyncio
    async def test_not_configured_makes_no_request(self):
        config = AppConfig(llm=OpenAICompatibleConfig(openai_api_key="", openai_model="m"))
        with patch("voxclean.cleanup.factory.create_provider") as factory:
            with pytest.raises(ProviderNotConfiguredError):
                await test_connection(config)
        factory.assert_not_called()

    @pytest.mark.asyncio
    async def test_runs_sample_through_provider_even_when_untested(self):
        requests = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            return httpx.Response(200, json={
                "id": "x",
                "object": "chat.completion",
                "created": 0,
                "model": "gpt-4o-mini",
                "choices": [{"index": 0, "message": {"role": "assistant", "content": "This is a quick connection test."},
                             "finish_reason": "stop"}],
            })

        config = AppConfig(llm=OPENAI)
        http_client = httpx.AsyncClient(transport=httpx.MockTransport(handler))

        result = await test_connection(config, http_client=http_client)

        assert result == "This is a quick connection test."
        assert len(requests) == 1
        assert CONNECTION_TEST_TEXT in requests[0].content.decode()

    @pytest.mark.asyncio
    async def test_provider_errors_propagate(self):
        provider = AsyncMock()
        provider.correct.side_effect = RuntimeError("boom")
        with patch("voxclean.cleanup.factory.create_provider", return_value=provider):
            with pytest.raises(RuntimeError, match="boom"):
                await test_connection(AppConfig(llm=OPENAI))
