"""
Provider selection.

Turns the persisted configuration into exactly one cleanup provider. Unknown
provider tags are rejected rather than quietly replaced by a no-op.
"""

from typing import Optional
import logging

import httpx

from ..config import (
    OPENAI_COMPATIBLE_PROVIDERS,
    AnthropicConfig,
    AppConfig,
    BedrockConfig,
    CustomConfig,
    FoundryConfig,
    OpenAICompatibleConfig,
    compute_llm_config_hash,
    is_provider_configured,
)
from ..errors import ProviderNotConfiguredError, UnsupportedProviderError
from .prompts import build_system_prompt
from .providers import (
    DEFAULT_TIMEOUT,
    AnthropicProvider,
    BedrockProvider,
    CleanupProvider,
    CustomProvider,
    FoundryProvider,
    NoopProvider,
    OpenAICompatibleProvider,
)

logger = logging.getLogger(__name__)

CONNECTION_TEST_TEXT = "um so this is uh a quick connection test"


def create_provider(
    config: AppConfig,
    for_test: bool = False,
    timeout: float = DEFAULT_TIMEOUT,
    http_client: Optional[httpx.AsyncClient] = None,
) -> CleanupProvider:
    """
    Build the cleanup provider selected by the configuration.

    Outside of connection tests, enhancement only runs once it is switched on
    and a connection test has passed against the current provider settings;
    otherwise a ``NoopProvider`` passes the raw text through.

    Args:
        config: Application configuration
        for_test: Skip the enabled/tested gates (used by connection tests and the pipeline harness)
        timeout: Per-request timeout in seconds
        http_client: Optional shared HTTP client for the HTTP-based providers

    Returns:
        A provider ready to ``correct()`` text.

    Raises:
        UnsupportedProviderError: If the provider tag is not recognised.
    """
    if not for_test:
        if not config.enable_llm_enhancement:
            logger.info("LLM enhancement disabled, using NoopProvider")
            return NoopProvider()

        if not config.llm_connection_tested or compute_llm_config_hash(config) != config.llm_config_hash:
            logger.info("LLM connection not tested or config changed, using NoopProvider")
            return NoopProvider()

    custom_prompt = (config.custom_prompt or "").strip()
    has_custom_prompt = bool(custom_prompt)
    system_prompt = build_system_prompt(custom_prompt, config.dictionary, config.speech_languages)

    llm = config.llm
    provider = getattr(llm, "provider", None)
    logger.info(f"Creating provider: {provider}")
    logger.info(f"Custom prompt: {'YES' if has_custom_prompt else 'NO'}")
    logger.debug(f"Full system prompt length: {len(system_prompt)}")

    if isinstance(llm, BedrockConfig) and provider == "bedrock":
        return BedrockProvider(
            region=llm.region,
            model_id=llm.model_id,
            system_prompt=system_prompt,
            has_custom_prompt=has_custom_prompt,
            profile=llm.profile,
            access_key_id=llm.access_key_id,
            secret_access_key=llm.secret_access_key,
            timeout=timeout,
        )

    if isinstance(llm, AnthropicConfig) and provider == "anthropic":
        return AnthropicProvider(
            api_key=llm.anthropic_api_key,
            model=llm.anthropic_model,
            system_prompt=system_prompt,
            has_custom_prompt=has_custom_prompt,
            timeout=timeout,
            http_client=http_client,
        )

    if isinstance(llm, OpenAICompatibleConfig) and provider in OPENAI_COMPATIBLE_PROVIDERS:
        return OpenAICompatibleProvider(
            endpoint=llm.openai_endpoint,
            api_key=llm.openai_api_key,
            model=llm.openai_model,
            system_prompt=system_prompt,
            has_custom_prompt=has_custom_prompt,
            timeout=timeout,
            http_client=http_client,
        )

    if isinstance(llm, CustomConfig) and provider == "custom":
        return CustomProvider(
            endpoint=llm.custom_endpoint,
            token=llm.custom_token,
            token_attr=llm.custom_token_attr,
            token_send_as=llm.custom_token_send_as,
            model=llm.custom_model,
            system_prompt=system_prompt,
            has_custom_prompt=has_custom_prompt,
            timeout=timeout,
            http_client=http_client,
        )

    if isinstance(llm, FoundryConfig) and provider == "foundry":
        return FoundryProvider(
            endpoint=llm.endpoint,
            api_key=llm.api_key,
            model=llm.model,
            system_prompt=system_prompt,
            has_custom_prompt=has_custom_prompt,
            timeout=timeout,
            http_client=http_client,
        )

    raise UnsupportedProviderError(str(provider))


async def test_connection(
    config: AppConfig,
    timeout: float = DEFAULT_TIMEOUT,
    http_client: Optional[httpx.AsyncClient] = None,
) -> str:
    """
    Send a short sample phrase through the configured provider.

    Returns:
        The corrected sample text.

    Raises:
        ProviderNotConfiguredError: If required fields are missing; no request is made.
        VoxcleanError: Whatever the provider raises.
    """
    provider_tag = getattr(config.llm, "provider", "")
    if not is_provider_configured(provider_tag, config.llm):
        raise ProviderNotConfiguredError(provider_tag)

    provider = create_provider(config, for_test=True, timeout=timeout, http_client=http_client)
    return await provider.correct(CONNECTION_TEST_TEXT)


# Not a pytest test despite the name
test_connection.__test__ = False
