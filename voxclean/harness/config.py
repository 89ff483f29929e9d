"""
Configuration for pipeline test runs.

The file named by ``VOXCLEAN_PIPELINE_TEST_CONFIG`` looks like::

    {
      "llm": {"provider": "openai", "api_key": "...", "model": "gpt-4o-mini",
              "base_url": "https://api.openai.com"},
      "whisper": {"model_path": "/models/whisper-base"}
    }

Without the variable, pipeline tests are skipped.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional, Union
import json
import logging
import os

from ..config import (
    OPENAI_COMPATIBLE_PROVIDERS,
    AnthropicConfig,
    BedrockConfig,
    CustomConfig,
    FoundryConfig,
    LlmConfig,
    OpenAICompatibleConfig,
)

logger = logging.getLogger(__name__)

PIPELINE_CONFIG_ENV_VAR = "VOXCLEAN_PIPELINE_TEST_CONFIG"


@dataclass
class PipelineTestLlmConfig:
    provider: str
    api_key: str
    model: str
    base_url: Optional[str] = None


@dataclass
class PipelineTestConfig:
    llm: PipelineTestLlmConfig
    whisper_model_path: str = ""

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PipelineTestConfig":
        llm = data.get("llm") or {}
        whisper = data.get("whisper") or {}
        return cls(
            llm=PipelineTestLlmConfig(
                provider=str(llm.get("provider") or "foundry"),
                api_key=str(llm.get("api_key") or ""),
                model=str(llm.get("model") or ""),
                base_url=llm.get("base_url") or None,
            ),
            whisper_model_path=str(whisper.get("model_path") or ""),
        )


def load_pipeline_test_config(path: Optional[Union[str, Path]] = None) -> Optional[PipelineTestConfig]:
    """
    Read the pipeline test config.

    Args:
        path: Explicit config file; defaults to ``$VOXCLEAN_PIPELINE_TEST_CONFIG``

    Returns:
        The parsed config, or None when no config file is named.

    Raises:
        FileNotFoundError: If the named file does not exist.
    """
    config_path = path or os.getenv(PIPELINE_CONFIG_ENV_VAR)
    if not config_path:
        return None

    with open(config_path, "r", encoding="utf-8") as f:
        data = json.load(f)
    config = PipelineTestConfig.from_dict(data)
    logger.info(f"Pipeline test config: provider={config.llm.provider} model={config.llm.model}")
    return config


def build_llm_config(test_config: PipelineTestConfig) -> LlmConfig:
    """Map the flat test LLM settings onto the matching provider config."""
    llm = test_config.llm
    provider = llm.provider

    if provider == "anthropic":
        return AnthropicConfig(anthropic_api_key=llm.api_key, anthropic_model=llm.model)

    if provider in OPENAI_COMPATIBLE_PROVIDERS:
        return OpenAICompatibleConfig(
            provider=provider,
            openai_endpoint=llm.base_url or "https://api.openai.com",
            openai_api_key=llm.api_key,
            openai_model=llm.model,
        )

    if provider == "bedrock":
        # base_url carries the AWS region for Bedrock
        return BedrockConfig(
            region=llm.base_url or "us-east-1",
            access_key_id=llm.api_key,
            model_id=llm.model,
        )

    if provider == "custom":
        return CustomConfig(
            custom_endpoint=llm.base_url or "",
            custom_token=llm.api_key,
            custom_token_attr="Authorization",
            custom_token_send_as="header",
            custom_model=llm.model,
        )

    return FoundryConfig(endpoint=llm.base_url or "", api_key=llm.api_key, model=llm.model)
