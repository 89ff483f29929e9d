"""
Persisted configuration for LLM enhancement.

The settings store owns the file; this module only reads and writes the
LLM-related slice of it: which provider is selected, that provider's
credentials, and the prompt inputs (custom prompt, dictionary, languages).
"""

from dataclasses import asdict, dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, List, Optional, Union
import hashlib
import json
import locale
import logging
import os

from .cleanup.prompts import resolve_whisper_language
from .errors import UnsupportedProviderError

logger = logging.getLogger(__name__)

CONFIG_ENV_VAR = "VOXCLEAN_CONFIG"
DEFAULT_CONFIG_PATH = Path.home() / ".config" / "voxclean" / "config.json"

OPENAI_COMPATIBLE_PROVIDERS = ("openai", "deepseek", "glm", "litellm")
TOKEN_SEND_AS_VALUES = ("header", "body", "query")


@dataclass(frozen=True)
class FoundryConfig:
    """Anthropic-protocol endpoint authenticated with a bearer key."""
    endpoint: str = ""
    api_key: str = ""
    model: str = "gpt-4o"
    provider: str = "foundry"


@dataclass(frozen=True)
class BedrockConfig:
    """AWS Bedrock, authenticated by access keys, a named profile or the default chain."""
    region: str = ""
    profile: str = ""
    access_key_id: str = ""
    secret_access_key: str = ""
    model_id: str = ""
    provider: str = "bedrock"


@dataclass(frozen=True)
class OpenAICompatibleConfig:
    """Any chat-completions endpoint: OpenAI, DeepSeek, GLM, LiteLLM, local servers."""
    provider: str = "openai"
    openai_endpoint: str = "https://api.openai.com"
    openai_api_key: str = ""
    openai_model: str = ""


@dataclass(frozen=True)
class AnthropicConfig:
    anthropic_api_key: str = ""
    anthropic_model: str = ""
    provider: str = "anthropic"


@dataclass(frozen=True)
class CustomConfig:
    """Bring-your-own endpoint with configurable token placement."""
    custom_endpoint: str = ""
    custom_token: str = ""
    custom_token_attr: str = ""
    custom_token_send_as: str = "header"
    custom_model: str = ""
    provider: str = "custom"


LlmConfig = Union[FoundryConfig, BedrockConfig, OpenAICompatibleConfig, AnthropicConfig, CustomConfig]

_VARIANTS = {
    "foundry": FoundryConfig,
    "bedrock": BedrockConfig,
    "anthropic": AnthropicConfig,
    "custom": CustomConfig,
}
for _tag in OPENAI_COMPATIBLE_PROVIDERS:
    _VARIANTS[_tag] = OpenAICompatibleConfig


def llm_config_from_dict(data: Dict[str, Any]) -> LlmConfig:
    """
    Build the config variant selected by ``data["provider"]``.

    Keys that belong to other providers are ignored; missing or null fields
    fall back to the variant's defaults.

    Raises:
        UnsupportedProviderError: If the provider tag is unknown.
    """
    provider = str(data.get("provider") or "foundry")
    variant = _VARIANTS.get(provider)
    if variant is None:
        raise UnsupportedProviderError(provider)

    values: Dict[str, Any] = {}
    for f in fields(variant):
        if f.name == "provider":
            continue
        value = data.get(f.name)
        if value is not None:
            values[f.name] = str(value)

    if variant is OpenAICompatibleConfig:
        values["provider"] = provider
    return variant(**values)


@dataclass
class AppConfig:
    """The LLM-related settings the cleanup core reads."""
    llm: LlmConfig = field(default_factory=FoundryConfig)
    enable_llm_enhancement: bool = False
    llm_connection_tested: bool = False
    llm_config_hash: str = ""
    custom_prompt: str = ""
    dictionary: List[str] = field(default_factory=list)
    speech_languages: List[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AppConfig":
        return cls(
            llm=llm_config_from_dict(data.get("llm") or {}),
            enable_llm_enhancement=bool(data.get("enable_llm_enhancement", False)),
            llm_connection_tested=bool(data.get("llm_connection_tested", False)),
            llm_config_hash=str(data.get("llm_config_hash") or ""),
            custom_prompt=str(data.get("custom_prompt") or ""),
            dictionary=[str(term) for term in data.get("dictionary") or []],
            speech_languages=[str(code) for code in data.get("speech_languages") or []],
        )

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def default_speech_languages() -> List[str]:
    """First-run speech languages: the system locale, if Whisper knows it."""
    locale_name = locale.getlocale()[0] or ""
    code = resolve_whisper_language(locale_name.replace("_", "-"))
    return [code] if code else []


def default_config_path() -> Path:
    """Config file location, honouring the VOXCLEAN_CONFIG override."""
    override = os.getenv(CONFIG_ENV_VAR)
    return Path(override).expanduser() if override else DEFAULT_CONFIG_PATH


def load_config(path: Optional[Union[str, Path]] = None) -> AppConfig:
    """
    Load the configuration file, or defaults if it does not exist.

    Raises:
        UnsupportedProviderError: If the stored provider tag is unknown.
        json.JSONDecodeError: If the file is not valid JSON.
    """
    config_path = Path(path) if path else default_config_path()
    if not config_path.exists():
        logger.info(f"No config at {config_path}, using defaults")
        return AppConfig(speech_languages=default_speech_languages())

    with open(config_path, "r", encoding="utf-8") as f:
        data = json.load(f)
    return AppConfig.from_dict(data)


def save_config(config: AppConfig, path: Optional[Union[str, Path]] = None) -> Path:
    """Write the configuration as JSON and return the path written."""
    config_path = Path(path) if path else default_config_path()
    config_path.parent.mkdir(parents=True, exist_ok=True)
    with open(config_path, "w", encoding="utf-8") as f:
        json.dump(config.to_dict(), f, indent=2)
    return config_path


def _filled(*values: str) -> bool:
    return all(value and value.strip() for value in values)


def is_provider_configured(provider: str, llm: Optional[LlmConfig]) -> bool:
    """
    Check that every field the provider needs is present.

    This is a precondition check only; nothing is sent over the network. A
    config whose variant does not match ``provider`` counts as not configured.
    """
    if llm is None or _VARIANTS.get(provider) is not type(llm) or llm.provider != provider:
        return False

    if isinstance(llm, FoundryConfig):
        return _filled(llm.endpoint, llm.api_key, llm.model)
    if isinstance(llm, BedrockConfig):
        has_credentials = _filled(llm.profile) or _filled(llm.access_key_id, llm.secret_access_key)
        return _filled(llm.region, llm.model_id) and has_credentials
    if isinstance(llm, OpenAICompatibleConfig):
        return _filled(llm.openai_endpoint, llm.openai_api_key, llm.openai_model)
    if isinstance(llm, AnthropicConfig):
        return _filled(llm.anthropic_api_key, llm.anthropic_model)
    if isinstance(llm, CustomConfig):
        return _filled(llm.custom_endpoint, llm.custom_token, llm.custom_token_attr)
    return False


def get_llm_model_name(llm: LlmConfig) -> str:
    """Model identifier of the active provider, for display and logging."""
    if isinstance(llm, FoundryConfig):
        return llm.model
    if isinstance(llm, BedrockConfig):
        return llm.model_id
    if isinstance(llm, OpenAICompatibleConfig):
        return llm.openai_model
    if isinstance(llm, AnthropicConfig):
        return llm.anthropic_model
    if isinstance(llm, CustomConfig):
        return llm.custom_model
    raise UnsupportedProviderError(getattr(llm, "provider", repr(llm)))


def compute_llm_config_hash(config: AppConfig) -> str:
    """
    Fingerprint the active provider and its connection fields.

    Fields of other providers do not take part, so switching back and forth
    between providers only invalidates a passed connection test when the
    selected provider's own settings change.
    """
    relevant = asdict(config.llm)
    payload = json.dumps(relevant, sort_keys=True)
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()[:16]
