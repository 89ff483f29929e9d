"""
LLM provider abstractions for transcript cleanup.

Every backend implements the same single call, ``correct(raw_text)``, so the
rest of the application never sees a vendor wire format. Each call makes
exactly one upstream request: no retries, no fallback text. Errors are raised
to the caller, who decides whether to paste the raw transcription instead.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, Optional, Tuple
from urllib.parse import quote
import asyncio
import functools
import logging

import anthropic
import boto3
import httpx
import openai
from botocore.config import Config as BotoConfig
from botocore.exceptions import BotoCoreError, ClientError, ConnectTimeoutError, ReadTimeoutError

from ..errors import LlmConnectionError, LlmEmptyResponseError, LlmRequestError, LlmTimeoutError

logger = logging.getLogger(__name__)

# Correction, not open generation: keep sampling cold and output bounded
TEMPERATURE = 0.1
MAX_TOKENS = 4096
DEFAULT_TIMEOUT = 30.0

ANTHROPIC_API_URL = "https://api.anthropic.com"
ANTHROPIC_VERSION = "2023-06-01"


def _strip_trailing_slashes(url: str) -> str:
    return url.rstrip("/")


def _describe(error: Exception) -> str:
    # Some transport errors carry an empty message
    return str(error) or type(error).__name__


class CleanupProvider(ABC):
    """
    Abstract base class for cleanup providers.

    Subclasses only implement ``_enhance``; ``correct`` adds logging around it.
    A provider holds immutable configuration and no per-call state, so one
    instance can serve any number of sequential or concurrent calls.
    """

    def __init__(self, name: str, system_prompt: str = "", has_custom_prompt: bool = False):
        self.name = name
        self.system_prompt = system_prompt
        self.has_custom_prompt = has_custom_prompt

    async def correct(self, raw_text: str) -> str:
        """
        Clean up one utterance.

        Args:
            raw_text: Unprocessed recognizer output

        Returns:
            The corrected text, stripped of surrounding whitespace.

        Raises:
            LlmRequestError: If the upstream answers with a non-success status.
            LlmEmptyResponseError: If the upstream answers without usable text.
            LlmConnectionError: If no HTTP answer arrives (LlmTimeoutError on timeout).
        """
        logger.info(f"[{self.name}] Enhancing text (custom prompt: {'yes' if self.has_custom_prompt else 'no'})")
        logger.debug(f"[{self.name}] Raw text ({len(raw_text)} chars): {raw_text!r}")
        logger.debug(f"[{self.name}] System prompt: {self.system_prompt!r}")

        corrected_text = await self._enhance(raw_text)

        logger.info(f"[{self.name}] Enhanced text: {corrected_text!r}")
        logger.debug(
            f"[{self.name}] Response stats: length={len(corrected_text)}, "
            f"char_diff={len(corrected_text) - len(raw_text)}"
        )
        return corrected_text

    @abstractmethod
    async def _enhance(self, raw_text: str) -> str:
        """Send one correction request and return the stripped result."""

    def get_provider_name(self) -> str:
        """Get the name of this provider."""
        return self.name


class NoopProvider(CleanupProvider):
    """Returns the raw text untouched. Used when enhancement is switched off."""

    def __init__(self):
        super().__init__("Noop")

    async def correct(self, raw_text: str) -> str:
        return raw_text

    async def _enhance(self, raw_text: str) -> str:
        return raw_text


class OpenAICompatibleProvider(CleanupProvider):
    """
    Chat-completions provider for OpenAI and compatible servers.

    Covers OpenAI, DeepSeek, GLM, LiteLLM and local OpenAI-style servers. The
    request goes to ``{endpoint}/v1/chat/completions`` with a bearer key.
    """

    def __init__(
        self,
        endpoint: str,
        api_key: str,
        model: str,
        system_prompt: str,
        has_custom_prompt: bool = False,
        timeout: float = DEFAULT_TIMEOUT,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        super().__init__("OpenAICompatible", system_prompt, has_custom_prompt)
        self.endpoint = _strip_trailing_slashes(endpoint)
        self.model = model
        self.timeout = timeout
        self._client = openai.AsyncOpenAI(
            api_key=api_key,
            base_url=f"{self.endpoint}/v1",
            timeout=timeout,
            max_retries=0,
            http_client=http_client,
        )

    async def _enhance(self, raw_text: str) -> str:
        logger.debug(f"[{self.name}] POST {self.endpoint}/v1/chat/completions model={self.model}")
        try:
            response = await self._client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": self.system_prompt},
                    {"role": "user", "content": raw_text},
                ],
                temperature=TEMPERATURE,
                max_tokens=MAX_TOKENS,
            )
        except openai.APIStatusError as e:
            raise LlmRequestError(e.status_code, e.response.reason_phrase, e.response.text) from e
        except openai.APITimeoutError as e:
            raise LlmTimeoutError(self.timeout) from e
        except openai.APIConnectionError as e:
            raise LlmConnectionError(_describe(e)) from e

        choices = getattr(response, "choices", None) or []
        if not choices:
            raise LlmEmptyResponseError("no choices")

        message = getattr(choices[0], "message", None)
        content = getattr(message, "content", None)
        if not content or not content.strip():
            raise LlmEmptyResponseError("empty message content")

        return content.strip()


def _first_text_block(content: Any) -> Optional[str]:
    """Text of the first non-empty ``text`` block in an Anthropic response."""
    for block in content or []:
        if getattr(block, "type", None) != "text":
            continue
        text = getattr(block, "text", None)
        if text and text.strip():
            return text
    return None


class AnthropicProvider(CleanupProvider):
    """Anthropic Messages API; the system prompt travels as a top-level field."""

    def __init__(
        self,
        api_key: str,
        model: str,
        system_prompt: str,
        has_custom_prompt: bool = False,
        timeout: float = DEFAULT_TIMEOUT,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        super().__init__("Anthropic", system_prompt, has_custom_prompt)
        self.endpoint = ANTHROPIC_API_URL
        self.model = model
        self.timeout = timeout
        self._client = anthropic.AsyncAnthropic(
            api_key=api_key,
            base_url=self.endpoint,
            default_headers={"anthropic-version": ANTHROPIC_VERSION},
            timeout=timeout,
            max_retries=0,
            http_client=http_client,
        )

    async def _enhance(self, raw_text: str) -> str:
        logger.debug(f"[{self.name}] POST {self.endpoint}/v1/messages model={self.model}")
        try:
            response = await self._client.messages.create(
                model=self.model,
                system=self.system_prompt,
                messages=[{"role": "user", "content": raw_text}],
                temperature=TEMPERATURE,
                max_tokens=MAX_TOKENS,
            )
        except anthropic.APIStatusError as e:
            raise LlmRequestError(e.status_code, e.response.reason_phrase, e.response.text) from e
        except anthropic.APITimeoutError as e:
            raise LlmTimeoutError(self.timeout) from e
        except anthropic.APIConnectionError as e:
            raise LlmConnectionError(_describe(e)) from e

        text = _first_text_block(getattr(response, "content", None))
        if text is None:
            raise LlmEmptyResponseError("no text block")
        return text.strip()


class FoundryProvider(AnthropicProvider):
    """
    Anthropic-protocol endpoint hosted elsewhere (e.g. Azure AI Foundry).

    Same request shape as ``AnthropicProvider`` but sent to
    ``{endpoint}/v1/messages`` with a bearer token instead of ``x-api-key``.
    """

    def __init__(
        self,
        endpoint: str,
        api_key: str,
        model: str,
        system_prompt: str,
        has_custom_prompt: bool = False,
        timeout: float = DEFAULT_TIMEOUT,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        CleanupProvider.__init__(self, "Foundry", system_prompt, has_custom_prompt)
        self.endpoint = _strip_trailing_slashes(endpoint)
        self.model = model
        self.timeout = timeout
        self._client = anthropic.AsyncAnthropic(
            auth_token=api_key,
            base_url=self.endpoint,
            default_headers={"anthropic-version": ANTHROPIC_VERSION},
            timeout=timeout,
            max_retries=0,
            http_client=http_client,
        )


class BedrockProvider(CleanupProvider):
    """
    AWS Bedrock through the Converse API.

    Explicit access keys take priority over a named profile; with neither,
    boto3's default credential chain applies. boto3 is synchronous, so the
    call runs in the loop's default executor.
    """

    def __init__(
        self,
        region: str,
        model_id: str,
        system_prompt: str,
        has_custom_prompt: bool = False,
        profile: str = "",
        access_key_id: str = "",
        secret_access_key: str = "",
        timeout: float = DEFAULT_TIMEOUT,
        client: Any = None,
    ):
        super().__init__("Bedrock", system_prompt, has_custom_prompt)
        self.region = region
        self.model_id = model_id
        self.timeout = timeout
        self._client = client or self._create_client(region, profile, access_key_id, secret_access_key, timeout)

    @staticmethod
    def _create_client(region: str, profile: str, access_key_id: str, secret_access_key: str, timeout: float):
        try:
            if access_key_id and secret_access_key:
                session = boto3.Session(
                    aws_access_key_id=access_key_id,
                    aws_secret_access_key=secret_access_key,
                    region_name=region,
                )
            elif profile:
                session = boto3.Session(profile_name=profile, region_name=region)
            else:
                session = boto3.Session(region_name=region)

            return session.client(
                "bedrock-runtime",
                config=BotoConfig(read_timeout=timeout, connect_timeout=timeout, retries={"max_attempts": 1}),
            )
        except BotoCoreError as e:
            raise LlmConnectionError(_describe(e)) from e

    async def _enhance(self, raw_text: str) -> str:
        logger.debug(f"[{self.name}] converse region={self.region} model={self.model_id}")
        request = functools.partial(
            self._client.converse,
            modelId=self.model_id,
            system=[{"text": self.system_prompt}],
            messages=[{"role": "user", "content": [{"text": raw_text}]}],
            inferenceConfig={"temperature": TEMPERATURE, "maxTokens": MAX_TOKENS},
        )

        loop = asyncio.get_event_loop()
        try:
            response = await loop.run_in_executor(None, request)
        except ClientError as e:
            error = e.response.get("Error", {})
            status = e.response.get("ResponseMetadata", {}).get("HTTPStatusCode", 0)
            raise LlmRequestError(status, error.get("Code", "ClientError"), error.get("Message", str(e))) from e
        except (ReadTimeoutError, ConnectTimeoutError) as e:
            raise LlmTimeoutError(self.timeout) from e
        except BotoCoreError as e:
            # NoCredentialsError and EndpointConnectionError end up here
            raise LlmConnectionError(_describe(e)) from e

        blocks = (((response or {}).get("output") or {}).get("message") or {}).get("content") or []
        for block in blocks:
            text = block.get("text") if isinstance(block, dict) else None
            if text and text.strip():
                return text.strip()
        raise LlmEmptyResponseError("no text block")


class CustomProvider(CleanupProvider):
    """
    Bring-your-own endpoint speaking the chat-completions shape.

    The credential can be sent as a header, a JSON body field or a query
    parameter, named by ``token_attr``. Without both a token and an attribute
    name, no credential is attached.
    """

    def __init__(
        self,
        endpoint: str,
        token: str,
        token_attr: str,
        token_send_as: str,
        model: str,
        system_prompt: str,
        has_custom_prompt: bool = False,
        timeout: float = DEFAULT_TIMEOUT,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        super().__init__("Custom", system_prompt, has_custom_prompt)
        self.endpoint = _strip_trailing_slashes(endpoint)
        self.token = token
        self.token_attr = token_attr
        self.token_send_as = token_send_as
        self.model = model
        self.timeout = timeout
        self._http_client = http_client

    def build_request(self, raw_text: str) -> Tuple[str, Dict[str, str], Dict[str, Any]]:
        """Return ``(url, headers, body)`` for one correction request."""
        url = self.endpoint
        headers = {"Content-Type": "application/json"}
        body: Dict[str, Any] = {
            "messages": [
                {"role": "system", "content": self.system_prompt},
                {"role": "user", "content": raw_text},
            ],
            "temperature": TEMPERATURE,
            "max_tokens": MAX_TOKENS,
        }

        # Some backends reject an empty model field outright
        if self.model:
            body["model"] = self.model

        if self.token and self.token_attr:
            if self.token_send_as == "header":
                headers[self.token_attr] = self.token
            elif self.token_send_as == "body":
                body[self.token_attr] = self.token
            elif self.token_send_as == "query":
                separator = "&" if "?" in url else "?"
                name = quote(self.token_attr, safe="!~*'()")
                value = quote(self.token, safe="!~*'()")
                url = f"{url}{separator}{name}={value}"
            else:
                logger.warning(f"[{self.name}] Unknown token placement {self.token_send_as!r}, sending no credential")

        return url, headers, body

    async def _enhance(self, raw_text: str) -> str:
        url, headers, body = self.build_request(raw_text)
        logger.debug(f"[{self.name}] POST {self.endpoint} token_send_as={self.token_send_as}")

        try:
            if self._http_client is not None:
                response = await self._http_client.post(url, json=body, headers=headers, timeout=self.timeout)
            else:
                async with httpx.AsyncClient(timeout=self.timeout) as client:
                    response = await client.post(url, json=body, headers=headers)
        except httpx.TimeoutException as e:
            raise LlmTimeoutError(self.timeout) from e
        except httpx.TransportError as e:
            raise LlmConnectionError(_describe(e)) from e

        if not response.is_success:
            raise LlmRequestError(response.status_code, response.reason_phrase, response.text)

        try:
            data = response.json()
        except ValueError as e:
            raise LlmEmptyResponseError("response is not JSON") from e
        choices = data.get("choices") if isinstance(data, dict) else None
        if not isinstance(choices, list) or not choices:
            raise LlmEmptyResponseError("no choices")

        message = choices[0].get("message") if isinstance(choices[0], dict) else None
        content = message.get("content") if isinstance(message, dict) else None
        if not isinstance(content, str) or not content.strip():
            raise LlmEmptyResponseError("empty message content")

        return content.strip()
