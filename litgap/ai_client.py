"""Unified async client for text-completion AI providers.

Supported providers:
    - anthropic: Anthropic Messages API (default claude-haiku-4-5-20251001)
    - openai: OpenAI Chat Completions (default gpt-4o-mini)
    - google: Gemini generateContent (default gemini-1.5-flash)
    - custom: any OpenAI-compatible endpoint at a user-supplied base URL

HTTP failures are mapped to a small exception hierarchy rooted at
AIClientError so callers can react to a bad key differently from a
temporary rate limit.

Example Usage:
    client = AIClient(Provider.ANTHROPIC, api_key="sk-...")
    check = await client.test_connection()
    if check.ok:
        text = await client.complete("Summarize this field in one sentence")
"""

import logging
import os
from enum import Enum
from typing import Any

import aiohttp

from .config import (
    AI_API_KEY_ENV,
    AI_BASE_URL_ENV,
    AI_DEFAULT_MODELS,
    AI_ERROR_DETAIL_LENGTH,
    AI_MAX_TOKENS,
    AI_MODEL_ENV,
    AI_PROVIDER_ENV,
    AI_REQUEST_TIMEOUT,
    ANTHROPIC_API_URL,
    ANTHROPIC_VERSION,
    GOOGLE_API_BASE_URL,
    OPENAI_API_BASE_URL,
)
from .models import ConnectionCheck

logger = logging.getLogger(__name__)

CONNECTION_TEST_PROMPT = "Reply with the single word: OK"


class AIClientError(Exception):
    """Base class for AI provider failures."""


class InvalidKeyError(AIClientError):
    """Provider rejected the credentials (HTTP 401/403)."""


class AIRateLimitError(AIClientError):
    """Provider rate limit reached (HTTP 429)."""


class AINetworkError(AIClientError):
    """Request never produced an HTTP response."""


class AIAPIError(AIClientError):
    """Any other non-2xx response, or a response body without completion text."""

    def __init__(self, status: int, detail: str = ""):
        self.status = status
        self.detail = detail
        super().__init__(f"API error {status}" + (f": {detail}" if detail else ""))


class UnknownProviderError(ValueError):
    """Provider name is not one of the supported providers."""


class Provider(Enum):
    ANTHROPIC = "anthropic"
    OPENAI = "openai"
    GOOGLE = "google"
    CUSTOM = "custom"

    @classmethod
    def from_name(cls, name: str) -> "Provider":
        """Look up a provider by its case-insensitive name.

        Raises:
            UnknownProviderError: If the name is not supported.
        """
        try:
            return cls((name or "").strip().lower())
        except ValueError:
            supported = ", ".join(p.value for p in cls)
            raise UnknownProviderError(f"Unknown provider: {name!r} (supported: {supported})") from None

    @property
    def default_model(self) -> str:
        return AI_DEFAULT_MODELS[self.value]


class AIClient:
    """Completion client bound to one provider, key and model.

    Attributes:
        provider (Provider): Target provider
        model (str): Model name, the provider default when not given
        custom_base_url (str): Root URL for the custom provider, no trailing slash
    """

    def __init__(
        self,
        provider: Provider | str,
        api_key: str,
        model: str | None = None,
        custom_base_url: str | None = None,
        session: aiohttp.ClientSession | None = None,
        timeout: float = AI_REQUEST_TIMEOUT,
    ):
        """Initialize client.

        Raises:
            UnknownProviderError: If provider is given by an unknown name.
            ValueError: If api_key is empty, or the custom provider has no base URL.
        """
        if isinstance(provider, str):
            provider = Provider.from_name(provider)
        if not api_key or not api_key.strip():
            raise ValueError("api_key is required")

        self.provider = provider
        self.model = model.strip() if model and model.strip() else provider.default_model
        self.custom_base_url = (custom_base_url or "").strip().rstrip("/")
        self.timeout = timeout
        self._api_key = api_key.strip()
        self._session = session

        if provider is Provider.CUSTOM and not self.custom_base_url:
            raise ValueError("custom_base_url is required for the custom provider")

    @classmethod
    def from_env(cls, environ: dict[str, str] | None = None) -> "AIClient | None":
        """Build a client from LITGAP_AI_* environment variables.

        Returns:
            AIClient, or None when provider or API key is not set.
        """
        env = os.environ if environ is None else environ
        provider = env.get(AI_PROVIDER_ENV, "")
        api_key = env.get(AI_API_KEY_ENV, "")
        if not provider or not api_key:
            return None
        return cls(
            provider,
            api_key,
            model=env.get(AI_MODEL_ENV) or None,
            custom_base_url=env.get(AI_BASE_URL_ENV) or None,
        )

    async def complete(self, prompt: str, system_prompt: str = "") -> str:
        """Send a prompt and return the response text.

        Raises:
            InvalidKeyError: Credentials rejected
            AIRateLimitError: Provider rate limit reached
            AINetworkError: Connection failure or timeout
            AIAPIError: Other non-2xx status or malformed response body
        """
        logger.debug("Sending request to provider=%s model=%s", self.provider.value, self.model)
        url, headers, body = self._build_request(prompt, system_prompt)
        data = await self._post(url, headers, body)
        return self._extract_text(data)

    async def test_connection(self) -> ConnectionCheck:
        """Verify credentials and connectivity with a minimal prompt. Never raises AIClientError."""
        try:
            result = await self.complete(CONNECTION_TEST_PROMPT)
        except AIClientError as e:
            logger.debug("Connection test failed: %s", e)
            return ConnectionCheck(ok=False, error=str(e) or type(e).__name__)

        logger.debug("Connection test successful. Response: %r", result.strip()[:20])
        return ConnectionCheck(ok=True)

    def _build_request(self, prompt: str, system_prompt: str) -> tuple[str, dict[str, str], dict[str, Any]]:
        if self.provider is Provider.ANTHROPIC:
            body: dict[str, Any] = {
                "model": self.model,
                "max_tokens": AI_MAX_TOKENS,
                "messages": [{"role": "user", "content": prompt}],
            }
            if system_prompt:
                body["system"] = system_prompt
            headers = {
                "Content-Type": "application/json",
                "x-api-key": self._api_key,
                "anthropic-version": ANTHROPIC_VERSION,
            }
            return ANTHROPIC_API_URL, headers, body

        if self.provider is Provider.GOOGLE:
            contents = []
            # Gemini has no system role here; the instruction goes in as a prior exchange
            if system_prompt:
                contents.append({"role": "user", "parts": [{"text": system_prompt}]})
                contents.append({"role": "model", "parts": [{"text": "Understood. I will follow these instructions."}]})
            contents.append({"role": "user", "parts": [{"text": prompt}]})
            url = f"{GOOGLE_API_BASE_URL}/{self.model}:generateContent"
            body = {"contents": contents, "generationConfig": {"maxOutputTokens": AI_MAX_TOKENS}}
            headers = {"Content-Type": "application/json", "x-goog-api-key": self._api_key}
            return url, headers, body

        # OpenAI and OpenAI-compatible custom endpoints
        base_url = OPENAI_API_BASE_URL if self.provider is Provider.OPENAI else self.custom_base_url
        messages = []
        if system_prompt:
            messages.append({"role": "system", "content": system_prompt})
        messages.append({"role": "user", "content": prompt})
        headers = {"Content-Type": "application/json", "Authorization": f"Bearer {self._api_key}"}
        body = {"model": self.model, "max_tokens": AI_MAX_TOKENS, "messages": messages}
        return f"{base_url}/v1/chat/completions", headers, body

    def _extract_text(self, data: Any) -> str:
        try:
            if self.provider is Provider.ANTHROPIC:
                return str(data["content"][0]["text"])
            if self.provider is Provider.GOOGLE:
                return str(data["candidates"][0]["content"]["parts"][0]["text"])
            return str(data["choices"][0]["message"]["content"])
        except (KeyError, IndexError, TypeError) as e:
            raise AIAPIError(200, f"Unexpected response shape: {e}") from e

    async def _post(self, url: str, headers: dict[str, str], body: dict[str, Any]) -> Any:
        if self._session is not None:
            return await self._send(self._session, url, headers, body)

        timeout = aiohttp.ClientTimeout(total=self.timeout)
        async with aiohttp.ClientSession(timeout=timeout) as session:
            return await self._send(session, url, headers, body)

    async def _send(
        self, session: aiohttp.ClientSession, url: str, headers: dict[str, str], body: dict[str, Any]
    ) -> Any:
        try:
            async with session.post(url, headers=headers, json=body) as response:
                if 200 <= response.status < 300:
                    try:
                        return await response.json(content_type=None)
                    except ValueError as e:
                        raise AIAPIError(response.status, "Response body is not valid JSON") from e

                if response.status in (401, 403):
                    logger.debug("Authentication error (%d)", response.status)
                    raise InvalidKeyError(f"Invalid API key (HTTP {response.status})")

                if response.status == 429:
                    logger.debug("Rate limit reached (429)")
                    raise AIRateLimitError("Rate limit reached")

                detail = (await response.text())[:AI_ERROR_DETAIL_LENGTH]
                logger.debug("API error %d: %s", response.status, detail)
                raise AIAPIError(response.status, detail)

        except TimeoutError as e:
            raise AINetworkError(f"Request timed out after {self.timeout}s") from e
        except aiohttp.ClientError as e:
            logger.debug("Network error: %s", e)
            raise AINetworkError(str(e)) from e
