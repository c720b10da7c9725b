"""
SpotMe LLM Client Interface
===========================

Provider-agnostic AI client. One call per turn:
system prompt (persona + recent workouts) and the user's text in,
AIResponse (reply text, optional WorkoutData, suggestions) out.

Configuration and credential problems fail before any network call.
Network and non-2xx errors are retried up to the configured budget;
nothing is persisted per attempt, so retrying cannot double-log a workout.
"""

import asyncio
import logging
from typing import Protocol, Optional, Sequence, List, Tuple
from urllib.parse import urlparse

import requests
import google.generativeai as genai
from google.api_core import exceptions as google_exceptions
from pydantic import ValidationError

from config import Settings
from spotme.constants import DEFAULT_SUGGESTIONS, ErrorMessages
from spotme.errors import (
    ConfigurationError, InvalidURL, MissingAPIKey,
    NetworkError, APIError, InvalidResponse,
)
from spotme.keystore import KeyStore, resolve_api_key
from spotme.parser import extract_workout_data
from spotme.prompts import build_system_prompt
from spotme.schemas import (
    AIResponse, ChatCompletion, ChatCompletionMessage, ChatCompletionRequest,
)

logger = logging.getLogger(__name__)


class AIClient(Protocol):
    """
    Protocol for AI clients.
    All implementations must provide send_message().
    """

    async def send_message(self, user_text: str, recent_workouts: Sequence) -> AIResponse:
        """Get the assistant reply for one user turn."""
        ...


def build_response(content: str) -> AIResponse:
    """Wrap raw reply text; the structured block stays in `message` for the caller to strip."""
    if not content or not content.strip():
        return AIResponse(message=ErrorMessages.EMPTY_REPLY, suggestions=list(DEFAULT_SUGGESTIONS))

    return AIResponse(
        message=content,
        workout_data=extract_workout_data(content),
        suggestions=list(DEFAULT_SUGGESTIONS),
    )


class RetryingClient:
    """
    Shared turn flow: check config, then run the blocking provider call in a
    worker thread with a fixed retry budget.
    """

    provider = ""

    def __init__(self, settings=Settings, key_store: Optional[KeyStore] = None):
        self.settings = settings
        self.key_store = key_store
        self.max_attempts = max(1, int(settings.MAX_RETRIES))
        self.retry_backoff = settings.RETRY_BACKOFF
        self.timeout = settings.REQUEST_TIMEOUT
        self.max_tokens = settings.AI_MAX_TOKENS
        self.temperature = settings.AI_TEMPERATURE

    def _get_api_key(self) -> str:
        api_key = resolve_api_key(self.provider, self.settings, self.key_store)
        if not api_key:
            raise MissingAPIKey(self.provider)
        return api_key

    def _prepare(self) -> str:
        """Validate configuration; returns the credential."""
        return self._get_api_key()

    def _complete(self, system_prompt: str, user_text: str, api_key: str) -> str:
        raise NotImplementedError

    async def send_message(self, user_text: str, recent_workouts: Sequence) -> AIResponse:
        api_key = self._prepare()
        system_prompt = build_system_prompt(recent_workouts)

        content = await self._complete_with_retries(system_prompt, user_text, api_key)
        return build_response(content)

    async def _complete_with_retries(self, system_prompt: str, user_text: str, api_key: str) -> str:
        last_error = None
        for attempt in range(1, self.max_attempts + 1):
            try:
                return await asyncio.to_thread(self._complete, system_prompt, user_text, api_key)
            except (NetworkError, APIError) as e:
                last_error = e
                logger.warning(
                    f"{self.provider} attempt {attempt}/{self.max_attempts} failed: {e}"
                )
                if attempt < self.max_attempts and self.retry_backoff:
                    await asyncio.sleep(self.retry_backoff * attempt)

        raise last_error


class OpenAIChatClient(RetryingClient):
    """Chat-completion endpoint over HTTP (OpenAI wire format)."""

    provider = "openai"

    def __init__(
        self,
        settings=Settings,
        key_store: Optional[KeyStore] = None,
        http: Optional[requests.Session] = None,
    ):
        super().__init__(settings, key_store)
        self.endpoint = settings.AI_ENDPOINT
        self.model_name = settings.AI_MODEL
        self.http = http or requests.Session()

    def _check_endpoint(self):
        try:
            parsed = urlparse(self.endpoint or "")
        except ValueError as e:
            raise InvalidURL(self.endpoint) from e
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            raise InvalidURL(self.endpoint)

    def _prepare(self) -> str:
        self._check_endpoint()
        return self._get_api_key()

    def build_request(self, system_prompt: str, user_text: str) -> dict:
        request = ChatCompletionRequest(
            model=self.model_name,
            messages=[
                ChatCompletionMessage(role="system", content=system_prompt),
                ChatCompletionMessage(role="user", content=user_text),
            ],
            max_tokens=self.max_tokens,
            temperature=self.temperature,
        )
        return request.model_dump()

    def _complete(self, system_prompt: str, user_text: str, api_key: str) -> str:
        headers = {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {api_key}",
        }
        try:
            response = self.http.post(
                self.endpoint,
                json=self.build_request(system_prompt, user_text),
                headers=headers,
                timeout=self.timeout,
            )
        except requests.Timeout as e:
            raise NetworkError(f"Request timed out after {self.timeout}s") from e
        except requests.RequestException as e:
            raise NetworkError(str(e)) from e

        if not 200 <= response.status_code <= 299:
            raise APIError(
                f"HTTP {response.status_code}: {response.text[:200]}",
                status_code=response.status_code,
            )

        try:
            data = response.json()
        except ValueError as e:
            raise InvalidResponse("Response body is not JSON") from e

        try:
            completion = ChatCompletion.model_validate(data)
        except ValidationError as e:
            raise InvalidResponse(f"Unexpected response shape: {e.error_count()} error(s)") from e

        return completion.content


class GeminiChatClient(RetryingClient):
    """Gemini via google-generativeai, same contract as the HTTP client."""

    provider = "gemini"

    def __init__(self, settings=Settings, key_store: Optional[KeyStore] = None):
        super().__init__(settings, key_store)
        self.model_name = settings.GEMINI_MODEL

    def _complete(self, system_prompt: str, user_text: str, api_key: str) -> str:
        genai.configure(api_key=api_key)
        # System instruction changes per turn, so the model is built per call
        model = genai.GenerativeModel(
            model_name=self.model_name,
            system_instruction=system_prompt
        )
        config = genai.GenerationConfig(
            max_output_tokens=self.max_tokens,
            temperature=self.temperature
        )

        try:
            response = model.generate_content(
                user_text,
                generation_config=config,
                request_options={"timeout": self.timeout},
            )
        except google_exceptions.DeadlineExceeded as e:
            raise NetworkError(f"Request timed out after {self.timeout}s") from e
        except google_exceptions.GoogleAPICallError as e:
            raise APIError(str(e), status_code=getattr(e, "code", None)) from e
        except google_exceptions.GoogleAPIError as e:
            raise NetworkError(str(e)) from e

        # Blocked responses come back without candidates or parts
        if not response.candidates or not response.candidates[0].content.parts:
            finish_reason = response.candidates[0].finish_reason if response.candidates else "UNKNOWN"
            raise InvalidResponse(f"No content returned (finish_reason: {finish_reason})")

        parts = response.candidates[0].content.parts
        return "\n".join(part.text for part in parts if getattr(part, "text", None))


class MockAIClient:
    """Mock AI client for testing and offline runs."""

    DEFAULT_REPLY = "Nice! I logged that workout for you. Keep pushing! 💪"

    def __init__(self, reply: Optional[str] = None, error: Optional[Exception] = None, delay: float = 0.0):
        self.reply = reply or self.DEFAULT_REPLY
        self.error = error
        self.delay = delay
        self.calls: List[Tuple[str, list]] = []

    async def send_message(self, user_text: str, recent_workouts: Sequence) -> AIResponse:
        self.calls.append((user_text, list(recent_workouts)))
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return build_response(self.reply)


def create_ai_client(settings=Settings, key_store: Optional[KeyStore] = None) -> AIClient:
    """Pick the client for Settings.AI_PROVIDER."""
    provider = (settings.AI_PROVIDER or "").lower()
    if provider == "openai":
        return OpenAIChatClient(settings, key_store)
    if provider == "gemini":
        return GeminiChatClient(settings, key_store)
    if provider == "mock":
        return MockAIClient()
    raise ConfigurationError(f"Unknown AI provider: {settings.AI_PROVIDER!r}")
