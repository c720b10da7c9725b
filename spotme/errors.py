"""
SpotMe Error Types
==================

Every failure of a chat turn maps onto one of these. The coordinator
catches them all and shows a fixed message; details only go to the log.
"""

from typing import Optional


class SpotMeError(Exception):
    """Base exception for all spotme errors."""


class ConfigurationError(SpotMeError):
    """Bad or missing configuration. Fatal for the turn, never retried."""


class InvalidURL(ConfigurationError):
    """The configured AI endpoint cannot be parsed."""

    def __init__(self, url: str):
        super().__init__(f"Invalid API URL: {url!r}")
        self.url = url


class MissingAPIKey(ConfigurationError):
    """No credential in the environment or the key store."""

    def __init__(self, provider: str = "openai"):
        super().__init__(
            f"API key not found for provider '{provider}'. "
            "Set it in environment variables or the key store."
        )
        self.provider = provider


class NetworkError(SpotMeError):
    """Connection failure or timeout. Retried."""


class APIError(SpotMeError):
    """The AI endpoint answered outside 200-299. Retried."""

    def __init__(self, detail: str, status_code: Optional[int] = None):
        super().__init__(f"API Error: {detail}")
        self.detail = detail
        self.status_code = status_code


class InvalidResponse(SpotMeError):
    """Body is not JSON or does not look like a chat completion."""


class ParseError(SpotMeError):
    """Structured workout block could not be decoded."""


class PersistenceError(SpotMeError):
    """Writing workout records to the store failed."""
