import os
import logging
from dotenv import load_dotenv

# Load .env file
load_dotenv()


def _get_int(name: str, default: int) -> int:
    value = os.getenv(name)
    return int(value) if value else default


def _get_float(name: str, default: float) -> float:
    value = os.getenv(name)
    return float(value) if value else default


class Settings:
    """
    Application settings and environment variables.
    """
    # Record store
    DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./spotme.db")

    # AI provider: openai, gemini or mock
    AI_PROVIDER = os.getenv("AI_PROVIDER", "openai").lower()

    # Credentials (never hard-coded)
    OPENAI_API_KEY = os.getenv("OPENAI_API_KEY")
    GEMINI_API_KEY = os.getenv("GEMINI_API_KEY")

    # Chat-completion request
    AI_MODEL = os.getenv("AI_MODEL", "gpt-4o-mini")
    GEMINI_MODEL = os.getenv("GEMINI_MODEL", "gemini-1.5-flash")
    AI_ENDPOINT = os.getenv("AI_ENDPOINT", "https://api.openai.com/v1/chat/completions")
    AI_MAX_TOKENS = _get_int("AI_MAX_TOKENS", 150)
    AI_TEMPERATURE = _get_float("AI_TEMPERATURE", 0.7)

    # Network policy
    REQUEST_TIMEOUT = _get_float("REQUEST_TIMEOUT", 30.0)
    MAX_RETRIES = _get_int("MAX_RETRIES", 3)
    RETRY_BACKOFF = _get_float("RETRY_BACKOFF", 1.0)

    # Conversation
    CONTEXT_WORKOUT_DAYS = _get_int("CONTEXT_WORKOUT_DAYS", 7)

    # Encrypted key store (keychain replacement)
    KEYSTORE_PATH = os.path.expanduser(os.getenv("KEYSTORE_PATH") or "~/.spotme/keys.json")
    KEYSTORE_SECRET = os.getenv("KEYSTORE_SECRET")

    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

    @classmethod
    def validate(cls):
        """
        Returns the list of missing variables for the selected provider.
        """
        missing = []
        if cls.AI_PROVIDER == "openai" and not cls.OPENAI_API_KEY:
            missing.append("OPENAI_API_KEY")
        if cls.AI_PROVIDER == "gemini" and not cls.GEMINI_API_KEY:
            missing.append("GEMINI_API_KEY")
        return missing


def configure_logging(level: str = None):
    """Configure root logging once for the app process."""
    logging.basicConfig(
        level=level or Settings.LOG_LEVEL,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    missing = Settings.validate()
    if missing:
        # The key store may still hold the credential
        logging.getLogger(__name__).warning(
            f"Missing environment variables: {', '.join(missing)}"
        )
