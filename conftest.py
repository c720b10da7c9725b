import pytest
from sqlalchemy.orm import sessionmaker

from config import Settings
from database import Base, make_engine
import models  # noqa: F401 - registers tables on Base


class FakeSettings(Settings):
    """Deterministic settings for tests, independent of the local .env."""
    AI_PROVIDER = "openai"
    OPENAI_API_KEY = "sk-test-0123456789abcdefghijkl"
    GEMINI_API_KEY = None
    AI_ENDPOINT = "https://api.example.test/v1/chat/completions"
    AI_MODEL = "gpt-4o-mini"
    GEMINI_MODEL = "gemini-1.5-flash"
    AI_MAX_TOKENS = 150
    AI_TEMPERATURE = 0.7
    REQUEST_TIMEOUT = 5.0
    MAX_RETRIES = 3
    RETRY_BACKOFF = 0
    CONTEXT_WORKOUT_DAYS = 7
    KEYSTORE_SECRET = None


@pytest.fixture
def settings():
    return FakeSettings


@pytest.fixture
def db():
    """Fresh in-memory SQLite session per test."""
    engine = make_engine("sqlite://")
    Base.metadata.create_all(bind=engine)
    TestingSession = sessionmaker(autocommit=False, autoflush=True, bind=engine)
    session = TestingSession()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)
        engine.dispose()
