"""
Credential Store for SpotMe
Resolves AI provider API keys from the environment or a local encrypted file
(Fernet, key derived with PBKDF2 from KEYSTORE_SECRET)
"""
import os
import re
import json
import base64
import logging
from pathlib import Path
from typing import Optional, Dict

from cryptography.fernet import Fernet, InvalidToken
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

from config import Settings

logger = logging.getLogger(__name__)

ENV_KEYS = {
    "openai": "OPENAI_API_KEY",
    "gemini": "GEMINI_API_KEY",
}


def _derive_fernet(secret: str) -> Fernet:
    """Get Fernet instance with derived key from secret."""
    salt = b"spotme_keystore_v1"  # Static salt, the secret carries the entropy
    kdf = PBKDF2HMAC(
        algorithm=hashes.SHA256(),
        length=32,
        salt=salt,
        iterations=100000,
    )
    key = base64.urlsafe_b64encode(kdf.derive(secret.encode()))
    return Fernet(key)


class KeyStore:
    """
    Encrypted provider -> API key map kept in a single JSON file.
    Values are Fernet tokens; the file never holds plaintext keys.
    """

    def __init__(self, path: Optional[str] = None, secret: Optional[str] = None):
        self.path = Path(path or Settings.KEYSTORE_PATH)
        secret = secret or Settings.KEYSTORE_SECRET
        self._fernet = _derive_fernet(secret) if secret else None

    @property
    def enabled(self) -> bool:
        return self._fernet is not None

    def _read(self) -> Dict[str, str]:
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            logger.error(f"Key store unreadable at {self.path}: {e}")
            return {}
        return data if isinstance(data, dict) else {}

    def _write(self, data: Dict[str, str]):
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(data, indent=2), encoding="utf-8")
        try:
            os.chmod(self.path, 0o600)
        except OSError:
            logger.warning(f"Could not restrict permissions on {self.path}")

    def set_key(self, provider: str, api_key: str):
        if not self.enabled:
            raise ValueError("KEYSTORE_SECRET is not set")
        if not api_key:
            raise ValueError("API key cannot be empty")
        if not validate_api_key_format(api_key):
            logger.warning(f"API key for {provider} looks malformed: {mask_api_key(api_key)}")
        data = self._read()
        data[provider] = self._fernet.encrypt(api_key.encode()).decode()
        self._write(data)
        logger.info(f"Stored API key for {provider}: {mask_api_key(api_key)}")

    def get_key(self, provider: str) -> Optional[str]:
        if not self.enabled:
            return None
        token = self._read().get(provider)
        if not token:
            return None
        try:
            return self._fernet.decrypt(token.encode()).decode()
        except InvalidToken:
            logger.error(f"Failed to decrypt stored API key for {provider}")
            return None

    def delete_key(self, provider: str) -> bool:
        data = self._read()
        if provider not in data:
            return False
        del data[provider]
        self._write(data)
        return True


def resolve_api_key(provider: str, settings=Settings, store: Optional[KeyStore] = None) -> Optional[str]:
    """
    Environment first, then the key store. None means no credential;
    callers treat that as a hard error.
    """
    env_name = ENV_KEYS.get(provider)
    if env_name:
        value = getattr(settings, env_name, None)
        if value:
            return value

    if store is not None:
        return store.get_key(provider)
    return None


def validate_api_key_format(api_key: str) -> bool:
    """Loose sanity check: long enough, no whitespace or odd characters."""
    if not api_key or len(api_key) < 20:
        return False
    return bool(re.match(r'^[A-Za-z0-9_-]+$', api_key))


def mask_api_key(api_key: str) -> str:
    """
    Mask an API key for display (show first 4 and last 4 chars).
    """
    if not api_key or len(api_key) < 10:
        return "****"

    return f"{api_key[:4]}...{api_key[-4:]}"
