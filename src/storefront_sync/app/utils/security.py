"""
Storefront Sync - Security Utilities
OAuth state tokens and at-rest encryption for stored platform credentials.
"""

import hmac
import logging
import secrets
from typing import Optional

from cryptography.fernet import Fernet, InvalidToken

logger = logging.getLogger(__name__)

STATE_SEPARATOR = "_"


def generate_oauth_state(platform_id: str, nbytes: int = 16) -> str:
    """
    Generate an opaque OAuth state value.

    The platform id is kept as a prefix so the redirect handler can tell
    which platform the callback belongs to.

    Args:
        platform_id: Platform the authorization is for
        nbytes: Random bytes in the token

    Returns:
        State string of the form ``{platform_id}_{token}``
    """
    return f"{platform_id}{STATE_SEPARATOR}{secrets.token_urlsafe(nbytes)}"


def platform_from_state(state: Optional[str]) -> str:
    """Platform id prefix of a state value, or an empty string."""
    if not state:
        return ""
    return state.split(STATE_SEPARATOR, 1)[0]


def states_match(expected: Optional[str], received: Optional[str]) -> bool:
    """Constant-time comparison of two state values."""
    if not expected or not received:
        return False
    return hmac.compare_digest(expected.encode(), received.encode())


class CredentialCipher:
    """Symmetric encryption of credential records at rest."""

    def __init__(self, encryption_key: Optional[str] = None):
        """
        Initialize the cipher.

        Args:
            encryption_key: Fernet key (generates a new one if None)
        """
        self.key = encryption_key.encode() if encryption_key else Fernet.generate_key()
        self.cipher = Fernet(self.key)

    def encrypt(self, data: str) -> str:
        """Encrypt a string and return the Fernet token as text."""
        return self.cipher.encrypt(data.encode()).decode()

    def decrypt(self, token: str) -> Optional[str]:
        """
        Decrypt a Fernet token.

        Args:
            token: Encrypted text

        Returns:
            Plain text, or None when the token is invalid
        """
        try:
            return self.cipher.decrypt(token.encode()).decode()
        except InvalidToken:
            logger.warning("Stored credentials could not be decrypted")
            return None

    def get_encryption_key(self) -> str:
        return self.key.decode()
