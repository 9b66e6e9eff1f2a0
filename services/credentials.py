"""Service holding the process-wide Gmail relay credentials."""

import logfire

from threading import Lock
from typing import Optional

from models.emails import RelayCredentials

from .errors import NotConfigured, ValidationFailed
from .validation import is_email_valid

APP_PASSWORD_LENGTH = 16


class CredentialStore:
    """In-memory slot for at most one set of relay credentials.

    Writes replace the slot under a lock. Readers receive the immutable
    `RelayCredentials` snapshot, so a send that already resolved its
    credentials is unaffected by a later `configure` call.
    """

    def __init__(self, credentials: Optional[RelayCredentials] = None):
        self._credentials = credentials
        self._lock = Lock()

    def configure(self, address: Optional[str], secret: Optional[str]) -> RelayCredentials:
        """Validate and store new relay credentials.

        Args:
            address (Optional[str]): Gmail address used to authenticate with the relay
            secret (Optional[str]): 16 character Gmail app password

        Raises:
            ValidationFailed: If either field is missing or malformed. The
                currently stored credentials are left untouched.

        Returns:
            RelayCredentials: The newly stored credentials.
        """
        credentials = validate_credentials(address, secret)

        with self._lock:
            self._credentials = credentials

        logfire.info(f"Gmail relay configured for {credentials.address}")
        return credentials

    def get(self) -> Optional[RelayCredentials]:
        with self._lock:
            return self._credentials

    def is_configured(self) -> bool:
        return self.get() is not None

    def resolve(self, override: Optional[RelayCredentials] = None) -> RelayCredentials:
        """Pick the credentials for a single send.

        Inline credentials win over the process default for that request only.

        Raises:
            NotConfigured: If neither inline nor stored credentials exist.
        """
        credentials = override or self.get()
        if credentials is None:
            raise NotConfigured("Gmail not configured. Please set it up first.")
        return credentials

    def clear(self) -> None:
        with self._lock:
            self._credentials = None


def validate_credentials(address: Optional[str], secret: Optional[str]) -> RelayCredentials:
    """Check `address` and `secret` and build a `RelayCredentials`.

    Raises:
        ValidationFailed: With a message naming the field that failed.
    """
    if not address or not secret:
        raise ValidationFailed("Email and app password are required")

    if not is_email_valid(address):
        raise ValidationFailed("Invalid email format", details=f"'{address}' is not a valid email address")

    if len(secret) != APP_PASSWORD_LENGTH:
        raise ValidationFailed(
            f"App password should be {APP_PASSWORD_LENGTH} characters",
            details=f"Received {len(secret)} characters",
        )

    return RelayCredentials(address=address, secret=secret)


credential_store = CredentialStore()  # Process-wide credential slot


def get_credential_store() -> CredentialStore:
    """Factory function returning the process-wide CredentialStore.

    Returns:
        CredentialStore: The shared credential store.
    """
    return credential_store
