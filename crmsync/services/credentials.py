"""Owned holder for the Google OAuth credentials of this process.

The store is created together with the application and handed to every
service that talks to Google. It tracks a small state machine::

    UNAUTHENTICATED -> AUTH_PENDING (consent URL issued) -> AUTHENTICATED
    AUTHENTICATED   -> UNAUTHENTICATED (Google answered 401/403)

Credentials are discarded entirely on expiry, never refreshed in place, so the
next call fails fast and the user is sent through a fresh consent grant.
"""

import json
import logging
from enum import Enum
from pathlib import Path

from google.oauth2.credentials import Credentials

logger = logging.getLogger(__name__)


class AuthState(str, Enum):
    """Authentication state of the credential store."""

    UNAUTHENTICATED = "unauthenticated"
    AUTH_PENDING = "auth_pending"
    AUTHENTICATED = "authenticated"


class CredentialStore:
    """Holds the current Google credentials and their lifecycle state.

    When ``token_file`` is given (local deployment mode) credentials are
    persisted on ``replace`` and removed on ``clear``.
    """

    def __init__(self, token_file: str | Path | None = None):
        self._credentials: Credentials | None = None
        self._state = AuthState.UNAUTHENTICATED
        self._pending_state_token: str | None = None
        self._pending_code_verifier: str | None = None
        self.token_file = Path(token_file) if token_file else None

    @property
    def state(self) -> AuthState:
        return self._state

    @property
    def credentials(self) -> Credentials | None:
        return self._credentials

    @property
    def is_authenticated(self) -> bool:
        return self._state == AuthState.AUTHENTICATED and self._credentials is not None

    @property
    def pending_state_token(self) -> str | None:
        return self._pending_state_token

    @property
    def pending_code_verifier(self) -> str | None:
        return self._pending_code_verifier

    def begin(self, state_token: str | None = None, code_verifier: str | None = None) -> None:
        """Record that a consent URL has been issued."""
        if self._state != AuthState.AUTHENTICATED:
            self._state = AuthState.AUTH_PENDING
        self._pending_state_token = state_token
        self._pending_code_verifier = code_verifier
        logger.info("Google authorization started")

    def replace(self, credentials: Credentials) -> None:
        """Install new credentials, completing any pending authorization."""
        self._credentials = credentials
        self._state = AuthState.AUTHENTICATED
        self._pending_state_token = None
        self._pending_code_verifier = None
        if self.token_file is not None:
            self.token_file.write_text(credentials.to_json())
        logger.info("Google credentials installed")

    def clear(self, reason: str = "cleared") -> None:
        """Discard credentials so the next call requires a new consent grant."""
        had_credentials = self._credentials is not None
        self._credentials = None
        self._state = AuthState.UNAUTHENTICATED
        self._pending_state_token = None
        self._pending_code_verifier = None
        if self.token_file is not None and self.token_file.exists():
            self.token_file.unlink()
        if had_credentials:
            logger.warning(f"Google credentials discarded: {reason}")

    def load_persisted(self, scopes: list[str] | None = None) -> bool:
        """Restore credentials saved by a previous run, if any."""
        if self.token_file is None or not self.token_file.exists():
            return False
        try:
            info = json.loads(self.token_file.read_text())
            credentials = Credentials.from_authorized_user_info(info, scopes)
        except (ValueError, OSError) as e:
            logger.warning(f"Ignoring unreadable token file {self.token_file}: {e}")
            return False
        self._credentials = credentials
        self._state = AuthState.AUTHENTICATED
        logger.info(f"Loaded Google credentials from {self.token_file}")
        return True
