"""Credential storage interface."""

from typing import Protocol

from dayview.core.session import Session


class CredentialStore(Protocol):
    """Interface for persisting session credentials across restarts."""

    def load(self) -> Session | None:
        """Load the stored session. Returns None if absent or incomplete."""
        ...

    def save(self, session: Session) -> None:
        """Persist the session credentials."""
        ...

    def clear(self) -> None:
        """Remove any stored credentials."""
        ...
