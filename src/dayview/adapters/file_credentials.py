"""File-based credential storage adapter."""

import json
import logging
from pathlib import Path

from dayview.core.session import Session

logger = logging.getLogger(__name__)


class FileCredentialStore:
    """
    JSON file credential storage.

    Implements CredentialStore protocol. Only the session fields needed to
    resume after a restart are written; the file is readable by the owner only.
    """

    def __init__(self, path: Path | str):
        self.path = Path(path).expanduser()

    def load(self) -> Session | None:
        """Load the stored session. Returns None if absent or incomplete."""
        if not self.path.exists():
            return None
        try:
            data = json.loads(self.path.read_text())
        except (OSError, json.JSONDecodeError) as e:
            logger.warning(f"Ignoring unreadable session file {self.path}: {e}")
            return None

        if not isinstance(data, dict):
            return None

        access_token = data.get("access_token")
        expiry = data.get("access_token_expiry")
        if not access_token or not isinstance(expiry, (int, float)) or isinstance(expiry, bool):
            return None

        refresh_token = data.get("refresh_token") or None
        return Session(
            access_token=access_token,
            access_token_expiry=float(expiry),
            refresh_token=refresh_token,
            authenticated=True,
        )

    def save(self, session: Session) -> None:
        """Save session credentials to file."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(
            json.dumps(
                {
                    "access_token": session.access_token,
                    "access_token_expiry": session.access_token_expiry,
                    "refresh_token": session.refresh_token,
                }
            )
        )
        self.path.chmod(0o600)

    def clear(self) -> None:
        """Delete the session file."""
        self.path.unlink(missing_ok=True)
