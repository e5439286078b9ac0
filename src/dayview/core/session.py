"""Session value - delegated credentials for one user."""

from dataclasses import dataclass

# Treat tokens expiring within this many seconds as already expired
EXPIRY_MARGIN_SECONDS = 300


@dataclass
class Session:
    """Delegated API credentials plus the login flag.

    ``generation`` is bumped on every credential change or logout so results
    computed for an older credential can be recognised and discarded. It is
    never persisted.
    """

    access_token: str = ""
    access_token_expiry: float = 0.0
    refresh_token: str | None = None
    authenticated: bool = False
    generation: int = 0

    def is_expired(self, now: float) -> bool:
        """True if the access token is missing or expires within the margin."""
        if not self.access_token:
            return True
        return now >= self.access_token_expiry - EXPIRY_MARGIN_SECONDS

    def apply_grant(
        self,
        access_token: str,
        expires_in_seconds: int,
        now: float,
        refresh_token: str | None = None,
    ) -> None:
        """Install a freshly issued access token.

        Keeps the current refresh token unless the grant carries a new one.
        """
        self.access_token = access_token
        self.access_token_expiry = now + expires_in_seconds
        if refresh_token:
            self.refresh_token = refresh_token
        self.authenticated = True
        self.generation += 1

    def reset(self) -> None:
        """Forget all credentials (logout)."""
        self.access_token = ""
        self.access_token_expiry = 0.0
        self.refresh_token = None
        self.authenticated = False
        self.generation += 1
