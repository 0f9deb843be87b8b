"""GitHub App installation and token data models."""

from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum


class TokenScope(str, Enum):
    """What an access token is allowed to act as."""

    APP = "app"
    INSTALLATION = "installation"


@dataclass(frozen=True)
class AccessToken:
    """Bearer credential with an expiry.

    App-scoped tokens are JWTs sent as ``Bearer``; installation tokens are
    sent with the ``token`` scheme.
    """

    token: str
    expires_at: datetime
    scope: TokenScope = TokenScope.INSTALLATION
    installation_id: int | None = None

    @property
    def authorization(self) -> str:
        """Value for the ``Authorization`` header."""
        if self.scope is TokenScope.APP:
            return f"Bearer {self.token}"
        return f"token {self.token}"

    def is_fresh(self, now: datetime, margin: timedelta) -> bool:
        """True while ``now`` is at least ``margin`` before expiry."""
        return now + margin < self.expires_at

    def __repr__(self) -> str:
        return (
            f"AccessToken(scope={self.scope.value}, installation_id={self.installation_id}, "
            f"expires_at={self.expires_at.isoformat()})"
        )


@dataclass(frozen=True)
class Installation:
    """One installation of the App on a user or organization account.

    Repositories are fetched lazily through
    ``AppsClient.installation_repositories``.
    """

    installation_id: int
    account_login: str
