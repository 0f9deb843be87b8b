"""
GitHub App token authority.

Mints App JWTs and exchanges them for installation access tokens, caching
installation tokens until shortly before they expire.
"""

import asyncio
from collections.abc import Callable
from datetime import datetime, timedelta, timezone

from clabot.exceptions import AuthError, UpstreamError
from clabot.logging import get_logger, log_token_operation
from clabot.signers import RS256Signer
from clabot.transport import GitHubTransport
from clabot.types.installations import AccessToken, TokenScope

# GitHub rejects App JWTs living longer than ten minutes
APP_TOKEN_LIFETIME = timedelta(minutes=10)
# Backdates iat to tolerate clock drift against GitHub
CLOCK_DRIFT = timedelta(seconds=60)
DEFAULT_REFRESH_MARGIN = timedelta(seconds=60)

logger = get_logger("auth")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def parse_timestamp(value: str) -> datetime:
    """Parse a GitHub ISO 8601 timestamp ("2024-01-01T00:00:00Z")."""
    parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


class TokenCache:
    """Installation tokens keyed by installation id.

    Each installation has its own lock so concurrent refreshes of one
    installation mint a single token while other installations proceed.
    """

    def __init__(self) -> None:
        self._tokens: dict[int, AccessToken] = {}
        self._locks: dict[int, asyncio.Lock] = {}

    def get(self, installation_id: int, now: datetime, margin: timedelta) -> AccessToken | None:
        """Return the cached token if it is still fresh."""
        token = self._tokens.get(installation_id)
        if token is not None and token.is_fresh(now, margin):
            return token
        return None

    def put(self, token: AccessToken) -> None:
        if token.installation_id is None:
            raise ValueError("Only installation tokens can be cached")
        self._tokens[token.installation_id] = token

    def invalidate(self, installation_id: int) -> None:
        self._tokens.pop(installation_id, None)

    def lock(self, installation_id: int) -> asyncio.Lock:
        return self._locks.setdefault(installation_id, asyncio.Lock())

    def __len__(self) -> int:
        return len(self._tokens)


class TokenAuthority:
    """Issues App and installation tokens for one GitHub App."""

    def __init__(
        self,
        app_id: str | int,
        signer: RS256Signer,
        transport: GitHubTransport,
        cache: TokenCache | None = None,
        refresh_margin: timedelta = DEFAULT_REFRESH_MARGIN,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        """
        Args:
            app_id: The GitHub App id (JWT issuer)
            signer: RS256 signer holding the App's private key
            transport: GitHub transport used for token exchange
            cache: Installation token cache (a fresh one by default)
            refresh_margin: Tokens closer than this to expiry are refreshed
            clock: Returns the current UTC time
        """
        self.app_id = str(app_id)
        self.signer = signer
        self.transport = transport
        self.cache = cache if cache is not None else TokenCache()
        self.refresh_margin = refresh_margin
        self._clock = clock

    def app_token(self) -> AccessToken:
        """
        Mint a JWT authenticating as the App itself.

        Raises:
            ConfigurationError: If the key cannot sign
        """
        issued_at = self._clock() - CLOCK_DRIFT
        expires_at = issued_at + APP_TOKEN_LIFETIME
        jwt = self.signer.sign(
            {
                "iat": int(issued_at.timestamp()),
                "exp": int(expires_at.timestamp()),
                "iss": self.app_id,
            }
        )
        log_token_operation("mint_app_token", TokenScope.APP.value)
        return AccessToken(token=jwt, expires_at=expires_at, scope=TokenScope.APP)

    async def installation_token(self, installation_id: int) -> AccessToken:
        """
        Get an access token for one installation.

        Returns the cached token while it is fresh; otherwise exchanges a new
        App JWT for one. Concurrent callers for the same installation share a
        single exchange.

        Raises:
            AuthError: If GitHub refuses the exchange or answers unexpectedly
        """
        cached = self.cache.get(installation_id, self._clock(), self.refresh_margin)
        if cached is not None:
            log_token_operation("cache_hit", TokenScope.INSTALLATION.value, installation_id)
            return cached

        async with self.cache.lock(installation_id):
            cached = self.cache.get(installation_id, self._clock(), self.refresh_margin)
            if cached is not None:
                return cached

            token = await self._exchange(installation_id)
            self.cache.put(token)
            return token

    def invalidate(self, installation_id: int) -> None:
        """Forget the cached token for an installation (e.g. after a 401)."""
        self.cache.invalidate(installation_id)

    async def _exchange(self, installation_id: int) -> AccessToken:
        path = f"/app/installations/{installation_id}/access_tokens"
        try:
            data = await self.transport.request_json("POST", path, self.app_token())
        except UpstreamError as e:
            logger.warning(
                "Token exchange failed for installation %s: %s", installation_id, e.message
            )
            raise AuthError(
                f"Unable to get a token for installation {installation_id}: {e.message}",
                status=e.status,
                request_id=e.request_id,
            ) from e

        token = (data or {}).get("token")
        expires_at_raw = (data or {}).get("expires_at")
        if not token or not expires_at_raw:
            raise AuthError(
                f"Token response for installation {installation_id} is missing token or expires_at"
            )
        try:
            expires_at = parse_timestamp(expires_at_raw)
        except ValueError as e:
            raise AuthError(f"Unparseable expires_at {expires_at_raw!r}") from e

        log_token_operation("mint_installation_token", TokenScope.INSTALLATION.value, installation_id, token)
        return AccessToken(
            token=token,
            expires_at=expires_at,
            scope=TokenScope.INSTALLATION,
            installation_id=installation_id,
        )
