"""
clabot configuration.

Settings come from keyword arguments or from ``CLABOT_*`` environment
variables via ``ClaBotConfig.from_env``.
"""

import os
from dataclasses import dataclass, field
from pathlib import Path

from clabot.contributors import BotPolicy
from clabot.exceptions import ConfigurationError
from clabot.transport import DEFAULT_API_URL

DEFAULT_CLA_URL = "https://example.com/sign-cla"
DEFAULT_STATUS_CONTEXT = "cla"
DEFAULT_TIMEOUT = 30.0
DEFAULT_MAX_CONCURRENCY = 8
DEFAULT_PAGE_SIZE = 100


@dataclass(frozen=True)
class LabelSettings:
    """Names and colors of the labels the bot manages."""

    signed: str = "cla:signed"
    missing: str = "cla:missing"
    signed_color: str = "0e8a16"
    missing_color: str = "b60205"

    def color(self, name: str) -> str:
        if name == self.signed:
            return self.signed_color
        if name == self.missing:
            return self.missing_color
        raise ConfigurationError(f"Label {name!r} is not managed by clabot")


@dataclass
class ClaBotConfig:
    """Everything needed to run the bot for one GitHub App."""

    app_id: str
    private_key_pem: str
    webhook_secret: str | None = None
    api_url: str = DEFAULT_API_URL
    cla_url: str = DEFAULT_CLA_URL
    organization_name: str = ""
    status_context: str = DEFAULT_STATUS_CONTEXT
    bot_policy: BotPolicy | str = BotPolicy.ALL
    bot_login: str | None = None
    timeout: float = DEFAULT_TIMEOUT
    max_concurrency: int = DEFAULT_MAX_CONCURRENCY
    page_size: int | None = DEFAULT_PAGE_SIZE
    labels: LabelSettings = field(default_factory=LabelSettings)

    def __post_init__(self) -> None:
        if not str(self.app_id).strip():
            raise ConfigurationError("app_id must not be empty")
        if not self.private_key_pem:
            raise ConfigurationError("private_key_pem must not be empty")
        if not isinstance(self.bot_policy, BotPolicy):
            self.bot_policy = BotPolicy.parse(self.bot_policy)
        if self.timeout <= 0:
            raise ConfigurationError("timeout must be positive")
        if self.max_concurrency < 1:
            raise ConfigurationError("max_concurrency must be at least 1")
        if self.page_size is not None and not 1 <= self.page_size <= 100:
            raise ConfigurationError("page_size must be between 1 and 100")

    @classmethod
    def from_env(cls) -> "ClaBotConfig":
        """
        Create a configuration from environment variables.

        Environment variables:
            CLABOT_APP_ID: GitHub App id (required)
            CLABOT_PRIVATE_KEY: PEM private key; literal ``\\n`` escapes are accepted
            CLABOT_PRIVATE_KEY_PATH: Path to the PEM private key, if CLABOT_PRIVATE_KEY is unset
            CLABOT_WEBHOOK_SECRET: Shared webhook secret (optional)
            CLABOT_API_URL: GitHub API base URL (default: https://api.github.com)
            CLABOT_CLA_URL: Signing page linked from statuses and comments
            CLABOT_ORGANIZATION: Organization named in the comment
            CLABOT_STATUS_CONTEXT: Commit status context (default: cla)
            CLABOT_BOT_POLICY: all, app or none (default: all)
            CLABOT_BOT_LOGIN: Login the App acts as (default: looked up from the App slug)
            CLABOT_TIMEOUT: Request timeout in seconds (default: 30)
            CLABOT_MAX_CONCURRENCY: Requests and pull requests in flight (default: 8)
            CLABOT_PAGE_SIZE: ``per_page`` for collections (default: 100)

        Raises:
            ConfigurationError: If a required variable is missing or a value is invalid
        """
        app_id = os.environ.get("CLABOT_APP_ID")
        if not app_id:
            raise ConfigurationError("CLABOT_APP_ID environment variable not set")

        private_key = os.environ.get("CLABOT_PRIVATE_KEY")
        key_path = os.environ.get("CLABOT_PRIVATE_KEY_PATH")
        if not private_key:
            if not key_path:
                raise ConfigurationError(
                    "CLABOT_PRIVATE_KEY or CLABOT_PRIVATE_KEY_PATH environment variable not set"
                )
            try:
                private_key = Path(key_path).read_text()
            except OSError as e:
                raise ConfigurationError(f"Cannot read private key file {key_path}: {e}") from e

        return cls(
            app_id=app_id,
            private_key_pem=private_key,
            webhook_secret=os.environ.get("CLABOT_WEBHOOK_SECRET") or None,
            api_url=os.environ.get("CLABOT_API_URL", DEFAULT_API_URL),
            cla_url=os.environ.get("CLABOT_CLA_URL", DEFAULT_CLA_URL),
            organization_name=os.environ.get("CLABOT_ORGANIZATION", ""),
            status_context=os.environ.get("CLABOT_STATUS_CONTEXT", DEFAULT_STATUS_CONTEXT),
            bot_policy=os.environ.get("CLABOT_BOT_POLICY", "all"),
            bot_login=os.environ.get("CLABOT_BOT_LOGIN") or None,
            timeout=_number("CLABOT_TIMEOUT", float, DEFAULT_TIMEOUT),
            max_concurrency=_number("CLABOT_MAX_CONCURRENCY", int, DEFAULT_MAX_CONCURRENCY),
            page_size=_number("CLABOT_PAGE_SIZE", int, DEFAULT_PAGE_SIZE),
        )


def _number(name, kind, default):
    raw = os.environ.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return kind(raw)
    except ValueError:
        raise ConfigurationError(f"Invalid {name}: {raw!r}") from None
