"""clabot - Contributor License Agreement checks for GitHub pull requests."""

from clabot.client import ClaBot
from clabot.config import ClaBotConfig, LabelSettings
from clabot.contributors import BotPolicy, ContributorResolver
from clabot.exceptions import (
    AuthError,
    ClaBotError,
    ConfigError,
    ConfigurationError,
    NotFoundError,
    UnexpectedError,
    UpstreamError,
    WebhookVerificationError,
)
from clabot.logging import configure_logging, get_logger
from clabot.paging import PagingClient
from clabot.revalidation import RevalidationScheduler
from clabot.signatures import InMemorySignatureStore, SignatureStore
from clabot.signers import RS256Signer
from clabot.tokens import TokenAuthority, TokenCache
from clabot.transport import GitHubTransport, RetryConfig
from clabot.validation import ValidationEngine
from clabot.webhooks import WebhookHandler, parse_event, verify_signature

__version__ = "0.1.0"

__all__ = [
    "__version__",
    # Main entry point
    "ClaBot",
    "ClaBotConfig",
    "LabelSettings",
    # Engine
    "TokenAuthority",
    "TokenCache",
    "PagingClient",
    "BotPolicy",
    "ContributorResolver",
    "ValidationEngine",
    "RevalidationScheduler",
    # Signatures
    "SignatureStore",
    "InMemorySignatureStore",
    "RS256Signer",
    # Webhooks
    "WebhookHandler",
    "parse_event",
    "verify_signature",
    # Exceptions
    "ClaBotError",
    "AuthError",
    "ConfigurationError",
    "ConfigError",
    "UpstreamError",
    "NotFoundError",
    "UnexpectedError",
    "WebhookVerificationError",
    # Transport
    "GitHubTransport",
    "RetryConfig",
    # Logging
    "configure_logging",
    "get_logger",
]
