"""
GitHub webhook handling.

Verifies the ``X-Hub-Signature`` HMAC of a delivery, picks out the events
that can change a pull request's CLA state, and runs validation for them.
"""

import hashlib
import hmac
import json
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any

from clabot.exceptions import WebhookVerificationError
from clabot.logging import get_logger
from clabot.signatures import SignatureLookup
from clabot.tokens import TokenAuthority
from clabot.types.pulls import PullRequestRef, PullRequestState
from clabot.types.validation import ValidationResult
from clabot.validation import UrlBuilder, ValidationEngine

PULL_REQUEST_ACTIONS = frozenset({"opened", "reopened", "synchronize", "edited"})
ISSUE_COMMENT_ACTIONS = frozenset({"created", "edited"})
INSTALLATION_REVOKED_ACTIONS = frozenset({"deleted", "suspend"})

logger = get_logger("webhooks")


@dataclass(frozen=True)
class PullRequestEvent:
    """A delivery that calls for validating one pull request."""

    event_name: str
    action: str
    installation_id: int
    pull_request: PullRequestRef
    sender_login: str = ""


def verify_signature(secret: str | None, body: bytes, header: str | None) -> None:
    """
    Check the ``X-Hub-Signature`` header of a delivery.

    Deliveries are accepted unverified when no secret is configured.

    Raises:
        WebhookVerificationError: If the header is missing or does not match
    """
    if not secret:
        return
    if not header or not header.startswith("sha1="):
        raise WebhookVerificationError("Missing or malformed X-Hub-Signature header")

    digest = hmac.new(secret.encode("utf-8"), msg=body, digestmod=hashlib.sha1).hexdigest()
    if not hmac.compare_digest(f"sha1={digest}", header):
        raise WebhookVerificationError("Webhook signature mismatch")


def sign_body(secret: str, body: bytes) -> str:
    """Compute the ``X-Hub-Signature`` value GitHub would send for ``body``."""
    return "sha1=" + hmac.new(secret.encode("utf-8"), msg=body, digestmod=hashlib.sha1).hexdigest()


def parse_event(event_name: str, payload: dict[str, Any]) -> PullRequestEvent | None:
    """
    Turn a delivery into a ``PullRequestEvent``.

    Returns:
        None for events and actions that cannot change CLA state, for
        comments on plain issues, and for truncated deliveries that lack the
        pull request number or head SHA
    """
    action = payload.get("action", "")
    installation_id = (payload.get("installation") or {}).get("id")
    owner_repo = (payload.get("repository") or {}).get("full_name")
    sender = (payload.get("sender") or {}).get("login", "")
    if installation_id is None or not owner_repo:
        return None

    match event_name:
        case "pull_request" if action in PULL_REQUEST_ACTIONS:
            data = payload.get("pull_request") or {}
            head_sha = (data.get("head") or {}).get("sha")
            if data.get("number") is None or not head_sha:
                return None
            ref = PullRequestRef(
                owner_repo=owner_repo,
                number=int(data["number"]),
                head_sha=head_sha,
                state=PullRequestState(data.get("state", "open")),
            )
        case "issue_comment" if action in ISSUE_COMMENT_ACTIONS:
            issue = payload.get("issue") or {}
            if "pull_request" not in issue or issue.get("number") is None:
                return None
            comment_author = (payload.get("comment") or {}).get("user") or {}
            sender = comment_author.get("login", sender)
            # comment payloads carry no head SHA; validation re-fetches it
            ref = PullRequestRef(owner_repo=owner_repo, number=int(issue["number"]), head_sha="")
        case _:
            return None

    return PullRequestEvent(
        event_name=event_name,
        action=action,
        installation_id=int(installation_id),
        pull_request=ref,
        sender_login=sender,
    )


class WebhookHandler:
    """Verifies deliveries and validates the pull requests they concern."""

    def __init__(
        self,
        engine: ValidationEngine,
        authority: TokenAuthority,
        bot_login: Callable[[], Awaitable[str]],
        lookup_signatures: SignatureLookup,
        cla_url_builder: UrlBuilder,
        status_url_builder: UrlBuilder,
        secret: str | None = None,
    ) -> None:
        """
        Args:
            engine: Validation engine
            authority: Issues installation tokens
            bot_login: Returns the App's bot login
            lookup_signatures: Signature store lookup
            cla_url_builder: Signing link for comments
            status_url_builder: ``target_url`` for statuses
            secret: Shared webhook secret; None accepts unsigned deliveries
        """
        self.engine = engine
        self.authority = authority
        self.bot_login = bot_login
        self.lookup_signatures = lookup_signatures
        self.cla_url_builder = cla_url_builder
        self.status_url_builder = status_url_builder
        self.secret = secret

    async def handle(
        self, event_name: str, body: bytes, signature: str | None = None
    ) -> ValidationResult | None:
        """
        Process one delivery.

        Args:
            event_name: The ``X-GitHub-Event`` header
            body: Raw request body
            signature: The ``X-Hub-Signature`` header

        Returns:
            The validation result, or None when the delivery was ignored

        Raises:
            WebhookVerificationError: If the signature does not verify
            AuthError: If no installation token can be obtained
        """
        verify_signature(self.secret, body, signature)
        try:
            payload = json.loads(body)
        except ValueError as e:
            raise WebhookVerificationError(f"Webhook body is not JSON: {e}") from e

        if event_name == "installation" and payload.get("action") in INSTALLATION_REVOKED_ACTIONS:
            installation_id = (payload.get("installation") or {}).get("id")
            if installation_id is not None:
                logger.info("Installation %s %s", installation_id, payload["action"])
                self.authority.invalidate(int(installation_id))
            return None

        event = parse_event(event_name, payload)
        if event is None:
            logger.debug("Ignoring %s/%s delivery", event_name, payload.get("action"))
            return None

        if event.event_name == "issue_comment":
            bot_login = await self.bot_login()
            if event.sender_login.lower() == bot_login.lower():
                logger.debug("Ignoring own comment on %s", event.pull_request)
                return None

        token = await self.authority.installation_token(event.installation_id)
        results = await self.engine.validate(
            {event.pull_request: token},
            self.cla_url_builder,
            self.status_url_builder,
            self.lookup_signatures,
        )
        return results[0]
