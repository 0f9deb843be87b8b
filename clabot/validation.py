"""
CLA validation engine.

For each pull request: mark the head commit pending, classify the commit
authors, ask the signature store which external authors have signed, then
publish the decision as a commit status, a label and (when signatures are
missing) a single explanatory comment.
"""

import asyncio
from collections.abc import Callable, Iterable, Mapping
from typing import Any

from clabot.clients.apps import AppsClient
from clabot.clients.issues import IssuesClient
from clabot.clients.pulls import PullsClient
from clabot.clients.repos import ReposClient
from clabot.clients.statuses import StatusesClient
from clabot.config import DEFAULT_STATUS_CONTEXT, LabelSettings
from clabot.contributors import ContributorResolver
from clabot.exceptions import ClaBotError, NotFoundError, UnexpectedError, UpstreamError
from clabot.logging import get_logger
from clabot.signatures import SignatureLookup, resolve
from clabot.transport import Credential
from clabot.types.contributors import Classification, Contributor, GitHubUser, UnknownCommitter
from clabot.types.pulls import CommitState, PullRequestRef
from clabot.types.results import Found, NotFound
from clabot.types.validation import ValidationResult

UrlBuilder = Callable[[PullRequestRef], str]

STATUS_DESCRIPTIONS = {
    CommitState.PENDING: "The CLA verifier is running",
    CommitState.SUCCESS: "All contributors have signed the CLA",
    CommitState.FAILURE: "One or more contributors need to sign the CLA",
}

logger = get_logger("validation")


def render_comment(
    missing: Iterable[Contributor], cla_url: str, organization_name: str = ""
) -> str:
    """Build the comment asking the missing contributors to sign."""
    mentions: list[str] = []
    unlinked: list[str] = []
    for contributor in missing:
        match contributor:
            case GitHubUser(username=username):
                mentions.append(f"@{username}")
            case UnknownCommitter(name=name, email=email):
                unlinked.append(f"- {name} <{email}>")

    agreement = " ".join(filter(None, [organization_name, "Contributor License Agreement"]))
    who = " ".join(mentions) if mentions else "the commit authors listed below"
    body = (
        f"Thanks for the contribution! Before we can merge this, we need {who} "
        f"to [sign the {agreement}]({cla_url})."
    )
    if unlinked:
        body += (
            "\n\nThese commits were authored with an email address that is not "
            "linked to a GitHub account, so we cannot match them to a signature:\n\n"
            + "\n".join(unlinked)
            + "\n\nPlease add the address to your GitHub account or amend the "
            "commits to use one that is."
        )
    return body


class ValidationEngine:
    """Computes CLA state for pull requests and writes it back to GitHub.

    Pull requests are validated concurrently, at most ``max_concurrency`` at
    a time. A failure on one pull request never affects another: failed
    writes are logged and collected in the result's ``errors``, and a
    failure before the decision yields a result in state ``error``.
    """

    def __init__(
        self,
        pulls: PullsClient,
        statuses: StatusesClient,
        issues: IssuesClient,
        repos: ReposClient,
        resolver: ContributorResolver,
        apps: AppsClient,
        status_context: str = DEFAULT_STATUS_CONTEXT,
        organization_name: str = "",
        labels: LabelSettings | None = None,
        max_concurrency: int = 8,
    ) -> None:
        """
        Args:
            pulls: Pulls client
            statuses: Commit statuses client
            issues: Issue comments and labels client
            repos: Repos client, for label definitions
            resolver: Classifies commit authors
            apps: Apps client, for the bot login
            status_context: Commit status context the engine owns
            organization_name: Shown in the comment ("sign the Acme Contributor License Agreement")
            labels: Label names and colors
            max_concurrency: Pull requests validated at once
        """
        self.pulls = pulls
        self.statuses = statuses
        self.issues = issues
        self.repos = repos
        self.resolver = resolver
        self.apps = apps
        self.status_context = status_context
        self.organization_name = organization_name
        self.labels = labels or LabelSettings()
        self.max_concurrency = max_concurrency
        self._defined_labels: set[tuple[str, str]] = set()

    async def validate(
        self,
        pull_requests: Mapping[PullRequestRef, Credential],
        cla_url_builder: UrlBuilder,
        status_url_builder: UrlBuilder,
        lookup_signatures: SignatureLookup,
    ) -> list[ValidationResult]:
        """
        Validate pull requests and publish the results.

        Args:
            pull_requests: Pull requests mapped to a token for their installation
            cla_url_builder: Gives the signing link used in the comment
            status_url_builder: Gives the commit status ``target_url``
            lookup_signatures: Returns the signed subset of a username set;
                may be a coroutine function

        Returns:
            One result per pull request, in input order
        """
        limit = asyncio.Semaphore(self.max_concurrency)

        async def run(pull_request: PullRequestRef, credential: Credential) -> ValidationResult:
            async with limit:
                return await self.validate_one(
                    pull_request, credential, cla_url_builder, status_url_builder, lookup_signatures
                )

        return list(
            await asyncio.gather(*(run(pr, credential) for pr, credential in pull_requests.items()))
        )

    async def validate_one(
        self,
        pull_request: PullRequestRef,
        credential: Credential,
        cla_url_builder: UrlBuilder,
        status_url_builder: UrlBuilder,
        lookup_signatures: SignatureLookup,
    ) -> ValidationResult:
        """Validate a single pull request.

        Does not raise: a failure before the decision, including one raised
        by ``lookup_signatures``, yields a result in state ``error``.
        """
        errors: list[ClaBotError] = []
        try:
            return await self._validate_one(
                pull_request, credential, cla_url_builder, status_url_builder,
                lookup_signatures, errors,
            )
        except ClaBotError as e:
            logger.warning("Validation of %s failed: %s", pull_request, e.message)
            return ValidationResult(pull_request, CommitState.ERROR, errors=(*errors, e))
        except Exception as e:
            logger.exception("Validation of %s failed", pull_request)
            return ValidationResult(
                pull_request, CommitState.ERROR, errors=(*errors, UnexpectedError(e))
            )

    async def _validate_one(
        self,
        pull_request: PullRequestRef,
        credential: Credential,
        cla_url_builder: UrlBuilder,
        status_url_builder: UrlBuilder,
        lookup_signatures: SignatureLookup,
        errors: list[ClaBotError],
    ) -> ValidationResult:
        match await self.pulls.find(pull_request.owner_repo, pull_request.number, credential):
            case NotFound(what=what):
                logger.warning("Pull request %s no longer exists", what)
                return ValidationResult(
                    pull_request,
                    CommitState.ERROR,
                    errors=(NotFoundError(404, f"{what} not found"),),
                )
            case Found(value=current):
                pass

        target_url = status_url_builder(current)
        pending = asyncio.create_task(
            self._write_status(current, CommitState.PENDING, target_url, credential, errors)
        )
        try:
            bot_login = await self.apps.bot_login()
            classification = await self.resolver.classify(current, credential, bot_login)
            signed = await self._lookup(classification, lookup_signatures)
            latest = await self.pulls.find(current.owner_repo, current.number, credential)
        finally:
            # a late pending write must not land after the decision
            await pending

        missing, signed_external = self.missing_signatures(classification, signed)

        match latest:
            case Found(value=refreshed) if refreshed.head_sha == current.head_sha:
                pass
            case _:
                logger.info("Head of %s moved during validation; skipping final writes", current)
                return ValidationResult(
                    current,
                    CommitState.PENDING,
                    missing_signatures=missing,
                    signed_external=signed_external,
                    errors=tuple(errors),
                    superseded=True,
                )

        state = CommitState.FAILURE if missing else CommitState.SUCCESS
        logger.info(
            "%s: %s (%d external, %d missing)",
            current, state.value, len(classification.external), len(missing),
        )
        payload = await self._write_status(current, state, target_url, credential, errors)

        if state is CommitState.SUCCESS:
            await self._sync_labels(
                current, self.labels.signed, self.labels.missing, credential, errors
            )
        else:
            await self._sync_labels(
                current, self.labels.missing, self.labels.signed, credential, errors
            )
            ordered = [c for c in classification.contributors if c in missing]
            await self._comment_once(
                current, render_comment(ordered, cla_url_builder(current), self.organization_name),
                bot_login, credential, errors,
            )

        return ValidationResult(
            current,
            state,
            missing_signatures=missing,
            signed_external=signed_external,
            raw_status_payload=payload,
            errors=tuple(errors),
        )

    @staticmethod
    def missing_signatures(
        classification: Classification, signed: Iterable[str]
    ) -> tuple[frozenset[Contributor], frozenset[Contributor]]:
        """Split external contributors into (missing, signed).

        Unknown committers are always missing.
        """
        signed_names = {name.lower() for name in signed}
        have_signed = frozenset(
            user for user in classification.external_users if user.username.lower() in signed_names
        )
        missing = (classification.external_users - have_signed) | classification.unknown_committers
        return frozenset(missing), have_signed

    async def _lookup(
        self, classification: Classification, lookup_signatures: SignatureLookup
    ) -> set[str]:
        usernames = {user.username for user in classification.external_users}
        if not usernames:
            return set()
        return set(await resolve(lookup_signatures(usernames)))

    async def _write_status(
        self,
        pull_request: PullRequestRef,
        state: CommitState,
        target_url: str,
        credential: Credential,
        errors: list[ClaBotError],
    ) -> dict[str, Any] | None:
        try:
            return await self.statuses.create(
                pull_request.owner_repo,
                pull_request.head_sha,
                state,
                self.status_context,
                STATUS_DESCRIPTIONS[state],
                target_url,
                credential,
            )
        except ClaBotError as e:
            self._record(pull_request, f"{state.value} status", e, errors)
            return None

    async def _sync_labels(
        self,
        pull_request: PullRequestRef,
        apply: str,
        remove: str,
        credential: Credential,
        errors: list[ClaBotError],
    ) -> None:
        owner_repo, number = pull_request.owner_repo, pull_request.number
        try:
            present = {label.name for label in await self.issues.labels(owner_repo, number, credential)}
            if apply not in present:
                await self._define_label(owner_repo, apply, credential)
                await self.issues.add_labels(owner_repo, number, [apply], credential)
            if remove in present:
                await self.issues.remove_label(owner_repo, number, remove, credential)
        except ClaBotError as e:
            self._record(pull_request, "labels", e, errors)

    async def _define_label(self, owner_repo: str, name: str, credential: Credential) -> None:
        key = (owner_repo.lower(), name)
        if key in self._defined_labels:
            return
        match await self.repos.find_label(owner_repo, name, credential):
            case NotFound():
                try:
                    await self.repos.create_label(
                        owner_repo, name, self.labels.color(name), credential
                    )
                except UpstreamError as e:
                    # 422: created by a concurrent pass
                    if e.status != 422:
                        raise
            case Found():
                pass
        self._defined_labels.add(key)

    async def _comment_once(
        self,
        pull_request: PullRequestRef,
        body: str,
        bot_login: str,
        credential: Credential,
        errors: list[ClaBotError],
    ) -> None:
        owner_repo, number = pull_request.owner_repo, pull_request.number
        try:
            comments = await self.issues.comments(owner_repo, number, credential)
            if any(self._authored_by(comment, bot_login) for comment in comments):
                logger.debug("%s already has a CLA comment", pull_request)
                return
            await self.issues.create_comment(owner_repo, number, body, credential)
        except ClaBotError as e:
            self._record(pull_request, "comment", e, errors)

    @staticmethod
    def _authored_by(comment: dict[str, Any], login: str) -> bool:
        author = (comment.get("user") or {}).get("login") or ""
        return author.lower() == login.lower()

    @staticmethod
    def _record(
        pull_request: PullRequestRef, what: str, error: ClaBotError, errors: list[ClaBotError]
    ) -> None:
        logger.warning("Writing %s on %s failed: %s", what, pull_request, error.message)
        errors.append(error)

