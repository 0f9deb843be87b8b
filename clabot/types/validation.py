"""Validation result data model."""

from dataclasses import dataclass, field
from typing import Any

from clabot.exceptions import ClaBotError
from clabot.types.contributors import Contributor
from clabot.types.pulls import CommitState, PullRequestRef


@dataclass(frozen=True)
class ValidationResult:
    """Outcome of one validation pass over one pull request.

    ``state`` is the commit status the pass decided on, or ``ERROR`` when
    the pass could not decide. ``errors`` collects the write failures that
    were isolated during the pass and, for ``ERROR``, the failure that stopped
    it (wrapped in ``UnexpectedError`` when it came from outside clabot).
    ``superseded`` is set when the head SHA moved while the pass ran, in
    which case no final writes were made.
    """

    pull_request: PullRequestRef
    state: CommitState
    missing_signatures: frozenset[Contributor] = field(default_factory=frozenset)
    signed_external: frozenset[Contributor] = field(default_factory=frozenset)
    raw_status_payload: dict[str, Any] | None = None
    errors: tuple[ClaBotError, ...] = ()
    superseded: bool = False

    @property
    def ok(self) -> bool:
        return not self.errors and self.state is not CommitState.ERROR
