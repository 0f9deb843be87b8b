"""Pull request and commit status data models."""

from dataclasses import dataclass
from enum import Enum


class PullRequestState(str, Enum):
    OPEN = "open"
    CLOSED = "closed"


class CommitState(str, Enum):
    """States of a GitHub commit status."""

    PENDING = "pending"
    SUCCESS = "success"
    FAILURE = "failure"
    ERROR = "error"


@dataclass(frozen=True)
class PullRequestRef:
    """Snapshot of a pull request taken at validation time.

    Hashable so it can key the mapping handed to the validation engine.
    """

    owner_repo: str
    number: int
    head_sha: str
    state: PullRequestState = PullRequestState.OPEN

    def __str__(self) -> str:
        return f"{self.owner_repo}#{self.number}@{self.head_sha[:7]}"


@dataclass(frozen=True)
class CommitStatus:
    """A single commit status as reported by GitHub."""

    state: CommitState
    context: str
    description: str | None
    target_url: str | None
    creator_login: str | None
