"""Contributor data models.

A contributor is either a GitHub account linked to a commit or a bare
name/email pair GitHub could not link. Dispatch on the two variants with
``match``.
"""

from dataclasses import dataclass, field
from typing import Union

BOT_SUFFIX = "[bot]"


@dataclass(frozen=True)
class GitHubUser:
    """Commit author with a GitHub account. Equal by username."""

    username: str

    @property
    def is_bot(self) -> bool:
        return self.username.endswith(BOT_SUFFIX)

    def __str__(self) -> str:
        return f"@{self.username}"


@dataclass(frozen=True)
class UnknownCommitter:
    """Commit author GitHub could not link to an account.

    Can never match a signature.
    """

    name: str
    email: str

    def __str__(self) -> str:
        return f"{self.name} <{self.email}>"


Contributor = Union[GitHubUser, UnknownCommitter]


@dataclass(frozen=True)
class Classification:
    """Commit authors of one pull request split by repository access."""

    contributors: tuple[Contributor, ...] = ()
    internal: frozenset[Contributor] = field(default_factory=frozenset)
    external: frozenset[Contributor] = field(default_factory=frozenset)

    @property
    def external_users(self) -> frozenset[GitHubUser]:
        return frozenset(c for c in self.external if isinstance(c, GitHubUser))

    @property
    def unknown_committers(self) -> frozenset[UnknownCommitter]:
        return frozenset(c for c in self.external if isinstance(c, UnknownCommitter))
