"""clabot type definitions.

This module exports all data model types used by the package.
"""

from clabot.types.contributors import (
    BOT_SUFFIX,
    Classification,
    Contributor,
    GitHubUser,
    UnknownCommitter,
)
from clabot.types.installations import AccessToken, Installation, TokenScope
from clabot.types.pulls import CommitState, CommitStatus, PullRequestRef, PullRequestState
from clabot.types.repos import Label, Repository
from clabot.types.results import Found, Lookup, NotFound
from clabot.types.signatures import ClaSignature, Contact
from clabot.types.validation import ValidationResult

__all__ = [
    # Installations and tokens
    "AccessToken",
    "Installation",
    "TokenScope",
    # Repositories
    "Repository",
    "Label",
    # Pull requests
    "PullRequestRef",
    "PullRequestState",
    "CommitState",
    "CommitStatus",
    # Contributors
    "BOT_SUFFIX",
    "Contributor",
    "GitHubUser",
    "UnknownCommitter",
    "Classification",
    # Validation
    "ValidationResult",
    # Signatures
    "Contact",
    "ClaSignature",
    # Lookups
    "Found",
    "NotFound",
    "Lookup",
]
