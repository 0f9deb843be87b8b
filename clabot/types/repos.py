"""Repository-related data models."""

from dataclasses import dataclass


@dataclass(frozen=True)
class Repository:
    """Repository reachable through an App installation."""

    owner_repo: str  # "owner/name"
    private: bool
    default_branch: str


@dataclass(frozen=True)
class Label:
    """Issue label."""

    name: str
    color: str
