"""clabot testing utilities.

Provides an in-memory GitHub and fixtures for testing code that uses clabot.
"""

from clabot.testing.fake_github import FakeGitHub, RecordedRequest, commit
from clabot.testing.fixtures import create_contact, create_pull_request_ref

__all__ = [
    # In-memory GitHub
    "FakeGitHub",
    "RecordedRequest",
    "commit",
    # Helper functions
    "create_contact",
    "create_pull_request_ref",
]
