"""
Signature store collaborator.

The store that holds signed CLAs lives outside this package; the validation
engine only needs to ask which of a set of GitHub usernames have signed and,
for the submit flow, to record a new signature.
"""

import inspect
import uuid
from collections.abc import Awaitable, Callable, Iterable
from datetime import datetime, timezone
from typing import Protocol, Union, runtime_checkable

from clabot.exceptions import ClaBotError
from clabot.types.signatures import ClaSignature, Contact

SignatureLookup = Callable[[set[str]], Union[set[str], Awaitable[set[str]]]]


class DuplicateSignatureError(ClaBotError):
    """A signature for this GitHub username already exists."""

    def __init__(self, github_username: str) -> None:
        super().__init__(
            code="DUPLICATE_SIGNATURE",
            message=f"{github_username} has already signed the CLA",
        )
        self.github_username = github_username


@runtime_checkable
class SignatureStore(Protocol):
    """What the engine needs from the signature database.

    Either method may be a coroutine function.
    """

    def lookup_signatures(self, github_usernames: set[str]) -> set[str] | Awaitable[set[str]]:
        """Return the subset of ``github_usernames`` that have signed."""
        ...

    def record_signature(
        self, contact: Contact, cla_version: str
    ) -> ClaSignature | Awaitable[ClaSignature]:
        """Store a signature and return it."""
        ...


async def resolve(value):
    """Await ``value`` if it is awaitable, otherwise return it unchanged."""
    if inspect.isawaitable(value):
        return await value
    return value


class InMemorySignatureStore:
    """Signature store kept in a dict, for tests and small deployments.

    Usernames are unique and compared case-insensitively, as GitHub logins
    are.
    """

    def __init__(
        self,
        signatures: Iterable[ClaSignature] = (),
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ) -> None:
        self._signatures: dict[str, ClaSignature] = {}
        self._clock = clock
        for signature in signatures:
            self._signatures[signature.github_username.lower()] = signature

    def lookup_signatures(self, github_usernames: set[str]) -> set[str]:
        return {name for name in github_usernames if name.lower() in self._signatures}

    def record_signature(self, contact: Contact, cla_version: str) -> ClaSignature:
        """
        Record that ``contact`` signed ``cla_version``.

        Raises:
            DuplicateSignatureError: If the username has already signed
        """
        key = contact.github_username.lower()
        if key in self._signatures:
            raise DuplicateSignatureError(contact.github_username)

        signature = ClaSignature(
            signature_id=str(uuid.uuid4()),
            contact=contact,
            github_username=contact.github_username,
            signed_on=self._clock(),
            cla_version=cla_version,
        )
        self._signatures[key] = signature
        return signature

    def get(self, github_username: str) -> ClaSignature | None:
        return self._signatures.get(github_username.lower())

    def sign(self, *github_usernames: str, cla_version: str = "1.0") -> None:
        """Record signatures for bare usernames."""
        for username in github_usernames:
            contact = Contact(
                contact_id=str(uuid.uuid4()),
                first_name="",
                last_name=username,
                email=f"{username}@example.com",
                github_username=username,
            )
            self.record_signature(contact, cla_version)

    def __len__(self) -> int:
        return len(self._signatures)

    def __contains__(self, github_username: object) -> bool:
        return isinstance(github_username, str) and github_username.lower() in self._signatures
