"""CLA signature data models."""

from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True)
class Contact:
    """Person who signs the CLA."""

    contact_id: str
    first_name: str
    last_name: str
    email: str
    github_username: str

    @staticmethod
    def split_full_name(full_name: str) -> tuple[str, str]:
        """Split "First Middle Last" into ("First Middle", "Last")."""
        parts = full_name.split()
        if not parts:
            return "", ""
        return " ".join(parts[:-1]), parts[-1]

    @classmethod
    def from_full_name(
        cls, contact_id: str, full_name: str, email: str, github_username: str
    ) -> "Contact":
        first_name, last_name = cls.split_full_name(full_name)
        return cls(
            contact_id=contact_id,
            first_name=first_name,
            last_name=last_name,
            email=email,
            github_username=github_username,
        )


@dataclass(frozen=True)
class ClaSignature:
    """A signed CLA, owned by the signature store."""

    signature_id: str
    contact: Contact
    github_username: str
    signed_on: datetime
    cla_version: str
