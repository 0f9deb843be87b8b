"""
GitHub App key handling for clabot.

The App authenticates as itself with short-lived RS256 JSON Web Tokens
signed by the App's RSA private key.
"""

from pathlib import Path
from typing import Any

from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from jose import jwt
from jose.exceptions import JWTError

from clabot.exceptions import ConfigurationError

ALGORITHM = "RS256"


class RS256Signer:
    """Signs JWT claims with a GitHub App's RSA private key."""

    def __init__(self, private_key: rsa.RSAPrivateKey) -> None:
        """
        Initialize with an RSA private key.

        Args:
            private_key: RSA private key from cryptography library
        """
        self._private_key = private_key
        self._public_key = private_key.public_key()
        self._private_pem = self.private_key_pem()

    def sign(self, claims: dict[str, Any]) -> str:
        """
        Encode and sign claims as a compact JWT.

        Args:
            claims: JWT claims (e.g. iat, exp, iss)

        Returns:
            Compact serialized JWT
        """
        try:
            return jwt.encode(claims, self._private_pem, algorithm=ALGORITHM)
        except JWTError as e:
            raise ConfigurationError(f"Unable to sign App token: {e}") from e

    def verify(self, token: str) -> dict[str, Any]:
        """
        Decode a JWT signed by this key (for testing purposes).

        Raises:
            jose.exceptions.JWTError: If the signature or claims are invalid
        """
        return jwt.decode(token, self.public_key_pem(), algorithms=[ALGORITHM])

    def public_key_pem(self) -> str:
        """Return the public key in PEM format."""
        return self._public_key.public_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PublicFormat.SubjectPublicKeyInfo,
        ).decode()

    def private_key_pem(self) -> str:
        """Return the private key in PEM format (for storage)."""
        return self._private_key.private_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PrivateFormat.PKCS8,
            encryption_algorithm=serialization.NoEncryption(),
        ).decode()

    @classmethod
    def from_pem(cls, pem: str | bytes) -> "RS256Signer":
        """
        Load a signer from a PEM string.

        Literal ``\\n`` sequences are accepted in place of newlines, as they
        appear when a key is stored in an environment variable.

        Raises:
            ConfigurationError: If the key is malformed or not an RSA key
        """
        if isinstance(pem, str):
            pem = pem.replace("\\n", "\n").strip().encode()

        try:
            private_key = serialization.load_pem_private_key(pem, password=None)
        except (ValueError, TypeError, UnsupportedAlgorithm) as e:
            raise ConfigurationError(f"Malformed App private key: {e}") from e

        if not isinstance(private_key, rsa.RSAPrivateKey):
            raise ConfigurationError(
                f"Expected RSA private key, got {type(private_key).__name__}"
            )

        return cls(private_key)

    @classmethod
    def from_pem_file(cls, path: str | Path) -> "RS256Signer":
        """
        Load a signer from a PEM file.

        Raises:
            ConfigurationError: If the file is unreadable or the key malformed
        """
        path = Path(path)
        try:
            pem_data = path.read_bytes()
        except OSError as e:
            raise ConfigurationError(f"Unable to read App private key {path}: {e}") from e
        return cls.from_pem(pem_data)

    @classmethod
    def generate(cls, key_size: int = 2048) -> "RS256Signer":
        """Generate a new RSA key (for tests and local development)."""
        private_key = rsa.generate_private_key(public_exponent=65537, key_size=key_size)
        return cls(private_key)
