"""Shared fixtures for the clabot test suite."""

from clabot.testing.fixtures import (  # noqa: F401
    clabot_config,
    fake_github,
    make_bot,
    rsa_private_key_pem,
    rsa_signer,
    signature_store,
)
