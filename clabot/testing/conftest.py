"""
Pytest plugin for clabot testing fixtures.

To use these fixtures in your tests, add this to your conftest.py:

    pytest_plugins = ["clabot.testing.conftest"]

Or import the fixtures directly:

    from clabot.testing.fixtures import fake_github, make_bot
"""

# Re-export all fixtures for pytest auto-discovery
from clabot.testing.fixtures import (
    clabot_config,
    fake_github,
    make_bot,
    rsa_private_key_pem,
    rsa_signer,
    signature_store,
)

__all__ = [
    "rsa_signer",
    "rsa_private_key_pem",
    "fake_github",
    "signature_store",
    "clabot_config",
    "make_bot",
]
