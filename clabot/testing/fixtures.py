"""
Pytest fixtures for clabot testing.

Provides RSA keys, an in-memory GitHub, a signature store and a factory for
``ClaBot`` instances wired to them.
"""

import uuid
from collections.abc import Callable

import pytest

from clabot.client import ClaBot
from clabot.config import ClaBotConfig
from clabot.signatures import InMemorySignatureStore
from clabot.signers import RS256Signer
from clabot.testing.fake_github import FakeGitHub
from clabot.types.pulls import PullRequestRef
from clabot.types.signatures import Contact

TEST_APP_ID = "1234"
TEST_CLA_URL = "https://cla.example.com/sign"
TEST_ORGANIZATION = "Acme"


# ============================================================================
# Key Fixtures
# ============================================================================


@pytest.fixture(scope="session")
def rsa_signer() -> RS256Signer:
    """
    Provide a generated RS256 signer, shared by the whole session.

    Example:
        ```python
        def test_jwt(rsa_signer):
            token = rsa_signer.sign({"iss": "1"})
            assert rsa_signer.verify(token)["iss"] == "1"
        ```
    """
    return RS256Signer.generate()


@pytest.fixture(scope="session")
def rsa_private_key_pem(rsa_signer: RS256Signer) -> str:
    """Provide the PEM of the session RSA key."""
    return rsa_signer.private_key_pem()


# ============================================================================
# GitHub and Store Fixtures
# ============================================================================


@pytest.fixture
def fake_github() -> FakeGitHub:
    """Provide an empty in-memory GitHub."""
    return FakeGitHub(app_id=int(TEST_APP_ID))


@pytest.fixture
def signature_store() -> InMemorySignatureStore:
    """Provide an empty signature store."""
    return InMemorySignatureStore()


@pytest.fixture
def clabot_config(rsa_private_key_pem: str) -> ClaBotConfig:
    """Provide a configuration using the session RSA key."""
    return ClaBotConfig(
        app_id=TEST_APP_ID,
        private_key_pem=rsa_private_key_pem,
        cla_url=TEST_CLA_URL,
        organization_name=TEST_ORGANIZATION,
    )


@pytest.fixture
def make_bot(
    fake_github: FakeGitHub,
    signature_store: InMemorySignatureStore,
    clabot_config: ClaBotConfig,
    rsa_signer: RS256Signer,
) -> Callable[..., ClaBot]:
    """
    Provide a factory for bots talking to ``fake_github``.

    Call it inside the coroutine under test so the bot's locks and
    semaphores belong to that event loop.

    Example:
        ```python
        def test_validate(fake_github, make_bot):
            async def run():
                async with make_bot() as bot:
                    return await bot.validate_pull_request(1, "octo/widgets", 7)
            result = asyncio.run(run())
        ```
    """

    def factory(**overrides: object) -> ClaBot:
        config = clabot_config
        if overrides:
            config = ClaBotConfig(**{**vars(clabot_config), **overrides})
        return ClaBot(
            config,
            signature_store,
            transport=fake_github.transport(),
            signer=rsa_signer,
        )

    return factory


# ============================================================================
# Helper Functions
# ============================================================================


def create_pull_request_ref(
    owner_repo: str = "octo/widgets",
    number: int = 1,
    head_sha: str = "0" * 40,
) -> PullRequestRef:
    """Create a pull request reference for testing."""
    return PullRequestRef(owner_repo=owner_repo, number=number, head_sha=head_sha)


def create_contact(github_username: str, full_name: str | None = None) -> Contact:
    """Create a signer contact for testing."""
    return Contact.from_full_name(
        contact_id=str(uuid.uuid4()),
        full_name=full_name or f"Test {github_username.title()}",
        email=f"{github_username}@example.com",
        github_username=github_username,
    )
