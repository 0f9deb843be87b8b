#!/usr/bin/env python3
"""
Basic clabot usage example.

Runs the whole flow against the in-memory GitHub: validate a pull request
with an unsigned external contributor, record the signature, and watch the
pull request flip to success.
Run with: python examples/basic_usage.py
"""

import asyncio
import json
import logging

from clabot import ClaBot, ClaBotConfig, InMemorySignatureStore, configure_logging
from clabot.signers import RS256Signer
from clabot.testing import FakeGitHub, commit, create_contact
from clabot.webhooks import sign_body


async def main() -> None:
    print("=== clabot Basic Usage Example ===\n")

    # 1. Fake GitHub with one repository and one pull request
    print("1. Setting up the in-memory GitHub...")
    github = FakeGitHub(app_slug="acme-cla")
    github.add_installation(1, "octo")
    github.add_repository("octo/widgets", 1, collaborators=["alice"])
    github.add_pull_request("octo/widgets", 7, [commit("alice"), commit("bob")])
    print("   octo/widgets#7 has commits by alice (collaborator) and bob (external)\n")

    # 2. Bot wired to the fake
    signer = RS256Signer.generate()
    config = ClaBotConfig(
        app_id=str(github.app_id),
        private_key_pem=signer.private_key_pem(),
        webhook_secret="s3cret",
        cla_url="https://cla.example.com/sign",
        organization_name="Acme",
    )
    store = InMemorySignatureStore()

    async with ClaBot(config, store, transport=github.transport(), signer=signer) as bot:
        # 3. A pull_request webhook triggers validation
        print("2. Delivering a pull_request webhook...")
        head = github.pull("octo/widgets", 7).head_sha
        body = json.dumps(
            {
                "action": "opened",
                "installation": {"id": 1},
                "repository": {"full_name": "octo/widgets"},
                "sender": {"login": "bob"},
                "pull_request": {"number": 7, "state": "open", "head": {"sha": head}},
            }
        ).encode()
        result = await bot.handle_webhook("pull_request", body, sign_body("s3cret", body))
        print(f"   State: {result.state.value}")
        print(f"   Missing: {', '.join(str(c) for c in result.missing_signatures)}")
        print(f"   Labels: {github.labels_on('octo/widgets', 7)}")
        print(f"   Comment: {github.comments_on('octo/widgets', 7)[0]['body']}\n")

        # 4. bob signs; blocked pull requests are revalidated
        print("3. Recording bob's signature...")
        signature, results = await bot.record_signature(create_contact("bob", "Bob Builder"), "1.0")
        print(f"   Signed on: {signature.signed_on.isoformat()}")
        for revalidated in results:
            print(f"   {revalidated.pull_request}: {revalidated.state.value}")
        print(f"   Labels: {github.labels_on('octo/widgets', 7)}\n")

    print("=== Done ===")


if __name__ == "__main__":
    configure_logging(logging.INFO)
    asyncio.run(main())
