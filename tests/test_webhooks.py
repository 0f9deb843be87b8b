"""
Tests for webhook verification and dispatch.

Feature: clabot
"""

import asyncio
import json

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from clabot.exceptions import WebhookVerificationError
from clabot.testing import FakeGitHub, commit
from clabot.types.pulls import CommitState
from clabot.webhooks import parse_event, sign_body, verify_signature

SECRET = "It's a Secret to Everybody"
REPO = "octo/widgets"


def _pull_request_payload(action: str = "opened", number: int = 7, head_sha: str = "a" * 40) -> dict:
    return {
        "action": action,
        "installation": {"id": 1},
        "repository": {"full_name": REPO},
        "sender": {"login": "bob"},
        "pull_request": {"number": number, "state": "open", "head": {"sha": head_sha}},
    }


def _comment_payload(login: str = "bob", on_pull_request: bool = True) -> dict:
    issue: dict = {"number": 7}
    if on_pull_request:
        issue["pull_request"] = {"url": f"https://api.github.com/repos/{REPO}/pulls/7"}
    return {
        "action": "created",
        "installation": {"id": 1},
        "repository": {"full_name": REPO},
        "sender": {"login": login},
        "issue": issue,
        "comment": {"body": "I signed it!", "user": {"login": login}},
    }


@pytest.fixture
def github(fake_github: FakeGitHub) -> FakeGitHub:
    fake_github.add_installation(1, "octo")
    fake_github.add_repository(REPO, 1, collaborators=["alice"])
    fake_github.add_pull_request(REPO, 7, [commit("alice"), commit("bob")])
    return fake_github


def _deliver(make_bot, event_name: str, payload: dict, secret: str | None = SECRET, signature: str | None = None):
    body = json.dumps(payload).encode()
    if signature is None and secret is not None:
        signature = sign_body(secret, body)

    async def run():
        async with make_bot(webhook_secret=SECRET) as bot:
            return await bot.handle_webhook(event_name, body, signature)

    return asyncio.run(run())


# ============================================================================
# Signature verification
# ============================================================================


def test_signature_matches_github_example() -> None:
    body = b"Hello, World!"

    assert sign_body(SECRET, body) == "sha1=01dc10d0c83e72ed246219cdd91669667fe2ca59"
    verify_signature(SECRET, body, "sha1=01dc10d0c83e72ed246219cdd91669667fe2ca59")


@pytest.mark.parametrize(
    "header",
    [None, "", "sha256=abc", "sha1=", "sha1=0000000000000000000000000000000000000000"],
)
def test_bad_signature_is_rejected(header: str | None) -> None:
    with pytest.raises(WebhookVerificationError):
        verify_signature(SECRET, b"{}", header)


def test_no_secret_accepts_unsigned_deliveries() -> None:
    verify_signature(None, b"{}", None)


@given(body=st.binary(max_size=512), other=st.binary(min_size=1, max_size=16))
@settings(max_examples=100)
def test_property_signature_binds_body(body: bytes, other: bytes) -> None:
    """
    Property: Signatures bind the exact body

    For any body, its own signature SHALL verify and the signature of any
    different body SHALL NOT.
    """
    verify_signature(SECRET, body, sign_body(SECRET, body))
    with pytest.raises(WebhookVerificationError):
        verify_signature(SECRET, body + other, sign_body(SECRET, body))


# ============================================================================
# Event parsing
# ============================================================================


@pytest.mark.parametrize("action", ["opened", "reopened", "synchronize", "edited"])
def test_pull_request_actions_are_handled(action: str) -> None:
    event = parse_event("pull_request", _pull_request_payload(action))

    assert event is not None
    assert event.installation_id == 1
    assert event.pull_request.owner_repo == REPO
    assert event.pull_request.number == 7
    assert event.pull_request.head_sha == "a" * 40


@pytest.mark.parametrize("action", ["closed", "labeled", "assigned"])
def test_other_pull_request_actions_are_ignored(action: str) -> None:
    assert parse_event("pull_request", _pull_request_payload(action)) is None


def test_comment_on_pull_request_is_handled() -> None:
    event = parse_event("issue_comment", _comment_payload("carol"))

    assert event is not None
    assert event.pull_request.number == 7
    assert event.sender_login == "carol"


def test_comment_on_plain_issue_is_ignored() -> None:
    assert parse_event("issue_comment", _comment_payload(on_pull_request=False)) is None


@pytest.mark.parametrize("event_name", ["push", "check_run", "ping"])
def test_unrelated_events_are_ignored(event_name: str) -> None:
    assert parse_event(event_name, _pull_request_payload()) is None


def test_delivery_without_installation_is_ignored() -> None:
    payload = _pull_request_payload()
    del payload["installation"]

    assert parse_event("pull_request", payload) is None


@pytest.mark.parametrize(
    "truncate",
    [
        lambda p: p.pop("pull_request"),
        lambda p: p["pull_request"].pop("number"),
        lambda p: p["pull_request"].pop("head"),
        lambda p: p["pull_request"]["head"].pop("sha"),
    ],
    ids=["no-pull-request", "no-number", "no-head", "no-sha"],
)
def test_truncated_pull_request_delivery_is_ignored(truncate) -> None:
    payload = _pull_request_payload()
    truncate(payload)

    assert parse_event("pull_request", payload) is None


def test_comment_without_issue_number_is_ignored() -> None:
    payload = _comment_payload()
    del payload["issue"]["number"]

    assert parse_event("issue_comment", payload) is None


# ============================================================================
# Dispatch
# ============================================================================


def test_pull_request_delivery_validates(github, make_bot) -> None:
    head = github.pull(REPO, 7).head_sha

    result = _deliver(make_bot, "pull_request", _pull_request_payload(head_sha=head))

    assert result.state is CommitState.FAILURE
    assert github.latest_status(REPO, head) == "failure"
    assert len(github.comments_on(REPO, 7)) == 1


def test_comment_delivery_revalidates_current_head(github, make_bot, signature_store) -> None:
    signature_store.sign("bob")

    result = _deliver(make_bot, "issue_comment", _comment_payload("bob"))

    assert result.state is CommitState.SUCCESS
    assert result.pull_request.head_sha == github.pull(REPO, 7).head_sha


def test_own_comment_is_ignored(github, make_bot) -> None:
    result = _deliver(make_bot, "issue_comment", _comment_payload(github.bot_login))

    assert result is None
    assert github.requests_to("POST", r"/app/installations/1/access_tokens") == []


def test_forged_delivery_is_rejected(github, make_bot) -> None:
    with pytest.raises(WebhookVerificationError):
        _deliver(make_bot, "pull_request", _pull_request_payload(), signature="sha1=" + "0" * 40)

    assert github.requests == []


def test_non_json_body_is_rejected(make_bot) -> None:
    body = b"not json"

    async def run():
        async with make_bot(webhook_secret=SECRET) as bot:
            return await bot.handle_webhook("pull_request", body, sign_body(SECRET, body))

    with pytest.raises(WebhookVerificationError, match="not JSON"):
        asyncio.run(run())


def test_ignored_action_makes_no_requests(github, make_bot) -> None:
    assert _deliver(make_bot, "pull_request", _pull_request_payload("closed")) is None
    assert github.requests == []


def test_truncated_delivery_makes_no_requests(github, make_bot) -> None:
    payload = _pull_request_payload()
    del payload["pull_request"]["head"]

    assert _deliver(make_bot, "pull_request", payload) is None
    assert github.requests == []


def test_installation_removal_drops_cached_token(github, make_bot) -> None:
    removal = json.dumps({"action": "deleted", "installation": {"id": 1}}).encode()

    async def run():
        async with make_bot(webhook_secret=SECRET) as bot:
            await bot.authority.installation_token(1)
            result = await bot.handle_webhook("installation", removal, sign_body(SECRET, removal))
            await bot.authority.installation_token(1)
            return result

    assert asyncio.run(run()) is None
    assert len(github.requests_to("POST", r"/app/installations/1/access_tokens")) == 2
