"""
Tests for mention sanitizing and the Slack directory cache
"""

import pytest
from unittest.mock import AsyncMock, MagicMock

from radar.common.errors import SlackAPIError
from radar.ranker.formatter import SAFE_AT
from radar.ranker.mentions import MentionSanitizer, SlackDirectory, preferred_name


USERS = [
    {"id": "U1", "name": "alice", "real_name": "Alice Kim", "profile": {"display_name": "ali"}},
    {"id": "U2", "name": "bob", "real_name": "Bob Lee", "profile": {"display_name": ""}},
]
GROUPS = [
    {"id": "S1", "handle": "oncall", "name": "On-call"},
]


def _client(users=USERS, groups=GROUPS):
    client = MagicMock()
    client.users_list = AsyncMock(return_value=users)
    client.usergroups_list = AsyncMock(return_value=groups)
    return client


class FakeClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now


class TestPreferredName:
    """Tests for preferred_name"""

    def test_display_name_first(self):
        assert preferred_name(USERS[0]) == "ali"

    def test_falls_back_to_real_name(self):
        assert preferred_name(USERS[1]) == "Bob Lee"

    def test_falls_back_to_account_name(self):
        assert preferred_name({"name": "carol"}) == "carol"


class TestSlackDirectory:
    """Tests for SlackDirectory"""

    @pytest.mark.asyncio
    async def test_caches_within_ttl(self):
        client = _client()
        clock = FakeClock()
        directory = SlackDirectory(client, ttl=60, clock=clock)

        assert await directory.user_name("U1") == "ali"
        clock.now = 30
        assert await directory.user_name("U2") == "Bob Lee"

        assert client.users_list.await_count == 1

    @pytest.mark.asyncio
    async def test_reloads_after_ttl(self):
        client = _client()
        clock = FakeClock()
        directory = SlackDirectory(client, ttl=60, clock=clock)

        await directory.user_name("U1")
        clock.now = 61
        await directory.user_name("U1")

        assert client.users_list.await_count == 2

    @pytest.mark.asyncio
    async def test_unknown_ids(self):
        directory = SlackDirectory(_client())

        assert await directory.user_name("U404") is None
        assert await directory.group_name("S404") is None

    @pytest.mark.asyncio
    async def test_lookup_failure_degrades(self):
        client = _client()
        client.users_list.side_effect = SlackAPIError("users.list", "missing_scope")
        directory = SlackDirectory(client)

        assert await directory.user_name("U1") is None

    @pytest.mark.asyncio
    async def test_group_handle(self):
        directory = SlackDirectory(_client())

        assert await directory.group_name("S1") == "oncall"


class TestMentionSanitizer:
    """Tests for MentionSanitizer"""

    @pytest.mark.asyncio
    async def test_special_mentions(self):
        sanitizer = MentionSanitizer()

        text = await sanitizer.sanitize("<!here> and <!channel> and <!everyone>")

        assert text == (
            f"[group] {SAFE_AT}here and [group] {SAFE_AT}channel and [group] {SAFE_AT}everyone"
        )

    @pytest.mark.asyncio
    async def test_user_mentions_resolved(self):
        sanitizer = MentionSanitizer(SlackDirectory(_client()))

        text = await sanitizer.sanitize("thanks <@U1>, ask <@U2|bob>")

        assert text == f"thanks [user] {SAFE_AT}ali, ask [user] {SAFE_AT}Bob Lee"

    @pytest.mark.asyncio
    async def test_unresolved_user_keeps_id(self):
        sanitizer = MentionSanitizer(SlackDirectory(_client()))

        text = await sanitizer.sanitize("ping <@U999>")

        assert text == f"ping {SAFE_AT}U999"

    @pytest.mark.asyncio
    async def test_user_mentions_without_directory(self):
        sanitizer = MentionSanitizer()

        assert await sanitizer.sanitize("hi <@U1>") == f"hi {SAFE_AT}U1"

    @pytest.mark.asyncio
    async def test_group_mentions(self):
        sanitizer = MentionSanitizer(SlackDirectory(_client()))

        text = await sanitizer.sanitize("<!subteam^S1> and <!subteam^S2|@db-team>")

        assert text == f"[group] {SAFE_AT}oncall and [group] {SAFE_AT}{SAFE_AT}db-team"

    @pytest.mark.asyncio
    async def test_plain_at_signs(self):
        sanitizer = MentionSanitizer()

        text = await sanitizer.sanitize("mail ops@example.com @someone")

        assert "@" not in text

    @pytest.mark.asyncio
    async def test_empty_text(self):
        assert await MentionSanitizer().sanitize("") == ""

    @pytest.mark.asyncio
    async def test_display_name(self):
        sanitizer = MentionSanitizer(SlackDirectory(_client()))

        assert await sanitizer.display_name("U1") == "ali"
        assert await sanitizer.display_name("U404") == "U404"
        assert await MentionSanitizer().display_name("U1") == "U1"
