"""
Mention Sanitizer

Rewrites Slack mention markup into inert, human-readable text so that
thread content quoted back into Slack never pings anyone.

Conversion order:
1. Special mentions (<!here>, <!channel>, <!everyone>)
2. User mentions <@U123> -> display name
3. Group mentions <!subteam^S123|name> -> handle
4. Unresolved <@...> -> raw id
5. Any remaining '@' -> full-width '＠'
"""

import asyncio
import logging
import re
import time
from typing import Any, Callable, Dict, Optional

from ..common.errors import SlackAPIError
from ..common.slack_client import SlackWebClient
from .formatter import SAFE_AT

logger = logging.getLogger("radar.ranker.mentions")

_SPECIAL_MENTIONS = {
    "<!here>": f"[group] {SAFE_AT}here",
    "<!channel>": f"[group] {SAFE_AT}channel",
    "<!everyone>": f"[group] {SAFE_AT}everyone",
}
_USER_MENTION = re.compile(r"<@([A-Z0-9]+)(?:\|[^>]*)?>")
_GROUP_MENTION = re.compile(r"<!subteam\^([A-Z0-9]+)(?:\|([^>]*))?>")
_ANY_USER_MENTION = re.compile(r"<@([^>]*)>")


def preferred_name(user: Dict[str, Any]) -> str:
    """Display name, then real name, then account name"""
    profile = user.get("profile") or {}
    return profile.get("display_name") or user.get("real_name") or user.get("name", "")


class SlackDirectory:
    """
    TTL cache of workspace users and user groups.

    Lookup failures degrade to "unknown" rather than raising, so a broken
    directory never fails thread rendering.
    """

    def __init__(
        self,
        client: SlackWebClient,
        ttl: float = 3600.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._client = client
        self._ttl = ttl
        self._clock = clock
        self._users: Dict[str, Dict[str, Any]] = {}
        self._groups: Dict[str, Dict[str, Any]] = {}
        self._users_loaded_at: Optional[float] = None
        self._groups_loaded_at: Optional[float] = None
        self._lock = asyncio.Lock()

    def _expired(self, loaded_at: Optional[float]) -> bool:
        return loaded_at is None or self._clock() - loaded_at > self._ttl

    async def _load_users(self) -> None:
        async with self._lock:
            if not self._expired(self._users_loaded_at):
                return
            members = await self._client.users_list()
            self._users = {u["id"]: u for u in members if u.get("id")}
            self._users_loaded_at = self._clock()

    async def _load_groups(self) -> None:
        async with self._lock:
            if not self._expired(self._groups_loaded_at):
                return
            groups = await self._client.usergroups_list(include_users=True)
            self._groups = {g["id"]: g for g in groups if g.get("id")}
            self._groups_loaded_at = self._clock()

    async def user_name(self, user_id: str) -> Optional[str]:
        try:
            await self._load_users()
        except SlackAPIError as e:
            logger.warning("User directory unavailable: %s", e)
            return None
        user = self._users.get(user_id)
        return preferred_name(user) if user else None

    async def group_name(self, group_id: str) -> Optional[str]:
        try:
            await self._load_groups()
        except SlackAPIError as e:
            logger.warning("User group directory unavailable: %s", e)
            return None
        group = self._groups.get(group_id)
        if not group:
            return None
        return group.get("handle") or group.get("name") or None


class MentionSanitizer:
    """Converts mention markup to safe text, resolving names via a directory."""

    def __init__(self, directory: Optional[SlackDirectory] = None):
        self._directory = directory

    async def sanitize(self, text: str) -> str:
        if not text:
            return ""

        result = text
        for markup, replacement in _SPECIAL_MENTIONS.items():
            result = result.replace(markup, replacement)

        if self._directory is not None:
            user_names = {}
            for user_id in set(_USER_MENTION.findall(result)):
                user_names[user_id] = await self._directory.user_name(user_id)

            def _user(match: re.Match) -> str:
                name = user_names.get(match.group(1))
                return f"[user] {SAFE_AT}{name}" if name else match.group(0)

            result = _USER_MENTION.sub(_user, result)

        group_names = {}
        for group_id, inline_name in set(_GROUP_MENTION.findall(result)):
            if inline_name:
                group_names[group_id] = inline_name
            elif self._directory is not None:
                group_names[group_id] = await self._directory.group_name(group_id)

        def _group(match: re.Match) -> str:
            name = match.group(2) or group_names.get(match.group(1))
            return f"[group] {SAFE_AT}{name}" if name else match.group(0)

        result = _GROUP_MENTION.sub(_group, result)

        result = _ANY_USER_MENTION.sub(lambda m: f"{SAFE_AT}{m.group(1)}", result)

        return result.replace("@", SAFE_AT)

    async def display_name(self, user_id: str) -> str:
        """Preferred name of a message author, falling back to the raw id"""
        if self._directory is None or not user_id:
            return user_id
        return await self._directory.user_name(user_id) or user_id
