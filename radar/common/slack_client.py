"""
Slack Web API Client

Thin async wrapper over the Slack Web API methods Radar needs.
Uses httpx with a persistent connection pool.

Two instances are normally created:
- user-token client: search.messages, conversation reads, user directory
- bot-token client: chat.postMessage / chat.postEphemeral
"""

import logging
from typing import Any, Dict, List, Optional

import httpx

from .errors import SlackAPIError

logger = logging.getLogger("radar.common.slack_client")

SLACK_API_BASE = "https://slack.com/api"


class SlackWebClient:
    """
    Async Slack Web API client bound to a single token.

    Usage:
        client = SlackWebClient(token="xoxp-...")
        matches = await client.search_messages("https://jira/browse/ABC-1")
        await client.aclose()
    """

    def __init__(
        self,
        token: str,
        base_url: str = SLACK_API_BASE,
        timeout: float = 10.0,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        self._token = token
        self._base_url = base_url.rstrip("/")
        self._http = http_client or httpx.AsyncClient(timeout=httpx.Timeout(timeout))

    @property
    def has_token(self) -> bool:
        return bool(self._token)

    async def call(self, method: str, **params: Any) -> Dict[str, Any]:
        """
        Invoke a Web API method.

        Raises:
            SlackAPIError: on transport errors, non-2xx responses, or ``ok: false``
        """
        payload = {k: v for k, v in params.items() if v is not None}
        try:
            response = await self._http.post(
                f"{self._base_url}/{method}",
                headers={"Authorization": f"Bearer {self._token}"},
                data=payload,
            )
        except httpx.HTTPError as e:
            raise SlackAPIError(method, str(e)) from e

        if response.status_code == 429:
            retry_after = response.headers.get("Retry-After", "?")
            raise SlackAPIError(method, f"ratelimited (retry after {retry_after}s)")
        if response.status_code >= 400:
            raise SlackAPIError(method, f"HTTP {response.status_code}")

        data = response.json()
        if not data.get("ok"):
            raise SlackAPIError(method, data.get("error", "unknown_error"))
        return data

    async def auth_test(self) -> Dict[str, Any]:
        return await self.call("auth.test")

    async def search_messages(
        self,
        query: str,
        count: int = 10,
        sort: str = "timestamp",
        sort_dir: str = "asc",
    ) -> List[Dict[str, Any]]:
        """Search messages; returns the raw match dicts"""
        data = await self.call(
            "search.messages",
            query=query,
            count=count,
            sort=sort,
            sort_dir=sort_dir,
        )
        return data.get("messages", {}).get("matches", [])

    async def conversation_history(
        self,
        channel: str,
        latest: Optional[str] = None,
        oldest: Optional[str] = None,
        inclusive: bool = True,
        limit: int = 1,
    ) -> List[Dict[str, Any]]:
        data = await self.call(
            "conversations.history",
            channel=channel,
            latest=latest,
            oldest=oldest,
            inclusive="true" if inclusive else "false",
            limit=limit,
        )
        return data.get("messages", [])

    async def conversation_replies(
        self,
        channel: str,
        ts: str,
        limit: int = 100,
        inclusive: bool = True,
    ) -> List[Dict[str, Any]]:
        data = await self.call(
            "conversations.replies",
            channel=channel,
            ts=ts,
            limit=limit,
            inclusive="true" if inclusive else "false",
        )
        return data.get("messages", [])

    async def conversation_info(self, channel: str) -> Dict[str, Any]:
        data = await self.call("conversations.info", channel=channel)
        return data.get("channel", {})

    async def users_list(self) -> List[Dict[str, Any]]:
        """All workspace members, following pagination cursors"""
        members: List[Dict[str, Any]] = []
        cursor = None
        while True:
            data = await self.call("users.list", cursor=cursor, limit=200)
            members.extend(data.get("members", []))
            cursor = data.get("response_metadata", {}).get("next_cursor")
            if not cursor:
                return members

    async def usergroups_list(self, include_users: bool = True) -> List[Dict[str, Any]]:
        data = await self.call(
            "usergroups.list",
            include_users="true" if include_users else "false",
        )
        return data.get("usergroups", [])

    async def post_message(
        self,
        channel: str,
        text: str,
        thread_ts: Optional[str] = None,
        blocks: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Post a message. ``blocks`` is a JSON-encoded Block Kit array."""
        return await self.call(
            "chat.postMessage",
            channel=channel,
            text=text,
            thread_ts=thread_ts or None,
            blocks=blocks,
            link_names="false",
        )

    async def post_ephemeral(
        self,
        channel: str,
        user: str,
        text: str,
        blocks: Optional[str] = None,
    ) -> Dict[str, Any]:
        return await self.call(
            "chat.postEphemeral",
            channel=channel,
            user=user,
            text=text,
            blocks=blocks,
        )

    async def aclose(self) -> None:
        await self._http.aclose()
