"""
Thread Finder

Finds Slack discussion threads that mention a keyword (usually the issue
URL) and returns every message of each distinct thread.

Search flow:
1. search.messages for the keyword (optionally restricted to one channel)
2. For each match, load the message to learn its thread root
3. Skip roots already expanded (dedup by channel + root ts)
4. Fetch the replies of each new root
"""

import logging
from typing import List, Optional, Set, Tuple

from ..common.slack_client import SlackWebClient
from .mentions import MentionSanitizer
from .models import ThreadMessage

logger = logging.getLogger("radar.ranker.threads")


class ThreadFinder:
    """
    Keyword search over Slack threads.

    A finder built without a user token is disabled: ``search`` returns an
    empty list without touching the network.
    """

    def __init__(
        self,
        client: Optional[SlackWebClient] = None,
        sanitizer: Optional[MentionSanitizer] = None,
        default_channel: str = "",
        search_count: int = 10,
        reply_limit: int = 100,
    ):
        self._client = client
        self._sanitizer = sanitizer or MentionSanitizer()
        self._default_channel = default_channel.lstrip("#")
        self._search_count = search_count
        self._reply_limit = reply_limit

    @property
    def enabled(self) -> bool:
        return self._client is not None and self._client.has_token

    async def search(self, keyword: str, channel: Optional[str] = None) -> List[ThreadMessage]:
        """
        Return the messages of every thread matching ``keyword``.

        Errors from any Slack call propagate; callers retry them.
        """
        if not self.enabled:
            return []

        scope = (channel or self._default_channel).lstrip("#")
        search_query = f"in:#{scope} {keyword}" if scope else keyword

        matches = await self._client.search_messages(
            search_query,
            count=self._search_count,
            sort="timestamp",
            sort_dir="asc",
        )

        visited: Set[Tuple[str, str]] = set()
        messages: List[ThreadMessage] = []

        for match in matches:
            channel_id = (match.get("channel") or {}).get("id", "")
            ts = match.get("ts", "")
            if not channel_id or not ts:
                continue

            history = await self._client.conversation_history(
                channel_id, latest=ts, oldest=ts, inclusive=True, limit=1
            )
            if not history:
                continue

            parent = history[0]
            root_ts = parent.get("thread_ts") or parent.get("ts") or ts

            thread_key = (channel_id, root_ts)
            if thread_key in visited:
                continue
            visited.add(thread_key)

            replies = await self._client.conversation_replies(
                channel_id, root_ts, limit=self._reply_limit, inclusive=True
            )
            for reply in replies:
                messages.append(ThreadMessage(
                    channel=channel_id,
                    timestamp=reply.get("ts", ""),
                    user=reply.get("user", ""),
                    text=reply.get("text", ""),
                ))

        logger.debug("Thread search %r: %d match(es), %d thread(s), %d message(s)",
                     keyword, len(matches), len(visited), len(messages))
        return messages

    async def render(self, messages: List[ThreadMessage]) -> str:
        """Render thread messages as text for the LLM, with mentions made safe"""
        blocks = []
        for message in messages:
            author = await self._sanitizer.display_name(message.user)
            text = await self._sanitizer.sanitize(message.text)
            blocks.append(
                f"\n### Posted: {message.timestamp}\n- Author: {author}\n- Text: {text}"
            )
        return "\n".join(blocks)


def thread_permalink(workspace_url: str, message: ThreadMessage) -> str:
    """Archive link of a message, e.g. https://acme.slack.com/archives/C1/p1700000000000100"""
    return f"{workspace_url.rstrip('/')}/archives/{message.channel}/p{message.timestamp.replace('.', '')}"
