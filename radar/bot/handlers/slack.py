"""
Slack Handler

Turns Slack Events API callbacks into bot requests.
Only ``app_mention`` events are answered; the mention of the bot itself is
removed so the remaining text is the question.
"""

import hmac
import hashlib
import re
import time
from typing import Optional, Dict, Any

from .base import BaseHandler, Message

# Signed requests older than this are rejected (replay protection)
SIGNATURE_MAX_AGE = 300

_LEADING_MENTION = re.compile(r"^\s*<@[A-Z0-9]+>")


class SlackHandler(BaseHandler):
    """
    Handler for Slack app mentions.

    Bot-authored events and every other event type are ignored so the bot
    never answers itself.
    """

    def __init__(self, signing_secret: str = "", bot_user_id: str = ""):
        """
        Args:
            signing_secret: App signing secret; empty disables verification
            bot_user_id: The bot's own user id, removed from mention text
        """
        super().__init__("slack")
        self._signing_secret = signing_secret
        self.bot_user_id = bot_user_id

    async def parse_event(self, raw_data: Dict[str, Any]) -> Optional[Message]:
        if raw_data.get("type") != "event_callback":
            return None

        event = raw_data.get("event", {})
        if event.get("type") != "app_mention":
            return None
        if event.get("bot_id") or event.get("subtype") == "bot_message":
            return None

        return Message(
            text=self.strip_bot_mention(event.get("text", "")),
            user=event.get("user", ""),
            channel=event.get("channel", ""),
            source=self.source_name,
            timestamp=event.get("ts", ""),
            thread_ts=event.get("thread_ts"),
            raw_data=event,
        )

    def strip_bot_mention(self, text: str) -> str:
        """Remove the bot's own mention (first occurrence) and trim"""
        if self.bot_user_id:
            text = text.replace(f"<@{self.bot_user_id}>", "", 1)
        else:
            text = _LEADING_MENTION.sub("", text, count=1)
        return text.strip()

    def verify_signature(self, body: bytes, signature: str, timestamp: str) -> bool:
        """
        Check the ``X-Slack-Signature`` header (v0 HMAC-SHA256 scheme).

        Requests whose ``X-Slack-Request-Timestamp`` is more than five
        minutes away from now are rejected.
        """
        if not self._signing_secret:
            return True
        if not signature or not timestamp:
            return False

        try:
            age = abs(time.time() - int(timestamp))
        except ValueError:
            return False
        if age > SIGNATURE_MAX_AGE:
            return False

        basestring = b"v0:" + timestamp.encode() + b":" + body
        digest = hmac.new(self._signing_secret.encode(), basestring, hashlib.sha256).hexdigest()
        return hmac.compare_digest(f"v0={digest}", signature)

    def is_url_verification(self, raw_data: Dict[str, Any]) -> bool:
        return raw_data.get("type") == "url_verification"

    def get_challenge(self, raw_data: Dict[str, Any]) -> Optional[str]:
        """Challenge to echo back during Events API URL verification"""
        if self.is_url_verification(raw_data):
            return raw_data.get("challenge")
        return None
