"""
Base Handler

Every chat source the bot listens to gets a handler that turns its
webhook payloads into a Message and checks that they are authentic.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional, Dict, Any
from datetime import datetime


@dataclass
class Message:
    """
    A request addressed to the bot.

    ``text`` has the bot's own mention already stripped.
    """
    text: str
    user: str
    channel: str
    source: str  # "slack"
    timestamp: str
    thread_ts: Optional[str] = None
    raw_data: Optional[Dict[str, Any]] = None

    @property
    def datetime(self) -> Optional[datetime]:
        """When the request was posted, if the source timestamp is numeric"""
        try:
            return datetime.fromtimestamp(float(self.timestamp))
        except (ValueError, TypeError):
            return None

    @property
    def is_valid(self) -> bool:
        """A request needs some non-blank text to search for"""
        return bool(self.text and self.text.strip())

    @property
    def reply_anchor(self) -> str:
        """Thread to reply in: the enclosing thread, or the message itself"""
        return self.thread_ts or self.timestamp


class BaseHandler(ABC):
    """Converts one source's webhook payloads into bot requests."""

    def __init__(self, source_name: str):
        self.source_name = source_name

    @abstractmethod
    async def parse_event(self, raw_data: Dict[str, Any]) -> Optional[Message]:
        """Return the request carried by ``raw_data``, or None to ignore it"""

    @abstractmethod
    def verify_signature(self, body: bytes, signature: str, timestamp: str) -> bool:
        """True when the payload was signed by the source"""
