"""
Source Handlers

Each handler converts source-specific webhook events to a common Message.

Available Handlers:
- SlackHandler: Slack Events API (app_mention)
"""

from .base import BaseHandler, Message
from .slack import SlackHandler

__all__ = [
    "BaseHandler",
    "Message",
    "SlackHandler",
]
