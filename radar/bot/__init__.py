"""
Bot - Slack front end

Receives app mentions over the Events API and answers with ephemeral
Block Kit cards for the best matching Jira issues.
"""

from .handlers import SlackHandler, Message

__all__ = [
    "SlackHandler",
    "Message",
]
