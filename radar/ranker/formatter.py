"""
Candidate Formatter

Renders an issue as the text block that is scored and summarized.
"""

from ..tracker.schemas import Candidate

# Full-width at sign: looks the same, never triggers a Slack mention
SAFE_AT = "＠"


def neutralize_mentions(text: str) -> str:
    """Replace every '@' so the text cannot notify anyone when posted"""
    if not text:
        return ""
    return text.replace("@", SAFE_AT)


def escape_markup(text: str) -> str:
    """
    Make text inert inside a Slack message.

    Control characters are entity-escaped, so ``<!channel>`` or ``<@U1>``
    show up literally instead of pinging, and '@' is neutralized.
    """
    if not text:
        return ""
    escaped = text.replace("&", "&amp;").replace("<", "&lt;").replace(">", "&gt;")
    return neutralize_mentions(escaped)


def format_comment(author: str, created: str, body: str) -> str:
    return neutralize_mentions(f"Author: {author}\nCreated: {created}\nBody: {body}")


def format_candidate(candidate: Candidate) -> str:
    """
    Format a candidate as summary, description and comment history.

    Comments keep source order. Missing parts render as empty sections.
    """
    title = neutralize_mentions(getattr(candidate, "title", "") or "")
    description = neutralize_mentions(getattr(candidate, "description", "") or "")

    comments = []
    for comment in getattr(candidate, "comments", None) or ():
        comments.append(f"### {format_comment(comment.author, comment.created, comment.body)}")

    return (
        f"## Summary\n{title}\n"
        f"## Description\n{description}\n"
        f"## Comment history\n" + "\n\n".join(comments)
    )
