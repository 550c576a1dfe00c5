"""
Tracker Schemas

Candidate records as read from Jira Cloud (REST API v3).
Descriptions and comment bodies arrive as ADF (Atlassian Document Format)
and are flattened to plain text on construction.
"""

from typing import Any, Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field


def extract_text_from_adf(adf: Any) -> str:
    """
    Flatten an ADF document to plain text.

    Only text nodes directly under top-level blocks (paragraphs, headings)
    are collected, joined with single spaces. Plain strings pass through
    unchanged; anything unrecognised yields "".
    """
    if isinstance(adf, str):
        return adf
    if not isinstance(adf, dict):
        return ""

    texts = []
    for block in adf.get("content") or []:
        if not isinstance(block, dict):
            continue
        for inline in block.get("content") or []:
            if isinstance(inline, dict) and inline.get("text"):
                texts.append(inline["text"])
    return " ".join(texts)


class Comment(BaseModel):
    """A single issue comment"""
    model_config = ConfigDict(frozen=True)

    author: str = ""
    created: str = ""
    body: str = ""


class Candidate(BaseModel):
    """
    An issue under evaluation. Immutable once fetched.

    ``id`` is never empty; an empty id marks an excluded result downstream.
    Comments keep the order returned by Jira (oldest first).
    """
    model_config = ConfigDict(frozen=True)

    id: str = Field(min_length=1)
    key: str
    title: str = ""
    description: str = ""
    comments: Tuple[Comment, ...] = Field(default_factory=tuple)

    @classmethod
    def from_jira(cls, issue: Dict[str, Any]) -> "Candidate":
        """Build a Candidate from a raw v3 issue JSON object"""
        fields = issue.get("fields") or {}
        comment_block = fields.get("comment") or {}

        comments: List[Comment] = []
        for raw in comment_block.get("comments") or []:
            body = extract_text_from_adf(raw.get("body"))
            if not body:
                continue
            author = (raw.get("author") or {}).get("displayName", "")
            comments.append(Comment(author=author, created=raw.get("created", ""), body=body))

        return cls(
            id=str(issue.get("id") or ""),
            key=issue.get("key", ""),
            title=fields.get("summary") or "",
            description=extract_text_from_adf(fields.get("description")),
            comments=tuple(comments),
        )

    @property
    def label(self) -> str:
        """Short label used in logs and notifications"""
        return f"`{self.key}` - {self.title}"


class SearchPage(BaseModel):
    """Response envelope of /rest/api/3/search/jql"""
    issues: List[Dict[str, Any]] = Field(default_factory=list)
    isLast: Optional[bool] = None
    total: Optional[int] = None
