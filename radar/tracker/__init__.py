"""
Tracker - Jira issue search

Key Components:
- Candidate / Comment: immutable issue records (ADF flattened to text)
- JiraClient: JQL search over the v3 REST API
- QueryBuilder: LLM-generated JQL with error feedback and retries
"""

from .schemas import Candidate, Comment, extract_text_from_adf
from .jira import JiraClient
from .query_builder import QueryBuilder

__all__ = [
    "Candidate",
    "Comment",
    "extract_text_from_adf",
    "JiraClient",
    "QueryBuilder",
]
