"""
Query Builder

Turns a natural-language question into JQL with the LLM and runs it.
When Jira rejects the generated query, the error is fed back into the
next prompt so the model can correct itself.
"""

import asyncio
import logging
from typing import Awaitable, Callable, List, Optional, Tuple

from ..common.errors import QueryGenerationError, LLMResponseError
from ..common.llm_client import LLMClient
from ..common.llm_utils import require_json_field
from .jira import JiraClient
from .schemas import Candidate

logger = logging.getLogger("radar.tracker.query_builder")


JQL_PROMPT = """## Task
Generate a Jira search query (JQL) that finds issues related to the natural-language request below.
The project key is: {project_key}
Do not add options other than search terms, so that the search stays stable.
Avoid overly specific queries and go easy on AND; prefer queries that return plenty of results.
Alphanumeric tokens such as G0239422 are likely error codes; use each of them as a keyword on its own.
{search_hint}
Put the query in the "search_query" field of a JSON object.

Last error (may be empty): {last_error}

## Request
{query}"""


QueryHook = Callable[[str], Awaitable[None]]


class QueryBuilder:
    """Generates JQL and fetches candidate issues, with bounded retries."""

    def __init__(
        self,
        llm_client: LLMClient,
        jira_client: JiraClient,
        project_key: str = "",
        search_hint: str = "",
        max_attempts: int = 3,
        retry_delay: float = 1.0,
    ):
        self._llm = llm_client
        self._jira = jira_client
        self._project_key = project_key
        self._search_hint = search_hint
        self._max_attempts = max_attempts
        self._retry_delay = retry_delay

    def generate_jql(self, query: str, last_error: Optional[Exception] = None) -> str:
        """Ask the LLM for a JQL query (blocking)"""
        prompt = JQL_PROMPT.format(
            project_key=self._project_key,
            search_hint=self._search_hint,
            last_error=last_error or "",
            query=query,
        )
        raw = self._llm.generate(prompt, json_mode=True, max_tokens=512)
        jql = require_json_field(raw, "search_query")
        if not isinstance(jql, str) or not jql.strip():
            raise LLMResponseError(f"LLM returned an empty search query: {raw[:200]!r}")
        logger.info("Generated JQL: %s", jql)
        return jql.strip()

    async def search(
        self,
        query: str,
        on_query: Optional[QueryHook] = None,
    ) -> Tuple[str, List[Candidate]]:
        """
        Generate JQL and fetch matching issues.

        Args:
            query: Natural-language request
            on_query: Awaited with each generated JQL before it is executed

        Returns:
            (jql, candidates) of the first successful attempt

        Raises:
            QueryGenerationError: when every attempt failed
        """
        last_error: Optional[Exception] = None

        for attempt in range(1, self._max_attempts + 1):
            try:
                jql = await asyncio.to_thread(self.generate_jql, query, last_error)
                if on_query is not None:
                    await on_query(jql)
                candidates = await self._jira.fetch_issues(jql)
                return jql, candidates
            except Exception as e:
                last_error = e
                logger.warning("Query attempt %d/%d failed: %s", attempt, self._max_attempts, e)
                if attempt < self._max_attempts:
                    await asyncio.sleep(self._retry_delay)

        raise QueryGenerationError(
            f"Failed to build a Jira query after {self._max_attempts} attempts: {last_error}"
        ) from last_error
