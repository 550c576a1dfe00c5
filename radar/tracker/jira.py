"""
Jira Client

Searches Jira Cloud issues with JQL via the v3 search endpoint.
"""

import logging
from typing import List, Optional

import httpx
from pydantic import ValidationError

from ..common.config import JiraConfig
from ..common.errors import JiraError
from .schemas import Candidate, SearchPage

logger = logging.getLogger("radar.tracker.jira")

SEARCH_FIELDS = "summary,description,comment"


class JiraClient:
    """Async Jira Cloud client using basic auth (username + API token)."""

    def __init__(
        self,
        endpoint: str,
        username: str = "",
        api_token: str = "",
        max_results: int = 30,
        timeout: float = 30.0,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        self._endpoint = endpoint.rstrip("/")
        self._max_results = max_results
        self._http = http_client or httpx.AsyncClient(
            auth=(username, api_token),
            timeout=httpx.Timeout(timeout),
        )

    @classmethod
    def from_config(cls, config: JiraConfig) -> "JiraClient":
        return cls(
            endpoint=config.endpoint,
            username=config.username,
            api_token=config.api_token,
            max_results=config.max_results,
        )

    def browse_url(self, key: str) -> str:
        """Canonical URL of an issue"""
        return f"{self._endpoint}/browse/{key}"

    async def fetch_issues(self, jql: str) -> List[Candidate]:
        """
        Run a JQL search and return the first page of issues.

        An empty result is a normal outcome. Transport, HTTP, and decode
        failures raise JiraError.
        """
        params = {
            "jql": jql,
            "fields": SEARCH_FIELDS,
            "maxResults": self._max_results,
        }
        try:
            response = await self._http.get(
                f"{self._endpoint}/rest/api/3/search/jql",
                params=params,
                headers={"Accept": "application/json"},
            )
            response.raise_for_status()
            page = SearchPage.model_validate(response.json())
        except httpx.HTTPStatusError as e:
            raise JiraError(
                f"Jira search failed ({e.response.status_code}): {e.response.text[:300]}"
            ) from e
        except (httpx.HTTPError, ValueError, ValidationError) as e:
            raise JiraError(f"Jira search failed: {e}") from e

        candidates = []
        for issue in page.issues:
            try:
                candidates.append(Candidate.from_jira(issue))
            except ValidationError as e:
                logger.warning("Skipping issue %s without a usable id: %s", issue.get("key", "?"), e)
        logger.info("Jira search returned %d issue(s) for %r", len(candidates), jql)
        return candidates

    async def aclose(self) -> None:
        await self._http.aclose()
