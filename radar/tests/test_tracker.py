"""
Tests for the Jira tracker: ADF flattening, candidate parsing, search
client, and JQL generation with retries.
"""

import json

import httpx
import pytest
from unittest.mock import AsyncMock, MagicMock

from radar.common.errors import JiraError, QueryGenerationError
from radar.tracker.schemas import Candidate, extract_text_from_adf


def _adf(*paragraphs):
    return {
        "type": "doc",
        "version": 1,
        "content": [
            {"type": "paragraph", "content": [{"type": "text", "text": t} for t in para]}
            for para in paragraphs
        ],
    }


RAW_ISSUE = {
    "id": "10042",
    "key": "OPS-42",
    "fields": {
        "summary": "Login fails with G0239422",
        "description": _adf(["Users cannot", "log in"], ["since 9am"]),
        "comment": {
            "comments": [
                {
                    "author": {"displayName": "Alice"},
                    "created": "2024-01-01T10:00:00.000+0000",
                    "body": _adf(["Restarted auth"]),
                },
                {
                    "author": {"displayName": "Bob"},
                    "created": "2024-01-01T11:00:00.000+0000",
                    "body": {"type": "doc", "content": []},
                },
                {
                    "author": {"displayName": "Carol"},
                    "created": "2024-01-02T09:00:00.000+0000",
                    "body": "plain text body",
                },
            ]
        },
    },
}


class TestExtractTextFromAdf:
    """Tests for extract_text_from_adf"""

    def test_joins_text_nodes(self):
        assert extract_text_from_adf(_adf(["a", "b"], ["c"])) == "a b c"

    def test_plain_string_passes_through(self):
        assert extract_text_from_adf("already text") == "already text"

    def test_unrecognised_input(self):
        assert extract_text_from_adf(None) == ""
        assert extract_text_from_adf(42) == ""
        assert extract_text_from_adf({"content": "nope"}) == ""

    def test_skips_non_text_nodes(self):
        adf = {"content": [{"content": [{"type": "hardBreak"}, {"type": "text", "text": "x"}]}]}
        assert extract_text_from_adf(adf) == "x"


class TestCandidateFromJira:
    """Tests for Candidate.from_jira"""

    def test_parses_issue(self):
        candidate = Candidate.from_jira(RAW_ISSUE)

        assert candidate.id == "10042"
        assert candidate.key == "OPS-42"
        assert candidate.title == "Login fails with G0239422"
        assert candidate.description == "Users cannot log in since 9am"
        assert [c.author for c in candidate.comments] == ["Alice", "Carol"]
        assert candidate.comments[1].body == "plain text body"
        assert candidate.label == "`OPS-42` - Login fails with G0239422"

    def test_missing_fields(self):
        candidate = Candidate.from_jira({"id": 1, "key": "OPS-1"})

        assert candidate.id == "1"
        assert candidate.title == ""
        assert candidate.description == ""
        assert candidate.comments == ()

    @pytest.mark.parametrize("raw", [{"key": "OPS-1"}, {"id": "", "key": "OPS-1"}, {"id": None, "key": "OPS-1"}])
    def test_missing_id_is_rejected(self, raw):
        from pydantic import ValidationError

        with pytest.raises(ValidationError):
            Candidate.from_jira(raw)

    def test_is_immutable(self):
        from pydantic import ValidationError

        candidate = Candidate.from_jira(RAW_ISSUE)
        with pytest.raises(ValidationError):
            candidate.title = "changed"


def _jira(handler):
    from radar.tracker.jira import JiraClient

    http = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return JiraClient("https://acme.atlassian.net/", max_results=20, http_client=http)


class TestJiraClient:
    """Tests for JiraClient"""

    @pytest.mark.asyncio
    async def test_fetch_issues(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["url"] = request.url
            return httpx.Response(200, json={"issues": [RAW_ISSUE], "isLast": True})

        client = _jira(handler)
        candidates = await client.fetch_issues('project = OPS AND text ~ "G0239422"')
        await client.aclose()

        assert [c.key for c in candidates] == ["OPS-42"]
        url = seen["url"]
        assert url.path == "/rest/api/3/search/jql"
        assert url.params["jql"] == 'project = OPS AND text ~ "G0239422"'
        assert url.params["fields"] == "summary,description,comment"
        assert url.params["maxResults"] == "20"

    @pytest.mark.asyncio
    async def test_issue_without_id_is_skipped(self, caplog):
        import logging

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"issues": [{"key": "OPS-7", "fields": {}}, RAW_ISSUE]})

        client = _jira(handler)
        with caplog.at_level(logging.WARNING, logger="radar.tracker.jira"):
            candidates = await client.fetch_issues("project = OPS")
        await client.aclose()

        assert [c.id for c in candidates] == ["10042"]
        assert "OPS-7" in caplog.text

    @pytest.mark.asyncio
    async def test_empty_result_is_not_an_error(self):
        client = _jira(lambda request: httpx.Response(200, json={"issues": []}))

        assert await client.fetch_issues("project = OPS") == []

    @pytest.mark.asyncio
    async def test_http_error_raises(self):
        client = _jira(lambda request: httpx.Response(400, text="Error in the JQL Query"))

        with pytest.raises(JiraError, match="400"):
            await client.fetch_issues("project = = OPS")

    @pytest.mark.asyncio
    async def test_bad_body_raises(self):
        client = _jira(lambda request: httpx.Response(200, text="<html>"))

        with pytest.raises(JiraError):
            await client.fetch_issues("project = OPS")

    @pytest.mark.asyncio
    async def test_transport_error_raises(self):
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        client = _jira(handler)

        with pytest.raises(JiraError):
            await client.fetch_issues("project = OPS")

    def test_browse_url(self):
        client = _jira(lambda request: httpx.Response(200, json={}))

        assert client.browse_url("OPS-1") == "https://acme.atlassian.net/browse/OPS-1"


class TestQueryBuilder:
    """Tests for QueryBuilder"""

    def _builder(self, llm_responses, jira):
        from radar.tracker.query_builder import QueryBuilder

        llm = MagicMock()
        llm.generate.side_effect = llm_responses
        return QueryBuilder(llm, jira, project_key="OPS", retry_delay=0), llm

    @pytest.mark.asyncio
    async def test_first_attempt_succeeds(self):
        jira = MagicMock()
        jira.fetch_issues = AsyncMock(return_value=[Candidate(id="1", key="OPS-1")])
        builder, llm = self._builder([json.dumps({"search_query": "text ~ login"})], jira)
        seen = []

        async def on_query(jql):
            seen.append(jql)

        jql, candidates = await builder.search("login fails", on_query=on_query)

        assert jql == "text ~ login"
        assert [c.key for c in candidates] == ["OPS-1"]
        assert seen == ["text ~ login"]
        prompt = llm.generate.call_args[0][0]
        assert "The project key is: OPS" in prompt
        assert "login fails" in prompt

    @pytest.mark.asyncio
    async def test_error_is_fed_back_into_next_prompt(self):
        jira = MagicMock()
        jira.fetch_issues = AsyncMock(side_effect=[JiraError("Error in the JQL Query"), []])
        builder, llm = self._builder(
            ['{"search_query": "bad = ="}', '{"search_query": "text ~ login"}'], jira
        )

        jql, candidates = await builder.search("login fails")

        assert jql == "text ~ login"
        assert candidates == []
        second_prompt = llm.generate.call_args_list[1][0][0]
        assert "Error in the JQL Query" in second_prompt

    @pytest.mark.asyncio
    async def test_gives_up_after_max_attempts(self):
        jira = MagicMock()
        jira.fetch_issues = AsyncMock()
        builder, llm = self._builder(["no json", "still no json", "{}"], jira)

        with pytest.raises(QueryGenerationError):
            await builder.search("login fails")

        assert llm.generate.call_count == 3
        jira.fetch_issues.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_empty_query_is_rejected(self):
        jira = MagicMock()
        jira.fetch_issues = AsyncMock(return_value=[])
        builder, _ = self._builder(
            ['{"search_query": "  "}', '{"search_query": "text ~ x"}'], jira
        )

        jql, _ = await builder.search("x")

        assert jql == "text ~ x"
        jira.fetch_issues.assert_awaited_once_with("text ~ x")
