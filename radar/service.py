"""
Radar Service

End-to-end search run: JQL generation → candidate ranking → summaries.
"""

import logging
from typing import Awaitable, Callable, List, Optional

from .common.config import RadarConfig
from .common.llm_client import LLMClient
from .common.slack_client import SlackWebClient
from .ranker import (
    EvaluationResult,
    Evaluator,
    MentionSanitizer,
    NotificationTarget,
    Scheduler,
    SimilarityOracle,
    SlackDirectory,
    Summarizer,
    ThreadFinder,
)
from .tracker import Candidate, JiraClient, QueryBuilder

logger = logging.getLogger("radar.service")


class ProgressListener:
    """
    Hooks for surfacing run progress (e.g. ephemeral Slack messages).

    All hooks are optional no-ops; override what you need.
    """

    async def on_query(self, jql: str) -> None:
        pass

    async def on_candidates(self, candidates: List[Candidate]) -> None:
        pass


class RadarService:
    """Wires the query builder, scheduler, and summarizer into one run"""

    def __init__(
        self,
        query_builder: QueryBuilder,
        scheduler: Scheduler,
        summarizer: Summarizer,
        closers: Optional[List[Callable[[], Awaitable[None]]]] = None,
    ):
        self._query_builder = query_builder
        self._scheduler = scheduler
        self._summarizer = summarizer
        self._closers = closers or []

    async def search(
        self,
        query: str,
        target: Optional[NotificationTarget] = None,
        listener: Optional[ProgressListener] = None,
    ) -> List[EvaluationResult]:
        """
        Find, rank, and summarize issues similar to ``query``.

        Raises:
            QueryGenerationError: JQL generation / Jira search kept failing
            SchedulingError: the ranking run could not be scheduled
            SummaryError: a summary could not be generated
        """
        listener = listener or ProgressListener()

        _, candidates = await self._query_builder.search(query, on_query=listener.on_query)
        await listener.on_candidates(candidates)

        results = await self._scheduler.run(query, candidates, target=target)
        await self._summarizer.summarize(results)
        return results

    async def aclose(self) -> None:
        for close in self._closers:
            await close()


def build_service(config: RadarConfig, bot_client: Optional[SlackWebClient] = None) -> RadarService:
    """
    Build a RadarService from configuration.

    Args:
        config: Loaded configuration
        bot_client: Client used to post progress notices; created from the
            bot token when omitted (None if no token is configured)
    """
    llm = LLMClient.from_config(config.llm)
    if not llm.is_available:
        logger.warning("LLM client unavailable (provider=%s); searches will fail", config.llm.provider)

    jira = JiraClient.from_config(config.jira)
    closers = [jira.aclose]

    user_client = None
    directory = None
    if config.slack.user_token:
        user_client = SlackWebClient(config.slack.user_token)
        directory = SlackDirectory(user_client)
        closers.append(user_client.aclose)
    else:
        logger.info("SLACK_USER_TOKEN not set, Slack thread lookup disabled")

    if bot_client is None and config.slack.bot_token:
        bot_client = SlackWebClient(config.slack.bot_token)
        closers.append(bot_client.aclose)

    ranker = config.ranker
    thread_finder = ThreadFinder(
        client=user_client,
        sanitizer=MentionSanitizer(directory),
        default_channel=config.slack.channel,
        search_count=ranker.thread_search_count,
        reply_limit=ranker.thread_reply_limit,
    )
    evaluator = Evaluator(
        thread_finder=thread_finder,
        oracle=SimilarityOracle(llm),
        issue_url=jira.browse_url,
        workspace_url=config.slack.workspace_url,
        threshold=ranker.similarity_threshold,
        max_attempts=ranker.max_attempts,
        retry_delay=ranker.retry_delay,
        notify_start=ranker.notify_start,
    )
    scheduler = Scheduler(
        evaluator=evaluator,
        poster=bot_client,
        max_concurrency=ranker.max_concurrency,
        top_k=ranker.top_k,
        notify_interval=ranker.notify_interval,
        notify_buffer=ranker.notify_buffer,
    )
    query_builder = QueryBuilder(
        llm_client=llm,
        jira_client=jira,
        project_key=config.jira.project_key,
        search_hint=config.jira.search_hint,
    )
    return RadarService(
        query_builder=query_builder,
        scheduler=scheduler,
        summarizer=Summarizer(llm),
        closers=closers,
    )
