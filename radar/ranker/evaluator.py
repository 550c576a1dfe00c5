"""
Evaluator

Per-candidate unit of work: format, look up Slack threads, score, decide.

State machine:
    Pending → Retrying(n) → Succeeded | Excluded | FailedPermanently

Transient errors (thread search, scoring) are retried a fixed number of
times with a fixed delay. Running out of attempts is not fatal to the run:
the candidate degrades to an excluded slot and a failure notice is sent.
"""

import asyncio
import logging
import time
from typing import Callable, Optional

from ..tracker.schemas import Candidate
from .formatter import escape_markup, format_candidate
from .models import Evaluation, EvaluationResult, Outcome
from .notifications import NotificationSink
from .similarity import SimilarityOracle
from .threads import ThreadFinder, thread_permalink

logger = logging.getLogger("radar.ranker.evaluator")


def notice_label(candidate: Candidate) -> str:
    """Candidate label safe to post to Slack"""
    return f"`{escape_markup(candidate.key)}` - {escape_markup(candidate.title)}"


class Evaluator:
    """
    Scores one candidate at a time against a query.

    Shared by all tasks of a run; holds no per-candidate state.
    """

    def __init__(
        self,
        thread_finder: ThreadFinder,
        oracle: SimilarityOracle,
        issue_url: Callable[[str], str],
        workspace_url: str = "",
        threshold: float = 0.3,
        max_attempts: int = 3,
        retry_delay: float = 3.0,
        notify_start: bool = True,
    ):
        """
        Args:
            thread_finder: Slack thread lookup (may be disabled)
            oracle: Similarity scoring
            issue_url: Maps an issue key to its browse URL
            workspace_url: Slack workspace base URL for thread permalinks
            threshold: Minimum similarity for inclusion
            max_attempts: Attempts per candidate before giving up
            retry_delay: Seconds between attempts
            notify_start: Publish a notice when a candidate starts
        """
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self._threads = thread_finder
        self._oracle = oracle
        self._issue_url = issue_url
        self._workspace_url = workspace_url
        self.threshold = threshold
        self._max_attempts = max_attempts
        self._retry_delay = retry_delay
        self._notify_start = notify_start

    async def evaluate(
        self,
        query: str,
        candidate: Candidate,
        permits: asyncio.Semaphore,
        sink: NotificationSink,
        thread_channel: Optional[str] = None,
    ) -> Evaluation:
        """
        Run the full evaluation of one candidate while holding a permit.

        Only infrastructure failures (e.g. cancellation while waiting for a
        permit) escape this method; scoring problems are folded into the
        returned Evaluation.
        """
        async with permits:
            logger.info("Issue processing started: %s", candidate.label)
            if self._notify_start:
                sink.publish(f"🔍 Processing started: {notice_label(candidate)}")

            started = time.monotonic()
            evaluation = await self._attempt_loop(query, candidate, thread_channel)
            duration = time.monotonic() - started

            if evaluation.outcome is Outcome.FAILED:
                logger.error("Issue processing failed: %s after %d attempt(s) in %.1fs: %s",
                             candidate.label, evaluation.attempts, duration, evaluation.error)
                sink.publish(
                    f"❌ Processing error: {notice_label(candidate)} "
                    f"(error: {escape_markup(str(evaluation.error))})"
                )

            logger.info("Issue processing completed: %s similarity=%.2f outcome=%s duration=%.1fs",
                        candidate.label, evaluation.similarity or 0.0,
                        evaluation.outcome.value, duration)
            sink.publish(self._completion_message(candidate, evaluation))
            return evaluation

    async def _attempt_loop(
        self,
        query: str,
        candidate: Candidate,
        thread_channel: Optional[str],
    ) -> Evaluation:
        last_error: Optional[Exception] = None

        for attempt in range(1, self._max_attempts + 1):
            try:
                result = await self._attempt(query, candidate, thread_channel)
            except Exception as e:
                last_error = e
                logger.warning("Attempt %d/%d failed for %s: %s",
                               attempt, self._max_attempts, candidate.key, e)
                if attempt < self._max_attempts:
                    await asyncio.sleep(self._retry_delay)
                continue

            if result.similarity < self.threshold:
                return Evaluation(
                    outcome=Outcome.EXCLUDED,
                    result=EvaluationResult(),
                    attempts=attempt,
                    similarity=result.similarity,
                )
            return Evaluation(
                outcome=Outcome.SUCCEEDED,
                result=result,
                attempts=attempt,
                similarity=result.similarity,
            )

        # Give up: degrade to an excluded slot
        return Evaluation(
            outcome=Outcome.FAILED,
            result=EvaluationResult(),
            attempts=self._max_attempts,
            error=last_error,
        )

    async def _attempt(
        self,
        query: str,
        candidate: Candidate,
        thread_channel: Optional[str],
    ) -> EvaluationResult:
        content = format_candidate(candidate)
        url = self._issue_url(candidate.key)

        messages = await self._threads.search(url, thread_channel)
        thread_text = await self._threads.render(messages)

        similarity = await self._oracle.score(query, content, thread_text)

        result = EvaluationResult(
            id=candidate.id,
            key=candidate.key,
            title=candidate.title,
            description=candidate.description,
            url=url,
            content=content,
            similarity=similarity,
            thread_text=thread_text,
        )
        if messages:
            result.thread_url = thread_permalink(self._workspace_url, messages[0])
        return result

    def _completion_message(self, candidate: Candidate, evaluation: Evaluation) -> str:
        label = notice_label(candidate)
        score = evaluation.similarity or 0.0
        if evaluation.outcome is Outcome.SUCCEEDED:
            return f"✅ Processing completed: {label} (similarity: {score:.2f})"
        return f"⚪ Processing completed: {label} (similarity: {score:.2f} - excluded)"
