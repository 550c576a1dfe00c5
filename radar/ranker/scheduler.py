"""
Scheduler / Aggregator

Fans candidates out to Evaluators with bounded concurrency, waits for all
of them, then ranks the surviving results.

Concurrency model:
- one asyncio task per candidate inside a TaskGroup
- a Semaphore caps how many evaluations hold a permit at once
- each task owns exactly one result slot (its input index)
- an exception escaping an Evaluator is an infrastructure failure: the
  TaskGroup cancels every sibling and the run raises SchedulingError
"""

import asyncio
import logging
from typing import List, Optional, Sequence

from ..common.errors import SchedulingError
from ..tracker.schemas import Candidate
from .evaluator import Evaluator
from .models import EvaluationResult, NotificationTarget, Outcome, RunReport
from .notifications import MessagePoster, NotificationSink

logger = logging.getLogger("radar.ranker.scheduler")


def aggregate(slots: Sequence[EvaluationResult], top_k: int = 5) -> List[EvaluationResult]:
    """
    Rank evaluated slots.

    Drops excluded slots, sorts by similarity descending (stable, so equal
    scores keep input order) and keeps at most ``top_k``. Pure: calling it
    twice on the same slots gives the same list.
    """
    included = [slot for slot in slots if not slot.is_excluded]
    included.sort(key=lambda r: r.similarity, reverse=True)
    return included[:max(top_k, 0)]


class Scheduler:
    """
    Runs one ranking pass over a batch of candidates.

    Collaborators are injected at construction; nothing is global.
    """

    def __init__(
        self,
        evaluator: Evaluator,
        poster: Optional[MessagePoster] = None,
        max_concurrency: int = 5,
        top_k: int = 5,
        notify_interval: float = 0.5,
        notify_buffer: int = 100,
    ):
        if max_concurrency < 1:
            raise ValueError("max_concurrency must be at least 1")
        self._evaluator = evaluator
        self._poster = poster
        self.max_concurrency = max_concurrency
        self.top_k = top_k
        self._notify_interval = notify_interval
        self._notify_buffer = notify_buffer
        self.last_report: Optional[RunReport] = None

    async def run(
        self,
        query: str,
        candidates: Sequence[Candidate],
        target: Optional[NotificationTarget] = None,
        thread_channel: Optional[str] = None,
    ) -> List[EvaluationResult]:
        """
        Evaluate every candidate and return the top matches.

        Args:
            query: The user's natural-language request
            candidates: Issues to evaluate
            target: Where progress notices go (None disables notices)
            thread_channel: Restrict Slack thread search to this channel

        Returns:
            Up to ``top_k`` results, highest similarity first. Empty when
            nothing passed the threshold.

        Raises:
            SchedulingError: evaluation could not be scheduled; no partial results
        """
        report = RunReport(total=len(candidates))
        self.last_report = report

        if not candidates:
            return []

        slots: List[Optional[EvaluationResult]] = [None] * len(candidates)
        permits = asyncio.Semaphore(self.max_concurrency)
        lock = asyncio.Lock()

        sink = NotificationSink(
            poster=self._poster,
            target=target,
            interval=self._notify_interval,
            buffer_size=self._notify_buffer,
        )

        async def _run_one(index: int, candidate: Candidate) -> None:
            evaluation = await self._evaluator.evaluate(
                query, candidate, permits, sink, thread_channel=thread_channel
            )
            slots[index] = evaluation.result
            async with lock:
                if evaluation.outcome is Outcome.SUCCEEDED:
                    report.succeeded += 1
                elif evaluation.outcome is Outcome.EXCLUDED:
                    report.excluded += 1
                else:
                    report.excluded += 1
                    report.failed.append(candidate.key)

        async with sink:
            try:
                async with asyncio.TaskGroup() as group:
                    for index, candidate in enumerate(candidates):
                        group.create_task(_run_one(index, candidate), name=f"evaluate-{candidate.key}")
            except ExceptionGroup as eg:
                cause = eg.exceptions[0]
                logger.error("Candidate evaluation aborted: %s", cause)
                raise SchedulingError(f"error processing issues: {cause}") from cause

        unwritten = [i for i, slot in enumerate(slots) if slot is None]
        if unwritten:
            raise SchedulingError(f"result slots left unwritten: {unwritten}")

        results = aggregate(slots, self.top_k)
        logger.info("Ranked %d candidate(s): %d included, %d excluded (%d failed), returning %d",
                    report.total, report.succeeded, report.excluded, len(report.failed), len(results))
        return results
