"""
Ranker - Concurrent candidate evaluation

Scores Jira candidates against a request and keeps the best matches.

Key Components:
- format_candidate: Issue → scoring text (mentions neutralized)
- ThreadFinder: Related Slack threads, deduplicated per thread root
- SimilarityOracle: LLM similarity in [0, 1]
- Evaluator: Per-candidate retry loop and threshold decision
- NotificationSink: Ordered, rate-limited progress messages
- Scheduler: Bounded fan-out + top-K aggregation
- Summarizer: LLM summaries for the selected results

Pipeline:
1. One task per candidate, at most N holding a permit
2. Each task: threads → score → include/exclude, retrying transient errors
3. Wait for all tasks, drain notifications
4. Drop excluded slots, sort by similarity, keep top K
"""

from .models import (
    EvaluationResult,
    Evaluation,
    Outcome,
    ThreadMessage,
    NotificationEvent,
    NotificationTarget,
    RunReport,
)
from .formatter import format_candidate, neutralize_mentions
from .mentions import MentionSanitizer, SlackDirectory
from .threads import ThreadFinder, thread_permalink
from .similarity import SimilarityOracle
from .notifications import NotificationSink
from .evaluator import Evaluator
from .scheduler import Scheduler, aggregate
from .summarizer import Summarizer

__all__ = [
    "EvaluationResult",
    "Evaluation",
    "Outcome",
    "ThreadMessage",
    "NotificationEvent",
    "NotificationTarget",
    "RunReport",
    "format_candidate",
    "neutralize_mentions",
    "MentionSanitizer",
    "SlackDirectory",
    "ThreadFinder",
    "thread_permalink",
    "SimilarityOracle",
    "NotificationSink",
    "Evaluator",
    "Scheduler",
    "aggregate",
    "Summarizer",
]
