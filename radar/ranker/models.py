"""
Ranker data types

Run-scoped values exchanged between the ranking pipeline stages.
Nothing here is persisted.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional


@dataclass(frozen=True)
class ThreadMessage:
    """A Slack message belonging to a thread related to a candidate"""
    channel: str
    timestamp: str
    user: str
    text: str


@dataclass
class EvaluationResult:
    """
    Outcome slot of one candidate.

    The default instance (empty ``id``) is the "excluded" marker: the
    candidate scored below threshold or failed permanently.
    """
    id: str = ""
    key: str = ""
    title: str = ""
    description: str = ""
    url: str = ""
    content: str = ""
    similarity: float = 0.0
    thread_text: str = ""
    thread_url: str = ""
    generated_summary: str = ""

    @property
    def is_excluded(self) -> bool:
        return not self.id


class Outcome(str, Enum):
    """Terminal states of a candidate evaluation"""
    SUCCEEDED = "succeeded"
    EXCLUDED = "excluded"
    FAILED = "failed"


@dataclass
class Evaluation:
    """What an Evaluator reports back to the Scheduler"""
    outcome: Outcome
    result: EvaluationResult
    attempts: int
    similarity: Optional[float] = None
    error: Optional[BaseException] = None


@dataclass(frozen=True)
class NotificationTarget:
    """Where progress messages go: a channel and optional thread anchor"""
    channel: str
    thread_ts: Optional[str] = None


@dataclass(frozen=True)
class NotificationEvent:
    """A progress message queued for delivery"""
    text: str
    channel: str
    thread_ts: Optional[str] = None


@dataclass
class RunReport:
    """Bookkeeping for one Scheduler run"""
    total: int = 0
    succeeded: int = 0
    excluded: int = 0
    failed: List[str] = field(default_factory=list)
