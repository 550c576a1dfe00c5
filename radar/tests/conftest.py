"""Shared fakes for the ranking pipeline tests."""

import asyncio
from typing import Dict, List, Optional

import pytest

from radar.ranker.models import ThreadMessage
from radar.tracker.schemas import Candidate, Comment


def make_candidate(index: int, title: Optional[str] = None) -> Candidate:
    return Candidate(
        id=str(10000 + index),
        key=f"OPS-{index}",
        title=title or f"Issue {index}",
        description=f"Description of issue {index}",
        comments=(Comment(author="alice", created="2024-01-01T00:00:00", body=f"comment {index}"),),
    )


class FakeThreadFinder:
    """ThreadFinder stand-in returning canned messages per keyword"""

    def __init__(self, messages: Optional[Dict[str, List[ThreadMessage]]] = None, enabled: bool = True):
        self._messages = messages or {}
        self.enabled = enabled
        self.calls: List[str] = []

    async def search(self, keyword, channel=None):
        if not self.enabled:
            return []
        self.calls.append(keyword)
        return list(self._messages.get(keyword, []))

    async def render(self, messages):
        return "\n".join(f"{m.user}: {m.text}" for m in messages)


class FakeOracle:
    """
    Scores by candidate title. Each title may fail a number of times first.

    Tracks the number of concurrent score() calls to check the permit bound.
    """

    def __init__(self, scores: Dict[str, float], failures: Optional[Dict[str, int]] = None,
                 delay: float = 0.0):
        self._scores = scores
        self._failures = dict(failures or {})
        self._delay = delay
        self.calls: Dict[str, int] = {}
        self.in_flight = 0
        self.peak_in_flight = 0
        self.thread_texts: List[str] = []

    async def score(self, query, content, thread_text=""):
        key = content.split("\n")[1]  # title line of the formatted candidate
        self.calls[key] = self.calls.get(key, 0) + 1
        self.thread_texts.append(thread_text)
        self.in_flight += 1
        self.peak_in_flight = max(self.peak_in_flight, self.in_flight)
        try:
            await asyncio.sleep(self._delay)
            if self._failures.get(key, 0) > 0:
                self._failures[key] -= 1
                raise ConnectionError(f"scoring unavailable for {key}")
            return self._scores[key]
        finally:
            self.in_flight -= 1


class RecordingPoster:
    """MessagePoster stand-in that records or fails deliveries"""

    def __init__(self, fail_on: Optional[set] = None):
        self.sent: List[tuple] = []
        self.times: List[float] = []
        self._fail_on = fail_on or set()

    async def post_message(self, channel, text, thread_ts=None):
        self.times.append(asyncio.get_running_loop().time())
        if any(marker in text for marker in self._fail_on):
            raise ConnectionError("slack down")
        self.sent.append((channel, text, thread_ts))
        return {"ok": True}


@pytest.fixture
def candidates_factory():
    def _make(count: int) -> List[Candidate]:
        return [make_candidate(i) for i in range(count)]
    return _make
