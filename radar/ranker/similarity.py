"""
Similarity Oracle

Asks the LLM how similar a past issue is to the new request.
The call is treated as an opaque remote function: any transport or
decode failure propagates unchanged, no default score is invented.
"""

import asyncio
import logging

from ..common.errors import LLMResponseError
from ..common.llm_client import LLMClient
from ..common.llm_utils import require_json_field

logger = logging.getLogger("radar.ranker.similarity")


SIMILARITY_PROMPT = """## Task
How similar is the past Jira issue below to the issue I am about to create?
Return the similarity as a float between 0 and 1 in the "similarity" field of a JSON object.

## The issue I want to create
{query}
## The past issue
{content}

## Related Slack threads
{thread_text}"""


class SimilarityOracle:
    """LLM-backed similarity scoring"""

    def __init__(self, llm_client: LLMClient, timeout: float = 60.0):
        self._llm = llm_client
        self._timeout = timeout

    def _score_sync(self, query: str, content: str, thread_text: str) -> float:
        prompt = SIMILARITY_PROMPT.format(query=query, content=content, thread_text=thread_text)
        raw = self._llm.generate(prompt, json_mode=True, max_tokens=64, timeout=self._timeout)
        value = require_json_field(raw, "similarity")
        try:
            score = float(value)
        except (TypeError, ValueError) as e:
            raise LLMResponseError(f"similarity is not a number: {value!r}") from e
        if score != score:  # NaN
            raise LLMResponseError("similarity is NaN")
        return min(1.0, max(0.0, score))

    async def score(self, query: str, content: str, thread_text: str = "") -> float:
        """Similarity in [0, 1]. Not deterministic across calls."""
        return await asyncio.to_thread(self._score_sync, query, content, thread_text)
