"""
Summarizer

Writes a short, decision-oriented summary for each selected issue.
"""

import asyncio
import logging
from typing import List

from ..common.errors import SummaryError
from ..common.llm_client import LLMClient
from .models import EvaluationResult

logger = logging.getLogger("radar.ranker.summarizer")


SUMMARY_PROMPT = """## Task
Summarize the Jira issue below and how it was resolved (mostly recorded in the comments).
The summary helps decide whether a new issue needs to be filed, so give concise material for judging similarity.
If the issue is still unresolved, say so honestly. If something is unclear, say it is unclear.

## Format
- Issue overview, at most 300 characters
- Resolution, at most 300 characters

## Past issue
{content}

## Related Slack threads
{thread_text}"""


class Summarizer:
    """One LLM call per result, run sequentially"""

    def __init__(self, llm_client: LLMClient, max_tokens: int = 1024):
        self._llm = llm_client
        self._max_tokens = max_tokens

    def _summarize_one(self, result: EvaluationResult) -> str:
        prompt = SUMMARY_PROMPT.format(content=result.content, thread_text=result.thread_text)
        return self._llm.generate(prompt, max_tokens=self._max_tokens)

    async def summarize(self, results: List[EvaluationResult]) -> List[EvaluationResult]:
        """
        Fill ``generated_summary`` in place.

        Raises:
            SummaryError: the LLM call failed for one of the results
        """
        for result in results:
            try:
                result.generated_summary = await asyncio.to_thread(self._summarize_one, result)
            except Exception as e:
                logger.error("Summary failed for %s: %s", result.key, e)
                raise SummaryError(f"Failed to summarize {result.key}: {e}") from e
            logger.debug("Summarized %s (%d chars)", result.key, len(result.generated_summary))
        return results
