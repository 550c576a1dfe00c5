"""
Block Kit builders for the bot's ephemeral replies.
"""

import json
from typing import Any, Dict, List

from ..ranker.models import EvaluationResult

Block = Dict[str, Any]


def header(text: str) -> Block:
    return {"type": "header", "text": {"type": "plain_text", "text": text}}


def divider() -> Block:
    return {"type": "divider"}


def section(markdown: str) -> Block:
    return {"type": "section", "text": {"type": "mrkdwn", "text": markdown}}


def notice(title: str, body: str) -> List[Block]:
    """Header + divider + one markdown section"""
    return [header(title), divider(), section(body)]


def error_blocks(message: str) -> List[Block]:
    return notice("❌ Error", message)


def start_blocks() -> List[Block]:
    return notice("🚀 Jira search started", "Starting the Jira search.")


def query_blocks(jql: str) -> List[Block]:
    return notice("🔍 Jira search query", f"`{jql}`")


def count_blocks(count: int) -> List[Block]:
    return notice(
        "📊 Jira search results",
        f"Jira search returned *{count} issue(s)*. Analysis is starting, please wait.",
    )


def no_match_blocks() -> List[Block]:
    return notice("📭 No similar issues", "No past issue was similar enough to report.")


def result_blocks(result: EvaluationResult) -> List[Block]:
    """Card for one ranked issue"""
    return [
        header("📝 Jira Issue"),
        divider(),
        section(f"*🔖 Jira ID:* {result.key or result.id}"),
        section(f"*🔗 Jira URL:* {result.url}"),
        section(f"*🔗 Slack URL:* {result.thread_url or '-'}"),
        section(f"*📊 Similarity:* {result.similarity:.2f}"),
        section("*📝 Summary:*"),
        section(f">>> {result.generated_summary}"),
        divider(),
    ]


def to_json(blocks: List[Block]) -> str:
    return json.dumps(blocks, ensure_ascii=False)
