"""
Radar Bot Server

FastAPI server receiving Slack Events API webhooks.

Endpoints:
- POST /slack/events: Slack webhook endpoint (app_mention)
- GET /health: Health check

Flow for a mention:
1. Verify signature, acknowledge immediately
2. In the background: check channel, announce start
3. Generate JQL, fetch issues, report the count
4. Rank candidates (progress notices go to the mention's thread)
5. Post one card per selected issue
"""

import json
import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import List, Optional

from fastapi import FastAPI, Request, HTTPException, Header, BackgroundTasks
from fastapi.responses import JSONResponse

from ..common.config import RadarConfig, load_config
from ..common.errors import QueryGenerationError, SchedulingError, SlackAPIError, SummaryError
from ..common.slack_client import SlackWebClient
from ..ranker.models import NotificationTarget
from ..service import ProgressListener, RadarService, build_service
from ..tracker.schemas import Candidate
from . import blocks
from .handlers import SlackHandler, Message

logger = logging.getLogger("radar.bot.server")


@dataclass
class BotState:
    """Per-process collaborators, stored on ``app.state.bot``"""
    config: RadarConfig
    slack_client: SlackWebClient
    handler: SlackHandler
    service: RadarService


async def post_ephemeral(state: BotState, message: Message, payload: List[dict], fallback: str) -> bool:
    """Best-effort ephemeral reply to the requesting user"""
    try:
        await state.slack_client.post_ephemeral(
            message.channel, message.user, fallback, blocks=blocks.to_json(payload)
        )
        return True
    except SlackAPIError as e:
        logger.error("Failed to post message: %s", e)
        return False


class EphemeralProgress(ProgressListener):
    """Relays the generated query and the candidate count to the user"""

    def __init__(self, state: BotState, message: Message):
        self._state = state
        self._message = message

    async def on_query(self, jql: str) -> None:
        await post_ephemeral(self._state, self._message, blocks.query_blocks(jql), f"JQL: {jql}")

    async def on_candidates(self, candidates: List[Candidate]) -> None:
        await post_ephemeral(
            self._state, self._message, blocks.count_blocks(len(candidates)),
            f"{len(candidates)} issue(s) found",
        )


async def channel_allowed(state: BotState, channel_id: str) -> bool:
    """True when no channel restriction is configured or the channel matches it"""
    allowed = state.config.slack.channel.lstrip("#")
    if not allowed:
        return True
    info = await state.slack_client.conversation_info(channel_id)
    return info.get("name") == allowed


async def handle_mention(state: BotState, message: Message) -> None:
    """Answer one app mention end to end"""
    if not message.is_valid:
        await post_ephemeral(state, message, blocks.error_blocks(
            "The message is empty. Please check what you entered."), "Empty message")
        return

    try:
        if not await channel_allowed(state, message.channel):
            await post_ephemeral(state, message, blocks.error_blocks(
                "I do not respond in this channel."), "Channel not allowed")
            return
    except SlackAPIError as e:
        logger.error("Failed to get channel info: %s", e)
        return

    if not await post_ephemeral(state, message, blocks.start_blocks(), "Jira search started"):
        return

    target = NotificationTarget(channel=message.channel, thread_ts=message.reply_anchor)
    try:
        results = await state.service.search(
            message.text, target=target, listener=EphemeralProgress(state, message)
        )
    except QueryGenerationError as e:
        logger.error("Failed to generate Jira query: %s", e)
        await post_ephemeral(state, message, blocks.error_blocks(
            "Failed to generate the Jira search query."), "Query generation failed")
        return
    except SchedulingError as e:
        logger.error("Failed to select top issues: %s", e)
        await post_ephemeral(state, message, blocks.error_blocks(
            "Failed to select matching Jira issues."), "Issue selection failed")
        return
    except SummaryError as e:
        logger.error("Failed to generate summary: %s", e)
        await post_ephemeral(state, message, blocks.error_blocks(
            "Failed to summarize the Jira issues."), "Summary failed")
        return
    except Exception as e:
        logger.error("Search failed: %s", e, exc_info=True)
        await post_ephemeral(state, message, blocks.error_blocks(
            "Failed to search Jira issues."), "Search failed")
        return

    if not results:
        await post_ephemeral(state, message, blocks.no_match_blocks(), "No similar issues")
        return

    for result in results:
        await post_ephemeral(state, message, blocks.result_blocks(result), result.url)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Initialize components on startup"""
    logger.info("Starting up...")

    config = load_config()
    slack_client = SlackWebClient(config.slack.bot_token)

    try:
        auth = await slack_client.auth_test()
    except SlackAPIError as e:
        await slack_client.aclose()
        raise RuntimeError(f"SLACK_BOT_TOKEN is invalid: {e}") from e

    handler = SlackHandler(
        signing_secret=config.slack.signing_secret,
        bot_user_id=auth.get("user_id", ""),
    )
    service = build_service(config, bot_client=slack_client)
    app.state.bot = BotState(config=config, slack_client=slack_client, handler=handler, service=service)
    logger.info("Ready to receive events (bot user: %s)", handler.bot_user_id)

    yield

    logger.info("Shutting down...")
    await service.aclose()
    await slack_client.aclose()


app = FastAPI(
    title="Radar",
    description="Finds past Jira issues similar to a Slack question",
    version="0.1.0",
    lifespan=lifespan,
)


def _state(request: Request) -> Optional[BotState]:
    return getattr(request.app.state, "bot", None)


@app.get("/health")
async def health(request: Request):
    """Health check endpoint"""
    state = _state(request)
    return {
        "status": "healthy",
        "service": "radar",
        "initialized": state is not None,
        "thread_search": bool(state and state.config.slack.user_token),
    }


@app.post("/slack/events")
async def slack_events(
    request: Request,
    background_tasks: BackgroundTasks,
    x_slack_signature: Optional[str] = Header(None),
    x_slack_request_timestamp: Optional[str] = Header(None)
):
    """Handle Slack webhook events."""
    state = _state(request)
    if state is None:
        raise HTTPException(status_code=503, detail="Handler not initialized")

    body = await request.body()

    if not state.handler.verify_signature(
        body,
        x_slack_signature or "",
        x_slack_request_timestamp or ""
    ):
        raise HTTPException(status_code=401, detail="Invalid signature")

    try:
        data = json.loads(body)
    except json.JSONDecodeError:
        raise HTTPException(status_code=400, detail="Invalid JSON")

    if state.handler.is_url_verification(data):
        return JSONResponse({"challenge": state.handler.get_challenge(data)})

    # Slack redelivers when it does not get a quick 200; ignore retries
    if request.headers.get("x-slack-retry-num"):
        return JSONResponse({"ok": True})

    message = await state.handler.parse_event(data)
    if message is not None:
        background_tasks.add_task(handle_mention, state, message)

    return JSONResponse({"ok": True})


def run_server(config: Optional[RadarConfig] = None):
    """Run the bot server"""
    import uvicorn

    config = config or load_config()
    logger.info("Starting server on port %d", config.server.port)
    uvicorn.run(
        "radar.bot.server:app",
        host=config.server.host,
        port=config.server.port,
        reload=False,
    )
