"""
Configuration Management for Radar

Loads configuration from ~/.radar/config.json and environment variables.
"""

import os
import json
import logging
from pathlib import Path
from dataclasses import dataclass, field

logger = logging.getLogger("radar.common.config")

# Default config paths
CONFIG_DIR = Path.home() / ".radar"
CONFIG_PATH = CONFIG_DIR / "config.json"


@dataclass
class SlackConfig:
    """Slack workspace configuration"""
    bot_token: str = ""
    user_token: str = ""  # search.messages requires a user token
    signing_secret: str = ""
    channel: str = ""  # restrict thread search and replies to this channel
    workspace_url: str = ""


@dataclass
class JiraConfig:
    """Jira Cloud configuration"""
    endpoint: str = ""
    username: str = ""
    api_token: str = ""
    project_key: str = ""
    search_hint: str = ""  # extra instruction appended to the JQL prompt
    max_results: int = 30


@dataclass
class LLMConfig:
    """LLM provider configuration"""
    provider: str = "openai"
    openai_api_key: str = ""
    openai_model: str = "gpt-4o-mini"
    azure_endpoint: str = ""
    azure_api_key: str = ""
    azure_api_version: str = "2025-01-01-preview"
    anthropic_api_key: str = ""
    anthropic_model: str = "claude-sonnet-4-20250514"
    google_api_key: str = ""
    google_model: str = "gemini-2.0-flash-exp"

    @property
    def model(self) -> str:
        """Model name for the active provider"""
        if self.provider == "anthropic":
            return self.anthropic_model
        if self.provider == "google":
            return self.google_model
        return self.openai_model


@dataclass
class RankerConfig:
    """Candidate evaluation pipeline configuration"""
    similarity_threshold: float = 0.3
    top_k: int = 5
    max_concurrency: int = 5
    max_attempts: int = 3
    retry_delay: float = 3.0
    notify_interval: float = 0.5
    notify_buffer: int = 100
    notify_start: bool = True
    thread_search_count: int = 10
    thread_reply_limit: int = 100


@dataclass
class ServerConfig:
    """Slack events server configuration"""
    host: str = "0.0.0.0"
    port: int = 8080


@dataclass
class RadarConfig:
    """Main Radar configuration"""
    slack: SlackConfig = field(default_factory=SlackConfig)
    jira: JiraConfig = field(default_factory=JiraConfig)
    llm: LLMConfig = field(default_factory=LLMConfig)
    ranker: RankerConfig = field(default_factory=RankerConfig)
    server: ServerConfig = field(default_factory=ServerConfig)


def _parse_slack_config(data: dict) -> SlackConfig:
    """Parse slack section from config dict"""
    slack_data = data.get("slack", {})
    return SlackConfig(
        bot_token=slack_data.get("bot_token", ""),
        user_token=slack_data.get("user_token", ""),
        signing_secret=slack_data.get("signing_secret", ""),
        channel=slack_data.get("channel", ""),
        workspace_url=slack_data.get("workspace_url", ""),
    )


def _parse_jira_config(data: dict) -> JiraConfig:
    """Parse jira section from config dict"""
    jira_data = data.get("jira", {})
    return JiraConfig(
        endpoint=jira_data.get("endpoint", ""),
        username=jira_data.get("username", ""),
        api_token=jira_data.get("api_token", ""),
        project_key=jira_data.get("project_key", ""),
        search_hint=jira_data.get("search_hint", ""),
        max_results=jira_data.get("max_results", 30),
    )


def _parse_llm_config(data: dict) -> LLMConfig:
    """Parse llm section from config dict"""
    llm_data = data.get("llm", {})
    defaults = LLMConfig()
    return LLMConfig(
        provider=llm_data.get("provider", defaults.provider),
        openai_api_key=llm_data.get("openai_api_key", ""),
        openai_model=llm_data.get("openai_model", defaults.openai_model),
        azure_endpoint=llm_data.get("azure_endpoint", ""),
        azure_api_key=llm_data.get("azure_api_key", ""),
        azure_api_version=llm_data.get("azure_api_version", defaults.azure_api_version),
        anthropic_api_key=llm_data.get("anthropic_api_key", ""),
        anthropic_model=llm_data.get("anthropic_model", defaults.anthropic_model),
        google_api_key=llm_data.get("google_api_key", ""),
        google_model=llm_data.get("google_model", defaults.google_model),
    )


def _parse_ranker_config(data: dict) -> RankerConfig:
    """Parse ranker section from config dict"""
    ranker_data = data.get("ranker", {})
    defaults = RankerConfig()
    return RankerConfig(
        similarity_threshold=ranker_data.get("similarity_threshold", defaults.similarity_threshold),
        top_k=ranker_data.get("top_k", defaults.top_k),
        max_concurrency=ranker_data.get("max_concurrency", defaults.max_concurrency),
        max_attempts=ranker_data.get("max_attempts", defaults.max_attempts),
        retry_delay=ranker_data.get("retry_delay", defaults.retry_delay),
        notify_interval=ranker_data.get("notify_interval", defaults.notify_interval),
        notify_buffer=ranker_data.get("notify_buffer", defaults.notify_buffer),
        notify_start=ranker_data.get("notify_start", defaults.notify_start),
        thread_search_count=ranker_data.get("thread_search_count", defaults.thread_search_count),
        thread_reply_limit=ranker_data.get("thread_reply_limit", defaults.thread_reply_limit),
    )


def _parse_server_config(data: dict) -> ServerConfig:
    """Parse server section from config dict"""
    server_data = data.get("server", {})
    return ServerConfig(
        host=server_data.get("host", "0.0.0.0"),
        port=server_data.get("port", 8080),
    )


# Environment variables holding secrets, mapped to (section, attribute)
_ENV_SECRET_MAP = {
    "SLACK_BOT_TOKEN": ("slack", "bot_token"),
    "SLACK_USER_TOKEN": ("slack", "user_token"),
    "SLACK_SIGNING_SECRET": ("slack", "signing_secret"),
    "JIRA_API_TOKEN": ("jira", "api_token"),
    "OPENAI_API_KEY": ("llm", "openai_api_key"),
    "AZURE_OPENAI_KEY": ("llm", "azure_api_key"),
    "ANTHROPIC_API_KEY": ("llm", "anthropic_api_key"),
    "GOOGLE_API_KEY": ("llm", "google_api_key"),
    "GEMINI_API_KEY": ("llm", "google_api_key"),
}

_ENV_PLAIN_MAP = {
    "SLACK_CHANNEL": ("slack", "channel"),
    "SLACK_WORKSPACE_URL": ("slack", "workspace_url"),
    "JIRA_ENDPOINT": ("jira", "endpoint"),
    "JIRA_USERNAME": ("jira", "username"),
    "JIRA_PROJECT_KEY": ("jira", "project_key"),
    "JIRA_SEARCH_QUERY": ("jira", "search_hint"),
    "RADAR_LLM_PROVIDER": ("llm", "provider"),
    "OPENAI_MODEL": ("llm", "openai_model"),
    "AZURE_OPENAI_ENDPOINT": ("llm", "azure_endpoint"),
    "AZURE_OPENAI_API_VERSION": ("llm", "azure_api_version"),
    "ANTHROPIC_MODEL": ("llm", "anthropic_model"),
    "GOOGLE_MODEL": ("llm", "google_model"),
}

_ENV_NUMERIC_MAP = {
    "RADAR_THRESHOLD": ("ranker", "similarity_threshold", float),
    "RADAR_TOP_K": ("ranker", "top_k", int),
    "RADAR_MAX_CONCURRENCY": ("ranker", "max_concurrency", int),
    "RADAR_MAX_ATTEMPTS": ("ranker", "max_attempts", int),
    "RADAR_RETRY_DELAY": ("ranker", "retry_delay", float),
    "RADAR_NOTIFY_INTERVAL": ("ranker", "notify_interval", float),
    "RADAR_PORT": ("server", "port", int),
}


def load_config() -> RadarConfig:
    """
    Load configuration from file and environment variables.

    Priority (highest to lowest):
    1. Environment variables
    2. Config file (~/.radar/config.json)
    3. Default values
    """
    config = RadarConfig()

    # Load from config file if exists
    if CONFIG_PATH.exists():
        try:
            with open(CONFIG_PATH) as f:
                data = json.load(f)

            config.slack = _parse_slack_config(data)
            config.jira = _parse_jira_config(data)
            config.llm = _parse_llm_config(data)
            config.ranker = _parse_ranker_config(data)
            config.server = _parse_server_config(data)
        except (json.JSONDecodeError, IOError) as e:
            logger.warning("Failed to load config file: %s", e)

    for env_var, (section, attr) in _ENV_SECRET_MAP.items():
        val = os.getenv(env_var)
        if val:
            setattr(getattr(config, section), attr, val)

    for env_var, (section, attr) in _ENV_PLAIN_MAP.items():
        val = os.getenv(env_var)
        if val:
            setattr(getattr(config, section), attr, val)

    for env_var, (section, attr, cast) in _ENV_NUMERIC_MAP.items():
        val = os.getenv(env_var)
        if not val:
            continue
        try:
            setattr(getattr(config, section), attr, cast(val))
        except ValueError:
            logger.warning("Ignoring invalid %s=%r", env_var, val)

    # An Azure endpoint implies the Azure flavour of the OpenAI client
    if config.llm.azure_endpoint and config.llm.provider == "openai":
        config.llm.provider = "azure"

    return config
