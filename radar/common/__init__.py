"""
Radar Common Module

Shared infrastructure for the tracker, ranker, and bot packages.
"""

from .config import RadarConfig, load_config
from .errors import (
    RadarError,
    SlackAPIError,
    JiraError,
    LLMResponseError,
    QueryGenerationError,
    SchedulingError,
)
from .llm_client import LLMClient
from .slack_client import SlackWebClient

__all__ = [
    "RadarConfig",
    "load_config",
    "RadarError",
    "SlackAPIError",
    "JiraError",
    "LLMResponseError",
    "QueryGenerationError",
    "SchedulingError",
    "LLMClient",
    "SlackWebClient",
]
