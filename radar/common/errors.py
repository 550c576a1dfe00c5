"""Exception hierarchy shared across Radar components."""


class RadarError(Exception):
    """Base class for Radar errors."""
    pass


class SlackAPIError(RadarError):
    """Slack Web API returned ``ok: false`` or an HTTP error."""

    def __init__(self, method: str, error: str):
        super().__init__(f"Slack API {method} failed: {error}")
        self.method = method
        self.error = error


class JiraError(RadarError):
    """Jira REST API request failed."""
    pass


class LLMResponseError(RadarError):
    """LLM reply could not be decoded into the expected shape."""
    pass


class QueryGenerationError(RadarError):
    """JQL generation or issue search failed after all attempts."""
    pass


class SchedulingError(RadarError):
    """Candidate evaluation could not be scheduled; the whole run is aborted."""
    pass


class SummaryError(RadarError):
    """Summary generation failed for a selected issue."""
    pass
