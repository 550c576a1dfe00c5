"""
Radar

Finds past Jira issues that resemble a new question and explains them.

Pipeline:
- QueryBuilder turns the question into JQL and fetches candidate issues
- Scheduler evaluates every candidate concurrently (Slack thread lookup + LLM similarity)
- Top matches are summarized and posted back to Slack

Usage:
    from radar.common import load_config
    from radar.service import build_service

    service = build_service(load_config())
    results = await service.search("Login fails with error G0239422")
"""

__version__ = "0.1.0"
