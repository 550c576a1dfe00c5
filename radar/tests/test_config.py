"""Tests for configuration loading."""

import json
import os
from unittest.mock import patch


class TestDefaults:
    def test_ranker_defaults(self):
        from radar.common.config import RankerConfig
        cfg = RankerConfig()
        assert cfg.similarity_threshold == 0.3
        assert cfg.top_k == 5
        assert cfg.max_concurrency == 5
        assert cfg.max_attempts == 3
        assert cfg.retry_delay == 3.0

    def test_llm_model_follows_provider(self):
        from radar.common.config import LLMConfig
        cfg = LLMConfig(provider="anthropic", anthropic_model="claude-x", openai_model="gpt-x")
        assert cfg.model == "claude-x"
        cfg.provider = "azure"
        assert cfg.model == "gpt-x"

    def test_missing_file_gives_defaults(self, tmp_path):
        from radar.common.config import load_config
        with patch("radar.common.config.CONFIG_PATH", tmp_path / "missing.json"), \
             patch.dict(os.environ, {}, clear=True):
            cfg = load_config()
        assert cfg.ranker.top_k == 5
        assert cfg.llm.provider == "openai"
        assert cfg.server.port == 8080


class TestLoadConfig:
    def test_reads_sections(self, tmp_path):
        from radar.common.config import load_config
        config_data = {
            "slack": {"bot_token": "xoxb-file", "channel": "#ops"},
            "jira": {"endpoint": "https://acme.atlassian.net", "project_key": "OPS"},
            "llm": {"provider": "anthropic", "anthropic_api_key": "sk-ant"},
            "ranker": {"top_k": 3, "similarity_threshold": 0.5},
            "server": {"port": 9000},
        }
        config_file = tmp_path / "config.json"
        config_file.write_text(json.dumps(config_data))

        with patch("radar.common.config.CONFIG_PATH", config_file), \
             patch.dict(os.environ, {}, clear=True):
            cfg = load_config()

        assert cfg.slack.bot_token == "xoxb-file"
        assert cfg.slack.channel == "#ops"
        assert cfg.jira.project_key == "OPS"
        assert cfg.llm.provider == "anthropic"
        assert cfg.ranker.top_k == 3
        assert cfg.ranker.similarity_threshold == 0.5
        assert cfg.ranker.max_concurrency == 5
        assert cfg.server.port == 9000

    def test_env_overrides_file(self, tmp_path):
        from radar.common.config import load_config
        config_file = tmp_path / "config.json"
        config_file.write_text(json.dumps({"slack": {"bot_token": "xoxb-file"}}))

        env = {
            "SLACK_BOT_TOKEN": "xoxb-env",
            "JIRA_PROJECT_KEY": "SUP",
            "RADAR_TOP_K": "7",
            "RADAR_THRESHOLD": "0.45",
        }
        with patch("radar.common.config.CONFIG_PATH", config_file), \
             patch.dict(os.environ, env, clear=True):
            cfg = load_config()

        assert cfg.slack.bot_token == "xoxb-env"
        assert cfg.jira.project_key == "SUP"
        assert cfg.ranker.top_k == 7
        assert cfg.ranker.similarity_threshold == 0.45

    def test_invalid_numeric_env_is_ignored(self, tmp_path, caplog):
        import logging
        from radar.common.config import load_config
        with patch("radar.common.config.CONFIG_PATH", tmp_path / "missing.json"), \
             patch.dict(os.environ, {"RADAR_MAX_CONCURRENCY": "many"}, clear=True), \
             caplog.at_level(logging.WARNING, logger="radar.common.config"):
            cfg = load_config()

        assert cfg.ranker.max_concurrency == 5
        assert "RADAR_MAX_CONCURRENCY" in caplog.text

    def test_azure_endpoint_selects_azure(self, tmp_path):
        from radar.common.config import load_config
        env = {"AZURE_OPENAI_ENDPOINT": "https://acme.openai.azure.com", "AZURE_OPENAI_KEY": "k"}
        with patch("radar.common.config.CONFIG_PATH", tmp_path / "missing.json"), \
             patch.dict(os.environ, env, clear=True):
            cfg = load_config()

        assert cfg.llm.provider == "azure"
        assert cfg.llm.azure_api_key == "k"

    def test_broken_file_logs_warning(self, tmp_path, caplog):
        import logging
        from radar.common.config import load_config
        config_file = tmp_path / "config.json"
        config_file.write_text("{not json")

        with patch("radar.common.config.CONFIG_PATH", config_file), \
             patch.dict(os.environ, {}, clear=True), \
             caplog.at_level(logging.WARNING, logger="radar.common.config"):
            cfg = load_config()

        assert cfg.ranker.top_k == 5
        assert "Failed to load config file" in caplog.text

    def test_loading_never_touches_disk(self, tmp_path):
        from radar.common import config as config_module
        config_dir = tmp_path / "radar-home"
        with patch("radar.common.config.CONFIG_DIR", config_dir), \
             patch("radar.common.config.CONFIG_PATH", config_dir / "config.json"), \
             patch.dict(os.environ, {"SLACK_BOT_TOKEN": "xoxb-env"}, clear=True):
            cfg = config_module.load_config()

        assert cfg.slack.bot_token == "xoxb-env"
        assert not config_dir.exists()
        assert not hasattr(config_module, "save_config")
