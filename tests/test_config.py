"""Configuration and logging helper tests."""

import logging

from studio_sync.config import AppConfig, RemoteConfig, load_config
from studio_sync.logging_utils import REDACTED, KeyRedactionFilter, redact_key


class TestConfig:
    def test_defaults_are_local_only(self, monkeypatch):
        monkeypatch.delenv("SUPABASE_URL", raising=False)
        monkeypatch.delenv("SUPABASE_ANON_KEY", raising=False)

        config = RemoteConfig()

        assert config.is_configured is False
        assert config.schema_name == "public"

    def test_env_prefix(self, monkeypatch):
        monkeypatch.setenv("SUPABASE_URL", "https://demo.supabase.co")
        monkeypatch.setenv("SUPABASE_ANON_KEY", "secret")
        monkeypatch.setenv("STUDIO_SYNC_ITEM_DELAY_MS", "5")

        config = load_config()

        assert config.remote.is_configured
        assert config.sync.item_delay_ms == 5
        assert config.sync.activity_limit == 50

    def test_from_yaml(self, tmp_path):
        path = tmp_path / "studio.yaml"
        path.write_text(
            "remote:\n"
            "  url: https://yaml.supabase.co\n"
            "  anon_key: from-yaml\n"
            "cache:\n"
            f"  path: {tmp_path / 'cache.db'}\n"
            "sync:\n"
            "  grace_period_seconds: 0\n"
        )

        config = AppConfig.from_yaml(path)

        assert config.remote.url == "https://yaml.supabase.co"
        assert config.cache.path == tmp_path / "cache.db"
        assert config.sync.grace_period_seconds == 0

    def test_missing_yaml_gives_defaults(self, tmp_path):
        config = load_config(tmp_path / "absent.yaml")

        assert config.cache.snapshot_key == "studio_full_platform_data"
        assert config.cache.activity_key == "studio_activity_log"


class TestRedaction:
    def test_redact_key(self):
        assert redact_key("abcdefghijkl") == "abcd****ijkl"
        assert redact_key("short") == "*****"
        assert redact_key(None) == ""

    def test_filter_scrubs_message_and_args(self):
        record = logging.LogRecord(
            "studio_sync", logging.INFO, __file__, 1, "key=%s url=%s", ("s3cret", "x"), None
        )

        KeyRedactionFilter("s3cret").filter(record)

        assert record.getMessage() == f"key={REDACTED} url=x"
