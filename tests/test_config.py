"""Tests for settings validation."""

from __future__ import annotations

import logging
from pathlib import Path

import pytest
from pydantic import ValidationError

from epg_reconciler.config import CustomSettings


class TestFeedSources:
    """Tests for feed_sources parsing."""

    def test_comma_separated_string(self) -> None:
        settings = CustomSettings(feed_sources=" a.xml, https://example.test/b.xml ,, ")

        assert settings.feed_sources == ["a.xml", "https://example.test/b.xml"]

    def test_read_from_environment(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("FEED_SOURCES", "first.xml,second.xml")

        assert CustomSettings().feed_sources == ["first.xml", "second.xml"]

    def test_read_from_env_file(self, tmp_path: Path) -> None:
        (tmp_path / ".env").write_text("FEED_DIR=/srv/feeds\nIDENTITY_SCOPE=run\n", encoding="utf-8")

        settings = CustomSettings()

        assert settings.feed_dir == "/srv/feeds"
        assert settings.identity_scope == "run"

    def test_non_http_url_is_rejected(self) -> None:
        with pytest.raises(ValidationError, match="HTTP/HTTPS"):
            CustomSettings(feed_sources=["ftp://example.test/epg.xml"])

    def test_missing_feeds_only_warn(self, caplog: pytest.LogCaptureFixture) -> None:
        with caplog.at_level(logging.WARNING, logger="epg_reconciler.config"):
            settings = CustomSettings()

        assert settings.feed_sources == []
        assert "No feed sources or feed directory configured" in caplog.text


class TestValidation:
    """Tests for scalar field validation."""

    def test_defaults(self) -> None:
        settings = CustomSettings()

        assert settings.preferred_title_lang == "en"
        assert settings.identity_scope == "channel"
        assert settings.output_dir == "."
        assert settings.reconcile_cron == "0 3 * * *"

    def test_language_is_normalized(self) -> None:
        assert CustomSettings(preferred_title_lang=" BG ").preferred_title_lang == "bg"

    def test_log_level_is_normalized(self) -> None:
        assert CustomSettings(log_level="debug").log_level == "DEBUG"

    @pytest.mark.parametrize(
        ("field", "value"),
        [
            ("identity_scope", "global"),
            ("reconcile_cron", "not a cron"),
            ("download_backoff_factor", 0.5),
            ("download_max_retries", 0),
            ("download_max_concurrency", 0),
            ("reconcile_misfire_grace_sec", 0),
            ("feed_parse_timeout_sec", -1),
            ("log_level", "verbose"),
            ("channels_file", "  "),
        ],
    )
    def test_invalid_values_are_rejected(self, field: str, value: object) -> None:
        with pytest.raises(ValidationError):
            CustomSettings(**{field: value})

    def test_blank_feed_dir_is_unset(self) -> None:
        assert CustomSettings(feed_dir="  ").feed_dir is None
