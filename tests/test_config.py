"""Tests for configuration loading."""

from pathlib import Path

import pytest

from cnblogs_harvester.config import Settings, get_settings


def test_defaults_without_file(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("SMTP_PASSWORD", raising=False)
    monkeypatch.delenv("MAIL_TO", raising=False)
    
    settings = get_settings(tmp_path / "missing.yaml")
    
    assert settings.source.url == "https://www.cnblogs.com/"
    assert settings.scheduler.max_retries == 3
    assert settings.scheduler.interval_seconds == 300.0
    assert settings.digest.anchor_time == "09:00"
    assert settings.snapshot_path == Path("Blogs") / "cnblogs.tmp"
    assert settings.smtp_password is None
    assert not settings.mail_enabled


def test_yaml_overrides_and_env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """Test YAML sections and environment secrets."""
    monkeypatch.setenv("SMTP_PASSWORD", "secret")
    monkeypatch.delenv("MAIL_TO", raising=False)
    config = tmp_path / "config.yaml"
    config.write_text(
        """
scheduler:
  max_retries: 5
  interval_seconds: 60
paths:
  base_dir: data
digest:
  anchor_time: "07:30"
mail:
  smtp_host: smtp.example.com
  recipients:
    - a@example.com
logging:
  file: logs/run.log
""",
        encoding="utf-8",
    )
    
    settings = get_settings(config)
    
    assert settings.scheduler.max_retries == 5
    assert settings.scheduler.interval_seconds == 60
    assert settings.archive_dir == Path("data")
    assert settings.digest.anchor_time == "07:30"
    assert settings.smtp_password == "secret"
    assert settings.logging.file == Path("logs/run.log")
    assert settings.mail_enabled


def test_mail_to_env_overrides_recipients(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("MAIL_TO", "one@example.com, two@example.com ,")
    
    settings = get_settings(tmp_path / "missing.yaml")
    
    assert settings.mail.recipients == ["one@example.com", "two@example.com"]


def test_mail_disabled_by_digest_flag() -> None:
    settings = Settings()
    settings.mail.smtp_host = "smtp.example.com"
    settings.mail.recipients = ["a@example.com"]
    settings.digest.enabled = False
    
    assert not settings.mail_enabled
