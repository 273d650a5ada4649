"""Configuration management."""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

import yaml


@dataclass
class SourceConfig:
    """Target page settings."""
    url: str = "https://www.cnblogs.com/"
    timeout: float = 30.0
    user_agent: str = (
        "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/120.0 Safari/537.36"
    )


@dataclass
class ExtractorConfig:
    """CSS selectors for the post list."""
    item_selector: str = "div.post_item_body"
    title_selector: str = "h3 > a"
    summary_selector: str = "p.post_item_summary"
    footer_selector: str = "div.post_item_foot"
    author_selector: str = "a"


@dataclass
class PathsConfig:
    """Path settings."""
    base_dir: Path = Path("Blogs")
    snapshot_file: str = "cnblogs.tmp"
    digest_marker_file: str = "cnblogs.digest"
    archive_prefix: str = "cnblogs"


@dataclass
class SchedulerConfig:
    """Harvest loop settings."""
    max_retries: int = 3
    interval_seconds: float = 300.0
    retry_delay_seconds: float = 0.0


@dataclass
class DigestConfig:
    """Daily digest settings."""
    enabled: bool = True
    anchor_time: str = "09:00"
    grace_minutes: float = 10.0
    subject: str = "Cnblogs front page digest"


@dataclass
class MailConfig:
    """SMTP settings. The password comes from the environment only."""
    smtp_host: str = ""
    smtp_port: int = 465
    use_ssl: bool = True
    starttls: bool = False
    username: str = ""
    sender: str = ""
    sender_name: str = "CnblogsHarvester"
    recipients: list[str] = field(default_factory=list)


@dataclass
class LoggingConfig:
    """Log sink settings."""
    file: Optional[Path] = None


@dataclass
class Settings:
    """Application settings."""

    # Secrets (from environment only)
    smtp_password: Optional[str] = None

    # Config sections
    source: SourceConfig = field(default_factory=SourceConfig)
    extractor: ExtractorConfig = field(default_factory=ExtractorConfig)
    paths: PathsConfig = field(default_factory=PathsConfig)
    scheduler: SchedulerConfig = field(default_factory=SchedulerConfig)
    digest: DigestConfig = field(default_factory=DigestConfig)
    mail: MailConfig = field(default_factory=MailConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    @property
    def snapshot_path(self) -> Path:
        return self.paths.base_dir / self.paths.snapshot_file

    @property
    def digest_marker_path(self) -> Path:
        return self.paths.base_dir / self.paths.digest_marker_file

    @property
    def archive_dir(self) -> Path:
        return self.paths.base_dir

    @property
    def mail_enabled(self) -> bool:
        return bool(self.digest.enabled and self.mail.smtp_host and self.mail.recipients)


def load_config(config_path: Path = Path("config.yaml")) -> dict:
    """Load configuration from YAML file."""
    if not config_path.exists():
        return {}

    with open(config_path, "r", encoding="utf-8") as f:
        return yaml.safe_load(f) or {}


def get_settings(config_path: Path = Path("config.yaml")) -> Settings:
    """Get application settings from YAML config and environment."""
    config = load_config(config_path)

    settings = Settings(smtp_password=os.getenv("SMTP_PASSWORD"))

    for section in ("source", "extractor", "scheduler", "digest", "mail"):
        for key, value in (config.get(section) or {}).items():
            setattr(getattr(settings, section), key, value)

    for key, value in (config.get("paths") or {}).items():
        setattr(settings.paths, key, Path(value) if key == "base_dir" else value)

    log_file = (config.get("logging") or {}).get("file")
    if log_file:
        settings.logging.file = Path(log_file)

    mail_to = os.getenv("MAIL_TO")
    if mail_to:
        settings.mail.recipients = mail_to

    if isinstance(settings.mail.recipients, str):
        settings.mail.recipients = [
            address.strip() for address in settings.mail.recipients.split(",") if address.strip()
        ]

    return settings
