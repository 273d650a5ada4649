"""Notification adapters."""

from cnblogs_harvester.adapters.notifications.smtp_notifier import SmtpNotifier

__all__ = ["SmtpNotifier"]
