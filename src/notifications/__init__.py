"""
Notifications module for Slack alerts.

Provides alerting for collection runs via Slack webhooks.

Usage:
    from src.notifications import get_notifier

    notifier = get_notifier()
    notifier.on_failure(request_id="ab12", error_category="API_ERROR", error_message="...")

Configuration (environment variables):
    SLACK_ENABLED: Enable Slack notifications (default: true)
    SLACK_WEBHOOK_URL: Slack incoming webhook URL (required)
    SLACK_NOTIFY_ON_SUCCESS: Also notify on completed runs (default: false)
"""

from src.notifications.config import (
    SlackSettings,
    NotificationSettings,
    notification_settings,
    get_notification_settings,
)
from src.notifications.slack import (
    SlackNotifier,
    create_slack_notifier,
)
from src.notifications.notifier import (
    CollectionNotifier,
    create_notifier,
    get_notifier,
)

__all__ = [
    # Config
    "SlackSettings",
    "NotificationSettings",
    "notification_settings",
    "get_notification_settings",
    # Slack
    "SlackNotifier",
    "create_slack_notifier",
    # Main notifier
    "CollectionNotifier",
    "create_notifier",
    "get_notifier",
]
