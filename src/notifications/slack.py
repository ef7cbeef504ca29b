"""
Slack notification sender for collection run alerts.

Sends run failure/completion notifications to a Slack channel via webhook.
"""

from datetime import datetime, timezone

import httpx

from src.utils import logger
from src.notifications.config import notification_settings


class SlackNotifier:
    """
    Sends notifications to Slack via incoming webhooks.

    Publishes block-formatted messages for:
    - Failed collection runs (with error category and message)
    - Completed collection runs (optional)
    """

    def __init__(
        self,
        webhook_url: str | None = None,
        enabled: bool | None = None,
        notify_on_success: bool | None = None,
        transport: httpx.BaseTransport | None = None,
    ):
        """
        Initialize Slack notifier.

        Args:
            webhook_url: Slack incoming webhook URL
            enabled: Override SLACK_ENABLED
            notify_on_success: Override SLACK_NOTIFY_ON_SUCCESS
            transport: Custom httpx transport (tests)
        """
        self.webhook_url = webhook_url or notification_settings.slack.webhook_url
        enabled = notification_settings.slack.enabled if enabled is None else enabled
        self.enabled = enabled and bool(self.webhook_url)
        self.notify_on_success = (
            notification_settings.slack.notify_on_success
            if notify_on_success is None else notify_on_success
        )
        self._transport = transport

        if self.enabled:
            logger.info("Slack notifier initialized")
        elif not self.webhook_url:
            logger.debug("Slack webhook URL not configured, notifications disabled")
        else:
            logger.info("Slack notifier disabled")

    def _send(self, payload: dict) -> bool:
        """
        Send a message to Slack.

        Args:
            payload: Slack message payload (blocks)

        Returns:
            True if successful, False otherwise
        """
        if not self.enabled:
            logger.debug("Slack disabled or not configured, skipping notification")
            return False

        try:
            with httpx.Client(
                timeout=notification_settings.slack.timeout_seconds,
                transport=self._transport,
            ) as client:
                response = client.post(self.webhook_url, json=payload)

            if response.status_code != 200:
                logger.error(f"Slack webhook failed: {response.status_code} - {response.text}")
                return False

            logger.info("Slack notification sent successfully")
            return True

        except httpx.HTTPError as e:
            logger.error(f"Failed to send Slack notification: {e}")
            return False

    @staticmethod
    def _context(timestamp: datetime) -> dict:
        return {
            "type": "context",
            "elements": [
                {"type": "mrkdwn", "text": f"⏰ {timestamp.strftime('%Y-%m-%d %H:%M:%S UTC')}"}
            ],
        }

    def notify_failure(
        self,
        error_category: str,
        error_message: str,
        request_id: str | None = None,
        departure_iata: str | None = None,
        timestamp: datetime | None = None,
    ) -> bool:
        """
        Send a run failure notification to Slack.

        Args:
            error_category: Category of the error
            error_message: Detailed error message
            request_id: Collection request id (if available)
            departure_iata: Airport the run was collecting for
            timestamp: When the failure occurred

        Returns:
            True if notification was sent successfully
        """
        timestamp = timestamp or datetime.now(timezone.utc)

        payload = {
            "blocks": [
                {
                    "type": "header",
                    "text": {"type": "plain_text", "text": "🚨 Collection Run Failed", "emoji": True},
                },
                {
                    "type": "section",
                    "fields": [
                        {"type": "mrkdwn", "text": f"*Environment:*\n{notification_settings.environment}"},
                        {"type": "mrkdwn", "text": f"*Airport:*\n{departure_iata or 'N/A'}"},
                        {"type": "mrkdwn", "text": f"*Error Category:*\n`{error_category}`"},
                        {"type": "mrkdwn", "text": f"*Request ID:*\n{request_id or 'N/A'}"},
                    ],
                },
                {
                    "type": "section",
                    "text": {"type": "mrkdwn", "text": f"*Error Message:*\n```{error_message}```"},
                },
                self._context(timestamp),
            ]
        }

        return self._send(payload)

    def notify_success(
        self,
        request_id: str,
        departure_iata: str,
        total_flights: int,
        collected_flights: int,
        stored_flights: int = 0,
        duration_seconds: float | None = None,
        timestamp: datetime | None = None,
    ) -> bool:
        """
        Send a run completion notification to Slack (optional, usually disabled).

        Returns:
            True if notification was sent successfully
        """
        if not self.notify_on_success:
            return False

        timestamp = timestamp or datetime.now(timezone.utc)
        duration_str = f"{duration_seconds:.1f}s" if duration_seconds else "N/A"

        payload = {
            "blocks": [
                {
                    "type": "header",
                    "text": {"type": "plain_text", "text": "✅ Collection Run Completed", "emoji": True},
                },
                {
                    "type": "section",
                    "fields": [
                        {"type": "mrkdwn", "text": f"*Airport:*\n{departure_iata}"},
                        {"type": "mrkdwn", "text": f"*Request ID:*\n{request_id}"},
                        {"type": "mrkdwn", "text": f"*Windows:*\n{collected_flights}/{total_flights}"},
                        {"type": "mrkdwn", "text": f"*Newly stored:*\n{stored_flights}"},
                        {"type": "mrkdwn", "text": f"*Duration:*\n{duration_str}"},
                    ],
                },
                self._context(timestamp),
            ]
        }

        return self._send(payload)


def create_slack_notifier() -> SlackNotifier:
    """Create a new Slack notifier."""
    return SlackNotifier()


__all__ = ["SlackNotifier", "create_slack_notifier"]
