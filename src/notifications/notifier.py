"""
Main notifier for collection run events.

Provides a unified interface for sending notifications.
"""

from typing import TYPE_CHECKING

from src.utils import logger
from src.notifications.slack import SlackNotifier, create_slack_notifier

if TYPE_CHECKING:
    from src.ingestion.db import CollectionRequest


class CollectionNotifier:
    """
    Unified notifier for collection run events.

    Sends Slack notifications for failed runs (and optionally completed ones).
    """

    def __init__(
        self,
        slack: SlackNotifier | None = None,
    ):
        """
        Initialize the notifier.

        Args:
            slack: Slack notifier (created if not provided)
        """
        self.slack = slack or create_slack_notifier()

    def on_success(
        self,
        request: "CollectionRequest",
        duration_seconds: float | None = None,
    ) -> None:
        """
        Handle a completed run.

        Args:
            request: The completed collection request
            duration_seconds: Time taken for the run
        """
        logger.info(
            f"Run {request.id} completed: {request.collected_flights}/{request.total_flights} windows, "
            f"{request.stored_flights} new schedules"
        )

        self.slack.notify_success(
            request_id=request.id,
            departure_iata=request.departure_iata,
            total_flights=request.total_flights,
            collected_flights=request.collected_flights,
            stored_flights=request.stored_flights,
            duration_seconds=duration_seconds,
        )

    def on_failure(
        self,
        request_id: str | None,
        error_category: str,
        error_message: str,
        departure_iata: str | None = None,
    ) -> None:
        """
        Handle a failed run.

        Args:
            request_id: Collection request id
            error_category: Category of the error
            error_message: Detailed error message
            departure_iata: Airport the run was collecting for
        """
        logger.error(f"Run {request_id} failed: [{error_category}] {error_message}")

        self.slack.notify_failure(
            error_category=error_category,
            error_message=error_message,
            request_id=request_id,
            departure_iata=departure_iata,
        )


def create_notifier() -> CollectionNotifier:
    """Create a new notifier."""
    return CollectionNotifier()


_notifier: CollectionNotifier | None = None


def get_notifier() -> CollectionNotifier:
    """Get the global notifier instance."""
    global _notifier
    if _notifier is None:
        _notifier = create_notifier()
    return _notifier


__all__ = [
    "CollectionNotifier",
    "create_notifier",
    "get_notifier",
]
