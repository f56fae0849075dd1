"""
Progress Channel

Append-only, ordered stream of ProgressEvents for one request.
Subscribers are called synchronously, in subscription order, for every
event. A failing subscriber is logged and never affects execution.
"""

import logging
from typing import Callable, List

from schemas.progress import ProgressEvent

logger = logging.getLogger(__name__)

ProgressSubscriber = Callable[[ProgressEvent], None]

# Friendly labels for progress messages
ACTION_DESCRIPTIONS = {
    "batch_process": "Batch processing images",
    "remove_background": "Removing backgrounds",
    "generate_image": "Generating image",
    "generate_lifestyle": "Creating lifestyle shot",
    "generate_model_shot": "Creating model shot",
    "generate_showcase": "Generating showcase variations",
    "show_notification": "Showing notification",
    "navigate_to": "Navigating",
    "upload_images": "Uploading images",
    "update_product_details": "Updating product details",
    "create_product": "Creating product",
    "search_products": "Searching products",
    "start_bulk_processing": "Starting bulk processing",
    "open_modal": "Opening modal",
    "refresh_page": "Refreshing page",
    "select_images": "Selecting images",
}


def describe_action(action: str) -> str:
    return ACTION_DESCRIPTIONS.get(action, action.replace("_", " "))


class ProgressChannel:
    """
    Ordered event log plus live fan-out to subscribers.
    """

    def __init__(self):
        self._events: List[ProgressEvent] = []
        self._subscribers: List[ProgressSubscriber] = []

    @property
    def events(self) -> List[ProgressEvent]:
        """Snapshot of everything published so far."""
        return list(self._events)

    def subscribe(self, subscriber: ProgressSubscriber) -> Callable[[], None]:
        """
        Register a subscriber.

        Returns:
            A callable that removes the subscriber again
        """
        self._subscribers.append(subscriber)

        def unsubscribe() -> None:
            if subscriber in self._subscribers:
                self._subscribers.remove(subscriber)

        return unsubscribe

    def publish(self, event: ProgressEvent) -> ProgressEvent:
        self._events.append(event)
        logger.info(f"[AI Step] {event.message}")

        for subscriber in list(self._subscribers):
            try:
                subscriber(event)
            except Exception as e:
                logger.warning(f"Progress subscriber failed: {e}")

        return event

    def clear(self) -> None:
        self._events.clear()

    def __len__(self) -> int:
        return len(self._events)

    def __bool__(self) -> bool:
        # An empty channel is still a channel
        return True
