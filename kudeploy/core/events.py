"""Deploy lifecycle notifications.

The deployer reports progress through an :class:`EventSink`. Notifications
are fire-and-forget: a sink that raises is logged and ignored, and never
changes the outcome of a deploy.
"""

import logging
from typing import Protocol

logger = logging.getLogger(__name__)


class EventSink(Protocol):
    """Receiver for deploy lifecycle notifications."""

    def deploy_in_progress(self) -> None:
        ...

    def deploy_complete(self) -> None:
        ...

    def deploy_failed(self, err: Exception) -> None:
        ...


class LoggingEventSink:
    """EventSink that writes notifications to the log."""

    def __init__(self, name: str = "kudeploy.events"):
        self.logger = logging.getLogger(name)

    def deploy_in_progress(self) -> None:
        self.logger.info("Deploy in progress")

    def deploy_complete(self) -> None:
        self.logger.info("Deploy complete")

    def deploy_failed(self, err: Exception) -> None:
        self.logger.error(f"Deploy failed: {err}")


def notify(sink: EventSink, event: str, *args) -> None:
    """Call ``sink.<event>(*args)``, logging and dropping any exception it raises."""
    try:
        getattr(sink, event)(*args)
    except Exception as e:
        logger.warning(f"Event sink failed on {event}: {e}")
