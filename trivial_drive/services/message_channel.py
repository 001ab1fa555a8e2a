"""Message channel - user-facing notifications for the presentation layer."""

from trivial_drive.logging_config import get_logger
from trivial_drive.utils.observable import BroadcastChannel, Subscription

logger = get_logger(__name__)


class MessageChannel:
    """Broadcast stream of message strings.

    Fire-and-forget: ``send`` never blocks or raises, messages are not
    retained, and a message sent while nobody listens is dropped.
    """

    def __init__(self) -> None:
        self._channel: BroadcastChannel[str] = BroadcastChannel()

    def send(self, message: str) -> None:
        """Broadcast a message to every current listener."""
        delivered = self._channel.send(message)
        if delivered:
            logger.debug("message_sent", message=message, listeners=delivered)
        else:
            logger.debug("message_dropped", message=message, reason="no_listeners")

    def subscribe(self) -> Subscription[str]:
        """Start listening; messages sent from now on are delivered in order."""
        return self._channel.subscribe()

    @property
    def listener_count(self) -> int:
        return self._channel.subscriber_count

    def close(self) -> None:
        """End every listener's iteration."""
        self._channel.close()
