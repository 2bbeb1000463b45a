"""
Unified Notification Service
Best-effort delivery of workflow notifications, scheduled after the
triggering transaction has committed
"""

import logging
from dataclasses import dataclass
from typing import Callable, Optional, Protocol

logger = logging.getLogger(__name__)


class NotificationSender(Protocol):
    """Delivery channel capability (email today; SMS or push would be further implementations)"""

    def send(self, to: str, subject: str, message: str) -> bool: ...


@dataclass(frozen=True)
class Notification:
    to: str
    subject: str
    message: str
    notification_type: str = "generic"


# add_task-style callable: schedule(func, *args)
Scheduler = Callable[..., None]


def deliver(sender: NotificationSender, notification: Notification) -> bool:
    """Send one notification; failures are logged, never raised"""
    try:
        logger.info(f"📧 Sending {notification.notification_type} notification to {notification.to}")
        delivered = bool(sender.send(notification.to, notification.subject, notification.message))
        if delivered:
            logger.info(f"✅ {notification.notification_type} notification sent to {notification.to}")
        else:
            logger.warning(f"⚠️ {notification.notification_type} notification not delivered to {notification.to}")
        return delivered
    except Exception as e:
        logger.error(f"❌ Failed to send {notification.notification_type} notification to {notification.to}: {e}")
        return False


class NotificationDispatcher:
    """
    Hands notifications to a scheduler instead of sending them inline.

    In requests the scheduler is ``BackgroundTasks.add_task``, so delivery runs
    after the response has been sent and the caller never waits on the channel.
    """

    def __init__(self, sender: Optional[NotificationSender], schedule: Scheduler):
        self.sender = sender
        self.schedule = schedule

    def dispatch(self, notifications: list[Notification]) -> int:
        """
        Schedule delivery of every notification that has a recipient.

        Returns:
            Number of notifications scheduled
        """
        pending = [n for n in notifications if n.to]
        if not pending:
            return 0
        if self.sender is None:
            logger.debug("ℹ️ No notification sender configured, skipping dispatch")
            return 0

        for notification in pending:
            self.schedule(deliver, self.sender, notification)
        logger.debug(f"📬 Scheduled {len(pending)} notification(s)")
        return len(pending)
