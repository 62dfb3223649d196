"""Desktop notifications sent through the running Gio.Application."""

import logging

from gi.repository import Gio

logger = logging.getLogger(__name__)


class Notifier:
    """Send notifications keyed by id; a repeated id replaces the previous one."""

    def __init__(self, application):
        self.application = application

    def notify(self, notification_id: str, title: str, body: str):
        notification = Gio.Notification.new(title)
        notification.set_body(body)
        logger.debug("Sending notification %s: %s", notification_id, title)
        self.application.send_notification(notification_id, notification)
