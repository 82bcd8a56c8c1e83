import logging
from dataclasses import dataclass

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Notification:
    level: str  # "success" | "error" | "info"
    title: str
    message: str


class Notifier:
    """
    Collects user-visible notices (what the browser shows as toasts) and
    mirrors each one to the log.
    """

    def __init__(self):
        self.notifications = []

    def _push(self, level, title, message):
        notification = Notification(level, title, message)
        self.notifications.append(notification)
        log = logger.warning if level == 'error' else logger.info
        log(f"[{level}] {title}: {message}")
        return notification

    def success(self, title, message):
        return self._push('success', title, message)

    def error(self, title, message):
        return self._push('error', title, message)

    def info(self, title, message):
        return self._push('info', title, message)

    @property
    def last(self):
        return self.notifications[-1] if self.notifications else None

    def errors(self):
        return [n for n in self.notifications if n.level == 'error']

    def clear(self):
        self.notifications.clear()
