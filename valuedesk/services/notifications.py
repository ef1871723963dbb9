"""
User-visible notifications raised by the request gateway.

The unauthorized notice is shown at most once until ``reset()`` is called
(normally after a successful login).
"""

from typing import List, Optional, Protocol

from rich.console import Console

from valuedesk.core.logging_config import logger


SESSION_EXPIRED_MESSAGE = "Session expired – please login again."
UNAUTHORIZED_MESSAGE = "Unauthorized – Please login to continue."


class NotificationSink(Protocol):
    def show(self, message: str, level: str = "error") -> None:
        ...


class RichNotificationSink:
    """Print notifications to the terminal"""

    STYLES = {"error": "bold red", "warning": "yellow", "info": "cyan"}

    def __init__(self, console: Optional[Console] = None):
        self.console = console or Console(stderr=True)

    def show(self, message: str, level: str = "error") -> None:
        self.console.print(f"[{self.STYLES.get(level, 'white')}]{message}[/]")


class RecordingSink:
    """Keeps notifications in a list"""

    def __init__(self):
        self.messages: List[str] = []

    def show(self, message: str, level: str = "error") -> None:
        self.messages.append(message)


class NotificationCenter:
    def __init__(self, sink: Optional[NotificationSink] = None):
        self.sink = sink if sink is not None else RichNotificationSink()
        self.unauthorized_shown = False

    def notify_unauthorized(self, message: str = UNAUTHORIZED_MESSAGE) -> bool:
        """Show ``message`` unless an unauthorized notice is already up; True if shown"""
        if self.unauthorized_shown:
            logger.debug("[Notifications] Suppressed repeat unauthorized notice")
            return False
        self.unauthorized_shown = True
        self.sink.show(message, level="error")
        return True

    def info(self, message: str) -> None:
        self.sink.show(message, level="info")

    def reset(self) -> None:
        self.unauthorized_shown = False
