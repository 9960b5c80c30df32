"""User-visible notifications (toast-style messages)."""

import logging
from dataclasses import dataclass
from typing import List, Optional

from rich.console import Console
from rich.panel import Panel

logger = logging.getLogger(__name__)

LEVEL_STYLES = {
    "error": "red",
    "warning": "yellow",
    "info": "cyan",
    "success": "green",
}


@dataclass(frozen=True)
class Notification:
    title: str
    message: str
    level: str = "info"


SESSION_EXPIRED = Notification(
    title="Session Expired",
    message="Please log in again",
    level="error",
)


class ConsoleNotifier:
    """Shows notifications as rich panels. Never blocks, never raises."""

    def __init__(self, console: Optional[Console] = None):
        self.console = console or Console(stderr=True)

    def notify(self, notification: Notification) -> None:
        style = LEVEL_STYLES.get(notification.level, "white")
        try:
            self.console.print(Panel(
                f"[{style}]{notification.message}[/{style}]",
                title=f"[bold {style}]{notification.title}[/bold {style}]",
                border_style=style,
            ))
        except Exception as e:
            logger.warning("Could not display notification %r: %s", notification.title, e)


class NullNotifier:
    """Keeps notifications in memory instead of showing them."""

    def __init__(self):
        self.sent: List[Notification] = []

    def notify(self, notification: Notification) -> None:
        self.sent.append(notification)
