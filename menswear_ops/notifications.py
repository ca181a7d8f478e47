"""
Terminal notifications for CLI commands.

Short-lived success/failure messages printed after an action, the command
line stand-in for toast popups.
"""

import logging
import sys
from dataclasses import dataclass
from typing import List, Optional, TextIO

logger = logging.getLogger(__name__)

COLORS = {
    "green": "\033[32m",
    "red": "\033[31m",
    "blue": "\033[34m",
    "orange": "\033[33m",
}
RESET = "\033[0m"


@dataclass
class Notification:
    title: str
    message: str
    color: str
    auto_close_ms: int


# Last notifications shown, newest last
history: List[Notification] = []
MAX_HISTORY = 50


def show(title: str, message: str, color: str, auto_close_ms: int,
         stream: Optional[TextIO] = None) -> Notification:
    notification = Notification(title, message, color, auto_close_ms)
    history.append(notification)
    del history[:-MAX_HISTORY]

    stream = stream or (sys.stderr if color == "red" else sys.stdout)
    prefix = COLORS.get(color, "") if stream.isatty() else ""
    suffix = RESET if prefix else ""
    stream.write(f"{prefix}{title}: {message}{suffix}\n")

    if color == "red":
        logger.error(f"❌ {title}: {message}")
    else:
        logger.debug(f"{title}: {message}")
    return notification


def show_success(title: str, message: str, stream: Optional[TextIO] = None) -> Notification:
    return show(title, message, "green", 4000, stream)


def show_error(title: str, message: str, stream: Optional[TextIO] = None) -> Notification:
    return show(title, message, "red", 6000, stream)


def show_info(title: str, message: str, stream: Optional[TextIO] = None) -> Notification:
    return show(title, message, "blue", 4000, stream)


def show_warning(title: str, message: str, stream: Optional[TextIO] = None) -> Notification:
    return show(title, message, "orange", 5000, stream)


def show_create_success(entity: str, name: str) -> Notification:
    return show_success(f"{entity} Created", f"{name} has been created successfully")


def show_update_success(entity: str, name: str) -> Notification:
    return show_success(f"{entity} Updated", f"{name} has been updated successfully")


def show_delete_success(entity: str, name: str) -> Notification:
    return show_success(f"{entity} Deleted", f"{name} has been deleted successfully")


def show_create_error(entity: str, error: str) -> Notification:
    return show_error(f"Failed to Create {entity}", error)


def show_update_error(entity: str, error: str) -> Notification:
    return show_error(f"Failed to Update {entity}", error)


def show_delete_error(entity: str, error: str) -> Notification:
    return show_error(f"Failed to Delete {entity}", error)
