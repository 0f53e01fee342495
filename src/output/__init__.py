"""Notification output modules"""

from src.output.console_notifier import ConsoleNotifier

__all__ = ["ConsoleNotifier"]
