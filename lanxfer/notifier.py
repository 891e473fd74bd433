"""
Notifiers

Line-oriented sinks for what a transfer wants the user to see: free-form
messages and throttled progress events.
"""

import logging
from typing import Optional

from rich.console import Console
from rich.markup import escape

from .progress import ProgressEvent

logger = logging.getLogger(__name__)


class Notifier:
    """Base notifier. Subclasses override message() and progress()."""
    
    def message(self, text: str):
        raise NotImplementedError
    
    def progress(self, event: ProgressEvent):
        raise NotImplementedError


class LogNotifier(Notifier):
    """Routes everything through the logging module."""
    
    def message(self, text: str):
        logger.info(text)
    
    def progress(self, event: ProgressEvent):
        logger.info(
            f"{event.phase} {event.filename}: {event.percentage:.1f}% "
            f"({event.bytes:,} bytes)"
        )


class ConsoleNotifier(Notifier):
    """Prints one rich-formatted line per message or progress event."""
    
    def __init__(self, console: Optional[Console] = None):
        self.console = console or Console()
    
    def message(self, text: str):
        self.console.print(escape(text))
    
    def progress(self, event: ProgressEvent):
        color = 'green' if event.done else 'yellow'
        self.console.print(
            f"[cyan]{event.phase}[/cyan] {escape(event.filename)} "
            f"[{color}]{event.percentage:5.1f}%[/{color}] "
            f"[dim]({event.bytes:,} bytes)[/dim]"
        )
