"""
Progress Tracking

Shared by both transfer roles. Chunks can arrive far faster than a console
can usefully redraw, so events are throttled to one per interval, except
the completing event which is never skipped.
"""

import time
from dataclasses import dataclass
from typing import Callable, Optional

from .wire import PROGRESS_INTERVAL


@dataclass(frozen=True)
class ProgressEvent:
    """A single progress notification."""
    phase: str  # 'sending' or 'receiving'
    filename: str
    percentage: float
    bytes: int

    @property
    def done(self) -> bool:
        return self.percentage >= 100.0


class ProgressTracker:
    """
    Decides when a transfer should report progress.
    
    Emits on the first update, on completion, and otherwise only when at
    least `interval` seconds have passed since the last emitted event.
    """
    
    def __init__(self, phase: str, filename: str, total: int,
                 interval: float = PROGRESS_INTERVAL,
                 clock: Callable[[], float] = time.monotonic):
        self.phase = phase
        self.filename = filename
        self.total = total
        self.interval = interval
        self._clock = clock
        self._last_emit: Optional[float] = None
        self._completed = False
    
    def percentage(self, bytes_so_far: int) -> float:
        if self.total == 0:
            return 100.0
        return bytes_so_far / self.total * 100
    
    def update(self, bytes_so_far: int) -> Optional[ProgressEvent]:
        """
        Record progress.
        
        Returns:
            ProgressEvent to emit, or None if throttled
        """
        if self._completed:
            return None
        
        now = self._clock()
        done = bytes_so_far >= self.total
        due = self._last_emit is None or now - self._last_emit >= self.interval
        
        if not (done or due):
            return None
        
        self._last_emit = now
        self._completed = done
        return ProgressEvent(
            phase=self.phase,
            filename=self.filename,
            percentage=self.percentage(bytes_so_far),
            bytes=bytes_so_far,
        )
