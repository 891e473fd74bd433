"""
Transfer Sender

Writes the header, then streams the file body in chunks of at most
chunk_size bytes. The size is captured once, before anything is sent, and
is authoritative for the whole session even if the file changes on disk.
"""

import asyncio
import logging
import os
from typing import Optional

from ..errors import ErrorKind, TransferError
from ..notifier import LogNotifier, Notifier
from ..progress import ProgressTracker
from ..wire import CHUNK_SIZE, PROGRESS_INTERVAL, TransferHeader
from .session import TransferSession

logger = logging.getLogger(__name__)


class TransferSender:
    """
    Sends one file over an accepted connection.
    
    Any read or write failure raises TransferError(IO); there is no retry
    of a chunk.
    """
    
    def __init__(self, writer: asyncio.StreamWriter, source, name: str,
                 chunk_size: int = CHUNK_SIZE,
                 notifier: Optional[Notifier] = None,
                 progress_interval: float = PROGRESS_INTERVAL):
        """
        Initialize the sender.
        
        Args:
            writer: Connected stream to the Receiver
            source: Seekable async byte source (an aiofiles handle)
            name: File name announced in the header
            chunk_size: Maximum bytes per read/write cycle
            notifier: Where progress events go
            progress_interval: Minimum seconds between progress events
        """
        self.writer = writer
        self.source = source
        self.name = name
        self.chunk_size = chunk_size
        self.notifier = notifier or LogNotifier()
        self.progress_interval = progress_interval
    
    async def _measure(self) -> int:
        try:
            size = await self.source.seek(0, os.SEEK_END)
            await self.source.seek(0)
        except OSError as e:
            raise TransferError(ErrorKind.IO, f"Cannot size {self.name}: {e}") from e
        return size
    
    async def _write(self, data: bytes):
        try:
            self.writer.write(data)
            await self.writer.drain()
        except (ConnectionError, OSError) as e:
            raise TransferError(ErrorKind.IO, f"Write to Receiver failed: {e}") from e
    
    async def run(self) -> TransferSession:
        """Send header and body."""
        size = await self._measure()
        session = TransferSession(name=self.name, declared_size=size)
        tracker = ProgressTracker('sending', self.name, size,
                                  interval=self.progress_interval)
        
        await self._write(TransferHeader(self.name, size).to_bytes())
        self.notifier.message(f"Sending: {self.name} ({size:,} bytes)")
        
        if size == 0:
            self._report(tracker, session)
        
        while session.remaining > 0:
            try:
                chunk = await self.source.read(min(self.chunk_size, session.remaining))
            except OSError as e:
                raise TransferError(ErrorKind.IO, f"Read from {self.name} failed: {e}") from e
            
            if not chunk:
                # Not end-of-stream: the declared size is still owed
                await asyncio.sleep(0)
                continue
            
            await self._write(chunk)
            session.advance(len(chunk))
            logger.debug(f"Remaining: {session.remaining:,} bytes")
            self._report(tracker, session)
        
        logger.info(f"Sent {session.bytes_transferred:,} bytes of {self.name}")
        return session
    
    def _report(self, tracker: ProgressTracker, session: TransferSession):
        event = tracker.update(session.bytes_transferred)
        if event:
            self.notifier.progress(event)
