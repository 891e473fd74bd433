"""
Transfer Receiver

Reads the header, creates the destination file and copies the body until
the declared size has been consumed.

Design Decision: Early End-of-Stream
====================================

Options Considered:
1. Stop at the first zero-byte read and call it done
   - A short stream looks like a finished one
   
2. Read exactly the declared size
   - A short stream is detected and reported

Decision: Read exactly the declared size
- A stream that closes early, or a read error, ends the loop with a
  logged error; the partial file is kept and the session is returned
  with complete == False
- Bytes beyond the declared size are never read
"""

import asyncio
import logging
import os
from pathlib import Path
from typing import Callable, Optional

import aiofiles

from ..errors import ErrorKind, TransferError
from ..notifier import LogNotifier, Notifier
from ..progress import ProgressTracker
from ..wire import CHUNK_SIZE, PROGRESS_INTERVAL, TransferHeader
from .session import TransferSession

logger = logging.getLogger(__name__)

# name -> async context manager yielding a writable file
DestinationFactory = Callable[[str], object]


def local_name(name: str) -> str:
    """
    Reduce a received name to a bare file name.
    
    Directory components are dropped so a peer cannot write outside the
    output directory.
    """
    base = os.path.basename(name.replace('\\', '/'))
    if not base or base in ('.', '..') or '\x00' in base:
        raise TransferError(ErrorKind.DECODE, f"Unusable file name: {name!r}")
    return base


class TransferReceiver:
    """Receives one file from a connected Sender."""
    
    def __init__(self, reader: asyncio.StreamReader,
                 output_dir: Path = Path('.'),
                 open_destination: Optional[DestinationFactory] = None,
                 chunk_size: int = CHUNK_SIZE,
                 notifier: Optional[Notifier] = None,
                 progress_interval: float = PROGRESS_INTERVAL):
        self.reader = reader
        self.output_dir = Path(output_dir)
        self.open_destination = open_destination or self._create_file
        self.chunk_size = chunk_size
        self.notifier = notifier or LogNotifier()
        self.progress_interval = progress_interval
    
    def _create_file(self, name: str):
        return aiofiles.open(self.output_dir / name, 'wb')
    
    async def run(self) -> TransferSession:
        """
        Receive header and body.
        
        Returns:
            The session; check `complete` to see whether the declared
            size arrived
        
        Raises:
            TransferError: DECODE for a bad header, IO if the destination
                cannot be created or written
        """
        header = await TransferHeader.from_reader(self.reader)
        name = local_name(header.name)
        session = TransferSession(name=name, declared_size=header.file_size)
        tracker = ProgressTracker('receiving', name, header.file_size,
                                  interval=self.progress_interval)
        
        self.notifier.message(f"Downloading file: {name} ({header.file_size:,} bytes)")
        
        try:
            destination = self.open_destination(name)
            async with destination as out:
                if header.file_size == 0:
                    self._report(tracker, session)
                await self._copy(out, session, tracker)
        except OSError as e:
            raise TransferError(ErrorKind.IO, f"Cannot write {name}: {e}") from e
        
        if session.complete:
            self.notifier.message(f"Done (len = {session.bytes_transferred:,})")
        else:
            self.notifier.message(
                f"Incomplete: {session.bytes_transferred:,} of "
                f"{session.declared_size:,} bytes"
            )
        return session
    
    async def _copy(self, out, session: TransferSession, tracker: ProgressTracker):
        while session.remaining > 0:
            try:
                chunk = await self.reader.read(min(self.chunk_size, session.remaining))
            except (ConnectionError, OSError) as e:
                logger.error(f"Error before end of file: {e}")
                return
            
            if not chunk:
                logger.error(
                    f"Stream closed after {session.bytes_transferred:,} of "
                    f"{session.declared_size:,} bytes"
                )
                return
            
            await out.write(chunk)
            session.advance(len(chunk))
            self._report(tracker, session)
    
    def _report(self, tracker: ProgressTracker, session: TransferSession):
        event = tracker.update(session.bytes_transferred)
        if event:
            self.notifier.progress(event)
