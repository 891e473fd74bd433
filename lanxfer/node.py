"""
Transfer Node - Main Controller

Runs one side of a transfer end to end:
- send(path): rendezvous as responder, listen, acknowledge, stream the file
- receive(): rendezvous as initiator, connect, read the file

Errors surface as TransferError; deciding what they mean for the process
is left to the caller.
"""

import asyncio
import logging
from pathlib import Path
from typing import Optional

import aiofiles

from .config import Config
from .discovery import RendezvousInitiator, RendezvousResponder
from .errors import ErrorKind, TransferError
from .notifier import LogNotifier, Notifier
from .transfer import TransferListener, TransferReceiver, TransferSender, TransferSession
from .wire import PeerAddress, TransferHeader

logger = logging.getLogger(__name__)


class TransferNode:
    """
    One peer of a single-file transfer.
    
    A node is used for exactly one send() or receive().
    """
    
    def __init__(self, config: Config = None, notifier: Notifier = None):
        """
        Initialize a node.
        
        Args:
            config: Node configuration (uses defaults if not provided)
            notifier: Sink for messages and progress (logs if not provided)
        """
        self.config = config or Config()
        self.notifier = notifier or LogNotifier()
        self._initiator: Optional[RendezvousInitiator] = None
    
    def cancel(self):
        """Abort discovery on a receiving node."""
        if self._initiator:
            self._initiator.cancel()
    
    async def send(self, path: Path) -> TransferSession:
        """
        Offer a file and serve it to the first Receiver that asks.
        
        Raises:
            TransferError: on any failure; the Sender never settles for
                a partial transfer
        """
        path = Path(path)
        config = self.config
        
        # Refuse names the header cannot carry before any peer is answered
        TransferHeader(path.name, 0).to_bytes()
        
        try:
            source = await aiofiles.open(path, 'rb')
        except OSError as e:
            raise TransferError(ErrorKind.IO, f"Cannot open {path}: {e}") from e
        
        try:
            async with RendezvousResponder(config.host, config.discovery_port) as responder:
                self.notifier.message("Waiting for expression of interest...")
                peer = await responder.wait_for_interest()
                self.notifier.message(f"Received expression of interest from {peer}, sending ack...")
                
                listener = TransferListener(config.host, config.transfer_port)
                await listener.start()
                try:
                    await responder.acknowledge(peer)
                    _, writer = await listener.accept()
                    
                    sender = TransferSender(
                        writer,
                        source,
                        path.name,
                        chunk_size=config.chunk_size,
                        notifier=self.notifier,
                        progress_interval=config.progress_interval,
                    )
                    return await sender.run()
                finally:
                    await listener.stop()
        finally:
            await source.close()
    
    async def receive(self) -> TransferSession:
        """
        Find a Sender on the LAN and download its file.
        
        Returns:
            The session, possibly incomplete if the stream ended early
        """
        config = self.config
        self._initiator = RendezvousInitiator(
            host=config.host,
            source_port=config.broadcast_port,
            broadcast_address=config.broadcast_address,
            discovery_port=config.discovery_port,
            transfer_port=config.transfer_port,
            timeout=config.discovery_timeout,
        )
        
        self.notifier.message("Broadcasting expression of interest...")
        sender = await self._initiator.discover()
        self.notifier.message(f"Expression of interest acknowledged by {sender.host}, connecting...")
        
        reader, writer = await self._connect(sender)
        try:
            receiver = TransferReceiver(
                reader,
                output_dir=config.output_dir,
                chunk_size=config.chunk_size,
                notifier=self.notifier,
                progress_interval=config.progress_interval,
            )
            return await receiver.run()
        finally:
            writer.close()
            try:
                await writer.wait_closed()
            except (ConnectionError, OSError):
                pass
    
    async def _connect(self, sender: PeerAddress):
        try:
            return await asyncio.open_connection(sender.host, sender.port)
        except OSError as e:
            raise TransferError(ErrorKind.IO, f"Cannot connect to {sender}: {e}") from e
