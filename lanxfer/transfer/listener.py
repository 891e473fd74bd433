"""
Transfer Listener

TCP server on the transfer port that hands out exactly one connection.
It must be listening before the discovery ACK goes out.
"""

import asyncio
import logging
from typing import Optional, Tuple

from ..errors import ErrorKind, TransferError
from ..wire import TRANSFER_PORT, PeerAddress

logger = logging.getLogger(__name__)

Connection = Tuple[asyncio.StreamReader, asyncio.StreamWriter]


class TransferListener:
    """
    Accepts a single Receiver connection.
    
    Further connection attempts are closed immediately; one Sender serves
    one Receiver per run.
    """
    
    def __init__(self, host: str = '0.0.0.0', port: int = TRANSFER_PORT):
        self.host = host
        self.port = port
        self.server: Optional[asyncio.AbstractServer] = None
        self._connection: Optional[asyncio.Future] = None
        self._writer: Optional[asyncio.StreamWriter] = None
    
    @property
    def address(self) -> PeerAddress:
        """The bound transfer address (resolves port 0)."""
        host, port = self.server.sockets[0].getsockname()[:2]
        return PeerAddress(host, port)
    
    async def start(self):
        """Bind and start listening."""
        self._connection = asyncio.get_running_loop().create_future()
        try:
            self.server = await asyncio.start_server(
                self._handle_connection,
                self.host,
                self.port
            )
        except OSError as e:
            raise TransferError(
                ErrorKind.BIND,
                f"Cannot bind transfer socket {self.host}:{self.port}: {e}"
            ) from e
        
        logger.info(f"Transfer listener on {self.address}")
    
    async def accept(self) -> Connection:
        """Wait for the Receiver to connect."""
        if self._connection is None:
            raise RuntimeError("Listener not started")
        return await self._connection
    
    async def stop(self):
        """Stop listening and close the accepted connection, if any."""
        if self._writer:
            self._writer.close()
            try:
                await self._writer.wait_closed()
            except (ConnectionError, OSError):
                pass
            self._writer = None
        
        if self.server:
            self.server.close()
            await self.server.wait_closed()
            self.server = None
        
        if self._connection and not self._connection.done():
            self._connection.cancel()
    
    async def _handle_connection(self, reader: asyncio.StreamReader,
                                 writer: asyncio.StreamWriter):
        peer = writer.get_extra_info('peername')
        
        if self._connection.done():
            logger.warning(f"Rejecting extra connection from {peer}")
            writer.close()
            return
        
        logger.info(f"Receiver connected from {peer}")
        self._writer = writer
        self._connection.set_result((reader, writer))
        self.server.close()
