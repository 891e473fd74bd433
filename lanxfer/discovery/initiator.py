"""
Rendezvous Initiator (Receiver side)

Design Decision: Retry Policy
=============================

Options Considered:
1. Bounded retries with backoff
   - Gives up eventually
   - Unattended Receivers would need restarting by hand
   
2. Retry forever at a fixed interval
   - Receiver can be started before the Sender
   - Never exits on its own

Decision: Retry forever, no backoff
- One EOI per attempt, then wait up to 2s for an ACK
- Host applications abort through cancel() or task cancellation

State machine:
```
IDLE -> BROADCASTING -> AWAITING_ACK -> MATCHED
             ^               |
             +---------------+  (timeout, read error, foreign datagram)
```
"""

import asyncio
import logging
import socket
from enum import Enum
from typing import Optional, Tuple

from ..errors import ErrorKind, TransferError
from ..wire import (
    BROADCAST_ADDRESS, BROADCAST_PORT, DISCOVERY_PORT, DISCOVERY_TIMEOUT,
    TRANSFER_PORT, DiscoveryMessage, PeerAddress,
)
from .responder import RECV_BUFFER

logger = logging.getLogger(__name__)


class DiscoveryState(Enum):
    IDLE = 'idle'
    BROADCASTING = 'broadcasting'
    AWAITING_ACK = 'awaiting_ack'
    MATCHED = 'matched'
    CANCELLED = 'cancelled'


class RendezvousInitiator:
    """
    Broadcasts EOI until a Sender acknowledges.
    
    The Sender's transfer address is derived from the acknowledging
    address by substituting the fixed transfer port.
    """
    
    def __init__(self, host: str = '0.0.0.0',
                 source_port: int = BROADCAST_PORT,
                 broadcast_address: str = BROADCAST_ADDRESS,
                 discovery_port: int = DISCOVERY_PORT,
                 transfer_port: int = TRANSFER_PORT,
                 timeout: float = DISCOVERY_TIMEOUT):
        """
        Initialize the initiator.
        
        Args:
            host: Local address to bind the broadcast socket on
            source_port: Local port EOIs are sent from
            broadcast_address: Where EOIs are sent
            discovery_port: Port the Sender listens on
            transfer_port: Port substituted into the returned address
            timeout: Seconds to wait for an ACK per attempt
        """
        self.host = host
        self.source_port = source_port
        self.broadcast_address = broadcast_address
        self.discovery_port = discovery_port
        self.transfer_port = transfer_port
        self.timeout = timeout
        
        self.state = DiscoveryState.IDLE
        self.attempts = 0
        self._cancel = asyncio.Event()
    
    def cancel(self):
        """Abort a running discover() call."""
        self._cancel.set()
    
    async def discover(self) -> PeerAddress:
        """
        Run the handshake until a Sender answers.
        
        Returns:
            Sender's transfer address
        
        Raises:
            TransferError: BIND if the broadcast socket cannot be bound,
                CANCELLED if cancel() was called
        """
        self.state = DiscoveryState.IDLE
        logger.debug("Broadcasting expression of interest...")
        
        while True:
            if self._cancel.is_set():
                self.state = DiscoveryState.CANCELLED
                raise TransferError(ErrorKind.CANCELLED, "Discovery cancelled")
            
            reply = await self._attempt()
            if reply is None:
                continue
            
            data, addr = reply
            if DiscoveryMessage.ACK.matches(data):
                self.state = DiscoveryState.MATCHED
                sender = PeerAddress(addr[0], addr[1])
                logger.debug(
                    f"Expression of interest acknowledged by {sender}, "
                    f"attempting connection..."
                )
                return sender.with_port(self.transfer_port)
            
            logger.debug(f"Ignoring {len(data)}-byte datagram from {addr[0]}:{addr[1]}")
    
    async def _attempt(self) -> Optional[Tuple[bytes, Tuple[str, int]]]:
        """One broadcast-and-wait cycle on a fresh socket."""
        self.state = DiscoveryState.BROADCASTING
        self.attempts += 1
        loop = asyncio.get_running_loop()
        
        sock = self._open_socket()
        try:
            try:
                await loop.sock_sendto(
                    sock,
                    DiscoveryMessage.EOI.to_bytes(),
                    (self.broadcast_address, self.discovery_port),
                )
            except OSError as e:
                # Still wait out the timeout so a dead interface is not a hot loop
                logger.warning(f"Broadcast to {self.broadcast_address} failed: {e}")
            
            self.state = DiscoveryState.AWAITING_ACK
            return await self._await_reply(sock)
        finally:
            sock.close()
    
    async def _await_reply(self, sock: socket.socket):
        loop = asyncio.get_running_loop()
        recv = asyncio.ensure_future(loop.sock_recvfrom(sock, RECV_BUFFER))
        cancelled = asyncio.ensure_future(self._cancel.wait())
        
        try:
            done, _ = await asyncio.wait(
                {recv, cancelled},
                timeout=self.timeout,
                return_when=asyncio.FIRST_COMPLETED,
            )
        finally:
            for task in (recv, cancelled):
                task.cancel()
            await asyncio.gather(recv, cancelled, return_exceptions=True)
        
        if recv not in done:
            if not cancelled.done():
                logger.debug(f"No ACK within {self.timeout}s (attempt {self.attempts})")
            return None
        
        try:
            return recv.result()
        except OSError as e:
            logger.debug(f"Read error while awaiting ACK: {e}")
            return None
    
    def _open_socket(self) -> socket.socket:
        sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
        try:
            sock.setsockopt(socket.SOL_SOCKET, socket.SO_BROADCAST, 1)
            sock.bind((self.host, self.source_port))
            sock.setblocking(False)
        except OSError as e:
            sock.close()
            raise TransferError(
                ErrorKind.BIND,
                f"Cannot bind broadcast socket {self.host}:{self.source_port}: {e}"
            ) from e
        return sock
