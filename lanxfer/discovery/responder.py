"""
Rendezvous Responder (Sender side)

Listens on the discovery port until a Receiver broadcasts an expression of
interest, then answers it with a single ACK. The ACK is sent separately via
acknowledge() so the caller can bind the transfer listener first; a
Receiver that gets the ACK may connect immediately.
"""

import asyncio
import errno
import logging
import socket
from typing import Optional

from ..errors import ErrorKind, TransferError
from ..wire import DISCOVERY_PORT, DiscoveryMessage, PeerAddress

logger = logging.getLogger(__name__)

# Large enough that an oversized datagram is seen as oversized, not truncated
RECV_BUFFER = 64

# Seconds to back off after a failed receive
RECV_ERROR_PAUSE = 0.1


class RendezvousResponder:
    """
    Waits for an EOI datagram and acknowledges it.
    
    Usage:
        async with RendezvousResponder() as responder:
            peer = await responder.wait_for_interest()
            ...  # bind the transfer listener
            await responder.acknowledge(peer)
    """
    
    def __init__(self, host: str = '0.0.0.0', port: int = DISCOVERY_PORT):
        self.host = host
        self.port = port
        self._socket: Optional[socket.socket] = None
    
    @property
    def address(self) -> PeerAddress:
        """The bound discovery address (resolves port 0)."""
        host, port = self._socket.getsockname()[:2]
        return PeerAddress(host, port)
    
    def open(self):
        """Bind the discovery socket."""
        if self._socket:
            return
        
        sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
        try:
            sock.bind((self.host, self.port))
            sock.setblocking(False)
        except OSError as e:
            sock.close()
            raise TransferError(
                ErrorKind.BIND,
                f"Cannot bind discovery socket {self.host}:{self.port}: {e}"
            ) from e
        
        self._socket = sock
        logger.debug(f"Discovery socket bound on {self.address}")
    
    def close(self):
        if self._socket:
            self._socket.close()
            self._socket = None
    
    async def __aenter__(self) -> 'RendezvousResponder':
        self.open()
        return self
    
    async def __aexit__(self, exc_type, exc, tb):
        self.close()
    
    async def wait_for_interest(self) -> PeerAddress:
        """
        Block until a valid EOI arrives.
        
        Returns:
            Address of the interested Receiver
        """
        self.open()
        loop = asyncio.get_running_loop()
        
        logger.debug("Waiting for expression of interest...")
        while True:
            try:
                data, addr = await loop.sock_recvfrom(self._socket, RECV_BUFFER)
            except OSError as e:
                if e.errno == errno.EBADF:
                    raise TransferError(ErrorKind.IO, f"Discovery socket closed: {e}") from e
                # e.g. ICMP port-unreachable surfacing on some platforms
                logger.warning(f"Error receiving on discovery port: {e}")
                await asyncio.sleep(RECV_ERROR_PAUSE)
                continue
            
            if DiscoveryMessage.EOI.matches(data):
                peer = PeerAddress(addr[0], addr[1])
                logger.debug(f"Received expression of interest from {peer}")
                return peer
            
            logger.debug(f"Ignoring {len(data)}-byte datagram from {addr[0]}:{addr[1]}")
    
    async def acknowledge(self, peer: PeerAddress):
        """Send exactly one ACK to the Receiver."""
        if not self._socket:
            raise TransferError(ErrorKind.SEND, "Discovery socket is not open")
        
        loop = asyncio.get_running_loop()
        try:
            await loop.sock_sendto(
                self._socket, DiscoveryMessage.ACK.to_bytes(), peer.as_tuple()
            )
        except OSError as e:
            raise TransferError(ErrorKind.SEND, f"Cannot send ACK to {peer}: {e}") from e
        
        logger.info(f"Sent ACK to {peer}")
