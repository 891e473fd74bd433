"""
Wire Format

Design Decision: Size Field Width
=================================

Options Considered:
1. 8-byte unsigned size
   - Enough for any real file
   - Breaks compatibility with existing peers
   
2. 16-byte big-endian signed size
   - What deployed peers already send
   - Half the field is never used

Decision: Keep the 16-byte signed field
- Wire compatibility wins over 8 wasted bytes per transfer
- Negative values are rejected on decode

Discovery (UDP, 3 raw bytes):
```
Receiver -> broadcast:6967   "EOI"
Sender   -> Receiver         "ACK"
```

Transfer (TCP, no padding):
```
+-----------------+-------------+-----------------+----------------+
| name length (1B)| name (UTF-8)| file size (16B) | body (size B)  |
+-----------------+-------------+-----------------+----------------+
```
"""

import asyncio
from dataclasses import dataclass
from enum import Enum

from .errors import ErrorKind, TransferError

# Well-known ports
DISCOVERY_PORT = 6967    # Sender listens for EOI
BROADCAST_PORT = 6966    # Receiver broadcasts from here
TRANSFER_PORT = 6968     # Sender accepts the TCP transfer

BROADCAST_ADDRESS = '255.255.255.255'

# Body is moved in chunks of at most 10MB
CHUNK_SIZE = 10_000_000

# Seconds
DISCOVERY_TIMEOUT = 2.0
PROGRESS_INTERVAL = 0.2

MAX_NAME_LENGTH = 255
SIZE_FIELD_LENGTH = 16
TAG_LENGTH = 3


class DiscoveryMessage(Enum):
    """The two discovery datagrams."""
    EOI = b'EOI'  # expression of interest
    ACK = b'ACK'

    def to_bytes(self) -> bytes:
        return self.value

    def matches(self, datagram: bytes) -> bool:
        """True only for an exact, full-length match of this tag."""
        return len(datagram) == TAG_LENGTH and datagram == self.value


@dataclass(frozen=True)
class PeerAddress:
    """An IPv4 address learned during rendezvous."""
    host: str
    port: int

    def with_port(self, port: int) -> 'PeerAddress':
        return PeerAddress(self.host, port)

    def as_tuple(self):
        return (self.host, self.port)

    def __str__(self) -> str:
        return f"{self.host}:{self.port}"


def encode_size(size: int) -> bytes:
    """Encode a file size as 16 big-endian two's-complement bytes."""
    try:
        return size.to_bytes(SIZE_FIELD_LENGTH, 'big', signed=True)
    except OverflowError as e:
        raise TransferError(ErrorKind.ENCODE, f"File size out of range: {size}") from e


def decode_size(raw: bytes) -> int:
    """Decode the 16-byte size field."""
    if len(raw) != SIZE_FIELD_LENGTH:
        raise TransferError(
            ErrorKind.DECODE,
            f"Size field must be {SIZE_FIELD_LENGTH} bytes, got {len(raw)}"
        )
    return int.from_bytes(raw, 'big', signed=True)


@dataclass(frozen=True)
class TransferHeader:
    """File name and declared size, sent once before the body."""
    name: str
    file_size: int

    def to_bytes(self) -> bytes:
        """Serialize header to bytes."""
        name_bytes = self.name.encode('utf-8')
        if len(name_bytes) > MAX_NAME_LENGTH:
            raise TransferError(
                ErrorKind.ENCODE,
                f"File name is {len(name_bytes)} bytes, limit is {MAX_NAME_LENGTH}"
            )
        if self.file_size < 0:
            raise TransferError(ErrorKind.ENCODE, f"Negative file size: {self.file_size}")

        return bytes([len(name_bytes)]) + name_bytes + encode_size(self.file_size)

    @classmethod
    async def from_reader(cls, reader: asyncio.StreamReader) -> 'TransferHeader':
        """Read a header from a stream."""
        try:
            name_length = (await reader.readexactly(1))[0]
            name_bytes = await reader.readexactly(name_length)
            size_bytes = await reader.readexactly(SIZE_FIELD_LENGTH)
        except asyncio.IncompleteReadError as e:
            raise TransferError(
                ErrorKind.DECODE,
                f"Stream closed inside header after {len(e.partial)} bytes"
            ) from e

        try:
            name = name_bytes.decode('utf-8')
        except UnicodeDecodeError as e:
            raise TransferError(ErrorKind.DECODE, "File name is not valid UTF-8") from e

        file_size = decode_size(size_bytes)
        if file_size < 0:
            raise TransferError(ErrorKind.DECODE, f"Negative file size: {file_size}")

        return cls(name=name, file_size=file_size)
