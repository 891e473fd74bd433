"""
Transfer Errors

Protocol code never exits the process. Every failure is raised as a
TransferError carrying an ErrorKind, and the CLI decides what exit status
each kind maps to.

Taxonomy:
- BIND: a discovery or transfer socket could not be bound
- SEND: the discovery acknowledgement could not be sent
- ENCODE: the header cannot represent the offered file
- DECODE: the received header is malformed
- IO: read/write failure during the transfer (fatal on the Sender)
- INCOMPLETE: the Receiver got fewer bytes than declared
- CANCELLED: discovery was aborted by the host application
"""

from enum import Enum


class ErrorKind(Enum):
    """Categories of protocol failure."""
    BIND = 'bind'
    SEND = 'send'
    ENCODE = 'encode'
    DECODE = 'decode'
    IO = 'io'
    INCOMPLETE = 'incomplete'
    CANCELLED = 'cancelled'


class TransferError(Exception):
    """A protocol failure of a known kind."""

    def __init__(self, kind: ErrorKind, message: str):
        super().__init__(message)
        self.kind = kind
        self.message = message

    def __str__(self) -> str:
        return f"{self.kind.value}: {self.message}"
