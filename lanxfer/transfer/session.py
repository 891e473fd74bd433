"""Per-transfer bookkeeping shared by the Sender and the Receiver."""

from dataclasses import dataclass


@dataclass
class TransferSession:
    """
    State of one transfer.
    
    `declared_size` is fixed once the header is built or read;
    `bytes_transferred` only grows.
    """
    name: str
    declared_size: int
    bytes_transferred: int = 0
    
    @property
    def remaining(self) -> int:
        return self.declared_size - self.bytes_transferred
    
    @property
    def complete(self) -> bool:
        return self.bytes_transferred == self.declared_size
    
    def advance(self, count: int):
        self.bytes_transferred += count
    
    def to_dict(self) -> dict:
        return {
            'name': self.name,
            'declared_size': self.declared_size,
            'bytes_transferred': self.bytes_transferred,
            'complete': self.complete,
        }
