"""
Transfer Module - Framed File Transfer

One TCP connection carries a header (name, size) followed by the file body.
"""

from .listener import TransferListener
from .receiver import TransferReceiver
from .sender import TransferSender
from .session import TransferSession

__all__ = [
    'TransferListener',
    'TransferReceiver',
    'TransferSender',
    'TransferSession',
]
