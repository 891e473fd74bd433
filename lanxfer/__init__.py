"""
lanxfer - Zero-Configuration LAN File Transfer

A Receiver broadcasts an expression of interest, a Sender acknowledges it,
and the file moves over a single framed TCP connection.
"""

from .config import Config, load_config
from .errors import ErrorKind, TransferError
from .node import TransferNode

__version__ = '0.1.0'

__all__ = [
    'Config',
    'load_config',
    'ErrorKind',
    'TransferError',
    'TransferNode',
]
