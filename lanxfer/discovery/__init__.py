"""
Discovery Module - Rendezvous on the LAN

A Receiver broadcasts an expression of interest (EOI) until a Sender
answers with an ACK, which yields the Sender's address.
"""

from .initiator import RendezvousInitiator, DiscoveryState
from .responder import RendezvousResponder

__all__ = [
    'RendezvousInitiator',
    'RendezvousResponder',
    'DiscoveryState',
]
