"""Shared pytest fixtures for all tests."""

import socket

import pytest

from lanxfer.config import Config
from lanxfer.notifier import Notifier


class RecordingNotifier(Notifier):
    """Keeps every message and progress event for assertions."""

    def __init__(self):
        self.messages = []
        self.events = []

    def message(self, text):
        self.messages.append(text)

    def progress(self, event):
        self.events.append(event)


class FakeClock:
    """Monotonic clock advanced by hand."""

    def __init__(self, start=100.0):
        self.now = start

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


def free_port(kind=socket.SOCK_STREAM):
    """Ask the OS for a currently unused loopback port."""
    with socket.socket(socket.AF_INET, kind) as s:
        s.bind(('127.0.0.1', 0))
        return s.getsockname()[1]


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def loopback_config(tmp_path):
    """
    Config that keeps discovery and transfer on 127.0.0.1.

    Args:
        tmp_path: pytest tmp_path fixture

    Returns:
        Config with free ports, small chunks and a short discovery timeout
    """
    output_dir = tmp_path / 'received'
    output_dir.mkdir()
    return Config(
        host='127.0.0.1',
        discovery_port=free_port(socket.SOCK_DGRAM),
        broadcast_port=free_port(socket.SOCK_DGRAM),
        transfer_port=free_port(),
        broadcast_address='127.0.0.1',
        chunk_size=1024,
        output_dir=output_dir,
        discovery_timeout=0.2,
    )


@pytest.fixture
def make_file(tmp_path):
    """Factory writing a file of deterministic bytes under tmp_path/source."""
    source_dir = tmp_path / 'source'
    source_dir.mkdir()

    def _make(name, size):
        path = source_dir / name
        path.write_bytes(bytes(i % 251 for i in range(size)))
        return path

    return _make
