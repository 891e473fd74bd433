"""Tests for the UDP rendezvous handshake on loopback."""

import asyncio
import errno
import socket

import pytest

from lanxfer.discovery import DiscoveryState, RendezvousInitiator, RendezvousResponder
from lanxfer.discovery.responder import RECV_ERROR_PAUSE
from lanxfer.errors import ErrorKind, TransferError
from lanxfer.wire import PeerAddress


def udp_socket(port=0):
    sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
    sock.bind(('127.0.0.1', port))
    sock.setblocking(False)
    return sock


class FakeSender:
    """
    Stands in for a Sender's discovery socket.

    Answers each received EOI with the next scripted reply; None means
    stay silent for that attempt.
    """

    def __init__(self, replies):
        self.sock = udp_socket()
        self.port = self.sock.getsockname()[1]
        self.replies = list(replies)
        self.received = []

    async def serve(self):
        loop = asyncio.get_running_loop()
        while self.replies:
            data, addr = await loop.sock_recvfrom(self.sock, 64)
            self.received.append(data)
            reply = self.replies.pop(0)
            if reply is not None:
                await loop.sock_sendto(self.sock, reply, addr)

    def close(self):
        self.sock.close()


def make_initiator(sender_port, transfer_port=7000, timeout=0.2):
    return RendezvousInitiator(
        host='127.0.0.1',
        source_port=0,
        broadcast_address='127.0.0.1',
        discovery_port=sender_port,
        transfer_port=transfer_port,
        timeout=timeout,
    )


class TestRendezvousResponder:

    @pytest.mark.asyncio
    async def test_ignores_noise_then_acks_eoi(self):
        loop = asyncio.get_running_loop()
        client = udp_socket()
        client_addr = client.getsockname()

        async with RendezvousResponder('127.0.0.1', 0) as responder:
            target = responder.address.as_tuple()
            for datagram in (b'XYZ', b'EOIX', b'EO', b'ACK', b'EOI'):
                await loop.sock_sendto(client, datagram, target)

            peer = await asyncio.wait_for(responder.wait_for_interest(), timeout=2)
            assert peer == PeerAddress(*client_addr)

            await responder.acknowledge(peer)
            data, _ = await asyncio.wait_for(loop.sock_recvfrom(client, 64), timeout=2)
            assert data == b'ACK'

        client.close()

    @pytest.mark.asyncio
    async def test_bind_failure(self):
        blocker = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
        blocker.bind(('127.0.0.1', 0))
        port = blocker.getsockname()[1]
        try:
            with pytest.raises(TransferError) as exc:
                RendezvousResponder('127.0.0.1', port).open()
            assert exc.value.kind is ErrorKind.BIND
        finally:
            blocker.close()

    def test_second_responder_on_same_port(self):
        first = RendezvousResponder('127.0.0.1', 0)
        first.open()
        try:
            second = RendezvousResponder('127.0.0.1', first.address.port)
            with pytest.raises(TransferError) as exc:
                second.open()
            assert exc.value.kind is ErrorKind.BIND
        finally:
            first.close()

    @pytest.mark.asyncio
    async def test_receive_error_pauses_then_recovers(self, monkeypatch):
        loop = asyncio.get_running_loop()
        outcomes = [ConnectionResetError(errno.ECONNRESET, 'reset'), (b'EOI', ('127.0.0.1', 4242))]
        pauses = []
        real_sleep = asyncio.sleep

        async def fake_recvfrom(sock, size):
            outcome = outcomes.pop(0)
            if isinstance(outcome, Exception):
                raise outcome
            return outcome

        async def recording_sleep(seconds):
            pauses.append(seconds)
            await real_sleep(0)

        monkeypatch.setattr(loop, 'sock_recvfrom', fake_recvfrom)
        monkeypatch.setattr(asyncio, 'sleep', recording_sleep)

        async with RendezvousResponder('127.0.0.1', 0) as responder:
            peer = await responder.wait_for_interest()

        assert peer == PeerAddress('127.0.0.1', 4242)
        assert pauses == [RECV_ERROR_PAUSE]

    @pytest.mark.asyncio
    async def test_closed_socket_is_fatal(self, monkeypatch):
        loop = asyncio.get_running_loop()

        async def closed_recvfrom(sock, size):
            raise OSError(errno.EBADF, 'Bad file descriptor')

        monkeypatch.setattr(loop, 'sock_recvfrom', closed_recvfrom)

        async with RendezvousResponder('127.0.0.1', 0) as responder:
            with pytest.raises(TransferError) as exc:
                await responder.wait_for_interest()
        assert exc.value.kind is ErrorKind.IO

    @pytest.mark.asyncio
    async def test_acknowledge_requires_open_socket(self):
        responder = RendezvousResponder('127.0.0.1', 0)
        with pytest.raises(TransferError) as exc:
            await responder.acknowledge(PeerAddress('127.0.0.1', 9))
        assert exc.value.kind is ErrorKind.SEND


class TestRendezvousInitiator:

    @pytest.mark.asyncio
    async def test_ack_ends_loop_with_transfer_port(self):
        sender = FakeSender([b'ACK'])
        initiator = make_initiator(sender.port, transfer_port=7123)
        try:
            serve = asyncio.ensure_future(sender.serve())
            result = await asyncio.wait_for(initiator.discover(), timeout=5)
            await serve
        finally:
            sender.close()

        assert result == PeerAddress('127.0.0.1', 7123)
        assert initiator.state is DiscoveryState.MATCHED
        assert initiator.attempts == 1
        assert sender.received == [b'EOI']

    @pytest.mark.asyncio
    async def test_foreign_and_missing_replies_retry(self):
        sender = FakeSender([b'NAK', None, b'ACKACK', b'AC', b'ACK'])
        initiator = make_initiator(sender.port)
        try:
            serve = asyncio.ensure_future(sender.serve())
            result = await asyncio.wait_for(initiator.discover(), timeout=10)
            await serve
        finally:
            sender.close()

        assert result.port == 7000
        assert initiator.attempts == 5
        assert sender.received == [b'EOI'] * 5

    @pytest.mark.asyncio
    async def test_cancel_aborts_discovery(self):
        silent = udp_socket()
        initiator = make_initiator(silent.getsockname()[1], timeout=5)
        try:
            task = asyncio.ensure_future(initiator.discover())
            await asyncio.sleep(0.1)
            initiator.cancel()
            with pytest.raises(TransferError) as exc:
                await asyncio.wait_for(task, timeout=2)
        finally:
            silent.close()

        assert exc.value.kind is ErrorKind.CANCELLED
        assert initiator.state is DiscoveryState.CANCELLED

    @pytest.mark.asyncio
    async def test_task_cancellation(self):
        silent = udp_socket()
        initiator = make_initiator(silent.getsockname()[1], timeout=5)
        try:
            task = asyncio.ensure_future(initiator.discover())
            await asyncio.sleep(0.1)
            task.cancel()
            with pytest.raises(asyncio.CancelledError):
                await task
        finally:
            silent.close()

    @pytest.mark.asyncio
    async def test_bind_failure(self):
        blocker = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
        blocker.bind(('127.0.0.1', 0))
        initiator = RendezvousInitiator(host='127.0.0.1',
                                        source_port=blocker.getsockname()[1],
                                        broadcast_address='127.0.0.1')
        try:
            with pytest.raises(TransferError) as exc:
                await initiator.discover()
            assert exc.value.kind is ErrorKind.BIND
        finally:
            blocker.close()

    @pytest.mark.asyncio
    async def test_broadcast_port_shared_with_reuse_holder(self):
        holder = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
        holder.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        holder.bind(('127.0.0.1', 0))
        initiator = RendezvousInitiator(host='127.0.0.1',
                                        source_port=holder.getsockname()[1],
                                        broadcast_address='127.0.0.1')
        try:
            with pytest.raises(TransferError) as exc:
                await initiator.discover()
            assert exc.value.kind is ErrorKind.BIND
        finally:
            holder.close()
