# devices/remote/udp_gateway.py
# One outbound UDP socket shared by the haptic and renderer links.

from __future__ import annotations

import logging
import queue
import socket
import threading
import time
from dataclasses import dataclass
from typing import Optional, Union

Payload = Union[bytes, bytearray, memoryview, str]

_LOG = logging.getLogger(__name__)


@dataclass(frozen=True)
class UdpEndpoint:
    host: str
    port: int

    def __str__(self) -> str:
        return f"{self.host}:{self.port}"


class UdpGateway:
    """
    Fire-and-forget datagrams for the reactive sinks.

    The tick thread calls send() at UI rate, so send() never blocks: packets
    go into a bounded outbox drained by a sender thread, and a full outbox
    drops the packet (the next snapshot supersedes it anyway). With
    async_send=False packets are sent inline.
    """

    def __init__(
        self,
        *,
        bind_host: str = "0.0.0.0",
        bind_port: int = 0,
        async_send: bool = True,
        queue_maxsize: int = 256,
    ) -> None:
        self._sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
        self._sock.bind((bind_host, bind_port))

        self._outbox: Optional[queue.Queue[tuple[UdpEndpoint, bytes]]] = None
        self._sender: Optional[threading.Thread] = None
        self._closed = threading.Event()
        self.dropped = 0

        if async_send:
            self._outbox = queue.Queue(maxsize=queue_maxsize)
            self._sender = threading.Thread(target=self._drain, name="UdpSender", daemon=True)
            self._sender.start()

    def send(self, endpoint: UdpEndpoint, payload: Payload) -> bool:
        """False when the gateway is closed, the outbox is full, or the inline send failed."""
        if self._closed.is_set():
            return False
        data = payload.encode("utf-8") if isinstance(payload, str) else _as_bytes(payload)

        if self._outbox is None:
            return self._sendto(endpoint, data)
        try:
            self._outbox.put_nowait((endpoint, data))
        except queue.Full:
            self.dropped += 1
            _LOG.debug("UDP outbox full, dropped packet for %s (%d so far)", endpoint, self.dropped)
            return False
        return True

    def flush(self, timeout: float = 2.0) -> bool:
        """Wait for queued packets to leave; True if the outbox drained in time."""
        if self._outbox is None:
            return True
        deadline = time.monotonic() + timeout
        while self._outbox.unfinished_tasks:
            if time.monotonic() >= deadline:
                return False
            time.sleep(0.01)
        return True

    def close(self) -> None:
        """Stop the sender and close the socket. Idempotent."""
        if self._closed.is_set():
            return
        self._closed.set()
        if self._sender is not None:
            self._sender.join(timeout=1.0)
        try:
            self._sock.close()
        except OSError:
            pass

    def _drain(self) -> None:
        assert self._outbox is not None
        while not self._closed.is_set():
            try:
                endpoint, data = self._outbox.get(timeout=0.25)
            except queue.Empty:
                continue
            try:
                if not self._closed.is_set():
                    self._sendto(endpoint, data)
            finally:
                self._outbox.task_done()

    def _sendto(self, endpoint: UdpEndpoint, data: bytes) -> bool:
        try:
            self._sock.sendto(data, (endpoint.host, endpoint.port))
        except OSError as e:
            _LOG.warning("UDP send to %s failed: %s", endpoint, e)
            return False
        return True


def _as_bytes(payload) -> bytes:
    if isinstance(payload, (bytes, bytearray, memoryview)):
        return bytes(payload)
    raise TypeError(f"Unsupported payload type: {type(payload)!r}")
