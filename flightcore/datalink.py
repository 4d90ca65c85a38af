"""UDP data link with queued, background sending and receiving of packets."""

from __future__ import annotations

import logging
import socket
import threading
from collections import deque
from dataclasses import dataclass

from .config import (
    ABDL_RECEIVE_QUEUE_NB,
    ABDL_RECEIVE_THREAD_MS,
    ABDL_SEND_QUEUE_NB,
    ABDL_SEND_THREAD_MS,
    SBRO_PACKET_MAX_NB,
    link_ports,
)
from .osal import sleep_ms, start_thread

log = logging.getLogger(__name__)


class QueueFullError(Exception):
    """Raised when a packet does not fit in the room left in a queue."""


class PacketQueue:
    """Thread-safe FIFO of packets bounded by the total number of bytes held."""

    def __init__(self, capacity: int) -> None:
        if capacity <= 0:
            raise ValueError("queue capacity must be positive")
        self.capacity = capacity
        self._packets: deque[bytes] = deque()
        self._used = 0
        self._lock = threading.Lock()

    def add(self, packet: bytes) -> None:
        data = bytes(packet)
        with self._lock:
            if self._used + len(data) > self.capacity:
                raise QueueFullError(
                    f"{len(data)} bytes do not fit, {self.capacity - self._used} free"
                )
            self._packets.append(data)
            self._used += len(data)

    def get(self) -> bytes | None:
        """Remove and return the oldest packet, or None when empty."""
        with self._lock:
            if not self._packets:
                return None
            data = self._packets.popleft()
            self._used -= len(data)
            return data

    @property
    def used_bytes(self) -> int:
        with self._lock:
            return self._used

    def __len__(self) -> int:
        with self._lock:
            return len(self._packets)


@dataclass
class LinkCounters:
    """Traffic counters for one socket of the link."""

    received: int = 0
    sent: int = 0
    rejected: int = 0


class DataLink:
    """Two UDP sockets, one bound for receiving and one for sending, served by threads."""

    def __init__(
        self,
        is_server: bool = True,
        *,
        host: str = "127.0.0.1",
        receive_port: int | None = None,
        send_port: int | None = None,
        receive_queue_capacity: int = ABDL_RECEIVE_QUEUE_NB,
        send_queue_capacity: int = ABDL_SEND_QUEUE_NB,
        receive_period_ms: int = ABDL_RECEIVE_THREAD_MS,
        send_period_ms: int = ABDL_SEND_THREAD_MS,
    ) -> None:
        if receive_period_ms <= 0 or send_period_ms <= 0:
            raise ValueError("thread periods must be positive")
        default_receive, default_send = link_ports(is_server)
        receive_port = default_receive if receive_port is None else receive_port
        send_port = default_send if send_port is None else send_port

        self.receive_queue = PacketQueue(receive_queue_capacity)
        self.send_queue = PacketQueue(send_queue_capacity)
        self.receive_counters = LinkCounters()
        self.send_counters = LinkCounters()
        self.send_address = (host, send_port)
        self._receive_period_ms = receive_period_ms
        self._send_period_ms = send_period_ms

        self._receive_socket = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
        try:
            self._receive_socket.bind((host, receive_port))
        except OSError:
            self._receive_socket.close()
            raise
        self._receive_socket.settimeout(receive_period_ms / 1000)
        self._send_socket = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)

        self._running = threading.Event()
        self._closed = False
        self._threads: list[threading.Thread] = []

    @property
    def receive_address(self) -> tuple[str, int]:
        return self._receive_socket.getsockname()

    @property
    def is_running(self) -> bool:
        return self._running.is_set()

    def start(self) -> None:
        """Start the receive and send threads."""
        if self._closed:
            raise RuntimeError("data link is closed")
        if self._running.is_set():
            return
        self._running.set()
        self._threads = [
            start_thread(self._receive_loop, "ABDL_R_EXEC"),
            start_thread(self._send_loop, "ABDL_S_EXEC"),
        ]

    def stop(self) -> None:
        """Ask the threads to finish and wait for them."""
        self._running.clear()
        current = threading.current_thread()
        for thread in self._threads:
            if thread is not current:
                thread.join()
        self._threads = []

    def close(self) -> None:
        self.stop()
        if not self._closed:
            self._closed = True
            self._receive_socket.close()
            self._send_socket.close()

    def send(self, data: bytes) -> bool:
        """Queue a packet for sending; return False if the queue rejected it."""
        if len(data) > SBRO_PACKET_MAX_NB:
            raise ValueError(
                f"packet of {len(data)} bytes exceeds {SBRO_PACKET_MAX_NB} bytes"
            )
        log.debug("queueing %d bytes for sending", len(data))
        try:
            self.send_queue.add(data)
        except QueueFullError:
            log.warning("send packet rejected")
            self.send_counters.rejected += 1
            return False
        return True

    def get_one_packet(self) -> bytes | None:
        """Return the oldest received packet, or None if none is waiting."""
        return self.receive_queue.get()

    def __enter__(self) -> DataLink:
        self.start()
        return self

    def __exit__(self, *args: object) -> None:
        self.close()

    def _send_loop(self) -> None:
        while self._running.is_set():
            packet = self.send_queue.get()
            if packet is not None:
                self._send_direct(packet)
            sleep_ms(self._send_period_ms)

    def _send_direct(self, packet: bytes) -> None:
        try:
            self._send_socket.sendto(packet, self.send_address)
        except OSError as error:
            log.error("sending data failed: %s", error)
            return
        self.send_counters.sent += 1

    def _receive_loop(self) -> None:
        while self._running.is_set():
            try:
                data, _ = self._receive_socket.recvfrom(SBRO_PACKET_MAX_NB)
            except TimeoutError:
                continue
            except OSError as error:
                if not self._running.is_set():
                    break
                log.error("receiving data failed: %s", error)
                sleep_ms(self._receive_period_ms)
                continue
            if data:
                self.receive_counters.received += 1
                log.debug(
                    "received packet of %d bytes, queued: %d",
                    len(data),
                    len(self.receive_queue),
                )
                try:
                    self.receive_queue.add(data)
                except QueueFullError:
                    log.warning("received packet rejected")
                    self.receive_counters.rejected += 1
            sleep_ms(self._receive_period_ms)