"""Mission configuration: identifiers, scheduling slots, queue sizes and link ports."""

from __future__ import annotations

from dataclasses import dataclass

UINT16_MAX = 65535
UINT32_MAX = 4294967295

# Application process identifiers
GROUND_APID = 10
APP1_APID = 1
DEV_APID = 2

# Scheduler
OVERRUNS_MAX_NO = 5
MAESTRO_PERIOD_MS = 1000
MAESTRO_APPS_NO = 3

SWBUS_TIME_START_MS = 10
SWBUS_TIME_LENGTH_MS = 90
APP1_TIME_START_MS = 110
APP1_TIME_LENGTH_MS = 90
DEV_TIME_START_MS = 210
DEV_TIME_LENGTH_MS = 90

# Software bus
SBRO_TC_SUBSCRIBERS_MAX_NO = 6
SBRO_QUEUE_NB = 2000
SBRO_PACKET_MAX_NB = 256

# Data link
ABDL_RECEIVE_QUEUE_NB = 2000
ABDL_SEND_QUEUE_NB = 2000
ABDL_SERVER_PORT = 4163
ABDL_CLIENT_PORT = 4164
ABDL_RECEIVE_THREAD_MS = 250
ABDL_SEND_THREAD_MS = 250

# Application 1
APP1_QUEUE_NB = SBRO_PACKET_MAX_NB * 4
APP1_TC_MAX_NB = 4

# Device operator
DEV_QUEUE_NB = SBRO_PACKET_MAX_NB * 4
DEV_TC_MAX_NB = 4


@dataclass(frozen=True)
class Slot:
    """A time slot inside one scheduler period, in milliseconds from its start."""

    name: str
    start_ms: int
    length_ms: int

    def __post_init__(self) -> None:
        if self.start_ms < 0:
            raise ValueError(f"slot {self.name!r}: start must not be negative")
        if self.length_ms <= 0:
            raise ValueError(f"slot {self.name!r}: length must be positive")

    @property
    def end_ms(self) -> int:
        return self.start_ms + self.length_ms


# Order matters: the scheduler hands semaphores out in this order.
SCHEDULE: tuple[Slot, ...] = (
    Slot("swbus", SWBUS_TIME_START_MS, SWBUS_TIME_LENGTH_MS),
    Slot("app1", APP1_TIME_START_MS, APP1_TIME_LENGTH_MS),
    Slot("dev", DEV_TIME_START_MS, DEV_TIME_LENGTH_MS),
)


def link_ports(is_server: bool) -> tuple[int, int]:
    """Return the (receive, send) UDP ports for the server or the client side."""
    if is_server:
        return ABDL_SERVER_PORT, ABDL_CLIENT_PORT
    return ABDL_CLIENT_PORT, ABDL_SERVER_PORT