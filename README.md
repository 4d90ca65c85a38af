# flightcore

A small flight-software style runtime in pure Python, with no dependencies
outside the standard library.

## Modules

- `flightcore.config` – configuration constants: application IDs
  (`GROUND_APID`, `APP1_APID`, `DEV_APID`), queue sizes, the maximum packet
  size (`SBRO_PACKET_MAX_NB`, 256 bytes), the scheduler period and overrun
  limit, the slot table `SCHEDULE` made of `Slot(name, start_ms, length_ms)`
  entries, and `link_ports(is_server)`, which returns the `(receive, send)`
  UDP ports for one side of the link.
- `flightcore.osal` – `BinarySemaphore` with `post()` and
  `wait(timeout_ms)` (zero only tries, `TASK_MAX_DELAY` or more waits
  forever; returns `False` on timeout), `sleep_ms(milliseconds)` and
  `start_thread(target, name, *args)`, which starts a daemon thread.
- `flightcore.datalink` – `PacketQueue`, a thread-safe FIFO bounded by the
  total bytes it holds (`add` raises `QueueFullError` when a packet does not
  fit, `get` returns `None` when empty); `LinkCounters` with `received`,
  `sent` and `rejected`; and `DataLink`, two UDP sockets served by a
  background receive thread and send thread.
- `flightcore.maestro` – `SlotTask`, a thread that runs one step each time
  its slot opens, and `Maestro`, a cyclic scheduler that releases each task
  in its slot, counts overruns and stops itself after too many consecutive
  overruns of one task.

## Installing

```
pip install .
```

For running the tests:

```
pip install .[test]
pytest
```

## Running the scheduler

```
flightcore-server
```

This prints `SERVER`, starts a `Maestro` with an idle `SlotTask` in each slot
of `SCHEDULE` and runs until it stops itself or is interrupted with Ctrl+C,
then prints `END`. Options:

- `--cycles N` – stop after N periods (0, the default, runs until stopped).
- `--period-ms MS` – length of one period, 1000 ms by default.

Tick and overrun messages go through the `logging` module
(`flightcore.maestro` logger).

## Using the data link

```python
from flightcore.datalink import DataLink

with DataLink(is_server=False) as link:
    link.send(b"\x18\x02\xc0\x00\x00\x01\xaa\xbb")
    packet = link.get_one_packet()   # bytes, or None when nothing has arrived
```

The server side receives on port 4163 and sends to 4164; the client side is
the reverse. `host`, `receive_port`, `send_port`, queue capacities and thread
periods can be given as keyword arguments. Binding the receive socket raises
`OSError` if the port is taken. `send()` raises `ValueError` for packets over
256 bytes and returns `False` (counting the rejection in `send_counters`) when
the send queue is full. Entering the `with` block starts the threads; leaving
it stops them and closes the sockets.

## Writing a scheduled task

```python
from flightcore.maestro import Maestro, SlotTask
from flightcore.config import SCHEDULE

class Heartbeat(SlotTask):
    def execute(self):
        super().execute()
        print("tick")

tasks = [Heartbeat(slot.name) for slot in SCHEDULE]
maestro = Maestro(tasks, SCHEDULE, on_tick=lambda up_time: None)
maestro.start()
...
maestro.stop()
```

A `SlotTask` can also be given a plain callable as `work`. Each task waits
for its start semaphore, runs `execute()` once and posts its end semaphore.
If the end semaphore has not been posted by the end of the slot, the task is
counted in `Maestro.overruns` and `Maestro.consecutive_overruns`; when one
task reaches the overrun limit (5 by default) in a row, the `Maestro` stops.
`Maestro.execute_cycle()` runs one period directly and returns the names of
the slots that overran.

## What this package does not do

The scheduler only schedules: `flightcore-server` runs idle tasks. There is
no software bus or packet router, no telecommand or telemetry packet
encoding or decoding, no ping or device-control applications, and no client
program. `DataLink` moves raw datagrams and does not interpret them.