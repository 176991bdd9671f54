"""Message bus: clients register callbacks by id and receive messages sent to them."""

from __future__ import annotations

import argparse
import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, Optional, Sequence

BUS_DEFAULT_CLIENTS = 128
BUS_MAX_CLIENTS = 0xFFFFFFFF

Callback = Callable[[Any, Any], None]


@dataclass(eq=False)
class _Client:
    callback: Callback
    ctx: Any
    refcnt: int = 0


class Bus:
    """Fixed table of client slots; sending runs the client's callback."""

    def __init__(self, n_clients: int = 0) -> None:
        if not 0 <= n_clients <= BUS_MAX_CLIENTS:
            raise ValueError(f"invalid number of clients: {n_clients}")
        self.n_clients = n_clients or BUS_DEFAULT_CLIENTS
        self._clients: list[Optional[_Client]] = [None] * self.n_clients
        self._atomic = threading.Lock()

    def _valid(self, client_id: int) -> bool:
        return 0 <= client_id < self.n_clients

    def register(self, client_id: int, callback: Callback, ctx: Any = None) -> bool:
        """Register callback under client_id; False if the id is invalid or taken."""
        if not self._valid(client_id):
            return False
        with self._atomic:
            if self._clients[client_id] is not None:
                return False
            self._clients[client_id] = _Client(callback, ctx)
        return True

    def _deliver(self, client_id: int, msg: Any) -> bool:
        with self._atomic:
            client = self._clients[client_id]
            if client is None:
                return False
            client.refcnt += 1
        try:
            client.callback(client.ctx, msg)
        finally:
            with self._atomic:
                client.refcnt -= 1
        return True

    def send(self, client_id: int, msg: Any, broadcast: bool = False) -> bool:
        """Send msg to one client, or to every registered client if broadcast."""
        if broadcast:
            for cid in range(self.n_clients):
                self._deliver(cid, msg)
            return True
        if not self._valid(client_id):
            return False
        return self._deliver(client_id, msg)

    def unregister(self, client_id: int) -> bool:
        """Unregister a client, waiting for callbacks in progress to finish."""
        if not self._valid(client_id):
            return False
        with self._atomic:
            client = self._clients[client_id]
        if client is None:
            return False
        while True:
            with self._atomic:
                if self._clients[client_id] is not client:
                    return True  # someone else unregistered it
                if client.refcnt == 0:
                    self._clients[client_id] = None
                    return True
            time.sleep(0)


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Message bus demo.")
    parser.add_argument("-t", "--threads", type=int, default=4)
    args = parser.parse_args(argv)
    n_threads = args.threads
    bus = Bus(0)
    print_lock = threading.Lock()

    def callback(ctx: Any, msg: Any) -> None:
        with print_lock:
            print(f"Callback for thread {ctx} received: {msg}")

    def worker(tid: int) -> None:
        dest = (tid + 1) % n_threads
        if not bus.register(tid, callback, tid):
            with print_lock:
                print(f"bus_register failed for thread {tid}")
            return
        with print_lock:
            print(f"Registered callback from thread {tid}")
        while not bus.send(dest, tid):
            time.sleep(0)
        bus.unregister(dest)

    threads = [threading.Thread(target=worker, args=(i,)) for i in range(n_threads)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()
    return 0