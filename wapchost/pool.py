"""A pool of waPC hosts, each owned by a worker thread, that grows on demand."""

from __future__ import annotations

import asyncio
import concurrent.futures
import logging
import queue
import threading
import time
from dataclasses import dataclass
from datetime import timedelta
from typing import Callable, Optional, Union

from .errors import GeneralError, NoPool, RequestFailed, WapcError
from .host import WapcHost

_log = logging.getLogger(__name__)

Duration = Union[float, int, timedelta]
"""A duration in seconds, or a :class:`datetime.timedelta`."""

HostFactory = Callable[[], WapcHost]
"""A callable that creates a fresh host for a new worker."""

_POLL_INTERVAL = 0.05
_DEFAULT_NAME = "waPC host pool"


def _seconds(duration: Duration) -> float:
    if isinstance(duration, timedelta):
        return duration.total_seconds()
    return float(duration)


@dataclass
class _Request:
    op: str
    payload: bytes
    reply: concurrent.futures.Future


class HostPool:
    """Worker threads, each with its own host made by ``factory``, serving calls.

    ``min_threads`` workers live for the life of the pool. When a call cannot be
    handed to a worker within ``max_wait`` seconds, another worker is started,
    up to ``max_threads``; such extra workers exit after ``max_idle`` seconds
    without work.
    """

    def __init__(
        self,
        name: str,
        factory: HostFactory,
        min_threads: int = 1,
        max_threads: int = 2,
        max_wait: Duration = 0.1,
        max_idle: Duration = 300.0,
    ) -> None:
        _log.debug("Creating new wapc host pool with size %s", max_threads)
        self.name = str(name)
        self._factory = factory
        self._max_threads = max_threads
        self._max_wait = _seconds(max_wait)
        self._max_idle = _seconds(max_idle)
        self._requests: queue.Queue[_Request] = queue.Queue(maxsize=1)
        self._lock = threading.Lock()
        self._workers: set[threading.Thread] = set()
        self._stopping = threading.Event()
        self._open = True
        for _ in range(min_threads):
            self._spawn(None)

    def num_active_workers(self) -> int:
        """Return the number of live workers; 0 once the pool is shut down."""
        with self._lock:
            return len(self._workers) if self._open else 0

    def _spawn(self, max_idle: Optional[float]) -> None:
        with self._lock:
            if not self._open:
                raise NoPool()
            index = len(self._workers)
            thread = threading.Thread(
                target=self._work,
                args=(index, max_idle),
                name=f"{self.name}.{index}",
                daemon=True,
            )
            self._workers.add(thread)
            thread.start()

    def _work(self, index: int, max_idle: Optional[float]) -> None:
        label = f"{self.name}.{index}"
        me = threading.current_thread()
        try:
            _log.debug("Host thread %s started...", label)
            try:
                host = self._factory()
            except Exception:
                _log.exception("Host thread %s could not create its host", label)
                return
            deadline = None if max_idle is None else time.monotonic() + max_idle
            while not self._stopping.is_set():
                if deadline is None:
                    wait = _POLL_INTERVAL
                else:
                    wait = max(0.0, min(_POLL_INTERVAL, deadline - time.monotonic()))
                try:
                    request = self._requests.get(timeout=wait)
                except queue.Empty:
                    if deadline is not None and time.monotonic() >= deadline:
                        _log.debug("Host thread %s closing: idle timeout", label)
                        break
                    continue
                _log.debug(
                    "Host thread %s received call for %s with %d byte payload",
                    label,
                    request.op,
                    len(request.payload),
                )
                self._serve(host, request, label)
                if max_idle is not None:
                    deadline = time.monotonic() + max_idle
        finally:
            with self._lock:
                self._workers.discard(me)
            _log.debug("Host thread %s stopped.", label)

    @staticmethod
    def _serve(host: WapcHost, request: _Request, label: str) -> None:
        if not request.reply.set_running_or_notify_cancel():
            _log.error("Host thread %s failed when returning a value...", label)
            return
        try:
            result = host.call(request.op, request.payload)
        except Exception as exc:
            request.reply.set_exception(exc)
        else:
            request.reply.set_result(result)

    def _put_blocking(self, request: _Request) -> None:
        while True:
            try:
                self._requests.put(request, timeout=_POLL_INTERVAL)
                return
            except queue.Full:
                if self._stopping.is_set():
                    raise NoPool() from None

    async def call(self, op: str, payload: bytes) -> bytes:
        """Run ``op`` with ``payload`` on one of the workers and return its reply."""
        if not self._open:
            raise NoPool()
        request = _Request(str(op), bytes(payload), concurrent.futures.Future())
        try:
            self._requests.put(request, timeout=self._max_wait)
        except queue.Full:
            _log.debug("Timeout on pool '%s'", self.name)
            if self.num_active_workers() < self._max_threads:
                try:
                    self._spawn(self._max_idle)
                except WapcError as exc:
                    _log.error("Error spawning worker for host pool '%s': %s", self.name, exc)
            self._put_blocking(request)
        try:
            return await asyncio.wrap_future(request.reply)
        except WapcError:
            raise
        except Exception as exc:
            raise GeneralError(str(exc)) from exc

    def shutdown(self) -> None:
        """Stop all workers and wait for them; raise :class:`NoPool` if already shut down."""
        with self._lock:
            if not self._open:
                raise NoPool()
            self._open = False
            workers = list(self._workers)
        self._stopping.set()
        for worker in workers:
            worker.join()
        while True:
            try:
                request = self._requests.get_nowait()
            except queue.Empty:
                break
            if request.reply.set_running_or_notify_cancel():
                request.reply.set_exception(RequestFailed("the host pool was shut down"))

    def __enter__(self) -> "HostPool":
        return self

    def __exit__(self, *exc_info: object) -> None:
        if self._open:
            self.shutdown()

    def __repr__(self) -> str:
        return f"HostPool(name={self.name!r}, workers={self.num_active_workers()})"


class HostPoolBuilder:
    """Builder for a :class:`HostPool`; each setter returns the builder."""

    def __init__(self) -> None:
        self._name: Optional[str] = None
        self._factory: Optional[HostFactory] = None
        self._min_threads = 1
        self._max_threads = 2
        self._max_wait: Duration = 0.1
        self._max_idle: Duration = 5 * 60.0

    def name(self, name: str) -> "HostPoolBuilder":
        """Set the pool's name."""
        self._name = str(name)
        return self

    def factory(self, factory: HostFactory) -> "HostPoolBuilder":
        """Set the function that creates a host for each new worker."""
        self._factory = factory
        return self

    def min_threads(self, minimum: int) -> "HostPoolBuilder":
        """Set the number of workers that always run."""
        self._min_threads = minimum
        return self

    def max_threads(self, maximum: int) -> "HostPoolBuilder":
        """Set the upper limit on the number of workers."""
        self._max_threads = maximum
        return self

    def max_idle(self, timeout: Duration) -> "HostPoolBuilder":
        """Set how long an extra worker may sit idle before it exits."""
        self._max_idle = timeout
        return self

    def max_wait(self, duration: Duration) -> "HostPoolBuilder":
        """Set how long a call waits for a worker before a new one is started."""
        self._max_wait = duration
        return self

    def build(self) -> HostPool:
        """Create the pool; raise ValueError if no factory was given."""
        if self._factory is None:
            raise ValueError("A waPC host pool must have a factory function.")
        return HostPool(
            self._name if self._name is not None else _DEFAULT_NAME,
            self._factory,
            self._min_threads,
            self._max_threads,
            self._max_wait,
            self._max_idle,
        )

    def __repr__(self) -> str:
        return (
            f"HostPoolBuilder(name={self._name!r}, "
            f"factory={'Some(Fn)' if self._factory is not None else 'None'}, "
            f"min_threads={self._min_threads}, max_threads={self._max_threads}, "
            f"max_wait={self._max_wait!r}, max_idle={self._max_idle!r})"
        )