"""Single background worker that drains acknowledged events in order."""

from __future__ import annotations

import queue
import threading
from contextvars import copy_context
from typing import Any, Callable
from uuid import uuid4

import structlog
from structlog.contextvars import bind_contextvars

_STOP = object()


class DispatchWorker:
    """Own one thread and a FIFO queue; run *handler* for each submitted item.

    Each item is handled inside a copied context with its own ``trace_id`` so
    structlog output from the handler can be correlated.
    """

    def __init__(self, handler: Callable[[Any], None], *, name: str = "dispatch-worker") -> None:
        self._handler = handler
        self._name = name
        self._queue: "queue.Queue[Any]" = queue.Queue()
        self._thread: threading.Thread | None = None
        self._accepting = False
        self._lock = threading.Lock()
        self._processed = 0

    @property
    def processed(self) -> int:
        return self._processed

    @property
    def is_alive(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        with self._lock:
            if self._thread is not None:
                raise RuntimeError("Dispatch worker already started.")
            self._accepting = True
            self._thread = threading.Thread(target=self._run, name=self._name, daemon=True)
            self._thread.start()

    def submit(self, item: Any) -> bool:
        """Queue *item*; return False once the worker has stopped accepting."""

        with self._lock:
            if not self._accepting:
                structlog.get_logger().warning("dispatch_rejected", reason="worker_stopped")
                return False
            self._queue.put(item)
        return True

    def stop(self, timeout: float | None = None) -> bool:
        """Stop accepting work and wait up to *timeout* for the queue to drain.

        Returns True when the thread finished within the timeout.
        """

        with self._lock:
            if self._accepting:
                self._accepting = False
                self._queue.put(_STOP)
            thread = self._thread

        if thread is None:
            return True
        thread.join(timeout)
        drained = not thread.is_alive()
        if not drained:
            structlog.get_logger().warning("dispatch_drain_incomplete", pending=self._queue.qsize())
        return drained

    def _run(self) -> None:
        while True:
            item = self._queue.get()
            if item is _STOP:
                break

            context = copy_context()
            context.run(bind_contextvars, trace_id=str(uuid4()))
            try:
                context.run(self._handler, item)
            except Exception:
                structlog.get_logger().exception("dispatch_failed", worker=self._name)
            finally:
                self._processed += 1
        structlog.get_logger().info("dispatch_worker_stopped", worker=self._name, processed=self._processed)
