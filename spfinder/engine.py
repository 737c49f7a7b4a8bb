"""Bounded fan-out of a per-item resolver over a worker pool."""

from __future__ import annotations

import logging
import queue
import threading
from dataclasses import dataclass
from typing import Iterable, Iterator, List, Optional, Set

from .config import DEFAULT_WORKERS
from .resolver import EMPTY, ERROR, OK, MinerClient, Resolver, ResultLine, error_line


_LOGGER = logging.getLogger("spfinder.engine")
_CLOSED = object()

CANCELLED = "cancelled"


@dataclass
class BatchSummary:
    total: int = 0
    ok: int = 0
    empty: int = 0
    errors: int = 0

    def add(self, line: ResultLine) -> None:
        self.total += 1
        if line.status == OK:
            self.ok += 1
        elif line.status == EMPTY:
            self.empty += 1
        else:
            self.errors += 1

    def __str__(self) -> str:
        return f"Resolved {self.ok} of {self.total} ({self.empty} without result, {self.errors} errors)"


class FanOutEngine:
    """Run a resolver over a set of provider ids with a fixed number of threads.

    One feeder thread fills a bounded work queue and then closes it with one
    sentinel per worker. Workers publish every ResultLine to an unbounded
    result queue. A closer thread waits for the feeder and all workers before
    closing the result queue, so the consumer sees exactly one line per
    distinct identifier, in completion order.
    """

    def __init__(self, workers: int = DEFAULT_WORKERS, queue_size: int | None = None) -> None:
        if workers < 1:
            raise ValueError(f"workers must be at least 1, got {workers}")
        self.workers = workers
        self.queue_size = queue_size if queue_size is not None else 2 * workers
        self._lock = threading.Lock()
        self._active: Set[threading.Event] = set()
        self._last: Optional[threading.Event] = None

    @property
    def cancelled(self) -> bool:
        """Whether the most recently started run was cancelled."""
        return self._last is not None and self._last.is_set()

    def cancel(self) -> None:
        """Stop every run started and not yet finished from making new remote calls.

        Pending ids of those runs are reported as cancelled. This also applies to
        runs whose iterator has been created but not yet consumed.
        """
        with self._lock:
            for event in self._active:
                event.set()

    def run(self, identifiers: Iterable[str], resolver: Resolver, client: MinerClient) -> Iterator[ResultLine]:
        cancelled = threading.Event()
        with self._lock:
            self._active.add(cancelled)
            self._last = cancelled
        return self._stream(list(dict.fromkeys(identifiers)), resolver, client, cancelled)

    def collect(self, identifiers: Iterable[str], resolver: Resolver, client: MinerClient) -> List[ResultLine]:
        return list(self.run(identifiers, resolver, client))

    def _stream(
        self, unique: List[str], resolver: Resolver, client: MinerClient, cancelled: threading.Event
    ) -> Iterator[ResultLine]:
        work: queue.Queue = queue.Queue(maxsize=self.queue_size)
        results: queue.Queue = queue.Queue()

        feeder = threading.Thread(
            target=self._feed, args=(unique, work), name="spfinder-feeder", daemon=True
        )
        workers = [
            threading.Thread(
                target=self._work,
                args=(work, results, resolver, client, cancelled),
                name=f"spfinder-worker-{index}",
                daemon=True,
            )
            for index in range(self.workers)
        ]
        closer = threading.Thread(
            target=self._close, args=(feeder, workers, results), name="spfinder-closer", daemon=True
        )
        _LOGGER.debug("starting batch ids=%d workers=%d", len(unique), self.workers)
        feeder.start()
        for thread in workers:
            thread.start()
        closer.start()

        drained = False
        try:
            while True:
                item = results.get()
                if item is _CLOSED:
                    drained = True
                    return
                yield item
        finally:
            if not drained:
                _LOGGER.debug("consumer stopped early, cancelling batch")
                cancelled.set()
            with self._lock:
                self._active.discard(cancelled)

    def _feed(self, identifiers: List[str], work: queue.Queue) -> None:
        for identifier in identifiers:
            work.put(identifier)
        for _ in range(self.workers):
            work.put(_CLOSED)

    def _work(
        self,
        work: queue.Queue,
        results: queue.Queue,
        resolver: Resolver,
        client: MinerClient,
        cancelled: threading.Event,
    ) -> None:
        while True:
            identifier = work.get()
            if identifier is _CLOSED:
                return
            if cancelled.is_set():
                results.put(ResultLine(identifier, CANCELLED, ERROR))
                continue
            try:
                line = resolver(identifier, client)
            except Exception as exc:
                _LOGGER.exception("resolver failed for %s", identifier)
                line = error_line(identifier, exc)
            results.put(line)

    def _close(self, feeder: threading.Thread, workers: List[threading.Thread], results: queue.Queue) -> None:
        feeder.join()
        for thread in workers:
            thread.join()
        results.put(_CLOSED)
