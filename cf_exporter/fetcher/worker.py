from __future__ import annotations
import logging, queue, threading, time
from dataclasses import dataclass
from typing import Any, Callable, List, Optional

from ..filters import Filter
from .snapshot import Snapshot

log = logging.getLogger(__name__)

Handler = Callable[[Any, Snapshot], None]


@dataclass
class Job:
    name: str
    handler: Handler


class Worker:
    """Fixed-size thread pool running fetch jobs against one shared session.

    Jobs may push more jobs while running; wait() returns once every pushed
    job has finished, with the first error observed (or None).
    """

    def __init__(self, threads: int, filter: Filter):
        self.threads = max(1, threads)
        self.filter = filter
        self.reset()

    def reset(self) -> None:
        self.jobs: "queue.Queue[Optional[Job]]" = queue.Queue()
        self.errors: List[Exception] = []
        self._pending = 0
        self._cond = threading.Condition()

    def push(self, name: str, handler: Handler) -> None:
        with self._cond:
            self._pending += 1
        self.jobs.put(Job(name, handler))

    def push_if(self, name: str, handler: Handler, *tokens: str) -> None:
        if self.filter.any(*tokens):
            self.push(name, handler)

    def planned(self) -> List[str]:
        return [job.name for job in list(self.jobs.queue) if job is not None]

    def _done(self, err: Optional[Exception] = None) -> None:
        with self._cond:
            if err is not None:
                self.errors.append(err)
            self._pending -= 1
            if self._pending <= 0:
                self._cond.notify_all()

    def _run(self, wid: int, session: Any, snapshot: Snapshot) -> None:
        while True:
            job = self.jobs.get()
            if job is None:
                return
            started = time.monotonic()
            log.debug("[%02d] %s: start", wid, job.name)
            try:
                job.handler(session, snapshot)
            except Exception as err:
                log.error("[%02d] %s: %s", wid, job.name, err)
                self._done(err)
                continue
            log.debug("[%02d] %s: done (%.3fs)", wid, job.name, time.monotonic() - started)
            self._done()

    def do(self, session: Any, snapshot: Snapshot) -> Optional[Exception]:
        workers = [
            threading.Thread(target=self._run, args=(i, session, snapshot), name=f"cf-fetch-{i}", daemon=True)
            for i in range(self.threads)
        ]
        for t in workers:
            t.start()
        err = self.wait()
        for t in workers:
            t.join()
        return err

    def wait(self) -> Optional[Exception]:
        with self._cond:
            while self._pending > 0:
                self._cond.wait()
        # queue is drained, release the threads
        for _ in range(self.threads):
            self.jobs.put(None)
        return self.errors[0] if self.errors else None
