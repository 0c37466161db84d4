"""Admission control for crawl and download branches.

Every branch asks the gate for admission once. Admitted branches run on a
new thread; when the gate is saturated the branch runs inline on the
caller instead. The gate counts branches that are waiting on their own
unit of work, not their descendants, which each admit themselves. It
throttles how fast new threads are created rather than capping the total
number of threads alive.
"""

import enum
import threading

from .progress import Reporter


class Decision(enum.Enum):
    RUN_CONCURRENTLY = 'concurrent'
    RUN_INLINE = 'inline'


class ConcurrencyGate:
    """Soft admission threshold over the number of in-flight branches"""

    def __init__(self, limit):
        if limit < 0:
            raise ValueError(f"limit must be >= 0, got {limit}")
        self._limit = limit
        self._active = 0
        self._lock = threading.Lock()

    @property
    def limit(self):
        return self._limit

    @property
    def active(self):
        with self._lock:
            return self._active

    def admit(self):
        """Claim a slot, or back off and tell the caller to run inline"""
        with self._lock:
            self._active += 1
            if self._active <= self._limit:
                return Decision.RUN_CONCURRENTLY
            self._active -= 1
            return Decision.RUN_INLINE

    def release(self):
        with self._lock:
            if self._active == 0:
                raise RuntimeError("release() called more often than admit()")
            self._active -= 1


class WaitGroup:
    """Counts outstanding units of work and lets a caller block until none remain"""

    def __init__(self):
        self._count = 0
        self._cond = threading.Condition()

    def add(self, n=1):
        with self._cond:
            self._count += n
            if self._count < 0:
                raise RuntimeError("negative WaitGroup counter")

    def done(self):
        with self._cond:
            if self._count == 0:
                raise RuntimeError("done() called more often than add()")
            self._count -= 1
            if self._count == 0:
                self._cond.notify_all()

    @property
    def pending(self):
        with self._cond:
            return self._count

    def wait(self, timeout=None):
        """Block until the counter drops to zero; False if the timeout expired"""
        with self._cond:
            return self._cond.wait_for(lambda: self._count == 0, timeout=timeout)


class TaskPool:
    """Runs branches on their own thread when admitted, inline otherwise"""

    def __init__(self, gate, reporter=None):
        self.gate = gate
        self.reporter = reporter or Reporter()
        self._group = WaitGroup()

    def submit(self, fn, *args):
        """Dispatch ``fn(*args)`` and return the decision the gate made"""
        decision = self.gate.admit()
        if decision is Decision.RUN_CONCURRENTLY:
            # Register before the thread exists so join() cannot miss it
            self._group.add()
            try:
                thread = threading.Thread(target=self._run_admitted, args=(fn, args), daemon=True)
                thread.start()
            except RuntimeError:
                # Out of threads: give the slot back and do the work here
                self.gate.release()
                self._group.done()
                decision = Decision.RUN_INLINE
                self.run_inline(fn, *args)
        else:
            self.run_inline(fn, *args)
        return decision

    def run_inline(self, fn, *args):
        """Run a branch on the calling thread; the gate is not held"""
        self._call(fn, args)

    def _run_admitted(self, fn, args):
        try:
            self._call(fn, args)
        finally:
            self.gate.release()
            self._group.done()

    def _call(self, fn, args):
        try:
            fn(*args)
        except Exception as e:
            self.reporter.error(f"{getattr(fn, '__name__', fn)}{args}: {e}")

    @property
    def pending(self):
        return self._group.pending

    def join(self, timeout=None):
        """Wait for every admitted branch, including ones spawned by other branches"""
        return self._group.wait(timeout=timeout)
