import threading

import pytest

from openindex.gate import ConcurrencyGate, Decision, TaskPool, WaitGroup


def test_admit_until_limit_then_inline():
    gate = ConcurrencyGate(2)
    assert gate.admit() is Decision.RUN_CONCURRENTLY
    assert gate.admit() is Decision.RUN_CONCURRENTLY
    assert gate.admit() is Decision.RUN_INLINE
    assert gate.active == 2

    gate.release()
    assert gate.active == 1
    assert gate.admit() is Decision.RUN_CONCURRENTLY


def test_zero_limit_always_inline():
    gate = ConcurrencyGate(0)
    assert gate.admit() is Decision.RUN_INLINE
    assert gate.active == 0


def test_negative_limit_rejected():
    with pytest.raises(ValueError):
        ConcurrencyGate(-1)


def test_release_without_admit_raises():
    gate = ConcurrencyGate(1)
    with pytest.raises(RuntimeError):
        gate.release()


def test_wait_group_counts_down():
    group = WaitGroup()
    group.add(2)
    assert not group.wait(timeout=0.01)
    group.done()
    group.done()
    assert group.wait(timeout=0.01)
    with pytest.raises(RuntimeError):
        group.done()


def test_saturated_pool_runs_inline_on_caller(reporter):
    pool = TaskPool(ConcurrencyGate(1), reporter=reporter)
    started = threading.Event()
    release = threading.Event()
    ran_on = []

    def blocker():
        started.set()
        release.wait(5)

    assert pool.submit(blocker) is Decision.RUN_CONCURRENTLY
    assert started.wait(5)

    assert pool.submit(lambda: ran_on.append(threading.get_ident())) is Decision.RUN_INLINE
    assert ran_on == [threading.get_ident()]

    release.set()
    assert pool.join(timeout=5)
    assert pool.gate.active == 0


def test_join_waits_for_transitively_spawned_units(reporter):
    pool = TaskPool(ConcurrencyGate(3), reporter=reporter)
    lock = threading.Lock()
    visited = []

    def branch(depth):
        with lock:
            visited.append(depth)
        if depth < 4:
            pool.submit(branch, depth + 1)
            pool.submit(branch, depth + 1)

    pool.submit(branch, 0)
    assert pool.join(timeout=10)
    # 1 + 2 + 4 + 8 + 16 nodes in a full binary tree of depth 4
    assert len(visited) == 31
    assert pool.gate.active == 0
    assert pool.pending == 0


def test_burst_of_admissions_settles_to_zero(reporter):
    limit, extra = 4, 20
    pool = TaskPool(ConcurrencyGate(limit), reporter=reporter)
    barrier = threading.Barrier(limit + extra)
    decisions = []
    lock = threading.Lock()

    def requester():
        barrier.wait(5)
        decision = pool.submit(lambda: None)
        with lock:
            decisions.append(decision)

    threads = [threading.Thread(target=requester) for _ in range(limit + extra)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(5)

    assert pool.join(timeout=5)
    assert len(decisions) == limit + extra
    assert pool.gate.active == 0


def test_failing_unit_is_reported_and_released(reporter, output):
    pool = TaskPool(ConcurrencyGate(2), reporter=reporter)

    def boom():
        raise RuntimeError("kaboom")

    pool.submit(boom)
    pool.run_inline(boom)
    assert pool.join(timeout=5)
    assert pool.gate.active == 0
    assert reporter.stats.errors == 2
    assert "kaboom" in output.getvalue()
