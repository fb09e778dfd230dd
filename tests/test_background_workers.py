from __future__ import annotations

import threading
from dataclasses import replace

from sso.infrastructure.background import PeriodicWorker
from sso.main import build_workers
from sso.shared.config import get_settings


class _Ring:
    def rotate(self):
        return None


def test_periodic_worker_runs_task_until_stopped():
    ran = threading.Event()
    worker = PeriodicWorker("test", interval_seconds=0.01, task=ran.set)

    worker.start()
    try:
        assert ran.wait(timeout=2)
    finally:
        worker.stop()


def test_periodic_worker_keeps_running_after_task_failure():
    calls = []
    second_call = threading.Event()

    def task():
        calls.append(1)
        if len(calls) == 1:
            raise RuntimeError("boom")
        second_call.set()

    worker = PeriodicWorker("test", interval_seconds=0.01, task=task)
    worker.start()
    try:
        assert second_call.wait(timeout=2)
    finally:
        worker.stop()


def test_state_purge_runs_without_key_rotation():
    settings = replace(
        get_settings(),
        jwt_rotation_interval_hours=0,
        state_purge_interval_seconds=300,
    )

    workers = build_workers(settings, engine=object(), key_ring=_Ring())

    assert [worker.name for worker in workers] == ["state-purge"]


def test_rotation_and_purge_are_independent_workers():
    settings = replace(
        get_settings(),
        jwt_rotation_interval_hours=24,
        state_purge_interval_seconds=60,
    )

    workers = build_workers(settings, engine=object(), key_ring=_Ring())

    assert [worker.name for worker in workers] == ["state-purge", "key-rotation"]


def test_no_purge_worker_without_database():
    settings = replace(get_settings(), jwt_rotation_interval_hours=0)

    assert build_workers(settings, engine=None, key_ring=_Ring()) == []
