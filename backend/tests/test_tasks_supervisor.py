import threading
from datetime import timedelta
from types import SimpleNamespace

from allo.modules.tasks.runner import MultipleTaskErrors, TaskError
from allo.modules.tasks.supervisor import StartSupervisor, TaskSupervisor


def _fake_runner(run):
    return SimpleNamespace(
        WakeInterval=lambda: timedelta(milliseconds=10),
        Run=run,
        Tasks=[SimpleNamespace(Name="fake")],
    )


def test_supervisor_restarts_a_crashed_loop():
    calls = []
    recovered = threading.Event()

    def _run(timestamp):
        calls.append(timestamp)
        if len(calls) == 1:
            raise RuntimeError("lost the database")
        recovered.set()

    supervisor = TaskSupervisor(_fake_runner(_run), restart_delay_seconds=0.01)
    supervisor.Start()
    try:
        assert recovered.wait(5)
    finally:
        supervisor.Stop()

    assert supervisor.Restarts >= 1
    assert not supervisor.IsRunning


def test_task_failures_do_not_crash_the_loop():
    cycles = threading.Event()
    calls = []

    def _run(timestamp):
        calls.append(timestamp)
        if len(calls) >= 3:
            cycles.set()
        raise MultipleTaskErrors([TaskError("fake", "2026-10-17", RuntimeError("nope"))])

    supervisor = TaskSupervisor(_fake_runner(_run), restart_delay_seconds=0.01)
    supervisor.Start()
    try:
        assert cycles.wait(5)
    finally:
        supervisor.Stop()

    assert supervisor.Restarts == 0


def test_first_cycle_runs_immediately():
    ran = threading.Event()
    runner = SimpleNamespace(
        WakeInterval=lambda: timedelta(hours=1),
        Run=lambda timestamp: ran.set(),
        Tasks=[SimpleNamespace(Name="fake")],
    )

    supervisor = TaskSupervisor(runner)
    supervisor.Start()
    try:
        assert ran.wait(5)
    finally:
        supervisor.Stop()


def test_supervisor_without_tasks_never_runs():
    calls = []
    runner = SimpleNamespace(WakeInterval=lambda: None, Run=calls.append, Tasks=[])

    supervisor = TaskSupervisor(runner)
    supervisor.Start()
    supervisor.Stop()

    assert calls == []


def test_disabled_scheduler_is_not_started(session_factory):
    settings = SimpleNamespace(SchedulerEnabled=False, SchedulerRestartDelaySeconds=1.0)
    assert StartSupervisor(session_factory, settings) is None
