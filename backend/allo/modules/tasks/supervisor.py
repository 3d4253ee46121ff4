from __future__ import annotations

import logging
import threading
from datetime import datetime
from typing import Callable

from sqlalchemy.orm import sessionmaker

from allo.core.config import AlloSettings, Settings
from allo.modules.auth.deps import NowUtc
from allo.modules.tasks.allowance import AllowancePayer
from allo.modules.tasks.runner import MultipleTaskErrors, ScheduledTaskRunner

logger = logging.getLogger("tasks.supervisor")


class TaskSupervisor:
    """Keeps a runner waking on its interval in a background thread.

    The first cycle runs immediately. If the loop dies, the crash is logged and
    the loop starts again after ``restart_delay_seconds``.
    """

    def __init__(
        self,
        runner: ScheduledTaskRunner,
        restart_delay_seconds: float = 5.0,
        clock: Callable[[], datetime] = NowUtc,
    ) -> None:
        self._runner = runner
        self._restart_delay = restart_delay_seconds
        self._clock = clock
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None
        self.Restarts = 0
        self.Cycles = 0

    def Start(self) -> None:
        if self._thread and self._thread.is_alive():
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._Supervise, name="scheduled-tasks", daemon=True)
        self._thread.start()

    def Stop(self, timeout: float | None = 10.0) -> None:
        self._stop.set()
        if self._thread:
            self._thread.join(timeout=timeout)
            self._thread = None

    @property
    def IsRunning(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def _Supervise(self) -> None:
        interval = self._runner.WakeInterval()
        if interval is None:
            logger.warning("no scheduled tasks registered; runner not started")
            return
        logger.info(
            "scheduled task runner started tasks=%s interval=%ss",
            ",".join(scheduled.Name for scheduled in self._runner.Tasks),
            interval.total_seconds(),
        )
        while not self._stop.is_set():
            try:
                self._Loop(interval.total_seconds())
            except Exception:  # noqa: BLE001
                self.Restarts += 1
                logger.exception(
                    "scheduled task runner crashed; restarting in %ss",
                    self._restart_delay,
                )
                self._stop.wait(self._restart_delay)

    def _Loop(self, interval_seconds: float) -> None:
        while not self._stop.is_set():
            self._Cycle()
            if self._stop.wait(interval_seconds):
                return

    def _Cycle(self) -> None:
        self.Cycles += 1
        try:
            self._runner.Run(self._clock())
        except MultipleTaskErrors as exc:
            logger.error("scheduled task cycle finished with %s failure(s)", len(exc.Errors))


def BuildTaskRunner(session_factory: sessionmaker) -> ScheduledTaskRunner:
    return ScheduledTaskRunner(session_factory).With(AllowancePayer())


_supervisor: TaskSupervisor | None = None


def StartSupervisor(session_factory: sessionmaker, settings: AlloSettings | None = None) -> TaskSupervisor | None:
    global _supervisor
    settings = settings or Settings
    if not settings.SchedulerEnabled:
        logger.info("scheduled task runner disabled")
        return None
    _supervisor = TaskSupervisor(
        BuildTaskRunner(session_factory),
        restart_delay_seconds=settings.SchedulerRestartDelaySeconds,
    )
    _supervisor.Start()
    return _supervisor


def StopSupervisor() -> None:
    global _supervisor
    if _supervisor is not None:
        _supervisor.Stop()
        _supervisor = None


def GetSupervisor() -> TaskSupervisor | None:
    return _supervisor
