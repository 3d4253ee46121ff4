"""Recurring maintenance tasks with an at-most-once-per-period guarantee.

Each task has a cadence that maps a timestamp to a period label. Before a task
runs, the runner looks for an execution record with that label; the task's
work and the new record are committed together, so a period is either fully
done and recorded or not done at all. Nothing about progress is kept in
memory, which lets several processes share one database.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Callable

from sqlalchemy.orm import Session, sessionmaker

from allo.modules.auth.deps import NowUtc
from allo.modules.tasks.models import TaskExecution

logger = logging.getLogger("tasks.runner")

WAKE_FRACTION = 0.05


class Task(ABC):
    Name: str = ""

    @abstractmethod
    def Run(self, db: Session, timestamp: datetime) -> None:
        """Do the work for one period using the runner's session.

        Do not commit; the runner commits the work with the execution record.
        """


class Cadence(ABC):
    @property
    @abstractmethod
    def Interval(self) -> timedelta:
        raise NotImplementedError

    @abstractmethod
    def Label(self, timestamp: datetime) -> str:
        raise NotImplementedError


class DailyCadence(Cadence):
    @property
    def Interval(self) -> timedelta:
        return timedelta(days=1)

    def Label(self, timestamp: datetime) -> str:
        if timestamp.tzinfo is not None:
            timestamp = timestamp.astimezone(timezone.utc)
        return timestamp.strftime("%Y-%m-%d")


@dataclass(frozen=True)
class CustomCadence(Cadence):
    Every: timedelta
    LabelFn: Callable[[datetime, timedelta], str]

    @property
    def Interval(self) -> timedelta:
        return self.Every

    def Label(self, timestamp: datetime) -> str:
        return self.LabelFn(timestamp, self.Every)


@dataclass
class ScheduledTask:
    Task: Task
    Cadence: Cadence = field(default_factory=DailyCadence)

    @property
    def Name(self) -> str:
        return self.Task.Name


class TaskError(Exception):
    def __init__(self, task_name: str, period_label: str, cause: BaseException) -> None:
        super().__init__(f"task {task_name} failed for period {period_label}: {cause}")
        self.TaskName = task_name
        self.PeriodLabel = period_label
        self.Cause = cause


class MultipleTaskErrors(Exception):
    def __init__(self, errors: list[TaskError]) -> None:
        super().__init__("; ".join(str(error) for error in errors))
        self.Errors = errors


def PeriodLabel(scheduled: ScheduledTask, timestamp: datetime) -> str:
    return scheduled.Cadence.Label(timestamp)


def _AlreadyRan(db: Session, task_name: str, period_label: str) -> bool:
    return (
        db.query(TaskExecution.Id)
        .filter(TaskExecution.TaskName == task_name, TaskExecution.PeriodLabel == period_label)
        .first()
        is not None
    )


def _RecordRun(db: Session, task_name: str, period_label: str) -> None:
    db.add(TaskExecution(TaskName=task_name, PeriodLabel=period_label, RecordedAt=NowUtc()))


class ScheduledTaskRunner:
    def __init__(self, session_factory: sessionmaker) -> None:
        self._session_factory = session_factory
        self.Tasks: list[ScheduledTask] = []

    def With(self, task: Task, cadence: Cadence | None = None) -> "ScheduledTaskRunner":
        self.Tasks.append(ScheduledTask(task, cadence or DailyCadence()))
        return self

    def WakeInterval(self) -> timedelta | None:
        if not self.Tasks:
            return None
        shortest = min(scheduled.Cadence.Interval for scheduled in self.Tasks)
        return shortest * WAKE_FRACTION

    def CheckAndRun(self, scheduled: ScheduledTask, db: Session, timestamp: datetime) -> bool:
        """Run one task for the period containing ``timestamp`` unless it already ran.

        Returns True when the task ran. Any failure rolls back the task's work
        and is raised as ``TaskError``; the period stays open for a retry.
        """
        label = PeriodLabel(scheduled, timestamp)
        try:
            if _AlreadyRan(db, scheduled.Name, label):
                db.rollback()
                return False
            scheduled.Task.Run(db, timestamp)
            _RecordRun(db, scheduled.Name, label)
            db.commit()
        except Exception as exc:
            db.rollback()
            raise TaskError(scheduled.Name, label, exc) from exc
        logger.info("scheduled task ran task=%s period=%s", scheduled.Name, label)
        return True

    def Run(self, timestamp: datetime | None = None) -> int:
        """One wake cycle over every registered task, in registration order.

        Task failures are collected and raised together as
        ``MultipleTaskErrors`` after every task had its turn. Failing to get a
        database connection at all propagates as is.
        """
        timestamp = timestamp or NowUtc()
        errors: list[TaskError] = []
        ran = 0
        db = self._session_factory()
        try:
            db.connection()
            for scheduled in self.Tasks:
                try:
                    if self.CheckAndRun(scheduled, db, timestamp):
                        ran += 1
                except TaskError as exc:
                    logger.error(
                        "failed to run task task=%s period=%s error=%s",
                        exc.TaskName,
                        exc.PeriodLabel,
                        exc.Cause,
                    )
                    errors.append(exc)
        finally:
            db.close()
        if errors:
            raise MultipleTaskErrors(errors)
        return ran
