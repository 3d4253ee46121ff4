from datetime import datetime

from sqlalchemy import Column, DateTime, Index, Integer, String, UniqueConstraint

from allo.db import Base


class TaskExecution(Base):
    __tablename__ = "scheduled_task_runs"
    __table_args__ = (
        UniqueConstraint("TaskName", "PeriodLabel", name="uq_scheduled_task_runs_task_period"),
        Index("ix_scheduled_task_runs_task_period", "TaskName", "PeriodLabel"),
    )

    Id = Column(Integer, primary_key=True, index=True)
    TaskName = Column(String(120), nullable=False)
    PeriodLabel = Column(String(64), nullable=False)
    RecordedAt = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)
