import logging
from datetime import datetime, timezone

from sqlalchemy.orm import Session

from allo.modules.auth.models import ROLE_CHILD, User
from allo.modules.family.models import SCHEDULES, TRANSACTION_ALLOWANCE, Allowance, Transaction
from allo.modules.tasks.runner import Task

logger = logging.getLogger("tasks.allowance")


def ScheduleForDate(timestamp: datetime) -> str:
    if timestamp.tzinfo is not None:
        timestamp = timestamp.astimezone(timezone.utc)
    return SCHEDULES[timestamp.weekday()]


class AllowancePayer(Task):
    """Credits every allowance scheduled for the timestamp's weekday."""

    Name = "allowance-payer"

    def Run(self, db: Session, timestamp: datetime) -> None:
        schedule = ScheduleForDate(timestamp)
        allowances = (
            db.query(Allowance)
            .join(User, User.Id == Allowance.UserId)
            .filter(Allowance.Schedule == schedule, User.Role == ROLE_CHILD)
            .order_by(Allowance.UserId.asc())
            .all()
        )
        for allowance in allowances:
            db.add(
                Transaction(
                    UserId=allowance.UserId,
                    TransactionType=TRANSACTION_ALLOWANCE,
                    Description="Allowance",
                    Amount=allowance.Amount,
                    Time=timestamp,
                )
            )
        db.flush()
        logger.info("paid allowances schedule=%s count=%s", schedule, len(allowances))
