from datetime import datetime, timedelta, timezone

from allo.modules.family.models import TRANSACTION_ALLOWANCE, Transaction
from allo.modules.tasks.allowance import AllowancePayer, ScheduleForDate
from allo.modules.tasks.runner import ScheduledTaskRunner

SATURDAY = datetime(2026, 10, 17, 9, 0, tzinfo=timezone.utc)


def test_schedule_for_date():
    assert ScheduleForDate(SATURDAY) == "Sat"
    assert ScheduleForDate(SATURDAY + timedelta(days=2)) == "Mon"
    early_sunday_in_adelaide = datetime(2026, 10, 18, 2, 0, tzinfo=timezone(timedelta(hours=10, minutes=30)))
    assert ScheduleForDate(early_sunday_in_adelaide) == "Sat"


def test_allowance_payer_pays_matching_weekday_once(session_factory, db, household):
    runner = ScheduledTaskRunner(session_factory).With(AllowancePayer())

    runner.Run(SATURDAY)
    runner.Run(SATURDAY + timedelta(hours=3))

    rows = db.query(Transaction).all()
    assert [(row.UserId, row.TransactionType, row.Amount) for row in rows] == [
        (household.ChildA, TRANSACTION_ALLOWANCE, 500)
    ]


def test_allowance_payer_skips_other_weekdays(session_factory, db, household):
    runner = ScheduledTaskRunner(session_factory).With(AllowancePayer())

    runner.Run(SATURDAY + timedelta(days=1))
    assert db.query(Transaction).count() == 0

    runner.Run(SATURDAY + timedelta(days=2))
    rows = db.query(Transaction).all()
    assert [(row.UserId, row.Amount) for row in rows] == [(household.ChildB, 300)]
