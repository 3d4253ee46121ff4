from datetime import datetime

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, Text

from allo.db import Base
from allo.modules.auth.models import NewUid

SCHEDULES = ("Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun")
DEFAULT_SCHEDULE = "Sat"

TRANSACTION_ALLOWANCE = "allowance"
TRANSACTION_GIFT = "gift"
TRANSACTION_REQUEST = "request"
TRANSACTION_TYPES = {TRANSACTION_ALLOWANCE, TRANSACTION_GIFT, TRANSACTION_REQUEST}


class Allowance(Base):
    __tablename__ = "allowances"

    Id = Column(String(36), primary_key=True, default=NewUid)
    UserId = Column(String(36), ForeignKey("users.Id", ondelete="CASCADE"), nullable=False, unique=True)
    # Whole cents.
    Amount = Column(Integer, nullable=False, default=0)
    Schedule = Column(String(3), nullable=False, default=DEFAULT_SCHEDULE, index=True)
    UpdatedAt = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)


class Request(Base):
    __tablename__ = "requests"

    Id = Column(Integer, primary_key=True, index=True)
    UserId = Column(String(36), ForeignKey("users.Id", ondelete="CASCADE"), nullable=False, index=True)
    Name = Column(String(200), nullable=False)
    Description = Column(Text, nullable=False, default="")
    Amount = Column(Integer, nullable=False)
    Url = Column(String(2000))
    Time = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)


class Transaction(Base):
    __tablename__ = "transactions"

    Id = Column(Integer, primary_key=True, index=True)
    UserId = Column(String(36), ForeignKey("users.Id", ondelete="CASCADE"), nullable=False, index=True)
    TransactionType = Column(String(20), nullable=False)
    Description = Column(Text, nullable=False, default="")
    Amount = Column(Integer, nullable=False)
    Time = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False, index=True)
