import uuid
from datetime import datetime

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import relationship

from allo.db import Base

ROLE_PARENT = "Parent"
ROLE_CHILD = "Child"
ROLES = {ROLE_PARENT, ROLE_CHILD}


def NewUid() -> str:
    return str(uuid.uuid4())


class Family(Base):
    __tablename__ = "families"

    Id = Column(String(36), primary_key=True, default=NewUid)
    Name = Column(String(120), nullable=False)
    CreatedAt = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)

    Members = relationship("User", back_populates="Family", cascade="all, delete-orphan")


class User(Base):
    __tablename__ = "users"

    Id = Column(String(36), primary_key=True, default=NewUid)
    FamilyId = Column(String(36), ForeignKey("families.Id", ondelete="CASCADE"), nullable=False, index=True)
    Role = Column(String(20), nullable=False, default=ROLE_CHILD)
    Name = Column(String(120), nullable=False)
    Email = Column(String(254), unique=True)
    PasswordHash = Column(String(255))
    SessionVersion = Column(Integer, nullable=False, default=0)
    CreatedAt = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)

    Family = relationship("Family", back_populates="Members")
