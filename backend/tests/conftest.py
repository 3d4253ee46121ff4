from types import SimpleNamespace

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from allo.db import Base
from allo.modules.auth.models import ROLE_CHILD, ROLE_PARENT, Family, User
from allo.modules.family.models import Allowance
from allo.modules.tasks import models as tasks_models  # noqa: F401


@pytest.fixture(autouse=True)
def _jwt_secret(monkeypatch):
    monkeypatch.setenv("JWT_SECRET_KEY", "test-secret")
    monkeypatch.setenv("JWT_ACCESS_TTL_MINUTES", "60")


@pytest.fixture
def session_factory():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    factory = sessionmaker(bind=engine, autocommit=False, autoflush=False)
    yield factory
    engine.dispose()


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def household(db):
    family = Family(Name="Nguyen")
    db.add(family)
    db.flush()

    def _member(name: str, role: str) -> User:
        record = User(FamilyId=family.Id, Role=role, Name=name, Email=f"{name.lower()}@example.com")
        db.add(record)
        db.flush()
        return record

    parent_a = _member("Mai", ROLE_PARENT)
    parent_b = _member("Tuan", ROLE_PARENT)
    child_a = _member("Linh", ROLE_CHILD)
    child_b = _member("Bao", ROLE_CHILD)
    db.add(Allowance(UserId=child_a.Id, Amount=500, Schedule="Sat"))
    db.add(Allowance(UserId=child_b.Id, Amount=300, Schedule="Mon"))

    other = Family(Name="Okafor")
    db.add(other)
    db.flush()
    outsider = User(FamilyId=other.Id, Role=ROLE_PARENT, Name="Chidi", Email="chidi@example.com")
    db.add(outsider)
    db.commit()

    return SimpleNamespace(
        FamilyId=family.Id,
        ParentA=parent_a.Id,
        ParentB=parent_b.Id,
        ChildA=child_a.Id,
        ChildB=child_b.Id,
        Members={parent_a.Id, parent_b.Id, child_a.Id, child_b.Id},
        Parents={parent_a.Id, parent_b.Id},
        OtherFamilyId=other.Id,
        Outsider=outsider.Id,
    )
