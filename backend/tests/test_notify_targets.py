from contextlib import nullcontext
from types import SimpleNamespace

from sqlalchemy import literal_column

from allo.modules.auth.models import Family, User
from allo.modules.notify import targets as targets_module
from allo.modules.notify.targets import (
    FamilyTarget,
    MemberAndParentsTarget,
    MemberTarget,
    ParentsTarget,
    ResolveRecipients,
)


def test_member_target_includes_the_actor(db, household):
    target = MemberTarget(household.ChildA)

    assert ResolveRecipients(db, target, household.ChildA) == {household.ChildA}
    assert ResolveRecipients(db, target, household.ParentA) == {household.ChildA}


def test_family_target_is_every_member_but_the_actor(db, household):
    for actor in household.Members:
        recipients = ResolveRecipients(db, FamilyTarget(household.FamilyId), actor)
        assert recipients == household.Members - {actor}


def test_family_target_from_outside_the_family_reaches_everyone(db, household):
    recipients = ResolveRecipients(db, FamilyTarget(household.FamilyId), household.Outsider)
    assert recipients == household.Members


def test_parents_target_never_reaches_children(db, household):
    for actor in household.Members:
        recipients = ResolveRecipients(db, ParentsTarget(household.FamilyId), actor)
        assert recipients <= household.Parents
        assert actor not in recipients
        assert recipients == household.Parents - {actor}


def test_member_and_parents_target(db, household):
    target = MemberAndParentsTarget(household.ChildA, household.FamilyId)

    assert ResolveRecipients(db, target, household.ParentA) == {household.ChildA, household.ParentB}
    assert ResolveRecipients(db, target, household.ChildA) == household.Parents
    assert ResolveRecipients(db, target, household.ChildB) == household.Parents | {household.ChildA}


def test_unknown_family_resolves_to_nobody(db, household):
    assert ResolveRecipients(db, FamilyTarget("missing"), household.ParentA) == set()
    assert ResolveRecipients(db, ParentsTarget("missing"), household.ParentA) == set()


def test_membership_read_failure_resolves_to_nobody(caplog):
    def _broken_query(*args, **kwargs):
        raise RuntimeError("database went away")

    db = SimpleNamespace(query=_broken_query, begin_nested=nullcontext)

    with caplog.at_level("ERROR", logger="notify.targets"):
        recipients = ResolveRecipients(db, FamilyTarget("f-1"), "u-1")

    assert recipients == set()
    assert "failed to load family members" in caplog.text


def test_failed_membership_read_keeps_the_surrounding_transaction(monkeypatch, db, household):
    db.add(Family(Name="Pending"))
    db.flush()
    broken_user = SimpleNamespace(
        Id=literal_column("NoSuchColumn"),
        Role=literal_column("NoSuchColumn"),
        FamilyId=User.FamilyId,
    )
    monkeypatch.setattr(targets_module, "User", broken_user)

    assert ResolveRecipients(db, FamilyTarget(household.FamilyId), household.ParentA) == set()

    db.commit()
    assert db.query(Family).filter(Family.Name == "Pending").count() == 1
