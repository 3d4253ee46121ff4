from contextlib import nullcontext
from types import SimpleNamespace

from allo.modules.notify.channels.base import ChannelBackend
from allo.modules.notify.channels.fixture import FixtureChannelBackend
from allo.modules.notify.dispatcher import DispatchRequest, NotificationDispatcher
from allo.modules.notify.events import LogoutEvent, PingEvent
from allo.modules.notify.targets import FamilyTarget, MemberTarget, ParentsTarget


class _RecordingBackend(ChannelBackend):
    Name = "recording"

    def __init__(self, fail_on=None, error=None):
        self.Published = []
        self._fail_on = fail_on or set()
        self._error = error

    def Publish(self, channel, event):
        if channel in self._fail_on:
            raise self._error
        self.Published.append((channel, event))

    async def Subscribe(self, channel):
        raise NotImplementedError


def test_send_publishes_once_per_recipient_on_their_own_channel(db, household):
    backend = _RecordingBackend()
    dispatcher = NotificationDispatcher(backend)

    delivered = dispatcher.Send(db, DispatchRequest(FamilyTarget(household.FamilyId), PingEvent()), household.ParentA)

    assert delivered == 3
    assert sorted(channel for channel, _ in backend.Published) == sorted(household.Members - {household.ParentA})
    assert all(event == PingEvent() for _, event in backend.Published)


def test_send_to_single_member(db, household):
    backend = _RecordingBackend()
    dispatcher = NotificationDispatcher(backend)

    dispatcher.Send(db, DispatchRequest(MemberTarget(household.ChildA), LogoutEvent()), household.ChildA)

    assert backend.Published == [(household.ChildA, LogoutEvent())]


def test_send_never_raises_when_every_publish_fails(db, household, caplog):
    backend = FixtureChannelBackend()
    dispatcher = NotificationDispatcher(backend)

    with caplog.at_level("ERROR", logger="notify.dispatch"):
        delivered = dispatcher.Send(
            db,
            DispatchRequest(FamilyTarget(household.FamilyId), PingEvent()),
            household.ChildB,
        )

    assert delivered == 0
    # Every recipient was still attempted.
    assert {channel for channel, _ in backend.Published} == household.Members - {household.ChildB}
    assert "failed to publish event" in caplog.text


def test_one_failing_recipient_does_not_stop_the_others(db, household):
    backend = _RecordingBackend(fail_on={household.ParentA}, error=RuntimeError("boom"))
    dispatcher = NotificationDispatcher(backend)

    delivered = dispatcher.Send(
        db,
        DispatchRequest(ParentsTarget(household.FamilyId), PingEvent()),
        household.ChildA,
    )

    assert delivered == 1
    assert backend.Published == [(household.ParentB, PingEvent())]


def test_resolution_failure_publishes_nothing():
    backend = _RecordingBackend()
    dispatcher = NotificationDispatcher(backend)

    def _broken_query(*args, **kwargs):
        raise RuntimeError("database went away")

    delivered = dispatcher.Send(
        SimpleNamespace(query=_broken_query, begin_nested=nullcontext),
        DispatchRequest(FamilyTarget("f-1"), PingEvent()),
        "u-1",
    )

    assert delivered == 0
    assert backend.Published == []


def test_unknown_target_is_logged_not_raised(db, caplog):
    backend = _RecordingBackend()
    dispatcher = NotificationDispatcher(backend)

    with caplog.at_level("ERROR", logger="notify.dispatch"):
        delivered = dispatcher.Send(db, DispatchRequest(SimpleNamespace(FamilyId="f-1"), PingEvent()), "u-1")

    assert delivered == 0
    assert backend.Published == []
    assert "failed to resolve recipients" in caplog.text
