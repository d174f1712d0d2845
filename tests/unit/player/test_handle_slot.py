import pytest

from tests.support.stubs import FakePlayerHandle, ManualScheduler
from vibeflo.player.handle import PlayerHandleSlot


@pytest.fixture
def scheduler():
    return ManualScheduler()


@pytest.mark.unit
def test_ready_handle_is_called_immediately(scheduler):
    slot = PlayerHandleSlot(scheduler=scheduler)
    handle = FakePlayerHandle()
    slot.attach(handle)

    assert slot.call("play") is True
    assert handle.calls == [("play", ())]
    assert scheduler.pending == []


@pytest.mark.unit
def test_missing_handle_retries_exactly_once_then_gives_up(scheduler):
    gave_up = []
    slot = PlayerHandleSlot(retry_delay=0.25, scheduler=scheduler, on_give_up=gave_up.append)

    assert slot.call("pause") is False
    assert [delay for delay, _ in scheduler.pending] == [0.25]

    scheduler.run_pending()

    assert gave_up == ["pause"]
    assert scheduler.pending == []


@pytest.mark.unit
def test_handle_attached_before_retry_receives_call(scheduler):
    gave_up = []
    slot = PlayerHandleSlot(scheduler=scheduler, on_give_up=gave_up.append)
    slot.call("seek", 30)

    handle = FakePlayerHandle()
    slot.attach(handle)
    scheduler.run_pending()

    assert handle.calls == [("seek", (30,))]
    assert gave_up == []


@pytest.mark.unit
def test_no_retry_when_disabled(scheduler):
    slot = PlayerHandleSlot(scheduler=scheduler)
    assert slot.call("set_volume", 10, retry=False) is False
    assert scheduler.pending == []


@pytest.mark.unit
def test_raising_handle_is_contained(scheduler):
    class NotReadyYet(FakePlayerHandle):
        def is_ready(self):
            raise RuntimeError("iframe not mounted")

    slot = PlayerHandleSlot(scheduler=scheduler)
    slot.attach(NotReadyYet())

    assert slot.is_ready() is False
    assert slot.call("play") is False


@pytest.mark.unit
def test_detach_clears_the_slot(scheduler):
    slot = PlayerHandleSlot(scheduler=scheduler)
    slot.attach(FakePlayerHandle())
    slot.detach()
    assert slot.handle is None
    assert slot.is_ready() is False
