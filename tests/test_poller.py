import socket

import pytest

from ginx.poller import IN, OUT, EventPoller


@pytest.fixture
def pair():
    left, right = socket.socketpair()
    yield left, right
    left.close()
    right.close()


@pytest.fixture
def poller():
    with EventPoller(16) as p:
        yield p


def test_readable_event_after_write(poller, pair):
    reader, writer = pair
    poller.add(reader.fileno(), IN)
    writer.send(b"x")
    events = poller.wait(1.0)
    assert [fd for fd, _ in events] == [reader.fileno()]
    assert events[0][1] & IN


def test_no_events_when_idle(poller, pair):
    reader, _writer = pair
    poller.add(reader.fileno(), IN)
    assert poller.wait(0) == []


def test_remove_stops_events(poller, pair):
    reader, writer = pair
    poller.add(reader.fileno(), IN)
    poller.remove(reader.fileno())
    writer.send(b"x")
    assert poller.wait(0) == []


def test_modify_switches_to_writable(poller, pair):
    reader, _writer = pair
    poller.add(reader.fileno(), IN)
    assert poller.wait(0) == []
    poller.modify(reader.fileno(), OUT)
    events = poller.wait(1.0)
    assert events[0][0] == reader.fileno()
    assert events[0][1] & OUT


def test_duplicate_add_raises(poller, pair):
    reader, _writer = pair
    poller.add(reader.fileno(), IN)
    with pytest.raises(FileExistsError):
        poller.add(reader.fileno(), IN)


def test_remove_unknown_raises(poller, pair):
    reader, _writer = pair
    with pytest.raises(FileNotFoundError):
        poller.remove(reader.fileno())


def test_modify_unknown_raises(poller, pair):
    reader, _writer = pair
    with pytest.raises(FileNotFoundError):
        poller.modify(reader.fileno(), OUT)


def test_wait_returns_at_most_max_events(pair):
    first, second = pair
    with EventPoller(1) as p:
        p.add(first.fileno(), OUT)
        p.add(second.fileno(), OUT)
        events = p.wait(1.0)
        assert len(events) == 1
        assert events[0][0] in {first.fileno(), second.fileno()}


def test_max_events_must_be_positive():
    with pytest.raises(ValueError):
        EventPoller(0)


def test_closed_poller_rejects_use(pair):
    reader, _writer = pair
    p = EventPoller(4)
    p.close()
    with pytest.raises(ValueError):
        p.add(reader.fileno(), IN)
    with pytest.raises(ValueError):
        p.wait(0)


def test_context_manager_closes(pair):
    reader, _writer = pair
    with EventPoller(4) as p:
        p.add(reader.fileno(), IN)
    with pytest.raises(ValueError):
        p.wait(0)