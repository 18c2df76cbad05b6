import random
from datetime import time

import pytest

from exceptions import IndexOutOfRange
from models import Event
from schedule import Schedule


def make_event(title, start, duration=60, **kwargs):
    return Event(id=title, title=title, room=kwargs.pop("room", "101"), start_time=start,
                 duration=duration, capacity=kwargs.pop("capacity", 10), **kwargs)


def starts(schedule):
    return [event.start_minute for event in schedule]


def test_insert_keeps_start_order():
    schedule = Schedule()
    rng = random.Random(7)
    for n in range(40):
        schedule.insert(make_event(f"e{n}", time(rng.randrange(24), rng.choice([0, 15, 30, 45]))))
        assert starts(schedule) == sorted(starts(schedule))


def test_insert_latest_appends_at_tail():
    schedule = Schedule()
    schedule.insert(make_event("a", time(9)))
    schedule.insert(make_event("b", time(10)))
    assert schedule.insert(make_event("c", time(11))) == 2
    assert schedule.insert(make_event("d", time(11))) == 2
    assert [e.title for e in schedule] == ["a", "b", "d", "c"]


def test_insert_into_empty_schedule():
    schedule = Schedule()
    assert schedule.insert(make_event("a", time(23))) == 0
    assert len(schedule) == 1


def test_index_errors_are_reported():
    schedule = Schedule([make_event("a", time(9))])
    with pytest.raises(IndexOutOfRange):
        schedule.event_at(1)
    with pytest.raises(IndexOutOfRange):
        schedule.remove_at(-1)
    with pytest.raises(IndexOutOfRange):
        schedule.index_of("missing")
    assert len(schedule) == 1


def test_remove_at_returns_event():
    schedule = Schedule([make_event("a", time(9)), make_event("b", time(10))])
    assert schedule.remove_at(0).title == "a"
    assert [e.title for e in schedule] == ["b"]


def test_by_time_interval_partial_overlap():
    schedule = Schedule()
    schedule.insert(make_event("before", time(9, 45), 30))
    schedule.insert(make_event("after", time(10, 15), 45))
    schedule.insert(make_event("spanning", time(9), 120))
    schedule.insert(make_event("outside", time(12), 30))
    matched = schedule.by_time_interval(time(10), time(10, 30))
    assert [e.title for e in matched] == ["before", "after"]
    assert len(schedule) == 4


def test_by_time_interval_excludes_spanning_event():
    schedule = Schedule([make_event("spanning", time(9), 120)])
    assert len(schedule.by_time_interval(time(10), time(10, 30))) == 0


def test_filters_by_host_title_attendee():
    a = make_event("a", time(9), hosts={"h1"}, attendees=["u1"])
    b = make_event("b", time(10), hosts={"h2"})
    schedule = Schedule([a, b])
    assert list(schedule.by_host("h2")) == [b]
    assert list(schedule.by_title("a")) == [a]
    assert list(schedule.by_attendee("u1")) == [a]
    assert list(schedule.by_attendee("nobody")) == []


def test_signup_eligible_skips_full_and_joined():
    joined = make_event("joined", time(9), attendees=["u1"])
    full = make_event("full", time(10), capacity=1, attendees=["u2"])
    open_ = make_event("open", time(11), capacity=2)
    closed = make_event("closed", time(12), capacity=0)
    schedule = Schedule([joined, full, open_, closed])
    assert [e.title for e in schedule.signup_eligible("u1")] == ["open"]


def test_resort_is_stable():
    a = make_event("a", time(9))
    b = make_event("b", time(10))
    c = make_event("c", time(11))
    schedule = Schedule([a, b, c])
    c.start_time = time(9)
    schedule.resort()
    assert [e.title for e in schedule] == ["a", "c", "b"]
