import pytest

from event_queue import Schedule, ScheduleError


def test_events_fire_in_time_order():
    schedule = Schedule()
    fired = []
    schedule.schedule_once(3.0, lambda: fired.append('c'))
    schedule.schedule_once(1.0, lambda: fired.append('a'))
    schedule.schedule_once(2.0, lambda: fired.append('b'))

    schedule.run()

    assert fired == ['a', 'b', 'c']
    assert schedule.time == 3.0
    assert schedule.steps == 3


def test_ties_fire_in_insertion_order():
    schedule = Schedule()
    fired = []
    for name in 'xyz':
        schedule.schedule_once(5.0, lambda name=name: fired.append(name))

    schedule.run()

    assert fired == ['x', 'y', 'z']


def test_schedule_once_in_is_relative_to_now():
    schedule = Schedule()
    times = []

    def tick():
        times.append(schedule.time)
        if len(times) < 3:
            schedule.schedule_once_in(1.5, tick)

    schedule.schedule_once(0.5, tick)
    schedule.run()

    assert times == [0.5, 2.0, 3.5]


def test_cannot_schedule_into_the_past():
    schedule = Schedule()
    schedule.schedule_once(4.0, lambda: None)
    schedule.step()

    with pytest.raises(ScheduleError):
        schedule.schedule_once(3.0, lambda: None)
    with pytest.raises(ScheduleError):
        schedule.schedule_once_in(-1, lambda: None)


def test_seal_stops_everything():
    schedule = Schedule()
    fired = []
    schedule.schedule_once(1.0, schedule.seal)
    schedule.schedule_once(2.0, lambda: fired.append('late'))

    schedule.run()

    assert fired == []
    assert schedule.sealed
    assert len(schedule) == 0
    assert schedule.step() is False
    with pytest.raises(ScheduleError):
        schedule.schedule_once_in(1, lambda: None)


def test_run_until_leaves_later_events_queued():
    schedule = Schedule()
    fired = []
    schedule.schedule_once(1.0, lambda: fired.append(1))
    schedule.schedule_once(10.0, lambda: fired.append(10))

    schedule.run(until=5.0)

    assert fired == [1]
    assert schedule.peek_time() == 10.0


def test_step_on_empty_schedule():
    schedule = Schedule()
    assert schedule.step() is False
    assert schedule.peek_time() is None
