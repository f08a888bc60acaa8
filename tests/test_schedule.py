import random

from app.stream_splicer import SpliceSchedule
from tests.fakes import TrackingProducer


def test_drain_orders_by_offset_then_registration() -> None:
    schedule = SpliceSchedule()
    producers = {
        name: TrackingProducer(name.encode()) for name in ["c", "a1", "b", "a2", "z", "a3"]
    }
    schedule.add(9, producers["c"])
    schedule.add(1, producers["a1"])
    schedule.add(4, producers["b"])
    schedule.add(1, producers["a2"])
    schedule.add(100, producers["z"])
    schedule.add(1, producers["a3"])

    assert schedule.offsets() == [1, 1, 1, 4, 9, 100]
    drained = [(offset, producer.data) for offset, producer in schedule.drain()]

    assert drained == [
        (1, b"a1"),
        (1, b"a2"),
        (1, b"a3"),
        (4, b"b"),
        (9, b"c"),
        (100, b"z"),
    ]
    assert len(schedule) == 0


def test_add_does_not_read_producers() -> None:
    schedule = SpliceSchedule()
    producer = TrackingProducer(b"untouched")
    schedule.add(3, producer)
    assert producer.requests == []


def test_close_releases_only_undrained_producers() -> None:
    schedule = SpliceSchedule()
    first = TrackingProducer(b"1")
    second = TrackingProducer(b"2")
    third = TrackingProducer(b"3")
    schedule.add(0, first)
    schedule.add(5, second)
    schedule.add(7, third)

    drain = schedule.drain()
    offset, taken = next(drain)
    assert (offset, taken) == (0, first)
    assert len(schedule) == 2

    schedule.close()

    assert not first.closed
    assert second.closed
    assert third.closed
    assert len(schedule) == 0


def test_large_shuffled_schedule_drains_in_order() -> None:
    rng = random.Random(7)
    schedule = SpliceSchedule()
    registered = []
    for index in range(20000):
        offset = rng.randrange(0, 500)
        producer = TrackingProducer(str(index).encode())
        registered.append((offset, index, producer))
        schedule.add(offset, producer)

    drained = list(schedule.drain())

    expected = sorted(registered, key=lambda item: (item[0], item[1]))
    assert [offset for offset, _ in drained] == [offset for offset, _, _ in expected]
    assert all(
        got is want for (_, got), (_, _, want) in zip(drained, expected)
    )
    assert len(schedule) == 0
