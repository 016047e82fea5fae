from __future__ import annotations
import heapq
from dataclasses import dataclass, field
from typing import Callable, List


class ScheduleError(RuntimeError):
    pass


@dataclass(order=True)
class ScheduledEvent:
    time: float
    order: int
    callback: Callable[[], None] = field(compare=False)
    label: str = field(default='', compare=False)


class Schedule:
    """
    Time-ordered queue of callbacks. Events fire in non-decreasing time order,
    events scheduled for the same time fire in the order they were inserted.
    Once sealed nothing else runs.
    """
    def __init__(self, start_time: float = 0.0):
        self.time = start_time
        self.steps = 0
        self.sealed = False
        self._queue: List[ScheduledEvent] = []
        self._counter = 0

    def __len__(self):
        return len(self._queue)

    def schedule_once(self, time: float, callback: Callable[[], None], label: str = '') -> ScheduledEvent:
        if self.sealed:
            raise ScheduleError("cannot schedule on a sealed schedule")
        if time < self.time:
            raise ScheduleError(f"cannot schedule at {time}, current time is {self.time}")

        event = ScheduledEvent(time, self._counter, callback, label)
        self._counter += 1
        heapq.heappush(self._queue, event)
        return event

    def schedule_once_in(self, delay: float, callback: Callable[[], None], label: str = '') -> ScheduledEvent:
        if delay < 0:
            raise ScheduleError(f"negative delay {delay}")
        return self.schedule_once(self.time + delay, callback, label)

    def seal(self):
        self.sealed = True
        self._queue.clear()

    def peek_time(self) -> float | None:
        return self._queue[0].time if self._queue else None

    def step(self) -> bool:
        """Run the next event. Returns False when there is nothing left to run."""
        if self.sealed or not self._queue:
            return False

        event = heapq.heappop(self._queue)
        self.time = event.time
        self.steps += 1
        event.callback()
        return True

    def run(self, until: float | None = None):
        while self._queue and not self.sealed:
            if until is not None and self._queue[0].time > until:
                break
            self.step()
