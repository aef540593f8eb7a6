"""Computer scaffold reconciling instruction cadence with the 60 Hz timers."""

from __future__ import annotations

from dataclasses import dataclass, field
import heapq
import logging
import math
import time
from typing import Callable, List, Optional

from chip8emu.errors import Chip8Error

logger = logging.getLogger(__name__)

DEFAULT_CPU_FREQUENCY = 500.0
TIMER_FREQUENCY = 60.0
MAX_LAG_SECONDS = 0.25


class TimeManager:
    """Tracks wall-clock alignment against the emulated clock."""

    def __init__(self, clock: Callable[[], int] = time.perf_counter_ns) -> None:
        self._clock = clock
        self._base_time_ns = clock()

    def now(self) -> int:
        return self._clock()

    def reset(self, clock_count: int, frequency_hz: float, now: Optional[int] = None) -> int:
        if now is None:
            now = self._clock()
        if frequency_hz <= 0:
            self._base_time_ns = now
        else:
            simulated_offset = int((clock_count / frequency_hz) * 1_000_000_000)
            self._base_time_ns = now - simulated_offset
        return self._base_time_ns

    def base_time(self) -> int:
        return self._base_time_ns


@dataclass(order=True)
class _ComputerEvent:
    clock: int
    order: int
    handler: Callable[["Computer"], None] = field(compare=False)
    name: str = field(default="", compare=False)

    def apply(self, computer: "Computer") -> None:
        self.handler(computer)


class EventQueue:
    """Priority queue of events keyed by emulated clock, FIFO within a clock."""

    def __init__(self) -> None:
        self._heap: List[_ComputerEvent] = []

    def add(self, event: _ComputerEvent) -> None:
        heapq.heappush(self._heap, event)

    def pop_ready(self, clock: int) -> List[_ComputerEvent]:
        ready: List[_ComputerEvent] = []
        while self._heap and self._heap[0].clock <= clock:
            ready.append(heapq.heappop(self._heap))
        return ready

    def clear(self) -> None:
        self._heap.clear()


class Computer:
    """Host machine tying together hardware, CPU and the timer cadence.

    ``clock_count`` counts instruction slots. Each slot gives the CPU one
    ``step()``; timer ticks are queued as events every
    ``cpu_clock_frequency / 60`` slots, so they keep firing while the CPU
    reports that it is waiting for a key.
    """

    STATUS_RUNNING = 0
    STATUS_PAUSED = 1
    STATUS_STOPPED = 2

    def __init__(
        self,
        hardware: object,
        *,
        cpu_clock_frequency: float = DEFAULT_CPU_FREQUENCY,
        clock: Callable[[], int] = time.perf_counter_ns,
    ) -> None:
        if cpu_clock_frequency <= 0:
            raise ValueError("frequency must be positive")
        self.hardware = hardware
        self.cpu_clock_frequency = cpu_clock_frequency
        self.timer_frequency = TIMER_FREQUENCY
        self.clock_count: int = 0
        self.base_time: int = 0
        self.single_step: bool = False
        self._cpu: Optional[object] = None
        self._running_status: int = self.STATUS_STOPPED
        self._event_queue = EventQueue()
        self._event_counter = 0
        self._timer_ticks = 0
        self._timer_active = False
        self._timer_generation = 0
        self._time_manager = TimeManager(clock)
        self.base_time = self._time_manager.reset(self.clock_count, self.cpu_clock_frequency)

    # ------------------------------------------------------------------
    # CPU integration
    # ------------------------------------------------------------------
    @property
    def cpu(self) -> Optional[object]:
        return self._cpu

    def set_cpu(self, cpu: object) -> None:
        self._cpu = cpu

    def tick(self, cycles: int) -> int:
        """Run up to ``cycles`` instruction slots and return how many ran."""

        if cycles <= 0:
            return 0
        self._process_events()
        executed = 0
        while executed < cycles and self._running_status == self.STATUS_RUNNING:
            self._run_slot()
            executed += 1
            if self.single_step and self._running_status == self.STATUS_RUNNING:
                self._apply_pause()
        return executed

    def step_instruction(self) -> bool:
        """Run exactly one slot while paused, as used by single-step mode."""

        if self._running_status == self.STATUS_STOPPED:
            return False
        self._process_events()
        self._run_slot()
        return True

    def _run_slot(self) -> None:
        if self._cpu is not None:
            try:
                self._cpu.step()
            except Chip8Error:
                self._apply_power_off()
                raise
        self.clock_count += 1
        self._process_events()

    def sync(self, now_ns: Optional[int] = None) -> int:
        """Catch the emulated clock up with wall-clock time."""

        if self._running_status != self.STATUS_RUNNING:
            return 0
        now = self._time_manager.now() if now_ns is None else now_ns
        target = int((now - self.base_time) * self.cpu_clock_frequency / 1_000_000_000)
        due = target - self.clock_count
        max_lag = max(1, int(MAX_LAG_SECONDS * self.cpu_clock_frequency))
        if due > max_lag:
            logger.debug("dropping %d slots of lag", due - max_lag)
            due = max_lag
            self.base_time = self._time_manager.reset(self.clock_count + max_lag, self.cpu_clock_frequency, now)
        return self.tick(due)

    # ------------------------------------------------------------------
    # Timers
    # ------------------------------------------------------------------
    def tick_timers(self) -> None:
        timers = getattr(self.hardware, "timers", None)
        if timers is None:
            return
        timers.tick()
        beeper = getattr(self.hardware, "beeper", None)
        if beeper is not None:
            beeper.update(timers.sound_active)

    def _next_timer_clock(self) -> int:
        ticks = self._timer_ticks + 1
        return math.ceil(ticks * self.cpu_clock_frequency / self.timer_frequency)

    def _schedule_timer(self) -> None:
        generation = self._timer_generation
        self._schedule_at(
            self._next_timer_clock(),
            lambda comp: comp._timer_event(generation),
            name="timers.tick",
        )

    def _timer_event(self, generation: int) -> None:
        # Events popped before a reset may still fire; only the live chain counts.
        if not self._timer_active or generation != self._timer_generation:
            return
        self.tick_timers()
        self._timer_ticks += 1
        self._schedule_timer()

    def _start_periodic_tasks(self) -> None:
        if self._timer_active:
            return
        self._timer_active = True
        self._timer_generation += 1
        self._schedule_timer()

    def _stop_periodic_tasks(self) -> None:
        self._timer_active = False
        self._event_queue.clear()

    # ------------------------------------------------------------------
    # Control lifecycle
    # ------------------------------------------------------------------
    def power_on(self) -> None:
        self._run_reset()
        self._running_status = self.STATUS_RUNNING
        self.base_time = self._time_manager.reset(self.clock_count, self.cpu_clock_frequency)
        self._start_periodic_tasks()

    def power_off(self) -> None:
        if self._running_status == self.STATUS_STOPPED:
            return
        self._schedule_event(lambda comp: comp._apply_power_off(), name="powerOff")

    def reset(self) -> None:
        self._schedule_event(lambda comp: comp._run_reset(), name="reset")

    def pause(self) -> None:
        if self._running_status != self.STATUS_RUNNING:
            return
        self._schedule_event(lambda comp: comp._apply_pause(), name="pause")

    def resume(self) -> None:
        if self._running_status != self.STATUS_PAUSED:
            return
        self._schedule_event(lambda comp: comp._apply_resume(), name="resume")

    def get_running_status(self) -> int:
        return self._running_status

    @property
    def running(self) -> bool:
        return self._running_status == self.STATUS_RUNNING

    # ------------------------------------------------------------------
    # Event dispatch helpers
    # ------------------------------------------------------------------
    def _process_events(self) -> None:
        # Handlers may schedule more work at the current clock (below 60 Hz
        # several timer ticks share one slot); drain until nothing is due.
        while True:
            ready = self._event_queue.pop_ready(self.clock_count)
            if not ready:
                return
            for event in ready:
                event.apply(self)

    def _schedule_at(self, clock: int, handler: Callable[["Computer"], None], *, name: str = "") -> None:
        event = _ComputerEvent(max(clock, 0), self._event_counter, handler, name)
        self._event_counter += 1
        self._event_queue.add(event)

    def _schedule_event(self, handler: Callable[["Computer"], None], delay_cycles: int = 0, *, name: str = "") -> None:
        event_clock = self.clock_count + max(delay_cycles, 0)
        self._schedule_at(event_clock, handler, name=name)
        if event_clock <= self.clock_count:
            self._process_events()

    def _run_reset(self) -> None:
        active = self._timer_active
        self._stop_periodic_tasks()
        self.clock_count = 0
        self._timer_ticks = 0
        self.base_time = self._time_manager.reset(self.clock_count, self.cpu_clock_frequency)
        if self._cpu is not None and hasattr(self._cpu, "reset"):
            self._cpu.reset()
        self._reset_hardware()
        if active:
            self._start_periodic_tasks()

    def _reset_hardware(self) -> None:
        timers = getattr(self.hardware, "timers", None)
        if timers is not None:
            timers.reset()

    def _apply_pause(self) -> None:
        if self._running_status != self.STATUS_RUNNING:
            return
        self._running_status = self.STATUS_PAUSED

    def _apply_resume(self) -> None:
        if self._running_status == self.STATUS_RUNNING:
            return
        self._running_status = self.STATUS_RUNNING
        self.base_time = self._time_manager.reset(self.clock_count, self.cpu_clock_frequency)

    def _apply_power_off(self) -> None:
        self._running_status = self.STATUS_STOPPED
        self._stop_periodic_tasks()
