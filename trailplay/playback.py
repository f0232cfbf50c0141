"""
Playback Timeline Engine

``PlaybackController`` is the single state container for playback. It owns
an immutable PlaybackState, publishes every committed change to its
subscribers, and resolves positions through the current Timeline.

``AnimationLoop`` drives a controller frame by frame on any scheduler that
offers ``call_later(delay, callback)`` (an asyncio event loop does). Every
time jump bumps the controller's epoch; a frame started under an older epoch
is discarded and the loop re-bases its clock.
"""

import dataclasses
import logging
import math
import time
from typing import Callable, List, Optional, Tuple

from . import constants
from .journey import Timeline
from .models import PlaybackState, PlaybackStatus, Position

logger = logging.getLogger(__name__)

Listener = Callable[[PlaybackState], None]


class PlaybackController:
    """
    Play/pause/seek state machine over a timeline.

    Args:
        timeline_provider: Called by ``refresh()`` to obtain the current
            Timeline (e.g. after tracks or the journey change).
    """

    def __init__(self, timeline_provider: Callable[[], Timeline] = Timeline):
        self._timeline_provider = timeline_provider
        self._timeline = Timeline()
        self._state = PlaybackState()
        self._listeners: List[Listener] = []
        self.epoch = 0
        self.refresh()

    @property
    def state(self) -> PlaybackState:
        return self._state

    @property
    def timeline(self) -> Timeline:
        return self._timeline

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a listener; returns a callable that removes it."""
        self._listeners.append(listener)

        def unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _commit(self, **changes) -> bool:
        state = dataclasses.replace(self._state, **changes)
        total = self._timeline.total_duration
        current = min(max(state.current_time, 0.0), total)
        segment_index, segment_progress = self._timeline.locate(current)
        state = dataclasses.replace(
            state,
            current_time=current,
            total_duration=total,
            progress=self._timeline.progress_at(current),
            current_segment_index=segment_index,
            segment_progress=segment_progress,
            duration_estimated=self._timeline.duration_estimated,
        )

        if state == self._state:
            return False

        if state.status is not self._state.status:
            logger.debug("Playback %s -> %s", self._state.status.value, state.status.value)
        self._state = state
        for listener in list(self._listeners):
            listener(state)
        return True

    def refresh(self) -> PlaybackState:
        """
        Rebuild the timeline from the provider and re-fit the state to it.

        The current time is clamped to the new total. An empty timeline
        returns playback to idle; an ended playback whose new total lies
        beyond the current time becomes paused.
        """
        self._timeline = self._timeline_provider()
        total = self._timeline.total_duration
        status = self._state.status
        current = min(self._state.current_time, total)

        if total <= 0:
            status = PlaybackStatus.IDLE
            current = 0.0
        elif status is PlaybackStatus.ENDED and current < total:
            status = PlaybackStatus.PAUSED

        if current != self._state.current_time:
            self.epoch += 1
        self._commit(status=status, current_time=current)
        return self._state

    def play(self) -> None:
        """Start playing; rewinds first when playback has ended. No-op on an empty timeline."""
        if self._timeline.total_duration <= 0 or self._state.is_playing:
            return
        if self._state.status is PlaybackStatus.ENDED or self._state.current_time >= self._timeline.total_duration:
            self.epoch += 1
            self._commit(status=PlaybackStatus.PLAYING, current_time=0.0)
            return
        self._commit(status=PlaybackStatus.PLAYING)

    def pause(self) -> None:
        if self._state.is_playing:
            self._commit(status=PlaybackStatus.PAUSED)

    def toggle(self) -> None:
        if self._state.is_playing:
            self.pause()
        else:
            self.play()

    def seek(self, time_ms: float) -> None:
        """
        Jump to ``time_ms``, clamped to [0, total_duration].

        The play state is kept, except that an ended playback becomes paused
        when the target lies before the end. Seeking to the current time
        changes nothing.

        Raises:
            ValueError: If ``time_ms`` is not a finite number.
        """
        time_ms = float(time_ms)
        if not math.isfinite(time_ms):
            raise ValueError(f"Seek target must be finite, got {time_ms}")
        total = self._timeline.total_duration
        target = min(max(time_ms, 0.0), total)
        if target == self._state.current_time:
            return

        status = self._state.status
        if status is PlaybackStatus.ENDED and target < total:
            status = PlaybackStatus.PAUSED

        self.epoch += 1
        self._commit(status=status, current_time=target)

    def seek_to_progress(self, progress: float) -> None:
        progress = float(progress)
        if not math.isfinite(progress):
            raise ValueError(f"Seek progress must be finite, got {progress}")
        progress = min(max(progress, 0.0), 1.0)
        self.seek(progress * self._timeline.total_duration)

    def set_speed(self, multiplier: float) -> None:
        """
        Set the playback rate multiplier.

        Raises:
            ValueError: If ``multiplier`` is not positive.
        """
        if not multiplier > 0:
            raise ValueError(f"Playback speed must be positive, got {multiplier}")
        self._commit(speed=float(multiplier))

    def restart(self) -> None:
        self.seek(0.0)
        self.play()

    def skip_forward(self, seconds: float = constants.DEFAULT_SKIP_SECONDS) -> None:
        self.seek(self._state.current_time + seconds * 1000.0)

    def skip_backward(self, seconds: float = constants.DEFAULT_SKIP_SECONDS) -> None:
        self.seek(self._state.current_time - seconds * 1000.0)

    def advance(self, delta_ms: float, epoch: Optional[int] = None) -> bool:
        """
        Advance playback by ``delta_ms`` of wall time, scaled by the speed.

        Reaching or passing the end clamps exactly to the total duration and
        ends playback.

        Args:
            delta_ms: Elapsed wall time in ms.
            epoch: Epoch the caller's clock is based on. A stale epoch means
                a seek happened since, and the tick is discarded.

        Returns:
            True when the tick was applied.
        """
        if epoch is not None and epoch != self.epoch:
            return False
        if not self._state.is_playing:
            return False

        total = self._timeline.total_duration
        target = self._state.current_time + max(0.0, delta_ms) * self._state.speed
        if target >= total:
            self._commit(status=PlaybackStatus.ENDED, current_time=total)
        else:
            self._commit(current_time=target)
        return True

    def position(self, time_ms: Optional[float] = None) -> Optional[Position]:
        return self._timeline.position_at_time(self._resolve_time(time_ms))

    def bearing(self, time_ms: Optional[float] = None) -> float:
        return self._timeline.bearing_at_time(self._resolve_time(time_ms))

    def completed_coordinates(self, time_ms: Optional[float] = None) -> List[Tuple[float, float]]:
        return self._timeline.completed_coordinates(self._resolve_time(time_ms))

    def _resolve_time(self, time_ms: Optional[float]) -> float:
        return self._state.current_time if time_ms is None else time_ms


class AnimationLoop:
    """
    Frame scheduler that advances a PlaybackController while it plays.

    Args:
        controller: Controller to drive.
        scheduler: Object with ``call_later(delay_s, callback)`` returning a
            handle with ``cancel()``.
        clock: Monotonic clock in seconds.
        frame_interval: Delay between frames in seconds.
    """

    def __init__(self, controller: PlaybackController, scheduler,
                 clock: Callable[[], float] = time.monotonic,
                 frame_interval: float = constants.FRAME_INTERVAL_S):
        self.controller = controller
        self.scheduler = scheduler
        self.clock = clock
        self.frame_interval = frame_interval
        self._handle = None
        self._in_frame = False
        self._last_tick = 0.0
        self._epoch = controller.epoch
        self._unsubscribe = controller.subscribe(self._on_state)
        if controller.state.is_playing:
            self._start()

    @property
    def running(self) -> bool:
        return self._handle is not None

    def _start(self) -> None:
        self._last_tick = self.clock()
        self._epoch = self.controller.epoch
        self._schedule()

    def _schedule(self) -> None:
        self._handle = self.scheduler.call_later(self.frame_interval, self._frame)

    def _cancel(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    def _on_state(self, state: PlaybackState) -> None:
        if self._in_frame:
            return
        if state.is_playing and self._handle is None:
            self._start()
        elif not state.is_playing:
            self._cancel()

    def _frame(self) -> None:
        self._handle = None
        if not self.controller.state.is_playing:
            return

        now = self.clock()
        if self.controller.epoch != self._epoch:
            # Time jumped since the last frame
            self._epoch = self.controller.epoch
            self._last_tick = now
            self._schedule()
            return

        delta_ms = (now - self._last_tick) * 1000.0
        self._last_tick = now
        self._in_frame = True
        try:
            self.controller.advance(delta_ms, epoch=self._epoch)
        finally:
            self._in_frame = False

        if self.controller.state.is_playing:
            self._schedule()

    def close(self) -> None:
        """Stop scheduling frames and detach from the controller."""
        self._cancel()
        self._unsubscribe()
