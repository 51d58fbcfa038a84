"""Service keeping the transcript panel in step with audio playback."""

from __future__ import annotations

import logging
import math
import time
from typing import Callable, Sequence

from practice_app.constants.attempt_constants import USER_SCROLL_SUPPRESSION_SECONDS
from practice_app.core.models import Cue, PlaybackState

logger = logging.getLogger(__name__)


def resolve_active_cue(cues: Sequence[Cue], current_time: float) -> int:
    """Index of the first cue with ``start <= current_time < end``, else -1."""
    for index, cue in enumerate(cues):
        if cue.contains(current_time):
            return index
    return -1


class PlaybackSynchronizer:
    """Tracks the media position and drives transcript highlighting.

    The media element and the transcript panel are reached only through the
    callbacks handed in by the owning view:

    * ``on_active_cue_change(index)`` whenever the highlighted cue changes
    * ``on_scroll_to_cue(index)`` when the panel should scroll the cue into view
    * ``on_seek(seconds)``, ``on_play()``, ``on_pause()`` to command the media

    Auto-scroll is suppressed for a rolling window after any manual scroll
    or touch so the panel does not fight a user who is reading ahead.
    """

    def __init__(
        self,
        cues: Sequence[Cue],
        *,
        on_active_cue_change: Callable[[int], None] | None = None,
        on_scroll_to_cue: Callable[[int], None] | None = None,
        on_seek: Callable[[float], None] | None = None,
        on_play: Callable[[], None] | None = None,
        on_pause: Callable[[], None] | None = None,
        suppression_seconds: float = USER_SCROLL_SUPPRESSION_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._cues: tuple[Cue, ...] = tuple(cues)
        self._state = PlaybackState()
        self._on_active_cue_change = on_active_cue_change
        self._on_scroll_to_cue = on_scroll_to_cue
        self._on_seek = on_seek
        self._on_play = on_play
        self._on_pause = on_pause
        self._suppression_seconds = suppression_seconds
        self._clock = clock
        self._last_user_scroll_at: float | None = None
        self._pending_scroll_index: int | None = None

    @property
    def cues(self) -> tuple[Cue, ...]:
        return self._cues

    @property
    def state(self) -> PlaybackState:
        return self._state

    @property
    def active_cue(self) -> Cue | None:
        index = self._state.active_cue_index
        return self._cues[index] if index >= 0 else None

    # --- Media events ---

    def update_position(self, current_time: float) -> int:
        """Handle a time update from the media element; returns the active index."""
        self._state.current_time = max(0.0, current_time)
        self._refresh_active_cue()
        return self._state.active_cue_index

    def set_duration(self, duration: float | None) -> None:
        if duration is None or not math.isfinite(duration) or duration <= 0:
            self._state.duration = None
            return
        self._state.duration = duration

    def on_ended(self) -> None:
        self._state.is_playing = False

    # --- User actions ---

    def play(self) -> None:
        if self._state.is_playing:
            return
        self._state.is_playing = True
        if self._on_play is not None:
            self._on_play()

    def pause(self) -> None:
        if not self._state.is_playing:
            return
        self._state.is_playing = False
        if self._on_pause is not None:
            self._on_pause()

    def seek_to(self, seconds: float, *, play: bool = False) -> None:
        """Move playback to ``seconds``; resumes playback only when ``play`` is set."""
        target = max(0.0, seconds)
        if self._state.duration is not None:
            target = min(target, self._state.duration)
        self._state.current_time = target
        if self._on_seek is not None:
            self._on_seek(target)
        self._refresh_active_cue()
        if play:
            self.play()

    def seek_to_fraction(self, fraction: float) -> None:
        """Scrub-bar seek; never resumes playback."""
        if self._state.duration is None:
            return
        clamped = max(0.0, min(1.0, fraction))
        self.seek_to(clamped * self._state.duration)

    def jump_to_cue(self, index: int) -> None:
        """Clicking a cue seeks to its start and resumes playback."""
        if not 0 <= index < len(self._cues):
            raise IndexError(f"Cue index {index} out of range")
        self.seek_to(self._cues[index].start, play=True)

    def restart(self) -> None:
        self.seek_to(0.0, play=True)

    def note_user_scroll(self) -> None:
        """Record a manual scroll or touch; restarts the suppression window."""
        self._last_user_scroll_at = self._clock()

    def is_auto_scroll_suppressed(self) -> bool:
        if self._last_user_scroll_at is None:
            return False
        return self._clock() - self._last_user_scroll_at < self._suppression_seconds

    # --- Internals ---

    def _refresh_active_cue(self) -> None:
        index = resolve_active_cue(self._cues, self._state.current_time)
        if index == self._state.active_cue_index:
            # A scroll held back by the suppression window is delivered once it elapses.
            if self._pending_scroll_index == index and not self.is_auto_scroll_suppressed():
                self._scroll_to(index)
            return
        self._state.active_cue_index = index
        if self._on_active_cue_change is not None:
            self._on_active_cue_change(index)
        if index < 0:
            self._pending_scroll_index = None
            return
        if self.is_auto_scroll_suppressed():
            logger.debug("Auto-scroll to cue %d suppressed by recent user scroll", index)
            self._pending_scroll_index = index
            return
        self._scroll_to(index)

    def _scroll_to(self, index: int) -> None:
        self._pending_scroll_index = None
        if self._on_scroll_to_cue is not None:
            self._on_scroll_to_cue(index)


def format_position(seconds: float) -> str:
    """Render a playback position as ``m:ss``."""
    if not math.isfinite(seconds) or seconds < 0:
        return "0:00"
    minutes = int(seconds // 60)
    secs = int(seconds % 60)
    return f"{minutes}:{secs:02d}"
