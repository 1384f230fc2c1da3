"""Playback state machine: countdown, timed chunk advance, seek and section switching."""

import logging
from dataclasses import dataclass
from typing import Callable

from paced_prompter.constants import COUNTDOWN_START, COUNTDOWN_TICK_MS
from paced_prompter.models import Frame, PlaybackState
from paced_prompter.prosody import cue_for, focus_word_index
from paced_prompter.sections import SectionStore
from paced_prompter.timing import SectionPlan, plan_section

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Mode:
    """Stopped, counting down from n, or playing. Exactly one at a time."""
    state: PlaybackState
    countdown: int | None = None


STOPPED = Mode(PlaybackState.STOPPED)
PLAYING = Mode(PlaybackState.PLAYING)


def counting(n: int) -> Mode:
    return Mode(PlaybackState.COUNTDOWN, n)


class Player:
    """Drives the current chunk of the current section through time.

    A paused player is simply STOPPED at a non-zero chunk index.

    The scheduler must provide call_later(delay_ms, callback) and
    cancel(handle). At most one timer is armed; every transition cancels it
    and bumps a generation counter so a timer that slipped through is
    ignored when it fires.
    """

    def __init__(
        self,
        store: SectionStore,
        scheduler,
        countdown_start: int = COUNTDOWN_START,
        countdown_tick_ms: float = COUNTDOWN_TICK_MS,
    ):
        self.store = store
        self.scheduler = scheduler
        self.countdown_start = countdown_start
        self.countdown_tick_ms = countdown_tick_ms

        self.section_index = 0
        self.chunk_index = 0
        self.mode = STOPPED

        self._generation = 0
        self._timer = None
        self._listeners: list[Callable[[Frame], None]] = []
        self._section_id = self.section.id
        self._plan_key = self._key()

        store.add_listener(self._on_store_changed)

    # --- Derived state ---

    @property
    def section(self):
        return self.store.get(self.section_index)

    @property
    def plan(self) -> SectionPlan:
        section = self.section
        return plan_section(section.text, section.duration_ms)

    @property
    def chunk_count(self) -> int:
        return self.plan.chunk_count

    @property
    def state(self) -> PlaybackState:
        return self.mode.state

    @property
    def is_playing(self) -> bool:
        return self.mode.state == PlaybackState.PLAYING

    @property
    def countdown(self) -> int | None:
        return self.mode.countdown

    def _key(self) -> tuple[str, int]:
        section = self.section
        return section.text, section.duration_ms

    def frame(self) -> Frame:
        """Snapshot for the renderer."""
        plan = self.plan
        chunk = plan.chunks[self.chunk_index] if plan.chunks else None
        return Frame(
            chunk=chunk,
            focus_word_index=focus_word_index(chunk) if chunk else None,
            prosody_cue=cue_for(chunk) if chunk else None,
            progress_fraction=self.chunk_index / max(1, plan.chunk_count - 1),
            state=self.mode.state,
            countdown=self.mode.countdown,
            section_index=self.section_index,
            chunk_index=self.chunk_index,
            chunk_count=plan.chunk_count,
        )

    # --- Listeners ---

    def add_listener(self, callback: Callable[[Frame], None]) -> None:
        self._listeners.append(callback)

    def remove_listener(self, callback: Callable[[Frame], None]) -> None:
        if callback in self._listeners:
            self._listeners.remove(callback)

    def _notify(self) -> None:
        frame = self.frame()
        for callback in list(self._listeners):
            callback(frame)

    # --- Timers ---

    def _disarm(self) -> None:
        self._generation += 1
        if self._timer is not None:
            self.scheduler.cancel(self._timer)
            self._timer = None

    def _arm(self, delay_ms: float, callback: Callable[[], None]) -> None:
        generation = self._generation

        def fire():
            if generation != self._generation:
                return
            self._timer = None
            callback()

        self._timer = self.scheduler.call_later(delay_ms, fire)

    def _set_mode(self, mode: Mode) -> None:
        self._disarm()
        if mode != self.mode:
            logger.debug("Playback %s → %s", self.mode, mode)
        self.mode = mode

    # --- Internal transitions ---

    def _start_countdown(self) -> None:
        if self.countdown_start <= 0:
            self._start_playing()
            return
        self._set_mode(counting(self.countdown_start))
        self._arm(self.countdown_tick_ms, self._countdown_tick)
        self._notify()

    def _countdown_tick(self) -> None:
        remaining = self.mode.countdown - 1
        self._set_mode(counting(remaining))
        if remaining > 0:
            self._arm(self.countdown_tick_ms, self._countdown_tick)
            self._notify()
            return
        generation = self._generation
        self._notify()
        # A listener may have cancelled or toggled on the COUNTDOWN(0) frame.
        if generation != self._generation or self.mode != counting(0):
            return
        self._start_playing()

    def _start_playing(self) -> None:
        if self.chunk_count == 0:
            self._set_mode(STOPPED)
            self._notify()
            return
        self._set_mode(PLAYING)
        self._arm_advance()
        self._notify()

    def _arm_advance(self) -> None:
        self._arm(self.plan.durations[self.chunk_index], self._advance)

    def _advance(self) -> None:
        if self.chunk_index >= self.chunk_count - 1:
            logger.debug("Reached last chunk of section %d", self.section_index)
            self._set_mode(STOPPED)
            self._notify()
            return
        self.chunk_index += 1
        self._set_mode(PLAYING)
        self._arm_advance()
        self._notify()

    def _clamp_chunk(self, index: int) -> int:
        return max(0, min(index, self.chunk_count - 1))

    # --- Commands ---

    def toggle_play(self) -> None:
        """Start the countdown when stopped, otherwise stop in place."""
        if self.mode.state == PlaybackState.STOPPED:
            if self.chunk_count == 0:
                logger.debug("Section %d has no chunks; play ignored", self.section_index)
                return
            self._start_countdown()
        else:
            self._set_mode(STOPPED)
            self._notify()

    def seek(self, delta: int) -> None:
        """Move by delta chunks, clamped. Play/countdown state is kept."""
        self.chunk_index = self._clamp_chunk(self.chunk_index + delta)
        if self.is_playing:
            self._set_mode(PLAYING)
            self._arm_advance()
        self._notify()

    def reset(self) -> None:
        self._set_mode(STOPPED)
        self.chunk_index = 0
        self._notify()

    def select_section(self, index: int) -> None:
        self._set_mode(STOPPED)
        self.section_index = max(0, min(index, len(self.store) - 1))
        self.chunk_index = 0
        self._section_id = self.section.id
        self._plan_key = self._key()
        self._notify()

    def cancel(self) -> None:
        """Interrupt a countdown or playback, keeping the position."""
        if self.mode.state == PlaybackState.STOPPED:
            return
        self._set_mode(STOPPED)
        self._notify()

    def close(self) -> None:
        self._disarm()
        self.store.remove_listener(self._on_store_changed)

    # --- Store invalidation ---

    def _on_store_changed(self, store: SectionStore) -> None:
        if self.section_index >= len(store):
            self.section_index = len(store) - 1

        section_id = self.section.id
        key = self._key()
        if section_id == self._section_id and key == self._plan_key:
            return

        if section_id != self._section_id:
            self.chunk_index = 0
        self._section_id = section_id
        self._plan_key = key
        self._set_mode(STOPPED)
        self.chunk_index = self._clamp_chunk(self.chunk_index)
        logger.debug("Section %d changed; position reset to chunk %d", self.section_index, self.chunk_index)
        self._notify()
