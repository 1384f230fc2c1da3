"""Tests for playback module (Layer 2a)."""

import pytest

from paced_prompter.models import PlaybackState
from paced_prompter.playback import Player
from paced_prompter.scheduler import ManualScheduler


def _start(player, scheduler):
    """Toggle play and run the full 5 s countdown."""
    player.toggle_play()
    scheduler.advance(5000)
    assert player.state == PlaybackState.PLAYING


class _LeakyScheduler(ManualScheduler):
    """A scheduler whose cancel does nothing, so stale timers still fire."""

    def cancel(self, handle):
        pass


# --- Initial state and frames ---

def test_initial_frame(player):
    frame = player.frame()
    assert frame.state == PlaybackState.STOPPED
    assert frame.countdown is None
    assert frame.chunk_index == 0
    assert frame.chunk.words == ("Hi", "there.")
    assert frame.focus_word_index == 0
    assert frame.progress_fraction == 0


def test_progress_fraction(player):
    player.select_section(1)
    player.seek(1)
    assert player.frame().progress_fraction == 1.0


def test_empty_section_frame(player):
    player.select_section(2)
    frame = player.frame()
    assert frame.chunk is None
    assert frame.prosody_cue is None
    assert frame.chunk_count == 0
    assert frame.progress_fraction == 0


# --- Countdown ---

def test_toggle_starts_countdown(player, scheduler, frames):
    player.toggle_play()
    assert player.state == PlaybackState.COUNTDOWN
    assert player.countdown == 5
    assert not player.is_playing
    assert scheduler.pending == 1


def test_countdown_sequence(player, scheduler, frames):
    """5, 4, 3, 2, 1, 0, then playing, one step per second."""
    player.toggle_play()
    scheduler.advance(4999)
    assert player.countdown == 1
    scheduler.advance(1)
    assert player.state == PlaybackState.PLAYING
    assert player.countdown is None
    counts = [f.countdown for f in frames if f.state == PlaybackState.COUNTDOWN]
    assert counts == [5, 4, 3, 2, 1, 0]


@pytest.mark.parametrize("command", ["cancel", "toggle_play"])
def test_stop_from_listener_at_countdown_zero(player, scheduler, command):
    """A stop sent while the COUNTDOWN(0) frame is delivered sticks."""
    def on_frame(frame):
        if frame.state == PlaybackState.COUNTDOWN and frame.countdown == 0:
            getattr(player, command)()

    player.add_listener(on_frame)
    player.toggle_play()
    scheduler.advance(5000)
    assert player.state == PlaybackState.STOPPED
    assert scheduler.pending == 0
    scheduler.advance(10000)
    assert player.chunk_index == 0


def test_toggle_cancels_countdown(player, scheduler):
    player.toggle_play()
    scheduler.advance(2000)
    player.toggle_play()
    assert player.state == PlaybackState.STOPPED
    assert player.countdown is None
    assert scheduler.pending == 0
    scheduler.advance(10000)
    assert player.state == PlaybackState.STOPPED


def test_zero_countdown_plays_immediately(store, scheduler):
    player = Player(store, scheduler, countdown_start=0)
    player.toggle_play()
    assert player.state == PlaybackState.PLAYING


# --- Chunk advance ---

def test_advances_after_chunk_duration(player, scheduler):
    _start(player, scheduler)
    scheduler.advance(1749)
    assert player.chunk_index == 0
    scheduler.advance(1)
    assert player.chunk_index == 1
    assert player.is_playing


def test_stops_at_last_chunk(player, scheduler):
    """Playback ends on the last chunk, not past it."""
    _start(player, scheduler)
    scheduler.advance(3500)
    assert player.state == PlaybackState.STOPPED
    assert player.chunk_index == 1
    assert scheduler.pending == 0


def test_uses_weighted_durations(player, scheduler):
    """FLOW chunk lasts 2000 ms, END chunk 3500 ms."""
    player.select_section(1)
    _start(player, scheduler)
    scheduler.advance(2000)
    assert player.chunk_index == 1
    scheduler.advance(3499)
    assert player.is_playing
    scheduler.advance(1)
    assert player.state == PlaybackState.STOPPED


def test_terminal_stop_from_last_chunk(store, scheduler):
    """Starting on the last chunk stops once that chunk's time is up."""
    player = Player(store, scheduler, countdown_start=0)
    player.select_section(1)
    player.seek(1)
    player.toggle_play()
    scheduler.advance(3499)
    assert player.is_playing
    scheduler.advance(1)
    assert player.state == PlaybackState.STOPPED
    assert player.chunk_index == 1


def test_no_chunk_skipped(player, scheduler, frames):
    """The automatic ticker visits every index in order."""
    player.select_section(1)
    _start(player, scheduler)
    scheduler.run_until_idle()
    playing = [f.chunk_index for f in frames if f.state == PlaybackState.PLAYING]
    assert playing == [0, 1]


# --- Pause / resume ---

def test_pause_keeps_position(player, scheduler):
    _start(player, scheduler)
    scheduler.advance(1750)
    player.toggle_play()
    assert player.state == PlaybackState.STOPPED
    assert player.chunk_index == 1
    scheduler.advance(10000)
    assert player.chunk_index == 1


def test_resume_goes_through_countdown(player, scheduler):
    player.select_section(1)
    _start(player, scheduler)
    scheduler.advance(2000)
    player.toggle_play()
    player.toggle_play()
    assert player.state == PlaybackState.COUNTDOWN
    scheduler.advance(5000)
    assert player.is_playing
    assert player.chunk_index == 1


def test_stale_timer_is_ignored(store):
    """A timer that survives cancellation cannot advance a paused player."""
    scheduler = _LeakyScheduler()
    player = Player(store, scheduler, countdown_start=0)
    player.toggle_play()
    player.toggle_play()
    scheduler.advance(10000)
    assert player.chunk_index == 0
    assert player.state == PlaybackState.STOPPED


def test_rapid_toggling_leaves_one_timer(player, scheduler):
    for _ in range(5):
        player.toggle_play()
    assert player.state == PlaybackState.COUNTDOWN
    assert scheduler.pending == 1


def test_countdown_and_playing_exclusive(player, scheduler, frames):
    """No frame is both counting down and playing."""
    player.select_section(1)
    player.toggle_play()
    scheduler.advance(3000)
    player.toggle_play()
    player.toggle_play()
    scheduler.advance(6000)
    player.seek(-1)
    player.toggle_play()
    player.toggle_play()
    scheduler.run_until_idle()
    assert frames
    for frame in frames:
        assert not (frame.countdown is not None and frame.state == PlaybackState.PLAYING)
        assert (frame.countdown is not None) == (frame.state == PlaybackState.COUNTDOWN)


# --- Seek / reset / cancel ---

def test_seek_clamps(player):
    player.seek(-1)
    assert player.chunk_index == 0
    player.seek(10)
    assert player.chunk_index == 1


def test_seek_on_empty_section(player):
    player.select_section(2)
    player.seek(1)
    assert player.chunk_index == 0


def test_seek_while_playing_rearms(player, scheduler):
    """Jumping ahead times the new chunk from the moment of the seek."""
    player.select_section(1)
    _start(player, scheduler)
    scheduler.advance(500)
    player.seek(1)
    assert player.is_playing
    assert scheduler.pending == 1
    scheduler.advance(3499)
    assert player.is_playing
    scheduler.advance(1)
    assert player.state == PlaybackState.STOPPED


def test_seek_during_countdown_keeps_countdown(player, scheduler):
    player.toggle_play()
    player.seek(1)
    assert player.state == PlaybackState.COUNTDOWN
    assert player.chunk_index == 1


def test_reset(player, scheduler):
    _start(player, scheduler)
    scheduler.advance(1750)
    player.reset()
    assert player.chunk_index == 0
    assert player.state == PlaybackState.STOPPED
    assert scheduler.pending == 0


def test_cancel_from_playing(player, scheduler):
    _start(player, scheduler)
    scheduler.advance(1750)
    player.cancel()
    assert player.state == PlaybackState.STOPPED
    assert player.chunk_index == 1


def test_cancel_from_countdown(player, scheduler):
    player.toggle_play()
    player.cancel()
    assert player.state == PlaybackState.STOPPED
    assert scheduler.pending == 0


def test_cancel_when_stopped_is_silent(player, frames):
    player.cancel()
    assert frames == []


# --- Sections ---

def test_select_section_resets_position(player, scheduler):
    _start(player, scheduler)
    scheduler.advance(1750)
    player.select_section(1)
    assert player.section_index == 1
    assert player.chunk_index == 0
    assert player.state == PlaybackState.STOPPED
    assert scheduler.pending == 0


@pytest.mark.parametrize("index,expected", [(-3, 0), (99, 2)])
def test_select_section_clamps(player, index, expected):
    player.select_section(index)
    assert player.section_index == expected


def test_empty_section_cannot_play(player, scheduler, frames):
    player.select_section(2)
    frames.clear()
    player.toggle_play()
    assert player.state == PlaybackState.STOPPED
    assert scheduler.pending == 0
    assert frames == []


# --- Store invalidation ---

def test_text_edit_while_playing_stops_and_clamps(player, scheduler, store):
    _start(player, scheduler)
    scheduler.advance(1750)
    store.update_section(1, text="Short.")
    assert player.state == PlaybackState.STOPPED
    assert player.chunk_index == 0
    assert player.chunk_count == 1
    assert scheduler.pending == 0


def test_duration_edit_invalidates_timing(player, scheduler, store):
    store.update_section(1, duration_ms=7000)
    assert player.plan.durations == pytest.approx((3500, 3500))


def test_title_edit_does_not_interrupt(player, scheduler, store):
    _start(player, scheduler)
    store.update_section(1, title="Renamed")
    assert player.is_playing
    scheduler.advance(1750)
    assert player.chunk_index == 1


def test_other_section_edit_does_not_interrupt(player, scheduler, store):
    _start(player, scheduler)
    store.update_section(2, text="Changed elsewhere.")
    assert player.is_playing


def test_deleting_current_last_section_clamps_index(player, store):
    player.select_section(2)
    store.delete_section(3)
    assert player.section_index == 1
    assert player.section.id == 2
    assert player.chunk_index == 0


def test_close_detaches_from_store(player, scheduler, store, frames):
    player.close()
    store.update_section(1, text="Gone.")
    assert frames == []
