"""Shared fixtures for paced prompter tests."""

import pytest

from paced_prompter.models import Section
from paced_prompter.playback import Player
from paced_prompter.scheduler import ManualScheduler
from paced_prompter.sections import SectionStore


@pytest.fixture
def sample_sections():
    """Small sections with round-number timings.

    1: two END chunks of 1750 ms
    2: FLOW 2000 ms + END 3500 ms
    3: no text at all
    """
    return [
        Section(id=1, title="Intro", time_range="0:00-0:04", duration_ms=3500, text="Hi there. Go now!"),
        Section(id=2, title="Body", time_range="0:04-0:10", duration_ms=5500, text="One two three four five."),
        Section(id=3, title="Empty", time_range="0:10-0:11", duration_ms=1000, text=""),
    ]


@pytest.fixture
def store(sample_sections):
    return SectionStore(sample_sections)


@pytest.fixture
def scheduler():
    return ManualScheduler()


@pytest.fixture
def player(store, scheduler):
    p = Player(store, scheduler)
    yield p
    p.close()


@pytest.fixture
def frames(player):
    """Every frame the player emits, in order."""
    seen = []
    player.add_listener(seen.append)
    return seen
