"""Data models for script sections, chunks and playback output."""

from dataclasses import dataclass
from enum import Enum


class ChunkType(str, Enum):
    FLOW = "FLOW"      # mid-sentence word group
    END = "END"        # last word group of a sentence


class ProsodyCue(str, Enum):
    STEADY = "STEADY"
    PITCH_UP = "PITCH_UP"
    PITCH_DOWN = "PITCH_DOWN"
    ENERGY = "ENERGY"


class PlaybackState(str, Enum):
    STOPPED = "STOPPED"
    COUNTDOWN = "COUNTDOWN"
    PLAYING = "PLAYING"


def _positive_duration(value) -> int:
    duration = int(value)
    if duration <= 0:
        raise ValueError(f"Duration must be positive, got {duration} ms")
    return duration


@dataclass
class Section:
    id: int
    title: str
    time_range: str    # display label only, never parsed
    duration_ms: int
    text: str

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "title": self.title,
            "timeRange": self.time_range,
            "durationMs": self.duration_ms,
            "text": self.text,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Section":
        return cls(
            id=int(data["id"]),
            title=str(data["title"]),
            time_range=str(data.get("timeRange", "")),
            duration_ms=_positive_duration(data["durationMs"]),
            text=str(data.get("text", "")),
        )


@dataclass(frozen=True)
class Chunk:
    words: tuple[str, ...]
    type: ChunkType
    punctuation: str | None = None    # set on END chunks only

    @property
    def text(self) -> str:
        return " ".join(self.words)


@dataclass(frozen=True)
class Frame:
    """Everything a renderer needs for one tick."""
    chunk: Chunk | None
    focus_word_index: int | None
    prosody_cue: ProsodyCue | None
    progress_fraction: float
    state: PlaybackState
    countdown: int | None
    section_index: int
    chunk_index: int
    chunk_count: int
