"""Weighted per-chunk display durations and the cached section plan."""

from dataclasses import dataclass
from functools import lru_cache

from paced_prompter.constants import END_WEIGHT, FLOW_WEIGHT
from paced_prompter.models import Chunk, ChunkType
from paced_prompter.segmenter import segment


@dataclass(frozen=True)
class SectionPlan:
    chunks: tuple[Chunk, ...]
    durations: tuple[float, ...]    # ms, parallel to chunks
    unit_ms: float | None           # None when there are no chunks

    @property
    def chunk_count(self) -> int:
        return len(self.chunks)

    @property
    def total_ms(self) -> float:
        return sum(self.durations)


def chunk_weight(chunk: Chunk) -> float:
    """END chunks linger longer than FLOW chunks."""
    return END_WEIGHT if chunk.type == ChunkType.END else FLOW_WEIGHT


def unit_duration(chunks, total_duration_ms: float) -> float | None:
    """Base time slice: total duration divided by the summed weights."""
    if not chunks:
        return None
    return total_duration_ms / sum(chunk_weight(c) for c in chunks)


def allocate(chunks, total_duration_ms: float) -> list[float]:
    """Split total_duration_ms across chunks in proportion to their weights.

    total_duration_ms must be positive; callers guarantee it.
    """
    unit = unit_duration(chunks, total_duration_ms)
    if unit is None:
        return []
    return [chunk_weight(c) * unit for c in chunks]


@lru_cache(maxsize=64)
def plan_section(text: str, duration_ms: int) -> SectionPlan:
    """Chunks and durations for a section, memoized on (text, duration_ms).

    Edited sections produce a new key, so a stale plan is never returned.
    """
    chunks = tuple(segment(text))
    return SectionPlan(
        chunks=chunks,
        durations=tuple(allocate(chunks, duration_ms)),
        unit_ms=unit_duration(chunks, duration_ms),
    )
