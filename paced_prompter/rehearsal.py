"""Build a rehearsal track: one slot per chunk, each exactly its display duration."""

import logging

import numpy as np
from pydub import AudioSegment

from paced_prompter.constants import (
    CUE_TONE_MS,
    CUE_TONE_FREQUENCIES,
    CUE_TONE_GAIN_DB,
    GUIDE_TONE_DB,
    SAMPLE_RATE,
    SLOT_FADE_MS,
)
from paced_prompter.models import ProsodyCue
from paced_prompter.prosody import cue_for
from paced_prompter.timing import SectionPlan

logger = logging.getLogger(__name__)


def generate_cue_tone(cue: ProsodyCue, duration_ms: int = CUE_TONE_MS) -> AudioSegment:
    """Short sine tone marking a chunk start.

    Pitch follows the cue (up, down, neutral); ENERGY is the loudest.
    """
    frequency = CUE_TONE_FREQUENCIES[cue.value]
    t = np.linspace(0, duration_ms / 1000, int(SAMPLE_RATE * duration_ms / 1000), endpoint=False)
    wave = np.sin(2 * np.pi * frequency * t)

    # Short linear attack/release to avoid clicks
    ramp = min(len(wave) // 4, int(SAMPLE_RATE * 0.01))
    if ramp > 0:
        envelope = np.ones_like(wave)
        envelope[:ramp] = np.linspace(0, 1, ramp)
        envelope[-ramp:] = np.linspace(1, 0, ramp)
        wave = wave * envelope

    samples = (wave * 0.8 * 32767).astype(np.int16)
    tone = AudioSegment(
        data=samples.tobytes(),
        sample_width=2,
        frame_rate=SAMPLE_RATE,
        channels=1,
    )
    return tone + CUE_TONE_GAIN_DB[cue.value]


def fit_to_slot(audio: AudioSegment, slot_ms: int) -> AudioSegment:
    """Pad with silence or trim (with a short fade) to exactly slot_ms."""
    if len(audio) <= slot_ms:
        return audio + AudioSegment.silent(duration=slot_ms - len(audio), frame_rate=audio.frame_rate)
    logger.warning("Clip of %d ms trimmed to its %d ms slot", len(audio), slot_ms)
    return audio[:slot_ms].fade_out(min(SLOT_FADE_MS, slot_ms))


def _slot_lengths(durations) -> list[int]:
    """Round durations to whole ms without drifting from the running total."""
    lengths = []
    elapsed = 0.0
    placed = 0
    for duration in durations:
        elapsed += duration
        end = int(round(elapsed))
        lengths.append(end - placed)
        placed = end
    return lengths


def build_rehearsal_track(
    plan: SectionPlan,
    clips: list[AudioSegment] | None = None,
    cue_tones: bool = True,
) -> AudioSegment:
    """Concatenate one slot per chunk.

    Each slot holds the chunk's guide clip (if given) with the chunk's cue
    tone overlaid at its start (if enabled), fitted to the chunk's display
    duration. The result is as long as the section's target duration.
    """
    if clips is not None and len(clips) != plan.chunk_count:
        raise ValueError(f"Expected {plan.chunk_count} clips, got {len(clips)}")

    track = AudioSegment.silent(duration=0, frame_rate=SAMPLE_RATE)
    for i, (chunk, slot_ms) in enumerate(zip(plan.chunks, _slot_lengths(plan.durations))):
        slot = AudioSegment.silent(duration=slot_ms, frame_rate=SAMPLE_RATE)
        if clips is not None:
            slot = fit_to_slot(clips[i].set_frame_rate(SAMPLE_RATE).set_channels(1), slot_ms)
        if cue_tones:
            tone = generate_cue_tone(cue_for(chunk))
            if clips is not None:
                tone = tone + GUIDE_TONE_DB
            slot = slot.overlay(tone[:slot_ms])
        track += slot
    return track
