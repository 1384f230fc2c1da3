"""Guide-voice generation via edge-tts with retry logic."""

import asyncio
import logging
import os
import time

import edge_tts

from paced_prompter.constants import TTS_RETRY_COUNT, TTS_RETRY_BASE_DELAY, TTS_RATE
from paced_prompter.models import Chunk
from paced_prompter.timing import SectionPlan

logger = logging.getLogger(__name__)


class GuideVoiceError(RuntimeError):
    """edge-tts could not produce a clip for a chunk."""


def speak_chunk(chunk: Chunk, voice: str, output_path: str, rate: str = TTS_RATE) -> None:
    """Speak one chunk's words into an MP3 clip.

    Each failed attempt is logged and retried after an exponential backoff.
    Raises GuideVoiceError, chained to the last edge-tts error, once the
    retries run out.
    """
    last_error = None
    for attempt in range(1, TTS_RETRY_COUNT + 1):
        try:
            asyncio.run(edge_tts.Communicate(chunk.text, voice, rate=rate).save(output_path))
            # edge-tts can finish without raising yet write nothing
            if os.path.exists(output_path) and os.path.getsize(output_path) > 0:
                return
            last_error = GuideVoiceError(f"empty clip for {chunk.text!r}")
        except Exception as e:
            last_error = e

        logger.warning("Guide clip attempt %d/%d failed: %s", attempt, TTS_RETRY_COUNT, last_error)
        if attempt < TTS_RETRY_COUNT:
            time.sleep(TTS_RETRY_BASE_DELAY * 2 ** (attempt - 1))

    raise GuideVoiceError(
        f"No guide clip for {chunk.text!r} after {TTS_RETRY_COUNT} attempts"
    ) from last_error


def _clip_filename(index: int, chunk: Chunk) -> str:
    return f"{index:03d}_{chunk.type.value.lower()}.mp3"


def generate_chunk_clips(
    plan: SectionPlan,
    output_dir: str,
    voice: str,
    rate: str = TTS_RATE,
) -> list[str]:
    """Speak every chunk of a plan into its own clip.

    Existing non-empty clips are reused. Returns clip paths in chunk order.
    """
    os.makedirs(output_dir, exist_ok=True)
    total = plan.chunk_count
    paths = []

    for i, chunk in enumerate(plan.chunks):
        filename = _clip_filename(i, chunk)
        output_path = os.path.join(output_dir, filename)

        if os.path.exists(output_path) and os.path.getsize(output_path) > 0:
            print(f"  [skip] Chunk {i + 1}/{total}: {filename}")
            paths.append(output_path)
            continue

        print(f"  Speaking chunk {i + 1}/{total}: {chunk.text}")
        speak_chunk(chunk, voice, output_path, rate=rate)
        paths.append(output_path)

    return paths
